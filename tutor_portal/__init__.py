import os

from flask import Flask

from .config import load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app():
    """Build the Flask app: config, logging, request hooks, blueprints."""
    config = load_config()
    configure_logging(config.log_level)

    from . import runtime
    from .blueprints import ALL_BLUEPRINTS

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or os.urandom(32).hex()
    runtime.register_request_hooks(app)
    for blueprint in ALL_BLUEPRINTS:
        app.register_blueprint(blueprint)

    init_extensions(app, runtime)
    return app
