import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_BASE_URL = 'https://stephensprive.app'
DEFAULT_TEACHER_DOMAIN = 'stephensprivelessen.nl'
DEFAULT_TEACHER_EMAIL = 'lessons@stephensprivelessen.nl'


def _int_from_env(name, default):
    try:
        return int((os.getenv(name, str(default)) or str(default)).strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    """Central config object read once by the app factory."""

    flask_secret_key: str = ''
    log_level: str = 'INFO'
    sentry_environment: str = 'production'
    sentry_release: str = 'tutor-portal'
    base_url: str = DEFAULT_BASE_URL
    allowed_teacher_domain: str = DEFAULT_TEACHER_DOMAIN
    teacher_email: str = DEFAULT_TEACHER_EMAIL
    cache_duration_hours: int = 12

    @classmethod
    def from_env(cls):
        return cls(
            flask_secret_key=os.getenv('FLASK_SECRET_KEY', ''),
            log_level=(os.getenv('LOG_LEVEL', 'INFO') or 'INFO').strip().upper(),
            sentry_environment=(os.getenv('SENTRY_ENVIRONMENT', os.getenv('FLASK_ENV', 'production')) or 'production').strip(),
            sentry_release=(os.getenv('SENTRY_RELEASE', 'tutor-portal') or 'tutor-portal').strip(),
            base_url=(os.getenv('BASE_URL', DEFAULT_BASE_URL) or DEFAULT_BASE_URL).strip().rstrip('/'),
            allowed_teacher_domain=(os.getenv('ALLOWED_TEACHER_DOMAIN', DEFAULT_TEACHER_DOMAIN) or '').strip().lower(),
            teacher_email=(os.getenv('TEACHER_EMAIL', DEFAULT_TEACHER_EMAIL) or '').strip().lower(),
            cache_duration_hours=max(1, _int_from_env('CACHE_DURATION_HOURS', 12)),
        )

    @property
    def student_portal_url(self) -> str:
        return f"{self.base_url}/leerling"

    @property
    def admin_portal_url(self) -> str:
        return f"{self.base_url}/admin"


def load_config() -> AppConfig:
    config = AppConfig.from_env()
    runtime_env = (
        os.getenv('SENTRY_ENVIRONMENT')
        or os.getenv('FLASK_ENV')
        or os.getenv('ENV')
        or ('production' if os.getenv('RENDER') else 'development')
    ).strip().lower()
    is_dev_like = runtime_env in {'development', 'dev', 'local', 'test'}
    if not is_dev_like and not config.flask_secret_key.strip():
        raise RuntimeError('FLASK_SECRET_KEY must be set in non-development environments.')
    return config
