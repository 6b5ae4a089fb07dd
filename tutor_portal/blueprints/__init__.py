from .auth import auth_bp
from .portal import portal_bp
from .students import students_bp
from .admin_students import admin_students_bp
from .admin_notes import admin_notes_bp
from .admin_taxonomy import admin_taxonomy_bp
from .admin_folders import admin_folders_bp
from .admin import admin_bp
from .cron import cron_bp
from .media import media_bp

ALL_BLUEPRINTS = (
    auth_bp,
    portal_bp,
    students_bp,
    admin_students_bp,
    admin_notes_bp,
    admin_taxonomy_bp,
    admin_folders_bp,
    admin_bp,
    cron_bp,
    media_bp,
)

__all__ = [
    'auth_bp',
    'portal_bp',
    'students_bp',
    'admin_students_bp',
    'admin_notes_bp',
    'admin_taxonomy_bp',
    'admin_folders_bp',
    'admin_bp',
    'cron_bp',
    'media_bp',
    'ALL_BLUEPRINTS',
]
