"""Process-wide clients, settings and request helpers.

API services receive this module as ``app_ctx`` and read collaborators off it
at call time, so tests can swap ``db``, ``drive_service`` or any helper with
``monkeypatch.setattr``.
"""

import json
import logging
import os
import sys
import threading
import time
import uuid
from datetime import timedelta

import firebase_admin
import sentry_sdk
from firebase_admin import auth, credentials, firestore
from flask import Response, g, jsonify, request
from google import genai
from sentry_sdk.integrations.flask import FlaskIntegration

from tutor_portal import logging_config
from tutor_portal.config import AppConfig
from tutor_portal.services import (
    ai_service,
    audit_service,
    auth_service,
    folder_sync_service,
    rate_limit_service,
    security_service,
)
from tutor_portal.services.drive_service import DriveService
from tutor_portal.services.errors import create_error_response, handle_unknown_error
from tutor_portal.services.sync_service import BackgroundSyncService

logger = logging.getLogger('tutor_portal')
config = AppConfig.from_env()


def log_event(level, event, **fields):
    logging_config.log_event(logger, level, event, **fields)


def safe_int_env(name, default=0, minimum=1, maximum=100000):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError:
        value = int(default)
    return min(max(value, minimum), maximum)


def safe_float_env(name, default=0.0):
    raw = os.getenv(name, str(default)).strip()
    try:
        value = float(raw)
    except ValueError:
        return default
    return min(max(value, 0.0), 1.0)


def env_flag(name, default='0'):
    return str(os.getenv(name, default)).strip().lower() in {'1', 'true', 'yes', 'on'}


BASE_URL = config.base_url
ALLOWED_TEACHER_DOMAIN = config.allowed_teacher_domain
TEACHER_EMAIL = config.teacher_email
CACHE_DURATION_HOURS = config.cache_duration_hours
CRON_SECRET = (os.getenv('CRON_SECRET', '') or '').strip()

ADMIN_SESSION_COOKIE_NAME = 'firebase-token'
ADMIN_SESSION_DURATION_SECONDS = safe_int_env('ADMIN_SESSION_DURATION_SECONDS', 5 * 24 * 3600, minimum=300, maximum=14 * 24 * 3600)
ADMIN_SESSION_COOKIE_SECURE = env_flag('ADMIN_SESSION_COOKIE_SECURE', '0')

STUDENT_LOGIN_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('STUDENT_LOGIN_RATE_LIMIT_WINDOW_SECONDS', 900, minimum=10, maximum=86400)
STUDENT_LOGIN_RATE_LIMIT_MAX_REQUESTS = safe_int_env('STUDENT_LOGIN_RATE_LIMIT_MAX_REQUESTS', 10, minimum=1, maximum=1000)
THUMBNAIL_RATE_LIMIT_WINDOW_SECONDS = safe_int_env('THUMBNAIL_RATE_LIMIT_WINDOW_SECONDS', 60, minimum=10, maximum=3600)
THUMBNAIL_RATE_LIMIT_MAX_REQUESTS = safe_int_env('THUMBNAIL_RATE_LIMIT_MAX_REQUESTS', 60, minimum=1, maximum=5000)
RATE_LIMIT_EVENTS = {}
RATE_LIMIT_LOCK = threading.Lock()
RATE_LIMIT_COUNTER_COLLECTION = 'rateLimitCounters'
RATE_LIMIT_FIRESTORE_ENABLED = env_flag('RATE_LIMIT_FIRESTORE_ENABLED', '1')

SENTRY_BACKEND_DSN = os.getenv('SENTRY_DSN_BACKEND', '').strip()
SENTRY_ENVIRONMENT = config.sentry_environment
SENTRY_RELEASE = config.sentry_release
SENTRY_TRACES_SAMPLE_RATE = safe_float_env('SENTRY_TRACES_SAMPLE_RATE', 0.0)
DEV_ENV_NAMES = {'development', 'dev', 'local', 'test'}
APP_BOOT_TS = time.time()


def parse_cors_allowed_origins():
    raw = (os.getenv('CORS_ALLOWED_ORIGINS', '') or '').strip()
    if raw:
        return {part.strip().lower() for part in raw.split(',') if part.strip()}
    return {
        'http://127.0.0.1:3000',
        'http://localhost:3000',
        'http://127.0.0.1:5000',
        'http://localhost:5000',
        BASE_URL.lower(),
    }


CORS_ALLOWED_ORIGINS = parse_cors_allowed_origins()

# --- Gemini ---
GEMINI_API_KEY = (os.getenv('GEMINI_API_KEY', '') or '').strip()
GEMINI_MODEL = (os.getenv('GEMINI_MODEL', 'gemini-2.5-flash') or 'gemini-2.5-flash').strip()
if GEMINI_API_KEY:
    try:
        client = genai.Client(api_key=GEMINI_API_KEY)
    except Exception as e:
        client = None
        logger.info(f"Gemini client disabled: {e}")
else:
    client = None
    logger.info("GEMINI_API_KEY not set; documents get filename-based metadata only.")
AI_ANALYSIS_CACHE = {}
AI_ANALYSIS_LOCK = threading.Lock()

# --- Firebase ---
db = None
firebase_init_error = ''
try:
    if os.path.exists('firebase-credentials.json'):
        cred = credentials.Certificate('firebase-credentials.json')
    else:
        firebase_creds_raw = (os.getenv('FIREBASE_CREDENTIALS', '') or '').strip()
        if not firebase_creds_raw:
            raise ValueError("FIREBASE_CREDENTIALS is not set and firebase-credentials.json was not found.")
        cred = credentials.Certificate(json.loads(firebase_creds_raw))
    if not firebase_admin._apps:
        firebase_admin.initialize_app(cred)
    db = firestore.client()
except Exception as e:
    firebase_init_error = str(e)
    logger.info(f"Firebase initialization skipped: {firebase_init_error}")

# --- Google Drive ---
drive_service = DriveService.from_env(cache_duration_hours=CACHE_DURATION_HOURS, logger=logger)

_sentry_initialized = False


def init_sentry():
    global _sentry_initialized
    if _sentry_initialized:
        return True
    if not SENTRY_BACKEND_DSN or sentry_sdk is None:
        return False
    sentry_sdk.init(
        dsn=SENTRY_BACKEND_DSN,
        integrations=[FlaskIntegration()],
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        send_default_pii=False,
        environment=SENTRY_ENVIRONMENT,
        release=SENTRY_RELEASE,
    )
    _sentry_initialized = True
    return True


def is_dev_environment():
    env_value = str(SENTRY_ENVIRONMENT or '').strip().lower()
    return env_value in DEV_ENV_NAMES or env_flag('FLASK_DEBUG', '0')


# --- request hooks ---

def apply_cors_headers(response):
    origin = str(request.headers.get('Origin', '') or '').strip()
    if not origin or not request.path.startswith('/api/'):
        return response
    if origin.lower() not in CORS_ALLOWED_ORIGINS:
        return response
    response.headers['Access-Control-Allow-Origin'] = origin
    response.headers['Access-Control-Allow-Credentials'] = 'true'
    response.headers['Vary'] = 'Origin'
    response.headers['Access-Control-Allow-Headers'] = 'Authorization, Content-Type, X-Request-ID'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, PUT, PATCH, DELETE, OPTIONS'
    return response


def register_request_hooks(app):
    @app.before_request
    def handle_api_options_preflight():
        if request.method == 'OPTIONS' and request.path.startswith('/api/'):
            return apply_cors_headers(app.make_default_options_response())
        return None

    @app.before_request
    def attach_request_context():
        request_id = str(request.headers.get('X-Request-ID', '') or '').strip()[:120] or uuid.uuid4().hex
        g.request_id = request_id
        if not sentry_sdk:
            return
        sentry_sdk.set_tag('request.id', request_id)
        sentry_sdk.set_tag('route.path', request.path)
        sentry_sdk.set_tag('route.method', request.method)
        sentry_sdk.set_tag('route.environment', SENTRY_ENVIRONMENT or 'production')

    @app.after_request
    def attach_response_context(response):
        request_id = str(getattr(g, 'request_id', '') or '').strip()
        if request_id:
            response.headers['X-Request-ID'] = request_id
        if sentry_sdk:
            sentry_sdk.set_tag('route.status_code', str(response.status_code))
        return apply_cors_headers(response)


# --- auth ---

def verify_firebase_token(req):
    return auth_service.verify_firebase_token(req, auth_module=auth, logger=logger)


def verify_session_cookie(req):
    return auth_service.verify_session_cookie(req, ADMIN_SESSION_COOKIE_NAME, auth_module=auth, logger=logger)


def get_teacher_claims(req):
    """Session cookie first, then a bearer ID token."""
    return verify_session_cookie(req) or verify_firebase_token(req)


def verify_id_token(id_token):
    return auth.verify_id_token(id_token)


def create_session_cookie(id_token):
    return auth.create_session_cookie(id_token, expires_in=timedelta(seconds=ADMIN_SESSION_DURATION_SECONDS))


def set_session_cookie(response, req, value):
    return auth_service.set_session_cookie(
        response,
        req,
        cookie_name=ADMIN_SESSION_COOKIE_NAME,
        value=value,
        max_age=ADMIN_SESSION_DURATION_SECONDS,
        force_secure=ADMIN_SESSION_COOKIE_SECURE,
    )


def clear_session_cookie(response, req):
    return auth_service.clear_session_cookie(
        response,
        req,
        cookie_name=ADMIN_SESSION_COOKIE_NAME,
        force_secure=ADMIN_SESSION_COOKIE_SECURE,
    )


def validate_teacher_email(email):
    return security_service.validate_teacher_email(
        email,
        allowed_domain=ALLOWED_TEACHER_DOMAIN,
        teacher_email=TEACHER_EMAIL,
    )


def is_authorized_admin(claims):
    return security_service.is_authorized_admin(
        claims,
        allowed_domain=ALLOWED_TEACHER_DOMAIN,
        teacher_email=TEACHER_EMAIL,
    )


def require_teacher(req):
    """Return ``(claims, None)`` or ``(None, error_response)``."""
    claims = get_teacher_claims(req)
    if not claims:
        return None, (jsonify({'error': 'Unauthorized'}), 401)
    if not is_authorized_admin(claims):
        return None, (jsonify({'error': 'Forbidden'}), 403)
    return claims, None


# --- rate limiting ---

def check_rate_limit(key, limit, window_seconds):
    return rate_limit_service.check_rate_limit(
        key,
        limit,
        window_seconds,
        firestore_enabled=RATE_LIMIT_FIRESTORE_ENABLED,
        db=db,
        firestore_module=firestore,
        counter_collection=RATE_LIMIT_COUNTER_COLLECTION,
        in_memory_events=RATE_LIMIT_EVENTS,
        in_memory_lock=RATE_LIMIT_LOCK,
        time_module=time,
        logger=logger,
    )


def build_rate_limited_response(message, retry_after):
    response = jsonify({
        'error': message,
        'retry_after_seconds': int(max(1, retry_after)),
    })
    response.status_code = 429
    response.headers['Retry-After'] = str(int(max(1, retry_after)))
    return response


# --- AI ---

def analyze_document(file_name, file_id=None, force=False):
    return ai_service.analyze_document(
        file_name,
        client=client,
        model=GEMINI_MODEL,
        cache=AI_ANALYSIS_CACHE,
        cache_lock=AI_ANALYSIS_LOCK,
        logger=logger,
        file_id=file_id,
        force=force,
    )


def clear_analysis_cache():
    return ai_service.clear_analysis_cache(AI_ANALYSIS_CACHE, AI_ANALYSIS_LOCK)


# --- audit, sync ---

def log_audit(who, action, **kwargs):
    return audit_service.log_audit(db, who, action, logger=logger, **kwargs)


sync_service = BackgroundSyncService(sys.modules[__name__])


def trigger_background_sync(student_id):
    return sync_service.trigger_background_sync(student_id)


def start_full_sync():
    return sync_service.start_full_sync()


def start_reanalyze_all():
    return sync_service.start_reanalyze_all()


def sync_drive_folders():
    return folder_sync_service.sync_drive_folders(db, drive_service, logger=logger)


# --- responses ---

def error_response(message, status):
    return jsonify({'error': message}), status


def structured_error_response(error, status=400):
    return jsonify(create_error_response(handle_unknown_error(error))), status


def db_unavailable_response():
    return jsonify({'error': 'Database not available'}), 503
