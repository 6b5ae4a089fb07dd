"""PIN handling, request fingerprinting and input hygiene."""

import re
import secrets

import bcrypt

PIN_RE = re.compile(r'^\d{6}$')
BCRYPT_ROUNDS = 12
ADMIN_ROLES = {'admin', 'staff'}


def generate_pin():
    return ''.join(str(secrets.randbelow(10)) for _ in range(6))


def hash_pin(pin):
    return bcrypt.hashpw(str(pin).encode('utf-8'), bcrypt.gensalt(BCRYPT_ROUNDS)).decode('utf-8')


def verify_pin(pin, pin_hash):
    if not pin or not pin_hash:
        return False
    try:
        return bcrypt.checkpw(str(pin).encode('utf-8'), str(pin_hash).encode('utf-8'))
    except ValueError:
        return False


def get_client_ip(request):
    cf_connecting_ip = str(request.headers.get('CF-Connecting-IP', '') or '').strip()
    if cf_connecting_ip:
        return cf_connecting_ip
    real_ip = str(request.headers.get('X-Real-IP', '') or '').strip()
    if real_ip:
        return real_ip
    forwarded = str(request.headers.get('X-Forwarded-For', '') or '').strip()
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.remote_addr or 'unknown'


def get_user_agent(request):
    return str(request.headers.get('User-Agent', '') or '').strip() or 'unknown'


def validate_teacher_email(email, *, allowed_domain, teacher_email):
    email = str(email or '').strip().lower()
    if not email:
        return False
    if teacher_email and email == teacher_email.lower():
        return True
    return bool(allowed_domain) and email.endswith(f"@{allowed_domain.lower()}")


def sanitize_input(value):
    text = str(value or '')
    text = re.sub(r'[<>]', '', text)
    text = re.sub(r'javascript:', '', text, flags=re.IGNORECASE)
    text = re.sub(r'on\w+=', '', text, flags=re.IGNORECASE)
    return text.strip()


def validate_pin_format(pin):
    return isinstance(pin, str) and bool(PIN_RE.match(pin))


def validate_student_name(name):
    cleaned = sanitize_input(name)
    return 2 <= len(cleaned) <= 50


def is_authorized_admin(claims, *, allowed_domain, teacher_email):
    """Teacher-domain email, plus an admin/staff role when a role claim is set."""
    if not claims:
        return False
    if not validate_teacher_email(claims.get('email', ''), allowed_domain=allowed_domain, teacher_email=teacher_email):
        return False
    role = claims.get('role')
    if role and role not in ADMIN_ROLES:
        return False
    return True
