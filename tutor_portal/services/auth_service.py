"""Firebase token and session-cookie helpers."""


def extract_bearer_token(request):
    auth_header = request.headers.get('Authorization', '')
    if not auth_header.startswith('Bearer '):
        return ''
    return auth_header.split('Bearer ', 1)[1].strip()


def verify_firebase_token(request, auth_module, logger):
    """Return decoded Firebase token dict, or None when invalid/missing."""
    token = extract_bearer_token(request)
    if not token:
        return None
    try:
        return auth_module.verify_id_token(token)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Token verification failed: {exc}")
        return None


def verify_session_cookie(request, cookie_name, auth_module, logger):
    """Return decoded session claims from the teacher cookie, or None."""
    session_cookie = request.cookies.get(cookie_name, '')
    if not session_cookie:
        return None
    try:
        return auth_module.verify_session_cookie(session_cookie, check_revoked=True)
    except Exception as exc:
        if logger is not None:
            logger.info(f"Session cookie verification failed: {exc}")
        return None


def set_session_cookie(response, request, *, cookie_name, value, max_age, force_secure=False):
    response.set_cookie(
        cookie_name,
        value,
        max_age=max_age,
        httponly=True,
        secure=bool(request.is_secure or force_secure),
        samesite='Lax',
        path='/',
    )
    return response


def clear_session_cookie(response, request, *, cookie_name, force_secure=False):
    response.set_cookie(
        cookie_name,
        '',
        expires=0,
        max_age=0,
        httponly=True,
        secure=bool(request.is_secure or force_secure),
        samesite='Lax',
        path='/',
    )
    return response
