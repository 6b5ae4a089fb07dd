"""Business logic handlers for teacher sign-in and the student PIN portal."""

from tutor_portal.repositories import notes_repo, students_repo
from tutor_portal.services import audit_service, cache_service, rate_limit_service, security_service
from tutor_portal.services.time_utils import now_iso


def _json_body(request):
    return request.get_json(silent=True) or {}


def _public_user(claims):
    return {
        'uid': claims.get('uid', ''),
        'email': claims.get('email', ''),
        'name': claims.get('name', ''),
        'picture': claims.get('picture', ''),
    }


def google_sign_in(app_ctx, request):
    id_token = str(_json_body(request).get('idToken', '') or '').strip()
    if not id_token:
        return app_ctx.jsonify({'error': 'No ID token provided'}), 400

    try:
        claims = app_ctx.verify_id_token(id_token)
    except Exception as e:
        app_ctx.logger.info(f"Google sign-in token rejected: {e}")
        app_ctx.log_audit(
            audit_service.teacher_actor(None),
            'login_fail',
            request=request,
            metadata={'provider': 'google', 'error': str(e)[:200]},
        )
        return app_ctx.jsonify({'error': 'Authentication failed'}), 401

    email = str(claims.get('email', '') or '').strip().lower()
    if not app_ctx.validate_teacher_email(email):
        app_ctx.log_audit(
            audit_service.teacher_actor(email),
            'login_fail',
            request=request,
            metadata={'provider': 'google', 'error': 'Unauthorized domain', 'uid': claims.get('uid', '')},
        )
        return app_ctx.jsonify({'error': 'Access denied - unauthorized domain'}), 403

    try:
        session_cookie = app_ctx.create_session_cookie(id_token)
    except Exception as e:
        app_ctx.logger.error(f"Error creating teacher session cookie: {e}")
        return app_ctx.jsonify({'error': 'Could not create session'}), 500

    app_ctx.log_audit(
        audit_service.teacher_actor(email),
        'login_ok',
        request=request,
        metadata={'provider': 'google', 'email': email, 'uid': claims.get('uid', '')},
    )
    response = app_ctx.jsonify({'success': True, 'user': _public_user(claims)})
    return app_ctx.set_session_cookie(response, request, session_cookie)


def get_current_user(app_ctx, request):
    claims = app_ctx.get_teacher_claims(request)
    if not claims:
        return app_ctx.jsonify({'error': 'Not authenticated'}), 401
    user = _public_user(claims)
    user['emailVerified'] = bool(claims.get('email_verified', False))
    user['role'] = claims.get('role') or 'admin'
    return app_ctx.jsonify({'user': user})


def logout(app_ctx, request):
    claims = app_ctx.get_teacher_claims(request)
    if claims and claims.get('email'):
        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'logout',
            request=request,
            metadata={'email': claims.get('email'), 'uid': claims.get('uid', '')},
        )
    response = app_ctx.jsonify({'success': True})
    return app_ctx.clear_session_cookie(response, request)


def _notes_from_file_metadata(app_ctx, student_id):
    notes = []
    for entry in cache_service.get_file_metadata(app_ctx.db, student_id, logger=app_ctx.logger):
        notes.append({
            'id': entry['id'],
            'contentMd': entry.get('summary') or '',
            'subject': entry.get('subject') or 'Unknown',
            'level': entry.get('level') or 'Unknown',
            'topic': entry.get('topic') or 'Unknown',
            'createdAt': entry.get('createdAt'),
            'updatedAt': entry.get('updatedAt'),
        })
    return notes


def student_login(app_ctx, request):
    payload = _json_body(request)
    display_name = security_service.sanitize_input(payload.get('displayName', ''))
    pin = str(payload.get('pin', '') or '').strip()
    if not display_name or len(display_name) > 50 or len(pin) != 6:
        return app_ctx.jsonify({'error': 'Ongeldige invoer'}), 400
    if not security_service.validate_pin_format(pin):
        return app_ctx.jsonify({'error': 'Ongeldige PIN format'}), 400

    client_ip = security_service.get_client_ip(request)
    allowed, retry_after = app_ctx.check_rate_limit(
        key=rate_limit_service.build_key('student_login', client_ip, display_name),
        limit=app_ctx.STUDENT_LOGIN_RATE_LIMIT_MAX_REQUESTS,
        window_seconds=app_ctx.STUDENT_LOGIN_RATE_LIMIT_WINDOW_SECONDS,
    )
    if not allowed:
        return app_ctx.build_rate_limited_response('Te veel inlogpogingen. Probeer het later opnieuw.', retry_after)

    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    who = audit_service.student_actor(display_name)
    try:
        student = students_repo.find_by_display_name(app_ctx.db, display_name)
        if student is None:
            app_ctx.log_audit(who, 'login_fail', request=request, metadata={
                'reason': 'student_not_found',
                'displayName': display_name,
            })
            return app_ctx.jsonify({'error': 'Student niet gevonden'}), 404

        if not security_service.verify_pin(pin, student.get('pinHash', '')):
            app_ctx.log_audit(who, 'login_fail', request=request, student_id=student['id'], metadata={
                'reason': 'invalid_pin',
                'displayName': display_name,
            })
            return app_ctx.jsonify({'error': 'Ongeldige PIN'}), 401

        students_repo.update_doc(app_ctx.db, student['id'], {'lastLoginAt': now_iso()})
        app_ctx.log_audit(
            audit_service.student_actor(student.get('displayName')),
            'login_ok',
            request=request,
            student_id=student['id'],
            metadata={'displayName': student.get('displayName')},
        )
        return app_ctx.jsonify({
            'success': True,
            'student': {
                'id': student['id'],
                'displayName': student.get('displayName', ''),
                'notes': _notes_from_file_metadata(app_ctx, student['id']),
            },
        })
    except Exception as e:
        app_ctx.logger.error(f"Error in student login: {e}")
        return app_ctx.jsonify({'error': 'Er is een fout opgetreden bij het inloggen'}), 500


def get_portal_student(app_ctx, request, student_id):
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404
        student.pop('pinHash', None)
        student['notes'] = notes_repo.list_notes(app_ctx.db, student_id)
        return app_ctx.jsonify({'success': True, 'student': student})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching student {student_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch student'}), 500
