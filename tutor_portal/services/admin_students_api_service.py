"""Business logic handlers for teacher-side student management."""

from tutor_portal.repositories import file_metadata_repo, notes_repo, students_repo
from tutor_portal.services import audit_service, security_service, whatsapp_service
from tutor_portal.services.request_utils import json_body, paginate, parse_int_arg
from tutor_portal.services.time_utils import now_iso

DUPLICATE_NAME_ERROR = 'Student met deze naam bestaat al'


def public_student(student):
    return {key: value for key, value in student.items() if key != 'pinHash'}


def _clean_optional(value):
    cleaned = security_service.sanitize_input(value)
    return cleaned or None


def _looks_like_email(value):
    return bool(value) and '@' in value and '.' in value.rsplit('@', 1)[-1]


def _name_taken(db, display_name, exclude_id=None):
    existing = students_repo.find_by_display_name(db, display_name)
    return existing is not None and existing['id'] != exclude_id


def list_students(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    search = security_service.sanitize_input(request.args.get('search', '')).lower()
    page = parse_int_arg(request.args.get('page'), default=1, minimum=1)
    limit = parse_int_arg(request.args.get('limit'), default=50, minimum=1, maximum=200)
    try:
        students = students_repo.list_students(app_ctx.db)
        if search:
            students = [student for student in students if search in str(student.get('displayName', '')).lower()]
        students.sort(key=lambda student: str(student.get('updatedAt') or ''), reverse=True)

        notes_by_student = {}
        for note in notes_repo.list_notes(app_ctx.db):
            notes_by_student.setdefault(note.get('studentId'), []).append(note)

        page_items, pagination = paginate(students, page, limit)
        rows = []
        for student in page_items:
            notes = notes_by_student.get(student['id'], [])
            row = public_student(student)
            row['notesCount'] = len(notes)
            row['lastNoteDate'] = max((str(note.get('createdAt') or '') for note in notes), default=None) or None
            rows.append(row)
        return app_ctx.jsonify({'success': True, 'students': rows, 'pagination': pagination})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching students: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch students'}), 500


def create_student(app_ctx, request):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    display_name = security_service.sanitize_input(payload.get('displayName', ''))
    if not security_service.validate_student_name(display_name):
        return app_ctx.jsonify({'error': 'Naam moet tussen 2 en 50 tekens zijn'}), 400
    email = _clean_optional(payload.get('email'))
    if email and not _looks_like_email(email):
        return app_ctx.jsonify({'error': 'Ongeldig e-mailadres'}), 400

    try:
        if _name_taken(app_ctx.db, display_name):
            return app_ctx.jsonify({'error': DUPLICATE_NAME_ERROR}), 400

        pin = security_service.generate_pin()
        stamp = now_iso()
        ref = students_repo.new_doc_ref(app_ctx.db)
        student = {
            'displayName': display_name,
            'pinHash': security_service.hash_pin(pin),
            'email': email,
            'driveFolderId': _clean_optional(payload.get('driveFolderId')),
            'subject': _clean_optional(payload.get('subject')),
            'folderConfirmed': False,
            'pinUpdatedAt': stamp,
            'createdAt': stamp,
            'updatedAt': stamp,
        }
        ref.set(student)

        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'student_created',
            request=request,
            student_id=ref.id,
            metadata={'studentId': ref.id, 'studentName': display_name},
        )
        return app_ctx.jsonify({
            'success': True,
            'student': public_student({**student, 'id': ref.id}),
            'pin': pin,
            'whatsappLink': whatsapp_service.generate_whatsapp_link(display_name, pin, app_ctx.BASE_URL),
        }), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating student: {e}")
        return app_ctx.jsonify({'error': 'Failed to create student'}), 500


def get_student(app_ctx, request, student_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404
        notes = notes_repo.list_notes(app_ctx.db, student_id)
        notes.sort(key=lambda note: str(note.get('updatedAt') or ''), reverse=True)
        return app_ctx.jsonify({'success': True, 'student': {**public_student(student), 'notes': notes}})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching student {student_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch student'}), 500


def update_student(app_ctx, request, student_id):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    updates = {}
    if 'displayName' in payload:
        display_name = security_service.sanitize_input(payload.get('displayName'))
        if not security_service.validate_student_name(display_name):
            return app_ctx.jsonify({'error': 'Naam moet tussen 2 en 50 tekens zijn'}), 400
        updates['displayName'] = display_name
    if 'email' in payload:
        email = _clean_optional(payload.get('email'))
        if email and not _looks_like_email(email):
            return app_ctx.jsonify({'error': 'Ongeldig e-mailadres'}), 400
        updates['email'] = email
    for field in ('driveFolderId', 'subject'):
        if field in payload:
            updates[field] = _clean_optional(payload.get(field))
    if not updates:
        return app_ctx.jsonify({'error': 'No valid fields to update'}), 400

    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404
        if 'displayName' in updates and _name_taken(app_ctx.db, updates['displayName'], exclude_id=student_id):
            return app_ctx.jsonify({'error': DUPLICATE_NAME_ERROR}), 400

        updates['updatedAt'] = now_iso()
        students_repo.update_doc(app_ctx.db, student_id, updates)
        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'student_updated',
            request=request,
            student_id=student_id,
            metadata={'studentId': student_id, 'fields': sorted(key for key in updates if key != 'updatedAt')},
        )
        return app_ctx.jsonify({'success': True, 'student': public_student({**student, **updates})})
    except Exception as e:
        app_ctx.logger.error(f"Error updating student {student_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to update student'}), 500


def delete_student(app_ctx, request, student_id):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404

        deleted_notes = notes_repo.delete_notes_for_student(app_ctx.db, student_id)
        notes_repo.delete_tags_for_student(app_ctx.db, student_id)
        deleted_files = file_metadata_repo.delete_for_student(app_ctx.db, student_id)
        students_repo.delete_doc(app_ctx.db, student_id)

        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'student_deleted',
            request=request,
            student_id=student_id,
            metadata={
                'studentId': student_id,
                'studentName': student.get('displayName', ''),
                'notesDeleted': deleted_notes,
                'fileMetadataDeleted': deleted_files,
            },
        )
        return app_ctx.jsonify({'success': True, 'message': 'Student deleted successfully'})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting student {student_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to delete student'}), 500


def reset_pin(app_ctx, request, student_id):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404

        pin = security_service.generate_pin()
        stamp = now_iso()
        students_repo.update_doc(app_ctx.db, student_id, {
            'pinHash': security_service.hash_pin(pin),
            'pinUpdatedAt': stamp,
            'updatedAt': stamp,
        })
        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'pin_reset',
            request=request,
            student_id=student_id,
            metadata={'studentId': student_id, 'studentName': student.get('displayName', '')},
        )
        return app_ctx.jsonify({
            'success': True,
            'pin': pin,
            'whatsappLink': whatsapp_service.generate_whatsapp_link(student.get('displayName', ''), pin, app_ctx.BASE_URL),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error resetting PIN for {student_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to reset PIN'}), 500


def adopt_student(app_ctx, request):
    """Turn a student id that only exists in ``fileMetadata`` into a real student."""
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    student_id = str(payload.get('studentId', '') or '').strip()
    display_name = security_service.sanitize_input(payload.get('displayName', ''))
    pin = str(payload.get('pin', '') or '').strip()
    if not student_id or not display_name or not pin:
        return app_ctx.jsonify({'error': 'Student ID, display name and PIN are required'}), 400
    if not security_service.validate_pin_format(pin):
        return app_ctx.jsonify({'error': 'Ongeldige PIN format'}), 400
    if not security_service.validate_student_name(display_name):
        return app_ctx.jsonify({'error': 'Naam moet tussen 2 en 50 tekens zijn'}), 400

    try:
        if students_repo.get_doc(app_ctx.db, student_id).exists:
            return app_ctx.jsonify({'error': 'Student already exists in students collection'}), 400
        if not list(file_metadata_repo.query_for_student(app_ctx.db, student_id).limit(1).stream()):
            return app_ctx.jsonify({'error': 'Student ID not found in file metadata'}), 404

        stamp = now_iso()
        student = {
            'displayName': display_name,
            'pinHash': security_service.hash_pin(pin),
            'email': _clean_optional(payload.get('email')),
            'driveFolderId': _clean_optional(payload.get('driveFolderId')),
            'subject': _clean_optional(payload.get('subject')),
            'folderConfirmed': False,
            'pinUpdatedAt': stamp,
            'createdAt': stamp,
            'updatedAt': stamp,
        }
        students_repo.set_doc(app_ctx.db, student_id, student)
        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'student_created',
            request=request,
            student_id=student_id,
            metadata={'studentId': student_id, 'studentName': display_name, 'adopted': True},
        )
        return app_ctx.jsonify({
            'success': True,
            'student': public_student({**student, 'id': student_id}),
            'message': 'Student successfully adopted from file metadata',
        })
    except Exception as e:
        app_ctx.logger.error(f"Error adopting student {student_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to adopt student'}), 500
