"""Business logic handlers for linking Drive folders to students."""

from tutor_portal.repositories import folders_repo, students_repo
from tutor_portal.services import audit_service, folder_sync_service
from tutor_portal.services.request_utils import json_body
from tutor_portal.services.time_utils import now_iso


def _drive_folder(app_ctx, folder_id):
    for folder in app_ctx.drive_service.get_all_students():
        if folder['id'] == folder_id:
            return folder
    return {'id': folder_id, 'name': '', 'subject': ''}


def _audit_link(app_ctx, request, claims, student_id, folder, confirmed):
    app_ctx.log_audit(
        audit_service.teacher_actor(claims.get('email')),
        'folder_linked',
        request=request,
        student_id=student_id,
        metadata={
            'studentId': student_id,
            'folderId': folder['id'],
            'folderName': folder.get('name', ''),
            'confirmed': confirmed,
        },
    )


def list_folders(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        students = students_repo.list_students(app_ctx.db)
        drive_folders = app_ctx.drive_service.get_all_students()
        folders_by_id = {folder['id']: folder for folder in drive_folders}

        linked_folders = []
        for student in students:
            folder_id = student.get('driveFolderId')
            if not folder_id:
                continue
            folder = folders_by_id.get(folder_id) or {}
            linked_folders.append({
                'student': {key: value for key, value in student.items() if key != 'pinHash'},
                'folderId': folder_id,
                'folderName': folder.get('name') or student.get('driveFolderName') or 'Unknown Folder',
                'confirmed': bool(student.get('folderConfirmed')),
            })

        linked_ids = {student.get('driveFolderId') for student in students if student.get('driveFolderId')}
        without_folder = [
            {key: value for key, value in student.items() if key != 'pinHash'}
            for student in students
            if not student.get('driveFolderId')
        ]
        unlinked_folders = []
        for folder in drive_folders:
            if folder['id'] in linked_ids:
                continue
            suggestion, _score = folder_sync_service.find_matching_student(folder.get('name', ''), without_folder)
            unlinked_folders.append({
                'id': folder['id'],
                'name': folder.get('name', ''),
                'subject': folder.get('subject', ''),
                'suggestedStudentId': suggestion['id'] if suggestion else None,
            })

        return app_ctx.jsonify({
            'linkedFolders': linked_folders,
            'unlinkedFolders': unlinked_folders,
            'studentsWithoutFolders': without_folder,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error fetching folders: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch folders'}), 500


def link_folder(app_ctx, request):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    folder_id = str(payload.get('folderId', '') or '').strip()
    student_id = str(payload.get('studentId', '') or '').strip()
    if not folder_id or not student_id:
        return app_ctx.jsonify({'error': 'Folder ID and Student ID are required'}), 400
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404
        folder = _drive_folder(app_ctx, folder_id)
        updates = folder_sync_service.link_folder(app_ctx.db, student_id, folder)
        _audit_link(app_ctx, request, claims, student_id, folder, confirmed=False)
        student.pop('pinHash', None)
        return app_ctx.jsonify({
            'success': True,
            'message': 'Folder linked successfully',
            'student': {**student, **updates},
        })
    except Exception as e:
        app_ctx.logger.error(f"Error linking folder {folder_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to link folder'}), 500


def link_folder_by_id(app_ctx, request, folder_id):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    student_id = str(json_body(request).get('studentId', '') or '').strip()
    if not student_id:
        return app_ctx.jsonify({'error': 'Student ID is required'}), 400
    try:
        if students_repo.get_student(app_ctx.db, student_id) is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404
        folder = _drive_folder(app_ctx, folder_id)
        folder_sync_service.link_folder(app_ctx.db, student_id, folder, confirmed=True)
        _audit_link(app_ctx, request, claims, student_id, folder, confirmed=True)
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error linking folder {folder_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to link folder'}), 500


def confirm_folder(app_ctx, request, folder_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.find_by_drive_folder_id(app_ctx.db, folder_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student with this folder not found'}), 404
        stamp = now_iso()
        students_repo.update_doc(app_ctx.db, student['id'], {
            'folderConfirmed': True,
            'folderConfirmedAt': stamp,
            'updatedAt': stamp,
        })
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error confirming folder {folder_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to confirm folder link'}), 500


def reject_folder(app_ctx, request, folder_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.find_by_drive_folder_id(app_ctx.db, folder_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student with this folder not found'}), 404
        students_repo.update_doc(app_ctx.db, student['id'], {
            'driveFolderId': None,
            'driveFolderName': None,
            'subject': None,
            'folderConfirmed': False,
            'folderLinkedAt': None,
            'folderConfirmedAt': None,
            'updatedAt': now_iso(),
        })
        folders_repo.upsert(app_ctx.db, folder_id, {
            'folderName': student.get('driveFolderName') or 'Unknown',
            'subject': student.get('subject') or 'Unknown',
        }, created_at=now_iso())
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error rejecting folder {folder_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to reject folder link'}), 500


def sync_folders(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        return app_ctx.jsonify(app_ctx.sync_drive_folders())
    except Exception as e:
        app_ctx.logger.error(f"Error syncing folders: {e}")
        return app_ctx.jsonify({'error': 'Failed to sync folders'}), 500
