"""Business logic handlers for the public student search/files APIs."""

from tutor_portal.repositories import concepts_repo, students_repo
from tutor_portal.services import cache_service, concept_service
from tutor_portal.services.drive_service import folder_url
from tutor_portal.services.errors import (
    AppError,
    InvalidStudentIdError,
    StudentNotFoundError,
    create_error_response,
    handle_unknown_error,
)
from tutor_portal.services.id_types import (
    ID_TYPE_DRIVE,
    ID_TYPE_FIRESTORE,
    detect_id_type,
    validate_drive_folder_id,
    validate_firestore_student_id,
)
from tutor_portal.services.request_utils import is_truthy_arg, json_body, parse_int_arg

CACHE_FRESH_HOURS = 6
ENRICHED_FIELDS = (
    'subject',
    'topic',
    'level',
    'schoolYear',
    'keywords',
    'summary',
    'summaryEn',
    'topicEn',
    'keywordsEn',
    'aiAnalyzedAt',
)


def _error(app_ctx, error, status):
    return app_ctx.jsonify(create_error_response(handle_unknown_error(error))), status


def resolve_student_folder(app_ctx, student_id, id_type=None):
    """Return ``{folderId, studentName, student, metadataKey, idType}``.

    Raises ``AppError`` subclasses for malformed ids and
    ``StudentNotFoundError`` when a Firestore id has no document.
    """
    if id_type not in (ID_TYPE_FIRESTORE, ID_TYPE_DRIVE):
        id_type = detect_id_type(student_id)

    db = app_ctx.db
    student = None
    if id_type == ID_TYPE_FIRESTORE:
        validate_firestore_student_id(student_id)
        student = students_repo.get_student(db, student_id) if db is not None else None
        if student is None:
            raise StudentNotFoundError(student_id)
        if not student.get('driveFolderId'):
            raise InvalidStudentIdError(student_id, ID_TYPE_FIRESTORE)
        folder_id = student['driveFolderId']
        student_name = student.get('displayName', '')
    else:
        validate_drive_folder_id(student_id)
        folder_id = student_id
        if db is not None:
            student = students_repo.find_by_drive_folder_id(db, folder_id)
        student_name = student.get('displayName', '') if student else app_ctx.drive_service.get_folder_name(folder_id)

    if not student_name:
        raise InvalidStudentIdError(student_id, id_type)
    return {
        'folderId': folder_id,
        'studentName': student_name,
        'student': student,
        'metadataKey': student['id'] if student else folder_id,
        'idType': id_type,
    }


def _enrich(files, cached_entries):
    by_id = {entry['id']: entry for entry in cached_entries}
    enriched = []
    for drive_file in files:
        cached = by_id.get(drive_file['id'])
        if cached is None:
            enriched.append(drive_file)
            continue
        merged = dict(drive_file)
        for field in ENRICHED_FIELDS:
            if field in cached:
                merged[field] = cached[field]
        enriched.append(merged)
    return enriched


def _page(files, limit, offset):
    if limit is None:
        return files, False
    return files[offset:offset + limit], len(files) > offset + limit


def search_students(app_ctx, request):
    query = str(request.args.get('q', '') or '').strip()
    if not query:
        return app_ctx.jsonify({'error': 'Query parameter "q" is required'}), 400

    needle = query.lower()
    try:
        results = []
        seen_folders = set()
        if app_ctx.db is not None:
            for student in students_repo.list_students(app_ctx.db):
                if needle not in str(student.get('displayName', '')).lower():
                    continue
                folder_id = student.get('driveFolderId') or ''
                if folder_id:
                    seen_folders.add(folder_id)
                results.append({
                    'id': student['id'],
                    'name': student.get('displayName', ''),
                    'subject': student.get('subject', ''),
                    'url': folder_url(folder_id) if folder_id else '',
                    'driveFolderId': folder_id or None,
                    'source': 'firestore',
                })
        for folder in app_ctx.drive_service.find_student_folders(query):
            if folder['id'] in seen_folders:
                continue
            results.append({
                'id': folder['id'],
                'name': folder.get('name', ''),
                'subject': folder.get('subject', ''),
                'url': folder.get('url', ''),
                'driveFolderId': folder['id'],
                'source': 'drive',
            })
        return app_ctx.jsonify({'success': True, 'students': results, 'count': len(results)})
    except Exception as e:
        app_ctx.logger.error(f"Error searching students for '{query}': {e}")
        return app_ctx.jsonify({'success': False, 'students': [], 'error': 'Failed to search students'}), 500


def list_student_files(app_ctx, request, student_id):
    limit = parse_int_arg(request.args.get('limit'), default=None, minimum=1, maximum=500)
    offset = parse_int_arg(request.args.get('offset'), default=0, minimum=0)
    force_refresh = is_truthy_arg(request.args.get('refresh'))
    requested_type = str(request.args.get('idType', '') or '').strip().lower() or None

    try:
        resolved = resolve_student_folder(app_ctx, student_id, requested_type)
    except StudentNotFoundError as e:
        return _error(app_ctx, e, 404)
    except AppError as e:
        return _error(app_ctx, e, 400)
    except Exception as e:
        app_ctx.logger.error(f"Error resolving student {student_id}: {e}")
        return _error(app_ctx, e, 500)

    try:
        all_files = app_ctx.drive_service.list_files_in_folder(resolved['folderId'])
        base = {
            'success': True,
            'fromCache': False,
            'studentName': resolved['studentName'],
            'idType': resolved['idType'],
        }
        metadata_key = resolved['metadataKey']

        if not force_refresh and app_ctx.db is not None:
            cached_entries = cache_service.get_file_metadata(app_ctx.db, metadata_key, logger=app_ctx.logger)
            if cached_entries:
                enriched = _enrich(all_files, cached_entries)
                is_fresh = cache_service.is_file_metadata_fresh(app_ctx.db, metadata_key, CACHE_FRESH_HOURS)
                if not is_fresh:
                    app_ctx.trigger_background_sync(metadata_key)
                files, has_more = _page(enriched, limit, offset)
                return app_ctx.jsonify({
                    **base,
                    'files': files,
                    'count': len(files),
                    'totalCount': len(enriched),
                    'hasMore': has_more,
                    'cacheEnriched': True,
                    'cacheFresh': is_fresh,
                })

        if app_ctx.db is not None:
            app_ctx.trigger_background_sync(metadata_key)
        files, has_more = _page(all_files, limit, offset)
        return app_ctx.jsonify({
            **base,
            'files': files,
            'count': len(files),
            'totalCount': len(all_files),
            'hasMore': has_more,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error listing files for {student_id}: {e}")
        return _error(app_ctx, e, 500)


def get_student_overview(app_ctx, request, student_id):
    requested_type = str(request.args.get('idType', '') or '').strip().lower() or None
    try:
        resolved = resolve_student_folder(app_ctx, student_id, requested_type)
    except StudentNotFoundError as e:
        return _error(app_ctx, e, 404)
    except AppError as e:
        return _error(app_ctx, e, 400)
    except Exception as e:
        app_ctx.logger.error(f"Error resolving student {student_id}: {e}")
        return _error(app_ctx, e, 500)

    try:
        overview = app_ctx.drive_service.get_student_overview(resolved['folderId'])
        return app_ctx.jsonify({'success': True, 'overview': overview, 'studentName': resolved['studentName']})
    except Exception as e:
        app_ctx.logger.error(f"Error getting student overview for {student_id}: {e}")
        return app_ctx.jsonify({'success': False, 'error': 'Failed to get student overview'}), 500


def get_share_link(app_ctx, request, student_id):
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'success': False, 'message': 'Student not found'}), 404
        folder_id = student.get('driveFolderId')
        return app_ctx.jsonify({
            'success': True,
            'student': {
                'id': student['id'],
                'displayName': student.get('displayName', ''),
                'subject': student.get('subject'),
                'driveFolderId': folder_id,
            },
            'shareableUrl': f"{app_ctx.BASE_URL}/student/{student_id}",
            'directDriveUrl': f"https://drive.google.com/drive/folders/{folder_id}" if folder_id else None,
            'studentName': student.get('displayName', ''),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error generating share link for {student_id}: {e}")
        return app_ctx.jsonify({'success': False, 'message': 'Failed to generate share link'}), 500


# --- key concepts ---

def list_file_concepts(app_ctx, request, student_id, file_id):
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        return app_ctx.jsonify({'success': True, 'concepts': concept_service.list_concepts(app_ctx.db, file_id)})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching concepts for file {file_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch concepts'}), 500


def create_file_concept(app_ctx, request, student_id, file_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    term = str(payload.get('term', '') or '').strip()
    explanation = str(payload.get('explanation', '') or '').strip()
    if not term or not explanation:
        return app_ctx.jsonify({'error': 'Term and explanation are required'}), 400
    try:
        concept = concept_service.create_concept(app_ctx.db, file_id, term, explanation, payload.get('example'))
        return app_ctx.jsonify({'success': True, 'concept': concept}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating concept for file {file_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to create concept'}), 500


def _concept_for_file(app_ctx, concept_id, file_id):
    concept = concepts_repo.get_concept(app_ctx.db, concept_id)
    if concept is None or concept.get('driveFileId') != file_id:
        return None
    return concept


def update_file_concept(app_ctx, request, student_id, file_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    concept_id = str(payload.get('conceptId', '') or '').strip()
    if not concept_id:
        return app_ctx.jsonify({'error': 'Concept ID is required'}), 400
    try:
        concept = _concept_for_file(app_ctx, concept_id, file_id)
        if concept is None:
            return app_ctx.jsonify({'error': 'Concept not found'}), 404
        updated = concept_service.update_concept(app_ctx.db, concept, payload)
        return app_ctx.jsonify({'success': True, 'concept': updated})
    except Exception as e:
        app_ctx.logger.error(f"Error updating concept {concept_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to update concept'}), 500


def delete_file_concept(app_ctx, request, student_id, file_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    concept_id = str(request.args.get('conceptId') or json_body(request).get('conceptId', '') or '').strip()
    if not concept_id:
        return app_ctx.jsonify({'error': 'Concept ID is required'}), 400
    try:
        if _concept_for_file(app_ctx, concept_id, file_id) is None:
            return app_ctx.jsonify({'error': 'Concept not found'}), 404
        concept_service.delete_concept(app_ctx.db, concept_id)
        return app_ctx.jsonify({'success': True, 'message': 'Concept deleted successfully'})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting concept {concept_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to delete concept'}), 500
