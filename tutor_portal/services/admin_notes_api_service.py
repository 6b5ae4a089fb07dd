"""Business logic handlers for teacher notes, bulk file actions and key concepts."""

from tutor_portal.repositories import concepts_repo, file_metadata_repo, notes_repo, students_repo
from tutor_portal.repositories.query_utils import FIRESTORE_BATCH_LIMIT
from tutor_portal.services import audit_service, concept_service, normalization, security_service
from tutor_portal.services.request_utils import json_body, paginate, parse_int_arg
from tutor_portal.services.sync_service import AI_FIELDS
from tutor_portal.services.time_utils import now_iso

NOTE_REQUIRED_FIELDS = ('studentId', 'contentMd', 'subject', 'level', 'topic')
TAG_FIELDS = ('subject', 'level', 'topic')
BULK_ACTIONS = ('reanalyze', 'delete', 'updateMetadata')
CANONICALIZERS = {
    'subject': normalization.canon_subject,
    'level': normalization.canon_level,
    'topic': normalization.canon_topic,
}


def _with_student(note, students_by_id):
    student = students_by_id.get(note.get('studentId')) or {}
    return {**note, 'student': {'id': note.get('studentId'), 'displayName': student.get('displayName', '')}}


def _regenerate_student_tags(db, student_id):
    notes_repo.delete_tags_for_student(db, student_id)
    tags = []
    for note in notes_repo.list_notes(db, student_id):
        tags.extend(normalization.generate_tags(note.get('subject'), note.get('level'), note.get('topic')))
    unique = {(tag['key'], tag['value']): tag for tag in tags}
    return notes_repo.upsert_tags(db, student_id, list(unique.values()))


def list_notes(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    args = request.args
    filters = {field: CANONICALIZERS[field](args[field]) for field in TAG_FIELDS if args.get(field)}
    student_id = str(args.get('studentId', '') or '').strip()
    search = security_service.sanitize_input(args.get('search', '')).lower()
    page = parse_int_arg(args.get('page'), default=1, minimum=1)
    limit = parse_int_arg(args.get('limit'), default=50, minimum=1, maximum=200)
    try:
        notes = notes_repo.list_notes(app_ctx.db, student_id or None)
        notes = [note for note in notes if all(note.get(field) == value for field, value in filters.items())]
        if search:
            notes = [
                note for note in notes
                if any(search in str(note.get(field) or '').lower() for field in ('contentMd',) + TAG_FIELDS)
            ]
        notes.sort(key=lambda note: str(note.get('updatedAt') or ''), reverse=True)
        page_items, pagination = paginate(notes, page, limit)
        students_by_id = {student['id']: student for student in students_repo.list_students(app_ctx.db)}
        return app_ctx.jsonify({
            'success': True,
            'notes': [_with_student(note, students_by_id) for note in page_items],
            'pagination': pagination,
        })
    except Exception as e:
        app_ctx.logger.error(f"Error fetching notes: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch notes'}), 500


def create_note(app_ctx, request):
    claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    missing = [field for field in NOTE_REQUIRED_FIELDS if not str(payload.get(field, '') or '').strip()]
    if missing:
        return app_ctx.jsonify({'error': 'Invalid input data', 'missing': missing}), 400

    student_id = str(payload['studentId']).strip()
    try:
        student = students_repo.get_student(app_ctx.db, student_id)
        if student is None:
            return app_ctx.jsonify({'error': 'Student not found'}), 404

        stamp = now_iso()
        note = {
            'studentId': student_id,
            'contentMd': security_service.sanitize_input(payload['contentMd']),
            'subject': normalization.canon_subject(payload['subject']),
            'level': normalization.canon_level(payload['level']),
            'topic': normalization.canon_topic(payload['topic']),
            'driveFileId': str(payload.get('driveFileId') or '').strip() or None,
            'driveFileName': str(payload.get('driveFileName') or '').strip() or None,
            'createdAt': stamp,
            'updatedAt': stamp,
        }
        ref = notes_repo.new_note_doc_ref(app_ctx.db)
        ref.set(note)
        notes_repo.upsert_tags(
            app_ctx.db,
            student_id,
            normalization.generate_tags(note['subject'], note['level'], note['topic']),
        )
        app_ctx.log_audit(
            audit_service.teacher_actor(claims.get('email')),
            'note_created',
            request=request,
            student_id=student_id,
            metadata={
                'noteId': ref.id,
                'studentName': student.get('displayName', ''),
                'subject': note['subject'],
                'level': note['level'],
                'topic': note['topic'],
            },
        )
        return app_ctx.jsonify({'success': True, 'note': {**note, 'id': ref.id}}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating note: {e}")
        return app_ctx.jsonify({'error': 'Failed to create note'}), 500


def get_note(app_ctx, request, note_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        note = notes_repo.get_note(app_ctx.db, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        student = students_repo.get_student(app_ctx.db, note.get('studentId', '')) if note.get('studentId') else None
        return app_ctx.jsonify({'success': True, 'note': _with_student(note, {note.get('studentId'): student or {}})})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch note'}), 500


def update_note(app_ctx, request, note_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    updates = {}
    if str(payload.get('contentMd', '') or '').strip():
        updates['contentMd'] = security_service.sanitize_input(payload['contentMd'])
    for field in TAG_FIELDS:
        if str(payload.get(field, '') or '').strip():
            updates[field] = CANONICALIZERS[field](payload[field])
    for field in ('driveFileId', 'driveFileName'):
        if field in payload:
            updates[field] = str(payload.get(field) or '').strip() or None
    if not updates:
        return app_ctx.jsonify({'error': 'No valid fields to update'}), 400

    try:
        note = notes_repo.get_note(app_ctx.db, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        updates['updatedAt'] = now_iso()
        notes_repo.note_doc_ref(app_ctx.db, note_id).update(updates)
        if any(field in updates for field in TAG_FIELDS) and note.get('studentId'):
            _regenerate_student_tags(app_ctx.db, note['studentId'])
        return app_ctx.jsonify({'success': True, 'note': {**note, **updates}})
    except Exception as e:
        app_ctx.logger.error(f"Error updating note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to update note'}), 500


def delete_note(app_ctx, request, note_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        note = notes_repo.get_note(app_ctx.db, note_id)
        if note is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        notes_repo.note_doc_ref(app_ctx.db, note_id).delete()
        if note.get('studentId'):
            _regenerate_student_tags(app_ctx.db, note['studentId'])
        return app_ctx.jsonify({'success': True, 'message': 'Note deleted successfully'})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to delete note'}), 500


# --- bulk actions on fileMetadata ---

def _bulk_reanalyze(db, file_ids):
    return file_metadata_repo.update_entries(db, file_ids, {'aiAnalyzedAt': None, 'updatedAt': now_iso()})


class BulkActionError(Exception):
    def __init__(self, processed, cause):
        super().__init__(str(cause))
        self.processed = processed


def _bulk_delete(db, file_ids):
    """Delete entries and their key concepts, committing whenever a batch is full.

    A file counts as processed once the batch holding its metadata delete has
    committed; its concepts are always staged before it.
    """
    processed = 0
    staged = 0
    writes = 0
    batch = db.batch()
    try:
        for file_id in file_ids:
            refs = [concepts_repo.doc_ref(db, concept['id']) for concept in concepts_repo.list_for_file(db, file_id)]
            refs.append(file_metadata_repo.doc_ref(db, file_id))
            for ref in refs:
                if writes == FIRESTORE_BATCH_LIMIT:
                    batch.commit()
                    processed += staged
                    staged = 0
                    writes = 0
                    batch = db.batch()
                batch.delete(ref)
                writes += 1
            staged += 1
        if writes:
            batch.commit()
            processed += staged
    except Exception as e:
        raise BulkActionError(processed, e) from e
    return processed


def _bulk_update_metadata(db, file_ids, metadata):
    updates = {}
    for field, value in metadata.items():
        if field in CANONICALIZERS:
            if str(value or '').strip():
                updates[field] = CANONICALIZERS[field](value)
        elif field in AI_FIELDS:
            updates[field] = value
    if not updates:
        raise ValueError('No editable metadata fields supplied')
    updates['updatedAt'] = now_iso()
    return file_metadata_repo.update_entries(db, file_ids, updates)


def bulk_notes(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    action = payload.get('action')
    note_ids = payload.get('noteIds')
    if not action or not isinstance(note_ids, list) or not note_ids:
        return app_ctx.jsonify({'error': 'Action and noteIds array are required'}), 400
    if action not in BULK_ACTIONS:
        return app_ctx.jsonify({'error': 'Invalid action. Use "reanalyze", "delete", or "updateMetadata"'}), 400
    metadata = payload.get('metadata')
    if action == 'updateMetadata' and not isinstance(metadata, dict):
        return app_ctx.jsonify({'error': 'Metadata is required for updateMetadata action'}), 400

    file_ids = [str(note_id).strip() for note_id in note_ids if str(note_id or '').strip()]
    existing = []
    error_details = []
    for file_id in file_ids:
        if file_metadata_repo.get_entry(app_ctx.db, file_id) is None:
            error_details.append(f"Note {file_id} not found")
        else:
            existing.append(file_id)

    processed = 0
    try:
        if existing:
            if action == 'reanalyze':
                processed = _bulk_reanalyze(app_ctx.db, existing)
            elif action == 'delete':
                processed = _bulk_delete(app_ctx.db, existing)
            else:
                processed = _bulk_update_metadata(app_ctx.db, existing, metadata)
    except ValueError as e:
        return app_ctx.jsonify({'error': str(e)}), 400
    except BulkActionError as e:
        processed = e.processed
        app_ctx.logger.error(f"Bulk {action} stopped after {processed} files: {e}")
        error_details.append(f"Bulk {action} failed: {e}")
    except Exception as e:
        app_ctx.logger.error(f"Bulk {action} failed: {e}")
        error_details.append(f"Bulk {action} failed: {e}")

    errors = len(file_ids) - processed
    return app_ctx.jsonify({
        'success': errors == 0,
        'processed': processed,
        'errors': errors,
        'errorDetails': error_details,
    })


def reanalyze_note(app_ctx, request, file_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        entry = file_metadata_repo.get_entry(app_ctx.db, file_id)
        if entry is None:
            return app_ctx.jsonify({'error': 'Note not found'}), 404
        analysis = app_ctx.analyze_document(entry.get('name', ''), file_id=file_id, force=True)
        stamp = now_iso()
        updates = {field: analysis.get(field) for field in AI_FIELDS if field in analysis}
        updates.update({'aiAnalyzedAt': stamp, 'updatedAt': stamp})
        file_metadata_repo.doc_ref(app_ctx.db, file_id).update(updates)
        return app_ctx.jsonify({'success': True, 'id': file_id, 'analysis': updates})
    except Exception as e:
        app_ctx.logger.error(f"Error re-analysing {file_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to trigger re-analysis'}), 500


# --- key concepts by note ---

def _note_drive_file(app_ctx, note_id):
    note = notes_repo.get_note(app_ctx.db, note_id)
    if note is None or not note.get('driveFileId'):
        return None
    return note['driveFileId']


def list_note_concepts(app_ctx, request, note_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        drive_file_id = _note_drive_file(app_ctx, note_id)
        if drive_file_id is None:
            return app_ctx.jsonify({'error': 'Note not found or has no Drive file ID'}), 404
        return app_ctx.jsonify({'success': True, 'concepts': concept_service.list_concepts(app_ctx.db, drive_file_id)})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching concepts for note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch concepts'}), 500


def create_note_concept(app_ctx, request, note_id):
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
        drive_file_id = _note_drive_file(app_ctx, note_id)
        if drive_file_id is None:
            return app_ctx.jsonify({'error': 'Note not found or has no Drive file ID'}), 404
        concept = concept_service.create_concept(app_ctx.db, drive_file_id, term, explanation, payload.get('example'))
        return app_ctx.jsonify({'success': True, 'concept': concept}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating concept for note {note_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to create concept'}), 500


def delete_note_concept(app_ctx, request, note_id, concept_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        drive_file_id = _note_drive_file(app_ctx, note_id)
        if drive_file_id is None:
            return app_ctx.jsonify({'error': 'Note not found or has no Drive file ID'}), 404
        concept = concepts_repo.get_concept(app_ctx.db, concept_id)
        if concept is None or concept.get('driveFileId') != drive_file_id:
            return app_ctx.jsonify({'error': 'Key concept not found'}), 404
        concept_service.delete_concept(app_ctx.db, concept_id)
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting concept {concept_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to delete key concept'}), 500


def get_concept(app_ctx, request, concept_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        concept = concepts_repo.get_concept(app_ctx.db, concept_id)
        if concept is None:
            return app_ctx.jsonify({'error': 'Key concept not found'}), 404
        return app_ctx.jsonify({'success': True, 'concept': concept_service.serialize_concept(concept)})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching concept {concept_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch concept'}), 500
