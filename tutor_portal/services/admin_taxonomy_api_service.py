"""Business logic handlers for the subject/topic taxonomy."""

from tutor_portal.repositories import subjects_repo
from tutor_portal.services import security_service
from tutor_portal.services.normalization import slugify
from tutor_portal.services.request_utils import json_body
from tutor_portal.services.time_utils import now_iso

DEFAULT_SUBJECT_COLOR = '#3B82F6'
DEFAULT_SUBJECT_ICON = 'BookOpen'
SUBJECT_FIELDS = ('name', 'description', 'color', 'icon', 'sortOrder')
TOPIC_FIELDS = ('name', 'description', 'sortOrder')


def _editable_updates(payload, fields):
    updates = {}
    for field in fields:
        if field not in payload:
            continue
        value = payload[field]
        if field == 'sortOrder':
            try:
                updates[field] = int(value)
            except (TypeError, ValueError):
                continue
        else:
            updates[field] = security_service.sanitize_input(value)
    return updates


def list_subjects(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        subjects = subjects_repo.list_subjects(app_ctx.db)
        for subject in subjects:
            subject['topics'] = subjects_repo.list_topics(app_ctx.db, subject['id'])
        return app_ctx.jsonify({'success': True, 'subjects': subjects})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching subjects: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch subjects'}), 500


def create_subject(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    name = security_service.sanitize_input(payload.get('name', ''))
    subject_id = slugify(name)
    if not name or not subject_id:
        return app_ctx.jsonify({'error': 'Subject name is required'}), 400
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is not None:
            return app_ctx.jsonify({'error': 'Subject already exists'}), 409
        stamp = now_iso()
        subjects_repo.subject_doc_ref(app_ctx.db, subject_id).set({
            'name': name,
            'description': security_service.sanitize_input(payload.get('description', '')),
            'color': security_service.sanitize_input(payload.get('color', '')) or DEFAULT_SUBJECT_COLOR,
            'icon': security_service.sanitize_input(payload.get('icon', '')) or DEFAULT_SUBJECT_ICON,
            'sortOrder': len(subjects_repo.list_subjects(app_ctx.db)),
            'createdAt': stamp,
            'updatedAt': stamp,
        })
        return app_ctx.jsonify({'success': True, 'subjectId': subject_id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating subject: {e}")
        return app_ctx.jsonify({'error': 'Failed to create subject'}), 500


def update_subject(app_ctx, request, subject_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    updates = _editable_updates(json_body(request), SUBJECT_FIELDS)
    if not updates:
        return app_ctx.jsonify({'error': 'No valid fields to update'}), 400
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is None:
            return app_ctx.jsonify({'error': 'Subject not found'}), 404
        updates['updatedAt'] = now_iso()
        subjects_repo.subject_doc_ref(app_ctx.db, subject_id).update(updates)
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error updating subject {subject_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to update subject'}), 500


def delete_subject(app_ctx, request, subject_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is None:
            return app_ctx.jsonify({'error': 'Subject not found'}), 404
        removed_topics = subjects_repo.delete_subject(app_ctx.db, subject_id)
        return app_ctx.jsonify({'success': True, 'topicsDeleted': removed_topics})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting subject {subject_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to delete subject'}), 500


# --- topics ---

def list_topics(app_ctx, request, subject_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is None:
            return app_ctx.jsonify({'error': 'Subject not found'}), 404
        return app_ctx.jsonify({'success': True, 'topics': subjects_repo.list_topics(app_ctx.db, subject_id)})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching topics for {subject_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch topics'}), 500


def create_topic(app_ctx, request, subject_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    name = security_service.sanitize_input(payload.get('name', ''))
    if not name:
        return app_ctx.jsonify({'error': 'Topic name is required'}), 400
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is None:
            return app_ctx.jsonify({'error': 'Subject not found'}), 404
        stamp = now_iso()
        ref = subjects_repo.topics_collection(app_ctx.db, subject_id).document()
        ref.set({
            'name': name,
            'description': security_service.sanitize_input(payload.get('description', '')),
            'sortOrder': len(subjects_repo.list_topics(app_ctx.db, subject_id)),
            'createdAt': stamp,
            'updatedAt': stamp,
        })
        return app_ctx.jsonify({'success': True, 'topicId': ref.id}), 201
    except Exception as e:
        app_ctx.logger.error(f"Error creating topic for {subject_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to create topic'}), 500


def update_topic(app_ctx, request, subject_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    topic_id = str(payload.get('topicId', '') or '').strip()
    if not topic_id:
        return app_ctx.jsonify({'error': 'Topic ID is required'}), 400
    updates = _editable_updates(payload, TOPIC_FIELDS)
    if not updates:
        return app_ctx.jsonify({'error': 'No valid fields to update'}), 400
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is None:
            return app_ctx.jsonify({'error': 'Subject not found'}), 404
        ref = subjects_repo.topic_doc_ref(app_ctx.db, subject_id, topic_id)
        if not ref.get().exists:
            return app_ctx.jsonify({'error': 'Topic not found'}), 404
        updates['updatedAt'] = now_iso()
        ref.update(updates)
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error updating topic {topic_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to update topic'}), 500


def delete_topic(app_ctx, request, subject_id):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    topic_id = str(request.args.get('topicId') or json_body(request).get('topicId', '') or '').strip()
    if not topic_id:
        return app_ctx.jsonify({'error': 'Topic ID is required'}), 400
    try:
        if subjects_repo.get_subject(app_ctx.db, subject_id) is None:
            return app_ctx.jsonify({'error': 'Subject not found'}), 404
        subjects_repo.topic_doc_ref(app_ctx.db, subject_id, topic_id).delete()
        return app_ctx.jsonify({'success': True})
    except Exception as e:
        app_ctx.logger.error(f"Error deleting topic {topic_id}: {e}")
        return app_ctx.jsonify({'error': 'Failed to delete topic'}), 500
