from flask import Blueprint, request

from tutor_portal.services import admin_notes_api_service

admin_notes_bp = Blueprint('admin_notes_api', __name__)


@admin_notes_bp.route('/api/admin/notes', methods=['GET'])
def list_notes():
    from tutor_portal import runtime

    return admin_notes_api_service.list_notes(runtime, request)


@admin_notes_bp.route('/api/admin/notes', methods=['POST'])
def create_note():
    from tutor_portal import runtime

    return admin_notes_api_service.create_note(runtime, request)


@admin_notes_bp.route('/api/admin/notes/bulk', methods=['POST'])
def bulk_notes():
    from tutor_portal import runtime

    return admin_notes_api_service.bulk_notes(runtime, request)


@admin_notes_bp.route('/api/admin/notes/<note_id>', methods=['GET'])
def get_note(note_id):
    from tutor_portal import runtime

    return admin_notes_api_service.get_note(runtime, request, note_id)


@admin_notes_bp.route('/api/admin/notes/<note_id>', methods=['PATCH'])
def update_note(note_id):
    from tutor_portal import runtime

    return admin_notes_api_service.update_note(runtime, request, note_id)


@admin_notes_bp.route('/api/admin/notes/<note_id>', methods=['DELETE'])
def delete_note(note_id):
    from tutor_portal import runtime

    return admin_notes_api_service.delete_note(runtime, request, note_id)


@admin_notes_bp.route('/api/admin/notes/<note_id>/reanalyze', methods=['POST'])
def reanalyze_note(note_id):
    from tutor_portal import runtime

    return admin_notes_api_service.reanalyze_note(runtime, request, note_id)


@admin_notes_bp.route('/api/admin/notes/<note_id>/concepts', methods=['GET'])
def list_note_concepts(note_id):
    from tutor_portal import runtime

    return admin_notes_api_service.list_note_concepts(runtime, request, note_id)


@admin_notes_bp.route('/api/admin/notes/<note_id>/concepts', methods=['POST'])
def create_note_concept(note_id):
    from tutor_portal import runtime

    return admin_notes_api_service.create_note_concept(runtime, request, note_id)


@admin_notes_bp.route('/api/admin/notes/<note_id>/concepts/<concept_id>', methods=['DELETE'])
def delete_note_concept(note_id, concept_id):
    from tutor_portal import runtime

    return admin_notes_api_service.delete_note_concept(runtime, request, note_id, concept_id)


@admin_notes_bp.route('/api/admin/concepts/<concept_id>', methods=['GET'])
def get_concept(concept_id):
    from tutor_portal import runtime

    return admin_notes_api_service.get_concept(runtime, request, concept_id)
