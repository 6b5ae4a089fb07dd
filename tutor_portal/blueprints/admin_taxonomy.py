from flask import Blueprint, request

from tutor_portal.services import admin_taxonomy_api_service

admin_taxonomy_bp = Blueprint('admin_taxonomy_api', __name__)


@admin_taxonomy_bp.route('/api/admin/subjects', methods=['GET'])
def list_subjects():
    from tutor_portal import runtime

    return admin_taxonomy_api_service.list_subjects(runtime, request)


@admin_taxonomy_bp.route('/api/admin/subjects', methods=['POST'])
def create_subject():
    from tutor_portal import runtime

    return admin_taxonomy_api_service.create_subject(runtime, request)


@admin_taxonomy_bp.route('/api/admin/subjects/<subject_id>', methods=['PUT'])
def update_subject(subject_id):
    from tutor_portal import runtime

    return admin_taxonomy_api_service.update_subject(runtime, request, subject_id)


@admin_taxonomy_bp.route('/api/admin/subjects/<subject_id>', methods=['DELETE'])
def delete_subject(subject_id):
    from tutor_portal import runtime

    return admin_taxonomy_api_service.delete_subject(runtime, request, subject_id)


@admin_taxonomy_bp.route('/api/admin/subjects/<subject_id>/topics', methods=['GET'])
def list_topics(subject_id):
    from tutor_portal import runtime

    return admin_taxonomy_api_service.list_topics(runtime, request, subject_id)


@admin_taxonomy_bp.route('/api/admin/subjects/<subject_id>/topics', methods=['POST'])
def create_topic(subject_id):
    from tutor_portal import runtime

    return admin_taxonomy_api_service.create_topic(runtime, request, subject_id)


@admin_taxonomy_bp.route('/api/admin/subjects/<subject_id>/topics', methods=['PUT'])
def update_topic(subject_id):
    from tutor_portal import runtime

    return admin_taxonomy_api_service.update_topic(runtime, request, subject_id)


@admin_taxonomy_bp.route('/api/admin/subjects/<subject_id>/topics', methods=['DELETE'])
def delete_topic(subject_id):
    from tutor_portal import runtime

    return admin_taxonomy_api_service.delete_topic(runtime, request, subject_id)
