from flask import Blueprint, request

from tutor_portal.services import students_api_service

students_bp = Blueprint('students_api', __name__)


@students_bp.route('/api/students/search', methods=['GET'])
def search_students():
    from tutor_portal import runtime

    return students_api_service.search_students(runtime, request)


@students_bp.route('/api/students/<student_id>/files', methods=['GET'])
def list_student_files(student_id):
    from tutor_portal import runtime

    return students_api_service.list_student_files(runtime, request, student_id)


@students_bp.route('/api/students/<student_id>/overview', methods=['GET'])
def get_student_overview(student_id):
    from tutor_portal import runtime

    return students_api_service.get_student_overview(runtime, request, student_id)


@students_bp.route('/api/students/<student_id>/share', methods=['GET'])
def get_share_link(student_id):
    from tutor_portal import runtime

    return students_api_service.get_share_link(runtime, request, student_id)


@students_bp.route('/api/students/<student_id>/files/<file_id>/concepts', methods=['GET'])
def list_file_concepts(student_id, file_id):
    from tutor_portal import runtime

    return students_api_service.list_file_concepts(runtime, request, student_id, file_id)


@students_bp.route('/api/students/<student_id>/files/<file_id>/concepts', methods=['POST'])
def create_file_concept(student_id, file_id):
    from tutor_portal import runtime

    return students_api_service.create_file_concept(runtime, request, student_id, file_id)


@students_bp.route('/api/students/<student_id>/files/<file_id>/concepts', methods=['PATCH'])
def update_file_concept(student_id, file_id):
    from tutor_portal import runtime

    return students_api_service.update_file_concept(runtime, request, student_id, file_id)


@students_bp.route('/api/students/<student_id>/files/<file_id>/concepts', methods=['DELETE'])
def delete_file_concept(student_id, file_id):
    from tutor_portal import runtime

    return students_api_service.delete_file_concept(runtime, request, student_id, file_id)
