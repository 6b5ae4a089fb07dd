from flask import Blueprint, request

from tutor_portal.services import admin_students_api_service

admin_students_bp = Blueprint('admin_students_api', __name__)


@admin_students_bp.route('/api/admin/students', methods=['GET'])
def list_students():
    from tutor_portal import runtime

    return admin_students_api_service.list_students(runtime, request)


@admin_students_bp.route('/api/admin/students', methods=['POST'])
def create_student():
    from tutor_portal import runtime

    return admin_students_api_service.create_student(runtime, request)


@admin_students_bp.route('/api/admin/students/adopt', methods=['POST'])
def adopt_student():
    from tutor_portal import runtime

    return admin_students_api_service.adopt_student(runtime, request)


@admin_students_bp.route('/api/admin/students/<student_id>', methods=['GET'])
def get_student(student_id):
    from tutor_portal import runtime

    return admin_students_api_service.get_student(runtime, request, student_id)


@admin_students_bp.route('/api/admin/students/<student_id>', methods=['PATCH'])
def update_student(student_id):
    from tutor_portal import runtime

    return admin_students_api_service.update_student(runtime, request, student_id)


@admin_students_bp.route('/api/admin/students/<student_id>', methods=['DELETE'])
def delete_student(student_id):
    from tutor_portal import runtime

    return admin_students_api_service.delete_student(runtime, request, student_id)


@admin_students_bp.route('/api/admin/students/<student_id>/pin-reset', methods=['POST'])
def reset_pin(student_id):
    from tutor_portal import runtime

    return admin_students_api_service.reset_pin(runtime, request, student_id)
