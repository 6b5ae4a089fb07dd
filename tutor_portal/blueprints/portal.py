from flask import Blueprint, request

from tutor_portal.services import auth_api_service

portal_bp = Blueprint('portal_api', __name__)


@portal_bp.route('/api/leerling/login', methods=['POST'])
def student_login():
    from tutor_portal import runtime

    return auth_api_service.student_login(runtime, request)


@portal_bp.route('/api/leerling/student/<student_id>', methods=['GET'])
def get_portal_student(student_id):
    from tutor_portal import runtime

    return auth_api_service.get_portal_student(runtime, request, student_id)
