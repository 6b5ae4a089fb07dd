from flask import Blueprint, request

from tutor_portal.services import auth_api_service

auth_bp = Blueprint('auth_api', __name__)


@auth_bp.route('/api/auth/google', methods=['POST'])
def google_sign_in():
    from tutor_portal import runtime

    return auth_api_service.google_sign_in(runtime, request)


@auth_bp.route('/api/auth/me', methods=['GET'])
def get_current_user():
    from tutor_portal import runtime

    return auth_api_service.get_current_user(runtime, request)


@auth_bp.route('/api/auth/logout', methods=['POST'])
def logout():
    from tutor_portal import runtime

    return auth_api_service.logout(runtime, request)
