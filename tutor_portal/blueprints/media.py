from flask import Blueprint, request

from tutor_portal.services import media_api_service

media_bp = Blueprint('media_api', __name__)


@media_bp.route('/api/thumbnail/<file_id>', methods=['GET'])
def get_thumbnail(file_id):
    from tutor_portal import runtime

    return media_api_service.get_thumbnail(runtime, request, file_id)


@media_bp.route('/api/placeholder/<file_id>', methods=['GET'])
def get_placeholder(file_id):
    from tutor_portal import runtime

    return media_api_service.get_placeholder(runtime, request, file_id)
