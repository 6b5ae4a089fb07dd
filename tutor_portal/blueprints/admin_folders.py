from flask import Blueprint, request

from tutor_portal.services import admin_folders_api_service

admin_folders_bp = Blueprint('admin_folders_api', __name__)


@admin_folders_bp.route('/api/admin/folders', methods=['GET'])
def list_folders():
    from tutor_portal import runtime

    return admin_folders_api_service.list_folders(runtime, request)


@admin_folders_bp.route('/api/admin/folders', methods=['POST'])
def link_folder():
    from tutor_portal import runtime

    return admin_folders_api_service.link_folder(runtime, request)


@admin_folders_bp.route('/api/admin/folders/sync', methods=['POST'])
def sync_folders():
    from tutor_portal import runtime

    return admin_folders_api_service.sync_folders(runtime, request)


@admin_folders_bp.route('/api/admin/folders/<folder_id>/link', methods=['POST'])
def link_folder_by_id(folder_id):
    from tutor_portal import runtime

    return admin_folders_api_service.link_folder_by_id(runtime, request, folder_id)


@admin_folders_bp.route('/api/admin/folders/<folder_id>/confirm', methods=['POST'])
def confirm_folder(folder_id):
    from tutor_portal import runtime

    return admin_folders_api_service.confirm_folder(runtime, request, folder_id)


@admin_folders_bp.route('/api/admin/folders/<folder_id>/reject', methods=['POST'])
def reject_folder(folder_id):
    from tutor_portal import runtime

    return admin_folders_api_service.reject_folder(runtime, request, folder_id)
