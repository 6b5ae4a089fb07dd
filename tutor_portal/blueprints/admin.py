from flask import Blueprint, request

from tutor_portal.services import admin_api_service

admin_bp = Blueprint('admin_api', __name__)


@admin_bp.route('/api/admin/audit', methods=['GET'])
def get_audit_log():
    from tutor_portal import runtime

    return admin_api_service.get_audit_log(runtime, request)


@admin_bp.route('/api/admin/stats', methods=['GET'])
def get_stats():
    from tutor_portal import runtime

    return admin_api_service.get_stats(runtime, request)


@admin_bp.route('/api/admin/stats/detailed', methods=['GET'])
def get_detailed_stats():
    from tutor_portal import runtime

    return admin_api_service.get_detailed_stats(runtime, request)


@admin_bp.route('/api/admin/clear-cache', methods=['POST'])
def clear_cache():
    from tutor_portal import runtime

    return admin_api_service.clear_cache(runtime, request)


@admin_bp.route('/api/admin/reanalyze', methods=['GET'])
def get_reanalyze_status():
    from tutor_portal import runtime

    return admin_api_service.get_reanalyze_status(runtime, request)


@admin_bp.route('/api/admin/reanalyze', methods=['POST'])
def run_reanalyze():
    from tutor_portal import runtime

    return admin_api_service.run_reanalyze(runtime, request)


@admin_bp.route('/api/admin/sync', methods=['GET'])
def get_sync_status():
    from tutor_portal import runtime

    return admin_api_service.get_sync_status(runtime, request)


@admin_bp.route('/api/admin/sync', methods=['POST'])
def run_sync():
    from tutor_portal import runtime

    return admin_api_service.run_sync(runtime, request)


@admin_bp.route('/api/admin/drive-data', methods=['GET'])
def get_drive_data():
    from tutor_portal import runtime

    return admin_api_service.get_drive_data(runtime, request)
