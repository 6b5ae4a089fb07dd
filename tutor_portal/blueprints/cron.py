from flask import Blueprint, request

from tutor_portal.services import cron_api_service

cron_bp = Blueprint('cron_api', __name__)


@cron_bp.route('/api/cron/sync-cache', methods=['GET'])
def sync_cache():
    from tutor_portal import runtime

    return cron_api_service.sync_cache(runtime, request)


@cron_bp.route('/api/cron/sync-folders', methods=['GET'])
def sync_folders():
    from tutor_portal import runtime

    return cron_api_service.sync_folders(runtime, request)


@cron_bp.route('/api/metadata/preload', methods=['POST'])
def preload_metadata():
    from tutor_portal import runtime

    return cron_api_service.preload_metadata(runtime, request)


@cron_bp.route('/api/metadata/status', methods=['GET'])
def metadata_status():
    from tutor_portal import runtime

    return cron_api_service.metadata_status(runtime, request)
