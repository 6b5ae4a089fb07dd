"""Business logic handlers for scheduled jobs and the Drive metadata preload."""

import hmac
import logging

from tutor_portal.services.time_utils import now_iso


def _bearer_matches(request, secret):
    header = str(request.headers.get('Authorization', '') or '')
    return hmac.compare_digest(header.encode('utf-8'), f"Bearer {secret}".encode('utf-8'))


def sync_cache(app_ctx, request):
    secret = app_ctx.CRON_SECRET
    if secret and not _bearer_matches(request, secret):
        return app_ctx.jsonify({'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        app_ctx.log_event(logging.INFO, 'cron_sync_cache_triggered')
        app_ctx.start_full_sync()
        return app_ctx.jsonify({
            'success': True,
            'message': 'Background sync started',
            'timestamp': now_iso(),
        })
    except Exception as e:
        app_ctx.logger.error(f"Cron sync-cache failed: {e}")
        return app_ctx.jsonify({'error': 'Cron job failed'}), 500


def sync_folders(app_ctx, request):
    secret = app_ctx.CRON_SECRET
    if not secret:
        app_ctx.logger.error('CRON_SECRET not configured')
        return app_ctx.jsonify({'success': False, 'error': 'Cron secret not configured'}), 500
    if not _bearer_matches(request, secret):
        return app_ctx.jsonify({'success': False, 'error': 'Unauthorized'}), 401
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        result = app_ctx.sync_drive_folders()
        app_ctx.log_event(
            logging.INFO,
            'cron_sync_folders_finished',
            linked=result.get('linked', 0),
            unlinked=result.get('unlinked', 0),
            total=result.get('total', 0),
        )
        return app_ctx.jsonify({**result, 'timestamp': now_iso()})
    except Exception as e:
        app_ctx.logger.error(f"Scheduled folder sync failed: {e}")
        return app_ctx.jsonify({'success': False, 'error': 'Sync failed', 'details': str(e)}), 500


def preload_metadata(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    try:
        result = app_ctx.drive_service.preload_metadata(app_ctx.analyze_document)
        if not result.get('success'):
            return app_ctx.jsonify({'success': False, 'message': result.get('message', '')}), 500
        return app_ctx.jsonify(result)
    except Exception as e:
        app_ctx.logger.error(f"Metadata preload failed: {e}")
        return app_ctx.jsonify({'success': False, 'message': str(e)}), 500


def metadata_status(app_ctx, request):
    try:
        cached = app_ctx.drive_service.get_cached_metadata()
        return app_ctx.jsonify({
            'success': True,
            'valid': cached is not None,
            'cached': cached is not None,
            'totalStudents': (cached or {}).get('totalStudents', 0),
            'totalFiles': (cached or {}).get('totalFiles', 0),
            'lastUpdated': (cached or {}).get('lastUpdated'),
        })
    except Exception as e:
        app_ctx.logger.error(f"Metadata status failed: {e}")
        return app_ctx.jsonify({'success': False, 'message': str(e)}), 500
