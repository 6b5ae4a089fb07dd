"""Firestore-backed cache for Drive listings and per-file AI metadata.

``driveCache`` holds TTL entries keyed by a string id; ``fileMetadata`` holds
one document per Drive file and is what the portals read. Freshness is just
"now minus the newest ``updatedAt``" compared with a fixed number of hours.
"""

from google.api_core import exceptions as google_exceptions
from firebase_admin import firestore

from tutor_portal.repositories import drive_cache_repo, file_metadata_repo
from tutor_portal.services.time_utils import is_expired, is_newer_than, iso_in, now_iso

CLEANUP_LIMIT = 100
SYNC_STATUS_VERSION = '1.0'


def get_cached_data(db, key, logger=None):
    snapshot = drive_cache_repo.get_doc(db, key)
    if not snapshot.exists:
        return None
    entry = snapshot.to_dict() or {}
    if is_expired(entry.get('expiresAt')):
        try:
            drive_cache_repo.delete_doc(db, key)
        except Exception as e:
            if logger is not None:
                logger.warning(f"Could not delete expired cache entry {key}: {e}")
        return None
    return entry.get('data')


def set_cached_data(db, key, entry_type, data, *, duration_hours, student_id=None, folder_id=None):
    entry = {
        'id': key,
        'type': entry_type,
        'data': data,
        'createdAt': now_iso(),
        'expiresAt': iso_in(duration_hours),
    }
    if student_id:
        entry['studentId'] = student_id
    if folder_id:
        entry['folderId'] = folder_id
    drive_cache_repo.set_doc(db, key, entry)
    return entry


def files_cache_key(folder_id):
    return f"files-{folder_id}"


def get_cached_files(db, folder_id, logger=None):
    return get_cached_data(db, files_cache_key(folder_id), logger=logger)


def set_cached_files(db, folder_id, files, *, duration_hours, student_id=None):
    return set_cached_data(
        db,
        files_cache_key(folder_id),
        'files',
        files,
        duration_hours=duration_hours,
        student_id=student_id,
        folder_id=folder_id,
    )


def _is_missing_index_error(exc):
    if isinstance(exc, google_exceptions.FailedPrecondition):
        return True
    return getattr(exc, 'code', None) == 9 or 'FAILED_PRECONDITION' in str(exc)


def get_file_metadata(db, student_id, logger=None):
    """Cached files for one student, newest ``modifiedTime`` first."""
    try:
        return file_metadata_repo.list_for_student(
            db,
            student_id,
            order_by='modifiedTime',
            direction=firestore.Query.DESCENDING,
        )
    except Exception as e:
        if not _is_missing_index_error(e):
            raise
        if logger is not None:
            logger.info(f"fileMetadata index missing for ordered query, sorting in memory: {e}")
    entries = file_metadata_repo.list_for_student(db, student_id)
    entries.sort(key=lambda entry: str(entry.get('modifiedTime') or ''), reverse=True)
    return entries


def set_file_metadata(db, entries):
    stamp = now_iso()
    prepared = []
    for entry in entries:
        prepared.append({**entry, 'updatedAt': entry.get('updatedAt') or stamp})
    return file_metadata_repo.write_entries(db, prepared)


def is_file_metadata_fresh(db, student_id, max_age_hours=6):
    entries = file_metadata_repo.list_for_student(db, student_id)
    if not entries:
        return False
    if any(not entry.get('aiAnalyzedAt') for entry in entries):
        return False
    newest = max(str(entry.get('updatedAt') or '') for entry in entries)
    return is_newer_than(newest, max_age_hours)


def invalidate_cache(db, pattern=None):
    """Drop cache entries by key prefix; ``ai-analysis`` and ``student-<id>`` also reset AI stamps."""
    removed = 0
    for doc in list(drive_cache_repo.stream_entries(db)):
        if pattern is None or str(doc.id).startswith(pattern):
            doc.reference.delete()
            removed += 1

    reset = 0
    if pattern == 'ai-analysis' or (pattern or '').startswith('student-'):
        target_student = pattern[len('student-'):] if pattern.startswith('student-') else None
        file_ids = [
            entry['id']
            for entry in file_metadata_repo.list_all(db)
            if target_student is None or entry.get('studentId') == target_student
        ]
        reset = file_metadata_repo.update_entries(db, file_ids, {'aiAnalyzedAt': None})
    return {'cacheEntriesRemoved': removed, 'analysesReset': reset}


def cleanup_expired_cache(db, logger=None):
    expired = drive_cache_repo.expired_entries(db, now_iso(), CLEANUP_LIMIT)
    for doc in expired:
        doc.reference.delete()
    if expired and logger is not None:
        logger.info(f"Removed {len(expired)} expired cache entries")
    return len(expired)


def get_cache_stats(db):
    total = 0
    expired = 0
    by_type = {}
    for doc in drive_cache_repo.stream_entries(db):
        entry = doc.to_dict() or {}
        total += 1
        if is_expired(entry.get('expiresAt')):
            expired += 1
        entry_type = entry.get('type') or 'unknown'
        by_type[entry_type] = by_type.get(entry_type, 0) + 1
    return {'totalEntries': total, 'expiredEntries': expired, 'byType': by_type}


def get_sync_status(db):
    status = drive_cache_repo.get_sync_status(db) or {}
    return {
        'lastFullSync': status.get('lastFullSync'),
        'isRunning': bool(status.get('isRunning', False)),
        'version': status.get('version', SYNC_STATUS_VERSION),
    }


def set_sync_status(db, **fields):
    payload = {'version': SYNC_STATUS_VERSION, **fields}
    drive_cache_repo.set_sync_status(db, payload)
    return payload
