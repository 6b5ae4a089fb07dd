"""Keeps ``fileMetadata`` in step with the students' Drive folders.

Only new or changed files are sent through AI analysis; everything else keeps
its previous metadata. A sync for one student can be started in a daemon
thread so the request that noticed stale data does not wait for it.
"""

import logging
import threading
import time

from tutor_portal.repositories import file_metadata_repo, students_repo
from tutor_portal.services import cache_service
from tutor_portal.services.errors import StudentNotFoundError
from tutor_portal.services.id_types import is_drive_folder_id
from tutor_portal.services.time_utils import now_iso, parse_iso

FRESH_MAX_AGE_HOURS = 6
SYNC_BATCH_SIZE = 5
SYNC_BATCH_DELAY_SECONDS = 1.0

AI_FIELDS = ('subject', 'topic', 'level', 'schoolYear', 'keywords', 'summary', 'summaryEn', 'topicEn', 'keywordsEn')


def _modified_after(drive_value, cached_value):
    drive_time = parse_iso(drive_value)
    cached_time = parse_iso(cached_value)
    if drive_time is None or cached_time is None:
        return drive_time is not None
    return drive_time > cached_time


def build_metadata_entry(student_id, folder_id, drive_file, analysis, existing, stamp):
    entry = {
        'id': drive_file['id'],
        'studentId': student_id,
        'folderId': folder_id or '',
        'name': drive_file.get('name', ''),
        'title': drive_file.get('title', ''),
        'modifiedTime': drive_file.get('modifiedTime', ''),
        'size': drive_file.get('size', 0) or 0,
        'thumbnailUrl': drive_file.get('thumbnailUrl', ''),
        'downloadUrl': drive_file.get('downloadUrl', ''),
        'viewUrl': drive_file.get('viewUrl', ''),
        'createdAt': (existing or {}).get('createdAt') or stamp,
        'updatedAt': stamp,
    }
    source = analysis or existing or {}
    for field in AI_FIELDS:
        if field in ('keywords', 'keywordsEn'):
            entry[field] = list(source.get(field) or [])
        else:
            entry[field] = source.get(field)
    entry['aiAnalyzedAt'] = stamp if analysis else (existing or {}).get('aiAnalyzedAt')
    return entry


class BackgroundSyncService:
    def __init__(self, app_ctx, batch_size=SYNC_BATCH_SIZE, batch_delay_seconds=SYNC_BATCH_DELAY_SECONDS, sleep_fn=time.sleep):
        self.app_ctx = app_ctx
        self.batch_size = batch_size
        self.batch_delay_seconds = batch_delay_seconds
        self.sleep_fn = sleep_fn
        self.last_sync_time = None
        self._running = False
        self._lock = threading.Lock()

    @property
    def is_running(self):
        with self._lock:
            return self._running

    def _begin(self):
        with self._lock:
            if self._running:
                return False
            self._running = True
            return True

    def _end(self):
        with self._lock:
            self._running = False

    def _students_with_folders(self):
        return [student for student in students_repo.list_students(self.app_ctx.db) if student.get('driveFolderId')]

    def resolve_student(self, student_id):
        """Find the student by Firestore id or by linked Drive folder id.

        A Drive folder nobody has claimed yet is synced under its own id.
        """
        db = self.app_ctx.db
        student = students_repo.get_student(db, student_id)
        if student is None:
            student = students_repo.find_by_drive_folder_id(db, student_id)
        if student is None and is_drive_folder_id(student_id):
            student = {
                'id': student_id,
                'displayName': self.app_ctx.drive_service.get_folder_name(student_id) or student_id,
                'driveFolderId': student_id,
            }
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    def sync_student_files(self, student, force_reanalyze=False):
        db = self.app_ctx.db
        student_id = student['id']
        folder_id = student.get('driveFolderId')
        if not folder_id:
            return {'files': 0, 'updated': 0, 'removed': 0, 'skipped': True}
        if not force_reanalyze and cache_service.is_file_metadata_fresh(db, student_id, FRESH_MAX_AGE_HOURS):
            return {'files': 0, 'updated': 0, 'removed': 0, 'skipped': True}

        current = {entry['id']: entry for entry in cache_service.get_file_metadata(db, student_id, logger=self.app_ctx.logger)}
        drive_files = self.app_ctx.drive_service.list_files_in_folder(folder_id)
        stamp = now_iso()
        entries = []
        updated = 0
        for drive_file in drive_files:
            existing = current.get(drive_file['id'])
            changed = existing is not None and _modified_after(drive_file.get('modifiedTime'), existing.get('modifiedTime'))
            needs_analysis = force_reanalyze or changed or existing is None or not existing.get('aiAnalyzedAt')
            analysis = None
            if needs_analysis:
                analysis = self.app_ctx.analyze_document(drive_file['name'], file_id=drive_file['id'], force=force_reanalyze or changed)
                updated += 1
            entries.append(build_metadata_entry(student_id, folder_id, drive_file, analysis, existing, stamp))

        if entries:
            cache_service.set_file_metadata(db, entries)

        drive_ids = {drive_file['id'] for drive_file in drive_files}
        gone = [file_id for file_id in current if file_id not in drive_ids]
        for file_id in gone:
            file_metadata_repo.doc_ref(db, file_id).delete()

        return {'files': len(drive_files), 'updated': updated, 'removed': len(gone), 'skipped': False}

    def _sync_many(self, students, force_reanalyze):
        totals = {'studentsProcessed': 0, 'filesSeen': 0, 'filesUpdated': 0, 'errors': []}
        for start in range(0, len(students), self.batch_size):
            for student in students[start:start + self.batch_size]:
                try:
                    outcome = self.sync_student_files(student, force_reanalyze=force_reanalyze)
                except Exception as e:
                    self.app_ctx.logger.error(f"Sync failed for student {student.get('id')}: {e}")
                    totals['errors'].append({'studentId': student.get('id'), 'error': str(e)})
                    continue
                totals['studentsProcessed'] += 1
                totals['filesSeen'] += outcome['files']
                totals['filesUpdated'] += outcome['updated']
            if start + self.batch_size < len(students):
                self.sleep_fn(self.batch_delay_seconds)
        return totals

    def _run_guarded(self, event_name, force_reanalyze):
        if not self._begin():
            self.app_ctx.logger.info(f"{event_name} skipped: a sync is already running")
            return {'success': False, 'skipped': True, 'message': 'Sync already running'}

        db = self.app_ctx.db
        started = time.time()
        self.app_ctx.log_event(logging.INFO, f"{event_name}_started")
        try:
            cache_service.set_sync_status(db, isRunning=True)
            cache_service.cleanup_expired_cache(db, logger=self.app_ctx.logger)
            totals = self._sync_many(self._students_with_folders(), force_reanalyze)
            self.last_sync_time = now_iso()
        finally:
            self._end()
            status_fields = {'isRunning': False}
            if self.last_sync_time:
                status_fields['lastFullSync'] = self.last_sync_time
            cache_service.set_sync_status(db, **status_fields)

        self.app_ctx.log_event(
            logging.INFO,
            f"{event_name}_finished",
            students=totals['studentsProcessed'],
            files_updated=totals['filesUpdated'],
            errors=len(totals['errors']),
            duration_seconds=round(time.time() - started, 2),
        )
        return {'success': True, **totals}

    def run_full_sync(self):
        return self._run_guarded('full_sync', force_reanalyze=False)

    def force_reanalyze_all(self):
        return self._run_guarded('reanalyze_all', force_reanalyze=True)

    def force_sync_student(self, student_id):
        return self.sync_student_files(self.resolve_student(student_id))

    def force_reanalyze_student(self, student_id):
        return self.sync_student_files(self.resolve_student(student_id), force_reanalyze=True)

    def get_sync_status(self):
        db = self.app_ctx.db
        status = cache_service.get_sync_status(db)
        status['isRunning'] = status['isRunning'] or self.is_running
        return {'syncStatus': status, 'cacheStats': cache_service.get_cache_stats(db)}

    def _background_sync(self, student_id):
        try:
            outcome = self.force_sync_student(student_id)
            self.app_ctx.log_event(logging.INFO, 'background_sync_finished', student_id=student_id, **outcome)
        except Exception as e:
            self.app_ctx.logger.error(f"Background sync failed for {student_id}: {e}")

    def _background_run(self, label, operation):
        try:
            operation()
        except Exception as e:
            self.app_ctx.logger.error(f"{label} failed: {e}")

    def _spawn(self, target, *args):
        thread = threading.Thread(target=target, args=args, daemon=True)
        thread.start()
        return thread

    def trigger_background_sync(self, student_id):
        return self._spawn(self._background_sync, student_id)

    def start_full_sync(self):
        return self._spawn(self._background_run, 'Full sync', self.run_full_sync)

    def start_reanalyze_all(self):
        return self._spawn(self._background_run, 'Full re-analysis', self.force_reanalyze_all)
