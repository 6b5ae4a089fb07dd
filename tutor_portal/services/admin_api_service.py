"""Business logic handlers for the teacher dashboard: audit, stats, cache and sync."""

from datetime import timedelta

from tutor_portal.repositories import audit_repo, folders_repo, notes_repo, students_repo
from tutor_portal.services import cache_service
from tutor_portal.services.errors import StudentNotFoundError
from tutor_portal.services.request_utils import json_body, paginate, parse_int_arg
from tutor_portal.services.time_utils import now_iso, parse_iso, utc_now

RECENT_ACTIVITY_DAYS = 30
REANALYZE_ACTIONS = ('all', 'student', 'status')
SYNC_ACTIONS = ('full-sync', 'sync-student')


def _date_arg(value):
    parsed = parse_iso(value)
    return parsed.isoformat() if parsed else None


def get_audit_log(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    args = request.args
    action = str(args.get('action', '') or '').strip()
    who = str(args.get('who', '') or '').strip().lower()
    page = parse_int_arg(args.get('page'), default=1, minimum=1)
    limit = parse_int_arg(args.get('limit'), default=50, minimum=1, maximum=500)
    try:
        entries = audit_repo.query_entries(
            app_ctx.db,
            action=action or None,
            start=_date_arg(args.get('startDate')),
            end=_date_arg(args.get('endDate')),
        )
        if who:
            entries = [entry for entry in entries if who in str(entry.get('who', '')).lower()]
        entries.sort(key=lambda entry: str(entry.get('createdAt') or ''), reverse=True)
        page_items, pagination = paginate(entries, page, limit)

        names = {student['id']: student.get('displayName', '') for student in students_repo.list_students(app_ctx.db)}
        logs = [{**entry, 'studentName': names.get(entry.get('studentId'))} for entry in page_items]
        return app_ctx.jsonify({'success': True, 'auditLogs': logs, 'pagination': pagination})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching audit logs: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch audit logs'}), 500


def get_stats(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        cutoff = (utc_now() - timedelta(days=RECENT_ACTIVITY_DAYS)).isoformat()
        students = students_repo.list_students(app_ctx.db)
        notes = notes_repo.list_notes(app_ctx.db)
        recent = [note for note in notes if str(note.get('createdAt') or '') >= cutoff]
        return app_ctx.jsonify({
            'success': True,
            'totalStudents': len(students),
            'totalNotes': len(notes),
            'recentActivity': len(recent),
            'activeStudents': len({note.get('studentId') for note in recent if note.get('studentId')}),
        })
    except Exception as e:
        app_ctx.logger.error(f"Error fetching stats: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch stats'}), 500


def get_detailed_stats(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        by_subject = {}
        by_month = {}
        for note in notes_repo.list_notes(app_ctx.db):
            subject = note.get('subject') or 'unknown'
            by_subject[subject] = by_subject.get(subject, 0) + 1
            created = parse_iso(note.get('createdAt'))
            if created is not None:
                month = created.strftime('%Y-%m')
                by_month[month] = by_month.get(month, 0) + 1
        return app_ctx.jsonify({'success': True, 'bySubject': by_subject, 'byMonth': by_month})
    except Exception as e:
        app_ctx.logger.error(f"Error fetching detailed statistics: {e}")
        return app_ctx.jsonify({'error': 'Failed to fetch detailed statistics'}), 500


def clear_cache(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    try:
        drive_entries = app_ctx.drive_service.clear_cache()
        analyses = app_ctx.clear_analysis_cache()
        result = {'driveEntriesCleared': drive_entries, 'analysesCleared': analyses}
        if app_ctx.db is not None:
            result.update(cache_service.invalidate_cache(app_ctx.db))
        return app_ctx.jsonify({'success': True, 'message': 'Cache cleared successfully', **result})
    except Exception as e:
        app_ctx.logger.error(f"Error clearing cache: {e}")
        return app_ctx.jsonify({'error': 'Failed to clear cache'}), 500


def _reanalyze_status(app_ctx):
    status = app_ctx.sync_service.get_sync_status()['syncStatus']
    students = students_repo.list_students(app_ctx.db)
    return {
        **status,
        'totalStudents': len(students),
        'studentsWithFolders': len([student for student in students if student.get('driveFolderId')]),
        'canReanalyze': not status['isRunning'],
    }


def get_reanalyze_status(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        return app_ctx.jsonify({'success': True, 'status': _reanalyze_status(app_ctx), 'timestamp': now_iso()})
    except Exception as e:
        app_ctx.logger.error(f"Error getting re-analysis status: {e}")
        return app_ctx.jsonify({'error': 'Failed to get re-analysis status'}), 500


def run_reanalyze(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    action = payload.get('action')
    student_id = str(payload.get('studentId', '') or '').strip()
    if action not in REANALYZE_ACTIONS:
        return app_ctx.jsonify({'error': 'Invalid action. Use "all", "student", or "status"'}), 400
    if action == 'student' and not student_id:
        return app_ctx.jsonify({'error': 'Student ID is required for student re-analysis'}), 400

    try:
        if action == 'status':
            return app_ctx.jsonify({'success': True, 'status': _reanalyze_status(app_ctx), 'timestamp': now_iso()})

        if action == 'all':
            cache_service.invalidate_cache(app_ctx.db, 'ai-analysis')
            app_ctx.clear_analysis_cache()
            app_ctx.start_reanalyze_all()
            return app_ctx.jsonify({
                'success': True,
                'message': 'Full AI re-analysis started in background',
                'action': 'all',
                'timestamp': now_iso(),
            })

        cache_service.invalidate_cache(app_ctx.db, f"student-{student_id}")
        outcome = app_ctx.sync_service.force_reanalyze_student(student_id)
        return app_ctx.jsonify({
            'success': True,
            'message': f"AI re-analysis completed for student {student_id}",
            'action': 'student',
            'studentId': student_id,
            'result': outcome,
            'timestamp': now_iso(),
        })
    except StudentNotFoundError:
        return app_ctx.jsonify({'error': 'Student not found'}), 404
    except Exception as e:
        app_ctx.logger.error(f"Error in re-analysis action {action}: {e}")
        return app_ctx.jsonify({'error': 'Failed to execute re-analysis action'}), 500


def get_sync_status(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        return app_ctx.jsonify({'success': True, **app_ctx.sync_service.get_sync_status()})
    except Exception as e:
        app_ctx.logger.error(f"Error getting sync status: {e}")
        return app_ctx.jsonify({'error': 'Failed to get sync status'}), 500


def run_sync(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()

    payload = json_body(request)
    action = payload.get('action')
    student_id = str(payload.get('studentId', '') or '').strip()
    if action not in SYNC_ACTIONS:
        return app_ctx.jsonify({'error': 'Invalid action. Use "full-sync" or "sync-student"'}), 400
    if action == 'sync-student' and not student_id:
        return app_ctx.jsonify({'error': 'Student ID is required for sync-student action'}), 400

    try:
        if action == 'full-sync':
            app_ctx.start_full_sync()
            return app_ctx.jsonify({'success': True, 'message': 'Full sync started in background'})
        outcome = app_ctx.sync_service.force_sync_student(student_id)
        return app_ctx.jsonify({
            'success': True,
            'message': f"Student {student_id} synced successfully",
            'result': outcome,
        })
    except StudentNotFoundError:
        return app_ctx.jsonify({'error': 'Student not found'}), 404
    except Exception as e:
        app_ctx.logger.error(f"Error in sync action {action}: {e}")
        return app_ctx.jsonify({'error': 'Failed to execute sync action'}), 500


def get_drive_data(app_ctx, request):
    _claims, error = app_ctx.require_teacher(request)
    if error:
        return error
    if app_ctx.db is None:
        return app_ctx.db_unavailable_response()
    try:
        students = [
            {key: value for key, value in student.items() if key != 'pinHash'}
            for student in students_repo.list_students(app_ctx.db)
        ]
        linked = [student for student in students if student.get('driveFolderId')]
        confirmed = len([student for student in linked if student.get('folderConfirmed')])
        return app_ctx.jsonify({
            'success': True,
            'students': students,
            'stats': {
                'totalLinkedStudents': len(linked),
                'confirmedLinks': confirmed,
                'unconfirmedLinks': len(linked) - confirmed,
                'unlinkedFolders': len(folders_repo.list_unlinked(app_ctx.db)),
            },
        })
    except Exception as e:
        app_ctx.logger.error(f"Error fetching drive data: {e}")
        return app_ctx.jsonify({'success': False, 'error': 'Failed to fetch drive data'}), 500
