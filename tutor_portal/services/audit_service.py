"""Append-only login/admin audit trail."""

from tutor_portal.repositories import audit_repo
from tutor_portal.services import security_service
from tutor_portal.services.time_utils import now_iso

AUDIT_ACTIONS = {
    'login_ok',
    'login_fail',
    'logout',
    'student_created',
    'student_updated',
    'student_deleted',
    'note_created',
    'pin_reset',
    'folder_linked',
}


def teacher_actor(email):
    return f"teacher:{email or 'unknown'}"


def student_actor(display_name):
    return f"student:{display_name or 'unknown'}"


def log_audit(db, who, action, *, request=None, metadata=None, student_id=None, logger=None):
    """Write one audit row. Returns the new id, or None when the write failed."""
    if db is None:
        return None
    entry = {
        'who': who,
        'action': action,
        'ip': security_service.get_client_ip(request) if request is not None else None,
        'userAgent': security_service.get_user_agent(request) if request is not None else None,
        'metadata': dict(metadata or {}),
        'studentId': student_id,
        'createdAt': now_iso(),
    }
    try:
        return audit_repo.add_entry(db, entry)
    except Exception as e:
        if logger is not None:
            logger.error(f"Failed to write audit entry {action} for {who}: {e}")
        return None
