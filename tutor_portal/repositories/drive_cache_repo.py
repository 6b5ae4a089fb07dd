"""Firestore accessors for driveCache entries and the sync status document."""

from .query_utils import apply_where, doc_to_dict

COLLECTION = 'driveCache'
SYSTEM_COLLECTION = 'system'
SYNC_STATUS_DOC = 'syncStatus'


def doc_ref(db, key):
    return db.collection(COLLECTION).document(key)


def get_doc(db, key):
    return doc_ref(db, key).get()


def set_doc(db, key, data):
    return doc_ref(db, key).set(data)


def delete_doc(db, key):
    return doc_ref(db, key).delete()


def stream_entries(db):
    return db.collection(COLLECTION).stream()


def expired_entries(db, now_iso, limit):
    query = apply_where(db.collection(COLLECTION), 'expiresAt', '<', now_iso).limit(limit)
    return list(query.stream())


def sync_status_ref(db):
    return db.collection(SYSTEM_COLLECTION).document(SYNC_STATUS_DOC)


def get_sync_status(db):
    snapshot = sync_status_ref(db).get()
    if not snapshot.exists:
        return None
    return doc_to_dict(snapshot)


def set_sync_status(db, data):
    return sync_status_ref(db).set(data, merge=True)
