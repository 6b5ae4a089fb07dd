"""Firestore accessors for the append-only login audit log."""

from .query_utils import apply_where, doc_to_dict

COLLECTION = 'loginAudits'


def add_entry(db, entry):
    ref = db.collection(COLLECTION).document()
    ref.set(entry)
    return ref.id


def query_entries(db, action=None, start=None, end=None):
    query = db.collection(COLLECTION)
    if action:
        query = apply_where(query, 'action', '==', action)
    if start:
        query = apply_where(query, 'createdAt', '>=', start)
    if end:
        query = apply_where(query, 'createdAt', '<=', end)
    return [doc_to_dict(doc) for doc in query.stream()]
