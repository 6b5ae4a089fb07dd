"""Firestore accessors for cached Drive file metadata."""

from .query_utils import apply_where, chunked, delete_refs, doc_to_dict

COLLECTION = 'fileMetadata'


def doc_ref(db, file_id):
    return db.collection(COLLECTION).document(file_id)


def get_entry(db, file_id):
    snapshot = doc_ref(db, file_id).get()
    if not snapshot.exists:
        return None
    return doc_to_dict(snapshot)


def query_for_student(db, student_id):
    return apply_where(db.collection(COLLECTION), 'studentId', '==', student_id)


def list_for_student(db, student_id, order_by=None, direction=None):
    query = query_for_student(db, student_id)
    if order_by:
        query = query.order_by(order_by, direction=direction)
    return [doc_to_dict(doc) for doc in query.stream()]


def list_all(db):
    return [doc_to_dict(doc) for doc in db.collection(COLLECTION).stream()]


def write_entries(db, entries, merge=True):
    written = 0
    for chunk in chunked(entries):
        batch = db.batch()
        for entry in chunk:
            batch.set(doc_ref(db, entry['id']), entry, merge=merge)
        batch.commit()
        written += len(chunk)
    return written


def update_entries(db, file_ids, updates):
    updated = 0
    for chunk in chunked(file_ids):
        batch = db.batch()
        for file_id in chunk:
            batch.update(doc_ref(db, file_id), updates)
        batch.commit()
        updated += len(chunk)
    return updated


def delete_for_student(db, student_id):
    refs = [doc.reference for doc in query_for_student(db, student_id).stream()]
    return delete_refs(db, refs)
