"""Firestore accessors for teacher-written notes and student tags."""

from .query_utils import apply_where, delete_refs, doc_to_dict

NOTES_COLLECTION = 'notes'
TAGS_COLLECTION = 'studentTags'


def note_doc_ref(db, note_id):
    return db.collection(NOTES_COLLECTION).document(note_id)


def new_note_doc_ref(db):
    return db.collection(NOTES_COLLECTION).document()


def get_note(db, note_id):
    snapshot = note_doc_ref(db, note_id).get()
    if not snapshot.exists:
        return None
    return doc_to_dict(snapshot)


def list_notes(db, student_id=None):
    query = db.collection(NOTES_COLLECTION)
    if student_id:
        query = apply_where(query, 'studentId', '==', student_id)
    return [doc_to_dict(doc) for doc in query.stream()]


def delete_notes_for_student(db, student_id):
    refs = [doc.reference for doc in apply_where(db.collection(NOTES_COLLECTION), 'studentId', '==', student_id).stream()]
    return delete_refs(db, refs)


def tag_doc_id(student_id, key, value):
    return f"{student_id}_{key}_{value}"


def upsert_tags(db, student_id, tags):
    for tag in tags:
        db.collection(TAGS_COLLECTION).document(tag_doc_id(student_id, tag['key'], tag['value'])).set({
            'studentId': student_id,
            'key': tag['key'],
            'value': tag['value'],
        }, merge=True)
    return len(tags)


def list_tags(db, student_id):
    return [doc_to_dict(doc) for doc in apply_where(db.collection(TAGS_COLLECTION), 'studentId', '==', student_id).stream()]


def delete_tags_for_student(db, student_id):
    refs = [doc.reference for doc in apply_where(db.collection(TAGS_COLLECTION), 'studentId', '==', student_id).stream()]
    return delete_refs(db, refs)
