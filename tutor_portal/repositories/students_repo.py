"""Firestore accessors for the students collection."""

from .query_utils import apply_where, doc_to_dict

COLLECTION = 'students'


def doc_ref(db, student_id):
    return db.collection(COLLECTION).document(student_id)


def new_doc_ref(db):
    return db.collection(COLLECTION).document()


def get_doc(db, student_id):
    return doc_ref(db, student_id).get()


def get_student(db, student_id):
    snapshot = get_doc(db, student_id)
    if not snapshot.exists:
        return None
    return doc_to_dict(snapshot)


def set_doc(db, student_id, data, merge=False):
    return doc_ref(db, student_id).set(data, merge=merge)


def update_doc(db, student_id, updates):
    return doc_ref(db, student_id).update(updates)


def delete_doc(db, student_id):
    return doc_ref(db, student_id).delete()


def list_students(db):
    return [doc_to_dict(doc) for doc in db.collection(COLLECTION).stream()]


def find_by_display_name(db, display_name):
    """Case-insensitive exact match on displayName."""
    needle = str(display_name or '').strip().lower()
    if not needle:
        return None
    for student in list_students(db):
        if str(student.get('displayName', '')).strip().lower() == needle:
            return student
    return None


def find_by_drive_folder_id(db, folder_id):
    docs = list(apply_where(db.collection(COLLECTION), 'driveFolderId', '==', folder_id).limit(1).stream())
    if not docs:
        return None
    return doc_to_dict(docs[0])
