"""Firestore accessors for key concepts attached to a Drive file."""

from .query_utils import apply_where, doc_to_dict

COLLECTION = 'keyConcepts'


def doc_ref(db, concept_id):
    return db.collection(COLLECTION).document(concept_id)


def new_doc_ref(db):
    return db.collection(COLLECTION).document()


def get_concept(db, concept_id):
    snapshot = doc_ref(db, concept_id).get()
    if not snapshot.exists:
        return None
    return doc_to_dict(snapshot)


def list_for_file(db, drive_file_id):
    docs = apply_where(db.collection(COLLECTION), 'driveFileId', '==', drive_file_id).stream()
    concepts = [doc_to_dict(doc) for doc in docs]
    concepts.sort(key=lambda concept: int(concept.get('orderIndex', 0) or 0))
    return concepts


def next_order_index(db, drive_file_id):
    concepts = list_for_file(db, drive_file_id)
    if not concepts:
        return 1
    return int(concepts[-1].get('orderIndex', 0) or 0) + 1
