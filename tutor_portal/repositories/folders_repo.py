"""Firestore accessors for Drive folders that no student claims yet."""

from .query_utils import doc_to_dict

COLLECTION = 'unlinkedFolders'


def doc_ref(db, folder_id):
    return db.collection(COLLECTION).document(folder_id)


def upsert(db, folder_id, data, created_at=None):
    """Merge folder details; ``createdAt`` is only written the first time a folder is parked."""
    ref = doc_ref(db, folder_id)
    payload = {'driveFolderId': folder_id, **data}
    if created_at and not ref.get().exists:
        payload['createdAt'] = created_at
    return ref.set(payload, merge=True)


def delete(db, folder_id):
    return doc_ref(db, folder_id).delete()


def list_unlinked(db):
    return [doc_to_dict(doc) for doc in db.collection(COLLECTION).stream()]
