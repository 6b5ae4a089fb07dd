"""Firestore accessors for the subject/topic taxonomy."""

from .query_utils import delete_refs, doc_to_dict

COLLECTION = 'subjects'
TOPICS_SUBCOLLECTION = 'topics'


def subject_doc_ref(db, subject_id):
    return db.collection(COLLECTION).document(subject_id)


def get_subject(db, subject_id):
    snapshot = subject_doc_ref(db, subject_id).get()
    if not snapshot.exists:
        return None
    return doc_to_dict(snapshot)


def list_subjects(db):
    subjects = [doc_to_dict(doc) for doc in db.collection(COLLECTION).stream()]
    subjects.sort(key=lambda subject: (int(subject.get('sortOrder', 0) or 0), subject.get('name', '')))
    return subjects


def topics_collection(db, subject_id):
    return subject_doc_ref(db, subject_id).collection(TOPICS_SUBCOLLECTION)


def topic_doc_ref(db, subject_id, topic_id):
    return topics_collection(db, subject_id).document(topic_id)


def list_topics(db, subject_id):
    topics = [doc_to_dict(doc) for doc in topics_collection(db, subject_id).stream()]
    topics.sort(key=lambda topic: (int(topic.get('sortOrder', 0) or 0), topic.get('name', '')))
    return topics


def delete_subject(db, subject_id):
    topic_refs = [doc.reference for doc in topics_collection(db, subject_id).stream()]
    removed_topics = delete_refs(db, topic_refs)
    subject_doc_ref(db, subject_id).delete()
    return removed_topics
