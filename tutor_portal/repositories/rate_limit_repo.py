"""Firestore accessors for rate limit counters."""

COUNTER_COLLECTION = 'rateLimitCounters'


def counter_doc_ref(db, collection_name, counter_id):
    return db.collection(collection_name or COUNTER_COLLECTION).document(counter_id)
