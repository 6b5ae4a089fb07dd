"""Shared Firestore query helpers.

Filters go through ``FieldFilter`` keywords so newer SDKs do not warn about
positional arguments; plain in-memory doubles without keyword support get the
positional form instead.
"""

from google.cloud.firestore_v1.base_query import FieldFilter

FIRESTORE_BATCH_LIMIT = 500


def apply_where(query, field_path, op_string, value):
    try:
        return query.where(filter=FieldFilter(field_path, op_string, value))
    except TypeError:
        return query.where(field_path, op_string, value)


def apply_equals(query, filters):
    """Chain ``==`` filters for every non-empty value in ``filters``."""
    for field_path, value in filters.items():
        if value in (None, ''):
            continue
        query = apply_where(query, field_path, '==', value)
    return query


def chunked(items, size=FIRESTORE_BATCH_LIMIT):
    items = list(items)
    for start in range(0, len(items), size):
        yield items[start:start + size]


def doc_to_dict(doc):
    """Snapshot to dict with its id under ``id``."""
    data = doc.to_dict() or {}
    data['id'] = doc.id
    return data


def delete_refs(db, refs):
    deleted = 0
    for chunk in chunked(refs):
        batch = db.batch()
        for ref in chunk:
            batch.delete(ref)
        batch.commit()
        deleted += len(chunk)
    return deleted
