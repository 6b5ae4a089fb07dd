"""Key concepts (term + explanation) attached to one Drive file."""

from tutor_portal.repositories import concepts_repo
from tutor_portal.services.security_service import sanitize_input
from tutor_portal.services.time_utils import now_iso


def serialize_concept(concept):
    return {
        'id': concept['id'],
        'driveFileId': concept.get('driveFileId', ''),
        'term': concept.get('term', ''),
        'explanation': concept.get('explanation', ''),
        'example': concept.get('example'),
        'orderIndex': concept.get('orderIndex', 0),
        'isAiGenerated': bool(concept.get('isAiGenerated', False)),
    }


def list_concepts(db, drive_file_id):
    return [serialize_concept(concept) for concept in concepts_repo.list_for_file(db, drive_file_id)]


def create_concept(db, drive_file_id, term, explanation, example=None):
    stamp = now_iso()
    ref = concepts_repo.new_doc_ref(db)
    data = {
        'driveFileId': drive_file_id,
        'term': sanitize_input(term),
        'explanation': sanitize_input(explanation),
        'example': sanitize_input(example) if example else None,
        'orderIndex': concepts_repo.next_order_index(db, drive_file_id),
        'isAiGenerated': False,
        'createdAt': stamp,
        'updatedAt': stamp,
    }
    ref.set(data)
    return serialize_concept({**data, 'id': ref.id})


def update_concept(db, concept, payload):
    """Apply edited fields; any manual edit clears ``isAiGenerated``."""
    updates = {'isAiGenerated': False, 'updatedAt': now_iso()}
    for field in ('term', 'explanation'):
        value = sanitize_input(payload.get(field, ''))
        if value:
            updates[field] = value
    if 'example' in payload:
        updates['example'] = sanitize_input(payload['example']) if payload['example'] else None
    concepts_repo.doc_ref(db, concept['id']).update(updates)
    return serialize_concept({**concept, **updates})


def delete_concept(db, concept_id):
    concepts_repo.doc_ref(db, concept_id).delete()
