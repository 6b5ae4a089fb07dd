from types import SimpleNamespace

from conftest import FakeFirestore
from tutor_portal.repositories import query_utils
from tutor_portal.repositories.query_utils import apply_equals, apply_where, chunked, delete_refs, doc_to_dict


class _RecordingQuery:
    def __init__(self):
        self.filters = []

    def where(self, *args, **kwargs):
        self.filters.append(kwargs.get("filter") or args)
        return self


def test_apply_where_sends_student_filter_as_field_filter():
    query = _RecordingQuery()

    apply_where(query, "studentId", "==", "s1")

    field_filter = query.filters[0]
    assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("studentId", "==", "s1")


def test_apply_where_uses_positional_form_when_keyword_is_rejected(fake_db):
    fake_db.seed("fileMetadata", "f1", {"studentId": "s1"})
    fake_db.seed("fileMetadata", "f2", {"studentId": "s2"})

    query = apply_where(fake_db.collection("fileMetadata"), "studentId", "==", "s1")

    assert [doc.id for doc in query.stream()] == ["f1"]


def test_apply_equals_skips_empty_filters():
    query = _RecordingQuery()

    apply_equals(query, {"subject": "wiskunde", "level": "", "topic": None, "studentId": "s1"})

    assert [(f.field_path, f.value) for f in query.filters] == [("subject", "wiskunde"), ("studentId", "s1")]


def test_chunked_respects_firestore_batch_limit():
    sizes = [len(chunk) for chunk in chunked(range(1201))]

    assert sizes == [query_utils.FIRESTORE_BATCH_LIMIT, query_utils.FIRESTORE_BATCH_LIMIT, 201]


def test_doc_to_dict_adds_id_and_tolerates_empty_documents():
    snapshot = SimpleNamespace(id="n1", to_dict=lambda: None)

    assert doc_to_dict(snapshot) == {"id": "n1"}


def test_delete_refs_commits_one_batch_per_chunk():
    db = FakeFirestore()
    refs = []
    for index in range(501):
        db.seed("studentTags", f"t{index}", {"studentId": "s1"})
        refs.append(db.collection("studentTags").document(f"t{index}"))

    deleted = delete_refs(db, refs)

    assert deleted == 501
    assert db.commits == [500, 1]
    assert db.docs("studentTags") == {}
