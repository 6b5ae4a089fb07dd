import pytest


@pytest.fixture()
def student(fake_db):
    fake_db.seed("students", "s1", {"displayName": "Anna"})
    return "s1"


def _note_body(**overrides):
    body = {
        "studentId": "s1",
        "contentMd": "# Breuken\nNoemer en teller",
        "subject": "Wiskunde-B",
        "level": "5 VWO",
        "topic": "Integreren",
    }
    body.update(overrides)
    return body


def _tag_values(db):
    return sorted((tag["key"], tag["value"]) for tag in db.docs("studentTags").values())


def test_create_note_reports_missing_fields(client, fake_db, as_teacher, student):
    response = client.post("/api/admin/notes", json={"studentId": "s1", "subject": "wiskunde"})

    assert response.status_code == 400
    assert response.get_json()["missing"] == ["contentMd", "level", "topic"]


def test_create_note_for_unknown_student(client, fake_db, as_teacher):
    assert client.post("/api/admin/notes", json=_note_body(studentId="nobody")).status_code == 404


def test_create_note_canonicalizes_and_tags(client, fake_db, as_teacher, student):
    response = client.post("/api/admin/notes", json=_note_body(contentMd="<b>Les</b>"))

    assert response.status_code == 201
    note = response.get_json()["note"]
    assert note["subject"] == "wiskunde-b"
    assert note["level"] == "vwo-5"
    assert note["topic"] == "integralen"
    assert note["contentMd"] == "bLes/b"
    assert _tag_values(fake_db) == [("level", "vwo-5"), ("subject", "wiskunde-b"), ("topic", "integralen")]
    audit = next(iter(fake_db.docs("loginAudits").values()))
    assert audit["action"] == "note_created"
    assert audit["metadata"]["noteId"] == note["id"]


def test_list_notes_filters_by_canonical_values(client, fake_db, as_teacher, student):
    client.post("/api/admin/notes", json=_note_body())
    client.post("/api/admin/notes", json=_note_body(subject="Biologie", topic="Cellen", contentMd="Celdeling"))

    filtered = client.get("/api/admin/notes?subject=Wiskunde%20B").get_json()
    assert [note["subject"] for note in filtered["notes"]] == ["wiskunde-b"]
    assert filtered["notes"][0]["student"] == {"id": "s1", "displayName": "Anna"}

    searched = client.get("/api/admin/notes?search=celdeling").get_json()
    assert [note["topic"] for note in searched["notes"]] == ["cellen"]
    assert searched["pagination"]["total"] == 1


def test_get_note(client, fake_db, as_teacher, student):
    note_id = client.post("/api/admin/notes", json=_note_body()).get_json()["note"]["id"]

    note = client.get(f"/api/admin/notes/{note_id}").get_json()["note"]

    assert note["student"]["displayName"] == "Anna"
    assert client.get("/api/admin/notes/missing").status_code == 404


def test_update_note_regenerates_tags(client, fake_db, as_teacher, student):
    first = client.post("/api/admin/notes", json=_note_body()).get_json()["note"]["id"]
    client.post("/api/admin/notes", json=_note_body(topic="Breuken"))

    assert client.patch(f"/api/admin/notes/{first}", json={}).status_code == 400
    response = client.patch(f"/api/admin/notes/{first}", json={"topic": "Logaritme"})

    assert response.status_code == 200
    assert response.get_json()["note"]["topic"] == "logaritmen"
    assert ("topic", "integralen") not in _tag_values(fake_db)
    assert ("topic", "logaritmen") in _tag_values(fake_db)
    assert ("topic", "breuken") in _tag_values(fake_db)


def test_delete_note_drops_orphaned_tags(client, fake_db, as_teacher, student):
    note_id = client.post("/api/admin/notes", json=_note_body()).get_json()["note"]["id"]

    response = client.delete(f"/api/admin/notes/{note_id}")

    assert response.status_code == 200
    assert fake_db.docs("notes") == {}
    assert fake_db.docs("studentTags") == {}
    assert client.delete(f"/api/admin/notes/{note_id}").status_code == 404


@pytest.fixture()
def file_entries(fake_db):
    fake_db.seed("fileMetadata", "f1", {"studentId": "s1", "name": "wiskunde_24-25.pdf", "aiAnalyzedAt": "x"})
    fake_db.seed("fileMetadata", "f2", {"studentId": "s1", "name": "biologie.pdf", "aiAnalyzedAt": "x"})
    fake_db.seed("keyConcepts", "c1", {"driveFileId": "f1", "term": "Noemer", "orderIndex": 1})
    return ["f1", "f2"]


def test_bulk_requires_action_and_ids(client, fake_db, as_teacher):
    assert client.post("/api/admin/notes/bulk", json={"action": "delete"}).status_code == 400
    assert client.post("/api/admin/notes/bulk", json={"action": "explode", "noteIds": ["f1"]}).status_code == 400
    assert client.post("/api/admin/notes/bulk", json={"action": "updateMetadata", "noteIds": ["f1"]}).status_code == 400


def test_bulk_reanalyze_clears_analysis_stamps(client, fake_db, as_teacher, file_entries):
    response = client.post("/api/admin/notes/bulk", json={"action": "reanalyze", "noteIds": ["f1", "missing"]})

    payload = response.get_json()
    assert payload == {"success": False, "processed": 1, "errors": 1, "errorDetails": ["Note missing not found"]}
    assert fake_db.docs("fileMetadata")["f1"]["aiAnalyzedAt"] is None
    assert fake_db.docs("fileMetadata")["f2"]["aiAnalyzedAt"] == "x"


def test_bulk_delete_removes_entries_and_concepts(client, fake_db, as_teacher, file_entries):
    response = client.post("/api/admin/notes/bulk", json={"action": "delete", "noteIds": file_entries})

    assert response.get_json()["processed"] == 2
    assert response.get_json()["success"] is True
    assert fake_db.docs("fileMetadata") == {}
    assert fake_db.docs("keyConcepts") == {}


def test_bulk_update_metadata_canonicalizes(client, fake_db, as_teacher, file_entries):
    response = client.post("/api/admin/notes/bulk", json={
        "action": "updateMetadata",
        "noteIds": ["f2"],
        "metadata": {"subject": "Wiskunde A", "summary": "Herzien", "pinHash": "nope"},
    })

    assert response.get_json()["processed"] == 1
    entry = fake_db.docs("fileMetadata")["f2"]
    assert entry["subject"] == "wiskunde-a"
    assert entry["summary"] == "Herzien"
    assert "pinHash" not in entry

    empty = client.post("/api/admin/notes/bulk", json={
        "action": "updateMetadata",
        "noteIds": ["f2"],
        "metadata": {"pinHash": "nope"},
    })
    assert empty.status_code == 400


def test_reanalyze_single_entry(client, fake_db, as_teacher, file_entries):
    response = client.post("/api/admin/notes/f1/reanalyze")

    assert response.status_code == 200
    analysis = response.get_json()["analysis"]
    assert analysis["subject"] == "Wiskunde"
    assert analysis["schoolYear"] == "24/25"
    entry = fake_db.docs("fileMetadata")["f1"]
    assert entry["subject"] == "Wiskunde"
    assert entry["aiAnalyzedAt"] != "x"
    assert client.post("/api/admin/notes/missing/reanalyze").status_code == 404


def test_note_concepts(client, fake_db, as_teacher, student, file_entries):
    fake_db.seed("notes", "n1", {"studentId": "s1", "driveFileId": "f1"})
    fake_db.seed("notes", "n2", {"studentId": "s1"})
    fake_db.seed("keyConcepts", "c9", {"driveFileId": "f2", "term": "Cel"})

    assert client.get("/api/admin/notes/n2/concepts").status_code == 404

    created = client.post("/api/admin/notes/n1/concepts", json={"term": "Teller", "explanation": "Bovenkant"})
    assert created.status_code == 201
    assert created.get_json()["concept"]["orderIndex"] == 2

    listed = client.get("/api/admin/notes/n1/concepts").get_json()["concepts"]
    assert [concept["term"] for concept in listed] == ["Noemer", "Teller"]

    assert client.delete("/api/admin/notes/n1/concepts/c9").status_code == 404
    assert client.delete("/api/admin/notes/n1/concepts/c1").status_code == 200
    assert "c1" not in fake_db.docs("keyConcepts")


def test_get_concept(client, fake_db, as_teacher, file_entries):
    response = client.get("/api/admin/concepts/c1")

    assert response.status_code == 200
    assert response.get_json()["concept"]["term"] == "Noemer"
    assert client.get("/api/admin/concepts/missing").status_code == 404


def _seed_files_with_concepts(db, count):
    file_ids = []
    for index in range(count):
        file_id = f"file{index:03d}"
        db.seed("fileMetadata", file_id, {"studentId": "s1", "name": f"{file_id}.pdf"})
        db.seed("keyConcepts", f"concept{index:03d}", {"driveFileId": file_id, "term": "Term", "orderIndex": 1})
        file_ids.append(file_id)
    return file_ids


def test_bulk_delete_splits_writes_across_batches(client, fake_db, as_teacher):
    file_ids = _seed_files_with_concepts(fake_db, 300)

    payload = client.post("/api/admin/notes/bulk", json={"action": "delete", "noteIds": file_ids}).get_json()

    assert payload["success"] is True
    assert payload["processed"] == 300
    assert fake_db.commits == [500, 100]
    assert fake_db.docs("fileMetadata") == {}
    assert fake_db.docs("keyConcepts") == {}


def test_bulk_delete_reports_files_committed_before_failure(client, fake_db, as_teacher):
    file_ids = _seed_files_with_concepts(fake_db, 300)
    fake_db.commit_limit = 1

    payload = client.post("/api/admin/notes/bulk", json={"action": "delete", "noteIds": file_ids}).get_json()

    assert payload["success"] is False
    assert payload["processed"] == 250
    assert payload["errors"] == 50
    assert payload["errorDetails"] == ["Bulk delete failed: commit rejected"]
    assert len(fake_db.docs("fileMetadata")) == 50
