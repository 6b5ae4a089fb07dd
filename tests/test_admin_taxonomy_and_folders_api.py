FOLDER_A = "1FolderAnnaAAAAAAAAAAAAAAA"
FOLDER_B = "1FolderBramBBBBBBBBBBBBBBB"


def test_create_subject_uses_slug_id(client, fake_db, as_teacher):
    assert client.post("/api/admin/subjects", json={"name": "  "}).status_code == 400

    response = client.post("/api/admin/subjects", json={"name": "Wiskunde B"})

    assert response.status_code == 201
    assert response.get_json()["subjectId"] == "wiskunde-b"
    stored = fake_db.docs("subjects")["wiskunde-b"]
    assert stored["color"] == "#3B82F6"
    assert stored["icon"] == "BookOpen"
    assert stored["sortOrder"] == 0
    assert client.post("/api/admin/subjects", json={"name": "wiskunde b"}).status_code == 409


def test_subject_topics_lifecycle(client, fake_db, as_teacher):
    client.post("/api/admin/subjects", json={"name": "Wiskunde"})
    base = "/api/admin/subjects/wiskunde/topics"

    assert client.post(base, json={}).status_code == 400
    assert client.post("/api/admin/subjects/missing/topics", json={"name": "X"}).status_code == 404
    first = client.post(base, json={"name": "Breuken"})
    second = client.post(base, json={"name": "Logaritmen", "description": "log en exp"})
    assert first.status_code == 201
    topic_id = first.get_json()["topicId"]

    topics = client.get(base).get_json()["topics"]
    assert [topic["name"] for topic in topics] == ["Breuken", "Logaritmen"]
    assert topics[1]["sortOrder"] == 1

    subjects = client.get("/api/admin/subjects").get_json()["subjects"]
    assert [topic["name"] for topic in subjects[0]["topics"]] == ["Breuken", "Logaritmen"]

    assert client.put(base, json={"name": "X"}).status_code == 400
    assert client.put(base, json={"topicId": "nope", "name": "X"}).status_code == 404
    updated = client.put(base, json={"topicId": topic_id, "name": "Breuken & delen", "sortOrder": "5"})
    assert updated.status_code == 200
    stored = fake_db.docs("subjects/wiskunde/topics")[topic_id]
    assert stored["name"] == "Breuken & delen"
    assert stored["sortOrder"] == 5

    assert client.delete(f"{base}?topicId={topic_id}").status_code == 200
    assert topic_id not in fake_db.docs("subjects/wiskunde/topics")
    assert second.get_json()["topicId"] in fake_db.docs("subjects/wiskunde/topics")


def test_update_and_delete_subject(client, fake_db, as_teacher):
    client.post("/api/admin/subjects", json={"name": "Biologie"})
    client.post("/api/admin/subjects/biologie/topics", json={"name": "Cellen"})

    assert client.put("/api/admin/subjects/biologie", json={"unknown": 1}).status_code == 400
    assert client.put("/api/admin/subjects/missing", json={"color": "#000"}).status_code == 404
    assert client.put("/api/admin/subjects/biologie", json={"color": "#10B981"}).status_code == 200
    assert fake_db.docs("subjects")["biologie"]["color"] == "#10B981"

    response = client.delete("/api/admin/subjects/biologie")

    assert response.get_json() == {"success": True, "topicsDeleted": 1}
    assert fake_db.docs("subjects") == {}
    assert client.delete("/api/admin/subjects/biologie").status_code == 404


def _seed_folders(fake_db, fake_drive):
    fake_db.seed("students", "s1", {
        "displayName": "Anna",
        "pinHash": "h",
        "driveFolderId": FOLDER_A,
        "driveFolderName": "Anna",
        "subject": "Wiskunde",
        "folderConfirmed": True,
    })
    fake_db.seed("students", "s2", {"displayName": "Bram Jansen", "pinHash": "h"})
    fake_drive.folders = [
        {"id": FOLDER_A, "name": "Anna", "subject": "Wiskunde"},
        {"id": FOLDER_B, "name": "Bram Jansen", "subject": "Natuurkunde"},
    ]


def test_list_folders_splits_linked_and_suggests_students(client, fake_db, fake_drive, as_teacher):
    _seed_folders(fake_db, fake_drive)

    payload = client.get("/api/admin/folders").get_json()

    assert [row["folderId"] for row in payload["linkedFolders"]] == [FOLDER_A]
    assert payload["linkedFolders"][0]["confirmed"] is True
    assert "pinHash" not in payload["linkedFolders"][0]["student"]
    assert payload["unlinkedFolders"] == [
        {"id": FOLDER_B, "name": "Bram Jansen", "subject": "Natuurkunde", "suggestedStudentId": "s2"},
    ]
    assert [student["id"] for student in payload["studentsWithoutFolders"]] == ["s2"]


def test_link_folder_is_unconfirmed_and_audited(client, fake_db, fake_drive, as_teacher):
    _seed_folders(fake_db, fake_drive)
    fake_db.seed("unlinkedFolders", FOLDER_B, {"folderName": "Bram Jansen"})

    assert client.post("/api/admin/folders", json={"folderId": FOLDER_B}).status_code == 400
    assert client.post("/api/admin/folders", json={"folderId": FOLDER_B, "studentId": "nobody"}).status_code == 404

    response = client.post("/api/admin/folders", json={"folderId": FOLDER_B, "studentId": "s2"})

    assert response.status_code == 200
    assert response.get_json()["student"]["driveFolderId"] == FOLDER_B
    stored = fake_db.docs("students")["s2"]
    assert stored["folderConfirmed"] is False
    assert stored["subject"] == "Natuurkunde"
    assert FOLDER_B not in fake_db.docs("unlinkedFolders")
    audit = next(iter(fake_db.docs("loginAudits").values()))
    assert audit["action"] == "folder_linked"
    assert audit["metadata"]["confirmed"] is False


def test_link_folder_by_id_confirms_immediately(client, fake_db, fake_drive, as_teacher):
    _seed_folders(fake_db, fake_drive)

    response = client.post(f"/api/admin/folders/{FOLDER_B}/link", json={"studentId": "s2"})

    assert response.status_code == 200
    stored = fake_db.docs("students")["s2"]
    assert stored["folderConfirmed"] is True
    assert stored["folderConfirmedAt"]


def test_confirm_and_reject_folder(client, fake_db, fake_drive, as_teacher):
    _seed_folders(fake_db, fake_drive)
    fake_db.docs("students")["s1"]["folderConfirmed"] = False

    assert client.post(f"/api/admin/folders/{FOLDER_B}/confirm").status_code == 404
    assert client.post(f"/api/admin/folders/{FOLDER_A}/confirm").status_code == 200
    assert fake_db.docs("students")["s1"]["folderConfirmed"] is True

    assert client.post(f"/api/admin/folders/{FOLDER_A}/reject").status_code == 200
    stored = fake_db.docs("students")["s1"]
    assert stored["driveFolderId"] is None
    assert stored["folderConfirmed"] is False
    parked = fake_db.docs("unlinkedFolders")[FOLDER_A]
    assert parked["folderName"] == "Anna"
    assert parked["subject"] == "Wiskunde"


def test_folder_sync_auto_links(client, fake_db, fake_drive, as_teacher):
    _seed_folders(fake_db, fake_drive)

    payload = client.post("/api/admin/folders/sync").get_json()

    assert payload["linked"] == 1
    assert payload["total"] == 2
    assert fake_db.docs("students")["s2"]["driveFolderId"] == FOLDER_B
