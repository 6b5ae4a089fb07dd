import fitz

from conftest import drive_file
from tutor_portal import runtime
from tutor_portal.services.time_utils import now_iso

FOLDER_A = "1FolderAnnaAAAAAAAAAAAAAAA"


def _seed_audit(db):
    db.seed("students", "s1", {"displayName": "Anna"})
    db.seed("loginAudits", "a1", {"who": "student:Anna", "action": "login_ok", "studentId": "s1", "createdAt": "2025-01-10T10:00:00+00:00"})
    db.seed("loginAudits", "a2", {"who": "student:Anna", "action": "login_fail", "studentId": "s1", "createdAt": "2025-01-11T10:00:00+00:00"})
    db.seed("loginAudits", "a3", {"who": "teacher:lessons@stephensprivelessen.nl", "action": "login_ok", "createdAt": "2025-02-01T10:00:00+00:00"})


def test_audit_log_filters_and_names(client, fake_db, as_teacher):
    _seed_audit(fake_db)

    everything = client.get("/api/admin/audit").get_json()
    assert [row["id"] for row in everything["auditLogs"]] == ["a3", "a2", "a1"]
    assert everything["auditLogs"][1]["studentName"] == "Anna"
    assert everything["pagination"]["total"] == 3

    logins = client.get("/api/admin/audit?action=login_ok&who=ANNA").get_json()["auditLogs"]
    assert [row["id"] for row in logins] == ["a1"]

    january = client.get("/api/admin/audit?startDate=2025-01-11&endDate=2025-01-31").get_json()["auditLogs"]
    assert [row["id"] for row in january] == ["a2"]


def test_stats_count_recent_activity(client, fake_db, as_teacher):
    fake_db.seed("students", "s1", {"displayName": "Anna"})
    fake_db.seed("students", "s2", {"displayName": "Bram"})
    fake_db.seed("notes", "n1", {"studentId": "s1", "subject": "wiskunde", "createdAt": now_iso()})
    fake_db.seed("notes", "n2", {"studentId": "s2", "subject": "wiskunde", "createdAt": "2020-03-01T00:00:00+00:00"})

    stats = client.get("/api/admin/stats").get_json()
    assert stats["totalStudents"] == 2
    assert stats["totalNotes"] == 2
    assert stats["recentActivity"] == 1
    assert stats["activeStudents"] == 1

    detailed = client.get("/api/admin/stats/detailed").get_json()
    assert detailed["bySubject"] == {"wiskunde": 2}
    assert detailed["byMonth"]["2020-03"] == 1


def test_clear_cache_without_database(client, fake_drive, as_teacher):
    runtime.AI_ANALYSIS_CACHE["f1"] = {"subject": "Wiskunde"}

    payload = client.post("/api/admin/clear-cache").get_json()

    assert payload["success"] is True
    assert payload["driveEntriesCleared"] == 3
    assert payload["analysesCleared"] == 1
    assert fake_drive.cleared == 1
    assert "cacheEntriesRemoved" not in payload


def test_clear_cache_with_database(client, fake_db, fake_drive, as_teacher):
    fake_db.seed("driveCache", "files-x", {"type": "files"})

    payload = client.post("/api/admin/clear-cache").get_json()

    assert payload["cacheEntriesRemoved"] == 1
    assert fake_db.docs("driveCache") == {}


def test_reanalyze_status_and_validation(client, fake_db, as_teacher):
    fake_db.seed("students", "s1", {"displayName": "Anna", "driveFolderId": FOLDER_A})
    fake_db.seed("students", "s2", {"displayName": "Bram"})

    status = client.get("/api/admin/reanalyze").get_json()["status"]
    assert status["totalStudents"] == 2
    assert status["studentsWithFolders"] == 1
    assert status["canReanalyze"] is True

    assert client.post("/api/admin/reanalyze", json={"action": "bogus"}).status_code == 400
    assert client.post("/api/admin/reanalyze", json={"action": "student"}).status_code == 400
    assert client.post("/api/admin/reanalyze", json={"action": "status"}).get_json()["status"]["totalStudents"] == 2


def test_reanalyze_all_resets_and_runs_in_background(client, fake_db, as_teacher, background_calls):
    fake_db.seed("fileMetadata", "f1", {"studentId": "s1", "aiAnalyzedAt": "2025-01-01T00:00:00+00:00"})
    runtime.AI_ANALYSIS_CACHE["f1"] = {}

    response = client.post("/api/admin/reanalyze", json={"action": "all"})

    assert response.get_json()["action"] == "all"
    assert background_calls == [("reanalyze", None)]
    assert fake_db.docs("fileMetadata")["f1"]["aiAnalyzedAt"] is None
    assert runtime.AI_ANALYSIS_CACHE == {}


def test_reanalyze_student(client, fake_db, fake_drive, as_teacher):
    fake_db.seed("students", "s1", {"displayName": "Anna", "driveFolderId": FOLDER_A})
    fake_drive.files[FOLDER_A] = [drive_file("f1", "wiskunde 2025-01-20.pdf")]

    response = client.post("/api/admin/reanalyze", json={"action": "student", "studentId": "s1"})

    assert response.status_code == 200
    assert response.get_json()["result"]["updated"] == 1
    assert fake_db.docs("fileMetadata")["f1"]["subject"] == "Wiskunde"
    assert client.post("/api/admin/reanalyze", json={"action": "student", "studentId": "nobody"}).status_code == 404


def test_sync_endpoints(client, fake_db, fake_drive, as_teacher, background_calls):
    fake_db.seed("students", "s1", {"displayName": "Anna", "driveFolderId": FOLDER_A})
    fake_drive.files[FOLDER_A] = [drive_file("f1", "les.pdf")]

    status = client.get("/api/admin/sync").get_json()
    assert status["syncStatus"]["isRunning"] is False
    assert status["cacheStats"]["totalEntries"] == 0

    assert client.post("/api/admin/sync", json={"action": "nope"}).status_code == 400
    assert client.post("/api/admin/sync", json={"action": "sync-student"}).status_code == 400

    started = client.post("/api/admin/sync", json={"action": "full-sync"})
    assert started.get_json()["message"] == "Full sync started in background"
    assert background_calls == [("full", None)]

    synced = client.post("/api/admin/sync", json={"action": "sync-student", "studentId": "s1"}).get_json()
    assert synced["result"]["files"] == 1
    assert "f1" in fake_db.docs("fileMetadata")


def test_drive_data_stats(client, fake_db, as_teacher):
    fake_db.seed("students", "s1", {"displayName": "Anna", "driveFolderId": FOLDER_A, "folderConfirmed": True, "pinHash": "h"})
    fake_db.seed("students", "s2", {"displayName": "Bram", "driveFolderId": "1OtherFolderXXXXXXXXXXXXX"})
    fake_db.seed("unlinkedFolders", "u1", {"folderName": "Cas"})

    payload = client.get("/api/admin/drive-data").get_json()

    assert payload["stats"] == {
        "totalLinkedStudents": 2,
        "confirmedLinks": 1,
        "unconfirmedLinks": 1,
        "unlinkedFolders": 1,
    }
    assert all("pinHash" not in student for student in payload["students"])


def test_cron_sync_cache_checks_secret(client, fake_db, monkeypatch, background_calls):
    monkeypatch.setattr(runtime, "CRON_SECRET", "s3cret")

    assert client.get("/api/cron/sync-cache").status_code == 401
    assert client.get("/api/cron/sync-cache", headers={"Authorization": "Bearer wrong"}).status_code == 401

    response = client.get("/api/cron/sync-cache", headers={"Authorization": "Bearer s3cret"})

    assert response.status_code == 200
    assert background_calls == [("full", None)]


def test_cron_sync_cache_open_without_secret(client, fake_db, monkeypatch, background_calls):
    monkeypatch.setattr(runtime, "CRON_SECRET", "")

    assert client.get("/api/cron/sync-cache").status_code == 200
    assert background_calls == [("full", None)]


def test_cron_sync_folders_requires_configured_secret(client, fake_db, fake_drive, monkeypatch):
    monkeypatch.setattr(runtime, "CRON_SECRET", "")
    assert client.get("/api/cron/sync-folders").status_code == 500

    monkeypatch.setattr(runtime, "CRON_SECRET", "s3cret")
    assert client.get("/api/cron/sync-folders").status_code == 401

    fake_db.seed("students", "s1", {"displayName": "Anna"})
    fake_drive.folders = [{"id": FOLDER_A, "name": "Anna", "subject": "Wiskunde"}]
    payload = client.get("/api/cron/sync-folders", headers={"Authorization": "Bearer s3cret"}).get_json()

    assert payload["linked"] == 1
    assert payload["timestamp"]


def test_metadata_preload_and_status(client, fake_drive, as_teacher):
    fake_drive.folders = [{"id": FOLDER_A, "name": "Anna", "subject": "Wiskunde"}]
    fake_drive.files[FOLDER_A] = [drive_file("f1", "les.pdf")]

    assert client.get("/api/metadata/status").get_json()["cached"] is False
    assert client.post("/api/metadata/preload").get_json()["success"] is True

    status = client.get("/api/metadata/status").get_json()
    assert status["valid"] is True
    assert status["totalStudents"] == 1
    assert status["totalFiles"] == 1


def test_metadata_preload_requires_teacher(client):
    assert client.post("/api/metadata/preload").status_code == 401


def _pdf_bytes():
    document = fitz.open()
    page = document.new_page(width=200, height=280)
    page.insert_text((20, 40), "Breuken")
    data = document.tobytes()
    document.close()
    return data


def test_thumbnail_renders_png(client, fake_drive):
    fake_drive.file_info["f1"] = {"id": "f1", "mimeType": "application/pdf"}
    fake_drive.pdf_bytes = _pdf_bytes()

    response = client.get("/api/thumbnail/f1?size=small")

    assert response.status_code == 200
    assert response.mimetype == "image/png"
    assert response.data.startswith(b"\x89PNG")
    assert response.headers["Cache-Control"] == "public, max-age=86400"


def test_thumbnail_error_paths(client, fake_drive, monkeypatch):
    fake_drive.file_info["doc"] = {"id": "doc", "mimeType": "application/vnd.google-apps.document"}
    fake_drive.file_info["broken"] = {"id": "broken", "mimeType": "application/pdf"}
    fake_drive.pdf_bytes = b"not a pdf"

    assert client.get("/api/thumbnail/missing").status_code == 404
    assert client.get("/api/thumbnail/doc").status_code == 400

    fallback = client.get("/api/thumbnail/broken")
    assert fallback.status_code == 200
    assert fallback.mimetype == "image/svg+xml"

    def _boom(_file_id):
        raise RuntimeError("drive offline")

    monkeypatch.setattr(fake_drive, "get_file_info", _boom)
    offline = client.get("/api/thumbnail/anything")
    assert offline.status_code == 200
    assert offline.mimetype == "image/svg+xml"


def test_thumbnail_rate_limited(client, monkeypatch):
    monkeypatch.setattr(runtime, "check_rate_limit", lambda **_kwargs: (False, 12))

    response = client.get("/api/thumbnail/f1")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "12"


def test_placeholder_svg(client):
    response = client.get("/api/placeholder/abcdef123456")

    assert response.status_code == 200
    assert response.mimetype == "image/svg+xml"
    assert b"abcdef12" in response.data
