import copy
import uuid

import pytest

from tutor_portal import create_app, runtime
from tutor_portal.services import security_service

TEACHER_CLAIMS = {
    "uid": "teacher-u1",
    "email": "lessons@stephensprivelessen.nl",
    "name": "Stephen",
    "picture": "",
    "email_verified": True,
}

_OPERATORS = {
    "==": lambda left, right: left == right,
    "!=": lambda left, right: left != right,
    "<": lambda left, right: left is not None and left < right,
    "<=": lambda left, right: left is not None and left <= right,
    ">": lambda left, right: left is not None and left > right,
    ">=": lambda left, right: left is not None and left >= right,
    "in": lambda left, right: left in right,
    "array_contains": lambda left, right: right in (left or []),
}


class FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self):
        return self._data is not None

    def to_dict(self):
        return copy.deepcopy(self._data) if self._data is not None else None


class FakeDocumentRef:
    def __init__(self, db, path, doc_id):
        self._db = db
        self._path = path
        self.id = doc_id

    @property
    def _store(self):
        return self._db.data.setdefault(self._path, {})

    def get(self, transaction=None):
        return FakeSnapshot(self, copy.deepcopy(self._store.get(self.id)))

    def set(self, data, merge=False):
        current = self._store.get(self.id) if merge else None
        merged = dict(current or {})
        merged.update(copy.deepcopy(data))
        self._store[self.id] = merged

    def update(self, updates):
        if self.id not in self._store:
            raise KeyError(f"No document to update: {self._path}/{self.id}")
        self._store[self.id].update(copy.deepcopy(updates))

    def delete(self):
        self._store.pop(self.id, None)

    def collection(self, name):
        return FakeCollection(self._db, f"{self._path}/{self.id}/{name}")


class FakeQuery:
    def __init__(self, db, path, filters=None, orders=None, limit_count=None):
        self._db = db
        self._path = path
        self._filters = list(filters or [])
        self._orders = list(orders or [])
        self._limit = limit_count

    def _copy(self, **changes):
        params = {
            "filters": self._filters,
            "orders": self._orders,
            "limit_count": self._limit,
        }
        params.update(changes)
        return FakeQuery(self._db, self._path, **params)

    def where(self, *args, **kwargs):
        if "filter" in kwargs:
            raise TypeError("filter keyword unsupported")
        field_path, op_string, value = args
        return self._copy(filters=self._filters + [(field_path, op_string, value)])

    def order_by(self, field_path, direction=None):
        return self._copy(orders=self._orders + [(field_path, direction)])

    def limit(self, count):
        return self._copy(limit_count=count)

    def stream(self):
        store = self._db.data.get(self._path, {})
        rows = []
        for doc_id, data in store.items():
            if all(_OPERATORS[op](data.get(field), value) for field, op, value in self._filters):
                rows.append((doc_id, data))
        for field_path, direction in reversed(self._orders):
            rows.sort(key=lambda row: str(row[1].get(field_path) or ""), reverse=direction == "DESCENDING")
        if self._limit is not None:
            rows = rows[:self._limit]
        return [
            FakeSnapshot(FakeDocumentRef(self._db, self._path, doc_id), copy.deepcopy(data))
            for doc_id, data in rows
        ]

    def get(self):
        return self.stream()


class FakeCollection(FakeQuery):
    def __init__(self, db, path):
        super().__init__(db, path)

    def document(self, doc_id=None):
        return FakeDocumentRef(self._db, self._path, doc_id or uuid.uuid4().hex[:20])


class FakeBatch:
    MAX_WRITES = 500

    def __init__(self, db=None):
        self._db = db
        self._ops = []
        self.committed = False

    def set(self, ref, data, merge=False):
        self._ops.append(lambda: ref.set(data, merge=merge))

    def update(self, ref, updates):
        self._ops.append(lambda: ref.update(updates))

    def delete(self, ref):
        self._ops.append(ref.delete)

    def commit(self):
        if len(self._ops) > self.MAX_WRITES:
            raise RuntimeError(f"maximum {self.MAX_WRITES} writes allowed per request")
        if self._db is not None and self._db.commit_limit is not None and len(self._db.commits) >= self._db.commit_limit:
            raise RuntimeError("commit rejected")
        if self._db is not None:
            self._db.commits.append(len(self._ops))
        for op in self._ops:
            op()
        self.committed = True


class FakeTransaction:
    def __init__(self):
        self.writes = 0

    def set(self, ref, data, merge=False):
        self.writes += 1
        ref.set(data, merge=merge)


class FakeFirestore:
    """In-memory stand-in for the handful of Firestore calls the app makes."""

    def __init__(self):
        self.data = {}
        self.commits = []
        self.commit_limit = None

    def collection(self, name):
        return FakeCollection(self, name)

    def batch(self):
        return FakeBatch(self)

    def transaction(self):
        return FakeTransaction()

    def seed(self, collection, doc_id, data):
        self.data.setdefault(collection, {})[doc_id] = copy.deepcopy(data)
        return doc_id

    def docs(self, collection):
        return self.data.get(collection, {})


class FakeDrive:
    def __init__(self, folders=None, files=None, file_info=None, pdf_bytes=b""):
        self.folders = list(folders or [])
        self.files = dict(files or {})
        self.file_info = dict(file_info or {})
        self.pdf_bytes = pdf_bytes
        self.cleared = 0
        self.cached_metadata = None

    def get_all_students(self):
        return list(self.folders)

    def find_student_folders(self, needle):
        needle = str(needle or "").lower()
        return [folder for folder in self.folders if needle in folder["name"].lower()]

    def get_folder_name(self, folder_id):
        for folder in self.folders:
            if folder["id"] == folder_id:
                return folder["name"]
        return ""

    def list_files_in_folder(self, folder_id):
        return [dict(entry) for entry in self.files.get(folder_id, [])]

    def get_student_overview(self, folder_id):
        files = self.files.get(folder_id, [])
        return {"fileCount": len(files), "lastActivity": None, "lastActivityDate": "Geen bestanden"}

    def get_file_info(self, file_id):
        return self.file_info.get(file_id)

    def download_file(self, file_id):
        return self.pdf_bytes

    def clear_cache(self):
        self.cleared += 1
        return 3

    def preload_metadata(self, analyze_document):
        self.cached_metadata = {
            "students": self.folders,
            "metadata": [],
            "totalStudents": len(self.folders),
            "totalFiles": sum(len(files) for files in self.files.values()),
            "lastUpdated": "2025-01-31T12:00:00+00:00",
        }
        return {"success": True, "message": "Metadata preloaded", "data": self.cached_metadata}

    def get_cached_metadata(self):
        return self.cached_metadata


def drive_file(file_id, name, modified="2025-01-20T10:00:00.000Z"):
    return {
        "id": file_id,
        "name": name,
        "title": name.rsplit(".", 1)[0],
        "modifiedTime": modified,
        "size": "1024",
        "thumbnailUrl": f"/api/thumbnail/{file_id}",
        "downloadUrl": f"https://drive.google.com/uc?export=download&id={file_id}",
        "viewUrl": f"https://drive.google.com/file/d/{file_id}/view",
    }


@pytest.fixture(autouse=True)
def isolate_runtime(monkeypatch):
    monkeypatch.setattr(runtime, "sentry_sdk", None)
    monkeypatch.setattr(runtime, "db", None)
    monkeypatch.setattr(runtime, "drive_service", FakeDrive())
    monkeypatch.setattr(runtime, "client", None)
    monkeypatch.setattr(runtime, "check_rate_limit", lambda **_kwargs: (True, 0))
    monkeypatch.setattr(runtime, "get_teacher_claims", lambda _request: None)
    monkeypatch.setattr(security_service, "BCRYPT_ROUNDS", 4)
    runtime.AI_ANALYSIS_CACHE.clear()


@pytest.fixture()
def background_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(runtime, "trigger_background_sync", lambda student_id: calls.append(("student", student_id)))
    monkeypatch.setattr(runtime, "start_full_sync", lambda: calls.append(("full", None)))
    monkeypatch.setattr(runtime, "start_reanalyze_all", lambda: calls.append(("reanalyze", None)))
    return calls


@pytest.fixture()
def fake_db(monkeypatch):
    db = FakeFirestore()
    monkeypatch.setattr(runtime, "db", db)
    return db


@pytest.fixture()
def fake_drive(monkeypatch):
    drive = FakeDrive()
    monkeypatch.setattr(runtime, "drive_service", drive)
    return drive


@pytest.fixture()
def as_teacher(monkeypatch):
    monkeypatch.setattr(runtime, "get_teacher_claims", lambda _request: dict(TEACHER_CLAIMS))
    return dict(TEACHER_CLAIMS)


@pytest.fixture()
def app(monkeypatch, background_calls):
    monkeypatch.delenv("RENDER", raising=False)
    monkeypatch.delenv("SENTRY_ENVIRONMENT", raising=False)
    monkeypatch.delenv("ENV", raising=False)
    monkeypatch.setenv("FLASK_ENV", "development")
    flask_app = create_app()
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as test_client:
        yield test_client
