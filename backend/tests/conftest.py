import importlib
import os
import threading
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("BCRYPT_ROUNDS", "4")

from ainotes.storage.base import Note, StorageUnavailable, utc_now  # noqa: E402

APPWRITE_VARS = (
    "APPWRITE_ENDPOINT",
    "APPWRITE_PROJECT_ID",
    "APPWRITE_DB_ID",
    "APPWRITE_COLLECTION_ID",
    "APPWRITE_API_KEY",
)


@pytest.fixture()
def client(tmp_path, monkeypatch):
    # isolate data dir per test and force the local backend
    monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("JWT_SECRET", "test-secret")
    # most API tests act as a user through the X-User-Id header
    monkeypatch.setenv("AUTH_TRUST_USER_HEADER", "1")
    for name in APPWRITE_VARS:
        monkeypatch.delenv(name, raising=False)

    # reload modules so the routers pick up new env vars
    import ainotes.api.notes
    import ainotes.api.auth
    import ainotes.main
    importlib.reload(ainotes.api.notes)
    importlib.reload(ainotes.api.auth)
    importlib.reload(ainotes.main)

    return TestClient(ainotes.main.app)


class FakeAdapter:
    """In-memory adapter with switches for failures and blocking list calls."""

    name = "fake"

    def __init__(self):
        self.rows: dict[str, Note] = {}
        self.fail = False
        self.gates: dict[str, threading.Event] = {}
        self.list_calls: list[str] = []
        self._seq = 0
        self._clock = utc_now()

    def _tick(self):
        self._clock = self._clock + timedelta(seconds=1)
        return self._clock

    def _check(self):
        if self.fail:
            raise StorageUnavailable("backend down")

    def add(self, owner_id, title, content="") -> Note:
        return self.create(owner_id, title, content)

    def list(self, owner_id):
        self.list_calls.append(owner_id)
        gate = self.gates.get(owner_id)
        if gate is not None:
            gate.wait(timeout=5)
        self._check()
        notes = [n for n in self.rows.values() if n.owner_id == owner_id]
        return sorted(notes, key=lambda n: n.updated_at, reverse=True)

    def get(self, note_id):
        self._check()
        return self.rows.get(note_id)

    def create(self, owner_id, title, content):
        self._check()
        self._seq += 1
        now = self._tick()
        note = Note(id=f"n{self._seq}", owner_id=owner_id, title=title, content=content, created_at=now, updated_at=now)
        self.rows[note.id] = note
        return note

    def update(self, note_id, title, content):
        self._check()
        old = self.rows.get(note_id)
        if old is None:
            return None
        note = Note(
            id=old.id,
            owner_id=old.owner_id,
            title=title,
            content=content,
            created_at=old.created_at,
            updated_at=self._tick(),
        )
        self.rows[note_id] = note
        return note

    def delete(self, note_id):
        self._check()
        return self.rows.pop(note_id, None) is not None


@pytest.fixture()
def adapter():
    return FakeAdapter()
