from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Any

from ainotes.storage.base import Note, StorageUnavailable, sort_by_recency, utc_now

logger = logging.getLogger(__name__)

# one collection for every owner, like the browser localStorage key it replaces
NOTES_KEY = "ai_notes_data"


def _atomic_write_json(path: Path, data: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # unique temp name per write so concurrent writers never share a file
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=path.name + ".", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        tmp_path.replace(path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise


class LocalStorageAdapter:
    """Notes kept in a single JSON document on disk.

    Reads filter the whole collection by owner; writes replace one owner's
    subset and keep everyone else's notes untouched. A missing or corrupt
    file reads as an empty collection.

    Callers run these methods from worker threads, so every
    load-modify-save holds ``_lock`` for its whole span.
    """

    name = "local"

    def __init__(self, base_dir: Path, key: str = NOTES_KEY):
        self.base_dir = base_dir
        self.path = base_dir / f"{key}.json"
        self._lock = threading.RLock()

    def _load_all(self) -> list[Note]:
        if not self.path.exists():
            return []
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Local notes collection at %s is unreadable; treating as empty", self.path)
            return []
        if not isinstance(raw, list):
            logger.warning("Local notes collection at %s is not a list; treating as empty", self.path)
            return []

        out: list[Note] = []
        for item in raw:
            try:
                out.append(Note.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError):
                # skip the record, keep the rest
                continue
        return out

    def _save_owner(self, owner_id: str, owner_notes: list[Note]) -> None:
        others = [n for n in self._load_all() if n.owner_id != owner_id]
        try:
            _atomic_write_json(self.path, [n.to_dict() for n in others + owner_notes])
        except OSError as exc:
            logger.error("Could not write local notes collection at %s: %s", self.path, exc)
            raise StorageUnavailable(str(exc)) from exc

    def _owned(self, owner_id: str) -> list[Note]:
        return sort_by_recency([n for n in self._load_all() if n.owner_id == owner_id])

    def list(self, owner_id: str) -> list[Note]:
        with self._lock:
            return self._owned(owner_id)

    def get(self, note_id: str) -> Note | None:
        with self._lock:
            for n in self._load_all():
                if n.id == note_id:
                    return n
            return None

    def create(self, owner_id: str, title: str, content: str) -> Note:
        now = utc_now()
        note = Note(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._save_owner(owner_id, [note] + self._owned(owner_id))
        return note

    def update(self, note_id: str, title: str, content: str) -> Note | None:
        with self._lock:
            existing = self.get(note_id)
            if existing is None:
                return None

            now = utc_now()
            if now <= existing.updated_at:
                now = existing.updated_at + timedelta(microseconds=1)

            updated = Note(
                id=existing.id,
                owner_id=existing.owner_id,
                title=title,
                content=content,
                created_at=existing.created_at,
                updated_at=now,
            )
            owner_notes = [updated if n.id == note_id else n for n in self._owned(existing.owner_id)]
            self._save_owner(existing.owner_id, sort_by_recency(owner_notes))
            return updated

    def delete(self, note_id: str) -> bool:
        with self._lock:
            existing = self.get(note_id)
            if existing is None:
                return False
            owner_notes = [n for n in self._owned(existing.owner_id) if n.id != note_id]
            self._save_owner(existing.owner_id, owner_notes)
            return True
