from __future__ import annotations

import json
import threading
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from ainotes.storage.local_store import _atomic_write_json

USERS_KEY = "ai_notes_users"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def display_name(name: str, email: str) -> str:
    if name and name.strip():
        return name.strip()
    return email.split("@")[0] if email else "User"


@dataclass(frozen=True)
class UserRecord:
    id: str
    name: str
    email: str
    hashed_password: str
    created_at: str

    def public(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "email": self.email}


class UsersStore:
    def __init__(self, base_dir: Path):
        self.base_dir = base_dir
        self.path = base_dir / f"{USERS_KEY}.json"
        self._lock = threading.Lock()

    def _load(self) -> list[UserRecord]:
        if not self.path.exists():
            return []
        raw = json.loads(self.path.read_text(encoding="utf-8"))
        return [UserRecord(**r) for r in raw]

    def get(self, user_id: str) -> Optional[UserRecord]:
        for rec in self._load():
            if rec.id == user_id:
                return rec
        return None

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        wanted = _normalize_email(email)
        for rec in self._load():
            if rec.email == wanted:
                return rec
        return None

    def create(self, name: str, email: str, hashed_password: str) -> UserRecord:
        normalized = _normalize_email(email)
        with self._lock:
            users = self._load()
            if any(u.email == normalized for u in users):
                raise FileExistsError("Email already exists")

            rec = UserRecord(
                id=uuid.uuid4().hex,
                name=display_name(name, normalized),
                email=normalized,
                hashed_password=hashed_password,
                created_at=datetime.now(timezone.utc).isoformat(),
            )
            _atomic_write_json(self.path, [asdict(u) for u in users + [rec]])
        return rec
