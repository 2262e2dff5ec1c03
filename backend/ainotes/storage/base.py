from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol


class NotesError(Exception):
    """Base class for notes storage errors."""


class StorageUnavailable(NotesError):
    """Backend unreachable, misconfigured, or returned something we cannot parse."""


class NotFound(NotesError):
    pass


class Unauthenticated(NotesError):
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: str) -> datetime:
    # fromisoformat() before 3.11 does not accept a trailing "Z"
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class Note:
    id: str
    owner_id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Note":
        return cls(
            id=str(raw["id"]),
            owner_id=str(raw["owner_id"]),
            title=raw.get("title") or "",
            content=raw.get("content") or "",
            created_at=parse_timestamp(raw["created_at"]),
            updated_at=parse_timestamp(raw["updated_at"]),
        )


def sort_by_recency(notes: list[Note]) -> list[Note]:
    return sorted(notes, key=lambda n: n.updated_at, reverse=True)


class PersistenceAdapter(Protocol):
    """Storage backend for notes.

    Implementations are blocking; NotesStore runs them off the event loop.
    """

    name: str

    def list(self, owner_id: str) -> list[Note]: ...

    def get(self, note_id: str) -> Note | None: ...

    def create(self, owner_id: str, title: str, content: str) -> Note: ...

    def update(self, note_id: str, title: str, content: str) -> Note | None: ...

    def delete(self, note_id: str) -> bool: ...
