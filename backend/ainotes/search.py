"""Note search.

``search_notes`` is the local relevance scorer: a full-phrase hit in the
title is worth 100 and in the content 50, and each distinct query word adds
20 (title) or 10 (content). ``unified_search`` tries an optional AI hook
first and always lands on the local scorer when the hook fails or finds
nothing.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol, Union

from ainotes.storage.base import Note

if TYPE_CHECKING:
    from ainotes.storage.notes_cache import NotesStore

logger = logging.getLogger(__name__)

TITLE_PHRASE_SCORE = 100
CONTENT_PHRASE_SCORE = 50
TITLE_WORD_SCORE = 20
CONTENT_WORD_SCORE = 10


def score_note(note: Note, phrase: str, words: set[str]) -> int:
    title = (note.title or "").lower()
    content = (note.content or "").lower()

    score = 0
    if phrase in title:
        score += TITLE_PHRASE_SCORE
    if phrase in content:
        score += CONTENT_PHRASE_SCORE
    for word in words:
        if word in title:
            score += TITLE_WORD_SCORE
        if word in content:
            score += CONTENT_WORD_SCORE
    return score


def search_notes(query: str, notes: Sequence[Note]) -> list[Note]:
    if not query or not query.strip():
        return list(notes)

    phrase = query.lower()
    words = set(phrase.split())

    scored = [(score_note(n, phrase, words), n) for n in notes]
    # sorted() is stable, so equal scores keep recency order
    ranked = sorted((s for s in scored if s[0] > 0), key=lambda s: s[0], reverse=True)
    return [n for _, n in ranked]


@dataclass(frozen=True)
class NoteRef:
    id: str
    title: str
    content: str

    @classmethod
    def from_note(cls, note: Note) -> "NoteRef":
        return cls(id=note.id, title=note.title, content=note.content)


AiResult = Sequence[Union[NoteRef, Mapping[str, Any]]]


class AiSearch(Protocol):
    def __call__(self, query: str) -> AiResult | Awaitable[AiResult]: ...


@dataclass(frozen=True)
class SearchOutcome:
    results: list[NoteRef] | None
    source: Literal["ai", "local", "none"]
    message: str | None = None
    error: str | None = None


def _to_refs(raw: AiResult) -> list[NoteRef]:
    refs: list[NoteRef] = []
    for item in raw:
        if isinstance(item, NoteRef):
            refs.append(item)
            continue
        if not isinstance(item, Mapping) or not item.get("id"):
            continue
        refs.append(
            NoteRef(
                id=str(item["id"]),
                title=str(item.get("title") or ""),
                content=str(item.get("content") or ""),
            )
        )
    return refs


def _local(query: str, store: "NotesStore", error: str | None = None) -> SearchOutcome:
    refs = [NoteRef.from_note(n) for n in store.search(query)]
    return SearchOutcome(
        results=refs,
        source="local",
        message=f"Local search found {len(refs)} results",
        error=error,
    )


async def unified_search(query: str, store: "NotesStore", ai_search: AiSearch | None = None) -> SearchOutcome:
    if not query or not query.strip():
        return SearchOutcome(results=None, source="none")

    if store.owner_id is None or ai_search is None:
        return _local(query, store)

    try:
        raw = ai_search(query)
        if inspect.isawaitable(raw):
            raw = await raw
        refs = _to_refs(raw or [])
    except Exception as exc:
        logger.warning("AI search failed, using local search: %s", exc)
        return _local(query, store, error="AI search failed - using normal search")

    if refs:
        return SearchOutcome(results=refs, source="ai", message=f"AI found {len(refs)} results")
    return _local(query, store)
