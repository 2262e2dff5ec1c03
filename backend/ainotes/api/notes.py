import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ainotes.config import load_settings
from ainotes.models.notes import AiSearchRequest, NoteCreate, NoteOut, NoteRefOut, NoteUpdate, SearchOut
from ainotes.search import AiSearch, unified_search
from ainotes.storage.backend import build_adapter
from ainotes.storage.base import NotFound, StorageUnavailable
from ainotes.storage.event_log import Event, EventLog
from ainotes.storage.notes_cache import NotesStore, NotesStoreRegistry
from ainotes.utils.jwt_auth import CurrentUser, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notes", tags=["notes"])

settings = load_settings()
adapter = build_adapter(settings)
registry = NotesStoreRegistry(adapter, max_owners=settings.notes_cache_max_owners)
event_log = EventLog(settings.data_dir)

# external AI search call-out; None means local search only
ai_search: AiSearch | None = None


def _unavailable(exc: StorageUnavailable) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Storage unavailable: {exc}")


async def _store(user_id: str) -> NotesStore:
    store = await registry.for_owner(user_id)
    if store.error is not None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Storage unavailable: {store.error}")
    return store


@router.get("", response_model=list[NoteOut])
async def list_notes(user: CurrentUser = Depends(get_current_user)) -> list[NoteOut]:
    store = await _store(user.id)
    return [NoteOut.from_note(n) for n in store.notes]


@router.post("/refresh", response_model=list[NoteOut])
async def refresh_notes(user: CurrentUser = Depends(get_current_user)) -> list[NoteOut]:
    store = await registry.for_owner(user.id)
    await store.refresh()
    if store.error is not None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Storage unavailable: {store.error}")
    return [NoteOut.from_note(n) for n in store.notes]


@router.get("/search", response_model=list[NoteOut])
async def search(q: str = Query(default="", max_length=500), user: CurrentUser = Depends(get_current_user)) -> list[NoteOut]:
    store = await _store(user.id)
    return [NoteOut.from_note(n) for n in store.search(q)]


@router.post("/ai-search", response_model=SearchOut)
async def ai_search_notes(payload: AiSearchRequest, user: CurrentUser = Depends(get_current_user)) -> SearchOut:
    store = await _store(user.id)
    outcome = await unified_search(payload.query, store, ai_search)
    results = None if outcome.results is None else [NoteRefOut.from_ref(r) for r in outcome.results]
    return SearchOut(results=results, source=outcome.source, message=outcome.message, error=outcome.error)


@router.get("/{note_id}", response_model=NoteOut)
async def get_note(note_id: str, user: CurrentUser = Depends(get_current_user)) -> NoteOut:
    store = await _store(user.id)
    note = store.get(note_id)
    if note is None:
        raise NotFound("Note not found")
    return NoteOut.from_note(note)


@router.post("", response_model=NoteOut, status_code=201)
async def create_note(payload: NoteCreate, user: CurrentUser = Depends(get_current_user)) -> NoteOut:
    store = await _store(user.id)
    try:
        note = await store.create(payload.title, payload.content)
    except StorageUnavailable as exc:
        raise _unavailable(exc)

    event_log.emit(Event(event_type="NOTE_CREATED", user_id=user.id, note_id=note.id, meta={"storage": adapter.name}))
    return NoteOut.from_note(note)


@router.put("/{note_id}", response_model=NoteOut)
async def update_note(note_id: str, payload: NoteUpdate, user: CurrentUser = Depends(get_current_user)) -> NoteOut:
    store = await _store(user.id)
    try:
        updated = await store.update(note_id, payload.title, payload.content)
    except StorageUnavailable as exc:
        raise _unavailable(exc)
    if updated is None:
        raise NotFound("Note not found")

    event_log.emit(Event(event_type="NOTE_UPDATED", user_id=user.id, note_id=note_id))
    return NoteOut.from_note(updated)


@router.delete("/{note_id}", status_code=204)
async def delete_note(note_id: str, user: CurrentUser = Depends(get_current_user)) -> None:
    store = await _store(user.id)
    try:
        removed = await store.delete(note_id)
    except StorageUnavailable as exc:
        raise _unavailable(exc)
    if not removed:
        raise NotFound("Note not found")

    event_log.emit(Event(event_type="NOTE_DELETED", user_id=user.id, note_id=note_id))
    return None
