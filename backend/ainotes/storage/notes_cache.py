from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict

from ainotes.search import search_notes
from ainotes.storage.base import (
    Note,
    PersistenceAdapter,
    StorageUnavailable,
    Unauthenticated,
    sort_by_recency,
)

logger = logging.getLogger(__name__)


class NotesStore:
    """In-memory notes list for one owner, kept in step with a persistence adapter.

    All adapter calls run in a worker thread, so while one is pending the
    cache still holds its last committed state. Every owner change bumps
    ``_owner_epoch``; results that come back for an older epoch are dropped.
    Loads carry their own counter so a slow refresh cannot overwrite a newer one.
    """

    def __init__(self, adapter: PersistenceAdapter):
        self.adapter = adapter
        self.owner_id: str | None = None
        self.notes: list[Note] = []
        self.loading = False
        self.error: str | None = None
        self._owner_epoch = 0
        self._load_seq = 0
        self._note_locks: dict[str, asyncio.Lock] = {}

    async def set_owner(self, owner_id: str | None) -> None:
        if owner_id == self.owner_id and self._owner_epoch > 0:
            return

        self._owner_epoch += 1
        self.owner_id = owner_id
        self.notes = []
        self.error = None
        self._note_locks.clear()

        if owner_id is None:
            self._load_seq += 1
            self.loading = False
            return

        await self._load()

    async def refresh(self) -> None:
        if self.owner_id is None:
            self.notes = []
            self.loading = False
            return
        await self._load()

    async def _load(self) -> None:
        self._load_seq += 1
        seq = self._load_seq
        owner_id = self.owner_id
        self.loading = True

        try:
            loaded = await asyncio.to_thread(self.adapter.list, owner_id)
        except StorageUnavailable as exc:
            if seq != self._load_seq:
                return
            logger.error("Failed to load notes for owner %s from %s storage: %s", owner_id, self.adapter.name, exc)
            self.notes = []
            self.error = str(exc)
            self.loading = False
            return

        if seq != self._load_seq:
            logger.debug("Discarding stale notes load for owner %s", owner_id)
            return

        self.notes = sort_by_recency([n for n in loaded if n.owner_id == owner_id])
        self.error = None
        self.loading = False

    def _require_owner(self) -> str:
        if self.owner_id is None:
            raise Unauthenticated("Not authenticated")
        return self.owner_id

    def _lock_for(self, note_id: str) -> asyncio.Lock:
        lock = self._note_locks.get(note_id)
        if lock is None:
            lock = asyncio.Lock()
            self._note_locks[note_id] = lock
        return lock

    def get(self, note_id: str) -> Note | None:
        for n in self.notes:
            if n.id == note_id:
                return n
        return None

    def search(self, query: str) -> list[Note]:
        return search_notes(query, self.notes)

    async def create(self, title: str, content: str) -> Note:
        owner_id = self._require_owner()
        epoch = self._owner_epoch

        try:
            note = await asyncio.to_thread(self.adapter.create, owner_id, title, content)
        except StorageUnavailable:
            logger.exception("Failed to create note for owner %s", owner_id)
            raise

        if epoch == self._owner_epoch:
            self.notes = [note] + [n for n in self.notes if n.id != note.id]
        return note

    async def update(self, note_id: str, title: str, content: str) -> Note | None:
        self._require_owner()
        epoch = self._owner_epoch

        async with self._lock_for(note_id):
            if epoch != self._owner_epoch or self.get(note_id) is None:
                return None

            try:
                updated = await asyncio.to_thread(self.adapter.update, note_id, title, content)
            except StorageUnavailable:
                logger.exception("Failed to update note %s", note_id)
                raise

            if updated is None:
                logger.warning("Note %s vanished from %s storage before update", note_id, self.adapter.name)
                return None

            if epoch == self._owner_epoch:
                replaced = [updated if n.id == note_id else n for n in self.notes]
                self.notes = sort_by_recency(replaced)
            return updated

    async def delete(self, note_id: str) -> bool:
        self._require_owner()
        epoch = self._owner_epoch

        async with self._lock_for(note_id):
            if epoch != self._owner_epoch or self.get(note_id) is None:
                return False

            try:
                removed = await asyncio.to_thread(self.adapter.delete, note_id)
            except StorageUnavailable:
                logger.exception("Failed to delete note %s", note_id)
                raise

            if not removed:
                return False

            # removal keeps relative order, no re-sort
            if epoch == self._owner_epoch:
                self.notes = [n for n in self.notes if n.id != note_id]
        self._note_locks.pop(note_id, None)
        return True


class NotesStoreRegistry:
    """One NotesStore per signed-in owner, all sharing a single adapter.

    A store is only handed out once its first load has finished; callers
    arriving mid-load wait on the same pending load. At most ``max_owners``
    stores are kept, least recently used first out.
    """

    def __init__(self, adapter: PersistenceAdapter, max_owners: int = 256):
        self.adapter = adapter
        self.max_owners = max_owners
        self._stores: OrderedDict[str, NotesStore] = OrderedDict()
        self._pending: dict[str, asyncio.Future[NotesStore]] = {}

    def __contains__(self, owner_id: str) -> bool:
        return owner_id in self._stores

    async def for_owner(self, owner_id: str) -> NotesStore:
        store = self._stores.get(owner_id)
        if store is not None:
            self._stores.move_to_end(owner_id)
            if store.error is not None:
                await store.refresh()
            return store

        pending = self._pending.get(owner_id)
        if pending is not None:
            return await asyncio.shield(pending)

        pending = asyncio.get_running_loop().create_future()
        self._pending[owner_id] = pending
        store = NotesStore(self.adapter)
        try:
            await store.set_owner(owner_id)
        except BaseException:
            pending.cancel()
            raise
        finally:
            self._pending.pop(owner_id, None)

        self._stores[owner_id] = store
        await self._evict()
        pending.set_result(store)
        return store

    async def _evict(self) -> None:
        while len(self._stores) > self.max_owners:
            owner_id, store = self._stores.popitem(last=False)
            logger.debug("Evicting notes cache for owner %s", owner_id)
            await store.set_owner(None)

    async def discard(self, owner_id: str) -> None:
        store = self._stores.pop(owner_id, None)
        if store is not None:
            await store.set_owner(None)
