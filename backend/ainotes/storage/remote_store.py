from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from ainotes.storage.base import Note, StorageUnavailable, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class RemoteDocument(BaseModel):
    """A note document as the document store returns it.

    Timestamps and ``$id`` are owned by the backend; we never send them.
    """

    id: str = Field(alias="$id", min_length=1)
    title: str | None = None
    content: str | None = None
    user_id: str = Field(alias="userId")
    created_at: datetime = Field(alias="$createdAt")
    updated_at: datetime = Field(alias="$updatedAt")

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _utc(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_timestamp(v)
        return v

    def to_note(self) -> Note:
        return Note(
            id=self.id,
            owner_id=self.user_id,
            title=self.title or "",
            content=self.content or "",
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def _query(method: str, attribute: str | None = None, values: list[Any] | None = None) -> str:
    q: dict[str, Any] = {"method": method}
    if attribute is not None:
        q["attribute"] = attribute
    if values is not None:
        q["values"] = values
    return json.dumps(q, separators=(",", ":"))


def _parse_document(raw: Any) -> Note:
    try:
        return RemoteDocument.model_validate(raw).to_note()
    except ValidationError as exc:
        raise StorageUnavailable(f"Malformed note document: {exc.error_count()} validation error(s)") from exc


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return f"Document store returned HTTP {response.status_code}"


class RemoteDocumentAdapter:
    """Notes stored in an Appwrite-compatible hosted document collection."""

    name = "remote"

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        database_id: str,
        collection_id: str,
        api_key: str | None = None,
        timeout_s: float = 10.0,
        page_size: int = DEFAULT_PAGE_SIZE,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "X-Appwrite-Project": project_id,
        }
        if api_key:
            headers["X-Appwrite-Key"] = api_key

        self._collection_path = f"/databases/{database_id}/collections/{collection_id}/documents"
        self._page_size = page_size
        self._client = httpx.Client(
            base_url=endpoint.rstrip("/"),
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Document store request %s %s failed: %s", method, path, exc)
            raise StorageUnavailable(str(exc) or "Document store unreachable") from exc

    def _json(self, response: httpx.Response) -> Any:
        if response.is_error:
            raise StorageUnavailable(_error_message(response))
        try:
            return response.json()
        except ValueError as exc:
            raise StorageUnavailable("Document store returned invalid JSON") from exc

    def list(self, owner_id: str) -> list[Note]:
        params = [
            ("queries[]", _query("equal", "userId", [owner_id])),
            ("queries[]", _query("orderDesc", "$updatedAt")),
            ("queries[]", _query("limit", values=[self._page_size])),
            ("queries[]", _query("offset", values=[0])),
        ]
        body = self._json(self._request("GET", self._collection_path, params=params))
        documents = body.get("documents") if isinstance(body, dict) else None
        if not isinstance(documents, list):
            raise StorageUnavailable("Document list response has no 'documents' array")
        return [_parse_document(d) for d in documents]

    def get(self, note_id: str) -> Note | None:
        response = self._request("GET", f"{self._collection_path}/{note_id}")
        if response.status_code == 404:
            return None
        return _parse_document(self._json(response))

    def create(self, owner_id: str, title: str, content: str) -> Note:
        payload = {
            "documentId": "unique()",
            "data": {"title": title, "content": content, "userId": owner_id},
        }
        response = self._request("POST", self._collection_path, json=payload)
        return _parse_document(self._json(response))

    def update(self, note_id: str, title: str, content: str) -> Note | None:
        payload = {"data": {"title": title, "content": content}}
        response = self._request("PATCH", f"{self._collection_path}/{note_id}", json=payload)
        if response.status_code == 404:
            return None
        return _parse_document(self._json(response))

    def delete(self, note_id: str) -> bool:
        response = self._request("DELETE", f"{self._collection_path}/{note_id}")
        if response.status_code == 404:
            return False
        if response.is_error:
            raise StorageUnavailable(_error_message(response))
        return True
