import json

import httpx
import pytest

from ainotes.storage.base import StorageUnavailable
from ainotes.storage.remote_store import RemoteDocumentAdapter

COLLECTION = "/v1/databases/db1/collections/notes/documents"


def _doc(doc_id, title="t", content="c", user="alice", created="2024-05-01T10:00:00.000+00:00", updated=None):
    return {
        "$id": doc_id,
        "$collectionId": "notes",
        "title": title,
        "content": content,
        "userId": user,
        "$createdAt": created,
        "$updatedAt": updated or created,
    }


def _adapter(handler):
    return RemoteDocumentAdapter(
        endpoint="https://appwrite.test/v1/",
        project_id="proj",
        database_id="db1",
        collection_id="notes",
        api_key="secret",
        transport=httpx.MockTransport(handler),
    )


def test_list_sends_owner_filter_order_and_page():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["queries"] = [json.loads(q) for q in request.url.params.get_list("queries[]")]
        seen["headers"] = request.headers
        return httpx.Response(200, json={"total": 2, "documents": [
            _doc("b", updated="2024-05-02T10:00:00.000+00:00"),
            _doc("a"),
        ]})

    notes = _adapter(handler).list("alice")

    assert [n.id for n in notes] == ["b", "a"]
    assert notes[0].owner_id == "alice"
    assert seen["path"] == COLLECTION
    assert seen["queries"] == [
        {"method": "equal", "attribute": "userId", "values": ["alice"]},
        {"method": "orderDesc", "attribute": "$updatedAt"},
        {"method": "limit", "values": [100]},
        {"method": "offset", "values": [0]},
    ]
    assert seen["headers"]["X-Appwrite-Project"] == "proj"
    assert seen["headers"]["X-Appwrite-Key"] == "secret"


def test_create_sends_only_title_content_owner():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["body"] = json.loads(request.content)
        return httpx.Response(201, json=_doc("new", title="hello", content="world"))

    note = _adapter(handler).create("alice", "hello", "world")

    assert seen["method"] == "POST"
    assert seen["body"] == {
        "documentId": "unique()",
        "data": {"title": "hello", "content": "world", "userId": "alice"},
    }
    assert note.id == "new"
    assert note.created_at == note.updated_at


def test_update_patches_title_and_content():
    seen = {}

    def handler(request):
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_doc("n1", title="t2", content="c2", updated="2024-05-03T00:00:00Z"))

    note = _adapter(handler).update("n1", "t2", "c2")

    assert seen["method"] == "PATCH"
    assert seen["path"] == f"{COLLECTION}/n1"
    assert seen["body"] == {"data": {"title": "t2", "content": "c2"}}
    assert note.title == "t2"
    assert note.updated_at > note.created_at


def test_missing_document_is_not_found_signal():
    def handler(request):
        return httpx.Response(404, json={"message": "Document not found", "code": 404})

    adapter = _adapter(handler)
    assert adapter.update("gone", "t", "c") is None
    assert adapter.delete("gone") is False
    assert adapter.get("gone") is None


def test_delete_returns_true_on_no_content():
    adapter = _adapter(lambda request: httpx.Response(204))
    assert adapter.delete("n1") is True


def test_server_error_surfaces_message():
    def handler(request):
        return httpx.Response(401, json={"message": "Project is not accessible", "code": 401})

    with pytest.raises(StorageUnavailable, match="Project is not accessible"):
        _adapter(handler).list("alice")


def test_transport_error_is_storage_unavailable():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(StorageUnavailable, match="connection refused"):
        _adapter(handler).create("alice", "t", "c")


@pytest.mark.parametrize("body", [
    {"documents": [{"$id": "x", "title": "no owner or timestamps"}]},
    {"documents": [_doc("x", created="yesterday")]},
    {"total": 0},
    ["not", "an", "object"],
])
def test_malformed_payload_is_storage_unavailable(body):
    adapter = _adapter(lambda request: httpx.Response(200, json=body))
    with pytest.raises(StorageUnavailable):
        adapter.list("alice")


def test_null_title_and_content_become_empty():
    doc = _doc("n1")
    doc["title"] = None
    doc["content"] = None
    adapter = _adapter(lambda request: httpx.Response(200, json={"documents": [doc]}))

    note = adapter.list("alice")[0]
    assert note.title == ""
    assert note.content == ""
