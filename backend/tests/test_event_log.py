import pytest

from ainotes.storage.event_log import Event, EventLog


def test_event_log_emitted_on_create_update_delete(client):
    import ainotes.api.notes

    user = "userA"
    headers = {"X-User-Id": user}

    r = client.post("/notes", headers=headers, json={"title": "t", "content": "c"})
    assert r.status_code == 201
    note_id = r.json()["id"]

    r = client.put(f"/notes/{note_id}", headers=headers, json={"title": "t2", "content": "c2"})
    assert r.status_code == 200

    r = client.delete(f"/notes/{note_id}", headers=headers)
    assert r.status_code == 204

    events = ainotes.api.notes.event_log.read(user)
    assert [e["event_type"] for e in events] == ["NOTE_CREATED", "NOTE_UPDATED", "NOTE_DELETED"]
    assert all(e["note_id"] == note_id for e in events)


def test_signup_is_audited(client):
    import ainotes.api.auth

    r = client.post("/auth/signup", json={"name": "", "email": "a@b.co", "password": "password123"})
    user_id = r.json()["user"]["id"]

    events = ainotes.api.auth.event_log.read(user_id)
    assert [e["event_type"] for e in events] == ["USER_REGISTERED"]


def test_event_log_rejects_path_like_user_ids(tmp_path):
    log = EventLog(tmp_path)
    with pytest.raises(ValueError):
        log.emit(Event(event_type="NOTE_CREATED", user_id="../escape"))
