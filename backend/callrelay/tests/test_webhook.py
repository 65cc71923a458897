from datetime import datetime

from callrelay.models import CallRecord

CONTACT_NUMBER = "+15557654321"


def _event(event_type, **call):
    payload = {
        "id": "c1",
        "from": CONTACT_NUMBER,
        "to": "+15551230000",
        "createdAt": "2024-05-15T14:30:00.000Z",
    }
    payload.update(call)
    return {"type": event_type, "data": {"object": payload}}


def _rows(db_session):
    db_session.expire_all()
    return db_session.query(CallRecord).order_by(CallRecord.call_id).all()


def test_malformed_events_are_ignored(client, crm, db_session):
    for body in ({}, {"type": "call.completed"}, {"type": "call.completed", "data": {"object": {"from": "+1"}}}):
        response = client.post("/openphone-webhook", json=body)
        assert response.status_code == 200
        assert response.text == "ignored"
    response = client.post("/openphone-webhook", content=b"not json")
    assert response.status_code == 200
    assert response.text == "ignored"
    assert crm.calls == 0
    assert _rows(db_session) == []


def test_unknown_event_type_has_no_side_effects(client, crm, db_session):
    response = client.post("/openphone-webhook", json=_event("call.ringing"))
    assert response.status_code == 200
    assert response.text == "ignored"
    assert crm.calls == 0
    assert _rows(db_session) == []


def test_unrouted_numbers_never_write(client, crm, db_session):
    body = _event("call.completed", to="+19990000000")
    response = client.post("/openphone-webhook", json=body)
    assert response.status_code == 200
    assert response.text == "unrouted"
    assert crm.calls == 0
    assert _rows(db_session) == []


def test_routes_on_from_or_to(client, crm, db_session):
    crm.contacts[CONTACT_NUMBER] = "ct1"
    outbound = _event("call.completed", id="out", **{"from": "+1 (555) 987-0000", "to": "+1 555 765 4321"})
    inbound = _event("call.completed", id="in")
    assert client.post("/openphone-webhook", json=outbound).text == "call recorded"
    assert client.post("/openphone-webhook", json=inbound).text == "call recorded"
    assert crm.lookups == [("globex-key", CONTACT_NUMBER), ("acme-key", CONTACT_NUMBER)]
    rows = {row.call_id: row for row in _rows(db_session)}
    assert rows["out"].tenant_id == "globex"
    assert rows["out"].originating_number == "+15559870000"
    assert rows["in"].credential == "acme-key"
    assert rows["in"].originating_number == "+15551230000"


def test_contact_not_found_skips_storage(client, crm, db_session):
    response = client.post("/openphone-webhook", json=_event("call.completed"))
    assert response.status_code == 200
    assert response.text == "contact not found"
    assert _rows(db_session) == []


def test_call_progress_is_idempotent(client, crm, db_session):
    crm.contacts[CONTACT_NUMBER] = "ct1"
    body = _event("call.completed", answeredAt="2024-05-15T14:30:05Z")
    assert client.post("/openphone-webhook", json=body).text == "call recorded"
    second = client.post("/openphone-webhook", json=body)
    assert second.status_code == 200
    assert second.text == "duplicate call ignored"
    rows = _rows(db_session)
    assert len(rows) == 1
    assert rows[0].contact_id == "ct1"
    assert rows[0].was_answered is True
    assert rows[0].duration == 0
    assert rows[0].recording_url is None
    assert rows[0].call_time == datetime(2024, 5, 15, 14, 30)


def test_unanswered_call_progress(client, crm, db_session):
    crm.contacts[CONTACT_NUMBER] = "ct1"
    client.post("/openphone-webhook", json=_event("call.completed"))
    assert _rows(db_session)[0].was_answered is False


def test_recording_ready_creates_note_and_updates_row(client, crm, db_session):
    crm.contacts[CONTACT_NUMBER] = "ct1"
    client.post("/openphone-webhook", json=_event("call.completed"))
    media = [{"duration": 61.6, "url": "https://media.test/c1.mp3"}]
    response = client.post(
        "/openphone-webhook", json=_event("call.recording.completed", media=media)
    )
    assert response.status_code == 200
    assert response.text == "note created"
    assert crm.notes == [
        (
            "acme-key",
            "ct1",
            "OpenPhone call completed.\n\nDuration: 62 seconds.\nRecording: https://media.test/c1.mp3",
        )
    ]
    row = _rows(db_session)[0]
    assert row.duration == 62
    assert row.recording_url == "https://media.test/c1.mp3"
    assert row.was_answered is True


def test_recording_without_prior_call_only_creates_note(client, crm, db_session):
    crm.contacts[CONTACT_NUMBER] = "ct1"
    response = client.post("/openphone-webhook", json=_event("call.recording.completed"))
    assert response.status_code == 200
    assert len(crm.notes) == 1
    assert crm.notes[0][2].endswith("Duration: 0 seconds.\nRecording: N/A")
    assert _rows(db_session) == []


def test_crm_failure_returns_500(client, crm, db_session):
    crm.fail_lookup = True
    response = client.post("/openphone-webhook", json=_event("call.completed"))
    assert response.status_code == 500
    assert response.text == "Error processing webhook."
    assert _rows(db_session) == []


def test_note_failure_skips_store_update(client, crm, db_session):
    crm.contacts[CONTACT_NUMBER] = "ct1"
    client.post("/openphone-webhook", json=_event("call.completed"))
    crm.fail_notes = True
    media = [{"duration": 30, "url": "https://media.test/c1.mp3"}]
    response = client.post(
        "/openphone-webhook", json=_event("call.recording.completed", media=media)
    )
    assert response.status_code == 500
    row = _rows(db_session)[0]
    assert row.duration == 0
    assert row.recording_url is None
