from kr_portal.realtime.events import ChangeEvent


def test_wire_payload_shape():
    payload = {
        "data": {
            "table": "leave_requests",
            "type": "UPDATE",
            "record": {"id": "r1", "status": "approved"},
            "old_record": {"id": "r1", "status": "pending"},
            "commit_timestamp": "2026-10-18T10:00:00Z",
        },
        "ids": [1],
    }
    event = ChangeEvent.from_payload(payload)

    assert event.table == "leave_requests"
    assert event.event_type == "UPDATE"
    assert event.row_id == "r1"
    assert event.status_changed
    assert event.commit_timestamp == "2026-10-18T10:00:00Z"


def test_flattened_client_shape_uses_subscribed_table():
    payload = {"eventType": "insert", "new": {"id": "a1", "status": "present"}, "old": {}}
    event = ChangeEvent.from_payload(payload, table="attendance")

    assert event.table == "attendance"
    assert event.event_type == "INSERT"
    assert event.new == {"id": "a1", "status": "present"}
    assert event.commit_timestamp is None


def test_garbage_payload_normalises_to_empty_event():
    event = ChangeEvent.from_payload(None, table="noc_requests")

    assert event.table == "noc_requests"
    assert event.event_type == ""
    assert event.new == {}
    assert event.row_id is None


def test_delete_row_id_comes_from_old():
    event = ChangeEvent(table="profiles", event_type="DELETE", old={"id": "p9"})
    assert event.row_id == "p9"


def test_status_unchanged_when_other_columns_change():
    event = ChangeEvent(
        table="noc_requests",
        event_type="UPDATE",
        new={"id": "n1", "status": "pending", "message": "updated"},
        old={"id": "n1", "status": "pending"},
    )
    assert not event.status_changed


def test_missing_old_status_counts_as_change():
    # Without full replica identity the old row carries only the key
    event = ChangeEvent(
        table="leave_requests",
        event_type="UPDATE",
        new={"id": "l1", "status": "approved"},
        old={"id": "l1"},
    )
    assert event.status_changed
