import pytest

from flood_rescue.store import (
    AnyOf,
    ArrayAppend,
    ChangeType,
    DocumentNotFound,
    Increment,
    MemoryCollection,
    SERVER_TIMESTAMP,
    WriteConflict,
)


def test_create_assigns_id_and_resolves_server_timestamp():
    store = MemoryCollection("requests")
    doc_id = store.create({"status": "waiting", "created_at": SERVER_TIMESTAMP})

    doc = store.get(doc_id)
    assert doc["status"] == "waiting"
    assert doc["created_at"] is not SERVER_TIMESTAMP
    assert doc["created_at"].tzinfo is not None


def test_get_returns_a_copy():
    store = MemoryCollection("requests")
    doc_id = store.create({"address": {"province": "A"}})

    doc = store.get(doc_id)
    doc["address"]["province"] = "changed"

    assert store.get(doc_id)["address"]["province"] == "A"


def test_conditional_update_rejects_stale_expectation():
    store = MemoryCollection("requests")
    doc_id = store.create({"status": "in_progress"})

    with pytest.raises(WriteConflict) as exc_info:
        store.update(doc_id, {"status": "completed"}, expected={"status": "waiting"})

    assert exc_info.value.mismatched == {"status": "in_progress"}
    assert store.get(doc_id)["status"] == "in_progress"


def test_expected_none_matches_absent_field_and_any_of():
    store = MemoryCollection("requests")
    doc_id = store.create({"status": "in_progress"})

    store.update(doc_id, {"ai_analysis": {"risk_score": 1}}, expected={"ai_analysis": None})
    store.update(doc_id, {"status": "completed"}, expected={"is_black_case": AnyOf(False, None)})

    assert store.get(doc_id)["status"] == "completed"
    with pytest.raises(WriteConflict):
        store.update(doc_id, {"ai_analysis": {"risk_score": 9}}, expected={"ai_analysis": None})


def test_update_missing_document():
    store = MemoryCollection("requests")
    with pytest.raises(DocumentNotFound):
        store.update("nope", {"status": "completed"})


def test_array_append_and_increment():
    store = MemoryCollection("evacuation_centers")
    doc_id = store.create({"residents": [], "current_people": 0})

    store.update(doc_id, {"residents": ArrayAppend([{"resident_id": "a"}]), "current_people": Increment(1)})
    store.update(doc_id, {"residents": ArrayAppend([{"resident_id": "b"}]), "current_people": Increment(1)})

    doc = store.get(doc_id)
    assert [r["resident_id"] for r in doc["residents"]] == ["a", "b"]
    assert doc["current_people"] == 2


def test_array_append_skips_equal_elements_like_array_union():
    store = MemoryCollection("evacuation_centers")
    doc_id = store.create({"tags": ["boat"]})

    store.update(doc_id, {"tags": ArrayAppend(["boat", "food"])})

    assert store.get(doc_id)["tags"] == ["boat", "food"]


def test_conditional_delete():
    store = MemoryCollection("requests")
    doc_id = store.create({"is_black_case": False})

    with pytest.raises(WriteConflict):
        store.delete(doc_id, expected={"is_black_case": True})

    store.update(doc_id, {"is_black_case": True})
    store.delete(doc_id, expected={"is_black_case": True})
    assert store.get(doc_id) is None


def test_subscribe_replays_existing_documents_then_streams_changes():
    store = MemoryCollection("requests")
    existing = store.create({"status": "waiting"})
    events = []

    subscription = store.subscribe(events.append)
    new_id = store.create({"status": "waiting"})
    store.update(new_id, {"status": "in_progress"})
    store.delete(existing)
    subscription.unsubscribe()
    store.create({"status": "waiting"})

    assert [(e.type, e.doc_id) for e in events] == [
        (ChangeType.ADDED, existing),
        (ChangeType.ADDED, new_id),
        (ChangeType.MODIFIED, new_id),
        (ChangeType.REMOVED, existing),
    ]
    assert events[2].data["status"] == "in_progress"


def test_failing_listener_does_not_break_writer():
    store = MemoryCollection("requests")

    def broken(event):
        raise RuntimeError("listener bug")

    store.subscribe(broken)
    doc_id = store.create({"status": "waiting"})

    assert store.get(doc_id)["status"] == "waiting"
