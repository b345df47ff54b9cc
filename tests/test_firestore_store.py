from types import SimpleNamespace

import pytest
from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from flood_rescue.core.errors import StoreUnavailable
from flood_rescue.store.base import (
    AnyOf,
    ArrayAppend,
    ChangeType,
    DocumentNotFound,
    Increment,
    SERVER_TIMESTAMP,
    WriteConflict,
)
from flood_rescue.store.firestore_store import FirestoreCollection, _to_firestore


class FakeDocRef:
    def __init__(self, collection, doc_id):
        self.collection = collection
        self.id = doc_id

    def set(self, data):
        self.collection.writes.append(("set", self.id, data))

    def update(self, data):
        if self.collection.fail_with:
            raise self.collection.fail_with
        self.collection.writes.append(("update", self.id, data))

    def get(self, transaction=None):
        data = self.collection.docs.get(self.id)
        return SimpleNamespace(exists=data is not None, to_dict=lambda: data)


class FakeCollectionRef:
    def __init__(self):
        self.docs = {}
        self.writes = []
        self.fail_with = None
        self.snapshot_callback = None
        self.unsubscribed = False

    def document(self, doc_id=None):
        return FakeDocRef(self, doc_id or "generated-id")

    def stream(self):
        if self.fail_with:
            raise self.fail_with
        return [SimpleNamespace(id=doc_id, to_dict=lambda d=data: d) for doc_id, data in self.docs.items()]

    def limit(self, n):
        return self

    def on_snapshot(self, callback):
        self.snapshot_callback = callback
        collection = self
        return SimpleNamespace(unsubscribe=lambda: setattr(collection, "unsubscribed", True))


class FakeTransaction:
    def __init__(self, collection):
        self.collection = collection

    def update(self, doc_ref, data):
        self.collection.writes.append(("transaction.update", doc_ref.id, data))

    def delete(self, doc_ref):
        self.collection.writes.append(("transaction.delete", doc_ref.id, None))


class FakeClient:
    def __init__(self):
        self.ref = FakeCollectionRef()

    def collection(self, name):
        return self.ref

    def transaction(self):
        return FakeTransaction(self.ref)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def run_transactions_inline(monkeypatch):
    # Call the transaction body once with the fake transaction, no retries
    monkeypatch.setattr(firestore, "transactional", lambda fn: fn)


def test_sentinels_are_translated():
    assert _to_firestore(SERVER_TIMESTAMP) is firestore.SERVER_TIMESTAMP
    assert isinstance(_to_firestore(ArrayAppend([{"a": 1}])), firestore.ArrayUnion)
    assert isinstance(_to_firestore(Increment(1)), firestore.Increment)
    assert _to_firestore("waiting") == "waiting"


def test_create_and_get(fake_client):
    store = FirestoreCollection(fake_client, "requests")

    doc_id = store.create({"status": "waiting", "created_at": SERVER_TIMESTAMP})

    assert doc_id == "generated-id"
    op, _, data = fake_client.ref.writes[0]
    assert op == "set"
    assert data["created_at"] is firestore.SERVER_TIMESTAMP

    fake_client.ref.docs["abc"] = {"status": "waiting"}
    assert store.get("abc") == {"status": "waiting"}
    assert store.get("missing") is None
    assert store.list() == [("abc", {"status": "waiting"})]


def test_plain_update_maps_errors(fake_client):
    store = FirestoreCollection(fake_client, "evacuation_centers")

    fake_client.ref.fail_with = google_exceptions.NotFound("no document")
    with pytest.raises(DocumentNotFound):
        store.update("c1", {"current_people": Increment(1)})

    fake_client.ref.fail_with = google_exceptions.ServiceUnavailable("backend down")
    with pytest.raises(StoreUnavailable):
        store.update("c1", {"current_people": Increment(1)})
    with pytest.raises(StoreUnavailable):
        store.ping()


def test_subscribe_maps_change_types_and_survives_bad_handler(fake_client):
    store = FirestoreCollection(fake_client, "requests")
    events = []

    def handler(event):
        if event.doc_id == "bad":
            raise RuntimeError("handler bug")
        events.append(event)

    subscription = store.subscribe(handler)

    def change(kind, doc_id, data):
        return SimpleNamespace(
            type=SimpleNamespace(name=kind),
            document=SimpleNamespace(id=doc_id, to_dict=lambda: data),
        )

    fake_client.ref.snapshot_callback(
        None,
        [change("ADDED", "bad", {}), change("ADDED", "c1", {"status": "waiting"}), change("REMOVED", "c2", None)],
        None,
    )

    assert [(e.type, e.doc_id) for e in events] == [(ChangeType.ADDED, "c1"), (ChangeType.REMOVED, "c2")]
    assert events[1].data == {}

    subscription.unsubscribe()
    assert fake_client.ref.unsubscribed is True


def test_conditional_update_writes_translated_payload(fake_client, run_transactions_inline):
    fake_client.ref.docs["case-1"] = {"status": "waiting"}
    store = FirestoreCollection(fake_client, "requests")

    store.update(
        "case-1",
        {"status": "in_progress", "status_history": ArrayAppend([{"to": "in_progress"}]), "updated_at": SERVER_TIMESTAMP},
        expected={"status": "waiting", "is_black_case": AnyOf(False, None)},
    )

    [(kind, doc_id, payload)] = fake_client.ref.writes
    assert (kind, doc_id) == ("transaction.update", "case-1")
    assert payload["status"] == "in_progress"
    assert isinstance(payload["status_history"], firestore.ArrayUnion)
    assert payload["updated_at"] is firestore.SERVER_TIMESTAMP


def test_conditional_update_on_changed_document_is_a_conflict(fake_client, run_transactions_inline):
    fake_client.ref.docs["case-1"] = {"status": "in_progress"}
    store = FirestoreCollection(fake_client, "requests")

    with pytest.raises(WriteConflict) as exc_info:
        store.update("case-1", {"status": "in_progress"}, expected={"status": "waiting"})

    assert exc_info.value.mismatched == {"status": "in_progress"}
    assert fake_client.ref.writes == []


def test_conditional_update_on_missing_document(fake_client, run_transactions_inline):
    store = FirestoreCollection(fake_client, "requests")

    with pytest.raises(DocumentNotFound):
        store.update("gone", {"status": "completed"}, expected={"status": "in_progress"})
    assert fake_client.ref.writes == []


def test_conditional_delete(fake_client, run_transactions_inline):
    fake_client.ref.docs["case-1"] = {"is_black_case": False}
    store = FirestoreCollection(fake_client, "requests")

    with pytest.raises(WriteConflict):
        store.delete("case-1", expected={"is_black_case": True})
    assert fake_client.ref.writes == []

    fake_client.ref.docs["case-1"]["is_black_case"] = True
    store.delete("case-1", expected={"is_black_case": True})
    assert fake_client.ref.writes == [("transaction.delete", "case-1", None)]

    with pytest.raises(DocumentNotFound):
        store.delete("gone")


def test_transaction_failure_is_store_unavailable(fake_client, run_transactions_inline):
    fake_client.ref.docs["case-1"] = {"status": "waiting"}

    def unavailable():
        raise google_exceptions.ServiceUnavailable("down")

    fake_client.transaction = unavailable
    store = FirestoreCollection(fake_client, "requests")

    with pytest.raises(StoreUnavailable):
        store.update("case-1", {"status": "in_progress"}, expected={"status": "waiting"})
