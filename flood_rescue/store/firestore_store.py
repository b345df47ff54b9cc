"""
Firestore-backed document collection.

Conditional writes run inside a Firestore transaction so the precondition is
evaluated against the committed document, not against an earlier client read.
Transactions are retried by the SDK on contention; a precondition that fails
on the retried read surfaces as WriteConflict.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from firebase_admin import firestore
from google.api_core import exceptions as google_exceptions

from flood_rescue.core.errors import StoreUnavailable
from flood_rescue.store.base import (
    ArrayAppend,
    ChangeType,
    DocumentNotFound,
    DocumentStore,
    EventCallback,
    Increment,
    SERVER_TIMESTAMP,
    StoreEvent,
    Subscription,
    WriteConflict,
    mismatched_fields,
)

logger = logging.getLogger(__name__)


def _to_firestore(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, ArrayAppend):
        return firestore.ArrayUnion(list(value.items))
    if isinstance(value, Increment):
        return firestore.Increment(value.amount)
    return value


def _translate(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {key: _to_firestore(value) for key, value in fields.items()}


class _WatchSubscription(Subscription):
    def __init__(self, watch):
        self._watch = watch

    def unsubscribe(self) -> None:
        self._watch.unsubscribe()


class FirestoreCollection(DocumentStore):
    def __init__(self, client: firestore.Client, name: str):
        self.name = name
        self._client = client
        self._ref = client.collection(name)

    def create(self, fields: Dict[str, Any]) -> str:
        doc_ref = self._ref.document()  # Auto-generate unique ID
        try:
            doc_ref.set(_translate(fields))
        except google_exceptions.GoogleAPICallError as e:
            raise StoreUnavailable(f"Failed to create {self.name} document: {e}") from e
        return doc_ref.id

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = self._ref.document(doc_id).get()
        except google_exceptions.GoogleAPICallError as e:
            raise StoreUnavailable(f"Failed to read {self.name}/{doc_id}: {e}") from e
        if not snapshot.exists:
            return None
        return snapshot.to_dict() or {}

    def list(self) -> List[Tuple[str, Dict[str, Any]]]:
        try:
            return [(doc.id, doc.to_dict() or {}) for doc in self._ref.stream()]
        except google_exceptions.GoogleAPICallError as e:
            raise StoreUnavailable(f"Failed to list {self.name}: {e}") from e

    def update(
        self,
        doc_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> None:
        doc_ref = self._ref.document(doc_id)
        payload = _translate(fields)

        if not expected:
            # Single-document update; ArrayUnion/Increment are applied server-side
            try:
                doc_ref.update(payload)
            except google_exceptions.NotFound as e:
                raise DocumentNotFound(self.name, doc_id) from e
            except google_exceptions.GoogleAPICallError as e:
                raise StoreUnavailable(f"Failed to update {self.name}/{doc_id}: {e}") from e
            return

        @firestore.transactional
        def _conditional_update(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentNotFound(self.name, doc_id)
            mismatched = mismatched_fields(snapshot.to_dict() or {}, expected)
            if mismatched:
                raise WriteConflict(self.name, doc_id, mismatched)
            transaction.update(doc_ref, payload)

        try:
            _conditional_update(self._client.transaction())
        except google_exceptions.GoogleAPICallError as e:
            raise StoreUnavailable(f"Conditional update of {self.name}/{doc_id} failed: {e}") from e

    def delete(self, doc_id: str, expected: Optional[Dict[str, Any]] = None) -> None:
        doc_ref = self._ref.document(doc_id)

        @firestore.transactional
        def _conditional_delete(transaction):
            snapshot = doc_ref.get(transaction=transaction)
            if not snapshot.exists:
                raise DocumentNotFound(self.name, doc_id)
            if expected:
                mismatched = mismatched_fields(snapshot.to_dict() or {}, expected)
                if mismatched:
                    raise WriteConflict(self.name, doc_id, mismatched)
            transaction.delete(doc_ref)

        try:
            _conditional_delete(self._client.transaction())
        except google_exceptions.GoogleAPICallError as e:
            raise StoreUnavailable(f"Delete of {self.name}/{doc_id} failed: {e}") from e

    def subscribe(self, callback: EventCallback) -> Subscription:
        def on_snapshot(col_snapshot, changes, read_time):
            for change in changes:
                try:
                    event = StoreEvent(
                        type=ChangeType(change.type.name.lower()),
                        doc_id=change.document.id,
                        data=change.document.to_dict() or {},
                    )
                    callback(event)
                except Exception as e:
                    # Never let one bad event kill the watch thread
                    logger.error(f"Change handler failed on {self.name}: {e}", exc_info=True)

        watch = self._ref.on_snapshot(on_snapshot)
        logger.info(f"👀 Subscribed to change feed of '{self.name}'")
        return _WatchSubscription(watch)

    def ping(self) -> bool:
        try:
            list(self._ref.limit(1).stream())
        except google_exceptions.GoogleAPICallError as e:
            raise StoreUnavailable(f"Firestore unreachable: {e}") from e
        return True
