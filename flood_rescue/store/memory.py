"""
In-process document store.

Thread-safe stand-in for a Firestore collection, used for local development
(USE_MEMORY_STORE=true) and tests. Preconditions and sentinels are applied
under one lock, which gives the same atomicity a Firestore transaction does.
"""

from copy import deepcopy
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
import logging
import threading
import uuid

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


class _MemorySubscription(Subscription):
    def __init__(self, store: "MemoryCollection", callback: EventCallback):
        self._store = store
        self.callback = callback

    def unsubscribe(self) -> None:
        self._store._remove_listener(self)


class MemoryCollection(DocumentStore):
    def __init__(self, name: str):
        self.name = name
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()
        self._listeners: List[_MemorySubscription] = []

    def _resolve(self, current: Dict[str, Any], key: str, value: Any) -> Any:
        if value is SERVER_TIMESTAMP:
            return datetime.now(timezone.utc)
        if isinstance(value, ArrayAppend):
            existing = list(current.get(key) or [])
            for item in value.items:
                # ArrayUnion semantics: equal elements are not duplicated
                if item not in existing:
                    existing.append(deepcopy(item))
            return existing
        if isinstance(value, Increment):
            return (current.get(key) or 0) + value.amount
        return deepcopy(value)

    def create(self, fields: Dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            data = {}
            for key, value in fields.items():
                data[key] = self._resolve(data, key, value)
            self._docs[doc_id] = data
            snapshot = deepcopy(data)
        self._notify(StoreEvent(ChangeType.ADDED, doc_id, snapshot))
        return doc_id

    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            data = self._docs.get(doc_id)
            return deepcopy(data) if data is not None else None

    def list(self) -> List[Tuple[str, Dict[str, Any]]]:
        with self._lock:
            return [(doc_id, deepcopy(data)) for doc_id, data in self._docs.items()]

    def update(
        self,
        doc_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> None:
        with self._lock:
            current = self._docs.get(doc_id)
            if current is None:
                raise DocumentNotFound(self.name, doc_id)
            if expected:
                mismatched = mismatched_fields(current, expected)
                if mismatched:
                    raise WriteConflict(self.name, doc_id, mismatched)
            for key, value in fields.items():
                current[key] = self._resolve(current, key, value)
            snapshot = deepcopy(current)
        self._notify(StoreEvent(ChangeType.MODIFIED, doc_id, snapshot))

    def delete(self, doc_id: str, expected: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            current = self._docs.get(doc_id)
            if current is None:
                raise DocumentNotFound(self.name, doc_id)
            if expected:
                mismatched = mismatched_fields(current, expected)
                if mismatched:
                    raise WriteConflict(self.name, doc_id, mismatched)
            del self._docs[doc_id]
        self._notify(StoreEvent(ChangeType.REMOVED, doc_id, {}))

    def subscribe(self, callback: EventCallback) -> Subscription:
        subscription = _MemorySubscription(self, callback)
        with self._lock:
            self._listeners.append(subscription)
            initial = [(doc_id, deepcopy(data)) for doc_id, data in self._docs.items()]
        for doc_id, data in initial:
            self._deliver(subscription, StoreEvent(ChangeType.ADDED, doc_id, data))
        return subscription

    def _remove_listener(self, subscription: _MemorySubscription) -> None:
        with self._lock:
            if subscription in self._listeners:
                self._listeners.remove(subscription)

    def _notify(self, event: StoreEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for subscription in listeners:
            self._deliver(subscription, event)

    def _deliver(self, subscription: _MemorySubscription, event: StoreEvent) -> None:
        # A failing listener must not break the writer that triggered it
        try:
            subscription.callback(event)
        except Exception as e:
            logger.error(f"Listener on {self.name} failed for {event.doc_id}: {e}", exc_info=True)
