"""
Document Store Base Interface.

Defines the contract every document collection backend must implement,
plus store-neutral write sentinels (mirroring Firestore's own) so services
can express atomic server-side operations without importing a backend.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class DocumentNotFound(Exception):
    def __init__(self, collection: str, doc_id: str):
        self.collection = collection
        self.doc_id = doc_id
        super().__init__(f"{collection}/{doc_id} does not exist")


class WriteConflict(Exception):
    """Expected prior state did not match the stored document at write time."""

    def __init__(self, collection: str, doc_id: str, mismatched: Dict[str, Any]):
        self.collection = collection
        self.doc_id = doc_id
        self.mismatched = mismatched
        super().__init__(f"{collection}/{doc_id} precondition failed: {mismatched}")


# --- Write sentinels -------------------------------------------------------


class _ServerTimestamp:
    def __repr__(self):
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class ArrayAppend:
    """Append items to an array field in the same atomic write."""
    items: Tuple[Any, ...]

    def __init__(self, items):
        object.__setattr__(self, "items", tuple(items))


@dataclass(frozen=True)
class Increment:
    """Server-side numeric increment."""
    amount: int = 1


# --- Preconditions ---------------------------------------------------------


class AnyOf:
    """Expectation that accepts any of several stored values (None = field absent)."""

    def __init__(self, *values):
        self.values = values

    def matches(self, actual) -> bool:
        return actual in self.values

    def __repr__(self):
        return f"AnyOf{self.values!r}"


def mismatched_fields(data: Mapping[str, Any], expected: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Compare a stored document against an expected prior state.

    Returns {field: actual_value} for every field that does not match;
    empty dict means the precondition holds.
    """
    mismatched = {}
    for key, want in expected.items():
        actual = data.get(key)
        if isinstance(want, AnyOf):
            ok = want.matches(actual)
        else:
            ok = actual == want
        if not ok:
            mismatched[key] = actual
    return mismatched


# --- Change feed -----------------------------------------------------------


class ChangeType(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


@dataclass
class StoreEvent:
    """One change notification. `data` is the snapshot at notification time."""
    type: ChangeType
    doc_id: str
    data: Dict[str, Any] = field(default_factory=dict)


EventCallback = Callable[[StoreEvent], None]


class Subscription(ABC):
    @abstractmethod
    def unsubscribe(self) -> None:
        pass


class DocumentStore(ABC):
    """
    Abstract document collection keyed by document ID.

    Delivery of change events is at-least-once with no ordering guarantee
    across documents. Callbacks may run on a store-owned thread.
    """

    name: str

    @abstractmethod
    def create(self, fields: Dict[str, Any]) -> str:
        """Create a document with a store-assigned ID and return that ID."""
        pass

    @abstractmethod
    def get(self, doc_id: str) -> Optional[Dict[str, Any]]:
        """Return the current document, or None if it does not exist."""
        pass

    @abstractmethod
    def list(self) -> List[Tuple[str, Dict[str, Any]]]:
        pass

    @abstractmethod
    def update(
        self,
        doc_id: str,
        fields: Dict[str, Any],
        expected: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Partially update a document.

        If `expected` is given, the write only lands when every listed field
        still holds the expected value at write time.

        Raises:
            DocumentNotFound: document does not exist
            WriteConflict: `expected` did not hold
        """
        pass

    @abstractmethod
    def delete(self, doc_id: str, expected: Optional[Dict[str, Any]] = None) -> None:
        pass

    @abstractmethod
    def subscribe(self, callback: EventCallback) -> Subscription:
        """
        Start delivering change events to `callback`.

        Existing documents are first delivered as ADDED events.
        """
        pass

    def ping(self) -> bool:
        """Lightweight connectivity check used by /health/db."""
        self.list()
        return True
