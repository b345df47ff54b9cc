"""
Document store layer.

Services depend on DocumentStore only; backends are chosen in config/firebase.py.
"""

from flood_rescue.store.base import (
    AnyOf,
    ArrayAppend,
    ChangeType,
    DocumentNotFound,
    DocumentStore,
    Increment,
    SERVER_TIMESTAMP,
    StoreEvent,
    Subscription,
    WriteConflict,
)
from flood_rescue.store.memory import MemoryCollection

__all__ = [
    "AnyOf",
    "ArrayAppend",
    "ChangeType",
    "DocumentNotFound",
    "DocumentStore",
    "Increment",
    "MemoryCollection",
    "SERVER_TIMESTAMP",
    "StoreEvent",
    "Subscription",
    "WriteConflict",
]
