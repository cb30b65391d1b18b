"""Persisted state tree: store contract, attribute metadata and reconciler."""

from pycovidstats.state.attributes import STATE_ATTRIBUTES, AttributeSpec
from pycovidstats.state.reconciler import Reconciler, value_type
from pycovidstats.state.store import (
    JsonFileObjectStore,
    MemoryObjectStore,
    ObjectStore,
    ObjectType,
    StoredObject,
    StoredState,
    StoreSnapshot,
)

__all__ = [
    "STATE_ATTRIBUTES",
    "AttributeSpec",
    "JsonFileObjectStore",
    "MemoryObjectStore",
    "ObjectStore",
    "ObjectType",
    "Reconciler",
    "StoreSnapshot",
    "StoredObject",
    "StoredState",
    "value_type",
]
