"""Hierarchical object/value store.

The dashboard platform persists a tree of dotted paths. Every node is an
object (``device``, ``channel`` or ``state``) with ``common`` metadata;
``state`` nodes additionally carry a value. :class:`ObjectStore` is the
contract the reconciler relies on. :class:`MemoryObjectStore` implements
it in memory and :class:`JsonFileObjectStore` persists that tree to a
JSON file between runs.
"""

from __future__ import annotations

import asyncio
import copy
from collections.abc import Callable
from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel, ConfigDict, Field

from pycovidstats.exceptions import CovidStatsStoreError


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _merge_deep(target: dict[str, Any], patch: dict[str, Any]) -> None:
    """Recursively merge *patch* into *target*; keys in the patch overwrite."""
    for key, value in patch.items():
        existing = target.get(key)
        if isinstance(value, dict) and isinstance(existing, dict):
            _merge_deep(existing, value)
        else:
            target[key] = copy.deepcopy(value)


def is_descendant(path: str, root: str) -> bool:
    return path == root or path.startswith(f"{root}.")


class ObjectType(StrEnum):
    DEVICE = "device"
    CHANNEL = "channel"
    STATE = "state"


class StoredObject(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: ObjectType
    common: dict[str, Any] = Field(default_factory=dict)
    native: dict[str, Any] = Field(default_factory=dict)


class StoredState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    val: Any = None
    ack: bool = False
    lc: datetime | None = None
    """Last time the value or ack flag changed."""


class StoreSnapshot(BaseModel):
    """Serialized form of the whole tree."""

    model_config = ConfigDict(extra="forbid")

    objects: dict[str, StoredObject] = Field(default_factory=dict)
    states: dict[str, StoredState] = Field(default_factory=dict)


class ObjectStore(Protocol):
    """Async contract of the persisted object/value store."""

    async def get_object(self, path: str) -> StoredObject | None: ...

    async def set_object_not_exists(self, path: str, obj: StoredObject) -> None: ...

    async def extend_object(self, path: str, patch: dict[str, Any]) -> None: ...

    async def del_object(self, path: str, *, recursive: bool = False) -> None: ...

    async def get_state(self, path: str) -> StoredState | None: ...

    async def set_state(self, path: str, val: Any, *, ack: bool) -> None: ...


class MemoryObjectStore:
    """In-memory :class:`ObjectStore`.

    Deterministic: writing an unchanged value leaves the stored state,
    including its ``lc`` timestamp, untouched.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self.objects: dict[str, StoredObject] = {}
        self.states: dict[str, StoredState] = {}

    async def get_object(self, path: str) -> StoredObject | None:
        obj = self.objects.get(path)
        return obj.model_copy(deep=True) if obj is not None else None

    async def set_object_not_exists(self, path: str, obj: StoredObject) -> None:
        async with self._lock:
            if path not in self.objects:
                self.objects[path] = obj.model_copy(deep=True)

    async def extend_object(self, path: str, patch: dict[str, Any]) -> None:
        """Merge *patch* into the object at *path*, creating it when absent.

        Creating requires ``type`` in the patch.
        """
        async with self._lock:
            existing = self.objects.get(path)
            if existing is None:
                if "type" not in patch:
                    raise CovidStatsStoreError(f"Cannot create {path} without a type", path=path)
                self.objects[path] = StoredObject.model_validate(copy.deepcopy(patch))
                return
            merged = existing.model_dump()
            _merge_deep(merged, patch)
            self.objects[path] = StoredObject.model_validate(merged)

    async def del_object(self, path: str, *, recursive: bool = False) -> None:
        async with self._lock:
            if recursive:
                doomed = [key for key in self.objects if is_descendant(key, path)]
                doomed_states = [key for key in self.states if is_descendant(key, path)]
            else:
                doomed = [path] if path in self.objects else []
                doomed_states = [path] if path in self.states else []
            for key in doomed:
                del self.objects[key]
            for key in doomed_states:
                del self.states[key]

    async def get_state(self, path: str) -> StoredState | None:
        state = self.states.get(path)
        return state.model_copy() if state is not None else None

    async def set_state(self, path: str, val: Any, *, ack: bool) -> None:
        async with self._lock:
            if path not in self.objects:
                raise CovidStatsStoreError(f"No object at {path}", path=path)
            current = self.states.get(path)
            if current is not None and current.val == val and current.ack == ack and type(current.val) is type(val):
                return
            self.states[path] = StoredState(val=copy.deepcopy(val), ack=ack, lc=self._clock())

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(objects=copy.deepcopy(self.objects), states=copy.deepcopy(self.states))


class JsonFileObjectStore(MemoryObjectStore):
    """:class:`MemoryObjectStore` loaded from and saved to a JSON file."""

    def __init__(self, path: Path, *, clock: Callable[[], datetime] = _utcnow) -> None:
        super().__init__(clock=clock)
        self._path = path
        if path.exists():
            try:
                snapshot = StoreSnapshot.model_validate_json(path.read_text(encoding="utf-8"))
            except ValueError as exc:
                raise CovidStatsStoreError(f"Cannot read store file {path}: {exc}", path=str(path)) from exc
            self.objects = dict(snapshot.objects)
            self.states = dict(snapshot.states)

    def save(self) -> None:
        tmp = self._path.with_suffix(f"{self._path.suffix}.tmp")
        tmp.write_text(self.snapshot().model_dump_json(indent=2), encoding="utf-8")
        tmp.replace(self._path)
