"""Create-or-update and prune operations against the object store.

All store calls are awaited one at a time so writes along a code path
happen in a deterministic order.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from pycovidstats.state.attributes import STATE_ATTRIBUTES, AttributeSpec
from pycovidstats.state.store import ObjectStore, ObjectType, StoredObject

_logger = logging.getLogger(__name__)


def value_type(value: Any) -> str:
    """Store type tag for a runtime value."""
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "mixed"


class Reconciler:
    """Write computed values into an :class:`ObjectStore`.

    Parameters
    ----------
    store
        Target store.
    prune_enabled
        Global prune flag; :meth:`prune` is a no-op while disabled.
    attributes
        Attribute key → display metadata.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        prune_enabled: bool,
        attributes: Mapping[str, AttributeSpec] = STATE_ATTRIBUTES,
    ) -> None:
        self._store = store
        self._prune_enabled = prune_enabled
        self._attributes = attributes
        self._missing_attributes: set[str] = set()

    @property
    def missing_attributes(self) -> frozenset[str]:
        """Attribute keys reported as missing from the metadata table."""
        return frozenset(self._missing_attributes)

    def _spec(self, attribute_key: str) -> AttributeSpec:
        spec = self._attributes.get(attribute_key)
        if spec is not None:
            return spec
        if attribute_key not in self._missing_attributes:
            self._missing_attributes.add(attribute_key)
            _logger.warning("State attribute definition missing for %s", attribute_key)
        return AttributeSpec(name=attribute_key)

    async def reconcile(self, path: str, attribute_key: str, value: Any) -> None:
        """Create the state at *path* if needed, refresh its metadata and write *value*.

        A ``None`` value synchronizes name and unit only; the previously
        stored value stays visible and keeps its type tag, so a missing
        reading never retags a numeric state as ``mixed``.
        """
        _logger.debug("Reconcile %s with value %r", path, value)
        spec = self._spec(attribute_key)
        type_tag = value_type(value)

        await self._store.set_object_not_exists(
            path,
            StoredObject(
                type=ObjectType.STATE,
                common={
                    "name": spec.name,
                    "role": spec.role,
                    "type": type_tag,
                    "unit": spec.unit,
                    "read": True,
                    "write": spec.write,
                },
            ),
        )

        common: dict[str, Any] = {"name": spec.name, "unit": spec.unit}
        if value is not None:
            common["type"] = type_tag
        await self._store.extend_object(path, {"type": ObjectType.STATE, "common": common})

        if value is not None:
            await self._store.set_state(path, value, ack=True)

    async def reconcile_many(self, base: str, leaves: Mapping[str, Any]) -> None:
        """Reconcile every ``key -> value`` of *leaves* below *base*."""
        for key, value in leaves.items():
            await self.reconcile(f"{base}.{key}", key, value)

    async def ensure_folder(self, path: str, name: str, *, folder_type: ObjectType = ObjectType.CHANNEL) -> None:
        """Create or update a folder node (device/channel)."""
        await self._store.extend_object(path, {"type": folder_type, "common": {"name": name}, "native": {}})

    async def ensure_folder_once(self, path: str, name: str, *, folder_type: ObjectType = ObjectType.CHANNEL) -> None:
        """Create a folder node only when absent."""
        await self._store.set_object_not_exists(path, StoredObject(type=folder_type, common={"name": name}))

    async def annotate(self, path: str, native: Mapping[str, Any]) -> None:
        """Merge *native* into the ``native`` block of an existing object."""
        await self._store.extend_object(path, {"native": dict(native)})

    async def prune(self, path: str) -> None:
        """Delete *path* and its subtree when pruning is enabled.

        Best-effort: store errors are logged at debug level and ignored.
        """
        if not self._prune_enabled:
            return
        try:
            existing = await self._store.get_object(path)
            if existing is not None:
                _logger.debug("Pruning %s", path)
                await self._store.del_object(path, recursive=True)
        except Exception:  # noqa: BLE001
            _logger.debug("Pruning %s failed; treated as absent", path, exc_info=True)
