"""Start a fetch early and join it wherever its data is needed."""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from collections.abc import Coroutine
from typing import Any, Generic, TypeVar

_logger = logging.getLogger(__name__)

T = TypeVar("T")


class Unavailable(enum.Enum):
    """Outcome of a prefetch whose fetch failed."""

    UNAVAILABLE = "unavailable"


UNAVAILABLE = Unavailable.UNAVAILABLE


class Prefetch(Generic[T]):
    """Background fetch started on construction.

    A failing fetch resolves to :data:`UNAVAILABLE` (logged as a warning)
    instead of raising. :meth:`result` may be awaited any number of times.
    Must be constructed inside a running event loop.
    """

    def __init__(self, name: str, fetch: Coroutine[Any, Any, T]) -> None:
        self.name = name
        self._fetch = fetch
        self._task: asyncio.Task[T | Unavailable] = asyncio.create_task(self._guard(fetch))

    async def _guard(self, fetch: Coroutine[Any, Any, T]) -> T | Unavailable:
        try:
            return await fetch
        except Exception as exc:  # noqa: BLE001
            _logger.warning("%s data warning: %s", self.name, exc)
            return UNAVAILABLE

    async def result(self) -> T | Unavailable:
        return await asyncio.shield(self._task)

    async def close(self) -> None:
        """Cancel the fetch if it is still running."""
        if not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        # A task cancelled before its first step never started the fetch.
        self._fetch.close()
