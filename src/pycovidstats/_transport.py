"""HTTP transport for the upstream statistics feeds."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import aiohttp

from pycovidstats._constants import USER_AGENT
from pycovidstats.exceptions import CovidStatsTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the ingestion modules."""

    async def get_json(self, url: str) -> Any:
        ...


class HttpTransport:
    """aiohttp-backed JSON transport."""

    def __init__(self, http_session: aiohttp.ClientSession, *, timeout: float = 60.0) -> None:
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def get_json(self, url: str) -> Any:
        """GET *url* and return the decoded JSON body."""
        headers = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as resp:
                text = await resp.text()
                if resp.status != 200:
                    raise CovidStatsTransportError(
                        f"HTTP {resp.status} from {url}: {text[:200]}",
                        status_code=resp.status,
                        url=url,
                    )
        except CovidStatsTransportError:
            raise
        except (aiohttp.ClientError, TimeoutError) as exc:
            raise CovidStatsTransportError(
                f"Request to {url} failed: {exc}",
                url=url,
            ) from exc

        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise CovidStatsTransportError(
                f"Invalid JSON from {url}: {text[:200]}",
                url=url,
            ) from exc
