"""Custom exception hierarchy for pycovidstats."""

from __future__ import annotations


class CovidStatsError(Exception):
    """Base exception for all pycovidstats errors."""


class CovidStatsConfigError(CovidStatsError):
    """Invalid or missing configuration."""


class CovidStatsTransportError(CovidStatsError):
    """HTTP-level failure (network, non-200, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.url = url
        super().__init__(message)


class CovidStatsPayloadError(CovidStatsError):
    """A feed returned a shape other than expected."""

    def __init__(self, message: str, *, feed: str = "") -> None:
        self.feed = feed
        super().__init__(message)


class CovidStatsStoreError(CovidStatsError):
    """The object/value store rejected an operation."""

    def __init__(self, message: str, *, path: str = "") -> None:
        self.path = path
        super().__init__(message)


class TransformError(CovidStatsError):
    """A value transform command could not be parsed or evaluated."""
