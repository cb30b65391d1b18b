"""Per-country feed models and the canonical country identity."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

from pycovidstats._constants import NON_AGGREGATED_KEYS
from pycovidstats.models._base import FeedBaseModel, is_number


class CountryInfo(FeedBaseModel):
    """The nested ``countryInfo`` block of a country record."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"_id": "id"}

    id: int | None = None
    """Numeric ISO 3166 code."""
    iso2: str | None = None
    iso3: str | None = None
    lat: float | None = None
    long: float | None = None
    flag: str | None = None
    """Flag image URL."""


class RawCountryRecord(FeedBaseModel):
    """One entry of the per-country feed.

    Only the fields the engine reasons about are typed; every other
    counter stays reachable through :meth:`numeric_fields`.
    """

    country: str = ""
    continent: str | None = None
    updated: int | None = None
    """Last update (epoch milliseconds)."""
    cases: float | None = None
    deaths: float | None = None
    cases_per_one_million: float | None = None
    deaths_per_one_million: float | None = None
    population: int | None = None
    country_info: CountryInfo = Field(default_factory=CountryInfo)

    def numeric_fields(self) -> Iterator[tuple[str, int | float]]:
        """Yield ``(feed_key, value)`` for every summable numeric field."""
        for key, value in self.raw.items():
            if key in NON_AGGREGATED_KEYS:
                continue
            if is_number(value):
                yield key, value

    def leaves(self, *, include_country: bool = False) -> dict[str, Any]:
        """Feed fields written below a country node (``countryInfo`` reduced to ``flag``)."""
        leaves: dict[str, Any] = {}
        for key, value in self.raw.items():
            if key == "country" and not include_country:
                continue
            if key == "countryInfo":
                leaves["flag"] = self.country_info.flag
                continue
            leaves[key] = value
        return leaves


class CanonicalCountry(BaseModel):
    """Resolved, stable identity of a country."""

    model_config = ConfigDict(frozen=True)

    display_name: str
    path_safe_name: str
    continent: str
    """Path-safe continent name (e.g. ``North_America``)."""
    iso2: str | None = None
    iso3: str | None = None
