"""Per-country vaccination model (Our World in Data feed)."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pycovidstats.models._base import FeedBaseModel


class CountryVaccination(FeedBaseModel):
    """Latest known vaccination figures of one country.

    The feed publishes a daily series per country in which every day only
    carries the figures reported that day; :meth:`from_entries` folds the
    series so each field holds its most recent reported value.
    """

    date: str | None = None
    total_vaccinations: int | None = None
    people_vaccinated: int | None = None
    people_fully_vaccinated: int | None = None
    total_boosters: int | None = None
    daily_vaccinations: int | None = None
    total_vaccinations_per_hundred: float | None = None
    people_vaccinated_per_hundred: float | None = None
    people_fully_vaccinated_per_hundred: float | None = None

    @classmethod
    def from_entries(cls, entries: Iterable[Any]) -> CountryVaccination | None:
        """Fold a chronological series into its latest values."""
        merged: dict[str, Any] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            for key, value in cls._clean_dict(entry).items():
                merged[key] = value
        if not merged:
            return None
        return cls.model_validate(merged)
