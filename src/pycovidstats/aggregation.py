"""Continent, combined-Americas and world rollups of the per-country feed.

Every run recomputes the aggregates from scratch. Summed fields use exact
integer sums or ``math.fsum`` so the result does not depend on the order
of the input records.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from pycovidstats._constants import AMERICAS_AGGREGATE, AMERICAS_PATTERN, WORLD_AGGREGATE
from pycovidstats.models.country import CanonicalCountry, RawCountryRecord

_logger = logging.getLogger(__name__)

# Feed rate fields replaced by rates derived from the aggregate weight.
_DERIVED_RATE_KEYS: frozenset[str] = frozenset({"casesPerOneMillion", "deathsPerOneMillion"})


def _exact_sum(values: list[int | float]) -> int | float:
    if all(isinstance(value, int) for value in values):
        return sum(values)
    return math.fsum(values)


def is_americas(continent: str) -> bool:
    return AMERICAS_PATTERN.match(continent) is not None


def population_weight(record: RawCountryRecord) -> float | None:
    """Population-equivalent weight ``cases / casesPerOneMillion``.

    ``None`` when the rate is zero or missing.
    """
    if not record.cases_per_one_million or record.cases is None:
        return None
    return record.cases / record.cases_per_one_million


@dataclass
class ContinentAggregate:
    """Summed statistics of a group of countries."""

    name: str
    continent: str | None = None
    countries: list[str] = field(default_factory=list)
    updated: int | None = None
    _weights: list[float] = field(default_factory=list, repr=False)
    _values: dict[str, list[int | float]] = field(default_factory=dict, repr=False)

    def add_country(self, country_name: str) -> None:
        self.countries.append(country_name)

    def add_weight(self, weight: float) -> None:
        self._weights.append(weight)

    def add_value(self, key: str, value: int | float) -> None:
        self._values.setdefault(key, []).append(value)

    def observe_updated(self, updated: int | None) -> None:
        if updated is None:
            return
        if self.updated is None or updated > self.updated:
            self.updated = updated

    @property
    def inhabitants_weight(self) -> float:
        return math.fsum(self._weights)

    @property
    def totals(self) -> dict[str, int | float]:
        return {key: _exact_sum(values) for key, values in self._values.items()}

    def total(self, key: str) -> int | float:
        values = self._values.get(key)
        return _exact_sum(values) if values else 0

    def _rate(self, key: str) -> float | None:
        weight = self.inhabitants_weight
        if weight <= 0:
            return None
        return round(self.total(key) / weight, 2)

    @property
    def cases_per_million_equivalent(self) -> float | None:
        return self._rate("cases")

    @property
    def deaths_per_million_equivalent(self) -> float | None:
        return self._rate("deaths")

    def leaves(self) -> dict[str, Any]:
        """Values persisted below ``global_continents.<name>``."""
        leaves: dict[str, Any] = {}
        for key, value in self.totals.items():
            if key not in _DERIVED_RATE_KEYS:
                leaves[key] = value
        leaves["casesPerOneMillion"] = self.cases_per_million_equivalent
        leaves["deathsPerOneMillion"] = self.deaths_per_million_equivalent
        leaves["continent"] = self.continent
        leaves["updated"] = self.updated
        leaves["countries"] = ",".join(self.countries)
        return leaves


@dataclass
class AggregationResult:
    per_continent: dict[str, ContinentAggregate]
    combined_americas: ContinentAggregate | None
    world_sum: ContinentAggregate | None

    def __iter__(self) -> Iterator[ContinentAggregate]:
        yield from self.per_continent.values()
        if self.combined_americas is not None:
            yield self.combined_americas
        if self.world_sum is not None:
            yield self.world_sum


class ContinentAggregator:
    """Fold country records into continent aggregates one at a time."""

    def __init__(self) -> None:
        self._continents: dict[str, ContinentAggregate] = {}
        self._americas: ContinentAggregate | None = None
        self._world: ContinentAggregate | None = None

    def add(self, continent: str, country_name: str, record: RawCountryRecord) -> None:
        """Fold *record* into *continent* (path-safe name) and the synthetic rollups."""
        if not continent:
            return

        target = self._continents.get(continent)
        if target is None:
            target = ContinentAggregate(name=continent)
            self._continents[continent] = target
        if self._americas is None:
            self._americas = ContinentAggregate(name=AMERICAS_AGGREGATE, continent=AMERICAS_AGGREGATE)
        if self._world is None:
            self._world = ContinentAggregate(name=WORLD_AGGREGATE, continent=WORLD_AGGREGATE)

        groups = [target, self._world]
        if is_americas(continent):
            groups.append(self._americas)

        if target.continent is None:
            target.continent = record.continent or continent

        weight = population_weight(record)
        for group in groups:
            group.add_country(country_name)
            if weight is not None:
                group.add_weight(weight)
            group.observe_updated(record.updated)
            for key, value in record.numeric_fields():
                group.add_value(key, value)

    def finalize(self) -> AggregationResult:
        for aggregate in self._continents.values():
            _logger.debug(
                "%s: %d countries, weight %.2f",
                aggregate.name,
                len(aggregate.countries),
                aggregate.inhabitants_weight,
            )
        return AggregationResult(
            per_continent=dict(self._continents),
            combined_americas=self._americas,
            world_sum=self._world,
        )


def aggregate(records: Iterable[tuple[CanonicalCountry, RawCountryRecord]]) -> AggregationResult:
    """Aggregate resolved country records by continent."""
    aggregator = ContinentAggregator()
    for country, record in records:
        aggregator.add(country.continent, country.display_name, record)
    return aggregator.finalize()
