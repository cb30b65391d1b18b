"""Run configuration for pycovidstats."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pycovidstats import _constants
from pycovidstats.exceptions import CovidStatsConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_list(value: str | None) -> tuple[str, ...] | None:
    if value is None:
        return None
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise CovidStatsConfigError(f"{name} must be numeric, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class FeedUrls:
    """Upstream endpoints queried during a run."""

    global_totals: str = _constants.GLOBAL_URL
    countries: str = _constants.COUNTRIES_URL
    federal_states: str = _constants.FEDERAL_STATES_URL
    counties: str = _constants.COUNTIES_URL
    germany_vaccination: str = _constants.GERMANY_VACCINATION_URL
    vaccination: str = _constants.VACCINATION_URL
    hospital: str = _constants.HOSPITAL_URL


@dataclasses.dataclass(frozen=True)
class CovidStatsConfig:
    """Run configuration.

    Parameters
    ----------
    countries : tuple[str, ...]
        Display names of the countries to materialize.
    load_all_countries : bool
        Materialize every country of the feed, ignoring ``countries``.
    get_continents : bool
        Write continent, ``America`` and ``World_Sum`` rollups.
    get_germany_federal_states : bool
        Refresh the German federal state tree.
    get_all_germany_federal_states : bool
        Materialize every federal state, ignoring the selection.
    selected_germany_federal_states : tuple[str, ...]
        Federal states to materialize.
    get_germany_counties : bool
        Refresh the county-like bucket (``Germany.Kreis``).
    get_all_germany_counties : bool
        Materialize every county, ignoring the selection.
    selected_germany_counties : tuple[str, ...]
        Counties (path-safe names) to materialize.
    get_germany_cities : bool
        Refresh the city-like bucket (``Germany.Stadt``).
    get_all_germany_cities : bool
        Materialize every city, ignoring the selection.
    selected_germany_cities : tuple[str, ...]
        Cities (path-safe names) to materialize.
    delete_unused : bool
        Prune stale subtrees. When disabled, stale entries keep their
        last-known-good value.
    startup_delay_max : float
        Upper bound of the randomized delay before any network access.
        ``0`` disables the delay.
    request_timeout : float
        Total timeout of a single feed request in seconds.
    urls : FeedUrls
        Upstream endpoints.
    """

    countries: tuple[str, ...] = ()
    load_all_countries: bool = False
    get_continents: bool = False
    get_germany_federal_states: bool = False
    get_all_germany_federal_states: bool = False
    selected_germany_federal_states: tuple[str, ...] = ()
    get_germany_counties: bool = False
    get_all_germany_counties: bool = False
    selected_germany_counties: tuple[str, ...] = ()
    get_germany_cities: bool = False
    get_all_germany_cities: bool = False
    selected_germany_cities: tuple[str, ...] = ()
    delete_unused: bool = False
    startup_delay_max: float = _constants.STARTUP_DELAY_MAX_S
    request_timeout: float = 60.0
    urls: FeedUrls = dataclasses.field(default_factory=FeedUrls)

    def __post_init__(self) -> None:
        if self.startup_delay_max < 0:
            raise CovidStatsConfigError("startup_delay_max must not be negative")
        if self.request_timeout <= 0:
            raise CovidStatsConfigError("request_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> CovidStatsConfig:
        """Create configuration from environment variables.

        Reads ``COVID_*`` variables; list values are comma separated.
        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_BOOL_MAP = {
            "COVID_LOAD_ALL_COUNTRIES": "load_all_countries",
            "COVID_GET_CONTINENTS": "get_continents",
            "COVID_GET_GERMANY_FEDERAL_STATES": "get_germany_federal_states",
            "COVID_GET_ALL_GERMANY_FEDERAL_STATES": "get_all_germany_federal_states",
            "COVID_GET_GERMANY_COUNTIES": "get_germany_counties",
            "COVID_GET_ALL_GERMANY_COUNTIES": "get_all_germany_counties",
            "COVID_GET_GERMANY_CITIES": "get_germany_cities",
            "COVID_GET_ALL_GERMANY_CITIES": "get_all_germany_cities",
            "COVID_DELETE_UNUSED": "delete_unused",
        }
        for env_key, field_name in _ENV_BOOL_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = _env_bool(val, False)

        _ENV_LIST_MAP = {
            "COVID_COUNTRIES": "countries",
            "COVID_SELECTED_GERMANY_FEDERAL_STATES": "selected_germany_federal_states",
            "COVID_SELECTED_GERMANY_COUNTIES": "selected_germany_counties",
            "COVID_SELECTED_GERMANY_CITIES": "selected_germany_cities",
        }
        for env_key, field_name in _ENV_LIST_MAP.items():
            items = _env_list(env.get(env_key))
            if items is not None:
                config_kwargs[field_name] = items

        delay_env = env.get("COVID_STARTUP_DELAY_MAX")
        if delay_env is not None and "startup_delay_max" not in overrides:
            config_kwargs["startup_delay_max"] = _env_float("COVID_STARTUP_DELAY_MAX", delay_env)

        timeout_env = env.get("COVID_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_float("COVID_REQUEST_TIMEOUT", timeout_env)

        # Lists passed as plain lists are frozen into tuples.
        for key, value in list(overrides.items()):
            if isinstance(value, list):
                overrides[key] = tuple(value)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
