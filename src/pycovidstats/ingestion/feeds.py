"""Fetch and validate the case-count feeds."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from pycovidstats._summarize import summarize_for_log
from pycovidstats._transport import Transport
from pycovidstats.exceptions import CovidStatsPayloadError
from pycovidstats.models.country import RawCountryRecord
from pycovidstats.models.germany import (
    CountyAttributes,
    FeatureCollection,
    FederalStateAttributes,
    GermanyVaccinationFeed,
    StateVaccination,
)

_logger = logging.getLogger(__name__)


async def fetch_global(transport: Transport, url: str) -> dict[str, Any]:
    """Fetch the worldwide summary object."""
    payload = await transport.get_json(url)
    _logger.debug("Global summary received: %s", summarize_for_log(payload))
    if not isinstance(payload, dict):
        raise CovidStatsPayloadError("Global summary is not an object", feed="global")
    return payload


async def fetch_countries(transport: Transport, url: str) -> list[RawCountryRecord]:
    """Fetch the per-country array, keeping feed order (cases descending).

    Entries without a country name are dropped.
    """
    payload = await transport.get_json(url)
    _logger.debug("Country feed received: %s", summarize_for_log(payload))
    if not isinstance(payload, list):
        raise CovidStatsPayloadError("Country feed is not an array", feed="countries")

    records: list[RawCountryRecord] = []
    for entry in payload:
        if not isinstance(entry, dict) or not entry.get("country"):
            continue
        try:
            records.append(RawCountryRecord.model_validate(entry))
        except ValidationError as exc:
            _logger.warning("Skipping malformed country record %s: %s", entry.get("country"), exc)
    return records


async def _fetch_features(transport: Transport, url: str, feed: str) -> list[dict[str, Any]]:
    payload = await transport.get_json(url)
    _logger.debug("Feature collection %s received: %s", feed, summarize_for_log(payload))
    try:
        collection = FeatureCollection.model_validate(payload)
    except ValidationError as exc:
        raise CovidStatsPayloadError(f"Unexpected {feed} payload: {exc}", feed=feed) from exc
    return collection.attributes()


async def fetch_federal_states(transport: Transport, url: str) -> list[FederalStateAttributes]:
    """Fetch the German federal state features."""
    attributes = await _fetch_features(transport, url, "federal_states")
    states: list[FederalStateAttributes] = []
    for item in attributes:
        try:
            states.append(FederalStateAttributes.model_validate(item))
        except ValidationError as exc:
            _logger.warning("Skipping malformed federal state %s: %s", item.get("LAN_ew_GEN"), exc)
    return states


async def fetch_counties(transport: Transport, url: str) -> list[CountyAttributes]:
    """Fetch the German county features."""
    attributes = await _fetch_features(transport, url, "counties")
    counties: list[CountyAttributes] = []
    for item in attributes:
        try:
            counties.append(CountyAttributes.model_validate(item))
        except ValidationError as exc:
            _logger.warning("Skipping malformed county %s: %s", item.get("GEN"), exc)
    return counties


async def fetch_germany_vaccination(transport: Transport, url: str) -> dict[str, StateVaccination]:
    """Fetch vaccination progress per federal state, keyed by state name."""
    payload = await transport.get_json(url)
    _logger.debug("German vaccination feed received: %s", summarize_for_log(payload))
    try:
        feed = GermanyVaccinationFeed.model_validate(payload)
    except ValidationError as exc:
        raise CovidStatsPayloadError(f"Unexpected vaccination payload: {exc}", feed="germany_vaccination") from exc
    return feed.by_state_name()
