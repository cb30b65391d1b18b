"""Per-country vaccination feed (Our World in Data)."""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pycovidstats._transport import Transport
from pycovidstats.exceptions import CovidStatsPayloadError
from pycovidstats.models.vaccination import CountryVaccination

_logger = logging.getLogger(__name__)


async def fetch_vaccination_by_country(transport: Transport, url: str) -> dict[str, CountryVaccination]:
    """Fetch the vaccination series and reduce it to the latest figures per ISO-3 code.

    The feed is an array of ``{"country", "iso_code", "data": [...]}``
    objects, ``data`` being a chronological daily series.
    """
    payload = await transport.get_json(url)
    if not isinstance(payload, list):
        raise CovidStatsPayloadError("Vaccination feed is not an array", feed="vaccination")

    result: dict[str, CountryVaccination] = {}
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        iso_code = entry.get("iso_code")
        series = entry.get("data")
        if not isinstance(iso_code, str) or not isinstance(series, list):
            continue
        try:
            latest = CountryVaccination.from_entries(series)
        except ValidationError as exc:
            _logger.debug("Skipping vaccination data of %s: %s", iso_code, exc)
            continue
        if latest is not None:
            result[iso_code.upper()] = latest

    _logger.debug("Vaccination data loaded for %d countries", len(result))
    return result
