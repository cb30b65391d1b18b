"""Ingestion layer.

Fetches the upstream feeds through a :class:`~pycovidstats._transport.Transport`
and validates them into typed models. Every fetcher raises a
:class:`~pycovidstats.exceptions.CovidStatsError` subclass when the feed is
unreachable or malformed.
"""

from pycovidstats.ingestion.feeds import (
    fetch_counties,
    fetch_countries,
    fetch_federal_states,
    fetch_germany_vaccination,
    fetch_global,
)
from pycovidstats.ingestion.hospital import GermanHospitalData, fetch_german_hospital_data, normalize_state_name
from pycovidstats.ingestion.prefetch import UNAVAILABLE, Prefetch, Unavailable
from pycovidstats.ingestion.vaccination import fetch_vaccination_by_country

__all__ = [
    "GermanHospitalData",
    "Prefetch",
    "UNAVAILABLE",
    "Unavailable",
    "fetch_counties",
    "fetch_countries",
    "fetch_federal_states",
    "fetch_german_hospital_data",
    "fetch_germany_vaccination",
    "fetch_global",
    "fetch_vaccination_by_country",
    "normalize_state_name",
]
