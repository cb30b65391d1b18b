"""Data models for the upstream statistics feeds."""

from pycovidstats.models._base import FeedBaseModel, is_number
from pycovidstats.models.country import CanonicalCountry, CountryInfo, RawCountryRecord
from pycovidstats.models.germany import (
    CountyAttributes,
    FeatureCollection,
    FederalStateAttributes,
    GermanyVaccinationFeed,
    StateVaccination,
)
from pycovidstats.models.hospital import HospitalData
from pycovidstats.models.vaccination import CountryVaccination

__all__ = [
    "CanonicalCountry",
    "CountryInfo",
    "CountryVaccination",
    "CountyAttributes",
    "FeatureCollection",
    "FederalStateAttributes",
    "FeedBaseModel",
    "GermanyVaccinationFeed",
    "HospitalData",
    "RawCountryRecord",
    "StateVaccination",
    "is_number",
]
