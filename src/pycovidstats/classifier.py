"""Classification of German counties into county-like and city-like buckets."""

from __future__ import annotations

import logging
from collections.abc import Collection
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pycovidstats._summarize import summarize_for_log

_logger = logging.getLogger(__name__)


class RegionBucket(StrEnum):
    """Structural bucket; the value is the store path segment."""

    COUNTY = "Kreis"
    CITY = "Stadt"


# Administrative label (``BEZ``) -> bucket. Several labels share a bucket.
_LABEL_BUCKETS: dict[str, RegionBucket] = {
    "Kreisfreie Stadt": RegionBucket.CITY,
    "Stadtkreis": RegionBucket.CITY,
    "Bezirk": RegionBucket.CITY,
    "Kreis": RegionBucket.COUNTY,
    "Landkreis": RegionBucket.COUNTY,
}


@dataclass(frozen=True, slots=True)
class Classification:
    bucket: RegionBucket | None
    failed: bool


def classify(label: str, *, record: Any = None) -> Classification:
    """Map an administrative label to its bucket.

    An unknown label is a classification failure; it is logged together
    with *record* (the source feature) for diagnosis.
    """
    bucket = _LABEL_BUCKETS.get(label)
    if bucket is None:
        _logger.error("Unknown %r received containing %s", label, summarize_for_log(record))
        return Classification(bucket=None, failed=True)
    return Classification(bucket=bucket, failed=False)


def is_selected(load_all: bool, name: str, selection: Collection[str]) -> bool:
    """Whether a region's leaves are materialized this run."""
    return load_all or name in selection
