"""German intensive-care capacity feed (DIVI register)."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from pycovidstats._transport import Transport
from pycovidstats.exceptions import CovidStatsPayloadError
from pycovidstats.models.hospital import HospitalData

_logger = logging.getLogger(__name__)

_UMLAUTS = str.maketrans({"Ä": "AE", "Ö": "OE", "Ü": "UE", "ẞ": "SS"})
_SEPARATORS_RE = re.compile(r"[-\s]+")


def normalize_state_name(name: str) -> str:
    """``"Baden-Württemberg"`` → ``"BADEN_WUERTTEMBERG"`` (the register's spelling)."""
    return _SEPARATORS_RE.sub("_", name.strip().upper().translate(_UMLAUTS))


@dataclass(frozen=True)
class GermanHospitalData:
    """ICU capacity for Germany as a whole and per federal state."""

    overall: HospitalData | None = None
    by_state: dict[str, HospitalData] = field(default_factory=dict)

    def for_federal_state(self, name: str) -> HospitalData | None:
        return self.by_state.get(normalize_state_name(name))


def _with_timestamp(row: dict[str, Any], created: Any) -> dict[str, Any]:
    if created is None or "creationTimestamp" in row:
        return row
    return {**row, "creationTimestamp": created}


async def fetch_german_hospital_data(transport: Transport, url: str) -> GermanHospitalData:
    """Fetch the per-state table and the German total.

    Shape: ``{"data": [{"bundesland": ..., ...}], "overallSum": {...},
    "creationTimestamp": ...}``.
    """
    payload = await transport.get_json(url)
    if not isinstance(payload, dict) or not isinstance(payload.get("data"), list):
        raise CovidStatsPayloadError("Hospital feed has no data table", feed="hospital")

    created = payload.get("creationTimestamp")
    by_state: dict[str, HospitalData] = {}
    for row in payload["data"]:
        if not isinstance(row, dict):
            continue
        try:
            entry = HospitalData.model_validate(_with_timestamp(row, created))
        except ValidationError as exc:
            _logger.debug("Skipping hospital row %s: %s", row.get("bundesland"), exc)
            continue
        if entry.federal_state:
            by_state[normalize_state_name(entry.federal_state)] = entry

    overall: HospitalData | None = None
    overall_row = payload.get("overallSum")
    if isinstance(overall_row, dict):
        try:
            overall = HospitalData.model_validate(_with_timestamp(overall_row, created))
        except ValidationError as exc:
            _logger.debug("Skipping hospital total: %s", exc)

    return GermanHospitalData(overall=overall, by_state=by_state)
