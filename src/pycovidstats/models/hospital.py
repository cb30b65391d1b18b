"""German intensive-care capacity model (DIVI register)."""

from __future__ import annotations

from typing import Any, ClassVar

from pycovidstats.models._base import FeedBaseModel


class HospitalData(FeedBaseModel):
    """ICU capacity of one federal state, or of Germany as a whole."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {
        "bundesland": "federalState",
        "meldebereichAnz": "reportingAreas",
        "intensivBettenBelegt": "occupiedBeds",
        "intensivBettenFrei": "freeBeds",
        "intensivBettenNotfall7d": "emergencyReserve",
        "faelleCovidAktuell": "covidCases",
        "faelleCovidAktuellBeatmet": "covidCasesVentilated",
        "creationTimestamp": "updated",
    }

    federal_state: str | None = None
    reporting_areas: int | None = None
    occupied_beds: int | None = None
    free_beds: int | None = None
    emergency_reserve: int | None = None
    """Beds that can be made available within seven days."""
    covid_cases: int | None = None
    covid_cases_ventilated: int | None = None
    updated: str | None = None

    @property
    def occupancy_percent(self) -> float | None:
        """Share of occupied ICU beds in percent."""
        if self.occupied_beds is None or self.free_beds is None:
            return None
        total = self.occupied_beds + self.free_beds
        if total <= 0:
            return None
        return round(self.occupied_beds / total * 100, 2)

    def to_leaves(self) -> dict[str, Any]:
        leaves = super().to_leaves()
        leaves.pop("federalState", None)
        occupancy = self.occupancy_percent
        if occupancy is not None:
            leaves["occupancyPercent"] = occupancy
        return leaves
