"""German sub-national feed models.

Federal states and counties come from the RKI ArcGIS feature services,
vaccination progress per federal state from api.corona-zahlen.org.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pycovidstats.models._base import FeedBaseModel, is_number


class FederalStateAttributes(FeedBaseModel):
    """Attributes of one federal state feature."""

    # Feed attribute -> leaf key written below ``Germany.Bundesland.<state>``.
    LEAF_KEYS: ClassVar[dict[str, str]] = {
        "Aktualisierung": "updated",
        "Death": "deaths",
        "Fallzahl": "cases",
        "faelle_100000_EW": "cases_per_100k",
        "cases7_bl_per_100k": "cases7_per_100k",
    }

    name: str = Field(default="", validation_alias=AliasChoices("LAN_ew_GEN", "name"))
    updated: int | None = Field(default=None, validation_alias=AliasChoices("Aktualisierung", "updated"))
    deaths: int | None = Field(default=None, validation_alias=AliasChoices("Death", "deaths"))
    cases: int | None = Field(default=None, validation_alias=AliasChoices("Fallzahl", "cases"))
    cases_per_100k: float | None = Field(
        default=None,
        validation_alias=AliasChoices("faelle_100000_EW", "cases_per_100k"),
    )
    cases7_per_100k: float | None = Field(
        default=None,
        validation_alias=AliasChoices("cases7_bl_per_100k", "cases7_per_100k"),
    )

    def leaves(self) -> dict[str, Any]:
        """Mapped metrics keyed by leaf name; ``None`` when the feed omitted one."""
        return {leaf: getattr(self, leaf) for leaf in self.LEAF_KEYS.values()}


class CountyAttributes(FeedBaseModel):
    """Attributes of one county (Landkreis / kreisfreie Stadt) feature."""

    # Identity attributes, never written as leaves.
    IDENTITY_KEYS: ClassVar[frozenset[str]] = frozenset({"county", "GEN", "BEZ", "OBJECTID"})

    name: str = Field(default="", validation_alias=AliasChoices("GEN", "name"))
    label: str = Field(default="", validation_alias=AliasChoices("BEZ", "label"))
    county: str = ""
    """Full county designation (e.g. ``"LK Aachen"``)."""
    state: str | None = Field(default=None, validation_alias=AliasChoices("BL", "state"))

    def leaves(self) -> dict[str, Any]:
        """Every non-identity attribute, keyed as in the feed."""
        return {key: value for key, value in self.raw.items() if key not in self.IDENTITY_KEYS}


class FeatureCollection(BaseModel):
    """ArcGIS query response: ``{"features": [{"attributes": {...}}]}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    features: list[Any] = Field(...)

    def attributes(self) -> list[dict[str, Any]]:
        """Attribute dicts of all well-formed features."""
        result: list[dict[str, Any]] = []
        for feature in self.features:
            if not isinstance(feature, dict):
                continue
            attributes = feature.get("attributes")
            if isinstance(attributes, dict):
                result.append(attributes)
        return result


class StateVaccination(FeedBaseModel):
    """Vaccination progress of one federal state (api.corona-zahlen.org)."""

    name: str = ""
    administered_vaccinations: int | None = None
    vaccinated: int | None = None
    quote: float | None = None
    second_vaccination: dict[str, Any] = Field(default_factory=dict)

    def leaves(self) -> dict[str, Any]:
        """Leaves below ``<state>._Impfungen``; quotes are expressed in percent."""
        second_quote = self.second_vaccination.get("quote")
        return {
            "rkiImpfungenGesamtVerabreicht": self.administered_vaccinations,
            "rkiErstimpfungenKumulativ": self.vaccinated,
            "rkiZweitimpfungenKumulativ": self.second_vaccination.get("vaccinated"),
            "rkiErstimpfungenImpfquote": self.quote * 100 if self.quote is not None else None,
            "rkiZweitimpfungenImpfquote": second_quote * 100 if is_number(second_quote) else None,
        }


class _VaccinationStates(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    states: dict[str, StateVaccination] = Field(...)


class GermanyVaccinationFeed(BaseModel):
    """Envelope of the German vaccination feed: ``{"data": {"states": {...}}}``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    data: _VaccinationStates = Field(...)

    def by_state_name(self) -> dict[str, StateVaccination]:
        return {state.name: state for state in self.data.states.values() if state.name}
