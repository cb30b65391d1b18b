from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest

from pycovidstats.config import CovidStatsConfig, FeedUrls
from pycovidstats.exceptions import CovidStatsTransportError
from pycovidstats.runner import CovidStatsRunner
from pycovidstats.state.store import MemoryObjectStore

URLS = FeedUrls(
    global_totals="fake://global",
    countries="fake://countries",
    federal_states="fake://federal-states",
    counties="fake://counties",
    germany_vaccination="fake://germany-vaccination",
    vaccination="fake://vaccination",
    hospital="fake://hospital",
)


def _country(name: str, iso2: str | None, iso3: str | None, continent: str, **fields: Any) -> dict[str, Any]:
    return {
        "updated": 1700000000000,
        "country": name,
        "countryInfo": {"_id": None, "iso2": iso2, "iso3": iso3, "flag": f"https://flags.example/{name}.png"},
        "continent": continent,
        **fields,
    }


PAYLOADS: dict[str, Any] = {
    URLS.global_totals: {"updated": 1700000000000, "cases": 1000, "deaths": 10, "affectedCountries": 3},
    URLS.countries: [
        _country("USA", "US", "USA", "North America", cases=600, deaths=6, casesPerOneMillion=1800),
        _country("Germany", "DE", "DEU", "Europe", cases=300, deaths=3, casesPerOneMillion=3600),
        _country("Brazil", "BR", "BRA", "South America", cases=100, deaths=1, casesPerOneMillion=470),
        _country("Diamond Princess", None, None, "", cases=712, deaths=13, casesPerOneMillion=0),
    ],
    URLS.vaccination: [
        {
            "country": "Germany",
            "iso_code": "DEU",
            "data": [
                {"date": "2021-01-01", "total_vaccinations": 100, "people_vaccinated": 200},
                {"date": "2021-01-02", "total_vaccinations": 250},
            ],
        }
    ],
    URLS.hospital: {
        "creationTimestamp": "2021-05-01T10:00:00",
        "data": [{"bundesland": "BADEN_WUERTTEMBERG", "intensivBettenBelegt": 80, "intensivBettenFrei": 20}],
        "overallSum": {"intensivBettenBelegt": 800, "intensivBettenFrei": 200},
    },
    URLS.federal_states: {
        "features": [
            {
                "attributes": {
                    "LAN_ew_GEN": "Baden-Württemberg",
                    "Aktualisierung": 1700000000000,
                    "Death": 50,
                    "Fallzahl": 5000,
                    "faelle_100000_EW": 45.5,
                    "cases7_bl_per_100k": 12.3,
                }
            }
        ]
    },
    URLS.germany_vaccination: {
        "data": {
            "states": {
                "BW": {
                    "name": "Baden-Württemberg",
                    "administeredVaccinations": 1000,
                    "vaccinated": 600,
                    "quote": 0.54321,
                    "secondVaccination": {"vaccinated": 400, "quote": 0.36789},
                }
            }
        }
    },
    URLS.counties: {
        "features": [
            {
                "attributes": {
                    "OBJECTID": 1,
                    "GEN": "München",
                    "BEZ": "Kreisfreie Stadt",
                    "county": "SK München",
                    "BL": "Bayern",
                    "cases": 100,
                    "deaths": 2,
                    "cases7_per_100k": 3.1,
                }
            },
            {
                "attributes": {
                    "OBJECTID": 2,
                    "GEN": "Rhein-Sieg-Kreis",
                    "BEZ": "Kreis",
                    "county": "LK Rhein-Sieg-Kreis",
                    "BL": "Nordrhein-Westfalen",
                    "cases": 50,
                    "deaths": 1,
                }
            },
            {
                "attributes": {
                    "OBJECTID": 3,
                    "GEN": "Aurich",
                    "BEZ": "Landkreis",
                    "county": "LK Aurich",
                    "BL": "Niedersachsen",
                    "cases": 7,
                }
            },
            {"attributes": {"OBJECTID": 4, "GEN": "Mystery", "BEZ": "Gemeinde", "county": "X Mystery"}},
        ]
    },
}


@dataclass
class FakeTransport:
    payloads: dict[str, Any]
    down: set[str] = field(default_factory=set)
    calls: list[str] = field(default_factory=list)

    async def get_json(self, url: str) -> Any:
        self.calls.append(url)
        if url in self.down or url not in self.payloads:
            raise CovidStatsTransportError(f"Request to {url} failed", url=url)
        return self.payloads[url]


def _config(**overrides: Any) -> CovidStatsConfig:
    settings: dict[str, Any] = {
        "countries": ("Germany",),
        "get_continents": True,
        "get_germany_federal_states": True,
        "get_all_germany_federal_states": True,
        "get_germany_counties": True,
        "selected_germany_counties": ("Rhein-Sieg-Kreis",),
        "get_germany_cities": True,
        "get_all_germany_cities": True,
        "delete_unused": True,
        "startup_delay_max": 0.0,
        "urls": URLS,
    }
    settings.update(overrides)
    return CovidStatsConfig(**settings)


def _fixed_clock() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


def _values(store: MemoryObjectStore) -> dict[str, Any]:
    return {path: state.val for path, state in store.states.items()}


@pytest.mark.asyncio
async def test_full_run_writes_expected_tree() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    runner = CovidStatsRunner(_config(), store, transport=FakeTransport(PAYLOADS))

    context = await runner.run()
    values = _values(store)

    assert values["global_totals.cases"] == 1000
    assert values["Germany.cases"] == 300
    assert values["Germany.flag"] == "https://flags.example/Germany.png"
    assert values["Germany.Vaccination.totalVaccinations"] == 250
    assert values["Germany.Vaccination.peopleVaccinated"] == 200
    assert values["Germany.Hospital.occupiedBeds"] == 800
    assert values["Germany.Hospital.occupancyPercent"] == 80.0
    assert not any(path.startswith("United_States.") for path in values)

    assert values["country_Top_5.1.country"] == "USA"
    assert values["country_Top_5.4.country"] == "Diamond Princess"
    assert "country_Top_5.5" not in store.objects

    assert values["global_continents.Europe.cases"] == 300
    assert values["global_continents.Europe.casesPerOneMillion"] == 3600.0
    assert values["global_continents.America.cases"] == 700
    assert values["global_continents.America.countries"] == "United States,Brazil"
    assert values["global_continents.World_Sum.cases"] == 1000
    assert values["global_continents.World_Sum.countries"] == "United States,Germany,Brazil"

    state = "Germany.Bundesland.Baden-Württemberg"
    assert values[f"{state}.cases"] == 5000
    assert values[f"{state}.cases7_per_100k"] == 12.3
    assert values[f"{state}._Impfungen.rkiImpfungenGesamtVerabreicht"] == 1000
    assert values[f"{state}._Impfungen.rkiErstimpfungenImpfquote"] == 54.32
    assert values[f"{state}._Impfungen.rkiZweitimpfungenImpfquote"] == 36.79
    assert values[f"{state}.Hospital.occupiedBeds"] == 80

    assert values["Germany.Stadt.München.cases"] == 100
    assert values["Germany.Stadt.München.BL"] == "Bayern"
    assert "Germany.Stadt.München.GEN" not in values
    assert values["Germany.Kreis.Rhein-Sieg-Kreis.cases"] == 50
    assert "Germany.Kreis.Aurich.cases" not in values

    assert context.countries == ["United States", "Germany", "Brazil", "Diamond Princess"]
    assert context.federal_states == ["Baden-Württemberg"]
    assert context.cities == ["München"]
    assert context.counties == ["Aurich", "Rhein-Sieg-Kreis"]

    translator = store.objects["countryTranslator"]
    assert translator.native["allCountrys"] == context.countries
    assert translator.native["allGermanyFederalStates"] == ["Baden-Württemberg"]
    assert translator.native["allGermanyCities"] == ["München"]
    assert translator.native["allGermanyCounties"] == ["Aurich", "Rhein-Sieg-Kreis"]


@pytest.mark.asyncio
async def test_second_run_is_idempotent() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    runner = CovidStatsRunner(_config(), store, transport=FakeTransport(PAYLOADS))

    await runner.run()
    first = store.snapshot()
    await runner.run()

    assert store.snapshot() == first


@pytest.mark.asyncio
async def test_unselected_country_is_pruned() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    transport = FakeTransport(PAYLOADS)
    await CovidStatsRunner(_config(countries=("Germany", "Brazil")), store, transport=transport).run()
    assert "Brazil.cases" in store.states

    await CovidStatsRunner(_config(), store, transport=transport).run()
    assert "Brazil.cases" not in store.states
    assert "Brazil" not in store.objects


@pytest.mark.asyncio
async def test_deselecting_germany_keeps_sub_national_subtrees() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    await CovidStatsRunner(_config(), store, transport=FakeTransport(PAYLOADS)).run()

    transport = FakeTransport(PAYLOADS, down={URLS.federal_states, URLS.counties})
    await CovidStatsRunner(_config(countries=("Brazil",)), store, transport=transport).run()

    values = _values(store)
    assert "Germany.cases" not in values
    assert not any(path.startswith("Germany.Vaccination") for path in store.objects)
    assert not any(path.startswith("Germany.Hospital") for path in store.objects)
    assert values["Brazil.cases"] == 100
    assert values["Germany.Bundesland.Baden-Württemberg.cases"] == 5000
    assert values["Germany.Kreis.Rhein-Sieg-Kreis.cases"] == 50
    assert values["Germany.Stadt.München.cases"] == 100


@pytest.mark.asyncio
async def test_continents_disabled_prunes_rollups() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    transport = FakeTransport(PAYLOADS)
    await CovidStatsRunner(_config(), store, transport=transport).run()

    await CovidStatsRunner(_config(get_continents=False), store, transport=transport).run()

    assert not any(path.startswith("global_continents") for path in store.objects)


@pytest.mark.asyncio
async def test_user_translation_from_store_is_applied() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    payloads = dict(PAYLOADS)
    payloads[URLS.countries] = [_country("Narnia", None, None, "", cases=1, casesPerOneMillion=1)]
    transport = FakeTransport(payloads)

    runner = CovidStatsRunner(_config(countries=("Norway",)), store, transport=transport)
    await runner.run()
    await store.set_state("countryTranslator", '{"Narnia": "Norway"}', ack=False)
    context = await runner.run()

    assert context.countries == ["Norway"]
    assert store.states["Norway.cases"].val == 1
    assert store.states["global_continents.Europe.cases"].val == 1


@pytest.mark.asyncio
async def test_unreachable_feeds_do_not_abort_run(caplog: pytest.LogCaptureFixture) -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    transport = FakeTransport(PAYLOADS, down=set(PAYLOADS))
    errors: list[str] = []

    with caplog.at_level(logging.WARNING):
        context = await CovidStatsRunner(
            _config(),
            store,
            transport=transport,
            on_error=lambda code_part, _exc: errors.append(code_part),
        ).run()

    assert context.countries == []
    assert store.states == {}
    assert errors == []
    assert "Unable to contact" in caplog.text


@pytest.mark.asyncio
async def test_optional_feeds_down_still_write_counts() -> None:
    store = MemoryObjectStore(clock=_fixed_clock)
    transport = FakeTransport(PAYLOADS, down={URLS.vaccination, URLS.hospital, URLS.germany_vaccination})

    await CovidStatsRunner(_config(), store, transport=transport).run()

    values = _values(store)
    assert values["Germany.cases"] == 300
    assert not any(path.startswith("Germany.Vaccination.") for path in values)
    assert not any(path.startswith("Germany.Hospital.") for path in values)
    assert values["Germany.Bundesland.Baden-Württemberg.cases"] == 5000
    assert not any("_Impfungen" in path for path in values)


@pytest.mark.asyncio
async def test_store_failure_is_reported(caplog: pytest.LogCaptureFixture) -> None:
    class FailingStore(MemoryObjectStore):
        async def set_state(self, path: str, val: Any, *, ack: bool) -> None:
            if path.startswith("global_totals"):
                raise RuntimeError("disk full")
            await super().set_state(path, val, ack=ack)

    store = FailingStore(clock=_fixed_clock)
    errors: list[str] = []
    runner = CovidStatsRunner(
        _config(),
        store,
        transport=FakeTransport(PAYLOADS),
        on_error=lambda code_part, _exc: errors.append(code_part),
    )

    with caplog.at_level(logging.ERROR):
        await runner.run()

    assert errors == ["loadAll"]
    assert store.states["Germany.cases"].val == 300
