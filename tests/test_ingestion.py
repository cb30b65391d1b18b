from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

import pytest

from pycovidstats.exceptions import CovidStatsPayloadError, CovidStatsTransportError
from pycovidstats.ingestion import (
    UNAVAILABLE,
    Prefetch,
    fetch_countries,
    fetch_federal_states,
    fetch_german_hospital_data,
    fetch_germany_vaccination,
    fetch_vaccination_by_country,
    normalize_state_name,
)


class StaticTransport:
    def __init__(self, payload: Any) -> None:
        self.payload = payload

    async def get_json(self, url: str) -> Any:
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class TestPrefetch:
    @pytest.mark.asyncio
    async def test_result_can_be_awaited_repeatedly(self) -> None:
        async def fetch() -> dict[str, int]:
            return {"a": 1}

        prefetch = Prefetch("Test", fetch())
        assert await prefetch.result() == {"a": 1}
        assert await prefetch.result() == {"a": 1}

    @pytest.mark.asyncio
    async def test_failure_resolves_to_unavailable(self, caplog: pytest.LogCaptureFixture) -> None:
        async def fetch() -> dict[str, int]:
            raise CovidStatsTransportError("HTTP 503")

        with caplog.at_level(logging.WARNING, logger="pycovidstats.ingestion.prefetch"):
            prefetch = Prefetch("Vaccination", fetch())
            assert await prefetch.result() is UNAVAILABLE
        assert "Vaccination" in caplog.text

    @pytest.mark.asyncio
    async def test_close_cancels_pending_fetch(self) -> None:
        started = asyncio.Event()

        async def fetch() -> int:
            started.set()
            await asyncio.sleep(60)
            return 1

        prefetch = Prefetch("Slow", fetch())
        await started.wait()
        await prefetch.close()
        assert prefetch._task.cancelled()

    @pytest.mark.asyncio
    async def test_close_before_start_closes_fetch(self) -> None:
        started = False

        async def fetch() -> int:
            nonlocal started
            started = True
            return 1

        coroutine = fetch()
        prefetch = Prefetch("Never", coroutine)
        await prefetch.close()

        assert not started
        assert inspect.getcoroutinestate(coroutine) == inspect.CORO_CLOSED


@pytest.mark.asyncio
async def test_fetch_countries_keeps_order_and_skips_nameless() -> None:
    transport = StaticTransport(
        [
            {"country": "USA", "cases": 3},
            {"cases": 2},
            "garbage",
            {"country": "Germany", "cases": 1},
        ]
    )
    records = await fetch_countries(transport, "countries")
    assert [record.country for record in records] == ["USA", "Germany"]


@pytest.mark.asyncio
async def test_fetch_countries_rejects_non_array() -> None:
    with pytest.raises(CovidStatsPayloadError):
        await fetch_countries(StaticTransport({"message": "rate limited"}), "countries")


@pytest.mark.asyncio
async def test_fetch_federal_states_maps_attributes() -> None:
    transport = StaticTransport(
        {
            "features": [
                {
                    "attributes": {
                        "LAN_ew_GEN": "Bayern",
                        "Aktualisierung": 1700000000000,
                        "Death": 20,
                        "Fallzahl": 2000,
                        "faelle_100000_EW": 15.2,
                        "cases7_bl_per_100k": 3.4,
                    }
                },
                None,
            ]
        }
    )
    states = await fetch_federal_states(transport, "states")
    assert len(states) == 1
    assert states[0].leaves() == {
        "updated": 1700000000000,
        "deaths": 20,
        "cases": 2000,
        "cases_per_100k": 15.2,
        "cases7_per_100k": 3.4,
    }


@pytest.mark.asyncio
async def test_fetch_federal_states_without_features() -> None:
    with pytest.raises(CovidStatsPayloadError):
        await fetch_federal_states(StaticTransport({"error": "bad"}), "states")


@pytest.mark.asyncio
async def test_fetch_germany_vaccination() -> None:
    transport = StaticTransport(
        {
            "data": {
                "states": {
                    "BY": {
                        "name": "Bayern",
                        "administeredVaccinations": 1000,
                        "vaccinated": 600,
                        "quote": 0.5,
                        "secondVaccination": {"vaccinated": 400, "quote": 0.25},
                    }
                }
            }
        }
    )
    states = await fetch_germany_vaccination(transport, "vaccinations")
    leaves = states["Bayern"].leaves()
    assert leaves["rkiImpfungenGesamtVerabreicht"] == 1000
    assert leaves["rkiZweitimpfungenKumulativ"] == 400
    assert leaves["rkiErstimpfungenImpfquote"] == 50.0
    assert leaves["rkiZweitimpfungenImpfquote"] == 25.0


@pytest.mark.asyncio
async def test_fetch_vaccination_by_country_keeps_latest_values() -> None:
    transport = StaticTransport(
        [
            {
                "country": "Germany",
                "iso_code": "DEU",
                "data": [
                    {"date": "2021-01-01", "total_vaccinations": 100, "people_vaccinated": 90},
                    {"date": "2021-01-02", "total_vaccinations": 250},
                ],
            },
            {"country": "Nowhere", "data": []},
        ]
    )
    result = await fetch_vaccination_by_country(transport, "owid")
    assert set(result) == {"DEU"}
    leaves = result["DEU"].to_leaves()
    assert leaves["date"] == "2021-01-02"
    assert leaves["totalVaccinations"] == 250
    assert leaves["peopleVaccinated"] == 90


def test_normalize_state_name() -> None:
    assert normalize_state_name("Baden-Württemberg") == "BADEN_WUERTTEMBERG"
    assert normalize_state_name("Thüringen") == "THUERINGEN"
    assert normalize_state_name("Mecklenburg-Vorpommern") == "MECKLENBURG_VORPOMMERN"


@pytest.mark.asyncio
async def test_fetch_german_hospital_data() -> None:
    transport = StaticTransport(
        {
            "creationTimestamp": "2021-05-01T10:00:00",
            "data": [
                {
                    "bundesland": "BADEN_WUERTTEMBERG",
                    "meldebereichAnz": 10,
                    "intensivBettenBelegt": 75,
                    "intensivBettenFrei": 25,
                    "faelleCovidAktuell": 12,
                }
            ],
            "overallSum": {"meldebereichAnz": 100, "intensivBettenBelegt": 800, "intensivBettenFrei": 200},
        }
    )
    data = await fetch_german_hospital_data(transport, "hospital")

    state = data.for_federal_state("Baden-Württemberg")
    assert state is not None
    leaves = state.to_leaves()
    assert leaves["occupiedBeds"] == 75
    assert leaves["covidCases"] == 12
    assert leaves["occupancyPercent"] == 75.0
    assert leaves["updated"] == "2021-05-01T10:00:00"
    assert "federalState" not in leaves

    assert data.overall is not None
    assert data.overall.occupancy_percent == 80.0


@pytest.mark.asyncio
async def test_fetch_german_hospital_data_without_table() -> None:
    with pytest.raises(CovidStatsPayloadError):
        await fetch_german_hospital_data(StaticTransport([]), "hospital")
