"""One synchronization pass over all upstream feeds."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from pycovidstats._constants import (
    COUNTRY_TRANSLATOR,
    GLOBAL_CONTINENTS,
    GLOBAL_TOTALS,
    TOP_COUNTRIES,
    TOP_COUNTRIES_SIZE,
)
from pycovidstats._transport import HttpTransport, Transport
from pycovidstats.aggregation import ContinentAggregator
from pycovidstats.classifier import RegionBucket, classify, is_selected
from pycovidstats.config import CovidStatsConfig
from pycovidstats.exceptions import CovidStatsError
from pycovidstats.ingestion import (
    UNAVAILABLE,
    GermanHospitalData,
    Prefetch,
    fetch_counties,
    fetch_countries,
    fetch_federal_states,
    fetch_german_hospital_data,
    fetch_germany_vaccination,
    fetch_global,
    fetch_vaccination_by_country,
)
from pycovidstats.models.country import CanonicalCountry, RawCountryRecord
from pycovidstats.models.germany import FederalStateAttributes, StateVaccination
from pycovidstats.models.hospital import HospitalData
from pycovidstats.models.vaccination import CountryVaccination
from pycovidstats.resolver import CountryResolver, TranslationTable, path_safe
from pycovidstats.state.reconciler import Reconciler
from pycovidstats.state.store import ObjectStore, ObjectType, StoredObject
from pycovidstats.transform import transform

_logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]

GERMANY = "Germany"
FEDERAL_STATES_ROOT = f"{GERMANY}.Bundesland"

# Vaccination leaves of earlier feed layouts, removed from every federal state.
_LEGACY_VACCINATION_LEAVES: tuple[str, ...] = (
    "rkiImpfungenProTausend",
    "rkiDifferenzVortag",
    "rkiIndikationAlter",
    "rkiIndikationBeruf",
    "rkiIndikationMedizinisch",
    "rkiImpfungePflegeheim",
    "rkiErstimpfungenBioNTech",
    "rkiErstimpfungenModerna",
    "rkiErstimpfungenAstraZeneca",
    "rkiErstimpfungenDifferenzVortag",
    "rkiZweitimpfungenBioNTech",
    "rkiZweitimpfungenModerna",
    "rkiZweitimpfungenAstraZeneca",
    "rkiZweitimpfungenDifferenzVortag",
)

_VACCINATION_QUOTES: tuple[str, ...] = ("rkiErstimpfungenImpfquote", "rkiZweitimpfungenImpfquote")


@dataclass
class RunContext:
    """Names collected during one run."""

    countries: list[str] = field(default_factory=list)
    federal_states: list[str] = field(default_factory=list)
    counties: list[str] = field(default_factory=list)
    cities: list[str] = field(default_factory=list)
    county_details: list[dict[str, dict[str, Any]]] = field(default_factory=list)


class CovidStatsRunner:
    """Fetch every feed once and reconcile the results into *store*.

    Usage::

        async with CovidStatsRunner(config, store) as runner:
            context = await runner.run()

    Passing *transport* skips the HTTP session entirely, which is how
    tests drive the runner.
    """

    def __init__(
        self,
        config: CovidStatsConfig,
        store: ObjectStore,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self._external_session = session is not None
        self._http_session = session
        self._transport = transport
        self._on_error = on_error
        self._reconciler = Reconciler(store, prune_enabled=config.delete_unused)
        self._resolver = CountryResolver()
        self._vaccination: Prefetch[dict[str, CountryVaccination]] | None = None
        self._hospital: Prefetch[GermanHospitalData] | None = None

    async def __aenter__(self) -> CovidStatsRunner:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._http_session, timeout=self._config.request_timeout)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    @property
    def reconciler(self) -> Reconciler:
        return self._reconciler

    @property
    def resolver(self) -> CountryResolver:
        return self._resolver

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise CovidStatsError("Runner has no transport; use 'async with' or pass transport=")
        return self._transport

    def _error_handling(self, code_part: str, exc: BaseException) -> None:
        _logger.error("[%s] error: %s", code_part, exc, exc_info=exc)
        if self._on_error is None:
            return
        try:
            self._on_error(code_part, exc)
        except Exception:  # noqa: BLE001
            _logger.debug("Error callback failed for %s", code_part, exc_info=True)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> RunContext:
        """Execute one pass; data errors are logged, never raised."""
        context = RunContext()
        try:
            transport = self._require_transport()
            await self._startup_delay()
            self._begin_run()

            urls = self._config.urls
            self._vaccination = Prefetch("Vaccination", fetch_vaccination_by_country(transport, urls.vaccination))
            self._hospital = Prefetch("Hospital", fetch_german_hospital_data(transport, urls.hospital))
            try:
                await self._run_phases(context)
            finally:
                await self._vaccination.close()
                await self._hospital.close()
        except Exception as exc:  # noqa: BLE001
            self._error_handling("run", exc)
        return context

    async def _startup_delay(self) -> None:
        upper = self._config.startup_delay_max
        if upper <= 0:
            return
        delay = random.uniform(0, upper)
        _logger.debug("Delaying start by %.1f s", delay)
        await asyncio.sleep(delay)

    def _begin_run(self) -> None:
        self._reconciler = Reconciler(self._store, prune_enabled=self._config.delete_unused)
        self._resolver = CountryResolver(TranslationTable.bundled())

    async def _run_phases(self, context: RunContext) -> None:
        config = self._config
        await self._store.set_object_not_exists(
            COUNTRY_TRANSLATOR,
            StoredObject(
                type=ObjectType.STATE,
                common={
                    "name": "Country name translations (JSON)",
                    "role": "json",
                    "type": "string",
                    "read": True,
                    "write": True,
                },
            ),
        )
        translator = await self._store.get_object(COUNTRY_TRANSLATOR)
        native = translator.native if translator is not None else {}
        await self.load_translation_overrides()

        await self.load_global()
        await self.load_countries(context)

        if config.get_germany_federal_states or not native.get("allGermanyFederalStates"):
            await self._reconciler.ensure_folder(FEDERAL_STATES_ROOT, "Bundesland")
            await self.load_germany_federal_states(context)
        else:
            await self._reconciler.prune(FEDERAL_STATES_ROOT)

        if (
            config.get_germany_cities
            or config.get_germany_counties
            or not native.get("allGermanyCities")
            or not native.get("allGermanyCounties")
        ):
            await self.load_germany_counties(context)

        if not config.get_germany_cities:
            await self._reconciler.prune(f"{GERMANY}.{RegionBucket.CITY}")
        if not config.get_germany_counties:
            await self._reconciler.prune(f"{GERMANY}.{RegionBucket.COUNTY}")

    async def load_translation_overrides(self) -> None:
        """Merge user translations kept in the ``countryTranslator`` state."""
        try:
            state = await self._store.get_state(COUNTRY_TRANSLATOR)
            if state is not None and isinstance(state.val, str) and state.val:
                self._resolver.translations.add_overrides_json(state.val)
        except Exception as exc:  # noqa: BLE001
            self._error_handling("addUserCountriesTranslator", exc)

    # ------------------------------------------------------------------
    # Worldwide
    # ------------------------------------------------------------------

    async def load_global(self) -> None:
        """Write the worldwide summary below ``global_totals``."""
        try:
            try:
                values = await fetch_global(self._require_transport(), self._config.urls.global_totals)
            except CovidStatsError as exc:
                _logger.warning("[loadAll] Unable to contact COVID-19 API: %s", exc)
                return
            await self._reconciler.ensure_folder(
                GLOBAL_TOTALS,
                "Total values of all countries together",
                folder_type=ObjectType.DEVICE,
            )
            await self._reconciler.reconcile_many(GLOBAL_TOTALS, values)
        except Exception as exc:  # noqa: BLE001
            self._error_handling("loadAll", exc)

    async def load_countries(self, context: RunContext) -> None:
        """Write per-country values, the leaderboard and continent rollups."""
        try:
            try:
                records = await fetch_countries(self._require_transport(), self._config.urls.countries)
            except CovidStatsError as exc:
                _logger.warning("[loadCountries] Unable to contact COVID-19 API: %s", exc)
                return

            aggregator = ContinentAggregator()
            for record in records:
                resolved = self._resolver.resolve(record.country, record.country_info)
                country_name = resolved.display_name if resolved is not None else record.country
                if resolved is not None:
                    continent = resolved.continent
                else:
                    continent = path_safe(record.continent) if record.continent else ""

                context.countries.append(country_name)
                node = path_safe(country_name)
                _logger.debug(
                    "Feed name %s, display name %s, node %s, continent %s",
                    record.country,
                    country_name,
                    node,
                    continent,
                )

                if self._config.load_all_countries or country_name in self._config.countries:
                    try:
                        await self._write_country(node, record, resolved)
                    except Exception:  # noqa: BLE001
                        _logger.warning("Cannot write data for %s", node, exc_info=True)
                else:
                    await self._prune_country(node, record)
                await self._reconciler.prune(f"{node}.countryInfo")

                aggregator.add(continent, country_name, record)

            await self._write_top_countries(records)
            await self._write_continents(aggregator)

            await self._reconciler.annotate(COUNTRY_TRANSLATOR, {"allCountrys": context.countries})
        except Exception as exc:  # noqa: BLE001
            self._error_handling("loadCountries", exc)

    async def _prune_country(self, node: str, record: RawCountryRecord) -> None:
        if node != GERMANY:
            await self._reconciler.prune(node)
            return
        # Germany.Bundesland, .Kreis and .Stadt are owned by the sub-national phases.
        for key in (*record.leaves(), "Vaccination", "Hospital"):
            await self._reconciler.prune(f"{node}.{key}")

    async def _write_country(self, node: str, record: RawCountryRecord, resolved: CanonicalCountry | None) -> None:
        await self._reconciler.ensure_folder(node, node, folder_type=ObjectType.DEVICE)
        await self._reconciler.ensure_folder(f"{node}.Vaccination", "Vaccination Data")
        await self._reconciler.reconcile_many(node, record.leaves())

        vaccination = await self._vaccination.result() if self._vaccination is not None else UNAVAILABLE
        if vaccination is not UNAVAILABLE and resolved is not None and resolved.iso3:
            data = vaccination.get(resolved.iso3)
            if data is not None:
                await self._reconciler.reconcile_many(f"{node}.Vaccination", data.to_leaves())
            else:
                _logger.debug("No vaccination data for %s", node)

        if node == GERMANY:
            hospital = await self._hospital.result() if self._hospital is not None else UNAVAILABLE
            if hospital is not UNAVAILABLE:
                await self._write_hospital(node, hospital.overall)

    async def _write_hospital(self, base: str, data: HospitalData | None) -> None:
        if data is None:
            _logger.debug("No hospital data for %s", base)
            return
        await self._reconciler.ensure_folder(f"{base}.Hospital", "Hospital")
        await self._reconciler.reconcile_many(f"{base}.Hospital", data.to_leaves())

    async def _write_top_countries(self, records: list[RawCountryRecord]) -> None:
        await self._reconciler.ensure_folder(TOP_COUNTRIES, "country Top 5", folder_type=ObjectType.DEVICE)
        for position, record in enumerate(records[:TOP_COUNTRIES_SIZE], start=1):
            channel = f"{TOP_COUNTRIES}.{position}"
            await self._reconciler.ensure_folder(channel, f"Rank {position} : {record.country}")
            await self._reconciler.reconcile_many(channel, record.leaves(include_country=True))

    async def _write_continents(self, aggregator: ContinentAggregator) -> None:
        if not self._config.get_continents:
            await self._reconciler.prune(GLOBAL_CONTINENTS)
            return

        await self._reconciler.ensure_folder(
            GLOBAL_CONTINENTS,
            "Global totals for each continent",
            folder_type=ObjectType.DEVICE,
        )
        for aggregate in aggregator.finalize():
            channel = f"{GLOBAL_CONTINENTS}.{aggregate.name}"
            await self._reconciler.ensure_folder_once(channel, aggregate.name)
            await self._reconciler.prune(f"{channel}.countryInfo")
            await self._reconciler.reconcile_many(channel, aggregate.leaves())

    # ------------------------------------------------------------------
    # Germany
    # ------------------------------------------------------------------

    async def load_germany_federal_states(self, context: RunContext) -> None:
        """Write federal state metrics, vaccination progress and ICU capacity."""
        try:
            transport = self._require_transport()
            try:
                states = await fetch_federal_states(transport, self._config.urls.federal_states)
            except CovidStatsError as exc:
                _logger.warning("[germanyFederalStates] Unable to contact federal state API: %s", exc)
                return

            try:
                vaccination = await fetch_germany_vaccination(transport, self._config.urls.germany_vaccination)
            except CovidStatsError as exc:
                _logger.warning("[germanyFederalStates] Vaccination data unavailable: %s", exc)
                vaccination = None

            for state in states:
                if not state.name:
                    continue
                context.federal_states.append(state.name)
                channel = f"{FEDERAL_STATES_ROOT}.{path_safe(state.name)}"

                for legacy in _LEGACY_VACCINATION_LEAVES:
                    await self._reconciler.prune(f"{channel}._Impfungen.{legacy}")

                selected = is_selected(
                    self._config.get_all_germany_federal_states,
                    state.name,
                    self._config.selected_germany_federal_states,
                )
                if not selected:
                    await self._reconciler.prune(channel)
                    continue
                try:
                    state_vaccination = vaccination.get(state.name) if vaccination is not None else None
                    await self._write_federal_state(channel, state, state_vaccination)
                except Exception:  # noqa: BLE001
                    _logger.warning("Cannot write data for %s", channel, exc_info=True)

            await self._reconciler.prune(f"{GERMANY}._Impfungen")

            context.federal_states.sort()
            await self._reconciler.annotate(COUNTRY_TRANSLATOR, {"allGermanyFederalStates": context.federal_states})
        except Exception as exc:  # noqa: BLE001
            self._error_handling("germanyFederalStates", exc)

    async def _write_federal_state(
        self,
        channel: str,
        state: FederalStateAttributes,
        vaccination: StateVaccination | None,
    ) -> None:
        await self._reconciler.ensure_folder(channel, state.name)

        hospital = await self._hospital.result() if self._hospital is not None else UNAVAILABLE
        if hospital is not UNAVAILABLE:
            try:
                await self._write_hospital(channel, hospital.for_federal_state(state.name))
            except Exception as exc:  # noqa: BLE001
                _logger.error("Cannot write hospital data for %s: %s", channel, exc)

        if vaccination is not None:
            await self._reconciler.ensure_folder(f"{channel}._Impfungen", "Impfungen data by RKI")
            leaves = vaccination.leaves()
            for key in _VACCINATION_QUOTES:
                if leaves[key] is not None:
                    leaves[key] = transform("round(2)", leaves[key])
            await self._reconciler.reconcile_many(f"{channel}._Impfungen", leaves)

        await self._reconciler.reconcile_many(channel, state.leaves())

    async def load_germany_counties(self, context: RunContext) -> None:
        """Write county and city metrics below ``Germany.Kreis`` / ``Germany.Stadt``."""
        try:
            try:
                counties = await fetch_counties(self._require_transport(), self._config.urls.counties)
            except CovidStatsError as exc:
                _logger.warning("[germanyCounties] Unable to contact county API: %s", exc)
                return

            config = self._config
            for county in counties:
                if not county.name:
                    continue
                node_name = path_safe(county.name)
                context.county_details.append(
                    {county.county: {"GEN": county.name, "county": county.county, "BEZ": county.label}}
                )

                classification = classify(county.label, record=county.raw)
                if classification.failed or classification.bucket is None:
                    continue

                if classification.bucket is RegionBucket.CITY:
                    context.cities.append(node_name)
                    selected = is_selected(config.get_all_germany_cities, node_name, config.selected_germany_cities)
                else:
                    context.counties.append(node_name)
                    selected = is_selected(config.get_all_germany_counties, node_name, config.selected_germany_counties)

                bucket_path = f"{GERMANY}.{classification.bucket}"
                path = f"{bucket_path}.{node_name}"
                if not selected:
                    await self._reconciler.prune(path)
                    continue
                try:
                    await self._reconciler.ensure_folder(bucket_path, str(classification.bucket))
                    await self._reconciler.ensure_folder(path, node_name)
                    await self._reconciler.reconcile_many(path, county.leaves())
                except Exception:  # noqa: BLE001
                    _logger.warning("Cannot write data for %s", path, exc_info=True)

            context.county_details.sort(key=lambda detail: next(iter(detail)))
            context.cities.sort()
            context.counties.sort()
            await self._reconciler.annotate(COUNTRY_TRANSLATOR, {"allGermanyCounties": context.counties})
            await self._reconciler.annotate(COUNTRY_TRANSLATOR, {"allGermanyCities": context.cities})
        except Exception as exc:  # noqa: BLE001
            self._error_handling("germanyCounties", exc)
