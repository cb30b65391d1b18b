"""Display metadata of every leaf attribute the runner writes."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class AttributeSpec:
    name: str
    role: str = "state"
    unit: str = ""
    write: bool = False


def _count(name: str, unit: str = "") -> AttributeSpec:
    return AttributeSpec(name=name, role="value", unit=unit)


STATE_ATTRIBUTES: dict[str, AttributeSpec] = {
    # disease.sh global and per-country counters
    "active": _count("Active cases"),
    "activePerOneMillion": _count("Active cases per one million"),
    "affectedCountries": _count("Affected countries"),
    "cases": _count("Cases"),
    "casesPerOneMillion": _count("Cases per one million"),
    "continent": AttributeSpec(name="Continent", role="text"),
    "countries": AttributeSpec(name="Countries", role="text"),
    "country": AttributeSpec(name="Country", role="text"),
    "critical": _count("Critical cases"),
    "criticalPerOneMillion": _count("Critical cases per one million"),
    "deaths": _count("Deaths"),
    "deathsPerOneMillion": _count("Deaths per one million"),
    "flag": AttributeSpec(name="Flag", role="text.url"),
    "oneCasePerPeople": _count("One case per people"),
    "oneDeathPerPeople": _count("One death per people"),
    "oneTestPerPeople": _count("One test per people"),
    "population": _count("Population"),
    "recovered": _count("Recovered"),
    "recoveredPerOneMillion": _count("Recovered per one million"),
    "tests": _count("Tests"),
    "testsPerOneMillion": _count("Tests per one million"),
    "todayCases": _count("Cases today"),
    "todayDeaths": _count("Deaths today"),
    "todayRecovered": _count("Recovered today"),
    "updated": AttributeSpec(name="Last update", role="value.time"),
    # RKI federal states and counties
    "BL": AttributeSpec(name="Federal state", role="text"),
    "cases7_per_100k": _count("Cases last 7 days per 100k"),
    "cases_per_100k": _count("Cases per 100k"),
    "cases_per_population": _count("Cases per population", "%"),
    "death_rate": _count("Death rate", "%"),
    "last_update": AttributeSpec(name="Last update", role="text"),
    # RKI vaccinations per federal state
    "rkiImpfungenGesamtVerabreicht": _count("Gesamtzahl bisher verabreichter Impfungen"),
    "rkiErstimpfungenKumulativ": _count("Erstimpfungen kumulativ"),
    "rkiZweitimpfungenKumulativ": _count("Zweitimpfungen kumulativ"),
    "rkiErstimpfungenImpfquote": _count("Erstimpfungen Impfquote", "%"),
    "rkiZweitimpfungenImpfquote": _count("Zweitimpfungen Impfquote", "%"),
    # Vaccinations per country
    "date": AttributeSpec(name="Date of last report", role="text"),
    "dailyVaccinations": _count("Daily vaccinations"),
    "peopleFullyVaccinated": _count("People fully vaccinated"),
    "peopleFullyVaccinatedPerHundred": _count("People fully vaccinated per hundred", "%"),
    "peopleVaccinated": _count("People vaccinated"),
    "peopleVaccinatedPerHundred": _count("People vaccinated per hundred", "%"),
    "totalBoosters": _count("Total boosters"),
    "totalVaccinations": _count("Total vaccinations"),
    "totalVaccinationsPerHundred": _count("Total vaccinations per hundred"),
    # Intensive care capacity
    "covidCases": _count("COVID-19 cases in intensive care"),
    "covidCasesVentilated": _count("COVID-19 cases ventilated"),
    "emergencyReserve": _count("Emergency reserve within 7 days"),
    "freeBeds": _count("Free intensive care beds"),
    "occupancyPercent": _count("Intensive care occupancy", "%"),
    "occupiedBeds": _count("Occupied intensive care beds"),
    "reportingAreas": _count("Reporting areas"),
}
