"""Internal constants shared across the library."""

import re

USER_AGENT = "pycovidstats (+https://github.com/pycovidstats/pycovidstats)"

GLOBAL_URL = "https://disease.sh/v3/covid-19/all"
COUNTRIES_URL = "https://disease.sh/v3/covid-19/countries?sort=cases"
FEDERAL_STATES_URL = (
    "https://services7.arcgis.com/mOBPykOjAyBO2ZKk/arcgis/rest/services/"
    "Coronaf%C3%A4lle_in_den_Bundesl%C3%A4ndern/FeatureServer/0/query"
    "?where=1%3D1&outFields=*&returnGeometry=false&outSR=4326&f=json"
)
COUNTIES_URL = (
    "https://services7.arcgis.com/mOBPykOjAyBO2ZKk/arcgis/rest/services/"
    "RKI_Landkreisdaten/FeatureServer/0/query"
    "?where=1%3D1&outFields=OBJECTID,GEN,BEZ,death_rate,cases,deaths,cases_per_100k,"
    "cases7_per_100k,cases_per_population,BL,county,last_update"
    "&returnGeometry=false&outSR=4326&f=json"
)
GERMANY_VACCINATION_URL = "https://api.corona-zahlen.org/vaccinations"
VACCINATION_URL = "https://covid.ourworldindata.org/data/vaccinations/vaccinations.json"
HOSPITAL_URL = "https://www.intensivregister.de/api/public/reporting/laendertabelle"

# Randomized startup delay upper bound (seconds).
STARTUP_DELAY_MAX_S = 30.0

# ------------------------------------------------------------------
# Store layout
# ------------------------------------------------------------------

GLOBAL_TOTALS = "global_totals"
GLOBAL_CONTINENTS = "global_continents"
TOP_COUNTRIES = "country_Top_5"
TOP_COUNTRIES_SIZE = 5
COUNTRY_TRANSLATOR = "countryTranslator"

AMERICAS_AGGREGATE = "America"
WORLD_AGGREGATE = "World_Sum"

# Continents (path-safe form) that roll up into the combined Americas aggregate.
AMERICAS_PATTERN = re.compile(r"^(North|South)_America$")

# Feed entries without a sovereign country behind them.
NON_COUNTRY_ENTITIES: frozenset[str] = frozenset({"Diamond Princess", "MS Zaandam"})

# Country-record keys that are never summed into an aggregate.
NON_AGGREGATED_KEYS: frozenset[str] = frozenset({"country", "countryInfo", "continent", "updated"})
