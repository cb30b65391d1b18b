"""Country name canonicalization.

Feed entries identify countries by a display name and optional ISO codes
that do not always agree with each other or with ISO 3166. Resolution
walks an ordered chain of lookup strategies and stops at the first one
that yields a country with a known continent:

1. exact ISO-3 code,
2. exact ISO-2 code,
3. the feed name with underscores and two accented characters normalized,
4. the feed name mapped through the :class:`TranslationTable`.

The static country database is ``pycountry`` joined with bundled
ISO-2 → continent and ISO-2 → short display name tables.
"""

from __future__ import annotations

import importlib.resources
import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import pycountry

from pycovidstats._constants import NON_COUNTRY_ENTITIES
from pycovidstats.models.country import CanonicalCountry, CountryInfo

_logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")
_POINTS_AND_COMMAS_RE = re.compile(r"[.,]")


def path_safe(text: str) -> str:
    """Return *text* usable as a store path segment.

    Whitespace runs become ``_``; periods and commas are removed.
    """
    return _POINTS_AND_COMMAS_RE.sub("", _WHITESPACE_RE.sub("_", text.strip()))


def _load_json(resource: str) -> Any:
    ref = importlib.resources.files("pycovidstats").joinpath(f"data/{resource}")
    return json.loads(ref.read_text(encoding="utf-8"))


def load_continent_table() -> dict[str, str]:
    """Bundled ISO-2 → continent mapping."""
    by_continent: dict[str, list[str]] = _load_json("continents.json")
    return {iso2: continent for continent, codes in by_continent.items() for iso2 in codes}


def load_display_names() -> dict[str, str]:
    """Bundled ISO-2 → short display name, for countries whose ISO name is formal."""
    return dict(_load_json("display_names.json"))


# ---------------------------------------------------------------------------
# Translation table
# ---------------------------------------------------------------------------


class TranslationTable:
    """Irregular feed name → canonical country name.

    Built from the bundled table; user overrides are merged in afterwards
    and never replace a name that is already known.
    """

    def __init__(self, entries: Mapping[str, str] | None = None) -> None:
        self._entries: dict[str, str] = dict(entries or {})

    @classmethod
    def bundled(cls) -> TranslationTable:
        return cls(_load_json("country_translator.json"))

    def __contains__(self, raw_name: object) -> bool:
        return raw_name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, raw_name: str) -> str | None:
        return self._entries.get(raw_name)

    def add_overrides(self, overrides: Mapping[str, Any]) -> list[str]:
        """Merge *overrides*; returns the names that were added."""
        added: list[str] = []
        for raw_name, canonical in overrides.items():
            if raw_name in self._entries:
                continue
            if not isinstance(canonical, str) or not canonical:
                _logger.warning("Ignoring user country translation %r -> %r", raw_name, canonical)
                continue
            self._entries[raw_name] = canonical
            added.append(raw_name)
            _logger.info("User defined country translation added: %s -> %s", raw_name, canonical)
        return added

    def add_overrides_json(self, text: str) -> list[str]:
        """Merge overrides from a JSON object string.

        Invalid JSON is logged and ignored.
        """
        try:
            overrides = json.loads(text)
        except json.JSONDecodeError as exc:
            _logger.error(
                "Can not parse JSON string for user defined country translation, check the "
                "'countryTranslator' state: %s",
                exc,
            )
            return []
        if not isinstance(overrides, dict):
            _logger.error("User defined country translation must be a JSON object, got %s", type(overrides).__name__)
            return []
        return self.add_overrides(overrides)


# ---------------------------------------------------------------------------
# Country database
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CountryEntry:
    """A country known to the static database, with its continent."""

    name: str
    iso2: str
    iso3: str
    continent: str


class CountryDatabase:
    """``pycountry`` lookups restricted to countries with a known continent."""

    def __init__(
        self,
        continents: Mapping[str, str] | None = None,
        display_names: Mapping[str, str] | None = None,
    ) -> None:
        self._continents = dict(continents) if continents is not None else load_continent_table()
        self._display_names = dict(display_names) if display_names is not None else load_display_names()
        self._by_display_name = {name.casefold(): iso2 for iso2, name in self._display_names.items()}

    def _entry(self, country: Any) -> CountryEntry | None:
        if country is None:
            return None
        continent = self._continents.get(country.alpha_2, "")
        if not continent:
            return None
        name = (
            self._display_names.get(country.alpha_2)
            or getattr(country, "common_name", None)
            or country.name
        )
        return CountryEntry(name=name, iso2=country.alpha_2, iso3=country.alpha_3, continent=continent)

    def by_alpha3(self, code: str) -> CountryEntry | None:
        return self._entry(pycountry.countries.get(alpha_3=code.upper()))

    def by_alpha2(self, code: str) -> CountryEntry | None:
        return self._entry(pycountry.countries.get(alpha_2=code.upper()))

    def by_name(self, name: str) -> CountryEntry | None:
        iso2 = self._by_display_name.get(name.casefold())
        if iso2 is not None:
            return self.by_alpha2(iso2)
        try:
            country = pycountry.countries.lookup(name)
        except LookupError:
            return None
        return self._entry(country)


# ---------------------------------------------------------------------------
# Resolution strategies
# ---------------------------------------------------------------------------


class ResolverStrategy(Protocol):
    name: str

    def lookup(self, db: CountryDatabase, raw_name: str, info: CountryInfo) -> CountryEntry | None:
        ...


class Iso3Strategy:
    name = "iso3"

    def lookup(self, db: CountryDatabase, raw_name: str, info: CountryInfo) -> CountryEntry | None:
        return db.by_alpha3(info.iso3) if info.iso3 else None


class Iso2Strategy:
    name = "iso2"

    def lookup(self, db: CountryDatabase, raw_name: str, info: CountryInfo) -> CountryEntry | None:
        return db.by_alpha2(info.iso2) if info.iso2 else None


class CleanedNameStrategy:
    name = "name"

    def lookup(self, db: CountryDatabase, raw_name: str, info: CountryInfo) -> CountryEntry | None:
        cleaned = raw_name.replace("_", " ").replace("é", "e").replace("ç", "c")
        return db.by_name(cleaned) if cleaned else None


class TranslatedNameStrategy:
    name = "translation"

    def __init__(self, translations: TranslationTable) -> None:
        self._translations = translations

    def lookup(self, db: CountryDatabase, raw_name: str, info: CountryInfo) -> CountryEntry | None:
        translated = self._translations.get(raw_name)
        return db.by_name(translated) if translated else None


class CountryResolver:
    """Resolve feed country names to :class:`CanonicalCountry` identities.

    Unresolved names are reported once per resolver instance; create one
    resolver per run.
    """

    def __init__(
        self,
        translations: TranslationTable | None = None,
        *,
        database: CountryDatabase | None = None,
    ) -> None:
        self.translations = translations if translations is not None else TranslationTable.bundled()
        self._db = database if database is not None else CountryDatabase()
        self._strategies: list[ResolverStrategy] = [
            Iso3Strategy(),
            Iso2Strategy(),
            CleanedNameStrategy(),
            TranslatedNameStrategy(self.translations),
        ]
        self._warned: set[str] = set()

    def resolve(
        self,
        raw_name: str,
        country_info: CountryInfo | Mapping[str, Any] | None = None,
    ) -> CanonicalCountry | None:
        """Return the canonical identity of *raw_name*, or ``None``."""
        info = country_info if isinstance(country_info, CountryInfo) else CountryInfo.model_validate(country_info or {})

        for strategy in self._strategies:
            entry = strategy.lookup(self._db, raw_name, info)
            if entry is None:
                continue
            _logger.debug("Resolved %r via %s to %s (%s)", raw_name, strategy.name, entry.name, entry.continent)
            return CanonicalCountry(
                display_name=entry.name,
                path_safe_name=path_safe(entry.name),
                continent=path_safe(entry.continent),
                iso2=entry.iso2,
                iso3=entry.iso3,
            )

        if raw_name not in NON_COUNTRY_ENTITIES and raw_name not in self._warned:
            self._warned.add(raw_name)
            _logger.warning(
                "%s (iso2: %s, iso3: %s) not found in country database! Must be added to the country name translator.",
                raw_name,
                info.iso2,
                info.iso3,
            )
        return None
