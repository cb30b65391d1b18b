from __future__ import annotations

import logging

import pytest

from pycovidstats.resolver import CountryDatabase, CountryResolver, TranslationTable, path_safe


@pytest.fixture
def resolver() -> CountryResolver:
    return CountryResolver(TranslationTable.bundled())


def test_path_safe() -> None:
    assert path_safe("United States") == "United_States"
    assert path_safe("Korea, Republic of") == "Korea_Republic_of"
    assert path_safe("St. Barth") == "St_Barth"


class TestResolve:
    def test_by_iso3(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("Germany", {"iso2": "DE", "iso3": "DEU"})
        assert country is not None
        assert country.display_name == "Germany"
        assert country.path_safe_name == "Germany"
        assert country.continent == "Europe"
        assert country.iso3 == "DEU"

    def test_iso3_wins_over_name(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("USA", {"iso2": "US", "iso3": "USA"})
        assert country is not None
        assert country.path_safe_name == "United_States"
        assert country.continent == "North_America"

    def test_by_iso2(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("Brazil", {"iso2": "BR"})
        assert country is not None
        assert country.continent == "South_America"

    def test_by_cleaned_name(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("New_Zealand", {})
        assert country is not None
        assert country.iso2 == "NZ"
        assert country.continent == "Oceania"

    def test_by_translation(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("UK", {})
        assert country is not None
        assert country.iso2 == "GB"
        assert country.continent == "Europe"

    def test_short_display_name_preferred(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("Russia", {"iso2": "RU", "iso3": "RUS"})
        assert country is not None
        assert country.display_name == "Russia"
        assert country.path_safe_name == "Russia"

    def test_short_display_name_resolves_without_codes(self, resolver: CountryResolver) -> None:
        country = resolver.resolve("Vietnam", {})
        assert country is not None
        assert country.iso3 == "VNM"
        assert country.display_name == "Vietnam"

    def test_strategy_without_continent_falls_through(self) -> None:
        resolver = CountryResolver(TranslationTable(), database=CountryDatabase({"DE": "Europe"}))
        assert resolver.resolve("France", {"iso3": "FRA"}) is None
        assert resolver.resolve("Germany", {"iso3": "FRA"}) is not None


class TestWarnings:
    def test_unknown_name_warns_once(self, resolver: CountryResolver, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="pycovidstats.resolver"):
            assert resolver.resolve("Atlantis", {}) is None
            assert resolver.resolve("Atlantis", {}) is None
        warnings = [record for record in caplog.records if "Atlantis" in record.getMessage()]
        assert len(warnings) == 1

    @pytest.mark.parametrize("name", ["Diamond Princess", "MS Zaandam"])
    def test_non_country_entities_are_silent(
        self,
        resolver: CountryResolver,
        caplog: pytest.LogCaptureFixture,
        name: str,
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="pycovidstats.resolver"):
            assert resolver.resolve(name, {}) is None
        assert caplog.records == []


class TestTranslationTable:
    def test_user_override_added(self) -> None:
        table = TranslationTable.bundled()
        assert table.add_overrides({"Narnia": "Norway"}) == ["Narnia"]
        country = CountryResolver(table).resolve("Narnia", {})
        assert country is not None
        assert country.iso2 == "NO"

    def test_bundled_entry_wins(self) -> None:
        table = TranslationTable.bundled()
        assert table.add_overrides({"UK": "France"}) == []
        assert table.get("UK") == "United Kingdom"

    def test_invalid_json_is_ignored(self, caplog: pytest.LogCaptureFixture) -> None:
        table = TranslationTable()
        with caplog.at_level(logging.ERROR, logger="pycovidstats.resolver"):
            assert table.add_overrides_json("{not json") == []
        assert len(table) == 0
        assert caplog.records

    def test_json_overrides(self) -> None:
        table = TranslationTable()
        assert table.add_overrides_json('{"Kosovo Republic": "Serbia"}') == ["Kosovo Republic"]
        assert "Kosovo Republic" in table
