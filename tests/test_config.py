from __future__ import annotations

import pytest

from pycovidstats.config import CovidStatsConfig
from pycovidstats.exceptions import CovidStatsConfigError


def test_defaults() -> None:
    config = CovidStatsConfig()
    assert config.countries == ()
    assert config.delete_unused is False
    assert config.startup_delay_max == 30.0
    assert config.urls.global_totals.startswith("https://disease.sh/")


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COVID_COUNTRIES", "Germany, France,,")
    monkeypatch.setenv("COVID_DELETE_UNUSED", "yes")
    monkeypatch.setenv("COVID_GET_CONTINENTS", "0")
    monkeypatch.setenv("COVID_SELECTED_GERMANY_CITIES", "München")
    monkeypatch.setenv("COVID_STARTUP_DELAY_MAX", "5")

    config = CovidStatsConfig.from_env()

    assert config.countries == ("Germany", "France")
    assert config.delete_unused is True
    assert config.get_continents is False
    assert config.selected_germany_cities == ("München",)
    assert config.startup_delay_max == 5.0


def test_overrides_win_over_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COVID_STARTUP_DELAY_MAX", "5")
    monkeypatch.setenv("COVID_COUNTRIES", "Germany")

    config = CovidStatsConfig.from_env(startup_delay_max=0.0, countries=["Brazil"])

    assert config.startup_delay_max == 0.0
    assert config.countries == ("Brazil",)


def test_invalid_numeric_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("COVID_REQUEST_TIMEOUT", "soon")
    with pytest.raises(CovidStatsConfigError):
        CovidStatsConfig.from_env()


@pytest.mark.parametrize("kwargs", [{"startup_delay_max": -1}, {"request_timeout": 0}])
def test_invalid_values(kwargs: dict[str, float]) -> None:
    with pytest.raises(CovidStatsConfigError):
        CovidStatsConfig(**kwargs)
