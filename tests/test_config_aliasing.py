import pytest
from src.config import get_settings


def test_polygon_api_base_url_takes_priority(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("POLYGON_API_BASE_URL", "https://api.primary.test")
    monkeypatch.delenv("POLYGON_BASE_URL", raising=False)
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.POLYGON_API_BASE_URL == "https://api.primary.test"
    get_settings.cache_clear()


def test_polygon_base_url_alias_used_when_primary_missing(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("POLYGON_API_BASE_URL", raising=False)
    monkeypatch.setenv("POLYGON_BASE_URL", "https://api.alias.test")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.POLYGON_API_BASE_URL == "https://api.alias.test"
    get_settings.cache_clear()


def test_thresholds_read_from_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("MIN_PRICE", "1.5")
    monkeypatch.setenv("COOLDOWN_MINUTES", "45")
    monkeypatch.setenv("SCAN_CONCURRENCY", "6")
    get_settings.cache_clear()

    settings = get_settings()

    assert settings.MIN_PRICE == pytest.approx(1.5)
    assert settings.COOLDOWN_MINUTES == 45
    assert settings.SCAN_CONCURRENCY == 6
    assert settings.cache_ttls()["news"] == pytest.approx(300.0)
    assert "POLYGON_API_KEY" not in settings.non_secret_dict()
    get_settings.cache_clear()
