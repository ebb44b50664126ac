import pytest

from src.config import Settings
from src.utils.config_validation import validate_runtime_config


def test_config_validation_rejects_inverted_price_band():
    settings = Settings(
        POLYGON_API_KEY="key",
        DATABASE_URL="sqlite://",
        MIN_PRICE=10.0,
        MAX_PRICE=5.0,
    )

    with pytest.raises(RuntimeError, match="Config mismatch"):
        validate_runtime_config(settings)


def test_config_validation_requires_api_key():
    settings = Settings(
        POLYGON_API_KEY="",
        DATABASE_URL="sqlite://",
    )

    with pytest.raises(RuntimeError, match="Missing POLYGON_API_KEY"):
        validate_runtime_config(settings)


def test_config_validation_rejects_non_positive_cooldown():
    settings = Settings(
        POLYGON_API_KEY="key",
        DATABASE_URL="sqlite://",
        COOLDOWN_MINUTES=0,
    )

    with pytest.raises(RuntimeError, match="COOLDOWN_MINUTES"):
        validate_runtime_config(settings)


def test_config_validation_passes_for_defaults():
    settings = Settings(
        POLYGON_API_KEY="key",
        DATABASE_URL="sqlite://",
    )

    validate_runtime_config(settings)
