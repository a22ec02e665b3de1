"""Settings validation."""

import pytest
from pydantic import ValidationError

from automation.core.config import Settings


def test_defaults_are_valid() -> None:
    settings = Settings(_env_file=None)
    assert settings.store_header_name == "X-Store-ID"
    assert settings.automation_batch_size == 100
    assert settings.automation_lease_seconds == 300


def test_batch_size_must_be_positive() -> None:
    with pytest.raises(ValidationError, match="AUTOMATION_BATCH_SIZE"):
        Settings(_env_file=None, automation_batch_size=0)


def test_abandoned_cart_window_must_not_be_empty() -> None:
    with pytest.raises(ValidationError, match="window is empty"):
        Settings(
            _env_file=None,
            abandoned_cart_min_idle_minutes=120,
            abandoned_cart_max_idle_hours=1,
        )


def test_sample_rate_bounds() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, telemetry_sample_rate=1.5)
