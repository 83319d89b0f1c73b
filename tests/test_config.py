from __future__ import annotations

import pytest
from pydantic import ValidationError

from diverquant.config import Settings


def test_settings_defaults_are_valid() -> None:
    settings = Settings()
    assert settings.app_name == "DiverQuant"
    assert settings.default_instrument == "EUR/USD"
    assert settings.rate_limit_per_minute > 0
    assert settings.initial_cash > 0
    assert settings.commission_bps >= 0
    assert settings.max_instruments == 500


def test_engine_config_mirrors_settings() -> None:
    config = Settings(min_confirmations=3, rsi_period=10, timeframe="5m").engine_config()
    assert config.min_confirmations == 3
    assert config.indicators.rsi_period == 10
    assert config.timeframe == "5m"
    assert config.divergence.min_bars == 5


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DIVERQ_MIN_CONFIDENCE", "0.7")
    assert Settings().min_confidence == 0.7


def test_settings_reject_inverted_periods() -> None:
    with pytest.raises(ValidationError):
        Settings(macd_fast=30, macd_slow=26)
    with pytest.raises(ValidationError):
        Settings(divergence_min_bars=10, divergence_max_history=5)
    with pytest.raises(ValidationError):
        Settings(min_confidence=1.5)
