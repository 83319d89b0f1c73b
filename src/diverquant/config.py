from __future__ import annotations

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from diverquant.divergence import DivergenceConfig
from diverquant.engine import SignalEngineConfig
from diverquant.indicators import IndicatorConfig
from diverquant.risk import MINUTE_BARS_PER_YEAR


class Settings(BaseSettings):
    """Environment-backed runtime settings."""

    app_name: str = "DiverQuant"
    env: str = "dev"
    log_level: str = "INFO"
    default_instrument: str = "EUR/USD"
    timeframe: str = "1m"

    rsi_period: int = Field(default=14, gt=0)
    macd_fast: int = Field(default=12, gt=0)
    macd_slow: int = Field(default=26, gt=0)
    macd_signal: int = Field(default=9, gt=0)
    stochastic_k: int = Field(default=14, gt=0)
    stochastic_d: int = Field(default=3, gt=0)
    ema_fast: int = Field(default=9, gt=0)
    ema_slow: int = Field(default=21, gt=0)
    adx_period: int = Field(default=14, gt=0)

    divergence_min_bars: int = Field(default=5, ge=3)
    divergence_max_history: int = Field(default=100, gt=0)
    divergence_min_strength: float = Field(default=0.3, ge=0, le=1)
    strong_divergence: float = Field(default=0.5, ge=0, le=1)

    min_confirmations: int = Field(default=2, gt=0)
    min_confidence: float = Field(default=0.6, ge=0, le=1)
    snapshot_history: int = Field(default=50, ge=3)
    price_window: int = Field(default=100, gt=0)
    stop_loss_pct: float = Field(default=0.002, gt=0, lt=1)
    take_profit_pct: float = Field(default=0.004, gt=0, lt=1)
    horizon_minutes: int = Field(default=5, gt=0)

    signal_log_size: int = Field(default=1000, gt=0)
    max_instruments: int = Field(default=500, gt=0)
    rate_limit_per_minute: int = Field(default=120, gt=0)
    initial_cash: float = Field(default=100_000, gt=0)
    commission_bps: float = Field(default=0.0, ge=0)
    periods_per_year: int = Field(default=MINUTE_BARS_PER_YEAR, gt=0)

    @model_validator(mode="after")
    def _check_periods(self) -> Settings:
        if self.macd_fast >= self.macd_slow:
            raise ValueError("macd_fast must be < macd_slow")
        if self.ema_fast >= self.ema_slow:
            raise ValueError("ema_fast must be < ema_slow")
        if self.divergence_max_history < self.divergence_min_bars:
            raise ValueError("divergence_max_history must be >= divergence_min_bars")
        return self

    model_config = SettingsConfigDict(
        env_prefix="DIVERQ_",
        env_file=".env",
        env_file_encoding="utf-8-sig",
        extra="ignore",
    )

    def engine_config(self) -> SignalEngineConfig:
        return SignalEngineConfig(
            indicators=IndicatorConfig(
                rsi_period=self.rsi_period,
                macd_fast=self.macd_fast,
                macd_slow=self.macd_slow,
                macd_signal=self.macd_signal,
                stochastic_k=self.stochastic_k,
                stochastic_d=self.stochastic_d,
                ema_fast=self.ema_fast,
                ema_slow=self.ema_slow,
                adx_period=self.adx_period,
            ),
            divergence=DivergenceConfig(
                min_bars=self.divergence_min_bars,
                max_history=self.divergence_max_history,
                min_strength=self.divergence_min_strength,
            ),
            timeframe=self.timeframe,
            snapshot_history=self.snapshot_history,
            price_window=self.price_window,
            strong_divergence=self.strong_divergence,
            min_confirmations=self.min_confirmations,
            min_confidence=self.min_confidence,
            stop_loss_pct=self.stop_loss_pct,
            take_profit_pct=self.take_profit_pct,
            horizon_minutes=self.horizon_minutes,
        )
