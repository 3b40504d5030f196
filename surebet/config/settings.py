"""Configuration management using Pydantic Settings with YAML overlay.

Loading priority: .env → config/settings.yaml → config/settings.{MODE}.yaml
"""

from __future__ import annotations

import os
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_CONFIG_DIR = _PROJECT_ROOT / "config"


# --- Nested config models ---


class TicketConfig(BaseModel):
    """Shape limits of a surebet ticket."""

    min_legs: int = Field(default=2, ge=2)
    max_legs: int = 10
    min_odd: Decimal = Decimal("1.01")

    @model_validator(mode="after")
    def validate_leg_bounds(self) -> TicketConfig:
        if self.max_legs < self.min_legs:
            raise ValueError(f"max_legs={self.max_legs} is below min_legs={self.min_legs}")
        if self.min_odd <= 1:
            raise ValueError(f"min_odd={self.min_odd} must be greater than 1")
        return self


class CurrencyConfig(BaseModel):
    """Rates are quoted in units of ``rate_base`` per unit of a currency."""

    rate_base: str = "BRL"
    fallback_dominant: str = "BRL"

    @field_validator("rate_base", "fallback_dominant")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        return v.strip().upper()


class RoundingConfig(BaseModel):
    enabled: bool = False  # round automatically on every recompute
    increment: Decimal = Decimal("1")
    min_stake: Decimal = Field(default=Decimal("1"), ge=0)

    @field_validator("increment")
    @classmethod
    def validate_increment(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("rounding increment must be positive")
        return v


class DirectedConfig(BaseModel):
    """Profit the non-directed legs are solved to when profit is directed."""

    profit_floor: Decimal = Decimal("0")


class BalanceConfig(BaseModel):
    min_selectable_balance: Decimal = Field(default=Decimal("0.50"), ge=0)


class MarketConfig(BaseModel):
    """Margin thresholds (percent) for the quick market analyser."""

    high_margin_pct: Decimal = Decimal("10")
    moderate_margin_pct: Decimal = Decimal("5")
    lay_commission: Decimal = Field(default=Decimal("0.05"), ge=0, lt=1)

    @model_validator(mode="after")
    def validate_thresholds(self) -> MarketConfig:
        if self.moderate_margin_pct > self.high_margin_pct:
            raise ValueError("moderate_margin_pct cannot exceed high_margin_pct")
        return self


# --- Main config class ---


class SurebetConfig(BaseSettings):
    # Runtime
    mode: str = Field(default="prod", alias="MODE")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Nested config (loaded from YAML)
    ticket: TicketConfig = TicketConfig()
    currency: CurrencyConfig = CurrencyConfig()
    rounding: RoundingConfig = RoundingConfig()
    directed: DirectedConfig = DirectedConfig()
    balance: BalanceConfig = BalanceConfig()
    market: MarketConfig = MarketConfig()

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Deep merge overlay into base dict. Overlay values win."""
    merged = base.copy()
    for key, value in overlay.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def load_config(config_dir: Path = _CONFIG_DIR, mode: str | None = None) -> SurebetConfig:
    """Build a SurebetConfig from the YAML files in ``config_dir``."""
    mode = mode or os.getenv("MODE", "prod")

    base_yaml = _load_yaml(config_dir / "settings.yaml")
    mode_yaml = _load_yaml(config_dir / f"settings.{mode}.yaml")

    # Deep merge: base + mode overlay
    merged = _deep_merge(base_yaml, mode_yaml)

    # Env vars take priority via pydantic-settings
    return SurebetConfig(**merged)


@lru_cache(maxsize=1)
def get_config() -> SurebetConfig:
    """Load and return the singleton SurebetConfig."""
    return load_config()
