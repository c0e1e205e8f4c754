"""Configuration loading and validation using Pydantic."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class VaultConfig(BaseModel):
    vault_address: str = "vault"
    vault_manager: str
    keeper: str
    deposit_cap: int = Field(ge=0)
    asset_threshold_bps: int = Field(default=500, ge=0, le=10_000)
    weight_threshold_bps: int = Field(default=500, ge=0, le=10_000)
    asset_decimals: int = Field(default=6, ge=0, le=36)
    decimals_offset: int = Field(default=0, ge=0, le=18)
    event_history: int = Field(default=1000, ge=1)

    @field_validator("vault_address", "vault_manager", "keeper")
    @classmethod
    def principal_not_blank(cls, v):
        if not v.strip():
            raise ValueError("principal ids must be non-empty")
        return v


class MarketSeedConfig(BaseModel):
    """An in-memory market used by the simulated provider."""

    market: str
    target_weight: int = Field(gt=0, le=10_000)
    decimals: int = Field(default=18, ge=0, le=36)
    position: int = Field(default=0, ge=0)
    price: int
    price_scale: int = Field(default=30, ge=0)


class SimulationConfig(BaseModel):
    """Seed balances for the in-memory collaborators."""

    idle_balance: int = Field(default=0, ge=0)
    share_supply: int = Field(default=0, ge=0)
    keeper_balance: int = Field(default=0, ge=0)
    markets: list[MarketSeedConfig] = Field(default_factory=list)

    @model_validator(mode="after")
    def markets_unique(self):
        names = [m.market for m in self.markets]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate markets in simulation seed: {names}")
        return self


class LoggingConfig(BaseModel):
    level: str = "INFO"
    app_log: str = "logs/marketvault.log"
    rebalance_log: str = "logs/rebalances.log"
    event_log: str = "logs/events.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class ProvidersConfig(BaseModel):
    oracle: str = "memory"
    asset_token: str = "memory"


class AppConfig(BaseModel):
    providers: ProvidersConfig = Field(default_factory=ProvidersConfig)
    vault: VaultConfig
    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class RedisSettings(BaseSettings):
    """Loaded from REDIS_* environment variables or the .env file."""

    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    state_ttl_seconds: int = 30 * 24 * 60 * 60

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


def load_config(config_path: Path = Path("config/settings.yaml")) -> AppConfig:
    """Load and validate application configuration from YAML."""
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return AppConfig(**raw)
