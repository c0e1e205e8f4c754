"""Shared test fixtures."""

from dataclasses import dataclass, field

import pytest

from marketvault.adapters.memory import (
    InMemoryAssetToken,
    InMemoryMarketToken,
    InMemoryShareLedger,
    StaticPriceOracle,
)
from marketvault.config import AppConfig, VaultConfig
from marketvault.vault import AllocationVault

VAULT = "vault"
MANAGER = "manager"
KEEPER = "keeper"


@dataclass
class VaultHarness:
    """A vault wired to in-memory collaborators, with helpers to seed markets."""

    vault: AllocationVault
    asset: InMemoryAssetToken
    oracle: StaticPriceOracle
    ledger: InMemoryShareLedger
    market_tokens: dict[str, InMemoryMarketToken] = field(default_factory=dict)

    def add_market(self, market, position, price, weight=None, decimals=0, scale=0):
        token = InMemoryMarketToken(decimals=decimals)
        token.set_balance(VAULT, position)
        self.market_tokens[market] = token
        self.oracle.set_price(market, price, scale=scale)
        if weight is not None:
            self.vault.set_weight(MANAGER, market, weight)
        return token


@pytest.fixture
def vault_config() -> VaultConfig:
    """Unit-precision vault: asset decimals 0, 10% bands, cap of 1000."""
    return VaultConfig(
        vault_address=VAULT,
        vault_manager=MANAGER,
        keeper=KEEPER,
        deposit_cap=1000,
        asset_threshold_bps=1000,
        weight_threshold_bps=1000,
        asset_decimals=0,
    )


@pytest.fixture
def asset_token() -> InMemoryAssetToken:
    return InMemoryAssetToken(owner=VAULT, decimals=0)


@pytest.fixture
def harness(vault_config, asset_token) -> VaultHarness:
    asset = asset_token
    oracle = StaticPriceOracle(scale=0)
    ledger = InMemoryShareLedger()
    tokens: dict[str, InMemoryMarketToken] = {}

    vault = AllocationVault(
        config=vault_config,
        oracle=oracle,
        asset=asset,
        market_tokens=lambda m: tokens[m],
        ledger=ledger,
    )
    return VaultHarness(
        vault=vault,
        asset=asset,
        oracle=oracle,
        ledger=ledger,
        market_tokens=tokens,
    )


@pytest.fixture
def two_market_harness(harness) -> VaultHarness:
    """Markets A and B worth 40 each plus 20 idle: total 100, both at 4000 bps."""
    harness.asset.mint(VAULT, 20)
    harness.asset.mint(KEEPER, 100)
    harness.asset.approve(KEEPER, VAULT, 1000)
    harness.add_market("A", position=40, price=1, weight=4000)
    harness.add_market("B", position=40, price=1, weight=4000)
    return harness


@pytest.fixture
def test_config() -> AppConfig:
    """Provide an application configuration with a seeded simulation."""
    return AppConfig(
        vault={
            "vault_address": "vault-usdc",
            "vault_manager": MANAGER,
            "keeper": KEEPER,
            "deposit_cap": 10_000_000_000,
            "asset_threshold_bps": 1000,
            "weight_threshold_bps": 1000,
            "asset_decimals": 6,
        },
        simulation={
            "idle_balance": 1_000_000_000,
            "share_supply": 3_500_000_000,
            "keeper_balance": 500_000_000,
            "markets": [
                {
                    "market": "ETH-USDC",
                    "target_weight": 4000,
                    "decimals": 18,
                    "position": 1000 * 10**18,
                    "price": 15 * 10**29,
                    "price_scale": 30,
                },
                {
                    "market": "BTC-USDC",
                    "target_weight": 3000,
                    "decimals": 18,
                    "position": 500 * 10**18,
                    "price": 2 * 10**30,
                    "price_scale": 30,
                },
            ],
        },
        logging={
            "level": "DEBUG",
            "app_log": "/tmp/test_marketvault.log",
            "rebalance_log": "/tmp/test_rebalances.log",
            "event_log": "/tmp/test_events.log",
        },
    )
