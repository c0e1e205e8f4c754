"""Provider factory — creates the right collaborators based on config."""

import importlib

import structlog

from marketvault.adapters.memory import InMemoryMarketToken, InMemoryShareLedger
from marketvault.config import AppConfig
from marketvault.valuation.base import AssetToken, MarketToken, PriceOracle
from marketvault.vault import AllocationVault

logger = structlog.get_logger(__name__)

ORACLE_PROVIDERS = {
    "memory": "marketvault.adapters.memory:StaticPriceOracle",
}

ASSET_TOKEN_PROVIDERS = {
    "memory": "marketvault.adapters.memory:InMemoryAssetToken",
}


def _import_class(path: str):
    """Import a class from a 'module:ClassName' string."""
    module_path, class_name = path.split(":")
    module = importlib.import_module(module_path)
    return getattr(module, class_name)


def create_oracle(config: AppConfig) -> PriceOracle:
    """Create a price oracle based on config.providers.oracle, seeded with simulated prices."""
    name = config.providers.oracle
    if name not in ORACLE_PROVIDERS:
        raise ValueError(
            f"Unknown oracle provider: '{name}'. Available: {list(ORACLE_PROVIDERS.keys())}"
        )
    oracle = _import_class(ORACLE_PROVIDERS[name])()
    for seed in config.simulation.markets:
        oracle.set_price(seed.market, seed.price, scale=seed.price_scale)
    return oracle


def create_asset_token(config: AppConfig) -> AssetToken:
    """Create the base-asset token based on config.providers.asset_token."""
    name = config.providers.asset_token
    if name not in ASSET_TOKEN_PROVIDERS:
        raise ValueError(
            f"Unknown asset token provider: '{name}'. Available: {list(ASSET_TOKEN_PROVIDERS.keys())}"
        )
    vault = config.vault
    token = _import_class(ASSET_TOKEN_PROVIDERS[name])(
        owner=vault.vault_address, decimals=vault.asset_decimals
    )
    sim = config.simulation
    if sim.idle_balance:
        token.mint(vault.vault_address, sim.idle_balance)
    if sim.keeper_balance:
        token.mint(vault.keeper, sim.keeper_balance)
        token.approve(vault.keeper, vault.vault_address, sim.keeper_balance)
    return token


def create_market_tokens(config: AppConfig) -> dict[str, MarketToken]:
    tokens: dict[str, MarketToken] = {}
    for seed in config.simulation.markets:
        token = InMemoryMarketToken(decimals=seed.decimals)
        token.set_balance(config.vault.vault_address, seed.position)
        tokens[seed.market] = token
    return tokens


def create_vault(config: AppConfig) -> AllocationVault:
    """Assemble a vault over the configured collaborators and seed its weights."""
    market_tokens = create_market_tokens(config)

    def resolve(market: str) -> MarketToken:
        if market not in market_tokens:
            raise KeyError(f"No market token configured for '{market}'")
        return market_tokens[market]

    vault = AllocationVault(
        config=config.vault,
        oracle=create_oracle(config),
        asset=create_asset_token(config),
        market_tokens=resolve,
        ledger=InMemoryShareLedger(config.simulation.share_supply),
    )
    for seed in config.simulation.markets:
        vault.set_weight(config.vault.vault_manager, seed.market, seed.target_weight)

    logger.info(
        "providers.vault_created",
        oracle=config.providers.oracle,
        asset_token=config.providers.asset_token,
        markets=len(market_tokens),
    )
    return vault
