"""Tests for provider factory."""

import pytest

from marketvault.adapters.memory import InMemoryAssetToken, StaticPriceOracle
from marketvault.providers import create_asset_token, create_oracle, create_vault
from marketvault.valuation.base import AssetToken, PriceOracle


class TestProviderFactory:
    def test_create_oracle_memory(self, test_config):
        oracle = create_oracle(test_config)
        assert isinstance(oracle, PriceOracle)
        assert isinstance(oracle, StaticPriceOracle)
        assert oracle.describe("ETH-USDC").market == "ETH-USDC"

    def test_create_asset_token_seeds_balances(self, test_config):
        token = create_asset_token(test_config)
        assert isinstance(token, AssetToken)
        assert isinstance(token, InMemoryAssetToken)
        assert token.balance_of("vault-usdc") == 1_000_000_000
        assert token.balance_of("keeper") == 500_000_000
        assert token.allowance("keeper", "vault-usdc") == 500_000_000

    def test_create_vault_values_simulation(self, test_config):
        vault = create_vault(test_config)
        # 1000 idle + 1500 ETH + 1000 BTC, in 6-decimal USDC
        assert vault.total_assets() == 3_500_000_000
        assert vault.registry.entries() == [("ETH-USDC", 4000), ("BTC-USDC", 3000)]
        assert vault.current_weight("ETH-USDC") == 4285
        assert vault.max_deposit() == 6_500_000_000

    def test_simulated_vault_rebalances(self, test_config):
        vault = create_vault(test_config)
        result = vault.rebalance("keeper", [0, 0])
        assert result.realized_weights == {"ETH-USDC": 4285, "BTC-USDC": 2857}

    def test_unknown_oracle_provider_raises(self, test_config):
        test_config.providers.oracle = "unknown"
        with pytest.raises(ValueError, match="Unknown oracle provider"):
            create_oracle(test_config)

    def test_unknown_asset_token_provider_raises(self, test_config):
        test_config.providers.asset_token = "unknown"
        with pytest.raises(ValueError, match="Unknown asset token provider"):
            create_asset_token(test_config)
