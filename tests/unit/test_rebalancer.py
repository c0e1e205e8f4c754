"""Tests for the rebalance state machine."""

import pytest

from marketvault.adapters.memory import InMemoryAssetToken
from marketvault.errors import ExternalCallFailure, InvariantViolation, ValidationError
from marketvault.models import RebalanceCompleted, RebalanceState, TransferDirection


def _balances(h):
    return h.asset.balance_of("vault"), h.asset.balance_of("keeper")


class TestRebalance:
    def test_inbound_delta_commits(self, two_market_harness):
        h = two_market_harness
        result = h.vault.rebalance("keeper", [10, 0])

        assert result.state == RebalanceState.COMMITTED
        assert h.vault.rebalancer.state == RebalanceState.COMMITTED
        assert result.prev_total_assets == 100
        assert result.total_assets == 110
        assert result.realized_weights == {"A": 3636, "B": 3636}
        assert _balances(h) == (30, 90)
        assert len(result.transfers) == 1
        assert result.transfers[0].direction == TransferDirection.INBOUND
        assert result.transfers[0].market == "A"

    def test_realized_weights_become_reference(self, two_market_harness):
        h = two_market_harness
        h.vault.rebalance("keeper", [10, 0])
        assert h.vault.registry.entries() == [("A", 3636), ("B", 3636)]
        assert h.vault.total_weight() == 8000

    def test_outbound_delta_commits(self, two_market_harness):
        h = two_market_harness
        result = h.vault.rebalance("keeper", [-5, 0])
        assert result.total_assets == 95
        assert result.transfers[0].direction == TransferDirection.OUTBOUND
        assert _balances(h) == (15, 105)

    def test_zero_deltas_move_nothing(self, two_market_harness):
        h = two_market_harness
        result = h.vault.rebalance("keeper", [0, 0])
        assert result.transfers == []
        assert result.realized_weights == {"A": 4000, "B": 4000}
        assert _balances(h) == (20, 100)

    def test_completion_event_emitted(self, two_market_harness):
        h = two_market_harness
        h.vault.rebalance("keeper", [10, 0])
        event = h.vault.events()[-1]
        assert isinstance(event, RebalanceCompleted)
        assert event.total_assets == 110
        assert event.success is True

    def test_length_mismatch_moves_nothing(self, harness):
        harness.asset.mint("keeper", 100)
        harness.asset.approve("keeper", "vault", 100)
        harness.add_market("A", position=10, price=1, weight=5000)

        with pytest.raises(ValidationError):
            harness.vault.rebalance("keeper", [1, 2])

        assert _balances(harness) == (0, 100)
        assert harness.vault.rebalancer.state == RebalanceState.IDLE

    def test_weight_drift_rejected_before_any_transfer(self, two_market_harness):
        h = two_market_harness
        with pytest.raises(InvariantViolation, match="weight of A"):
            h.vault.rebalance("keeper", [50, 0])

        assert _balances(h) == (20, 100)
        assert h.asset.allowance("keeper", "vault") == 1000
        assert h.vault.registry.entries() == [("A", 4000), ("B", 4000)]
        assert h.vault.rebalancer.state == RebalanceState.ABORTED

    def test_late_violation_rejected_before_any_transfer(self, two_market_harness):
        h = two_market_harness
        with pytest.raises(InvariantViolation, match="weight of B"):
            h.vault.rebalance("keeper", [-5, -15])

        assert _balances(h) == (20, 100)
        assert h.asset.allowance("keeper", "vault") == 1000
        assert h.vault.registry.get("A").realized_weight is None

    def test_unfunded_delta_rejected_before_any_transfer(self, two_market_harness):
        h = two_market_harness
        with pytest.raises(ExternalCallFailure, match="exceeds keeper"):
            h.vault.rebalance("keeper", [5, 1000])

        assert _balances(h) == (20, 100)
        assert h.asset.allowance("keeper", "vault") == 1000
        assert h.vault.registry.entries() == [("A", 4000), ("B", 4000)]

    def test_insufficient_allowance_rejected_up_front(self, two_market_harness):
        h = two_market_harness
        h.asset.approve("keeper", "vault", 12)
        with pytest.raises(ExternalCallFailure, match="allowance 7"):
            h.vault.rebalance("keeper", [5, 8])
        assert _balances(h) == (20, 100)

    def test_outbound_beyond_idle_rejected_up_front(self, two_market_harness):
        h = two_market_harness
        with pytest.raises(ExternalCallFailure, match="idle balance 20"):
            h.vault.rebalance("keeper", [-25, 0])
        assert _balances(h) == (20, 100)

    def test_state_resets_on_each_call(self, two_market_harness):
        h = two_market_harness
        h.vault.rebalance("keeper", [0, 0])
        assert h.vault.rebalancer.state == RebalanceState.COMMITTED

        with pytest.raises(ValidationError):
            h.vault.rebalance("keeper", [0])
        assert h.vault.rebalancer.state == RebalanceState.IDLE

    def test_no_event_on_abort(self, two_market_harness):
        h = two_market_harness
        before = len(h.vault.events())
        with pytest.raises(InvariantViolation):
            h.vault.rebalance("keeper", [50, 0])
        assert len(h.vault.events()) == before

    def test_total_assets_draining_to_zero_aborts(self, harness):
        harness.asset.mint("vault", 10)
        harness.asset.approve("keeper", "vault", 100)
        harness.add_market("A", position=0, price=1, weight=5000)

        with pytest.raises(InvariantViolation, match="zero"):
            harness.vault.rebalance("keeper", [-10])

        assert _balances(harness) == (10, 0)


class TestAssetBand:
    """Total-value band checks with the per-market band opened wide."""

    @pytest.fixture
    def vault_config(self, vault_config):
        return vault_config.model_copy(update={"weight_threshold_bps": 10_000})

    @pytest.fixture
    def h(self, harness):
        harness.asset.mint("vault", 40)
        harness.asset.mint("keeper", 100)
        harness.asset.approve("keeper", "vault", 100)
        harness.add_market("A", position=40, price=1, weight=5000)
        return harness

    def test_value_above_band_is_rejected(self, h):
        # 80 -> 100 with a 10% band of [72, 88]
        with pytest.raises(InvariantViolation, match="total assets 100"):
            h.vault.rebalance("keeper", [20])
        assert _balances(h) == (40, 100)
        assert h.vault.total_assets() == 80

    def test_value_below_band_is_rejected(self, h):
        with pytest.raises(InvariantViolation, match="total assets 70"):
            h.vault.rebalance("keeper", [-10])
        assert _balances(h) == (40, 100)

    def test_value_inside_band_commits(self, h):
        result = h.vault.rebalance("keeper", [5])
        assert result.state == RebalanceState.COMMITTED
        assert result.total_assets == 85

    def test_band_edge_commits(self, h):
        result = h.vault.rebalance("keeper", [8])
        assert result.total_assets == 88


class FlakyAssetToken(InMemoryAssetToken):
    """Asset token whose ``transfer_from`` fails after ``succeed`` calls."""

    def __init__(self, succeed):
        super().__init__(owner="vault", decimals=0)
        self.succeed = succeed
        self.calls = 0

    def transfer_from(self, src, dst, amount):
        self.calls += 1
        if self.calls > self.succeed:
            return False
        return super().transfer_from(src, dst, amount)


class TestMidFlightFailure:
    """Transfers that pass every up-front check but fail while executing."""

    @pytest.fixture
    def asset_token(self):
        return FlakyAssetToken(succeed=1)

    def test_failed_transfer_reverses_earlier_transfers(self, two_market_harness):
        h = two_market_harness
        with pytest.raises(ExternalCallFailure, match="inbound transfer of 3"):
            h.vault.rebalance("keeper", [5, 3])

        assert _balances(h) == (20, 100)
        assert h.vault.registry.entries() == [("A", 4000), ("B", 4000)]
        assert h.vault.rebalancer.state == RebalanceState.ABORTED

    def test_failed_rollback_raises_chained_failure(self, two_market_harness):
        h = two_market_harness
        h.asset.succeed = 0

        with pytest.raises(ExternalCallFailure, match="could not reverse") as exc_info:
            h.vault.rebalance("keeper", [-5, 3])

        assert isinstance(exc_info.value.__cause__, ExternalCallFailure)
        assert _balances(h) == (15, 105)
        assert h.vault.rebalancer.state == RebalanceState.ABORTED
