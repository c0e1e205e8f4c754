"""Entry point: python -m marketvault"""

import argparse
import sys
from pathlib import Path

from marketvault.config import AppConfig, load_config
from marketvault.errors import VaultError
from marketvault.logging_config import configure_logging
from marketvault.providers import create_vault
from marketvault.state.redis_backend import RedisStateBackend
from marketvault.vault import AllocationVault


def _print_status(vault: AllocationVault) -> None:
    total = vault.total_assets()
    print("=" * 60)
    print("MARKETVAULT STATUS")
    print("=" * 60)
    print(f"Total assets:  {total}")
    print(f"Idle balance:  {vault.valuation.idle_balance()}")
    print(f"Max deposit:   {vault.max_deposit()}")
    print(f"Max mint:      {vault.max_mint()}")
    print(f"Total weight:  {vault.total_weight()} bps")
    print()
    print(f"{'market':<20}{'target':>10}{'reference':>12}{'current':>10}{'value':>20}")
    values = vault.valuation.breakdown()
    for market, reference in vault.registry.entries():
        entry = vault.registry.get(market)
        current = vault.current_weight(market) if total > 0 else 0
        print(
            f"{market:<20}{entry.target_weight:>10}{reference:>12}"
            f"{current:>10}{values[market]:>20}"
        )


def _unknown_markets(state: dict, config: AppConfig) -> list[str]:
    seeded = {m.market for m in config.simulation.markets}
    saved = [e["market"] for e in state.get("registry", {}).get("entries", [])]
    return [m for m in saved if m not in seeded]


def _run_rebalance(vault: AllocationVault, deltas: list[int]) -> int:
    keeper = vault.config.keeper
    try:
        result = vault.rebalance(keeper, deltas)
    except VaultError as e:
        print(f"Rebalance aborted: {type(e).__name__}: {e}")
        return 1

    print(f"Rebalance {result.state.value.lower()}")
    print(f"  Total assets: {result.prev_total_assets} -> {result.total_assets}")
    for market, weight in result.realized_weights.items():
        print(f"  {market}: {weight} bps")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Multi-market allocation vault")
    parser.add_argument("--config", type=Path, default=Path("config/settings.yaml"))
    parser.add_argument(
        "--persist",
        action="store_true",
        help="Restore registry state from Redis before running and save it afterwards",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("status", help="Show valuation and weights")

    rebalance_parser = subparsers.add_parser("rebalance", help="Run a keeper rebalance")
    rebalance_parser.add_argument(
        "--deltas", type=int, nargs="+", required=True,
        help="Signed asset amounts, one per market in registry order",
    )

    args = parser.parse_args()

    config = load_config(args.config)
    configure_logging(config.logging)

    vault = create_vault(config)
    backend = None
    if args.persist:
        backend = RedisStateBackend(config.vault.vault_address)
        state = backend.load_state()
        if state is not None:
            unknown = _unknown_markets(state, config)
            if unknown:
                print(
                    "Saved state references markets missing from the config: "
                    + ", ".join(unknown)
                )
                backend.close()
                return 1
            vault.restore_from_state(state)

    if args.command == "status":
        _print_status(vault)
        code = 0
    else:
        code = _run_rebalance(vault, args.deltas)

    if backend is not None:
        backend.save_state(vault.to_state_dict())
        backend.close()
    return code


if __name__ == "__main__":
    sys.exit(main())
