"""Command-line interface for the pool strategy."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import AppConfig, load_config
from .interfaces.notifier import Notifier
from .logging_setup import configure_logging
from .notifications import TelegramNotifier
from .services import Keeper
from .simulation import build_simulation


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="pool-strategy",
        description="Liquidity-pool capital allocation strategy",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    simulate_parser = sub.add_parser(
        "simulate", help="Run harvest cycles against the in-memory simulation"
    )
    simulate_parser.add_argument(
        "cycles",
        nargs="?",
        type=int,
        default=5,
        help="Number of harvest cycles (default: 5)",
    )
    simulate_parser.add_argument(
        "--emergency-after",
        type=int,
        default=None,
        help="Set emergency exit after this many cycles",
    )

    sub.add_parser("validate", help="Load the config and build the strategy")

    return parser


def _notifiers(config: AppConfig) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if config.notifications.telegram.enabled:
        notifiers.append(TelegramNotifier(config.notifications.telegram))
    return notifiers


async def _simulate(config: AppConfig, cycles: int, emergency_after: int | None) -> None:
    sim = build_simulation(config.simulation, config.strategy)
    keeper = Keeper(
        sim.strategy,
        sim.ledger,
        config.keeper,
        notifiers=_notifiers(config),
        clock=sim.chain.now,
        atomic=sim.chain.atomic,
    )

    print(f"{'cycle':>5} {'profit':>20} {'loss':>20} {'debt paid':>20} {'value':>22}")
    for cycle in range(1, cycles + 1):
        if emergency_after is not None and cycle > emergency_after and not sim.strategy.emergency_exit:
            sim.strategy.set_emergency_exit()
        report = await keeper.harvest()
        print(
            f"{cycle:>5} {report.profit:>20} {report.loss:>20} "
            f"{report.debt_payment:>20} {report.total_value:>22}"
        )
        sim.advance_cycle()

    position = sim.strategy.position()
    print()
    print(f"Idle want:          {position.idle_balance}")
    print(f"Vault shares:       {position.compounding_shares}")
    print(f"Ledger total assets: {sim.ledger.total_assets()}")


def _validate(config: AppConfig) -> None:
    sim = build_simulation(config.simulation, config.strategy)
    print(
        f"Strategy {sim.strategy.account}: {sim.strategy.kind.value} entry into "
        f"pool {sim.strategy.pool.pool_id()} (want {sim.want.symbol})"
    )


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "simulate":
        await _simulate(config, args.cycles, args.emergency_after)
    elif args.command == "validate":
        _validate(config)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
