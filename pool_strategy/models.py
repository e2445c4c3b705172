"""Data models — all frozen (immutable)."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PositionSnapshot:
    """Point-in-time view of the strategy's holdings."""

    idle_balance: int
    held_shares: int
    compounding_shares: int
    last_invest_timestamp: int
    estimated_total_value: int


@dataclass(frozen=True)
class CycleReport:
    """Outcome of one accounting cycle, as handed to the ledger."""

    profit: int = 0
    loss: int = 0
    debt_payment: int = 0


@dataclass(frozen=True)
class LiquidationResult:
    """Base asset freed by a partial liquidation and the loss realized doing it."""

    liquidated: int = 0
    loss: int = 0


@dataclass(frozen=True)
class SwapStep:
    """One hop of a routed swap.

    ``amount`` of 0 on any step but the first means "use the previous
    step's output".
    """

    pool_id: str
    asset_in_index: int
    asset_out_index: int
    amount: int = 0


@dataclass(frozen=True)
class HarvestReport:
    """What the keeper reported to the ledger for one harvest."""

    profit: int
    loss: int
    debt_payment: int
    debt_outstanding: int
    total_value: int
    timestamp: int
    emergency_exit: bool = False
