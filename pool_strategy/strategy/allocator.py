"""Capital allocation — the accounting cycle and liquidation bookkeeping."""
from __future__ import annotations

import logging
from typing import Callable

from ..config import StrategyConfig
from ..constants import WAD
from ..errors import WithdrawalShortfallError
from ..interfaces.compounding_vault import CompoundingVault
from ..interfaces.token import Token
from ..models import CycleReport, LiquidationResult
from .converter import ValueConverter
from .entry_exit import EntryExit, EntryExitKind
from .position import PositionAccessor

logger = logging.getLogger(__name__)


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


class CapitalAllocator:
    """Invests idle want, computes profit/loss and frees exactly what is owed.

    Profit, loss and payments are always derived from balances read after
    the last state-changing call, never from a snapshot taken before it.
    """

    def __init__(
        self,
        account: str,
        want: Token,
        share_token: Token,
        vault: CompoundingVault,
        position: PositionAccessor,
        converter: ValueConverter,
        entry_exit: EntryExit,
        settings: Callable[[], StrategyConfig],
        clock: Callable[[], int],
    ) -> None:
        self._account = account
        self._want = want
        self._share_token = share_token
        self._vault = vault
        self._position = position
        self._converter = converter
        self._entry_exit = entry_exit
        self._settings = settings
        self._clock = clock
        self.last_invest_timestamp = 0

    # ------------------------------------------------------------------
    # Phase 1: invest
    # ------------------------------------------------------------------

    def in_cooldown(self) -> bool:
        """Direct pools only: too soon after the last investment."""
        if self._entry_exit.kind is not EntryExitKind.DIRECT:
            return False
        hold = self._settings().min_hold_period
        return self._clock() - self.last_invest_timestamp < hold

    def adjust_position(self, debt_outstanding: int) -> int:
        """Invest idle want above what the ledger expects back. Returns want invested."""
        if self.in_cooldown():
            logger.debug(
                "Investment skipped: within hold period of %d (last invest at %d)",
                self._settings().min_hold_period, self.last_invest_timestamp,
            )
            return 0

        idle = self._position.idle_balance()
        if idle <= debt_outstanding:
            logger.debug(
                "Nothing to invest: idle %d does not exceed debt outstanding %d",
                idle, debt_outstanding,
            )
            return 0

        to_invest = min(idle - debt_outstanding, self._settings().max_single_investment)
        if to_invest == 0:
            return 0

        self._entry_exit.invest(to_invest)

        held = self._share_token.balance_of(self._account)
        if held > 0:
            issued = self._vault.deposit(self._account, held)
            logger.info("Deposited %d pool shares into vault for %d vault shares", held, issued)

        self.last_invest_timestamp = self._clock()
        logger.info("Invested %d want at %d", to_invest, self.last_invest_timestamp)
        return to_invest

    # ------------------------------------------------------------------
    # Phases 2-4: profit/loss, liquidity, clamping
    # ------------------------------------------------------------------

    def prepare_return(self, debt_outstanding: int) -> CycleReport:
        total = self._position.estimated_total_value()
        debt = self._position.delegated_assets()

        profit = total - debt if total > debt else 0
        loss = debt - total if debt > total else 0
        debt_payment = debt_outstanding

        to_free = debt_payment + profit
        idle = self._position.idle_balance()
        if to_free > idle:
            result = self.withdraw_some(to_free - idle)
            if result.loss <= profit:
                profit -= result.loss
            else:
                loss += result.loss - profit
                profit = 0

        # Profit is paid before debt.
        idle = self._position.idle_balance()
        if idle < profit:
            profit = idle
            debt_payment = 0
        elif idle < debt_payment + profit:
            debt_payment = idle - profit

        report = CycleReport(profit=profit, loss=loss, debt_payment=debt_payment)
        logger.info(
            "Cycle return: value %d, debt %d, profit %d, loss %d, debt payment %d",
            total, debt, report.profit, report.loss, report.debt_payment,
        )
        return report

    # ------------------------------------------------------------------
    # Liquidation
    # ------------------------------------------------------------------

    def withdraw_some(self, target: int) -> LiquidationResult:
        """Free ``target`` want from the position.

        Without hitting the vault balance clamp, ``liquidated + loss ==
        target``. When the vault holds less than needed the target shrinks
        to what is obtainable, which is not a loss.
        """
        if target == 0:
            return LiquidationResult()

        expected_shares = self._converter.to_pool_share_units(target)
        available = self._vault.share_balance(self._account)
        vault_shares = 0
        clamped = expected_shares > 0
        if available > 0:
            # Rounded up so a fee-free vault hands back at least expected_shares.
            vault_shares = _ceil_div(expected_shares * WAD, self._vault.share_price())
            clamped = vault_shares > available

        if clamped:
            vault_shares = available
            expected_shares = self._position.compounding_value(available)
            revised = self._converter.to_base_units(expected_shares)
            logger.info(
                "Vault holds only %d shares; withdraw target lowered from %d to %d",
                available, target, revised,
            )
            target = revised

        held_before = self._share_token.balance_of(self._account)
        if vault_shares > 0:
            self._vault.withdraw(self._account, vault_shares)
        received = self._share_token.balance_of(self._account) - held_before

        if self._settings().withdraw_safety_check and received < expected_shares - 1:
            raise WithdrawalShortfallError(
                f"Vault returned {received} pool shares, expected {expected_shares}"
            )

        idle_before = self._want.balance_of(self._account)
        self._entry_exit.divest(self._share_token.balance_of(self._account))
        gained = self._want.balance_of(self._account) - idle_before

        liquidated = min(gained, target)
        result = LiquidationResult(liquidated=liquidated, loss=target - liquidated)
        logger.info(
            "Withdrew %d want for target %d (loss %d)",
            gained, target, result.loss,
        )
        return result

    def liquidate_position(self, amount_needed: int) -> LiquidationResult:
        idle = self._position.idle_balance()
        if amount_needed <= idle:
            return LiquidationResult(liquidated=amount_needed, loss=0)

        withdrawn = self.withdraw_some(amount_needed - idle)

        idle = self._position.idle_balance()
        liquidated = min(amount_needed, idle)
        loss = min(withdrawn.loss, amount_needed - liquidated)
        return LiquidationResult(liquidated=liquidated, loss=loss)

    def liquidate_all_positions(self) -> int:
        """Drain the vault and the pool; return the whole idle balance."""
        vault_shares = self._vault.share_balance(self._account)
        if vault_shares > 0:
            self._vault.withdraw(self._account, vault_shares)

        self._entry_exit.divest(self._share_token.balance_of(self._account))

        freed = self._position.idle_balance()
        logger.info("Liquidated all positions: %d want idle", freed)
        return freed

    def prepare_migration(self, successor: str) -> int:
        """Hand the vault share balance to ``successor``. Returns shares moved."""
        vault_shares = self._vault.share_balance(self._account)
        if vault_shares > 0:
            self._vault.transfer(self._account, successor, vault_shares)
        logger.info("Migrated %d vault shares to %s", vault_shares, successor)
        return vault_shares
