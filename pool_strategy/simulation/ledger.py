"""Simulated capital ledger lending want to strategies by debt ratio."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..constants import MAX_BPS
from ..errors import InsufficientBalanceError, StrategyError
from .chain import SimulatedChain
from .token import SimulatedToken

if TYPE_CHECKING:
    from ..strategy.lifecycle import PoolStrategy

logger = logging.getLogger(__name__)


@dataclass
class StrategyParams:
    debt_ratio: int = 0
    total_debt: int = 0
    total_gain: int = 0
    total_loss: int = 0
    last_report: int = 0


class SimulatedLedger:
    """Holds depositor funds and tracks each strategy's debt."""

    address = "ledger"

    def __init__(self, want: SimulatedToken, chain: SimulatedChain) -> None:
        self.want = want
        self._chain = chain
        self.strategies: dict[str, StrategyParams] = {}
        self.deposits: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Ledger state
    # ------------------------------------------------------------------

    def _params(self, strategy: str) -> StrategyParams:
        try:
            return self.strategies[strategy]
        except KeyError:
            raise StrategyError(f"Strategy {strategy} is not registered") from None

    def total_idle(self) -> int:
        return self.want.balance_of(self.address)

    def total_debt(self) -> int:
        return sum(p.total_debt for p in self.strategies.values())

    def total_assets(self) -> int:
        return self.total_idle() + self.total_debt()

    def deposit(self, depositor: str, amount: int) -> None:
        self.want.transfer(depositor, self.address, amount)
        self.deposits[depositor] = self.deposits.get(depositor, 0) + amount
        logger.info("%s deposited %d %s", depositor, amount, self.want.symbol)

    def add_strategy(self, strategy: str, debt_ratio: int) -> None:
        allocated = sum(p.debt_ratio for p in self.strategies.values())
        if allocated + debt_ratio > MAX_BPS:
            raise StrategyError("Total debt ratio would exceed 100%")
        self.strategies[strategy] = StrategyParams(
            debt_ratio=debt_ratio, last_report=self._chain.now()
        )

    def revoke_strategy(self, strategy: str) -> None:
        self._params(strategy).debt_ratio = 0
        logger.info("Strategy %s revoked", strategy)

    # ------------------------------------------------------------------
    # CapitalLedger protocol
    # ------------------------------------------------------------------

    def recorded_debt(self, strategy: str) -> int:
        return self._params(strategy).total_debt

    def recorded_debt_ratio(self, strategy: str) -> int:
        return self._params(strategy).debt_ratio

    def last_report(self, strategy: str) -> int:
        return self._params(strategy).last_report

    def _debt_limit(self, strategy: str) -> int:
        return self.total_assets() * self._params(strategy).debt_ratio // MAX_BPS

    def debt_outstanding(self, strategy: str) -> int:
        params = self._params(strategy)
        limit = self._debt_limit(strategy)
        return params.total_debt - limit if params.total_debt > limit else 0

    def credit_available(self, strategy: str) -> int:
        params = self._params(strategy)
        limit = self._debt_limit(strategy)
        if params.total_debt >= limit:
            return 0
        return min(limit - params.total_debt, self.total_idle())

    def report(self, strategy: str, profit: int, loss: int, debt_payment: int) -> int:
        params = self._params(strategy)
        available = self.want.balance_of(strategy)
        if available < profit + debt_payment:
            raise InsufficientBalanceError(
                f"Strategy {strategy} holds {available}, reports {profit + debt_payment} due"
            )

        if loss > 0:
            if loss > params.total_debt:
                raise StrategyError(f"Loss {loss} exceeds debt {params.total_debt}")
            params.total_debt -= loss
            params.total_loss += loss
        params.total_gain += profit

        debt_payment = min(debt_payment, self.debt_outstanding(strategy))
        params.total_debt -= debt_payment

        credit = self.credit_available(strategy)
        params.total_debt += credit

        owed = profit + debt_payment
        if owed < credit:
            self.want.transfer(self.address, strategy, credit - owed)
        elif owed > credit:
            self.want.transfer(strategy, self.address, owed - credit)

        params.last_report = self._chain.now()
        logger.info(
            "Report from %s: profit %d, loss %d, debt payment %d, credit %d, debt now %d",
            strategy, profit, loss, debt_payment, credit, params.total_debt,
        )
        return self.debt_outstanding(strategy)

    def migrate_strategy(self, old: PoolStrategy, new: PoolStrategy) -> None:
        """Move debt and the vault position from ``old`` to ``new``."""
        old_params = self._params(old.account)
        old.prepare_migration(new.account)
        self.strategies[new.account] = StrategyParams(
            debt_ratio=old_params.debt_ratio,
            total_debt=old_params.total_debt,
            last_report=old_params.last_report,
        )
        self.strategies[old.account] = StrategyParams(last_report=self._chain.now())
        logger.info("Migrated %s to %s", old.account, new.account)
