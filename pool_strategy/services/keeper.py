"""Harvest orchestration — drives the strategy through the ledger's cycle."""
from __future__ import annotations

import asyncio
import logging
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Callable, ContextManager, Sequence

from ..config import KeeperConfig
from ..interfaces.ledger import CapitalLedger
from ..interfaces.notifier import Notifier
from ..models import CycleReport, HarvestReport
from ..strategy.lifecycle import PoolStrategy

logger = logging.getLogger(__name__)


class Keeper:
    """Decides when to harvest and runs one harvest as a single atomic unit.

    ``atomic`` wraps each harvest; with the simulated chain it reverts every
    balance if any step raises.
    """

    def __init__(
        self,
        strategy: PoolStrategy,
        ledger: CapitalLedger,
        config: KeeperConfig,
        notifiers: Sequence[Notifier] = (),
        clock: Callable[[], int] | None = None,
        atomic: Callable[[], ContextManager[object]] = nullcontext,
    ) -> None:
        self._strategy = strategy
        self._ledger = ledger
        self._config = config
        self._notifiers = list(notifiers)
        self._clock = clock or (lambda: int(datetime.now(timezone.utc).timestamp()))
        self._atomic = atomic

    # ------------------------------------------------------------------
    # Trigger
    # ------------------------------------------------------------------

    def harvest_trigger(self, call_cost: int = 0) -> bool:
        """Whether a harvest is worth its ``call_cost`` (in want) right now."""
        account = self._strategy.account
        debt = self._ledger.recorded_debt(account)
        if self._ledger.recorded_debt_ratio(account) == 0 and debt == 0:
            return False

        since = self._clock() - self._ledger.last_report(account)
        if since < self._config.min_report_delay:
            return False
        if since >= self._config.max_report_delay:
            return True

        if self._ledger.debt_outstanding(account) > self._config.debt_threshold:
            return True

        total = self._strategy.estimated_total_value()
        if total + self._config.debt_threshold < debt:
            return True

        profit = total - debt if total > debt else 0
        credit = self._ledger.credit_available(account)
        return self._config.profit_factor * call_cost < credit + profit

    # ------------------------------------------------------------------
    # Harvest
    # ------------------------------------------------------------------

    def _emergency_return(self, debt_outstanding: int) -> CycleReport:
        freed = self._strategy.liquidate_all_positions()
        loss = debt_outstanding - freed if freed < debt_outstanding else 0
        profit = freed - debt_outstanding if freed > debt_outstanding else 0
        return CycleReport(profit=profit, loss=loss, debt_payment=debt_outstanding - loss)

    def harvest_now(self) -> HarvestReport:
        """Run one cycle synchronously: invest, compute the return, report."""
        account = self._strategy.account
        with self._atomic():
            debt_outstanding = self._ledger.debt_outstanding(account)
            if self._strategy.emergency_exit:
                cycle = self._emergency_return(debt_outstanding)
            else:
                self._strategy.adjust_position(debt_outstanding)
                cycle = self._strategy.compute_return(debt_outstanding)
            remaining = self._ledger.report(
                account, cycle.profit, cycle.loss, cycle.debt_payment
            )

        report = HarvestReport(
            profit=cycle.profit,
            loss=cycle.loss,
            debt_payment=cycle.debt_payment,
            debt_outstanding=remaining,
            total_value=self._strategy.estimated_total_value(),
            timestamp=self._clock(),
            emergency_exit=self._strategy.emergency_exit,
        )
        logger.info(
            "Harvested %s: profit %d, loss %d, debt payment %d, value %d, outstanding %d",
            account, report.profit, report.loss, report.debt_payment,
            report.total_value, report.debt_outstanding,
        )
        return report

    async def harvest(self) -> HarvestReport:
        report = self.harvest_now()
        await self._send_log(self._build_report_message(report))
        return report

    # ------------------------------------------------------------------
    # Notification dispatch
    # ------------------------------------------------------------------

    def _build_report_message(self, report: HarvestReport) -> str:
        when = datetime.fromtimestamp(report.timestamp, timezone.utc).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        status = "🚨 EMERGENCY EXIT" if report.emergency_exit else "✅ Harvest"
        return (
            f"{status} · {self._strategy.account} · {self._strategy.pool.pool_id()}\n"
            f"\n"
            f"Profit: {report.profit}\n"
            f"Loss: {report.loss}\n"
            f"Debt payment: {report.debt_payment}\n"
            f"Estimated value: {report.total_value}\n"
            f"Debt outstanding: {report.debt_outstanding}\n"
            f"\n"
            f"{when} UTC"
        )

    async def _send_log(self, message: str) -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_log(message, silent=True)
            except Exception as e:
                logger.error("Notifier send_log failed: %s", e)

    async def _send_alert(self, message: str, subject: str = "") -> None:
        for notifier in self._notifiers:
            try:
                await notifier.send_alert(message, subject=subject)
            except Exception as e:
                logger.error("Notifier send_alert failed: %s", e)

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def run_continuous(
        self,
        interval_seconds: int | None = None,
        call_cost: int = 0,
        max_iterations: int | None = None,
    ) -> list[HarvestReport]:
        """Harvest whenever triggered; failures are logged, alerted and retried next round."""
        interval = interval_seconds or self._config.check_interval_seconds
        logger.info("Starting keeper loop (checking every %d seconds)", interval)

        reports: list[HarvestReport] = []
        iteration = 0
        while max_iterations is None or iteration < max_iterations:
            iteration += 1
            try:
                if self.harvest_trigger(call_cost):
                    reports.append(await self.harvest())
                else:
                    logger.debug("Harvest not triggered")
            except Exception as e:
                logger.error("Harvest failed: %s", e)
                await self._send_alert(
                    f"Harvest of {self._strategy.account} failed: {e}",
                    subject="🚨 Harvest failed",
                )
            await asyncio.sleep(interval)
        return reports
