"""The strategy object the capital ledger drives each accounting cycle."""
from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import Any, Callable

from ..config import StrategyConfig, validate_strategy_config
from ..errors import ConfigurationError
from ..interfaces.compounding_vault import CompoundingVault
from ..interfaces.ledger import CapitalLedger
from ..interfaces.pool import LiquidityPool, PoolRouter
from ..interfaces.token import Token
from ..models import CycleReport, LiquidationResult, PositionSnapshot
from .allocator import CapitalAllocator
from .converter import ValueConverter
from .entry_exit import EntryExitKind, build_entry_exit
from .position import PositionAccessor

logger = logging.getLogger(__name__)


def _wall_clock() -> int:
    return int(time.time())


class PoolStrategy:
    """Lends want into a liquidity pool and parks the shares in a compounding vault.

    The ledger calls the lifecycle operations in whatever order its cycle
    dictates; this class neither reorders nor batches them. Settings are
    replaced wholesale through the operator setters.
    """

    def __init__(
        self,
        account: str,
        want: Token,
        pool: LiquidityPool,
        router: PoolRouter,
        vault: CompoundingVault,
        ledger: CapitalLedger,
        config: StrategyConfig,
        clock: Callable[[], int] | None = None,
    ) -> None:
        validate_strategy_config(config)
        self.account = account
        self.want = want
        self.pool = pool
        self.ledger = ledger
        self._config = config
        self._clock = clock or _wall_clock
        self.emergency_exit = False

        share_token = pool.share_token
        self.converter = ValueConverter(pool, want.decimals, share_token.decimals)
        self.positions = PositionAccessor(
            account, want, share_token, vault, ledger, self.converter
        )
        self.entry_exit = build_entry_exit(
            account,
            want,
            pool,
            router,
            self.converter,
            self._current_config,
            self._clock,
            config.route,
        )
        self.allocator = CapitalAllocator(
            account,
            want,
            share_token,
            vault,
            self.positions,
            self.converter,
            self.entry_exit,
            self._current_config,
            self._clock,
        )
        logger.info(
            "Strategy %s ready: %s entry into pool %s",
            account, self.entry_exit.kind.value, pool.pool_id(),
        )

    def _current_config(self) -> StrategyConfig:
        return self._config

    @property
    def config(self) -> StrategyConfig:
        return self._config

    @property
    def kind(self) -> EntryExitKind:
        return self.entry_exit.kind

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def reported_value(self) -> int:
        return self.positions.estimated_total_value()

    def estimated_total_value(self) -> int:
        return self.positions.estimated_total_value()

    def delegated_assets(self) -> int:
        return self.positions.delegated_assets()

    def position(self) -> PositionSnapshot:
        return PositionSnapshot(
            idle_balance=self.positions.idle_balance(),
            held_shares=self.positions.held_shares(),
            compounding_shares=self.positions.compounding_shares(),
            last_invest_timestamp=self.allocator.last_invest_timestamp,
            estimated_total_value=self.positions.estimated_total_value(),
        )

    # ------------------------------------------------------------------
    # Ledger lifecycle
    # ------------------------------------------------------------------

    def adjust_position(self, debt_outstanding: int) -> int:
        if self.emergency_exit:
            logger.debug("Emergency exit set; not investing")
            return 0
        return self.allocator.adjust_position(debt_outstanding)

    def compute_return(self, debt_outstanding: int) -> CycleReport:
        return self.allocator.prepare_return(debt_outstanding)

    def liquidate_position(self, amount_needed: int) -> LiquidationResult:
        return self.allocator.liquidate_position(amount_needed)

    def liquidate_all_positions(self) -> int:
        return self.allocator.liquidate_all_positions()

    def prepare_migration(self, successor: str) -> int:
        return self.allocator.prepare_migration(successor)

    # ------------------------------------------------------------------
    # Operator surface
    # ------------------------------------------------------------------

    def _update_config(self, **changes: Any) -> None:
        updated = replace(self._config, **changes)
        validate_strategy_config(updated)
        self._config = updated
        logger.info("Strategy %s settings updated: %s", self.account, changes)

    def set_max_slippage_in(self, bps: int) -> None:
        self._update_config(max_slippage_in_bps=bps)

    def set_max_slippage_out(self, bps: int) -> None:
        self._update_config(max_slippage_out_bps=bps)

    def set_max_single_investment(self, amount: int) -> None:
        self._update_config(max_single_investment=amount)

    def set_min_hold_period(self, seconds: int) -> None:
        if self.kind is not EntryExitKind.DIRECT:
            raise ConfigurationError("Hold period only applies to direct pools")
        self._update_config(min_hold_period=seconds)

    def set_withdraw_safety_check(self, enabled: bool) -> None:
        self._update_config(withdraw_safety_check=enabled)

    def set_emergency_exit(self) -> None:
        self.emergency_exit = True
        self.ledger.revoke_strategy(self.account)
        logger.warning("Strategy %s entered emergency exit", self.account)

    def sweep(self, token: Token, recipient: str) -> int:
        """Move a stray token balance (loose pool shares, idle want) to ``recipient``."""
        amount = token.balance_of(self.account)
        if amount > 0:
            token.transfer(self.account, recipient, amount)
        logger.info("Swept %d %s to %s", amount, token.symbol, recipient)
        return amount
