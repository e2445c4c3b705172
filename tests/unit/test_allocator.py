"""Unit tests for the capital allocator's cycle phases with mocked collaborators."""
from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pool_strategy.config import StrategyConfig
from pool_strategy.models import CycleReport, LiquidationResult
from pool_strategy.strategy.allocator import CapitalAllocator
from pool_strategy.strategy.entry_exit import EntryExitKind


@pytest.fixture()
def parts() -> dict[str, MagicMock]:
    entry_exit = MagicMock()
    entry_exit.kind = EntryExitKind.DIRECT
    clock = MagicMock(return_value=10_000)
    return {
        "want": MagicMock(),
        "share_token": MagicMock(),
        "vault": MagicMock(),
        "position": MagicMock(),
        "converter": MagicMock(),
        "entry_exit": entry_exit,
        "clock": clock,
    }


@pytest.fixture()
def settings() -> dict[str, StrategyConfig]:
    return {"cfg": StrategyConfig(max_single_investment=500, min_hold_period=3600)}


@pytest.fixture()
def allocator(
    parts: dict[str, MagicMock], settings: dict[str, StrategyConfig]
) -> CapitalAllocator:
    return CapitalAllocator(
        "strategy",
        parts["want"],
        parts["share_token"],
        parts["vault"],
        parts["position"],
        parts["converter"],
        parts["entry_exit"],
        lambda: settings["cfg"],
        parts["clock"],
    )


def _prepare(
    allocator: CapitalAllocator,
    parts: dict[str, MagicMock],
    *,
    total: int,
    debt: int,
    idle: list[int],
    withdrawn: LiquidationResult | None = None,
) -> MagicMock:
    parts["position"].estimated_total_value.return_value = total
    parts["position"].delegated_assets.return_value = debt
    parts["position"].idle_balance.side_effect = idle
    withdraw = MagicMock(return_value=withdrawn or LiquidationResult())
    allocator.withdraw_some = withdraw  # type: ignore[method-assign]
    return withdraw


# ---------------------------------------------------------------------------
# Phase 1
# ---------------------------------------------------------------------------


class TestAdjustPosition:
    def test_invests_excess_up_to_cap(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.return_value = 1000
        parts["share_token"].balance_of.return_value = 123

        assert allocator.adjust_position(200) == 500
        parts["entry_exit"].invest.assert_called_once_with(500)
        parts["vault"].deposit.assert_called_once_with("strategy", 123)
        assert allocator.last_invest_timestamp == 10_000

    def test_invests_whole_excess_under_cap(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.return_value = 300
        parts["share_token"].balance_of.return_value = 0

        assert allocator.adjust_position(200) == 100
        parts["entry_exit"].invest.assert_called_once_with(100)
        parts["vault"].deposit.assert_not_called()

    def test_nothing_above_debt_outstanding(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.return_value = 200
        assert allocator.adjust_position(200) == 0
        parts["entry_exit"].invest.assert_not_called()
        assert allocator.last_invest_timestamp == 0

    def test_zero_cap_invests_nothing(
        self,
        allocator: CapitalAllocator,
        parts: dict[str, MagicMock],
        settings: dict[str, StrategyConfig],
    ) -> None:
        settings["cfg"] = StrategyConfig(max_single_investment=0)
        parts["position"].idle_balance.return_value = 1000
        assert allocator.adjust_position(0) == 0
        parts["entry_exit"].invest.assert_not_called()

    def test_direct_cooldown(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.return_value = 1000
        parts["share_token"].balance_of.return_value = 0
        allocator.adjust_position(0)

        parts["clock"].return_value = 10_000 + 3599
        assert allocator.in_cooldown()
        assert allocator.adjust_position(0) == 0
        assert parts["entry_exit"].invest.call_count == 1

        parts["clock"].return_value = 10_000 + 3600
        assert not allocator.in_cooldown()
        assert allocator.adjust_position(0) == 500
        assert parts["entry_exit"].invest.call_count == 2

    def test_routed_has_no_cooldown(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["entry_exit"].kind = EntryExitKind.ROUTED
        parts["position"].idle_balance.return_value = 1000
        parts["share_token"].balance_of.return_value = 0

        allocator.adjust_position(0)
        assert not allocator.in_cooldown()
        assert allocator.adjust_position(0) == 500

    def test_failed_invest_keeps_timestamp(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.return_value = 1000
        parts["entry_exit"].invest.side_effect = RuntimeError("join reverted")
        with pytest.raises(RuntimeError):
            allocator.adjust_position(0)
        assert allocator.last_invest_timestamp == 0


# ---------------------------------------------------------------------------
# Phases 2-4
# ---------------------------------------------------------------------------


class TestPrepareReturn:
    def test_profit_paid_from_idle(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        withdraw = _prepare(allocator, parts, total=1100, debt=1000, idle=[200, 200])
        assert allocator.prepare_return(0) == CycleReport(profit=100, loss=0, debt_payment=0)
        withdraw.assert_not_called()

    def test_loss(self, allocator: CapitalAllocator, parts: dict[str, MagicMock]) -> None:
        _prepare(allocator, parts, total=900, debt=1000, idle=[50, 50])
        assert allocator.prepare_return(50) == CycleReport(profit=0, loss=100, debt_payment=50)

    @pytest.mark.parametrize(("total", "debt"), [(1100, 1000), (900, 1000), (1000, 1000)])
    def test_profit_and_loss_are_exclusive(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock], total: int, debt: int
    ) -> None:
        _prepare(allocator, parts, total=total, debt=debt, idle=[10**6, 10**6])
        report = allocator.prepare_return(0)
        assert report.profit == 0 or report.loss == 0

    def test_withdraws_shortfall(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        withdraw = _prepare(allocator, parts, total=1100, debt=1000, idle=[0, 400])
        assert allocator.prepare_return(300) == CycleReport(profit=100, loss=0, debt_payment=300)
        withdraw.assert_called_once_with(400)

    def test_clamp_keeps_payment_at_exact_boundary(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        _prepare(allocator, parts, total=1100, debt=1000, idle=[100, 400])
        report = allocator.prepare_return(300)
        assert report.profit + report.debt_payment == 400
        assert report.debt_payment == 300

    def test_profit_paid_before_debt(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        _prepare(allocator, parts, total=1100, debt=1000, idle=[0, 250])
        assert allocator.prepare_return(300) == CycleReport(profit=100, loss=0, debt_payment=150)

    def test_idle_below_profit_pays_no_debt(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        _prepare(allocator, parts, total=1100, debt=1000, idle=[0, 60])
        assert allocator.prepare_return(300) == CycleReport(profit=60, loss=0, debt_payment=0)

    def test_withdrawal_loss_taken_from_profit(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        _prepare(
            allocator, parts, total=1100, debt=1000, idle=[0, 370],
            withdrawn=LiquidationResult(liquidated=370, loss=30),
        )
        assert allocator.prepare_return(300) == CycleReport(profit=70, loss=0, debt_payment=300)

    def test_withdrawal_loss_beyond_profit_becomes_loss(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        _prepare(
            allocator, parts, total=1100, debt=1000, idle=[0, 270],
            withdrawn=LiquidationResult(liquidated=270, loss=130),
        )
        assert allocator.prepare_return(300) == CycleReport(profit=0, loss=30, debt_payment=270)

    def test_uses_idle_read_after_withdrawal(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        _prepare(allocator, parts, total=1000, debt=1000, idle=[0, 180])
        assert allocator.prepare_return(300) == CycleReport(profit=0, loss=0, debt_payment=180)


# ---------------------------------------------------------------------------
# Liquidation
# ---------------------------------------------------------------------------


class TestLiquidatePosition:
    def test_idle_covers_request(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.return_value = 500
        allocator.withdraw_some = MagicMock()  # type: ignore[method-assign]
        assert allocator.liquidate_position(400) == LiquidationResult(liquidated=400, loss=0)
        allocator.withdraw_some.assert_not_called()

    def test_withdraws_remainder(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["position"].idle_balance.side_effect = [100, 390]
        allocator.withdraw_some = MagicMock(  # type: ignore[method-assign]
            return_value=LiquidationResult(liquidated=290, loss=10)
        )
        assert allocator.liquidate_position(400) == LiquidationResult(liquidated=390, loss=10)
        allocator.withdraw_some.assert_called_once_with(300)

    def test_withdraw_some_zero_target_is_noop(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        assert allocator.withdraw_some(0) == LiquidationResult()
        parts["vault"].withdraw.assert_not_called()
        parts["entry_exit"].divest.assert_not_called()

    def test_prepare_migration_moves_vault_shares_only(
        self, allocator: CapitalAllocator, parts: dict[str, MagicMock]
    ) -> None:
        parts["vault"].share_balance.return_value = 777
        assert allocator.prepare_migration("successor") == 777
        parts["vault"].transfer.assert_called_once_with("strategy", "successor", 777)
        parts["want"].transfer.assert_not_called()
        parts["share_token"].transfer.assert_not_called()
