"""Shared test fixtures and sample data."""
from __future__ import annotations

import textwrap
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable

import pytest

from pool_strategy.config import (
    AppConfig,
    KeeperConfig,
    NotificationsConfig,
    PoolSpec,
    RouteConfig,
    SimulationConfig,
    StrategyConfig,
    TelegramConfig,
    TokenSpec,
    VaultSpec,
)
from pool_strategy.services.keeper import Keeper
from pool_strategy.simulation import Simulation, build_simulation
from pool_strategy.simulation.builder import STRATEGY_ACCOUNT

USDC = 10**6


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def strategy_config() -> StrategyConfig:
    return StrategyConfig(
        max_slippage_in_bps=30,
        max_slippage_out_bps=30,
        max_single_investment=10**15,
        min_hold_period=0,
        withdraw_safety_check=True,
    )


@pytest.fixture()
def keeper_config() -> KeeperConfig:
    return KeeperConfig(
        min_report_delay=0,
        max_report_delay=86_400,
        profit_factor=100,
        debt_threshold=0,
        check_interval_seconds=60,
    )


@pytest.fixture()
def stable_pool_spec() -> PoolSpec:
    return PoolSpec(
        pool_id="stable",
        share_symbol="BPT",
        constituents=("USDC", "USDT"),
        seed={"USDC": 10**15, "USDT": 10**15},
    )


@pytest.fixture()
def sim_config(stable_pool_spec: PoolSpec) -> SimulationConfig:
    """1000 USDC deposited, fully lent to one strategy on a fee-free pool at par."""
    return SimulationConfig(
        want="USDC",
        strategy_pool="stable",
        tokens=(TokenSpec("USDC", 6), TokenSpec("USDT", 6)),
        pools=(stable_pool_spec,),
        vault=VaultSpec(symbol="cvBPT"),
        deposit=1_000 * USDC,
        debt_ratio_bps=10_000,
        cycle_seconds=86_400,
        yield_bps_per_cycle=0,
    )


@pytest.fixture()
def sample_app_config(
    strategy_config: StrategyConfig,
    keeper_config: KeeperConfig,
    sim_config: SimulationConfig,
) -> AppConfig:
    return AppConfig(
        strategy=strategy_config,
        keeper=keeper_config,
        notifications=NotificationsConfig(
            telegram=TelegramConfig(
                enabled=True,
                alert_bot_token="fake-alert-token",
                log_bot_token="fake-log-token",
                chat_id="12345",
            ),
        ),
        simulation=sim_config,
    )


# ---------------------------------------------------------------------------
# Simulation fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_sim(
    sim_config: SimulationConfig, strategy_config: StrategyConfig
) -> Callable[..., Simulation]:
    """Factory: ``make_sim(strategy=..., pool=dict(...), funded=True, **sim_overrides)``.

    ``pool`` overrides fields of the strategy pool spec. A funded simulation
    has already received its full credit line from the ledger.
    """

    def _make(
        strategy: StrategyConfig | None = None,
        pool: dict[str, Any] | None = None,
        funded: bool = True,
        **overrides: Any,
    ) -> Simulation:
        cfg = sim_config
        if pool:
            cfg = replace(cfg, pools=(replace(cfg.pools[0], **pool),) + cfg.pools[1:])
        if overrides:
            cfg = replace(cfg, **overrides)
        sim = build_simulation(cfg, strategy or strategy_config)
        if funded:
            sim.ledger.report(STRATEGY_ACCOUNT, 0, 0, 0)
        return sim

    return _make


@pytest.fixture()
def sim(make_sim: Callable[..., Simulation]) -> Simulation:
    return make_sim()


@pytest.fixture()
def routed_sim_kwargs(strategy_config: StrategyConfig) -> dict[str, Any]:
    """``make_sim`` arguments for a boosted pool reachable only through a linear pool."""
    linear = PoolSpec(
        pool_id="linear",
        share_symbol="bb-USDC",
        constituents=("USDC",),
        seed={"USDC": 10**15},
    )
    boosted = PoolSpec(
        pool_id="boosted",
        share_symbol="bb-USD",
        constituents=("bb-USDC",),
        supports_direct_entry=False,
        seed={"bb-USDC": 10**24},
    )
    route = RouteConfig(pool_ids=("linear", "boosted"), assets=("USDC", "bb-USDC", "bb-USD"))
    return {
        "strategy": replace(strategy_config, route=route),
        "strategy_pool": "boosted",
        "tokens": (TokenSpec("USDC", 6),),
        "pools": (linear, boosted),
    }


@pytest.fixture()
def make_keeper(keeper_config: KeeperConfig) -> Callable[..., Keeper]:
    def _make(sim: Simulation, config: KeeperConfig | None = None, **kwargs: Any) -> Keeper:
        return Keeper(
            sim.strategy,
            sim.ledger,
            config or keeper_config,
            clock=sim.chain.now,
            atomic=sim.chain.atomic,
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# Config YAML fixture
# ---------------------------------------------------------------------------

SAMPLE_YAML = textwrap.dedent("""\
    strategy:
      max_slippage_in_bps: 25
      max_slippage_out_bps: 40
      max_single_investment: 500000000
      min_hold_period: 3600
      withdraw_safety_check: true
    keeper:
      min_report_delay: 0
      max_report_delay: 86400
      profit_factor: 100
      debt_threshold: 0
      check_interval_seconds: 3600
    notifications:
      telegram:
        enabled: true
        alert_bot_token: "tok1"
        log_bot_token: "tok2"
        chat_id: "999"
    simulation:
      want: USDC
      strategy_pool: stable
      tokens:
        - {symbol: USDC, decimals: 6}
        - {symbol: USDT, decimals: 6}
      pools:
        - pool_id: stable
          share_symbol: BPT
          constituents: [USDC, USDT]
          rate: 1000000000000000000
          fee_bps: 4
          seed: {USDC: 1000000000000000, USDT: 1000000000000000}
      vault:
        symbol: cvBPT
      deposit: 1000000000
      debt_ratio_bps: 9000
      cycle_seconds: 86400
      yield_bps_per_cycle: 5
""")


@pytest.fixture()
def sample_yaml_path(tmp_path: Path) -> Path:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(SAMPLE_YAML)
    return cfg_file
