"""Configuration loader — reads config.yaml, interpolates env vars, validates."""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from .constants import MAX_BPS
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Frozen config dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RouteConfig:
    """Multi-hop path from want (``assets[0]``) to the pool share (``assets[-1]``)."""

    pool_ids: tuple[str, ...] = ()
    assets: tuple[str, ...] = ()


@dataclass(frozen=True)
class StrategyConfig:
    max_slippage_in_bps: int = 30
    max_slippage_out_bps: int = 30
    max_single_investment: int = 0
    min_hold_period: int = 0
    withdraw_safety_check: bool = True
    route: RouteConfig | None = None


@dataclass(frozen=True)
class KeeperConfig:
    min_report_delay: int = 0
    max_report_delay: int = 86_400
    profit_factor: int = 100
    debt_threshold: int = 0
    check_interval_seconds: int = 3_600


@dataclass(frozen=True)
class TelegramConfig:
    enabled: bool = False
    alert_bot_token: str = ""
    log_bot_token: str = ""
    chat_id: str = ""


@dataclass(frozen=True)
class NotificationsConfig:
    telegram: TelegramConfig = field(default_factory=TelegramConfig)


@dataclass(frozen=True)
class TokenSpec:
    symbol: str = ""
    decimals: int = 18


@dataclass(frozen=True)
class PoolSpec:
    pool_id: str = ""
    share_symbol: str = ""
    constituents: tuple[str, ...] = ()
    rate: int = 10**18
    fee_bps: int = 0
    depth: int | None = None
    supports_direct_entry: bool = True
    seed: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class VaultSpec:
    symbol: str = "cvBPT"
    withdrawal_fee_bps: int = 0


@dataclass(frozen=True)
class SimulationConfig:
    want: str = ""
    strategy_pool: str = ""
    tokens: tuple[TokenSpec, ...] = ()
    pools: tuple[PoolSpec, ...] = ()
    vault: VaultSpec = field(default_factory=VaultSpec)
    deposit: int = 0
    debt_ratio_bps: int = MAX_BPS
    cycle_seconds: int = 86_400
    yield_bps_per_cycle: int = 0
    start_time: int = 1_700_000_000


@dataclass(frozen=True)
class AppConfig:
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    keeper: KeeperConfig = field(default_factory=KeeperConfig)
    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)


# ---------------------------------------------------------------------------
# Env interpolation
# ---------------------------------------------------------------------------

_ENV_VAR_RE = re.compile(r"\$\{([^}]+)}")


def _interpolate_env(value: Any) -> Any:
    """Recursively replace ${VAR} references with environment variable values."""
    if isinstance(value, str):
        return _ENV_VAR_RE.sub(lambda m: os.environ.get(m.group(1), ""), value)
    if isinstance(value, dict):
        return {k: _interpolate_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate_env(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# YAML → dataclass builders
# ---------------------------------------------------------------------------


def _build_route(raw: dict[str, Any] | None) -> RouteConfig | None:
    if not raw:
        return None
    return RouteConfig(
        pool_ids=tuple(str(p) for p in raw.get("pool_ids", [])),
        assets=tuple(str(a) for a in raw.get("assets", [])),
    )


def _build_strategy(raw: dict[str, Any]) -> StrategyConfig:
    return StrategyConfig(
        max_slippage_in_bps=int(raw.get("max_slippage_in_bps", 30)),
        max_slippage_out_bps=int(raw.get("max_slippage_out_bps", 30)),
        max_single_investment=int(raw.get("max_single_investment", 0)),
        min_hold_period=int(raw.get("min_hold_period", 0)),
        withdraw_safety_check=bool(raw.get("withdraw_safety_check", True)),
        route=_build_route(raw.get("route")),
    )


def _build_keeper(raw: dict[str, Any]) -> KeeperConfig:
    return KeeperConfig(
        min_report_delay=int(raw.get("min_report_delay", 0)),
        max_report_delay=int(raw.get("max_report_delay", 86_400)),
        profit_factor=int(raw.get("profit_factor", 100)),
        debt_threshold=int(raw.get("debt_threshold", 0)),
        check_interval_seconds=int(raw.get("check_interval_seconds", 3_600)),
    )


def _build_notifications(raw: dict[str, Any]) -> NotificationsConfig:
    tg = raw.get("telegram", {})
    return NotificationsConfig(
        telegram=TelegramConfig(
            enabled=bool(tg.get("enabled", False)),
            alert_bot_token=tg.get("alert_bot_token", ""),
            log_bot_token=tg.get("log_bot_token", ""),
            chat_id=str(tg.get("chat_id", "")),
        ),
    )


def _build_pools(raw: list[dict[str, Any]]) -> tuple[PoolSpec, ...]:
    pools: list[PoolSpec] = []
    for p in raw:
        pools.append(
            PoolSpec(
                pool_id=str(p.get("pool_id", "")),
                share_symbol=p.get("share_symbol", ""),
                constituents=tuple(p.get("constituents", [])),
                rate=int(p.get("rate", 10**18)),
                fee_bps=int(p.get("fee_bps", 0)),
                depth=int(p["depth"]) if p.get("depth") is not None else None,
                supports_direct_entry=bool(p.get("supports_direct_entry", True)),
                seed={k: int(v) for k, v in p.get("seed", {}).items()},
            )
        )
    return tuple(pools)


def _build_simulation(raw: dict[str, Any]) -> SimulationConfig:
    vault_raw = raw.get("vault", {})
    return SimulationConfig(
        want=raw.get("want", ""),
        strategy_pool=str(raw.get("strategy_pool", "")),
        tokens=tuple(
            TokenSpec(symbol=t.get("symbol", ""), decimals=int(t.get("decimals", 18)))
            for t in raw.get("tokens", [])
        ),
        pools=_build_pools(raw.get("pools", [])),
        vault=VaultSpec(
            symbol=vault_raw.get("symbol", "cvBPT"),
            withdrawal_fee_bps=int(vault_raw.get("withdrawal_fee_bps", 0)),
        ),
        deposit=int(raw.get("deposit", 0)),
        debt_ratio_bps=int(raw.get("debt_ratio_bps", MAX_BPS)),
        cycle_seconds=int(raw.get("cycle_seconds", 86_400)),
        yield_bps_per_cycle=int(raw.get("yield_bps_per_cycle", 0)),
        start_time=int(raw.get("start_time", 1_700_000_000)),
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(config_path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration from YAML + .env.

    Args:
        config_path: Path to config.yaml. Defaults to ``config.yaml`` in the
            project root (two levels up from this file).
    """
    load_dotenv()

    if config_path is None:
        config_path = Path(__file__).resolve().parent.parent / "config.yaml"
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    raw = _interpolate_env(raw)

    cfg = AppConfig(
        strategy=_build_strategy(raw.get("strategy", {})),
        keeper=_build_keeper(raw.get("keeper", {})),
        notifications=_build_notifications(raw.get("notifications", {})),
        simulation=_build_simulation(raw.get("simulation", {})),
    )

    _validate(cfg)
    logger.info("Configuration loaded from %s", config_path)
    return cfg


def validate_strategy_config(cfg: StrategyConfig) -> None:
    """Raise on out-of-range strategy settings."""
    for name in ("max_slippage_in_bps", "max_slippage_out_bps"):
        value = getattr(cfg, name)
        if not 0 <= value <= MAX_BPS:
            raise ConfigurationError(f"{name} must be within 0..{MAX_BPS}, got {value}")
    if cfg.max_single_investment < 0:
        raise ConfigurationError("max_single_investment must not be negative")
    if cfg.min_hold_period < 0:
        raise ConfigurationError("min_hold_period must not be negative")
    if cfg.route is not None:
        validate_route_shape(cfg.route)


def validate_route_shape(route: RouteConfig) -> None:
    """Raise unless the route has pools and one more asset than pools."""
    if not route.pool_ids:
        raise ConfigurationError("Route has no pools")
    if len(route.assets) != len(route.pool_ids) + 1:
        raise ConfigurationError(
            "Route needs exactly one more asset than pools "
            f"({len(route.assets)} assets, {len(route.pool_ids)} pools)"
        )


def _validate(cfg: AppConfig) -> None:
    """Raise on invalid configuration."""
    validate_strategy_config(cfg.strategy)

    if cfg.keeper.min_report_delay > cfg.keeper.max_report_delay:
        raise ConfigurationError("min_report_delay exceeds max_report_delay")

    sim = cfg.simulation
    if not sim.want:
        return

    symbols = {t.symbol for t in sim.tokens} | {p.share_symbol for p in sim.pools}
    if sim.want not in symbols:
        raise ConfigurationError(f"Simulation want '{sim.want}' is not a known token")
    pool_ids = {p.pool_id for p in sim.pools}
    if sim.strategy_pool not in pool_ids:
        raise ConfigurationError(
            f"Simulation references unknown pool '{sim.strategy_pool}'"
        )
    for pool in sim.pools:
        for symbol in pool.constituents:
            if symbol not in symbols:
                raise ConfigurationError(
                    f"Pool '{pool.pool_id}' references unknown token '{symbol}'"
                )
    if cfg.strategy.route is not None:
        for pool_id in cfg.strategy.route.pool_ids:
            if pool_id not in pool_ids:
                raise ConfigurationError(f"Route references unknown pool '{pool_id}'")
    if not 0 <= sim.debt_ratio_bps <= MAX_BPS:
        raise ConfigurationError("debt_ratio_bps must be within 0..10000")
