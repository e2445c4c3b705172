"""Entry/exit mechanics — turning want into pool shares and back.

Two variants share one capability (``invest`` / ``divest``):

* ``DirectEntryExit`` joins and exits the pool single-sided in one router call.
* ``RoutedEntryExit`` walks a fixed multi-hop swap path for pools that cannot
  be entered directly. The path is validated once, at construction.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import replace
from typing import Callable, Protocol

from ..config import RouteConfig, StrategyConfig, validate_route_shape
from ..constants import MAX_BPS, MAX_INT256
from ..errors import ArithmeticOverflowError, ConfigurationError
from ..interfaces.pool import LiquidityPool, PoolRouter
from ..interfaces.token import Token
from ..models import SwapStep
from .converter import ValueConverter

logger = logging.getLogger(__name__)


class EntryExitKind(enum.Enum):
    DIRECT = "direct"
    ROUTED = "routed"


class EntryExit(Protocol):
    """Capability the allocator holds; it never sees the concrete variant."""

    kind: EntryExitKind

    def invest(self, amount: int) -> int: ...

    def divest(self, share_amount: int) -> int: ...


def min_out(expected: int, slippage_bps: int) -> int:
    """Lowest acceptable amount for ``expected`` under a slippage bound."""
    return expected * (MAX_BPS - slippage_bps) // MAX_BPS


def _check_signed_range(bound: int) -> None:
    if bound > MAX_INT256:
        raise ArithmeticOverflowError(f"Bound {bound} does not fit a signed 256-bit limit")


def signed_limit(bound: int) -> int:
    """Express "at least ``bound`` must come out" as a negative signed limit."""
    _check_signed_range(bound)
    return -bound


class DirectEntryExit:
    """Single-sided join / one-token exit against a pool that supports it."""

    kind = EntryExitKind.DIRECT

    def __init__(
        self,
        account: str,
        want: Token,
        pool: LiquidityPool,
        router: PoolRouter,
        converter: ValueConverter,
        settings: Callable[[], StrategyConfig],
    ) -> None:
        assets = tuple(pool.constituent_assets())
        if not assets:
            raise ConfigurationError(f"Pool {pool.pool_id()} has no constituent assets")
        if want.symbol not in assets:
            raise ConfigurationError(
                f"Want {want.symbol} is not a constituent of pool {pool.pool_id()}"
            )
        self._account = account
        self._pool_id = pool.pool_id()
        self._router = router
        self._converter = converter
        self._settings = settings
        self._num_assets = len(assets)
        self._want_index = assets.index(want.symbol)

    def invest(self, amount: int) -> int:
        if amount == 0:
            logger.debug("Direct invest of 0 skipped")
            return 0

        expected = self._converter.to_pool_share_units(amount)
        min_shares = min_out(expected, self._settings().max_slippage_in_bps)
        _check_signed_range(min_shares)

        max_amounts_in = [0] * self._num_assets
        max_amounts_in[self._want_index] = amount

        shares = self._router.enter(
            self._account, self._pool_id, max_amounts_in, min_shares
        )
        logger.info(
            "Joined pool %s with %d want for %d shares (expected %d, min %d)",
            self._pool_id, amount, shares, expected, min_shares,
        )
        return shares

    def divest(self, share_amount: int) -> int:
        if share_amount == 0:
            logger.debug("Direct divest of 0 skipped")
            return 0

        expected = self._converter.to_base_units(share_amount)
        min_base = min_out(expected, self._settings().max_slippage_out_bps)
        _check_signed_range(min_base)

        min_amounts_out = [0] * self._num_assets
        min_amounts_out[self._want_index] = min_base

        amounts = self._router.exit(
            self._account,
            self._pool_id,
            share_amount,
            min_amounts_out,
            self._want_index,
        )
        received = amounts[self._want_index]
        logger.info(
            "Exited %d shares from pool %s for %d want (expected %d, min %d)",
            share_amount, self._pool_id, received, expected, min_base,
        )
        return received


class RoutedEntryExit:
    """Fixed swap path from want to the pool share and back again."""

    kind = EntryExitKind.ROUTED

    def __init__(
        self,
        account: str,
        want: Token,
        pool: LiquidityPool,
        router: PoolRouter,
        converter: ValueConverter,
        settings: Callable[[], StrategyConfig],
        route: RouteConfig,
        clock: Callable[[], int],
    ) -> None:
        _validate_route(route, want.symbol, pool.share_token.symbol, router)
        self._account = account
        self._router = router
        self._converter = converter
        self._settings = settings
        self._clock = clock
        self._assets = tuple(route.assets)
        self._invest_steps = tuple(
            SwapStep(pool_id, i, i + 1) for i, pool_id in enumerate(route.pool_ids)
        )
        self._divest_steps = tuple(
            SwapStep(pool_id, i + 1, i)
            for i, pool_id in reversed(list(enumerate(route.pool_ids)))
        )
        # Interior hops net to zero; only the endpoints carry a real bound.
        self._open_limits = (MAX_INT256,) * len(self._assets)

    @property
    def assets(self) -> tuple[str, ...]:
        return self._assets

    @property
    def invest_steps(self) -> tuple[SwapStep, ...]:
        return self._invest_steps

    @property
    def divest_steps(self) -> tuple[SwapStep, ...]:
        return self._divest_steps

    def invest(self, amount: int) -> int:
        if amount == 0:
            logger.debug("Routed invest of 0 skipped")
            return 0

        expected = self._converter.to_pool_share_units(amount)
        min_shares = min_out(expected, self._settings().max_slippage_in_bps)

        limits = list(self._open_limits)
        limits[-1] = signed_limit(min_shares)
        steps = (replace(self._invest_steps[0], amount=amount),) + self._invest_steps[1:]

        deltas = self._router.routed_swap(
            self._account, steps, self._assets, limits, self._clock()
        )
        shares = -deltas[-1]
        logger.info(
            "Routed %d want into %d shares over %d hops (expected %d, min %d)",
            amount, shares, len(steps), expected, min_shares,
        )
        return shares

    def divest(self, share_amount: int) -> int:
        if share_amount == 0:
            logger.debug("Routed divest of 0 skipped")
            return 0

        expected = self._converter.to_base_units(share_amount)
        min_base = min_out(expected, self._settings().max_slippage_out_bps)

        limits = list(self._open_limits)
        limits[0] = signed_limit(min_base)
        steps = (replace(self._divest_steps[0], amount=share_amount),) + self._divest_steps[1:]

        deltas = self._router.routed_swap(
            self._account, steps, self._assets, limits, self._clock()
        )
        received = -deltas[0]
        logger.info(
            "Routed %d shares out to %d want over %d hops (expected %d, min %d)",
            share_amount, received, len(steps), expected, min_base,
        )
        return received


def _validate_route(
    route: RouteConfig, want_symbol: str, share_symbol: str, router: PoolRouter
) -> None:
    """Raise unless every hop's pool holds both assets it connects."""
    validate_route_shape(route)
    if route.assets[0] != want_symbol:
        raise ConfigurationError(
            f"Route must start at want {want_symbol}, starts at {route.assets[0]}"
        )
    if route.assets[-1] != share_symbol:
        raise ConfigurationError(
            f"Route must end at pool share {share_symbol}, ends at {route.assets[-1]}"
        )

    for i, pool_id in enumerate(route.pool_ids):
        constituents = tuple(router.pool_assets(pool_id))
        if not constituents:
            raise ConfigurationError(f"Pool {pool_id} has no constituent assets")
        members = set(constituents) | {router.pool_share_asset(pool_id)}
        asset_in, asset_out = route.assets[i], route.assets[i + 1]
        if asset_in not in members or asset_out not in members:
            raise ConfigurationError(
                f"Route hop {i} through pool {pool_id} does not connect "
                f"{asset_in} to {asset_out}"
            )


def build_entry_exit(
    account: str,
    want: Token,
    pool: LiquidityPool,
    router: PoolRouter,
    converter: ValueConverter,
    settings: Callable[[], StrategyConfig],
    clock: Callable[[], int],
    route: RouteConfig | None = None,
) -> EntryExit:
    """Routed when a path is configured, Direct otherwise."""
    if route is not None:
        return RoutedEntryExit(account, want, pool, router, converter, settings, route, clock)
    return DirectEntryExit(account, want, pool, router, converter, settings)
