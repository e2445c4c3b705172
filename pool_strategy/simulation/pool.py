"""Simulated liquidity pools and the router that trades through them.

Every asset is valued in a common 1e18-scaled numeraire: a pool's share
token is worth the pool's ``rate``, every other asset is worth 1e18 per
whole unit. Trades lose value to price impact when the pool has a finite
``depth`` (``value_out = value_in * depth / (depth + value_in)``), then to
the pool fee.
"""
from __future__ import annotations

import logging
from typing import Sequence

from ..constants import MAX_BPS, WAD
from ..errors import DeadlineExpiredError, SlippageError, StrategyError
from ..models import SwapStep
from .chain import SimulatedChain
from .token import SimulatedToken

logger = logging.getLogger(__name__)


class SimulatedPool:
    """A pool of constituent tokens issuing its own share token."""

    def __init__(
        self,
        pool_id: str,
        share_token: SimulatedToken,
        constituents: Sequence[SimulatedToken],
        rate: int = WAD,
        fee_bps: int = 0,
        depth: int | None = None,
        supports_direct_entry: bool = True,
    ) -> None:
        if rate <= 0:
            raise ValueError("Pool rate must be positive")
        if depth is not None and depth <= 0:
            raise ValueError("Pool depth must be positive")
        self._pool_id = pool_id
        self._share_token = share_token
        self.constituents = tuple(constituents)
        self.rate = rate
        self.fee_bps = fee_bps
        self.depth = depth
        self.supports_direct_entry = supports_direct_entry

    @property
    def share_token(self) -> SimulatedToken:
        return self._share_token

    @property
    def address(self) -> str:
        return f"pool:{self._pool_id}"

    def pool_id(self) -> str:
        return self._pool_id

    def exchange_rate(self) -> int:
        return self.rate

    def constituent_assets(self) -> tuple[str, ...]:
        return tuple(t.symbol for t in self.constituents)

    def token(self, symbol: str) -> SimulatedToken:
        if symbol == self._share_token.symbol:
            return self._share_token
        for t in self.constituents:
            if t.symbol == symbol:
                return t
        raise StrategyError(f"Pool {self._pool_id} does not hold {symbol}")

    def seed(self, symbol: str, amount: int) -> None:
        """Mint reserves of a constituent straight into the pool."""
        self.token(symbol).mint(self.address, amount)

    def accrue(self, bps: int) -> int:
        """Raise the share rate by ``bps`` to model fee income."""
        self.rate += self.rate * bps // MAX_BPS
        return self.rate


class SimulatedRouter:
    """Enters, exits and batch-swaps through registered pools.

    Bounds are checked on a dry run before any balance moves, so a
    rejected call changes nothing.
    """

    def __init__(self, chain: SimulatedChain) -> None:
        self._chain = chain
        self._pools: dict[str, SimulatedPool] = {}

    def register_pool(self, pool: SimulatedPool) -> SimulatedPool:
        self._pools[pool.pool_id()] = pool
        return pool

    def pool(self, pool_id: str) -> SimulatedPool:
        try:
            return self._pools[pool_id]
        except KeyError:
            raise StrategyError(f"Unknown pool {pool_id}") from None

    def pool_assets(self, pool_id: str) -> tuple[str, ...]:
        return self.pool(pool_id).constituent_assets()

    def pool_share_asset(self, pool_id: str) -> str:
        return self.pool(pool_id).share_token.symbol

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    def price_of(self, symbol: str) -> int:
        for pool in self._pools.values():
            if pool.share_token.symbol == symbol:
                return pool.rate
        return WAD

    def quote(self, pool: SimulatedPool, asset_in: str, asset_out: str, amount_in: int) -> int:
        token_in, token_out = pool.token(asset_in), pool.token(asset_out)
        value = amount_in * self.price_of(asset_in) // 10**token_in.decimals
        if pool.depth is not None:
            value = value * pool.depth // (pool.depth + value)
        value = value * (MAX_BPS - pool.fee_bps) // MAX_BPS
        return value * 10**token_out.decimals // self.price_of(asset_out)

    # ------------------------------------------------------------------
    # Balance movement
    # ------------------------------------------------------------------

    @staticmethod
    def _pay_in(pool: SimulatedPool, symbol: str, account: str, amount: int) -> None:
        token = pool.token(symbol)
        if token is pool.share_token:
            token.burn(account, amount)
        else:
            token.transfer(account, pool.address, amount)

    @staticmethod
    def _pay_out(pool: SimulatedPool, symbol: str, account: str, amount: int) -> None:
        token = pool.token(symbol)
        if token is pool.share_token:
            token.mint(account, amount)
        else:
            token.transfer(pool.address, account, amount)

    # ------------------------------------------------------------------
    # Router operations
    # ------------------------------------------------------------------

    def enter(
        self,
        account: str,
        pool_id: str,
        max_amounts_in: Sequence[int],
        min_shares_out: int,
    ) -> int:
        pool = self.pool(pool_id)
        if not pool.supports_direct_entry:
            raise StrategyError(f"Pool {pool_id} does not support direct entry")
        assets = pool.constituent_assets()
        if len(max_amounts_in) != len(assets):
            raise StrategyError("Amounts do not match pool assets")

        share_symbol = pool.share_token.symbol
        shares = sum(
            self.quote(pool, symbol, share_symbol, amount)
            for symbol, amount in zip(assets, max_amounts_in)
            if amount > 0
        )
        if shares < min_shares_out:
            raise SlippageError(
                f"Join of pool {pool_id} yields {shares} shares, below minimum {min_shares_out}"
            )

        for symbol, amount in zip(assets, max_amounts_in):
            if amount > 0:
                self._pay_in(pool, symbol, account, amount)
        self._pay_out(pool, share_symbol, account, shares)
        logger.debug("%s joined %s for %d shares", account, pool_id, shares)
        return shares

    def exit(
        self,
        account: str,
        pool_id: str,
        share_amount: int,
        min_amounts_out: Sequence[int],
        exit_token_index: int,
    ) -> list[int]:
        pool = self.pool(pool_id)
        assets = pool.constituent_assets()
        if len(min_amounts_out) != len(assets):
            raise StrategyError("Amounts do not match pool assets")

        symbol = assets[exit_token_index]
        out = self.quote(pool, pool.share_token.symbol, symbol, share_amount)
        if out < min_amounts_out[exit_token_index]:
            raise SlippageError(
                f"Exit of pool {pool_id} yields {out} {symbol}, "
                f"below minimum {min_amounts_out[exit_token_index]}"
            )

        self._pay_in(pool, pool.share_token.symbol, account, share_amount)
        self._pay_out(pool, symbol, account, out)
        amounts = [0] * len(assets)
        amounts[exit_token_index] = out
        logger.debug("%s exited %d shares of %s for %d %s", account, share_amount, pool_id, out, symbol)
        return amounts

    def routed_swap(
        self,
        account: str,
        steps: Sequence[SwapStep],
        assets: Sequence[str],
        limits: Sequence[int],
        deadline: int,
    ) -> list[int]:
        if self._chain.now() > deadline:
            raise DeadlineExpiredError(f"Swap deadline {deadline} passed at {self._chain.now()}")
        if len(limits) != len(assets):
            raise StrategyError("Limits do not match swap assets")

        deltas = [0] * len(assets)
        plan: list[tuple[SimulatedPool, str, str, int, int]] = []
        previous_out = 0
        for step in steps:
            pool = self.pool(step.pool_id)
            asset_in = assets[step.asset_in_index]
            asset_out = assets[step.asset_out_index]
            amount_in = step.amount or previous_out
            amount_out = self.quote(pool, asset_in, asset_out, amount_in)
            deltas[step.asset_in_index] += amount_in
            deltas[step.asset_out_index] -= amount_out
            plan.append((pool, asset_in, asset_out, amount_in, amount_out))
            previous_out = amount_out

        for symbol, delta, limit in zip(assets, deltas, limits):
            if delta > limit:
                raise SlippageError(f"Swap delta {delta} of {symbol} exceeds limit {limit}")

        for pool, asset_in, asset_out, amount_in, amount_out in plan:
            self._pay_in(pool, asset_in, account, amount_in)
            self._pay_out(pool, asset_out, account, amount_out)
        logger.debug("%s swapped over %d hops: %s", account, len(plan), deltas)
        return deltas
