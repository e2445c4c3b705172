"""Pure conversion between base-asset units and pool-share units — no I/O.

Every division floors. Truncation only ever loses value, so a round trip
never credits more base asset than went in.
"""
from __future__ import annotations

from ..constants import WAD
from ..interfaces.pool import LiquidityPool


def scale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Rescale an integer amount between decimal precisions.

    Examples:
        scale(1_500_000, 6, 18) → 1_500_000_000_000_000_000
        scale(1_999_999_999_999, 18, 6) → 1
    """
    if to_decimals >= from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def to_pool_share_units(
    base_amount: int, rate: int, base_decimals: int, pool_decimals: int
) -> int:
    """Convert a base amount into pool shares at ``rate`` (1e18-scaled).

    shares = scale(base * 1e18 / rate, base_decimals, pool_decimals)
    """
    return scale(base_amount * WAD // rate, base_decimals, pool_decimals)


def to_base_units(
    share_amount: int, rate: int, base_decimals: int, pool_decimals: int
) -> int:
    """Convert pool shares into base units at ``rate`` (1e18-scaled).

    base = scale(shares * rate / 1e18, pool_decimals, base_decimals)
    """
    return scale(share_amount * rate // WAD, pool_decimals, base_decimals)


class ValueConverter:
    """Binds the pure conversions to a pool's live exchange rate."""

    def __init__(
        self, pool: LiquidityPool, base_decimals: int, pool_decimals: int
    ) -> None:
        self._pool = pool
        self.base_decimals = base_decimals
        self.pool_decimals = pool_decimals

    def to_pool_share_units(self, base_amount: int) -> int:
        return to_pool_share_units(
            base_amount, self._pool.exchange_rate(), self.base_decimals, self.pool_decimals
        )

    def to_base_units(self, share_amount: int) -> int:
        return to_base_units(
            share_amount, self._pool.exchange_rate(), self.base_decimals, self.pool_decimals
        )
