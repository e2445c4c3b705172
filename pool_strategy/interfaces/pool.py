"""Liquidity pool and router protocols — the external exchange backend."""
from typing import Protocol, Sequence

from ..models import SwapStep
from .token import Token


class LiquidityPool(Protocol):
    """Abstract interface for the pool whose shares the strategy holds."""

    @property
    def share_token(self) -> Token: ...

    def pool_id(self) -> str: ...

    def exchange_rate(self) -> int: ...

    def constituent_assets(self) -> tuple[str, ...]: ...


class PoolRouter(Protocol):
    """Abstract interface for entering, exiting and swapping through pools.

    Amount lists are aligned with ``pool_assets(pool_id)``. Routed swap
    deltas are positive for assets the account pays in and negative for
    assets it receives; each limit bounds the matching delta.
    """

    def pool_assets(self, pool_id: str) -> tuple[str, ...]: ...

    def pool_share_asset(self, pool_id: str) -> str: ...

    def enter(
        self,
        account: str,
        pool_id: str,
        max_amounts_in: Sequence[int],
        min_shares_out: int,
    ) -> int: ...

    def exit(
        self,
        account: str,
        pool_id: str,
        share_amount: int,
        min_amounts_out: Sequence[int],
        exit_token_index: int,
    ) -> list[int]: ...

    def routed_swap(
        self,
        account: str,
        steps: Sequence[SwapStep],
        assets: Sequence[str],
        limits: Sequence[int],
        deadline: int,
    ) -> list[int]: ...
