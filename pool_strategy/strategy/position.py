"""Read-only queries over the strategy's holdings."""
from __future__ import annotations

from ..constants import WAD
from ..interfaces.compounding_vault import CompoundingVault
from ..interfaces.ledger import CapitalLedger
from ..interfaces.token import Token
from .converter import ValueConverter


class PositionAccessor:
    """Live view of idle want, held pool shares and compounding-vault shares.

    Nothing is cached: every call reads balances and prices afresh.
    """

    def __init__(
        self,
        account: str,
        want: Token,
        share_token: Token,
        vault: CompoundingVault,
        ledger: CapitalLedger,
        converter: ValueConverter,
    ) -> None:
        self._account = account
        self._want = want
        self._share_token = share_token
        self._vault = vault
        self._ledger = ledger
        self._converter = converter

    def idle_balance(self) -> int:
        return self._want.balance_of(self._account)

    def held_shares(self) -> int:
        return self._share_token.balance_of(self._account)

    def compounding_shares(self) -> int:
        return self._vault.share_balance(self._account)

    def compounding_value(self, vault_shares: int) -> int:
        """Pool shares redeemable for ``vault_shares``; 0 for an empty vault."""
        if self._vault.total_shares() == 0:
            return 0
        return vault_shares * self._vault.share_price() // WAD

    def total_pool_shares(self) -> int:
        return self.held_shares() + self.compounding_value(self.compounding_shares())

    def estimated_total_value(self) -> int:
        """Idle want plus the base value of every pool share the strategy owns."""
        return self.idle_balance() + self._converter.to_base_units(
            self.total_pool_shares()
        )

    def delegated_assets(self) -> int:
        """The ledger's recorded debt for this strategy (not a computed value)."""
        return self._ledger.recorded_debt(self._account)
