"""Simulated auto-compounding vault over a pool share token."""
from __future__ import annotations

import logging

from ..constants import MAX_BPS, WAD
from ..errors import InsufficientBalanceError
from .token import SimulatedToken

logger = logging.getLogger(__name__)


class SimulatedCompoundingVault:
    """Issues vault shares against deposited pool shares; yield raises the share price."""

    def __init__(
        self,
        underlying: SimulatedToken,
        symbol: str = "cvBPT",
        withdrawal_fee_bps: int = 0,
    ) -> None:
        self.underlying = underlying
        self.symbol = symbol
        self.withdrawal_fee_bps = withdrawal_fee_bps
        self.shares: dict[str, int] = {}
        self.total_supply = 0

    @property
    def address(self) -> str:
        return f"vault:{self.symbol}"

    def underlying_balance(self) -> int:
        return self.underlying.balance_of(self.address)

    def share_balance(self, account: str) -> int:
        return self.shares.get(account, 0)

    def total_shares(self) -> int:
        return self.total_supply

    def share_price(self) -> int:
        if self.total_supply == 0:
            return WAD
        return self.underlying_balance() * WAD // self.total_supply

    def deposit(self, account: str, amount: int) -> int:
        if self.total_supply == 0:
            issued = amount
        else:
            issued = amount * self.total_supply // self.underlying_balance()
        self.underlying.transfer(account, self.address, amount)
        self.shares[account] = self.share_balance(account) + issued
        self.total_supply += issued
        return issued

    def withdraw(self, account: str, shares: int) -> int:
        balance = self.share_balance(account)
        if shares > balance:
            raise InsufficientBalanceError(
                f"{account} holds {balance} {self.symbol}, needs {shares}"
            )
        amount = shares * self.underlying_balance() // self.total_supply
        fee = amount * self.withdrawal_fee_bps // MAX_BPS
        self.shares[account] = balance - shares
        self.total_supply -= shares
        self.underlying.transfer(self.address, account, amount - fee)
        return amount - fee

    def transfer(self, sender: str, recipient: str, shares: int) -> None:
        balance = self.share_balance(sender)
        if shares > balance:
            raise InsufficientBalanceError(
                f"{sender} holds {balance} {self.symbol}, needs {shares}"
            )
        self.shares[sender] = balance - shares
        self.shares[recipient] = self.share_balance(recipient) + shares

    def compound(self, amount: int) -> None:
        """Add harvested pool shares to the vault without issuing shares."""
        self.underlying.mint(self.address, amount)
        logger.debug("Compounded %d into %s", amount, self.symbol)
