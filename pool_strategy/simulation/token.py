"""Simulated fungible token."""
from __future__ import annotations

from ..errors import InsufficientBalanceError


class SimulatedToken:
    """Plain balance map with mint/burn; accounts are free-form strings."""

    def __init__(self, symbol: str, decimals: int = 18) -> None:
        self._symbol = symbol
        self._decimals = decimals
        self.balances: dict[str, int] = {}
        self.total_supply = 0

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def _debit(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Amount must not be negative")
        balance = self.balance_of(account)
        if amount > balance:
            raise InsufficientBalanceError(
                f"{account} holds {balance} {self._symbol}, needs {amount}"
            )
        self.balances[account] = balance - amount

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        self._debit(sender, amount)
        self.balances[recipient] = self.balance_of(recipient) + amount

    def mint(self, account: str, amount: int) -> None:
        if amount < 0:
            raise ValueError("Amount must not be negative")
        self.balances[account] = self.balance_of(account) + amount
        self.total_supply += amount

    def burn(self, account: str, amount: int) -> None:
        self._debit(account, amount)
        self.total_supply -= amount

    def __repr__(self) -> str:
        return f"SimulatedToken({self._symbol!r}, decimals={self._decimals})"
