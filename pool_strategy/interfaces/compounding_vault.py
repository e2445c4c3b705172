"""Compounding vault protocol — yield vault holding pool shares."""
from typing import Protocol


class CompoundingVault(Protocol):
    """Abstract interface for the auto-compounding vault of pool shares."""

    def share_balance(self, account: str) -> int: ...

    def total_shares(self) -> int: ...

    def share_price(self) -> int: ...

    def deposit(self, account: str, amount: int) -> int: ...

    def withdraw(self, account: str, shares: int) -> int: ...

    def transfer(self, sender: str, recipient: str, shares: int) -> None: ...
