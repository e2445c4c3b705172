"""Token protocol — fungible balance ledger abstraction."""
from typing import Protocol


class Token(Protocol):
    """Abstract interface for a fungible token (want, pool shares, route assets)."""

    @property
    def symbol(self) -> str: ...

    @property
    def decimals(self) -> int: ...

    def balance_of(self, account: str) -> int: ...

    def transfer(self, sender: str, recipient: str, amount: int) -> None: ...
