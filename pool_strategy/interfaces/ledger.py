"""Capital ledger protocol — the vault that lends want to the strategy."""
from typing import Protocol


class CapitalLedger(Protocol):
    """Abstract interface for the ledger's per-strategy debt accounting."""

    def recorded_debt(self, strategy: str) -> int: ...

    def recorded_debt_ratio(self, strategy: str) -> int: ...

    def debt_outstanding(self, strategy: str) -> int: ...

    def credit_available(self, strategy: str) -> int: ...

    def last_report(self, strategy: str) -> int: ...

    def revoke_strategy(self, strategy: str) -> None: ...

    def report(
        self, strategy: str, profit: int, loss: int, debt_payment: int
    ) -> int: ...
