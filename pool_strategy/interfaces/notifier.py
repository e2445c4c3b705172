"""Notifier protocol — channel for harvest reports and failure alerts."""
from typing import Protocol


class Notifier(Protocol):
    """Abstract interface the keeper pushes harvest reports through."""

    async def send_alert(self, message: str, subject: str = "") -> bool: ...

    async def send_log(self, message: str, silent: bool = True) -> bool: ...
