"""Simulated chain — clock plus all-or-nothing execution of simulated state."""
from __future__ import annotations

import copy
import logging
from contextlib import contextmanager
from typing import Iterator, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SimulatedChain:
    """Holds the simulated clock and the objects whose state ``atomic`` guards."""

    def __init__(self, start_time: int = 1_700_000_000) -> None:
        self.timestamp = start_time
        self._stateful: list[object] = []

    def now(self) -> int:
        return self.timestamp

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Time only moves forward")
        self.timestamp += seconds
        return self.timestamp

    def register(self, obj: T) -> T:
        self._stateful.append(obj)
        return obj

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Revert every registered object's state if the block raises.

        References between registered objects are kept as-is; everything
        else they own (balance maps, counters) is snapshotted.
        """
        tracked = list(self._stateful)
        memo: dict[int, object] = {id(obj): obj for obj in tracked}
        memo[id(self)] = self
        snapshot = copy.deepcopy([dict(vars(obj)) for obj in tracked], memo)
        try:
            yield
        except Exception:
            for obj, state in zip(tracked, snapshot):
                vars(obj).clear()
                vars(obj).update(state)
            logger.warning("Reverted simulated state of %d objects", len(tracked))
            raise
