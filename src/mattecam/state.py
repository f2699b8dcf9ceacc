from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

logger = logging.getLogger(__name__)

STATE_SLOTS = 4


@dataclass(frozen=True)
class RecurrentState:
    """
    The four temporal-memory values threaded between inference calls.

    The slots are opaque: whatever the engine returned last is handed back to
    it unchanged on the next call.
    """

    r1: Any
    r2: Any
    r3: Any
    r4: Any

    @classmethod
    def from_sequence(cls, values: Sequence[Any]) -> "RecurrentState":
        if len(values) != STATE_SLOTS:
            raise ValueError(f"Expected {STATE_SLOTS} recurrent states, got {len(values)}")
        return cls(*values)

    def as_tuple(self) -> tuple:
        return (self.r1, self.r2, self.r3, self.r4)


def initial_state() -> RecurrentState:
    zeros = [np.zeros((1, 1, 1, 1), dtype=np.float32) for _ in range(STATE_SLOTS)]
    return RecurrentState.from_sequence(zeros)


class RecurrentStateStore:
    """Owns the recurrent state of exactly one capture session."""

    def __init__(self) -> None:
        self._state = initial_state()
        self._updates = 0

    @staticmethod
    def initial() -> RecurrentState:
        return initial_state()

    @property
    def state(self) -> RecurrentState:
        return self._state

    @property
    def updates(self) -> int:
        return self._updates

    def update(self, new_state: RecurrentState | Sequence[Any]) -> None:
        if not isinstance(new_state, RecurrentState):
            new_state = RecurrentState.from_sequence(new_state)
        self._state = new_state
        self._updates += 1
        if logger.isEnabledFor(logging.DEBUG):
            shapes = [getattr(value, "shape", None) for value in new_state.as_tuple()]
            logger.debug("recurrent state #%d shapes: %s", self._updates, shapes)
