from __future__ import annotations

import random
from typing import Protocol


class FirstMoverSource(Protocol):
    """Decides, once per game at join time, whether player1 moves first."""

    def choose(self) -> bool: ...


class SystemRandomFirstMover:
    """Coin flip backed by OS entropy; neither participant can predict it."""

    def __init__(self) -> None:
        self._rng = random.SystemRandom()

    def choose(self) -> bool:
        return bool(self._rng.getrandbits(1))
