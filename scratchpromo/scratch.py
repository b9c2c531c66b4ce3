"""Scratch-to-reveal detection.

The surface is sampled on a ``width x height`` grid; sample ``(i, j)`` sits
at ``(i + 0.5, j + 0.5)``. Dragging a circular eraser clears every sample
within ``radius`` of the pointer. Once the cleared fraction strictly exceeds
the threshold the detector moves from ``ACTIVE`` to ``REVEALED``, exactly once.
"""

from __future__ import annotations

import enum
import logging
import math
from typing import Callable, Optional

from .config import CampaignConfig

logger = logging.getLogger(__name__)

DEFAULT_WIDTH = 288
DEFAULT_HEIGHT = 160
DEFAULT_RADIUS = 20.0


class RevealState(str, enum.Enum):
    ACTIVE = "active"
    REVEALED = "revealed"


class ScratchRevealDetector:
    """One-way ``ACTIVE -> REVEALED`` state machine driven by cleared area."""

    def __init__(
        self,
        width: int = DEFAULT_WIDTH,
        height: int = DEFAULT_HEIGHT,
        *,
        radius: float = DEFAULT_RADIUS,
        threshold: float = 0.75,
        on_reveal: Optional[Callable[[], None]] = None,
    ) -> None:
        if width <= 0 or height <= 0:
            raise ValueError("surface dimensions must be positive")
        if radius <= 0:
            raise ValueError("radius must be positive")
        if not 0.0 < threshold < 1.0:
            raise ValueError("threshold must be within (0, 1)")
        self.width = width
        self.height = height
        self.radius = float(radius)
        self.threshold = threshold
        self._on_reveal = on_reveal
        self._cleared = bytearray(width * height)
        self._cleared_count = 0
        self._pressed = False
        self._state = RevealState.ACTIVE

    @classmethod
    def from_config(
        cls,
        config: CampaignConfig,
        *,
        on_reveal: Optional[Callable[[], None]] = None,
        **kwargs,
    ) -> "ScratchRevealDetector":
        return cls(threshold=config.reveal_threshold, on_reveal=on_reveal, **kwargs)

    @property
    def state(self) -> RevealState:
        return self._state

    @property
    def revealed(self) -> bool:
        return self._state is RevealState.REVEALED

    @property
    def total_samples(self) -> int:
        return self.width * self.height

    @property
    def cleared_samples(self) -> int:
        return self._cleared_count

    @property
    def cleared_fraction(self) -> float:
        return self._cleared_count / self.total_samples

    def is_cleared(self, i: int, j: int) -> bool:
        return bool(self._cleared[j * self.width + i])

    def press(self) -> None:
        self._pressed = True

    def drag(self, x: float, y: float) -> bool:
        """Erase around ``(x, y)`` while the pointer is down.

        Ignored when the pointer is up or the card is already revealed.
        Returns ``True`` if this movement triggered the reveal.
        """

        if not self._pressed or self.revealed:
            return False
        self._erase(x, y)
        return self._evaluate()

    def release(self) -> bool:
        """Lift the pointer and re-check the cleared fraction."""

        self._pressed = False
        return self._evaluate()

    def _erase(self, x: float, y: float) -> None:
        r = self.radius
        r_sq = r * r
        i_min = max(0, math.ceil(x - r - 0.5))
        i_max = min(self.width - 1, math.floor(x + r - 0.5))
        j_min = max(0, math.ceil(y - r - 0.5))
        j_max = min(self.height - 1, math.floor(y + r - 0.5))
        for j in range(j_min, j_max + 1):
            dy = j + 0.5 - y
            row = j * self.width
            for i in range(i_min, i_max + 1):
                dx = i + 0.5 - x
                if dx * dx + dy * dy <= r_sq and not self._cleared[row + i]:
                    self._cleared[row + i] = 1
                    self._cleared_count += 1

    def _evaluate(self) -> bool:
        if self.revealed or self.cleared_fraction <= self.threshold:
            return False
        self._state = RevealState.REVEALED
        logger.debug(f"Scratch card revealed at {self.cleared_fraction:.1%} cleared")
        if self._on_reveal is not None:
            self._on_reveal()
        return True


__all__ = ["RevealState", "ScratchRevealDetector"]
