"""Weighted instant-prize selection over a fixed probability table."""

from __future__ import annotations

import bisect
import itertools
import random
from typing import Optional, Sequence

from ..config import CampaignConfig, PrizeDefinition


class WeightedPrizeSelector:
    """Draw one prize from an ordered probability table.

    The cumulative table is built once, in the order the prizes are given.
    Prize *i* owns the half-open interval ``[c[i-1], c[i])``, so a draw that
    lands exactly on a boundary selects the following prize. The web app
    this campaign first ran on used a closed upper bound (``r <= c[i]``)
    instead, which only differs on exact boundary draws. A draw at or
    above the final cumulative sum (possible only through float drift)
    selects the last prize.
    """

    def __init__(
        self,
        prizes: Sequence[PrizeDefinition],
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        """Build the selector.

        Parameters
        ----------
        prizes : Sequence[PrizeDefinition]
            Prize table in canonical order.
        rng : Optional[random.Random], default: None
            Source of uniform draws. Defaults to :class:`random.SystemRandom`;
            tests pass a seeded :class:`random.Random`.
        """

        if not prizes:
            raise ValueError("prizes must not be empty")
        self._prizes = tuple(prizes)
        self._cumulative = tuple(
            itertools.accumulate(p.probability for p in self._prizes)
        )
        self._rng = rng or random.SystemRandom()

    @classmethod
    def from_config(
        cls, config: CampaignConfig, *, rng: Optional[random.Random] = None
    ) -> "WeightedPrizeSelector":
        return cls(config.prizes, rng=rng)

    @property
    def prizes(self) -> tuple[PrizeDefinition, ...]:
        return self._prizes

    @property
    def cumulative(self) -> tuple[float, ...]:
        """Monotonic cumulative probabilities aligned with :attr:`prizes`."""
        return self._cumulative

    def select(self, r: Optional[float] = None) -> PrizeDefinition:
        """Return the prize whose interval contains ``r``.

        Parameters
        ----------
        r : Optional[float], default: None
            Uniform draw in ``[0, 1)``. When omitted one is taken from the
            selector's random source.

        Raises
        ------
        ValueError
            If ``r`` is outside ``[0, 1)``.
        """

        if r is None:
            r = self._rng.random()
        elif not 0.0 <= r < 1.0:
            raise ValueError(f"r must be within [0, 1), got {r!r}")

        index = bisect.bisect_right(self._cumulative, r)
        if index >= len(self._prizes):
            return self._prizes[-1]
        return self._prizes[index]


__all__ = ["WeightedPrizeSelector"]
