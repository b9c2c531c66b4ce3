"""Grand-draw eligibility and serial issuance."""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from ..config import CampaignConfig
from ..models.utils import generate_unique_serial


@dataclass(frozen=True)
class GrandDrawAssignment:
    """Eligibility of a visit and the serial issued for it, if any."""

    eligible: bool
    serial: Optional[str] = None


class GrandDrawAssigner:
    """Decide grand-draw eligibility from the visit duration and issue serials.

    Serials are drawn uniformly from ``[100000, 999999]``. When a session is
    supplied to :meth:`assign` the draw is repeated on collision with an
    existing order; the check and the later insert are not atomic, so two
    concurrent registrations may still receive the same serial.
    """

    def __init__(
        self,
        min_hours: int = 4,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._min_hours = min_hours
        self._rng = rng

    @classmethod
    def from_config(
        cls, config: CampaignConfig, *, rng: Optional[random.Random] = None
    ) -> "GrandDrawAssigner":
        return cls(config.grand_draw_min_hours, rng=rng)

    def is_eligible(self, duration_hours: int) -> bool:
        return duration_hours >= self._min_hours

    def assign(
        self, duration_hours: int, session: Optional[Session] = None
    ) -> GrandDrawAssignment:
        if not self.is_eligible(duration_hours):
            return GrandDrawAssignment(eligible=False)
        serial = generate_unique_serial(session=session, rng=self._rng)
        return GrandDrawAssignment(eligible=True, serial=serial)


__all__ = ["GrandDrawAssigner", "GrandDrawAssignment"]
