"""Inventory caps for limited prizes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import CampaignConfig, InventoryPolicy, PrizeDefinition
from ..models import PrizeCount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryDecision:
    """Outcome of checking a selected prize against its cap.

    Attributes
    ----------
    selected : PrizeDefinition
        Prize drawn by the selector.
    awarded : PrizeDefinition
        Prize that is actually granted, either ``selected`` or the fallback.
    count : Optional[int]
        Counter value read for ``selected``; ``None`` when the prize is
        unlimited or the read failed.
    downgraded : bool
        ``True`` when ``awarded`` replaced an exhausted ``selected``.
    unchecked : bool
        ``True`` when the counter could not be read and the cap was skipped.
    """

    selected: PrizeDefinition
    awarded: PrizeDefinition
    count: Optional[int] = None
    downgraded: bool = False
    unchecked: bool = False


class InventoryGuard:
    """Check and reserve per-prize inventory against :class:`PrizeCount`."""

    def __init__(
        self,
        config: CampaignConfig,
        *,
        policy: InventoryPolicy = InventoryPolicy.ENFORCED,
    ) -> None:
        self._config = config
        self._policy = policy

    @property
    def policy(self) -> InventoryPolicy:
        return self._policy

    @property
    def fallback(self) -> PrizeDefinition:
        return self._config.fallback_prize

    def resolve(self, session: Session, prize: PrizeDefinition) -> InventoryDecision:
        """Read the counter for ``prize`` and downgrade it when exhausted.

        A failed read fails open: the selected prize is returned unchanged so
        the registration can still complete. The read runs in a SAVEPOINT so
        a failed statement leaves the caller's transaction usable.
        """

        if not prize.is_limited:
            return InventoryDecision(selected=prize, awarded=prize)

        try:
            with session.begin_nested():
                count = PrizeCount.current(session, prize.id)
        except SQLAlchemyError as exc:
            logger.warning(
                f"Could not read inventory for '{prize.id}', awarding without cap check: {exc}"
            )
            return InventoryDecision(selected=prize, awarded=prize, unchecked=True)

        if count >= prize.inventory_limit:
            logger.info(
                f"Prize '{prize.id}' exhausted ({count}/{prize.inventory_limit}); "
                f"awarding '{self.fallback.id}' instead"
            )
            return InventoryDecision(
                selected=prize, awarded=self.fallback, count=count, downgraded=True
            )
        return InventoryDecision(selected=prize, awarded=prize, count=count)

    def reserve(self, session: Session, prize: PrizeDefinition) -> bool:
        """Consume one unit of ``prize`` if it is still under its cap.

        Under :attr:`InventoryPolicy.ENFORCED` this is a conditional increment
        ``count = count + 1 WHERE count < limit`` executed in a SAVEPOINT of
        the caller's transaction, so two concurrent awards cannot both take
        the last unit. A missing counter row is created first; a row created
        concurrently by another session is tolerated.
        Under :attr:`InventoryPolicy.ADVISORY` nothing is written and the
        reservation always succeeds.

        Returns
        -------
        bool
            ``False`` when the cap was reached between the read and the write.
        """

        if not prize.is_limited or self._policy is InventoryPolicy.ADVISORY:
            return True

        with session.begin_nested():
            self._ensure_counter(session, prize.id)
            result = session.execute(
                update(PrizeCount)
                .where(
                    PrizeCount.prize_id == prize.id,
                    PrizeCount.count < prize.inventory_limit,
                )
                .values(
                    count=PrizeCount.count + 1,
                    updated_at=datetime.now(timezone.utc),
                )
            )
        reserved = result.rowcount == 1
        if not reserved:
            logger.warning(f"Lost the race for the last unit of '{prize.id}'")
        return reserved

    def award(self, session: Session, prize: PrizeDefinition) -> InventoryDecision:
        """Resolve ``prize`` against its cap and reserve the awarded unit.

        When the counter read already failed open, a failing reservation is
        also tolerated and the selected prize is awarded uncounted.
        """

        decision = self.resolve(session, prize)
        try:
            reserved = self.reserve(session, decision.awarded)
        except SQLAlchemyError as exc:
            if not decision.unchecked:
                raise
            logger.warning(
                f"Could not reserve '{decision.awarded.id}', awarding uncounted: {exc}"
            )
            return decision
        if reserved:
            return decision
        return InventoryDecision(
            selected=prize,
            awarded=self.fallback,
            count=decision.count,
            downgraded=True,
        )

    def ensure_counters(self, session: Session) -> None:
        """Create a zero counter row for every limited prize that lacks one."""

        for prize in self._config.limited_prizes:
            self._ensure_counter(session, prize.id)

    def counts(self, session: Session) -> dict[str, int]:
        """Return the awarded count of every limited prize, zero when unseen."""

        stored = PrizeCount.snapshot(session)
        return {p.id: stored.get(p.id, 0) for p in self._config.limited_prizes}

    @staticmethod
    def _ensure_counter(session: Session, prize_id: str) -> None:
        # Stores seeded by ``workflows.bootstrap`` already hold every row.
        if PrizeCount.exists(session, prize_id):
            return
        try:
            with session.begin_nested():
                session.execute(insert(PrizeCount).values(prize_id=prize_id, count=0))
        except IntegrityError:
            # A concurrent first award created the row; increment that one.
            logger.debug(f"Counter row for '{prize_id}' created concurrently")


__all__ = ["InventoryDecision", "InventoryGuard"]
