"""Per-prize award counters backing inventory caps."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Integer, String, delete, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from .base import Base


class PrizeCount(Base):
    """Number of times a limited prize has been awarded campaign-wide."""

    __tablename__ = "prize_counts"

    prize_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (CheckConstraint("count >= 0", name="count_non_negative"),)

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return f"<PrizeCount(prize_id='{self.prize_id}', count={self.count})>"

    @classmethod
    def current(cls, session: Session, prize_id: str) -> int:
        """Return the stored count for ``prize_id``; a missing row counts as zero."""

        value = session.scalar(select(cls.count).where(cls.prize_id == prize_id))
        return int(value or 0)

    @classmethod
    def exists(cls, session: Session, prize_id: str) -> bool:
        stmt = select(cls.prize_id).where(cls.prize_id == prize_id)
        return session.scalar(stmt) is not None

    @classmethod
    def snapshot(cls, session: Session) -> dict[str, int]:
        return {row.prize_id: row.count for row in session.scalars(select(cls))}

    @classmethod
    def reset_all(cls, session: Session) -> int:
        """Delete every counter row and return how many were removed."""

        result = session.execute(delete(cls))
        return result.rowcount or 0
