"""Order model: one registered visit and the outcomes decided for it."""

from __future__ import annotations

import enum
import uuid
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column

from ..db.utils import as_utc, dt_iso
from .base import Base


def _new_order_id() -> str:
    return uuid.uuid4().hex


class OrderState(str, enum.Enum):
    """Lifecycle states of an order.

    ``REGISTERED`` only exists while a request is being processed; a persisted
    order always has its prize decided.
    """

    REGISTERED = "registered"
    PRIZE_DETERMINED = "prize_determined"
    REVEALED = "revealed"
    REDEEMED = "redeemed"


class Order(Base):
    """A customer's registered visit plus its assigned prize and serial."""

    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_order_id)
    """Opaque identifier assigned on creation."""

    phone: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    registration_date: Mapped[date] = mapped_column(Date, nullable=False)
    branch: Mapped[str] = mapped_column(String(50), nullable=False)
    room: Mapped[str] = mapped_column(String(50), nullable=False)
    duration_hours: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    """Opaque token from the identity provider."""

    is_grand_eligible: Mapped[bool] = mapped_column(Boolean, nullable=False)
    grand_draw_serial: Mapped[Optional[str]] = mapped_column(String(6), nullable=True)
    """Six-digit serial entered into the grand draw, present iff eligible."""

    prize_id: Mapped[str] = mapped_column(String(32), nullable=False)
    prize_name: Mapped[str] = mapped_column(String(100), nullable=False)
    prize_kind: Mapped[str] = mapped_column(String(10), nullable=False)
    """Snapshot of the prize decided at registration; never recomputed."""

    redeemed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    redeemed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    note: Mapped[str] = mapped_column(Text, nullable=False, default="")
    revealed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("phone", "registration_date", name="uq_orders_phone_date"),
        CheckConstraint(
            "(is_grand_eligible AND grand_draw_serial IS NOT NULL) OR "
            "(NOT is_grand_eligible AND grand_draw_serial IS NULL)",
            name="serial_iff_eligible",
        ),
        CheckConstraint("prize_kind IN ('none','win')", name="prize_kind_enum"),
        Index("ix_orders_grand_draw_serial", "grand_draw_serial"),
    )

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return (
            "<Order("
            f"id='{self.id}', date={self.registration_date}, prize_id='{self.prize_id}', "
            f"serial={self.grand_draw_serial}, redeemed={self.redeemed}"
            ")>"
        )

    @classmethod
    def get(cls, session: Session, order_id: str) -> Optional["Order"]:
        return session.get(cls, order_id)

    @classmethod
    def find_by_phone_and_date(
        cls, session: Session, phone: str, registration_date: date
    ) -> list["Order"]:
        """Return orders registered with exactly this phone on this date."""

        stmt = select(cls).where(
            cls.phone == phone,
            cls.registration_date == registration_date,
        )
        return list(session.scalars(stmt))

    @classmethod
    def serial_exists(cls, session: Session, serial: str) -> bool:
        stmt = select(cls.id).where(cls.grand_draw_serial == serial).limit(1)
        return session.scalar(stmt) is not None

    @classmethod
    def load_all(cls, session: Session) -> list["Order"]:
        return list(session.scalars(select(cls)))

    @property
    def state(self) -> OrderState:
        if self.redeemed:
            return OrderState.REDEEMED
        if self.revealed_at is not None:
            return OrderState.REVEALED
        return OrderState.PRIZE_DETERMINED

    def mark_revealed(self, *, timestamp: Optional[datetime] = None) -> bool:
        """Record the reveal once. Returns ``True`` only on the first call."""

        if self.revealed_at is not None:
            return False
        self.revealed_at = timestamp or datetime.now(timezone.utc)
        return True

    def set_redeemed(self, redeemed: bool, *, timestamp: Optional[datetime] = None) -> None:
        """Set the redemption flag; repeated calls with the same value are no-ops."""

        if bool(self.redeemed) == redeemed:
            return
        self.redeemed = redeemed
        self.redeemed_at = (timestamp or datetime.now(timezone.utc)) if redeemed else None

    def to_json(self) -> dict:
        return {
            "order_id": self.id,
            "phone": self.phone,
            "date": dt_iso(self.registration_date),
            "branch": self.branch,
            "room": self.room,
            "duration_hours": self.duration_hours,
            "user_id": self.user_id,
            "is_grand_eligible": self.is_grand_eligible,
            "grand_draw_serial": self.grand_draw_serial,
            "assigned_prize": {
                "id": self.prize_id,
                "name": self.prize_name,
                "kind": self.prize_kind,
            },
            "redeemed": self.redeemed,
            "redeemed_at": dt_iso(self.redeemed_at),
            "note": self.note,
            "revealed_at": dt_iso(self.revealed_at),
            "state": self.state.value,
            "created_at": dt_iso(self.created_at),
        }

    @property
    def created_at_utc(self) -> Optional[datetime]:
        return as_utc(self.created_at)
