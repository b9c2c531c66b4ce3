"""Registration orchestration and order state transitions.

:class:`OrderLifecycle` is the single place where a visit becomes an
:class:`~scratchpromo.models.Order`. The prize and serial are decided once in
:meth:`OrderLifecycle.register` and never recomputed; the scratch interaction
only reveals them.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .config import CampaignConfig, DEFAULT_CAMPAIGN, InventoryPolicy, PrizeDefinition
from .errors import DuplicateEntry, InvalidInput, OrderNotFound
from .models import Order
from .prize_draw import (
    GrandDrawAssigner,
    InventoryDecision,
    InventoryGuard,
    WeightedPrizeSelector,
)

logger = logging.getLogger(__name__)


def mask_phone(phone: str) -> str:
    """Mask the middle digits of a phone number for log output."""

    if len(phone) < 6:
        return "*" * len(phone)
    return f"{phone[:2]}{'*' * (len(phone) - 6)}{phone[-4:]}"


@dataclass(frozen=True)
class RegistrationRequest:
    """A customer's visit as submitted by the registration form."""

    phone: str
    registration_date: Union[date, str]
    branch: str
    room: str
    duration_hours: Union[int, str]
    user_id: Optional[str] = None


@dataclass
class RegistrationResult:
    """Authoritative outcome of a registration."""

    order: Order
    prize: PrizeDefinition
    grand_draw_serial: Optional[str]
    inventory: Optional[InventoryDecision] = field(default=None, repr=False)

    @property
    def order_id(self) -> str:
        return self.order.id

    def to_json(self) -> dict:
        return {
            "order_id": self.order_id,
            "assigned_prize": self.prize.to_json(),
            "grand_draw_serial": self.grand_draw_serial,
        }


def _parse_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError as exc:
            raise InvalidInput(f"日期格式錯誤: {value!r}") from exc
    raise InvalidInput(f"日期格式錯誤: {value!r}")


def _parse_duration(value: Union[int, str], allowed: tuple[int, ...]) -> int:
    if isinstance(value, bool):
        raise InvalidInput(f"不支援的消費時數: {value!r}")
    try:
        hours = int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"不支援的消費時數: {value!r}") from exc
    if hours not in allowed:
        raise InvalidInput(f"不支援的消費時數: {value!r}")
    return hours


def validate_request(
    request: RegistrationRequest, config: CampaignConfig
) -> tuple[str, date, int]:
    """Check a request against the campaign and return normalized fields.

    Returns
    -------
    tuple[str, date, int]
        The phone number, registration date and duration in hours.

    Raises
    ------
    InvalidInput
        If the phone, date, branch, room or duration is not acceptable.
    """

    phone = request.phone if isinstance(request.phone, str) else ""
    if not re.fullmatch(config.phone_pattern, phone):
        raise InvalidInput()

    registration_date = _parse_date(request.registration_date)

    if request.branch not in config.branches:
        raise InvalidInput(f"未知的分店: {request.branch!r}")
    if request.room not in config.rooms_for(request.branch):
        raise InvalidInput(f"{request.branch} 沒有包廂 {request.room!r}")

    hours = _parse_duration(request.duration_hours, config.durations)
    return phone, registration_date, hours


class DuplicateEntryGuard:
    """Reject a second registration for the same phone on the same date.

    The lookup and the subsequent insert are not one atomic step. The
    ``uq_orders_phone_date`` constraint catches the concurrent case at flush
    time and :class:`OrderLifecycle` reports it as :class:`DuplicateEntry`.
    """

    def check(self, session: Session, phone: str, registration_date: date) -> None:
        if Order.find_by_phone_and_date(session, phone, registration_date):
            logger.info(
                f"Duplicate registration rejected for {mask_phone(phone)} on {registration_date}"
            )
            raise DuplicateEntry()


class OrderLifecycle:
    """Create orders and drive their reveal and redemption transitions."""

    def __init__(
        self,
        session: Session,
        config: CampaignConfig = DEFAULT_CAMPAIGN,
        *,
        policy: InventoryPolicy = InventoryPolicy.ENFORCED,
        rng: Optional[random.Random] = None,
        selector: Optional[WeightedPrizeSelector] = None,
        inventory: Optional[InventoryGuard] = None,
        grand_draw: Optional[GrandDrawAssigner] = None,
        duplicates: Optional[DuplicateEntryGuard] = None,
    ) -> None:
        """Bind the lifecycle to a session and a campaign.

        Parameters
        ----------
        session : Session
            Session of the current unit of work. The lifecycle flushes but
            never commits; the caller owns the transaction and must roll back
            when an exception escapes.
        config : CampaignConfig, default: DEFAULT_CAMPAIGN
            Campaign definition shared by all components.
        policy : InventoryPolicy, default: InventoryPolicy.ENFORCED
            Counter maintenance policy for limited prizes.
        rng : Optional[random.Random], default: None
            Random source used for both prize draws and serials when the
            components are not supplied explicitly.
        selector, inventory, grand_draw, duplicates : optional
            Component overrides, mainly for tests.
        """

        self._session = session
        self._config = config
        self._selector = selector or WeightedPrizeSelector.from_config(config, rng=rng)
        self._inventory = inventory or InventoryGuard(config, policy=policy)
        self._grand_draw = grand_draw or GrandDrawAssigner.from_config(config, rng=rng)
        self._duplicates = duplicates or DuplicateEntryGuard()

    @property
    def config(self) -> CampaignConfig:
        return self._config

    def register(self, request: RegistrationRequest) -> RegistrationResult:
        """Register a visit and decide its instant prize and grand-draw serial.

        The steps run in a fixed order:

        1. Validate the request.
        2. Reject a duplicate (phone, date).
        3. Decide grand-draw eligibility and issue a serial.
        4. Draw a prize and apply its inventory cap.
        5. Persist the order with ``redeemed=False`` and an empty note.

        Raises
        ------
        InvalidInput
            If the request is malformed.
        DuplicateEntry
            If an order already exists for the phone and date.
        """

        phone, registration_date, hours = validate_request(request, self._config)
        self._duplicates.check(self._session, phone, registration_date)

        grand = self._grand_draw.assign(hours, session=self._session)

        selected = self._selector.select()
        decision = self._inventory.award(self._session, selected)
        prize = decision.awarded

        order = Order(
            phone=phone,
            registration_date=registration_date,
            branch=request.branch,
            room=request.room,
            duration_hours=hours,
            user_id=request.user_id,
            is_grand_eligible=grand.eligible,
            grand_draw_serial=grand.serial,
            prize_id=prize.id,
            prize_name=prize.name,
            prize_kind=prize.kind.value,
            redeemed=False,
            note="",
        )
        self._session.add(order)
        try:
            self._session.flush()
        except IntegrityError as exc:
            # A concurrent registration for the same phone and date won the insert.
            logger.info(
                f"Duplicate registration for {mask_phone(phone)} on {registration_date} caught at insert"
            )
            raise DuplicateEntry() from exc

        logger.info(
            f"Registered order {order.id} for {mask_phone(phone)}: "
            f"prize={prize.id} serial={grand.serial or '-'}"
        )
        return RegistrationResult(
            order=order,
            prize=prize,
            grand_draw_serial=grand.serial,
            inventory=decision,
        )

    def reveal(self, order_id: str) -> Order:
        """Record that the customer uncovered the prize. Idempotent."""

        order = self._get(order_id)
        if order.mark_revealed():
            self._session.flush()
            logger.debug(f"Order {order_id} revealed")
        return order

    def redeem(self, order_id: str, redeemed: bool) -> Order:
        """Set the redemption flag of an order. Idempotent, last write wins."""

        order = self._get(order_id)
        order.set_redeemed(bool(redeemed))
        self._session.flush()
        logger.info(f"Order {order_id} redeemed={order.redeemed}")
        return order

    def annotate(self, order_id: str, note: Optional[str]) -> Order:
        """Replace the administrator note of an order. Idempotent, last write wins."""

        order = self._get(order_id)
        order.note = note or ""
        self._session.flush()
        logger.info(f"Order {order_id} note updated")
        return order

    def _get(self, order_id: str) -> Order:
        order = Order.get(self._session, order_id)
        if order is None:
            raise OrderNotFound(f"找不到訂單 {order_id}")
        return order


__all__ = [
    "DuplicateEntryGuard",
    "OrderLifecycle",
    "RegistrationRequest",
    "RegistrationResult",
    "mask_phone",
    "validate_request",
]
