"""Per-request units of work.

Each public function here opens one session, runs one lifecycle or admin
operation, and commits. Any failure rolls the whole unit back, so a failed
registration never leaves a partial order or a consumed prize unit behind.
Store failures surface as :class:`~scratchpromo.errors.StoreUnavailable`;
nothing is retried automatically.
"""

from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .admin import AdminQueryAggregator
from .config import CampaignConfig, DEFAULT_CAMPAIGN, InventoryPolicy, Settings
from .db.engine import get_sessionmaker, make_engine
from .errors import PromotionError, StoreUnavailable, UnknownError
from .lifecycle import OrderLifecycle, RegistrationRequest, RegistrationResult
from .models import Order
from .prize_draw import InventoryGuard

logger = logging.getLogger(__name__)


@contextmanager
def unit_of_work(session_factory: sessionmaker, action: str) -> Iterator[Session]:
    """Yield a session whose transaction commits on success and rolls back on error.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory producing sessions bound to the store. It should be created
        with ``expire_on_commit=False`` (see :func:`get_sessionmaker`) so
        returned orders stay readable after the commit.
    action : str
        Short label used in log messages.

    Raises
    ------
    StoreUnavailable
        When the store raises any :class:`~sqlalchemy.exc.SQLAlchemyError`.
    UnknownError
        When anything other than a :class:`PromotionError` escapes.
    """

    session = session_factory()
    try:
        yield session
        session.commit()
    except PromotionError:
        session.rollback()
        raise
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error(f"{action} rolled back, store unavailable: {exc}")
        raise StoreUnavailable() from exc
    except Exception as exc:
        session.rollback()
        logger.exception(f"{action} rolled back after unexpected error")
        raise UnknownError() from exc
    finally:
        session.close()


def bootstrap(settings: Settings) -> sessionmaker:
    """Create the session factory for ``settings`` and seed the prize counters.

    The schema must already exist (see ``scripts/init_db.py``).
    """

    engine = make_engine(settings=settings)
    session_factory = get_sessionmaker(engine)
    with unit_of_work(session_factory, "bootstrap") as session:
        InventoryGuard(settings.campaign, policy=settings.inventory_policy).ensure_counters(
            session
        )
    logger.info(
        f"Promotion store ready ({settings.inventory_policy.value} inventory policy)"
    )
    return session_factory


def register_visit(
    session_factory: sessionmaker,
    request: RegistrationRequest,
    *,
    config: CampaignConfig = DEFAULT_CAMPAIGN,
    policy: InventoryPolicy = InventoryPolicy.ENFORCED,
    rng: Optional[random.Random] = None,
) -> RegistrationResult:
    """Register a visit as one transaction.

    Returns
    -------
    RegistrationResult
        The committed order with its prize and grand-draw serial.

    Raises
    ------
    InvalidInput, DuplicateEntry
        Rejections raised before anything is written.
    StoreUnavailable
        When persistence fails; the caller may retry.
    """

    with unit_of_work(session_factory, "registration") as session:
        lifecycle = OrderLifecycle(session, config, policy=policy, rng=rng)
        return lifecycle.register(request)


def record_reveal(
    session_factory: sessionmaker,
    order_id: str,
    *,
    config: CampaignConfig = DEFAULT_CAMPAIGN,
) -> Order:
    with unit_of_work(session_factory, "reveal") as session:
        return OrderLifecycle(session, config).reveal(order_id)


def set_redeemed(
    session_factory: sessionmaker,
    order_id: str,
    redeemed: bool,
    *,
    config: CampaignConfig = DEFAULT_CAMPAIGN,
) -> Order:
    with unit_of_work(session_factory, "set_redeemed") as session:
        return AdminQueryAggregator(session, config).set_redeemed(order_id, redeemed)


def set_note(
    session_factory: sessionmaker,
    order_id: str,
    note: Optional[str],
    *,
    config: CampaignConfig = DEFAULT_CAMPAIGN,
) -> Order:
    with unit_of_work(session_factory, "set_note") as session:
        return AdminQueryAggregator(session, config).set_note(order_id, note)


def list_grand(
    session_factory: sessionmaker, *, config: CampaignConfig = DEFAULT_CAMPAIGN
) -> list[Order]:
    with unit_of_work(session_factory, "list_grand") as session:
        return AdminQueryAggregator(session, config).list_grand()


def list_instant_wins(
    session_factory: sessionmaker, *, config: CampaignConfig = DEFAULT_CAMPAIGN
) -> list[Order]:
    with unit_of_work(session_factory, "list_instant_wins") as session:
        return AdminQueryAggregator(session, config).list_instant_wins()


def prize_counts(
    session_factory: sessionmaker, *, config: CampaignConfig = DEFAULT_CAMPAIGN
) -> dict[str, int]:
    with unit_of_work(session_factory, "prize_counts") as session:
        return AdminQueryAggregator(session, config).prize_counts()


def clear_all(
    session_factory: sessionmaker, *, config: CampaignConfig = DEFAULT_CAMPAIGN
) -> int:
    """Delete every order and reset the prize counters in one transaction."""

    with unit_of_work(session_factory, "clear_all") as session:
        return AdminQueryAggregator(session, config).clear_all()


__all__ = [
    "bootstrap",
    "clear_all",
    "list_grand",
    "list_instant_wins",
    "prize_counts",
    "record_reveal",
    "register_visit",
    "set_note",
    "set_redeemed",
    "unit_of_work",
]
