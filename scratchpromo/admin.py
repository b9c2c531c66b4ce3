"""Administrative reports and mutations over the order set."""

from __future__ import annotations

import hmac
import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .config import CampaignConfig, DEFAULT_CAMPAIGN, PrizeKind
from .db.utils import as_utc
from .errors import AdminAccessDenied
from .lifecycle import OrderLifecycle
from .models import Order, PrizeCount
from .prize_draw import InventoryGuard

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _newest_first(orders: Iterable[Order]) -> list[Order]:
    return sorted(
        orders,
        key=lambda order: as_utc(order.created_at) or _EPOCH,
        reverse=True,
    )


class AdminGate:
    """Shared-passphrase check guarding the administrative view."""

    def __init__(self, passphrase: Optional[str]) -> None:
        self._passphrase = passphrase

    def authorize(self, supplied: Optional[str]) -> None:
        """Raise :class:`AdminAccessDenied` unless ``supplied`` matches.

        An unset passphrase denies everyone.
        """

        if not self._passphrase or supplied is None:
            raise AdminAccessDenied()
        if not hmac.compare_digest(
            supplied.encode("utf-8"), self._passphrase.encode("utf-8")
        ):
            logger.warning("Rejected administrative passphrase")
            raise AdminAccessDenied()


class AdminQueryAggregator:
    """Grand-draw and instant-win reports plus redemption management.

    Reports load the full order set and filter and sort it in memory. This is
    sized for a single campaign of a few thousand orders.
    """

    def __init__(
        self,
        session: Session,
        config: CampaignConfig = DEFAULT_CAMPAIGN,
        *,
        lifecycle: Optional[OrderLifecycle] = None,
    ) -> None:
        self._session = session
        self._config = config
        self._lifecycle = lifecycle or OrderLifecycle(session, config)

    def _report(self, predicate: Callable[[Order], bool]) -> list[Order]:
        return _newest_first(o for o in Order.load_all(self._session) if predicate(o))

    def list_grand(self) -> list[Order]:
        """Orders eligible for the grand draw, newest first."""

        return self._report(lambda o: o.is_grand_eligible is True)

    def list_instant_wins(self) -> list[Order]:
        """Orders whose instant prize is a ``WIN``, newest first."""

        return self._report(lambda o: o.prize_kind == PrizeKind.WIN.value)

    def set_redeemed(self, order_id: str, redeemed: bool) -> Order:
        return self._lifecycle.redeem(order_id, redeemed)

    def set_note(self, order_id: str, note: Optional[str]) -> Order:
        return self._lifecycle.annotate(order_id, note)

    def prize_counts(self) -> dict[str, int]:
        """Awarded count of every limited prize."""

        return InventoryGuard(self._config).counts(self._session)

    def clear_all(self) -> int:
        """Delete every order and reset all prize counters.

        Irreversible. Confirmation belongs to the caller. Everything happens
        in the caller's transaction, so a failure leaves the data untouched.

        Returns
        -------
        int
            Number of orders deleted.
        """

        result = self._session.execute(delete(Order))
        deleted = result.rowcount or 0
        counters = PrizeCount.reset_all(self._session)
        logger.warning(f"Cleared {deleted} orders and {counters} prize counters")
        return deleted


__all__ = ["AdminGate", "AdminQueryAggregator"]
