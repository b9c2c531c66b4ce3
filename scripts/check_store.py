"""Check the configured store for schema drift and inventory inconsistencies.

Exit codes: 0 clean, 1 differences found, 2 error.
"""

from __future__ import annotations

import sys
from collections import Counter

from alembic.autogenerate import api as ag_api
from alembic.runtime.migration import MigrationContext
from sqlalchemy import select
from sqlalchemy.orm import Session

from scratchpromo.config import InventoryPolicy, load_settings
from scratchpromo.db.engine import make_engine
from scratchpromo.models import Base, Order, PrizeCount


def _print_ops(ops, indent: int = 0) -> None:
    prefix = "  " * indent
    for op in ops:
        print(f"{prefix}- {op}")
        sub_ops = getattr(op, "ops", None)
        if sub_ops:
            _print_ops(sub_ops, indent + 1)


def _schema_differences(connection) -> list:
    context = MigrationContext.configure(
        connection=connection,
        opts={
            "compare_type": True,
            "compare_server_default": True,
            "render_as_batch": connection.dialect.name == "sqlite",
        },
    )
    upgrade_ops = ag_api.produce_migrations(context, Base.metadata).upgrade_ops
    if upgrade_ops is None or upgrade_ops.is_empty():
        return []
    return list(upgrade_ops.ops or [])


def _inventory_problems(session: Session) -> list[str]:
    """Compare counters with awarded orders and with the configured caps."""

    settings = load_settings()
    campaign = settings.campaign
    enforced = settings.inventory_policy is InventoryPolicy.ENFORCED
    counters = PrizeCount.snapshot(session)
    awarded = Counter(session.scalars(select(Order.prize_id)))

    problems: list[str] = []
    for prize in campaign.limited_prizes:
        stored = counters.get(prize.id, 0)
        actual = awarded.get(prize.id, 0)
        if actual > prize.inventory_limit:
            problems.append(
                f"{prize.id}: {actual} awarded exceeds cap {prize.inventory_limit}"
            )
        # advisory mode never writes the counters
        if enforced and stored != actual:
            problems.append(f"{prize.id}: counter {stored} != awarded orders {actual}")
    return problems


def main() -> int:
    engine = make_engine()
    url_display = engine.url.render_as_string(hide_password=True)
    try:
        with engine.connect() as connection:
            ops = _schema_differences(connection)
        if ops:
            print(f"Schema drift check: FAILED for {url_display}. Differences detected:")
            _print_ops(ops)
            return 1
        print(f"Schema drift check: OK (no differences) for {url_display}.")

        with Session(engine) as session:
            problems = _inventory_problems(session)
        if problems:
            print("Inventory check: FAILED.")
            for problem in problems:
                print(f"- {problem}")
            return 1
        print("Inventory check: OK.")
        return 0
    except Exception as exc:
        print(f"Store check: ERROR for {url_display}: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
