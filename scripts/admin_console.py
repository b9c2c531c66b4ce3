"""Command-line administration of the campaign orders.

    python scripts/admin_console.py grand
    python scripts/admin_console.py wins
    python scripts/admin_console.py redeem <order_id> [--undo]
    python scripts/admin_console.py note <order_id> "text"
    python scripts/admin_console.py counts
    python scripts/admin_console.py clear
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys

from scratchpromo import workflows
from scratchpromo.admin import AdminGate
from scratchpromo.config import load_settings
from scratchpromo.errors import PromotionError


def _print_orders(orders) -> None:
    for order in orders:
        data = order.to_json()
        print(
            f"{data['created_at']}  {data['order_id']}  {data['phone']}  "
            f"{data['branch']}/{data['room']}  {data['duration_hours']}h  "
            f"serial={data['grand_draw_serial'] or '-'}  "
            f"prize={data['assigned_prize']['name']}  "
            f"redeemed={'Y' if data['redeemed'] else 'N'}  note={data['note']}"
        )
    print(f"{len(orders)} orders")


def _confirm_twice() -> bool:
    first = input("此操作將刪除所有訂單資料，且無法復原！確定要清空全部資料嗎？ [y/N] ")
    if first.strip().lower() != "y":
        return False
    second = input("請再次確認：真的要刪除所有資料嗎？ [y/N] ")
    return second.strip().lower() == "y"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Campaign order administration")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("grand", help="grand-draw eligible orders")
    sub.add_parser("wins", help="instant-win orders")
    redeem = sub.add_parser("redeem", help="mark an order redeemed")
    redeem.add_argument("order_id")
    redeem.add_argument("--undo", action="store_true")
    note = sub.add_parser("note", help="set an order note")
    note.add_argument("order_id")
    note.add_argument("text")
    sub.add_parser("counts", help="limited prize counters")
    sub.add_parser("clear", help="delete every order and reset counters")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    settings = load_settings()
    campaign = settings.campaign

    try:
        AdminGate(settings.admin_passphrase).authorize(getpass.getpass("管理密碼: "))
        session_factory = workflows.bootstrap(settings)

        if args.command == "grand":
            _print_orders(workflows.list_grand(session_factory, config=campaign))
        elif args.command == "wins":
            _print_orders(workflows.list_instant_wins(session_factory, config=campaign))
        elif args.command == "redeem":
            workflows.set_redeemed(
                session_factory, args.order_id, not args.undo, config=campaign
            )
        elif args.command == "note":
            workflows.set_note(session_factory, args.order_id, args.text, config=campaign)
        elif args.command == "counts":
            for prize_id, count in workflows.prize_counts(
                session_factory, config=campaign
            ).items():
                limit = campaign.prize_by_id(prize_id).inventory_limit
                print(f"{prize_id:<10} {count}/{limit}")
        elif args.command == "clear":
            if not _confirm_twice():
                print("Cancelled.")
                return 1
            deleted = workflows.clear_all(session_factory, config=campaign)
            print(f"已成功刪除 {deleted} 筆資料")
    except PromotionError as exc:
        print(exc.message, file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
