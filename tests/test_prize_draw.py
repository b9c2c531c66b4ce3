from __future__ import annotations

import math
import random
import re
import unittest
from collections import Counter
from datetime import date

from sqlalchemy.orm import sessionmaker

from scratchpromo.config import (
    DEFAULT_CAMPAIGN,
    PrizeDefinition,
    PrizeKind,
    load_settings,
)
from scratchpromo.db.engine import make_engine
from scratchpromo.models import Base, Order
from scratchpromo.models.utils import draw_serial, generate_unique_serial
from scratchpromo.prize_draw import GrandDrawAssigner, WeightedPrizeSelector


class ScriptedSerials(random.Random):
    """Random source whose ``randint`` replays a fixed script."""

    def __init__(self, values):
        super().__init__(0)
        self._values = list(values)

    def randint(self, a, b):
        return self._values.pop(0)


class WeightedPrizeSelectorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.selector = WeightedPrizeSelector.from_config(DEFAULT_CAMPAIGN)

    def test_cumulative_table_is_monotonic(self) -> None:
        cumulative = self.selector.cumulative
        self.assertEqual(len(cumulative), len(DEFAULT_CAMPAIGN.prizes))
        self.assertEqual(list(cumulative), sorted(cumulative))
        self.assertAlmostEqual(cumulative[-1], 1.0)

    def test_each_interval_selects_its_prize(self) -> None:
        lower = 0.0
        for prize, upper in zip(self.selector.prizes, self.selector.cumulative):
            midpoint = (lower + upper) / 2
            self.assertEqual(self.selector.select(midpoint).id, prize.id)
            self.assertEqual(self.selector.select(lower).id, prize.id)
            lower = upper

    def test_boundary_selects_next_prize(self) -> None:
        first_boundary = self.selector.cumulative[0]
        self.assertEqual(self.selector.select(first_boundary).id, "none_2")
        just_below = math.nextafter(first_boundary, 0.0)
        self.assertEqual(self.selector.select(just_below).id, "none_1")

    def test_known_draws(self) -> None:
        self.assertEqual(self.selector.select(0.0).id, "none_1")
        self.assertEqual(self.selector.select(0.5).id, "none_2")
        self.assertEqual(self.selector.select(0.8).id, "ext_1h")
        self.assertEqual(self.selector.select(0.9).id, "disc_50")
        self.assertEqual(self.selector.select(0.97).id, "ext_2h")
        self.assertEqual(self.selector.select(0.9965).id, "free_2h")
        self.assertEqual(self.selector.select(0.9995).id, "free_4h")

    def test_float_drift_falls_back_to_last_prize(self) -> None:
        selector = WeightedPrizeSelector(
            [
                PrizeDefinition("a", "A", PrizeKind.NONE, 0.5),
                PrizeDefinition("b", "B", PrizeKind.WIN, 0.4999999995),
            ]
        )
        self.assertEqual(selector.select(0.9999999999).id, "b")

    def test_zero_probability_prize_is_never_selected(self) -> None:
        selector = WeightedPrizeSelector(
            [
                PrizeDefinition("a", "A", PrizeKind.NONE, 0.5),
                PrizeDefinition("never", "N", PrizeKind.WIN, 0.0),
                PrizeDefinition("b", "B", PrizeKind.WIN, 0.5),
            ]
        )
        self.assertEqual(selector.select(0.5).id, "b")

    def test_out_of_range_draw_rejected(self) -> None:
        with self.assertRaises(ValueError):
            self.selector.select(1.0)
        with self.assertRaises(ValueError):
            self.selector.select(-0.1)

    def test_empty_table_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WeightedPrizeSelector([])

    def test_frequencies_follow_probabilities(self) -> None:
        selector = WeightedPrizeSelector.from_config(
            DEFAULT_CAMPAIGN, rng=random.Random(20250201)
        )
        draws = 100_000
        counts = Counter(selector.select().id for _ in range(draws))
        for prize in DEFAULT_CAMPAIGN.prizes:
            self.assertAlmostEqual(
                counts[prize.id] / draws, prize.probability, delta=0.01, msg=prize.id
            )


class GrandDrawAssignerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = make_engine(
            "sqlite+pysqlite:///:memory:", settings=load_settings({})
        )
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_three_hours_is_not_eligible(self) -> None:
        assignment = GrandDrawAssigner.from_config(DEFAULT_CAMPAIGN).assign(3)
        self.assertFalse(assignment.eligible)
        self.assertIsNone(assignment.serial)

    def test_four_hours_gets_six_digit_serial(self) -> None:
        assigner = GrandDrawAssigner.from_config(DEFAULT_CAMPAIGN)
        for hours in (4, 5, 6, 8, 12):
            assignment = assigner.assign(hours)
            self.assertTrue(assignment.eligible)
            self.assertRegex(assignment.serial, r"^\d{6}$")

    def test_serial_range(self) -> None:
        rng = random.Random(7)
        for _ in range(1000):
            value = int(draw_serial(rng))
            self.assertGreaterEqual(value, 100000)
            self.assertLessEqual(value, 999999)
        self.assertEqual(draw_serial(ScriptedSerials([100000])), "100000")

    def _order(self, serial: str) -> Order:
        return Order(
            phone="0912345678",
            registration_date=date(2025, 2, 1),
            branch="大林店",
            room="南",
            duration_hours=4,
            is_grand_eligible=True,
            grand_draw_serial=serial,
            prize_id="none_1",
            prize_name="銘謝惠顧",
            prize_kind="none",
        )

    def test_session_check_skips_existing_serials(self) -> None:
        with self.Session.begin() as session:
            session.add(self._order("123456"))
            session.flush()
            serial = generate_unique_serial(
                session=session, rng=ScriptedSerials([123456, 654321])
            )
            self.assertEqual(serial, "654321")

    def test_session_check_skips_pending_serials(self) -> None:
        with self.Session() as session:
            session.add(self._order("222222"))
            serial = generate_unique_serial(
                session=session, rng=ScriptedSerials([222222, 333333])
            )
            self.assertEqual(serial, "333333")

    def test_without_session_no_uniqueness_check(self) -> None:
        assigner = GrandDrawAssigner(4, rng=ScriptedSerials([111111, 111111]))
        self.assertEqual(assigner.assign(4).serial, "111111")
        self.assertEqual(assigner.assign(4).serial, "111111")

    def test_exhausted_attempts_raise(self) -> None:
        with self.Session.begin() as session:
            session.add(self._order("123456"))
            session.flush()
            with self.assertRaises(RuntimeError):
                generate_unique_serial(
                    session=session,
                    rng=ScriptedSerials([123456] * 3),
                    max_attempts=3,
                )

    def test_serial_format_is_fixed_width(self) -> None:
        self.assertTrue(re.fullmatch(r"\d{6}", draw_serial(random.Random(1))))


if __name__ == "__main__":
    unittest.main()
