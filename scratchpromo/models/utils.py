"""Utility helpers for the models package."""

from __future__ import annotations

import random
from typing import Optional
from sqlalchemy.orm import Session

SERIAL_MIN = 100000
SERIAL_MAX = 999999


def draw_serial(rng: Optional[random.Random] = None) -> str:
    """Draw a six-digit serial uniformly from [100000, 999999]."""

    rng = rng or random.SystemRandom()
    return f"{rng.randint(SERIAL_MIN, SERIAL_MAX):06d}"


def generate_unique_serial(
    session: Optional[Session] = None,
    rng: Optional[random.Random] = None,
    max_attempts: int = 32,
) -> str:
    """Return a grand-draw serial, retrying on collisions when a session is given.

    Without a session no uniqueness check is made. With one, the helper skips
    values already pending in ``session.new`` or stored on an ``Order``. The
    check is not atomic with the later insert.
    """

    if session is None:
        return draw_serial(rng)

    from .order import Order

    attempts = 0
    while attempts < max_attempts:
        candidate = draw_serial(rng)

        collision = False
        for obj in session.new:
            if isinstance(obj, Order) and getattr(obj, "grand_draw_serial", None) == candidate:
                collision = True
                break
        if collision or Order.serial_exists(session, candidate):
            attempts += 1
            continue

        return candidate

    raise RuntimeError(
        "Unable to generate a unique grand-draw serial after multiple attempts"
    )
