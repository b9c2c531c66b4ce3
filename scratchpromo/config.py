"""Campaign configuration and environment settings.

:class:`CampaignConfig` is the immutable description of the promotion (prize
table, branch rooms, allowed durations and thresholds). It is built once at
start-up and handed explicitly to every component that needs it.
:class:`Settings` carries the deployment knobs read from the environment.
"""

from __future__ import annotations

import enum
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .db.utils import resolve_sqlite_url
from .errors import ConfigurationError

# Project root directory (repo root)
ROOT_DIR = Path(__file__).resolve().parents[1]

UNLIMITED: Optional[int] = None
"""Sentinel ``inventory_limit`` for prizes without a cap."""

PROBABILITY_TOLERANCE = 1e-9


class PrizeKind(str, enum.Enum):
    NONE = "none"
    WIN = "win"


class InventoryPolicy(str, enum.Enum):
    """How the per-prize counter is maintained on award.

    ``ENFORCED`` reserves a unit with a conditional increment in the same
    transaction as the order insert. ``ADVISORY`` only reads the counter, so
    concurrent awards of a capped prize may exceed the cap.
    """

    ENFORCED = "enforced"
    ADVISORY = "advisory"


@dataclass(frozen=True)
class PrizeDefinition:
    """One row of the instant prize table."""

    id: str
    name: str
    kind: PrizeKind
    probability: float
    inventory_limit: Optional[int] = UNLIMITED

    @property
    def is_limited(self) -> bool:
        return self.inventory_limit is not None

    @property
    def is_win(self) -> bool:
        return self.kind is PrizeKind.WIN

    def to_json(self) -> dict:
        return {"id": self.id, "name": self.name, "kind": self.kind.value}


DEFAULT_PRIZES: tuple[PrizeDefinition, ...] = (
    PrizeDefinition("none_1", "銘謝惠顧", PrizeKind.NONE, 0.38),
    PrizeDefinition("none_2", "下次再加油", PrizeKind.NONE, 0.38),
    PrizeDefinition("ext_1h", "1小時續時券", PrizeKind.WIN, 0.10),
    PrizeDefinition("disc_50", "50元折價券", PrizeKind.WIN, 0.10),
    PrizeDefinition("ext_2h", "2小時續時券", PrizeKind.WIN, 0.034, 30),
    PrizeDefinition("free_2h", "2小時免費包廂卷", PrizeKind.WIN, 0.005, 15),
    PrizeDefinition("free_4h", "4小時免費包廂卷", PrizeKind.WIN, 0.001, 5),
)

DEFAULT_BRANCH_ROOMS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("大林店", ("南", "西", "北", "中", "發", "白")),
    ("八德店", ("梅", "蘭", "竹", "菊", "春", "夏", "秋", "冬", "轉運", "改運")),
    ("南崁店", ("1條", "2條", "3條", "4條", "5條", "6條", "7條")),
    ("草漯店", ("1筒", "2筒", "3筒", "4筒", "5筒", "6筒")),
    ("楊梅店", ("康", "財", "福", "祿", "壽", "喜", "順", "安", "旺")),
    ("中和中正店", ("壹", "貳", "參", "肆", "伍", "陸", "柒", "捌", "玖", "拾")),
)

DEFAULT_DURATIONS: tuple[int, ...] = (1, 2, 3, 4, 5, 6, 8, 12)


@dataclass(frozen=True)
class CampaignConfig:
    """Immutable campaign definition.

    Attributes
    ----------
    prizes : tuple[PrizeDefinition, ...]
        Prize table in canonical order. Cumulative selection walks this order,
        so the last entry absorbs any floating-point slack.
    branch_rooms : tuple[tuple[str, tuple[str, ...]], ...]
        Branches with their closed room lists, in display order.
    durations : tuple[int, ...]
        Allowed visit durations in hours.
    grand_draw_min_hours : int
        Minimum duration that makes a visit eligible for the grand draw.
    fallback_prize_id : str
        Unlimited ``WIN`` prize substituted when a capped prize is exhausted.
    phone_pattern : str
        Regular expression a phone number must fully match.
    reveal_threshold : float
        Cleared fraction that must be exceeded before a scratch card reveals.
    """

    prizes: tuple[PrizeDefinition, ...] = DEFAULT_PRIZES
    branch_rooms: tuple[tuple[str, tuple[str, ...]], ...] = DEFAULT_BRANCH_ROOMS
    durations: tuple[int, ...] = DEFAULT_DURATIONS
    grand_draw_min_hours: int = 4
    fallback_prize_id: str = "disc_50"
    phone_pattern: str = r"09\d{8}"
    reveal_threshold: float = 0.75

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` when the table is inconsistent."""

        if not self.prizes:
            raise ConfigurationError("Prize table must not be empty")

        seen: set[str] = set()
        for prize in self.prizes:
            if prize.id in seen:
                raise ConfigurationError(f"Duplicate prize id '{prize.id}'")
            seen.add(prize.id)
            if not 0.0 <= prize.probability <= 1.0:
                raise ConfigurationError(
                    f"Probability of '{prize.id}' must be within [0, 1]"
                )
            if prize.inventory_limit is not None and prize.inventory_limit < 0:
                raise ConfigurationError(
                    f"Inventory limit of '{prize.id}' must be non-negative"
                )

        total = math.fsum(p.probability for p in self.prizes)
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise ConfigurationError(
                f"Prize probabilities must sum to 1 (got {total!r})"
            )

        fallback = self.prize_by_id(self.fallback_prize_id)
        if fallback is not None and (fallback.is_limited or not fallback.is_win):
            raise ConfigurationError(
                "Fallback prize must be an unlimited WIN prize"
            )

        if len({branch for branch, _ in self.branch_rooms}) != len(self.branch_rooms):
            raise ConfigurationError("Duplicate branch name")
        if not 0.0 < self.reveal_threshold < 1.0:
            raise ConfigurationError("reveal_threshold must be within (0, 1)")

    def prize_by_id(self, prize_id: str) -> Optional[PrizeDefinition]:
        for prize in self.prizes:
            if prize.id == prize_id:
                return prize
        return None

    @property
    def fallback_prize(self) -> PrizeDefinition:
        """Return the fallback prize, or the first prize if it is not in the table."""

        return self.prize_by_id(self.fallback_prize_id) or self.prizes[0]

    @property
    def limited_prizes(self) -> tuple[PrizeDefinition, ...]:
        return tuple(p for p in self.prizes if p.is_limited)

    @property
    def branches(self) -> tuple[str, ...]:
        return tuple(branch for branch, _ in self.branch_rooms)

    def rooms_for(self, branch: str) -> tuple[str, ...]:
        """Rooms of ``branch``; empty when the branch is unknown."""

        return dict(self.branch_rooms).get(branch, ())


DEFAULT_CAMPAIGN = CampaignConfig()


def _get_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    value = env.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number") from exc


@dataclass(frozen=True)
class Settings:
    """Deployment settings read from the environment."""

    database_url: str
    admin_passphrase: Optional[str] = None
    inventory_policy: InventoryPolicy = InventoryPolicy.ENFORCED
    db_timeout_seconds: float = 5.0
    echo_sql: bool = False
    campaign: CampaignConfig = field(default=DEFAULT_CAMPAIGN)


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    *,
    campaign: CampaignConfig = DEFAULT_CAMPAIGN,
) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ`` after ``.env``).

    Recognised variables: ``DB_URL``, ``SCRATCHPROMO_ADMIN_PASSPHRASE``,
    ``SCRATCHPROMO_INVENTORY_POLICY`` (``enforced`` or ``advisory``),
    ``SCRATCHPROMO_DB_TIMEOUT`` and ``SCRATCHPROMO_ECHO_SQL``.
    """

    if env is None:
        load_dotenv()
        env = os.environ

    policy_raw = env.get("SCRATCHPROMO_INVENTORY_POLICY", InventoryPolicy.ENFORCED.value)
    try:
        policy = InventoryPolicy(policy_raw.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(
            f"Unknown inventory policy '{policy_raw}'"
        ) from exc

    return Settings(
        database_url=resolve_sqlite_url(
            env.get("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
        ),
        admin_passphrase=env.get("SCRATCHPROMO_ADMIN_PASSPHRASE") or None,
        inventory_policy=policy,
        db_timeout_seconds=_get_float(env, "SCRATCHPROMO_DB_TIMEOUT", 5.0),
        echo_sql=_get_bool(env, "SCRATCHPROMO_ECHO_SQL"),
        campaign=campaign,
    )


__all__ = [
    "CampaignConfig",
    "DEFAULT_CAMPAIGN",
    "DEFAULT_PRIZES",
    "InventoryPolicy",
    "PrizeDefinition",
    "PrizeKind",
    "Settings",
    "UNLIMITED",
    "load_settings",
]
