"""Compare observed prize frequencies with the configured probabilities.

Runs the selector offline; nothing touches the database.

    python scripts/simulate_draws.py --draws 100000 --seed 7
"""

from __future__ import annotations

import argparse
import random
from collections import Counter

from scratchpromo.config import DEFAULT_CAMPAIGN
from scratchpromo.prize_draw import WeightedPrizeSelector


def simulate(draws: int, seed: int | None = None) -> Counter:
    selector = WeightedPrizeSelector.from_config(DEFAULT_CAMPAIGN, rng=random.Random(seed))
    return Counter(selector.select().id for _ in range(draws))


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--draws", type=int, default=100_000)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    counts = simulate(args.draws, args.seed)
    print(f"{'prize':<10} {'expected':>9} {'observed':>9}")
    for prize in DEFAULT_CAMPAIGN.prizes:
        observed = counts[prize.id] / args.draws
        print(f"{prize.id:<10} {prize.probability:>9.4f} {observed:>9.4f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
