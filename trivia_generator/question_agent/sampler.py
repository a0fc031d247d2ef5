# trivia_generator/question_agent/sampler.py
# Purpose: Adaptive category/difficulty sampling toward a target distribution

"""
Distribution Sampler

For the first ``warmup`` accepted items the draw follows the target weights
directly. After that each key's deficit (target share of accepted items
minus its current count) reshapes the weights:

    behind target:   w * (1 + deficit / 5)
    at or ahead:     w * 0.5

Weights never reach zero, so every key stays reachable.
"""

from __future__ import annotations

import random
from typing import Dict, Mapping, Optional, Tuple

from trivia_generator.question_agent.question_models import TargetDistribution


WARMUP_ITEMS = 20
DEFICIT_DIVISOR = 5.0
AHEAD_FACTOR = 0.5


def weighted_choice(weights: Mapping[str, float], rng: random.Random) -> str:
    """Cumulative draw in enumeration order; first key as numeric fallback."""
    if not weights:
        raise ValueError("weights cannot be empty")

    total = sum(weights.values())
    remaining = rng.random() * total
    for key, weight in weights.items():
        remaining -= weight
        if remaining <= 0:
            return key

    return next(iter(weights))


def adaptive_weights(distribution: Mapping[str, float], counts: Mapping[str, int]) -> Dict[str, float]:
    total = sum(counts.values())
    adjusted: Dict[str, float] = {}
    for key, weight in distribution.items():
        deficit = weight * total - counts.get(key, 0)
        if deficit > 0:
            adjusted[key] = weight * (1 + deficit / DEFICIT_DIVISOR)
        else:
            adjusted[key] = weight * AHEAD_FACTOR
    return adjusted


def pick_adaptive(
    distribution: Mapping[str, float],
    counts: Mapping[str, int],
    rng: random.Random,
    warmup: int = WARMUP_ITEMS,
) -> str:
    """Pick one key, steering toward ``distribution`` once past warmup."""
    total = sum(counts.values())
    if total < warmup:
        return weighted_choice(distribution, rng)
    return weighted_choice(adaptive_weights(distribution, counts), rng)


class DistributionSampler:
    """Category and difficulty picker for one run."""

    def __init__(
        self,
        distribution: TargetDistribution,
        rng: Optional[random.Random] = None,
        warmup: int = WARMUP_ITEMS,
    ) -> None:
        self.distribution = distribution
        self.rng = rng or random.Random()
        self.warmup = warmup

    def pick_category(self, counts: Mapping[str, int]) -> str:
        return pick_adaptive(self.distribution.categories, counts, self.rng, self.warmup)

    def pick_difficulty(self, counts: Mapping[str, int]) -> str:
        return pick_adaptive(self.distribution.difficulties, counts, self.rng, self.warmup)

    def pick(self, category_counts: Mapping[str, int], difficulty_counts: Mapping[str, int]) -> Tuple[str, str]:
        return self.pick_category(category_counts), self.pick_difficulty(difficulty_counts)
