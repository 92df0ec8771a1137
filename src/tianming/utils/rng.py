"""Random draw helpers for Tianming.

Every resolver receives an explicit :class:`random.Random` instead of touching
the module-level generator.  Production code passes an unseeded generator, so
runs are not reproducible; tests pass a seeded one (or a scripted stand-in) to
pin outcomes.

Examples:
    >>> rng = random.Random(7)
    >>> 1 <= random_int(rng, 1, 6) <= 6
    True
    >>> check_probability(rng, 100)
    True
"""

from __future__ import annotations

import random
from collections.abc import Mapping, Sequence
from typing import TypeVar

T = TypeVar("T")


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Limit ``value`` to the inclusive range [min_val, max_val]."""

    return min(max(value, min_val), max_val)


def random_int(rng: random.Random, min_val: int, max_val: int) -> int:
    """Return a random integer between min_val and max_val (inclusive).

    Args:
        rng: Random source
        min_val: Minimum value (inclusive)
        max_val: Maximum value (inclusive)

    Raises:
        ValueError: If min_val > max_val
    """
    if min_val > max_val:
        raise ValueError(f"min_val ({min_val}) cannot be greater than max_val ({max_val})")
    return rng.randint(min_val, max_val)


def random_float(rng: random.Random, min_val: float, max_val: float) -> float:
    """Return a uniform float in [min_val, max_val]."""

    if min_val > max_val:
        raise ValueError(f"min_val ({min_val}) cannot be greater than max_val ({max_val})")
    return rng.uniform(min_val, max_val)


def random_percent(rng: random.Random) -> float:
    """Return a uniform draw in [0, 100)."""

    return rng.random() * 100


def check_probability(rng: random.Random, probability: float) -> bool:
    """Return True with ``probability`` percent chance.

    A single percent draw succeeds when it is at or below the probability, so
    0 almost never succeeds and 100 always does.

    Args:
        rng: Random source
        probability: Success chance on a 0-100 scale

    Examples:
        >>> check_probability(random.Random(1), 100)
        True
    """
    return random_percent(rng) <= probability


def random_choice(rng: random.Random, options: Sequence[T]) -> T | None:
    """Pick one element uniformly, or None when ``options`` is empty."""

    if not options:
        return None
    return options[rng.randrange(len(options))]


def random_sample(rng: random.Random, options: Sequence[T], count: int) -> list[T]:
    """Pick up to ``count`` distinct elements in random order."""

    if count <= 0 or not options:
        return []
    return rng.sample(list(options), min(count, len(options)))


def weighted_choice(rng: random.Random, weights: Mapping[T, int]) -> T:
    """Pick a key with probability proportional to its integer weight.

    Raises:
        ValueError: If no key carries a positive weight
    """
    total = sum(weight for weight in weights.values() if weight > 0)
    if total <= 0:
        raise ValueError("weighted_choice requires at least one positive weight")

    ticket = rng.randrange(total)
    cumulative = 0
    for key, weight in weights.items():
        if weight <= 0:
            continue
        cumulative += weight
        if ticket < cumulative:
            return key
    raise AssertionError("unreachable: ticket exceeded cumulative weight")  # pragma: no cover
