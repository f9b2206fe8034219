"""Randomness helpers for role dealing and deterministic simulations."""

import random
from typing import List, Sequence, TypeVar

T = TypeVar("T")


def build_rng(*, seed: int | None = None) -> random.Random:
    """Return a seeded generator, or an OS-entropy one when no seed is given.

    Unseeded games deal secret roles, so they must not be predictable from
    earlier outputs of a shared Mersenne Twister.
    """
    if seed is None:
        return random.SystemRandom()
    return random.Random(seed)


def shuffled(rng: random.Random, items: Sequence[T]) -> List[T]:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates)."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = rng.randrange(i + 1)
        result[i], result[j] = result[j], result[i]
    return result


def sample_team(rng: random.Random, *, player_ids: Sequence[str], team_size: int) -> List[str]:
    """Sample a random team of the specified size, preserving roster order."""
    chosen = set(rng.sample(list(player_ids), team_size))
    return [pid for pid in player_ids if pid in chosen]
