"""Mighty Men rulesets for different player counts.

Team composition follows the standard good/evil split per party size. Quest
team sizes and fail requirements are the same for every party size.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

MIN_PLAYERS = 6
MAX_PLAYERS = 12

QUEST_SIZES: Tuple[int, ...] = (3, 4, 5, 6, 6)
# Quest 4 (index 3) is the only one that needs two fail votes.
QUEST_FAIL_REQUIREMENTS: Tuple[int, ...] = (1, 1, 1, 2, 1)
TOTAL_QUESTS = len(QUEST_SIZES)

GOOD_WIN_THRESHOLD = 3
EVIL_WIN_THRESHOLD = 3
MAX_REJECTED_PROPOSALS = 5


@dataclass(frozen=True)
class Composition:
    """Good/evil split for a given party size."""

    players: int
    good: int
    evil: int

    def __post_init__(self) -> None:
        if self.good + self.evil != self.players:
            raise ValueError(f"Good ({self.good}) + Evil ({self.evil}) must equal players ({self.players})")
        if self.evil < 2:
            raise ValueError("Evil needs at least two players for Saul and Phinehas")
        if self.good < 2:
            raise ValueError("Good needs at least two players for Samuel and David")


TEAM_COMPOSITION: Dict[int, Composition] = {
    6: Composition(players=6, good=4, evil=2),
    7: Composition(players=7, good=4, evil=3),
    8: Composition(players=8, good=5, evil=3),
    9: Composition(players=9, good=6, evil=3),
    10: Composition(players=10, good=6, evil=4),
    11: Composition(players=11, good=7, evil=4),
    12: Composition(players=12, good=8, evil=4),
}


def get_composition(players: int) -> Composition:
    """Return the composition for ``players``.

    Party sizes above :data:`MAX_PLAYERS` keep the 12-player evil count and
    put every extra seat on the good side.

    Raises:
        ValueError: If the party is smaller than :data:`MIN_PLAYERS`.
    """
    if players < MIN_PLAYERS:
        available = ", ".join(map(str, sorted(TEAM_COMPOSITION)))
        raise ValueError(f"No composition defined for {players} players. Available: {available}")
    if players in TEAM_COMPOSITION:
        return TEAM_COMPOSITION[players]
    evil = TEAM_COMPOSITION[MAX_PLAYERS].evil
    return Composition(players=players, good=players - evil, evil=evil)


def quest_size(quest_index: int) -> int:
    return QUEST_SIZES[quest_index]


def fails_required(quest_index: int) -> int:
    return QUEST_FAIL_REQUIREMENTS[quest_index]


def approval_passes(approve_count: int, voters: int) -> bool:
    """Strict majority; exactly half approving is a rejection."""
    return approve_count * 2 > voters


def get_available_player_counts() -> List[int]:
    return sorted(TEAM_COMPOSITION)


def format_rules_description(composition: Composition) -> str:
    """Human-readable summary of a party size's rules."""
    sizes = "-".join(map(str, QUEST_SIZES))
    double = QUEST_FAIL_REQUIREMENTS.index(2) + 1
    return (
        f"{composition.players} players: {composition.good} good, {composition.evil} evil.\n"
        f"Quest team sizes: {sizes}.\n"
        f"Quest {double} needs at least two fail votes to fail.\n"
    )
