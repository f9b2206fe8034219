"""Mighty Men roles, role dealing and hidden-knowledge projection.

Every role is described once in :data:`ROLE_DEFINITIONS`: its camp and a
visibility rule saying which other players it is shown and under which
label. Role dealing and the knowledge projector both read that table.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..utils.rng import shuffled
from .rulesets import get_composition

if TYPE_CHECKING:  # pragma: no cover
    from .schemas import Game, Player


class Role(str, Enum):
    """Mighty Men roles."""

    SAMUEL = "samuel"          # knows evil except Saul
    DAVID = "david"            # sees Samuel and Phinehas, cannot tell them apart
    MIGHTY_MAN = "mighty_man"  # loyal good filler
    SAUL = "saul"              # hidden from Samuel, may assassinate
    PHINEHAS = "phinehas"      # appears to David alongside Samuel
    DOEG = "doeg"              # lone evil, unseen by and blind to his camp
    SHEEP = "sheep"            # generic evil filler


class Camp(str, Enum):
    """The two opposing alignments."""

    GOOD = "good"
    EVIL = "evil"


LABEL_EVIL = "Evil"
LABEL_SAMUEL_OR_PHINEHAS = "Samuel or Phinehas"
LABEL_EVIL_ALLY = "Evil Ally"

VisibilityRule = Callable[[Sequence["Player"], str], List[Tuple["Player", str]]]


@dataclass(frozen=True)
class RoleInfo:
    """Static facts about a role."""

    role: Role
    camp: Camp
    title: str
    sees: VisibilityRule
    description: str


def _sees_nobody(players: Sequence["Player"], own_id: str) -> List[Tuple["Player", str]]:
    return []


def _samuel_sees(players: Sequence["Player"], own_id: str) -> List[Tuple["Player", str]]:
    return [(p, LABEL_EVIL) for p in players if is_evil(p.role) and p.role != Role.SAUL]


def _david_sees(players: Sequence["Player"], own_id: str) -> List[Tuple["Player", str]]:
    return [(p, LABEL_SAMUEL_OR_PHINEHAS) for p in players if p.role in (Role.SAMUEL, Role.PHINEHAS)]


def _evil_ally_sees(players: Sequence["Player"], own_id: str) -> List[Tuple["Player", str]]:
    return [
        (p, LABEL_EVIL_ALLY)
        for p in players
        if p.id != own_id and is_evil(p.role) and p.role != Role.DOEG
    ]


ROLE_DEFINITIONS: Dict[Role, RoleInfo] = {
    Role.SAMUEL: RoleInfo(
        role=Role.SAMUEL,
        camp=Camp.GOOD,
        title="Samuel",
        sees=_samuel_sees,
        description=(
            "You are Samuel. You know the evil players, except Saul who is hidden from you. "
            "If the good side completes three quests, Saul gets one chance to find you."
        ),
    ),
    Role.DAVID: RoleInfo(
        role=Role.DAVID,
        camp=Camp.GOOD,
        title="David",
        sees=_david_sees,
        description=(
            "You are David. You see Samuel and Phinehas but cannot tell which is which. "
            "Protect the real Samuel."
        ),
    ),
    Role.MIGHTY_MAN: RoleInfo(
        role=Role.MIGHTY_MAN,
        camp=Camp.GOOD,
        title="Mighty Man",
        sees=_sees_nobody,
        description="You are one of David's mighty men. You have no extra information.",
    ),
    Role.SAUL: RoleInfo(
        role=Role.SAUL,
        camp=Camp.EVIL,
        title="Saul",
        sees=_evil_ally_sees,
        description=(
            "You are Saul. Samuel cannot see you. If three quests succeed you may "
            "assassinate one player; naming Samuel wins the game for evil."
        ),
    ),
    Role.PHINEHAS: RoleInfo(
        role=Role.PHINEHAS,
        camp=Camp.EVIL,
        title="Phinehas",
        sees=_evil_ally_sees,
        description="You are Phinehas. David sees you as a possible Samuel; use that confusion.",
    ),
    Role.DOEG: RoleInfo(
        role=Role.DOEG,
        camp=Camp.EVIL,
        title="Doeg",
        sees=_sees_nobody,
        description=(
            "You are Doeg. You serve evil, but you do not know your allies and they do not know you."
        ),
    ),
    Role.SHEEP: RoleInfo(
        role=Role.SHEEP,
        camp=Camp.EVIL,
        title="Sheep",
        sees=_evil_ally_sees,
        description="You are a servant of Saul. You know your evil allies, except Doeg.",
    ),
}

GOOD_ROLES = tuple(r for r, info in ROLE_DEFINITIONS.items() if info.camp == Camp.GOOD)
EVIL_ROLES = tuple(r for r, info in ROLE_DEFINITIONS.items() if info.camp == Camp.EVIL)


def camp_of(role: Role) -> Camp:
    return ROLE_DEFINITIONS[role].camp


def is_evil(role: Optional[Role]) -> bool:
    """True for evil roles; unassigned players are never evil."""
    return role is not None and ROLE_DEFINITIONS[role].camp == Camp.EVIL


def is_good(role: Optional[Role]) -> bool:
    return role is not None and ROLE_DEFINITIONS[role].camp == Camp.GOOD


def assign_roles(player_count: int, rng: random.Random) -> List[Role]:
    """Deal roles for ``player_count`` players in random order.

    Samuel, David, Saul and Phinehas are always present. Doeg joins only when
    the evil quota has room after Saul and Phinehas; remaining evil seats are
    Sheep and remaining good seats are Mighty Men.
    """
    composition = get_composition(player_count)
    roles = [Role.SAMUEL, Role.DAVID, Role.SAUL, Role.PHINEHAS]

    good_remaining = composition.good - 2
    evil_remaining = composition.evil - 2

    if evil_remaining > 0:
        roles.append(Role.DOEG)
        evil_remaining -= 1

    roles.extend([Role.SHEEP] * evil_remaining)
    roles.extend([Role.MIGHTY_MAN] * good_remaining)

    return shuffled(rng, roles)


class SeenPlayer(BaseModel):
    """Another player as revealed to a viewer."""

    id: str
    name: str
    label: str


class Knowledge(BaseModel):
    """What a single player is permitted to know about the table."""

    model_config = ConfigDict(populate_by_name=True)

    role: Role
    is_evil: bool = Field(..., alias="isEvil")
    sees: List[SeenPlayer] = Field(default_factory=list)


class RoleKnowledgeSystem:
    """Builds per-player hidden knowledge from the role table."""

    def __init__(self, definitions: Dict[Role, RoleInfo] = ROLE_DEFINITIONS) -> None:
        self.definitions = definitions

    def knowledge_for(self, game: "Game", player_id: str) -> Optional[Knowledge]:
        """Return the viewer's knowledge, or ``None`` when they hold no role.

        Computed fresh on every call.
        """
        player = game.find_player(player_id)
        if player is None or player.role is None:
            return None

        info = self.definitions[player.role]
        sees = [
            SeenPlayer(id=other.id, name=other.name, label=label)
            for other, label in info.sees(game.players, player.id)
        ]
        return Knowledge(role=player.role, is_evil=info.camp == Camp.EVIL, sees=sees)

    def get_role_card(self, knowledge: Knowledge) -> str:
        """Short English role card describing what the viewer knows."""
        info = self.definitions[knowledge.role]
        lines = [info.description]
        if knowledge.sees:
            grouped: Dict[str, List[str]] = {}
            for seen in knowledge.sees:
                grouped.setdefault(seen.label, []).append(seen.name)
            for label, names in grouped.items():
                lines.append(f"{label}: {', '.join(names)}")
        else:
            lines.append("You see nobody.")
        return "\n".join(lines)


# Global instance
ROLE_SYSTEM = RoleKnowledgeSystem()


def knowledge_for(game: "Game", player_id: str) -> Optional[Knowledge]:
    return ROLE_SYSTEM.knowledge_for(game, player_id)


def get_role_card(knowledge: Knowledge) -> str:
    return ROLE_SYSTEM.get_role_card(knowledge)
