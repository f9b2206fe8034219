"""Shared builders for driving games through the engine in tests."""

import random
from typing import Iterable, List, Optional, Sequence

from mightymen.core.fsm import apply, create_game
from mightymen.core.roles import Role
from mightymen.core.schemas import (
    ContinueQuestAction,
    ContinueVoteAction,
    Game,
    JoinAction,
    Player,
    ProposeAction,
    QuestVoteAction,
    StartAction,
    VoteAction,
)

NOW = 1_700_000_000_000

SIX_ROLES: List[Role] = [
    Role.SAMUEL,
    Role.DAVID,
    Role.MIGHTY_MAN,
    Role.MIGHTY_MAN,
    Role.SAUL,
    Role.PHINEHAS,
]


def act(game: Game, player_id: Optional[str], action, *, rng: Optional[random.Random] = None) -> Game:
    return apply(game, player_id, action, rng=rng or random.Random(0), now=NOW).game


def make_lobby(size: int = 6, code: str = "ABCDEF") -> Game:
    game = create_game("Host", code=code, now=NOW)
    for number in range(2, size + 1):
        game = act(game, None, JoinAction(name=f"Player {number}"))
    return game


def start(game: Game, seed: int = 0) -> Game:
    return act(game, game.host_id, StartAction(), rng=random.Random(seed))


def with_roles(game: Game, roles: Sequence[Role], leader_index: int = 0) -> Game:
    copy = game.model_copy(deep=True)
    for player, role in zip(copy.players, roles):
        player.role = role
    copy.leader_index = leader_index
    return copy


def started_six(leader_index: int = 0) -> Game:
    """Six players in team selection with roles in seat order of :data:`SIX_ROLES`."""
    return with_roles(start(make_lobby(6)), SIX_ROLES, leader_index=leader_index)


def by_role(game: Game, role: Role) -> Player:
    player = game.player_with_role(role)
    assert player is not None, f"{role} not dealt"
    return player


def ids(game: Game) -> List[str]:
    return [p.id for p in game.players]


def propose(game: Game, team: Optional[Sequence[str]] = None) -> Game:
    team = list(team) if team is not None else ids(game)[: game.current_quest_size]
    return act(game, game.leader.id, ProposeAction(team=team))


def vote_all(game: Game, approve: bool | Iterable[bool] = True) -> Game:
    values = [approve] * len(game.players) if isinstance(approve, bool) else list(approve)
    for player, value in zip(list(game.players), values):
        game = act(game, player.id, VoteAction(approve=value))
    return game


def continue_vote(game: Game) -> Game:
    return act(game, game.host_id, ContinueVoteAction())


def run_quest(game: Game, fails: Iterable[str] = ()) -> Game:
    failing = set(fails)
    for member in list(game.proposed_team):
        game = act(game, member, QuestVoteAction(success=member not in failing))
    return game


def continue_quest(game: Game) -> Game:
    return act(game, game.host_id, ContinueQuestAction())


def play_quest(game: Game, team: Optional[Sequence[str]] = None, fails: Iterable[str] = ()) -> Game:
    """Propose, approve unanimously and run one quest; ends in ``quest_result``."""
    game = propose(game, team)
    game = vote_all(game, True)
    game = continue_vote(game)
    return run_quest(game, fails)
