"""Finite state machine for the Mighty Men action engine.

:func:`apply` is pure: it copies the incoming game, checks every
precondition of the action, mutates the copy and returns it. A rejected
action raises :class:`ActionRejected` and the caller's game is untouched.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import structlog

from ..utils.ids import generate_code, generate_player_id, now_ms
from ..utils.rng import build_rng
from .errors import ActionRejected, EngineError
from .roles import Camp, Role, assign_roles, is_good
from .rulesets import (
    EVIL_WIN_THRESHOLD,
    GOOD_WIN_THRESHOLD,
    MAX_PLAYERS,
    MAX_REJECTED_PROPOSALS,
    MIN_PLAYERS,
    approval_passes,
    fails_required,
    quest_size,
)
from .schemas import (
    ActionType,
    AssassinateAction,
    Game,
    GameAction,
    JoinAction,
    Phase,
    Player,
    ProposeAction,
    QuestResult,
    QuestVoteAction,
    VoteAction,
    VoteResult,
    parse_action,
)

LOGGER = structlog.get_logger(__name__)

MAX_NAME_LENGTH = 24

REASON_FIVE_REJECTIONS = "Five consecutive proposals rejected"
REASON_THREE_FAILS = "Three quests failed"
REASON_ASSASSINATED = "Saul correctly identified and eliminated Samuel"
REASON_SURVIVED = "Samuel survived the assassination attempt"

# Liveness never changes game rules, so it is still accepted after game over.
_LIVENESS_ACTIONS = {ActionType.REJOIN, ActionType.HEARTBEAT, ActionType.DISCONNECT}


class FSMError(EngineError):
    """Raised when an accepted action leaves the game in an invalid state."""


@dataclass
class ActionContext:
    """Per-call inputs that are not part of the game record."""

    rng: random.Random
    now: int


@dataclass
class ActionResult:
    """The next game state plus action-specific data for the caller."""

    game: Game
    data: Dict[str, Any] = field(default_factory=dict)


Handler = Callable[[Game, Optional[str], Any, ActionContext], Dict[str, Any]]


def create_game(host_name: str, *, code: Optional[str] = None, now: Optional[int] = None) -> Game:
    """Create a lobby with ``host_name`` as its host."""
    name = _clean_name(host_name)
    timestamp = now if now is not None else now_ms()
    host_id = generate_player_id()
    game = Game(
        code=code or generate_code(),
        host_id=host_id,
        players=[Player(id=host_id, name=name, is_host=True, connected=True, last_seen=timestamp)],
        created_at=timestamp,
        updated_at=timestamp,
    )
    LOGGER.info("game.created", code=game.code)
    return game


def apply(
    game: Game,
    player_id: Optional[str],
    action: GameAction | Dict[str, Any],
    *,
    rng: Optional[random.Random] = None,
    now: Optional[int] = None,
) -> ActionResult:
    """Validate ``action`` from ``player_id`` and return the next game state."""
    context = ActionContext(rng=rng or build_rng(), now=now if now is not None else now_ms())

    try:
        if isinstance(action, dict):
            action = parse_action(action)
        action_type = ActionType(action.type)
        if game.phase == Phase.GAME_OVER and action_type not in _LIVENESS_ACTIONS:
            raise ActionRejected("Game is over")
        handler = _HANDLERS[action_type]
        next_game = game.model_copy(deep=True)
        phase_before = next_game.phase
        data = handler(next_game, player_id, action, context)
    except ActionRejected as exc:
        kind = action.get("type") if isinstance(action, dict) else action.type
        LOGGER.info("action.rejected", code=game.code, action=kind, reason=exc.reason)
        raise

    next_game.version += 1
    next_game.updated_at = context.now
    try:
        next_game.check_invariants()
    except ValueError as exc:
        raise FSMError(f"{action_type.value} produced an invalid game: {exc}") from exc

    LOGGER.debug("action.applied", code=game.code, action=action_type.value, version=next_game.version)
    if next_game.phase != phase_before:
        LOGGER.info("phase.changed", code=game.code, before=phase_before.value, after=next_game.phase.value)
    return ActionResult(game=next_game, data=data)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------


def _clean_name(raw: str) -> str:
    name = (raw or "").strip()
    if not name:
        raise ActionRejected("Name is required")
    if len(name) > MAX_NAME_LENGTH:
        raise ActionRejected(f"Name is too long (max {MAX_NAME_LENGTH} characters)")
    return name


def _require_phase(game: Game, phase: Phase, reason: str) -> None:
    if game.phase != phase:
        raise ActionRejected(reason)


def _require_player(game: Game, player_id: Optional[str], reason: str) -> Player:
    player = game.find_player(player_id)
    if player is None:
        raise ActionRejected(reason)
    return player


def _require_host(game: Game, player_id: Optional[str], reason: str) -> Player:
    player = game.find_player(player_id)
    if player is None or not player.is_host:
        raise ActionRejected(reason)
    return player


def _advance_leader(game: Game) -> None:
    game.leader_index = (game.leader_index + 1) % len(game.players)


def _finish(game: Game, winner: Camp, reason: str) -> None:
    game.phase = Phase.GAME_OVER
    game.winner = winner
    game.win_reason = reason
    LOGGER.info("game.over", code=game.code, winner=winner.value, reason=reason)


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _handle_join(game: Game, player_id: Optional[str], action: JoinAction, ctx: ActionContext) -> Dict[str, Any]:
    if game.phase != Phase.LOBBY:
        raise ActionRejected("Game has already started")
    if len(game.players) >= MAX_PLAYERS:
        raise ActionRejected("Game is full")
    name = _clean_name(action.name)
    if any(p.name.casefold() == name.casefold() for p in game.players):
        raise ActionRejected("Name already taken")

    new_id = generate_player_id()
    game.players.append(Player(id=new_id, name=name, is_host=False, connected=True, last_seen=ctx.now))
    return {"playerId": new_id}


def _handle_rejoin(game: Game, player_id: Optional[str], action: Any, ctx: ActionContext) -> Dict[str, Any]:
    player = _require_player(game, player_id, "Player not found in this game")
    player.connected = True
    player.last_seen = ctx.now
    return {"playerName": player.name}


def _handle_disconnect(game: Game, player_id: Optional[str], action: Any, ctx: ActionContext) -> Dict[str, Any]:
    player = _require_player(game, player_id, "Player not found in this game")
    player.connected = False
    return {}


def _handle_start(game: Game, player_id: Optional[str], action: Any, ctx: ActionContext) -> Dict[str, Any]:
    _require_host(game, player_id, "Only the host can start the game")
    _require_phase(game, Phase.LOBBY, "Game has already started")
    if len(game.players) < MIN_PLAYERS:
        raise ActionRejected(f"Need at least {MIN_PLAYERS} players to start")

    roles = assign_roles(len(game.players), ctx.rng)
    for player, role in zip(game.players, roles):
        player.role = role

    game.leader_index = ctx.rng.randrange(len(game.players))
    game.phase = Phase.TEAM_SELECTION
    return {}


def _handle_propose(game: Game, player_id: Optional[str], action: ProposeAction, ctx: ActionContext) -> Dict[str, Any]:
    _require_phase(game, Phase.TEAM_SELECTION, "Not in team selection phase")
    if game.leader.id != player_id:
        raise ActionRejected("Only the leader can propose a team")

    required = quest_size(game.current_quest)
    if len(action.team) != required:
        raise ActionRejected(f"Team must have exactly {required} players")
    if len(set(action.team)) != len(action.team):
        raise ActionRejected("Team members must be unique")
    if any(game.find_player(member) is None for member in action.team):
        raise ActionRejected("Invalid team member")

    game.proposed_team = list(action.team)
    game.votes = {}
    game.phase = Phase.TEAM_VOTE
    return {}


def _handle_vote(game: Game, player_id: Optional[str], action: VoteAction, ctx: ActionContext) -> Dict[str, Any]:
    if game.phase != Phase.TEAM_VOTE:
        raise ActionRejected(f"Not in voting phase (current phase: {game.phase.value})")
    player = _require_player(game, player_id, "Player not found")
    if player.id in game.votes:
        raise ActionRejected("Already voted")

    game.votes[player.id] = bool(action.approve)

    # Disconnected seats still count towards the quorum.
    if len(game.votes) == len(game.players):
        approve_count = sum(1 for value in game.votes.values() if value)
        approved = approval_passes(approve_count, len(game.players))
        game.last_vote_result = VoteResult(
            approved=approved,
            approve_count=approve_count,
            reject_count=len(game.players) - approve_count,
            votes=dict(game.votes),
            team=list(game.proposed_team),
        )
        game.phase = Phase.VOTE_RESULT
        return {"voteComplete": True, "approved": approved}
    return {"voteComplete": False}


def _handle_continue_vote(game: Game, player_id: Optional[str], action: Any, ctx: ActionContext) -> Dict[str, Any]:
    _require_phase(game, Phase.VOTE_RESULT, "Not in vote result phase")
    _require_host(game, player_id, "Only the host can continue")
    if game.last_vote_result is None:
        raise FSMError("Vote result phase reached without a vote result")

    if game.last_vote_result.approved:
        game.quest_votes = {}
        game.reject_count = 0
        game.phase = Phase.QUEST
        return {}

    game.reject_count += 1
    if game.reject_count >= MAX_REJECTED_PROPOSALS:
        _finish(game, Camp.EVIL, REASON_FIVE_REJECTIONS)
    else:
        _advance_leader(game)
        game.proposed_team = []
        game.votes = {}
        game.phase = Phase.TEAM_SELECTION
    return {}


def _handle_quest_vote(game: Game, player_id: Optional[str], action: QuestVoteAction, ctx: ActionContext) -> Dict[str, Any]:
    _require_phase(game, Phase.QUEST, "Not in quest phase")
    if player_id not in game.proposed_team:
        raise ActionRejected("You are not on this quest")
    player = _require_player(game, player_id, "You are not on this quest")
    if player.id in game.quest_votes:
        raise ActionRejected("Already submitted quest vote")
    if is_good(player.role) and not action.success:
        raise ActionRejected("Good players must support the quest")

    game.quest_votes[player.id] = bool(action.success)

    if len(game.quest_votes) < len(game.proposed_team):
        return {"questComplete": False}

    fail_count = sum(1 for value in game.quest_votes.values() if not value)
    result = QuestResult(
        success=fail_count < fails_required(game.current_quest),
        fail_count=fail_count,
        success_count=len(game.quest_votes) - fail_count,
        team=list(game.proposed_team),
    )
    game.quest_results.append(result)
    game.phase = Phase.QUEST_RESULT
    return {"questComplete": True, "success": result.success, "failCount": result.fail_count}


def _handle_continue_quest(game: Game, player_id: Optional[str], action: Any, ctx: ActionContext) -> Dict[str, Any]:
    _require_phase(game, Phase.QUEST_RESULT, "Not in quest result phase")
    _require_host(game, player_id, "Only the host can continue")

    if game.successes() >= GOOD_WIN_THRESHOLD:
        game.phase = Phase.ASSASSINATION
    elif game.failures() >= EVIL_WIN_THRESHOLD:
        _finish(game, Camp.EVIL, REASON_THREE_FAILS)
    else:
        game.current_quest += 1
        _advance_leader(game)
        game.proposed_team = []
        game.votes = {}
        game.quest_votes = {}
        game.phase = Phase.TEAM_SELECTION
    return {}


def _handle_assassinate(game: Game, player_id: Optional[str], action: AssassinateAction, ctx: ActionContext) -> Dict[str, Any]:
    _require_phase(game, Phase.ASSASSINATION, "Not in assassination phase")
    assassin = game.find_player(player_id)
    if assassin is None or assassin.role != Role.SAUL:
        raise ActionRejected("Only Saul can assassinate")
    target = _require_player(game, action.target_id, "Target not found")

    game.assassination_target = target.id
    if target.role == Role.SAMUEL:
        _finish(game, Camp.EVIL, REASON_ASSASSINATED)
    else:
        _finish(game, Camp.GOOD, REASON_SURVIVED)
    return {"correct": target.role == Role.SAMUEL}


_HANDLERS: Dict[ActionType, Handler] = {
    ActionType.JOIN: _handle_join,
    ActionType.REJOIN: _handle_rejoin,
    ActionType.HEARTBEAT: _handle_rejoin,
    ActionType.DISCONNECT: _handle_disconnect,
    ActionType.START: _handle_start,
    ActionType.PROPOSE: _handle_propose,
    ActionType.VOTE: _handle_vote,
    ActionType.CONTINUE_VOTE: _handle_continue_vote,
    ActionType.QUEST_VOTE: _handle_quest_vote,
    ActionType.CONTINUE_QUEST: _handle_continue_quest,
    ActionType.ASSASSINATE: _handle_assassinate,
}