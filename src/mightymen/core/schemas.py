"""Pydantic contracts for the game record and player actions.

The :class:`Game` model is also the persisted wire format: it serializes to a
flat camelCase JSON object and must round-trip losslessly through
:func:`dump_game` / :func:`load_game`.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from .errors import ActionRejected, CorruptGameState
from .roles import Camp, Role
from .rulesets import MAX_PLAYERS, MAX_REJECTED_PROPOSALS, QUEST_SIZES, TOTAL_QUESTS


class Phase(str, Enum):
    """Game phases, in order."""

    LOBBY = "lobby"
    TEAM_SELECTION = "team_selection"
    TEAM_VOTE = "team_vote"
    VOTE_RESULT = "vote_result"
    QUEST = "quest"
    QUEST_RESULT = "quest_result"
    ASSASSINATION = "assassination"
    GAME_OVER = "game_over"


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class Player(_WireModel):
    """A seat at the table. Never removed once created."""

    id: str
    name: str
    role: Optional[Role] = None
    is_host: bool = False
    connected: bool = True
    last_seen: int = 0


class QuestResult(_WireModel):
    """Outcome of one completed quest. Individual quest votes are not kept."""

    success: bool
    fail_count: int
    success_count: int
    team: List[str] = Field(default_factory=list)


class VoteResult(_WireModel):
    """Closed team vote, kept for display during ``vote_result``."""

    approved: bool
    approve_count: int
    reject_count: int
    votes: Dict[str, bool] = Field(default_factory=dict)
    team: List[str] = Field(default_factory=list)


class Game(_WireModel):
    """Aggregate root for one match."""

    code: str
    phase: Phase = Phase.LOBBY
    host_id: str
    players: List[Player]
    current_quest: int = 0
    quest_results: List[QuestResult] = Field(default_factory=list)
    leader_index: int = 0
    proposed_team: List[str] = Field(default_factory=list)
    votes: Dict[str, bool] = Field(default_factory=dict)
    quest_votes: Dict[str, bool] = Field(default_factory=dict)
    reject_count: int = 0
    last_vote_result: Optional[VoteResult] = None
    assassination_target: Optional[str] = None
    winner: Optional[Camp] = None
    win_reason: Optional[str] = None
    version: int = 0
    created_at: int = 0
    updated_at: int = 0

    @model_validator(mode="after")
    def _validate_invariants(self) -> "Game":
        self.check_invariants()
        return self

    def check_invariants(self) -> None:
        """Raise ``ValueError`` when the record breaks an aggregate invariant."""
        if not self.players:
            raise ValueError("Game must have at least one player")
        if len(self.players) > MAX_PLAYERS:
            raise ValueError(f"Game cannot have more than {MAX_PLAYERS} players")

        ids = [p.id for p in self.players]
        if len(set(ids)) != len(ids):
            raise ValueError("Player ids must be unique")
        names = [p.name.casefold() for p in self.players]
        if len(set(names)) != len(names):
            raise ValueError("Player names must be unique")

        hosts = [p.id for p in self.players if p.is_host]
        if hosts != [self.host_id]:
            raise ValueError("Exactly one player must be host and match hostId")

        if not 0 <= self.current_quest < TOTAL_QUESTS:
            raise ValueError(f"currentQuest {self.current_quest} out of range")
        if not 0 <= self.leader_index < len(self.players):
            raise ValueError(f"leaderIndex {self.leader_index} out of range")

        roster = set(ids)
        if self.proposed_team:
            if len(self.proposed_team) != QUEST_SIZES[self.current_quest]:
                raise ValueError("proposedTeam size does not match the current quest")
            if len(set(self.proposed_team)) != len(self.proposed_team):
                raise ValueError("proposedTeam contains duplicates")
            if not set(self.proposed_team) <= roster:
                raise ValueError("proposedTeam references unknown players")
        if not set(self.votes) <= roster:
            raise ValueError("votes reference unknown players")
        if not set(self.quest_votes) <= set(self.proposed_team):
            raise ValueError("questVotes reference players outside the proposed team")

        if len(self.quest_results) > TOTAL_QUESTS:
            raise ValueError("More quest results than quests")
        if not 0 <= self.reject_count <= MAX_REJECTED_PROPOSALS:
            raise ValueError(f"rejectCount {self.reject_count} out of range")

        terminal = self.phase == Phase.GAME_OVER
        if terminal != (self.winner is not None) or terminal != (self.win_reason is not None):
            raise ValueError("winner and winReason are set exactly when the game is over")

        assigned = [p.role is not None for p in self.players]
        if self.phase == Phase.LOBBY and any(assigned):
            raise ValueError("Roles cannot be assigned in the lobby")
        if self.phase != Phase.LOBBY and not all(assigned):
            raise ValueError("Every player needs a role once the game has started")

    def find_player(self, player_id: Optional[str]) -> Optional[Player]:
        if player_id is None:
            return None
        return next((p for p in self.players if p.id == player_id), None)

    @property
    def host(self) -> Player:
        return next(p for p in self.players if p.id == self.host_id)

    @property
    def leader(self) -> Player:
        return self.players[self.leader_index]

    @property
    def current_quest_size(self) -> int:
        return QUEST_SIZES[self.current_quest]

    def player_with_role(self, role: Role) -> Optional[Player]:
        return next((p for p in self.players if p.role == role), None)

    def successes(self) -> int:
        return sum(1 for result in self.quest_results if result.success)

    def failures(self) -> int:
        return sum(1 for result in self.quest_results if not result.success)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class ActionType(str, Enum):
    """Action types."""

    JOIN = "join"
    REJOIN = "rejoin"
    HEARTBEAT = "heartbeat"
    DISCONNECT = "disconnect"
    START = "start"
    PROPOSE = "propose"
    VOTE = "vote"
    CONTINUE_VOTE = "continue_vote"
    QUEST_VOTE = "quest_vote"
    CONTINUE_QUEST = "continue_quest"
    ASSASSINATE = "assassinate"


class JoinAction(_WireModel):
    """Take a new seat in the lobby."""

    type: Literal["join"] = "join"
    name: str


class RejoinAction(_WireModel):
    """Reconnect with an existing player token."""

    type: Literal["rejoin"] = "rejoin"


class HeartbeatAction(_WireModel):
    """Refresh liveness while polling."""

    type: Literal["heartbeat"] = "heartbeat"


class DisconnectAction(_WireModel):
    """Mark a seat as disconnected. The seat and its role stay in the game."""

    type: Literal["disconnect"] = "disconnect"


class StartAction(_WireModel):
    """Host deals roles and opens the first team selection."""

    type: Literal["start"] = "start"


class ProposeAction(_WireModel):
    """Leader proposes a quest team."""

    type: Literal["propose"] = "propose"
    team: List[str]


class VoteAction(_WireModel):
    """Approve or reject the proposed team."""

    type: Literal["vote"] = "vote"
    approve: bool


class ContinueVoteAction(_WireModel):
    """Host closes the vote result screen."""

    type: Literal["continue_vote"] = "continue_vote"


class QuestVoteAction(_WireModel):
    """Team member plays a success or fail card."""

    type: Literal["quest_vote"] = "quest_vote"
    success: bool


class ContinueQuestAction(_WireModel):
    """Host closes the quest result screen."""

    type: Literal["continue_quest"] = "continue_quest"


class AssassinateAction(_WireModel):
    """Saul names the player he believes is Samuel."""

    type: Literal["assassinate"] = "assassinate"
    target_id: str


GameAction = Annotated[
    Union[
        JoinAction,
        RejoinAction,
        HeartbeatAction,
        DisconnectAction,
        StartAction,
        ProposeAction,
        VoteAction,
        ContinueVoteAction,
        QuestVoteAction,
        ContinueQuestAction,
        AssassinateAction,
    ],
    Field(discriminator="type"),
]

_ACTION_ADAPTER: TypeAdapter[GameAction] = TypeAdapter(GameAction)


def parse_action(payload: Dict[str, Any]) -> GameAction:
    """Validate untrusted client input into a typed action.

    Raises:
        ActionRejected: If the payload does not describe a known action.
    """
    try:
        return _ACTION_ADAPTER.validate_python(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "action"
        raise ActionRejected(f"Malformed action ({location}): {first.get('msg')}") from exc


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def dump_game(game: Game) -> str:
    """Serialize a game to its persisted JSON form."""
    return orjson.dumps(game.model_dump(mode="json", by_alias=True)).decode("utf-8")


def load_game(data: str | bytes, *, code: Optional[str] = None) -> Game:
    """Deserialize and validate a persisted game.

    Raises:
        CorruptGameState: If the blob is not valid JSON or breaks an invariant.
    """
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as exc:
        raise CorruptGameState(code, [str(exc)]) from exc
    try:
        return Game.model_validate(raw)
    except ValidationError as exc:
        raise CorruptGameState(code, exc.errors(include_url=False)) from exc
