"""Mighty Men: a turn-based social-deduction game engine."""

from . import config, core, services, utils
from .core.errors import ActionRejected, CorruptGameState, EngineError, GameBusy, GameNotFound
from .core.fsm import ActionResult, apply, create_game
from .core.roles import Camp, Knowledge, Role, assign_roles, knowledge_for
from .core.schemas import Game, Phase, Player, dump_game, load_game, parse_action
from .core.views import public_view
from .services.manager import GameManager
from .services.store import GameStore, InMemoryGameStore

__all__ = [
    "config",
    "core",
    "services",
    "utils",
    "ActionRejected",
    "ActionResult",
    "Camp",
    "CorruptGameState",
    "EngineError",
    "Game",
    "GameBusy",
    "GameManager",
    "GameNotFound",
    "GameStore",
    "InMemoryGameStore",
    "Knowledge",
    "Phase",
    "Player",
    "Role",
    "apply",
    "assign_roles",
    "create_game",
    "dump_game",
    "knowledge_for",
    "load_game",
    "parse_action",
    "public_view",
]
