"""Game manager: serializes mutations per game code around load/apply/save."""

from __future__ import annotations

import asyncio
import random
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Dict, Optional

import structlog

from ..config.settings import EngineSettings
from ..core.errors import ActionRejected, GameBusy, GameNotFound
from ..core.fsm import ActionResult, apply, create_game
from ..core.roles import Knowledge, knowledge_for
from ..core.schemas import Game, GameAction, HeartbeatAction, JoinAction, Phase, dump_game, load_game
from ..core.views import public_view
from ..utils.ids import generate_code, normalize_code, now_ms
from ..utils.rng import build_rng
from .store import GameStore

LOGGER = structlog.get_logger(__name__)


class GameManager:
    """Entry point for callers that hold a game code and a player token.

    Every mutation runs load -> apply -> save while holding the lock for that
    game code, so two concurrent votes can never both see the pre-vote
    tally. Different codes use different locks and never block each other.
    """

    def __init__(
        self,
        store: GameStore,
        *,
        settings: Optional[EngineSettings] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.settings = settings or EngineSettings()
        self._rng = rng or build_rng()
        self._clock = clock
        # Entries live only while some task holds or awaits the code.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def _checkout(self, code: str) -> asyncio.Lock:
        lock = self._locks.get(code)
        if lock is None:
            lock = self._locks[code] = asyncio.Lock()
        self._lock_users[code] = self._lock_users.get(code, 0) + 1
        return lock

    def _checkin(self, code: str) -> None:
        remaining = self._lock_users[code] - 1
        if remaining:
            self._lock_users[code] = remaining
        else:
            del self._lock_users[code]
            del self._locks[code]

    @asynccontextmanager
    async def locked(self, code: str) -> AsyncIterator[None]:
        """Hold the mutation lock for ``code``, waiting at most ``lock_timeout``."""
        lock = self._checkout(code)
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.settings.lock_timeout)
            except asyncio.TimeoutError as exc:
                LOGGER.warning("lock.timeout", code=code, timeout=self.settings.lock_timeout)
                raise GameBusy(code, self.settings.lock_timeout) from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            self._checkin(code)

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    async def load(self, code: str) -> Game:
        code = normalize_code(code)
        data = await self.store.load(code)
        if data is None:
            raise GameNotFound(code)
        return load_game(data, code=code)

    async def _save(self, game: Game) -> None:
        await self.store.save(game.code, dump_game(game), self.settings.game_expiry_seconds)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, host_name: str) -> Game:
        """Create a lobby under a fresh code and persist it."""
        for _ in range(self.settings.create_attempts):
            code = generate_code(self.settings.code_length)
            async with self.locked(code):
                if await self.store.load(code) is not None:
                    continue
                game = create_game(host_name, code=code, now=self._clock())
                await self._save(game)
                return game
        raise ActionRejected("Could not allocate a game code, try again")

    async def act(self, code: str, player_id: Optional[str], action: GameAction | Dict[str, Any]) -> ActionResult:
        """Apply one action atomically. Rejections leave the stored game untouched."""
        code = normalize_code(code)
        async with self.locked(code):
            game = await self.load(code)
            result = apply(game, player_id, action, rng=self._rng, now=self._clock())
            await self._save(result.game)
        return result

    async def join(self, code: str, name: str) -> str:
        """Join the lobby and return the new player's token."""
        result = await self.act(code, None, JoinAction(name=name))
        return result.data["playerId"]

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    async def view(self, code: str, viewer_id: Optional[str]) -> Dict[str, Any]:
        game = await self.load(code)
        return public_view(game, viewer_id)

    async def poll(self, code: str, player_id: Optional[str]) -> Dict[str, Any]:
        """Refresh the caller's liveness, when they are seated, and return their view."""
        if player_id is not None:
            game = await self.load(code)
            if game.find_player(player_id) is not None:
                try:
                    result = await self.act(code, player_id, HeartbeatAction())
                except GameBusy:
                    # A busy game answers with the last stored view.
                    LOGGER.debug("poll.busy", code=game.code)
                    return public_view(game, player_id)
                return public_view(result.game, player_id)
        return await self.view(code, player_id)

    async def knowledge(self, code: str, player_id: str) -> Knowledge:
        game = await self.load(code)
        if game.phase == Phase.LOBBY:
            raise ActionRejected("Game has not started yet")
        knowledge = knowledge_for(game, player_id)
        if knowledge is None:
            raise ActionRejected("Player not found")
        return knowledge
