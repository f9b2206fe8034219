"""Exception hierarchy shared by the engine and the game manager."""

from __future__ import annotations


class EngineError(RuntimeError):
    """Base class for every error raised by the Mighty Men engine."""


class ActionRejected(EngineError):
    """Raised when an action violates a precondition.

    ``reason`` is human readable and is meant to be shown to the player
    verbatim. The game state is never modified when this is raised.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class GameNotFound(ActionRejected):
    """Raised when a game code does not resolve to a stored game."""

    def __init__(self, code: str) -> None:
        self.code = code
        super().__init__("Game not found")


class GameBusy(EngineError):
    """Raised when the per-game lock could not be acquired in time. Retryable."""

    def __init__(self, code: str, timeout: float) -> None:
        self.code = code
        self.timeout = timeout
        super().__init__(f"Game {code} is busy; gave up after {timeout:.2f}s")


class CorruptGameState(EngineError):
    """Raised when a persisted game fails to deserialize or validate."""

    def __init__(self, code: str | None, errors: list) -> None:
        self.code = code
        self.errors = errors
        super().__init__(f"Stored state for game {code or '?'} is invalid: {errors}")
