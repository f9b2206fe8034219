"""Game codes, player tokens and timestamps."""

import secrets
import time
import uuid

CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
DEFAULT_CODE_LENGTH = 6


def generate_code(length: int = DEFAULT_CODE_LENGTH) -> str:
    """Return a join code without easily confused characters (no I, O, 0, 1)."""
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_code(code: str) -> str:
    return code.strip().upper()


def generate_player_id() -> str:
    """Return an opaque player token."""
    return "p_" + uuid.uuid4().hex[:16]


def now_ms() -> int:
    return int(time.time() * 1000)
