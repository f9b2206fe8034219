"""Engine settings loaded from an optional JSON file and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import orjson
from dotenv import find_dotenv, load_dotenv

DEFAULT_CONFIG_PATH = Path("config/mightymen.json")
ENV_PREFIX = "MIGHTYMEN_"


@dataclass(frozen=True)
class EngineSettings:
    """Tunables for persistence and locking."""

    game_expiry_seconds: int = 7200
    lock_timeout: float = 2.0
    code_length: int = 6
    create_attempts: int = 10

    def __post_init__(self) -> None:
        if self.game_expiry_seconds <= 0:
            raise ValueError("game_expiry_seconds must be positive")
        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive")
        if self.code_length < 4:
            raise ValueError("code_length must be at least 4")
        if self.create_attempts < 1:
            raise ValueError("create_attempts must be at least 1")


def _coerce(name: str, raw: Any) -> Any:
    target = next(f.type for f in fields(EngineSettings) if f.name == name)
    try:
        if target in ("int", int):
            return int(raw)
        if target in ("float", float):
            return float(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc
    return raw


def load_settings(path: Optional[Path] = DEFAULT_CONFIG_PATH, *, use_env: bool = True) -> EngineSettings:
    """Load settings from disk, then apply ``MIGHTYMEN_*`` environment overrides."""

    values: Dict[str, Any] = {}
    known = {f.name for f in fields(EngineSettings)}

    if path is not None and path.exists():
        data = orjson.loads(path.read_bytes())
        for key, value in data.items():
            if key in known:
                values[key] = _coerce(key, value)

    if use_env:
        load_dotenv(find_dotenv(usecwd=True))
        for name in known:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = _coerce(name, raw)

    return replace(EngineSettings(), **values)
