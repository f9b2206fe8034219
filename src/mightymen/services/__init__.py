"""Service modules: persistence, the game manager and the CLI."""

from . import cli, manager, store

__all__ = ["cli", "manager", "store"]
