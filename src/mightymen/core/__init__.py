"""Core game logic and data structures."""

from . import errors, fsm, roles, rulesets, schemas, views

__all__ = ["errors", "fsm", "roles", "rulesets", "schemas", "views"]
