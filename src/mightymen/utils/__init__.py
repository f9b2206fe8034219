"""Randomness and identifier helpers."""

from . import ids, rng

__all__ = ["ids", "rng"]
