"""Pytest fixtures for Mighty Men engine tests."""

import random

import pytest

from tests.helpers import make_lobby, started_six


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def lobby():
    """Six seated players, nobody has a role yet."""
    return make_lobby(6)


@pytest.fixture
def game():
    """Six players in team selection; seat 0 leads and roles follow seat order."""
    return started_six()
