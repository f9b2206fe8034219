"""Tests for role dealing and hidden knowledge."""

import random
from collections import Counter

import pytest

from mightymen.core.roles import (
    EVIL_ROLES,
    LABEL_EVIL,
    LABEL_EVIL_ALLY,
    LABEL_SAMUEL_OR_PHINEHAS,
    Camp,
    Role,
    assign_roles,
    camp_of,
    get_role_card,
    is_evil,
    knowledge_for,
)
from mightymen.core.rulesets import get_composition
from tests.helpers import by_role, make_lobby, start, with_roles

EIGHT_ROLES = [
    Role.SAMUEL,
    Role.DAVID,
    Role.MIGHTY_MAN,
    Role.MIGHTY_MAN,
    Role.MIGHTY_MAN,
    Role.SAUL,
    Role.PHINEHAS,
    Role.DOEG,
]

TEN_ROLES = [
    Role.SAMUEL,
    Role.DAVID,
    Role.MIGHTY_MAN,
    Role.MIGHTY_MAN,
    Role.MIGHTY_MAN,
    Role.MIGHTY_MAN,
    Role.SAUL,
    Role.PHINEHAS,
    Role.DOEG,
    Role.SHEEP,
]


def _seen_ids(knowledge):
    return {seen.id for seen in knowledge.sees}


# ---------------------------------------------------------------------------
# Dealing
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("players", range(6, 13))
def test_assign_roles_matches_composition(players):
    roles = assign_roles(players, random.Random(players))
    counts = Counter(roles)
    composition = get_composition(players)

    assert len(roles) == players
    assert sum(1 for role in roles if is_evil(role)) == composition.evil
    for special in (Role.SAMUEL, Role.DAVID, Role.SAUL, Role.PHINEHAS):
        assert counts[special] == 1
    assert counts[Role.DOEG] == (1 if composition.evil > 2 else 0)
    assert counts[Role.SHEEP] == composition.evil - 2 - counts[Role.DOEG]
    assert counts[Role.MIGHTY_MAN] == composition.good - 2


def test_assign_roles_is_deterministic_for_a_seed():
    assert assign_roles(9, random.Random(42)) == assign_roles(9, random.Random(42))


def test_assign_roles_places_samuel_in_every_seat(rng):
    seats = {assign_roles(6, rng).index(Role.SAMUEL) for _ in range(300)}
    assert seats == set(range(6))


def test_camps():
    assert camp_of(Role.DOEG) == Camp.EVIL
    assert camp_of(Role.DAVID) == Camp.GOOD
    assert set(EVIL_ROLES) == {Role.SAUL, Role.PHINEHAS, Role.DOEG, Role.SHEEP}
    assert not is_evil(None)


# ---------------------------------------------------------------------------
# Knowledge
# ---------------------------------------------------------------------------


@pytest.fixture
def eight():
    return with_roles(start(make_lobby(8)), EIGHT_ROLES)


@pytest.fixture
def ten():
    return with_roles(start(make_lobby(10)), TEN_ROLES)


def test_samuel_sees_evil_except_saul(eight):
    knowledge = knowledge_for(eight, by_role(eight, Role.SAMUEL).id)

    assert knowledge.role == Role.SAMUEL
    assert knowledge.is_evil is False
    assert _seen_ids(knowledge) == {by_role(eight, Role.PHINEHAS).id, by_role(eight, Role.DOEG).id}
    assert {seen.label for seen in knowledge.sees} == {LABEL_EVIL}


def test_david_sees_samuel_and_phinehas_under_one_label(eight):
    knowledge = knowledge_for(eight, by_role(eight, Role.DAVID).id)

    assert _seen_ids(knowledge) == {by_role(eight, Role.SAMUEL).id, by_role(eight, Role.PHINEHAS).id}
    assert {seen.label for seen in knowledge.sees} == {LABEL_SAMUEL_OR_PHINEHAS}


@pytest.mark.parametrize("role", [Role.SAUL, Role.PHINEHAS, Role.SHEEP])
def test_evil_allies_see_each_other_but_not_doeg(ten, role):
    viewer = by_role(ten, role)
    knowledge = knowledge_for(ten, viewer.id)

    expected = {
        p.id for p in ten.players
        if p.role in (Role.SAUL, Role.PHINEHAS, Role.SHEEP) and p.id != viewer.id
    }
    assert knowledge.is_evil is True
    assert _seen_ids(knowledge) == expected
    assert {seen.label for seen in knowledge.sees} == {LABEL_EVIL_ALLY}


@pytest.mark.parametrize("role", [Role.DOEG, Role.MIGHTY_MAN])
def test_blind_roles_see_nobody(ten, role):
    assert knowledge_for(ten, by_role(ten, role).id).sees == []


@pytest.mark.parametrize("players", range(7, 13))
@pytest.mark.parametrize("seed", [1, 2, 3])
def test_doeg_is_invisible_to_his_camp(players, seed):
    game = start(make_lobby(players), seed=seed)
    doeg = by_role(game, Role.DOEG)

    assert knowledge_for(game, doeg.id).sees == []
    for player in game.players:
        if is_evil(player.role) and player.id != doeg.id:
            assert doeg.id not in _seen_ids(knowledge_for(game, player.id))


def test_no_knowledge_before_roles_or_for_strangers(lobby, eight):
    assert knowledge_for(lobby, lobby.host_id) is None
    assert knowledge_for(eight, "p_nobody") is None


def test_knowledge_is_recomputed_per_call(eight):
    viewer = by_role(eight, Role.SAMUEL).id
    first = knowledge_for(eight, viewer)
    first.sees.clear()
    assert len(knowledge_for(eight, viewer).sees) == 2


def test_role_card_lists_seen_players(eight):
    knowledge = knowledge_for(eight, by_role(eight, Role.DAVID).id)
    card = get_role_card(knowledge)

    assert card.startswith("You are David.")
    assert f"{LABEL_SAMUEL_OR_PHINEHAS}: " in card
    assert by_role(eight, Role.PHINEHAS).name in card


def test_role_card_for_blind_role(eight):
    card = get_role_card(knowledge_for(eight, by_role(eight, Role.DOEG).id))
    assert "You see nobody." in card
