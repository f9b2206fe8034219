"""Per-viewer projection tests: nothing hidden may leak into a view."""

import pytest

from mightymen.core.roles import Role
from mightymen.core.schemas import AssassinateAction, Phase, QuestVoteAction, VoteAction
from mightymen.core.views import public_view
from tests.helpers import act, by_role, continue_quest, continue_vote, ids, play_quest, propose, vote_all

BASELINE = {
    "code", "phase", "playerCount", "players", "currentQuest", "questResults", "questSizes",
    "questFailRequirements", "leaderIndex", "leaderName", "proposedTeam", "rejectCount",
    "winner", "winReason",
}
VIEWER = {"myId", "myName", "isHost", "isLeader", "isOnTeam"}


def test_stranger_sees_baseline_only(game):
    assert set(public_view(game, None)) == BASELINE
    assert set(public_view(game, "p_stranger")) == BASELINE


def test_roles_are_hidden_until_game_over(game):
    for viewer in [None] + ids(game):
        view = public_view(game, viewer)
        assert all("role" not in entry for entry in view["players"])
        assert "role" not in view


def test_team_selection_view(game):
    view = public_view(game, game.host_id)

    assert set(view) == BASELINE | VIEWER
    assert view["isHost"] is True and view["isLeader"] is True
    assert view["leaderName"] == "Host"
    assert view["questSizes"] == [3, 4, 5, 6, 6]
    assert view["questFailRequirements"] == [1, 1, 1, 2, 1]


def test_team_vote_shows_who_voted_not_how(game):
    voting = propose(game)
    voting = act(voting, ids(game)[3], VoteAction(approve=False))

    view = public_view(voting, ids(game)[0])
    assert set(view) == BASELINE | VIEWER | {"votedPlayers", "hasVoted"}
    assert view["votedPlayers"] == [ids(game)[3]]
    assert view["hasVoted"] is False
    assert view["isOnTeam"] is True
    assert public_view(voting, ids(game)[3])["hasVoted"] is True


def test_vote_result_reveals_individual_votes(game):
    closed = vote_all(propose(game), [True, False, True, True, False, True])
    view = public_view(closed, ids(game)[1])

    assert set(view) == BASELINE | VIEWER | {"lastVoteResult", "voteDetails"}
    assert view["lastVoteResult"] == {"approved": True, "approveCount": 4, "rejectCount": 2}
    assert [d["approved"] for d in view["voteDetails"]] == [True, False, True, True, False, True]


def test_quest_view_hides_cards(game):
    questing = continue_vote(vote_all(propose(game), True))
    saul = by_role(game, Role.SAUL).id
    questing = act(questing, ids(game)[0], QuestVoteAction(success=True))

    view = public_view(questing, saul)
    assert set(view) == BASELINE | VIEWER | {"questVotedPlayers", "hasQuestVoted"}
    assert view["questVotedPlayers"] == [ids(game)[0]]
    assert view["hasQuestVoted"] is False
    assert view["isOnTeam"] is False


def test_quest_result_shows_counts_only(game):
    saul = by_role(game, Role.SAUL).id
    done = play_quest(game, [ids(game)[0], ids(game)[1], saul], fails=[saul])

    view = public_view(done, ids(game)[2])
    assert set(view) == BASELINE | VIEWER | {"lastQuestResult"}
    assert view["lastQuestResult"] == {"success": False, "failCount": 1}
    assert view["questResults"][0]["team"] == [ids(game)[0], ids(game)[1], saul]


@pytest.fixture
def assassination(game):
    for _ in range(3):
        game = continue_quest(play_quest(game))
    return game


def test_assassination_view_flags_saul(assassination):
    saul = by_role(assassination, Role.SAUL).id
    samuel = by_role(assassination, Role.SAMUEL).id

    saul_view = public_view(assassination, saul)
    assert set(saul_view) == BASELINE | VIEWER | {"isSaul", "assassinationReady"}
    assert saul_view["isSaul"] is True
    assert saul_view["assassinationReady"] is False
    assert public_view(assassination, samuel)["isSaul"] is False


def test_game_over_reveals_roles(assassination):
    saul = by_role(assassination, Role.SAUL).id
    samuel = by_role(assassination, Role.SAMUEL).id
    over = act(assassination, saul, AssassinateAction(target_id=samuel))

    view = public_view(over, None)
    assert view["phase"] == Phase.GAME_OVER.value
    assert [entry["role"] for entry in view["players"]] == [p.role.value for p in over.players]
    assert view["winner"] == "evil"
    assert view["winReason"] == "Saul correctly identified and eliminated Samuel"


def test_mutating_a_view_does_not_touch_the_game(game):
    view = public_view(game, game.host_id)
    view["players"][0]["name"] = "Mallory"
    view["proposedTeam"].append("p_x")
    view["questSizes"][0] = 99

    assert game.players[0].name == "Host"
    assert game.proposed_team == []
    assert public_view(game, game.host_id)["questSizes"][0] == 3
