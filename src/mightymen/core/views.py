"""Per-viewer redacted snapshots of a game.

Every field placed in a view is either public to the whole table or
explicitly allowed for the viewer in the current phase. Views are built from
fresh containers, so mutating a view never reaches the game record.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .roles import Role
from .rulesets import QUEST_FAIL_REQUIREMENTS, QUEST_SIZES
from .schemas import Game, Phase, Player


def _player_entry(player: Player, reveal_roles: bool) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "id": player.id,
        "name": player.name,
        "isHost": player.is_host,
        "connected": player.connected,
    }
    # Roles only become public once the match is over; until then the key is absent.
    if reveal_roles and player.role is not None:
        entry["role"] = player.role.value
    return entry


def _quest_history(game: Game) -> List[Dict[str, Any]]:
    return [
        {
            "success": result.success,
            "failCount": result.fail_count,
            "successCount": result.success_count,
            "team": list(result.team),
        }
        for result in game.quest_results
    ]


def public_view(game: Game, viewer_id: Optional[str]) -> Dict[str, Any]:
    """Return the state ``viewer_id`` is allowed to see.

    The result is specific to one viewer and must not be reused for another.
    Unknown or missing viewers receive only the baseline public fields.
    """
    game_over = game.phase == Phase.GAME_OVER
    view: Dict[str, Any] = {
        "code": game.code,
        "phase": game.phase.value,
        "playerCount": len(game.players),
        "players": [_player_entry(p, game_over) for p in game.players],
        "currentQuest": game.current_quest,
        "questResults": _quest_history(game),
        "questSizes": list(QUEST_SIZES),
        "questFailRequirements": list(QUEST_FAIL_REQUIREMENTS),
        "leaderIndex": game.leader_index,
        "leaderName": game.leader.name,
        "proposedTeam": list(game.proposed_team),
        "rejectCount": game.reject_count,
        "winner": game.winner.value if game.winner is not None else None,
        "winReason": game.win_reason,
    }

    viewer = game.find_player(viewer_id)
    if viewer is None:
        return view

    view.update(
        {
            "myId": viewer.id,
            "myName": viewer.name,
            "isHost": viewer.is_host,
            "isLeader": game.leader.id == viewer.id,
            "isOnTeam": viewer.id in game.proposed_team,
        }
    )

    if game.phase == Phase.TEAM_VOTE:
        # Who has voted, never how.
        view["votedPlayers"] = [pid for pid in game.votes]
        view["hasVoted"] = viewer.id in game.votes

    elif game.phase == Phase.VOTE_RESULT and game.last_vote_result is not None:
        result = game.last_vote_result
        view["lastVoteResult"] = {
            "approved": result.approved,
            "approveCount": result.approve_count,
            "rejectCount": result.reject_count,
        }
        view["voteDetails"] = [
            {"id": p.id, "name": p.name, "approved": result.votes.get(p.id)}
            for p in game.players
        ]

    elif game.phase == Phase.QUEST:
        view["questVotedPlayers"] = [pid for pid in game.quest_votes]
        view["hasQuestVoted"] = viewer.id in game.quest_votes

    elif game.phase == Phase.ASSASSINATION:
        view["isSaul"] = viewer.role == Role.SAUL
        view["assassinationReady"] = game.assassination_target is not None

    elif game.phase == Phase.QUEST_RESULT and game.quest_results:
        last = game.quest_results[-1]
        view["lastQuestResult"] = {"success": last.success, "failCount": last.fail_count}

    return view
