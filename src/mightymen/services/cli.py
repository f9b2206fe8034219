"""Typer CLI for playing seeded Mighty Men matches and inspecting rules."""

from __future__ import annotations

import asyncio
import logging
import random
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import structlog
import typer
from rich.console import Console
from rich.table import Table

from ..config.settings import DEFAULT_CONFIG_PATH, load_settings
from ..core.roles import LABEL_EVIL, ROLE_DEFINITIONS, Camp, Knowledge, Role, assign_roles, get_role_card
from ..core.rulesets import MAX_PLAYERS, MIN_PLAYERS, format_rules_description, get_composition
from ..core.schemas import (
    AssassinateAction,
    ContinueQuestAction,
    ContinueVoteAction,
    Game,
    Phase,
    ProposeAction,
    QuestVoteAction,
    StartAction,
    VoteAction,
    dump_game,
)
from ..utils.rng import build_rng, sample_team
from .manager import GameManager
from .store import InMemoryGameStore

LOGGER = structlog.get_logger(__name__)

app = typer.Typer(help="Play and inspect Mighty Men matches.", invoke_without_command=False)
console = Console()
_configured_logging = False

MAX_ACTIONS = 1000


def configure_logging(verbose: bool = False) -> None:
    global _configured_logging
    if _configured_logging:
        return
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.WARNING),
        cache_logger_on_first_use=True,
    )
    _configured_logging = True


@dataclass
class SimulatedPlayer:
    """A seat driven by a simple seeded policy using only its own knowledge."""

    player_id: str
    name: str
    knowledge: Optional[Knowledge] = None

    @property
    def is_evil(self) -> bool:
        return bool(self.knowledge and self.knowledge.is_evil)

    def known_evil(self) -> set[str]:
        if self.knowledge is None or self.is_evil:
            return set()
        return {seen.id for seen in self.knowledge.sees if seen.label == LABEL_EVIL}

    def propose(self, rng: random.Random, game: Game) -> List[str]:
        size = game.current_quest_size
        trusted = [p.id for p in game.players if p.id not in self.known_evil()]
        pool = trusted if len(trusted) >= size else [p.id for p in game.players]
        return sample_team(rng, player_ids=pool, team_size=size)

    def vote(self, rng: random.Random, game: Game) -> bool:
        if game.reject_count >= 3:
            return True
        if self.known_evil() & set(game.proposed_team):
            return False
        return rng.random() < 0.65

    def quest_card(self, rng: random.Random) -> bool:
        if not self.is_evil:
            return True
        return rng.random() < 0.4

    def assassinate(self, rng: random.Random, game: Game) -> str:
        allies = {seen.id for seen in self.knowledge.sees} if self.knowledge else set()
        candidates = [p.id for p in game.players if p.id != self.player_id and p.id not in allies]
        return rng.choice(candidates)


async def _simulate(players: int, seed: Optional[int], settings_path: Path) -> Game:
    settings = load_settings(settings_path)
    rng = build_rng(seed=seed)
    manager = GameManager(InMemoryGameStore(), settings=settings, rng=rng)

    host = await manager.create("Player 1")
    seats: Dict[str, SimulatedPlayer] = {host.host_id: SimulatedPlayer(host.host_id, "Player 1")}
    for number in range(2, players + 1):
        name = f"Player {number}"
        pid = await manager.join(host.code, name)
        seats[pid] = SimulatedPlayer(pid, name)

    await manager.act(host.code, host.host_id, StartAction())
    for seat in seats.values():
        seat.knowledge = await manager.knowledge(host.code, seat.player_id)

    for _ in range(MAX_ACTIONS):
        game = await manager.load(host.code)
        if game.phase == Phase.GAME_OVER:
            return game

        if game.phase == Phase.TEAM_SELECTION:
            leader = seats[game.leader.id]
            await manager.act(game.code, leader.player_id, ProposeAction(team=leader.propose(rng, game)))
        elif game.phase == Phase.TEAM_VOTE:
            for seat in seats.values():
                await manager.act(game.code, seat.player_id, VoteAction(approve=seat.vote(rng, game)))
        elif game.phase == Phase.VOTE_RESULT:
            await manager.act(game.code, game.host_id, ContinueVoteAction())
        elif game.phase == Phase.QUEST:
            for member in game.proposed_team:
                seat = seats[member]
                await manager.act(game.code, member, QuestVoteAction(success=seat.quest_card(rng)))
        elif game.phase == Phase.QUEST_RESULT:
            await manager.act(game.code, game.host_id, ContinueQuestAction())
        elif game.phase == Phase.ASSASSINATION:
            saul = next(s for s in seats.values() if s.knowledge and s.knowledge.role == Role.SAUL)
            await manager.act(game.code, saul.player_id, AssassinateAction(target_id=saul.assassinate(rng, game)))

    raise RuntimeError(f"Simulation did not finish within {MAX_ACTIONS} steps")


def _render_summary(game: Game) -> None:
    names = {p.id: p.name for p in game.players}

    quests = Table(title=f"Game {game.code}: quests")
    quests.add_column("#", justify="right")
    quests.add_column("Team")
    quests.add_column("Fails", justify="right")
    quests.add_column("Result")
    for index, result in enumerate(game.quest_results, start=1):
        quests.add_row(
            str(index),
            ", ".join(names[pid] for pid in result.team),
            str(result.fail_count),
            "[green]success[/green]" if result.success else "[red]fail[/red]",
        )
    console.print(quests)

    reveal = Table(title="Roles")
    reveal.add_column("Player")
    reveal.add_column("Role")
    reveal.add_column("Camp")
    for player in game.players:
        info = ROLE_DEFINITIONS[player.role]
        reveal.add_row(player.name, info.title, info.camp.value)
    console.print(reveal)

    winner = game.winner.value if game.winner else "none"
    console.print(f"Winner: [bold]{winner}[/bold] ({game.win_reason})")


@app.command("simulate")
def simulate(
    players: int = typer.Option(MIN_PLAYERS, help=f"Number of players ({MIN_PLAYERS}-{MAX_PLAYERS})"),
    seed: Optional[int] = typer.Option(None, help="Seed for a deterministic simulation"),
    config: Path = typer.Option(DEFAULT_CONFIG_PATH, help="Path to engine settings JSON"),
    output: Optional[Path] = typer.Option(None, help="Write the final persisted game JSON here"),
    verbose: bool = typer.Option(False, "--verbose", help="Log every engine event"),
) -> None:
    """Play a full match with seeded random players and print the outcome."""

    configure_logging(verbose)
    if not MIN_PLAYERS <= players <= MAX_PLAYERS:
        typer.echo(f"Error: players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")
        raise typer.Exit(code=1)

    LOGGER.info("simulation.start", players=players, seed=seed)
    game = asyncio.run(_simulate(players, seed, config))
    LOGGER.info("simulation.complete", code=game.code, winner=game.winner.value if game.winner else None)

    _render_summary(game)
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(dump_game(game))
        typer.echo(f"Final state saved to {output}")


@app.command("roles")
def roles(
    players: int = typer.Option(MIN_PLAYERS, help="Party size to describe"),
    seed: Optional[int] = typer.Option(None, help="Seed for a sample deal"),
) -> None:
    """Show the composition, quest rules and a sample deal for a party size."""

    try:
        composition = get_composition(players)
    except ValueError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    typer.echo(format_rules_description(composition))

    counts = Counter(assign_roles(players, build_rng(seed=seed)))
    table = Table(title=f"{players}-player deal")
    table.add_column("Role")
    table.add_column("Camp")
    table.add_column("Count", justify="right")
    for role, info in ROLE_DEFINITIONS.items():
        if counts[role]:
            table.add_row(info.title, info.camp.value, str(counts[role]))
    console.print(table)


@app.command("card")
def card(
    role: Role = typer.Argument(..., help="Role to describe"),
) -> None:
    """Print the role card text for a role, with nobody in sight."""

    info = ROLE_DEFINITIONS[role]
    typer.echo(get_role_card(Knowledge(role=role, is_evil=info.camp == Camp.EVIL)))


if __name__ == "__main__":  # pragma: no cover
    app()
