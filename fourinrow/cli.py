"""Terminal front end: play against the AI, inspect statistics, ask for a suggestion."""

from __future__ import annotations

import asyncio
import logging
import random
from pathlib import Path
from typing import Iterable, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from fourinrow.engine import COLUMNS, ROWS, Board, Cell, Difficulty, Player
from fourinrow.search import SearchEngine
from fourinrow.session import AI_PACING_DELAY, FeedbackEvent, GameSession
from fourinrow.storage import DEFAULT_DATA_DIR, SettingsStore

console = Console()
app = typer.Typer(no_args_is_help=True)

SYMBOLS = {0: ".", int(Player.HUMAN): "[bold red]X[/]", int(Player.AI): "[bold yellow]O[/]"}
WIN_SYMBOLS = {int(Player.HUMAN): "[reverse bold red]X[/]", int(Player.AI): "[reverse bold yellow]O[/]"}


def render_board(board: Board, highlight: Iterable[Cell] = ()) -> str:
    marked = set(highlight)
    lines: List[str] = []
    for r in range(ROWS - 1, -1, -1):
        cells = []
        for c in range(COLUMNS):
            value = board.cell(c, r)
            cells.append(WIN_SYMBOLS[value] if (c, r) in marked else SYMBOLS[value])
        lines.append(" ".join(cells))
    lines.append("-" * (2 * COLUMNS - 1))
    lines.append(" ".join(str(c) for c in range(COLUMNS)))
    return "\n".join(lines)


def _parse_column(raw: str) -> Optional[int]:
    """Column index matching the labels under the board, or None."""
    try:
        col = int(raw)
    except ValueError:
        return None
    return col if 0 <= col < COLUMNS else None


def _parse_player(raw: str) -> Player:
    value = raw.strip().lower()
    if value == "human":
        return Player.HUMAN
    if value == "ai":
        return Player.AI
    raise typer.BadParameter("first must be 'human' or 'ai'")


def _parse_switch(raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("on", "yes", "true"):
        return True
    if value in ("off", "no", "false"):
        return False
    raise typer.BadParameter("sound must be 'on' or 'off'")


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _feedback_printer(session: GameSession):
    def on_event(event: FeedbackEvent) -> None:
        if event is FeedbackEvent.INVALID_MOVE:
            console.print("Illegal move: column full or out of range.")
        if session.settings.sound_enabled and event is not FeedbackEvent.DISC_DROP:
            console.bell()

    return on_event


async def play_session(session: GameSession) -> None:
    session.start()

    while True:
        await session.wait_for_ai()
        console.print(render_board(session.board, session.winning_cells))
        console.print(session.status_text)

        if session.state.is_over:
            if not typer.confirm("Play again?", default=True):
                return
            session.restart()
            continue

        raw = typer.prompt(f"Column {session.board.valid_moves()} (r restarts, q quits)")
        command = raw.strip().lower()
        if command == "q":
            return
        if command == "r":
            session.restart()
            continue

        col = _parse_column(raw)
        if col is None:
            console.print(f"Enter a column index from 0 to {COLUMNS - 1}.")
            continue
        session.drop_disc(col)
        console.print("")


@app.command()
def play(
    difficulty: Optional[Difficulty] = typer.Option(None, case_sensitive=False, help="AI strength (saved)."),
    first: Optional[str] = typer.Option(None, help="Who opens each game: human|ai (saved)."),
    sound: Optional[str] = typer.Option(None, help="Ring the bell on game events: on|off (saved)."),
    seed: Optional[int] = typer.Option(None, help="Random seed for the AI."),
    pacing: float = typer.Option(AI_PACING_DELAY, help="Seconds the AI waits before dropping."),
    data_dir: Path = typer.Option(DEFAULT_DATA_DIR, help="Where settings and statistics are stored."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log search decisions."),
) -> None:
    """Play Four in a Row against the computer."""
    _configure_logging(verbose)
    if pacing < 0:
        raise typer.BadParameter("pacing must be >= 0")
    first_player = _parse_player(first) if first is not None else None
    sound_enabled = _parse_switch(sound) if sound is not None else None

    store = SettingsStore.in_dir(data_dir)
    settings = store.load()
    engine = SearchEngine(random.Random(seed))
    session = GameSession(settings, engine=engine, store=store, pacing_delay=pacing)

    if difficulty is not None:
        session.set_difficulty(difficulty)
    if first_player is not None:
        session.set_first_player(first_player)
    if sound_enabled is not None:
        session.set_sound_enabled(sound_enabled)
    session.subscribe(_feedback_printer(session))

    console.print(f"Difficulty: {session.difficulty.value}")
    asyncio.run(play_session(session))


@app.command()
def stats(
    reset: bool = typer.Option(False, "--reset", help="Clear all recorded results."),
    data_dir: Path = typer.Option(DEFAULT_DATA_DIR, help="Where settings and statistics are stored."),
) -> None:
    """Show wins, losses and draws per difficulty."""
    store = SettingsStore.in_dir(data_dir)
    settings = store.load()
    if reset:
        settings.stats.reset()
        store.save(settings)
        console.print("Statistics cleared.")
        return

    table = Table(title="Results vs AI")
    table.add_column("difficulty")
    table.add_column("wins", justify="right")
    table.add_column("losses", justify="right")
    table.add_column("draws", justify="right")
    for d in Difficulty:
        table.add_row(
            d.value,
            str(settings.stats.wins_for(d)),
            str(settings.stats.losses_for(d)),
            str(settings.stats.draws_for(d)),
        )
    console.print(table)


def replay(moves: str) -> Board:
    """Board after alternating drops (human first) from a comma-separated column list."""
    board = Board()
    player = Player.HUMAN
    for raw in filter(None, (m.strip() for m in moves.split(","))):
        try:
            col = int(raw)
        except ValueError:
            raise typer.BadParameter(f"not a column: {raw!r}") from None
        row = board.drop_disc(col, player)
        if row is None:
            raise typer.BadParameter(f"illegal move: column {col}")
        if board.wins_through(col, row):
            raise typer.BadParameter(f"game already decided after column {col}")
        player = player.opponent
    return board


@app.command()
def suggest(
    moves: str = typer.Argument("", help="Columns played so far, human first, e.g. '3,3,4'."),
    depth: int = typer.Option(Difficulty.HARD.search_depth, min=1, help="Search depth in plies."),
) -> None:
    """Score every column for the AI in the given position and show the column it would play."""
    board = replay(moves)
    if board.is_full:
        raise typer.BadParameter("the board is full")

    engine = SearchEngine()
    scores = engine.score_moves(board, depth)
    table = Table(title=f"Minimax scores (depth {depth})")
    table.add_column("column", justify="right")
    table.add_column("score", justify="right")
    for col in sorted(scores):
        table.add_row(str(col), str(scores[col]))

    console.print(render_board(board))
    console.print(table)
    console.print(f"best: {engine.search_move(board, depth)}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
