"""Four in a Row (engine + search + session + CLI)."""

from fourinrow.engine import Board, Difficulty, GameState, Player, resolve_state
from fourinrow.search import SearchEngine

__all__ = ["Board", "Difficulty", "GameState", "Player", "SearchEngine", "resolve_state"]
