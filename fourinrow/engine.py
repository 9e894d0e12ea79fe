"""Board state, move legality, win detection and the heuristic evaluator."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

COLUMNS = 7
ROWS = 6
WIN_LENGTH = 4
CENTER_COLUMN = COLUMNS // 2
EMPTY = 0

# (dc, dr): horizontal, vertical, diagonal /, diagonal \
DIRECTIONS: Tuple[Tuple[int, int], ...] = ((1, 0), (0, 1), (1, 1), (1, -1))

CENTER_BONUS = 3
# Indexed by the number of one player's discs in an unblocked window.
WINDOW_SCORES = np.array([0, 0, 10, 50, 10_000], dtype=np.int64)

Cell = Tuple[int, int]


class Player(enum.IntEnum):
    HUMAN = 1
    AI = 2

    @property
    def opponent(self) -> "Player":
        return Player.AI if self is Player.HUMAN else Player.HUMAN


class Difficulty(str, enum.Enum):
    EASY = "Easy"
    NORMAL = "Normal"
    HARD = "Hard"
    EXPERT = "Expert"

    @property
    def search_depth(self) -> int:
        """Minimax depth in plies."""
        return _SEARCH_DEPTH[self]

    @property
    def mistake_rate(self) -> float:
        """Probability of a deliberately weakened move."""
        return _MISTAKE_RATE[self]


_SEARCH_DEPTH = {
    Difficulty.EASY: 1,
    Difficulty.NORMAL: 3,
    Difficulty.HARD: 7,
    Difficulty.EXPERT: 10,
}

_MISTAKE_RATE = {
    Difficulty.EASY: 0.5,
    Difficulty.NORMAL: 0.15,
    Difficulty.HARD: 0.03,
    Difficulty.EXPERT: 0.0,
}


class Outcome(str, enum.Enum):
    PLAYING = "playing"
    WIN = "win"
    DRAW = "draw"


@dataclass(frozen=True)
class GameState:
    outcome: Outcome = Outcome.PLAYING
    winner: Optional[Player] = None

    @classmethod
    def playing(cls) -> "GameState":
        return cls()

    @classmethod
    def win(cls, player: Player) -> "GameState":
        return cls(Outcome.WIN, player)

    @classmethod
    def draw(cls) -> "GameState":
        return cls(Outcome.DRAW)

    @property
    def is_over(self) -> bool:
        return self.outcome is not Outcome.PLAYING

    @property
    def is_draw(self) -> bool:
        return self.outcome is Outcome.DRAW


def _build_windows() -> Tuple[Tuple[Cell, ...], ...]:
    """
    Enumerate every 4-cell line that fits on the board.

    Order is the scan order used for win reporting: lowest column, then lowest
    row, then direction (horizontal, vertical, /, \\).
    """

    windows = []
    for col in range(COLUMNS):
        for row in range(ROWS):
            for dc, dr in DIRECTIONS:
                end_col = col + dc * (WIN_LENGTH - 1)
                end_row = row + dr * (WIN_LENGTH - 1)
                if not (0 <= end_col < COLUMNS and 0 <= end_row < ROWS):
                    continue
                windows.append(tuple((col + dc * i, row + dr * i) for i in range(WIN_LENGTH)))
    return tuple(windows)


WINDOWS = _build_windows()
_WINDOW_ROWS = np.array([[r for _, r in w] for w in WINDOWS], dtype=np.intp)
_WINDOW_COLS = np.array([[c for c, _ in w] for w in WINDOWS], dtype=np.intp)


class Board:
    """
    7x6 Connect-Four grid.

    grid[row, col] holds EMPTY or a Player value; row 0 is the bottom and
    column 0 is the leftmost. heights[col] is the number of discs in a column
    and doubles as the next free row.
    """

    __slots__ = ("grid", "heights", "move_count", "winning_cells")

    def __init__(self) -> None:
        self.grid = np.zeros((ROWS, COLUMNS), dtype=np.int8)
        self.heights = np.zeros((COLUMNS,), dtype=np.int16)
        self.move_count = 0
        self.winning_cells: Optional[List[Cell]] = None

    @classmethod
    def from_columns(cls, columns: Sequence[Sequence[Player]]) -> "Board":
        """Build a board from bottom-up disc lists, one per column."""
        if len(columns) > COLUMNS:
            raise ValueError(f"at most {COLUMNS} columns, got {len(columns)}")
        board = cls()
        for col, discs in enumerate(columns):
            if len(discs) > ROWS:
                raise ValueError(f"column {col} holds at most {ROWS} discs")
            for player in discs:
                board.drop_disc(col, player)
        return board

    def copy(self) -> "Board":
        other = Board.__new__(Board)
        other.grid = self.grid.copy()
        other.heights = self.heights.copy()
        other.move_count = self.move_count
        other.winning_cells = None if self.winning_cells is None else list(self.winning_cells)
        return other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Board):
            return NotImplemented
        return (
            self.move_count == other.move_count
            and np.array_equal(self.heights, other.heights)
            and np.array_equal(self.grid, other.grid)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Board(move_count={self.move_count}, heights={self.heights.tolist()})"

    def cell(self, col: int, row: int) -> int:
        return int(self.grid[row, col])

    def can_drop(self, col: int) -> bool:
        return 0 <= col < COLUMNS and int(self.heights[col]) < ROWS

    def valid_moves(self) -> List[int]:
        return np.nonzero(self.heights < ROWS)[0].tolist()

    @property
    def is_full(self) -> bool:
        return self.move_count >= COLUMNS * ROWS

    def drop_disc(self, col: int, player: Player) -> Optional[int]:
        """Drop a disc for `player`; return the landing row, or None if the column is rejected."""
        if not self.can_drop(col):
            return None
        row = int(self.heights[col])
        self.grid[row, col] = player
        self.heights[col] += 1
        self.move_count += 1
        return row

    def undo_drop(self, col: int) -> None:
        if not (0 <= col < COLUMNS) or self.heights[col] == 0:
            raise ValueError(f"no disc to remove in column {col}")
        self.heights[col] -= 1
        self.grid[int(self.heights[col]), col] = EMPTY
        self.move_count -= 1

    def _windows(self) -> np.ndarray:
        # shape (len(WINDOWS), WIN_LENGTH)
        return self.grid[_WINDOW_ROWS, _WINDOW_COLS]

    def check_win(self, player: Player) -> bool:
        """Return whether `player` has four in a row and record the first line found."""
        hits = np.flatnonzero(np.all(self._windows() == player, axis=1))
        if hits.size == 0:
            return False
        self.winning_cells = list(WINDOWS[int(hits[0])])
        return True

    def has_won(self, player: Player) -> bool:
        return bool(np.any(np.all(self._windows() == player, axis=1)))

    def wins_through(self, col: int, row: int) -> bool:
        """Whether the disc at (col, row) completes four; only lines through that cell are read."""
        owner = int(self.grid[row, col])
        if owner == EMPTY:
            return False
        for dc, dr in DIRECTIONS:
            total = 1 + self._run(col, row, dc, dr, owner) + self._run(col, row, -dc, -dr, owner)
            if total >= WIN_LENGTH:
                return True
        return False

    def _run(self, col: int, row: int, dc: int, dr: int, owner: int) -> int:
        count = 0
        c, r = col + dc, row + dr
        while 0 <= c < COLUMNS and 0 <= r < ROWS and int(self.grid[r, c]) == owner:
            count += 1
            c += dc
            r += dr
        return count

    def evaluate(self, player: Player) -> int:
        """
        Heuristic score of the position; positive favours `player`.

        Center-column discs earn a small bonus. Each window holding only one
        side's discs is scored by how many it holds (2, 3 or 4); windows
        holding both sides are blocked and count for nothing.
        """

        windows = self._windows()
        mine = np.count_nonzero(windows == player, axis=1)
        theirs = np.count_nonzero(windows == player.opponent, axis=1)

        score = CENTER_BONUS * int(np.count_nonzero(self.grid[:, CENTER_COLUMN] == player))
        score += int(WINDOW_SCORES[mine[theirs == 0]].sum())
        score -= int(WINDOW_SCORES[theirs[mine == 0]].sum())
        return score


def resolve_state(board: Board, player: Player) -> GameState:
    """Game state after `player` has dropped a disc on `board`."""
    if board.check_win(player):
        return GameState.win(player)
    if board.is_full:
        return GameState.draw()
    return GameState.playing()
