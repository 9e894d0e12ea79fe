"""Board mirror used inside minimax: per-window disc tallies kept current on every drop."""

from __future__ import annotations

from typing import Dict, List, Tuple

from fourinrow.engine import (
    CENTER_BONUS,
    CENTER_COLUMN,
    COLUMNS,
    ROWS,
    WIN_LENGTH,
    WINDOW_SCORES,
    WINDOWS,
    Board,
    Player,
)


def _window_value(ai: int, human: int) -> int:
    """Contribution of one window to Board.evaluate(Player.AI)."""
    value = 0
    if human == 0:
        value += int(WINDOW_SCORES[ai])
    if ai == 0:
        value -= int(WINDOW_SCORES[human])
    return value


def _build_gains() -> Dict[Player, List[List[int]]]:
    # gains[player][mine][theirs]: change in the AI score when `player` adds a
    # disc to a window already holding `mine` of theirs and `theirs` of the other side.
    gains: Dict[Player, List[List[int]]] = {}
    for player in Player:
        table = [[0] * WIN_LENGTH for _ in range(WIN_LENGTH)]
        for mine in range(WIN_LENGTH):
            for theirs in range(WIN_LENGTH - mine):
                if player is Player.AI:
                    table[mine][theirs] = _window_value(mine + 1, theirs) - _window_value(mine, theirs)
                else:
                    table[mine][theirs] = _window_value(theirs, mine + 1) - _window_value(theirs, mine)
        gains[player] = table
    return gains


def _build_cell_windows() -> Tuple[Tuple[Tuple[int, ...], ...], ...]:
    # cell_windows[col][row]: indices into WINDOWS of every window through that cell
    return tuple(
        tuple(tuple(i for i, window in enumerate(WINDOWS) if (col, row) in window) for row in range(ROWS))
        for col in range(COLUMNS)
    )


_GAINS = _build_gains()
_CELL_WINDOWS = _build_cell_windows()
_KEY_BITS = {
    Player.AI: [[1 << (col * ROWS + row) for row in range(ROWS)] for col in range(COLUMNS)],
    Player.HUMAN: [[1 << (COLUMNS * ROWS + col * ROWS + row) for row in range(ROWS)] for col in range(COLUMNS)],
}


class SearchBoard:
    """
    Search-side copy of a Board.

    For every window it tracks how many discs each player holds there, so a
    drop only touches the windows through the new disc. `score` always equals
    Board.evaluate(Player.AI) for the same position, and `wins_at` tells
    whether a drop would complete four without making it. `key` identifies
    the position (one bit per disc per player) for the transposition table.
    """

    __slots__ = ("heights", "move_count", "score", "key", "_tallies", "_scores")

    def __init__(self) -> None:
        self.heights = [0] * COLUMNS
        self.move_count = 0
        self.score = 0
        self.key = 0
        self._tallies = {player: [0] * len(WINDOWS) for player in Player}
        self._scores: List[int] = []

    @classmethod
    def from_board(cls, board: Board) -> "SearchBoard":
        search = cls()
        for col in range(COLUMNS):
            for row in range(int(board.heights[col])):
                search.drop(col, Player(board.cell(col, row)))
        return search

    @property
    def is_full(self) -> bool:
        return self.move_count >= COLUMNS * ROWS

    def valid_moves(self) -> List[int]:
        return [col for col in range(COLUMNS) if self.heights[col] < ROWS]

    def wins_at(self, col: int, player: Player) -> bool:
        """Whether dropping in the open column `col` gives `player` four in a row."""
        mine = self._tallies[player]
        for w in _CELL_WINDOWS[col][self.heights[col]]:
            if mine[w] == WIN_LENGTH - 1:
                return True
        return False

    def gain(self, col: int, player: Player) -> int:
        """How much `score` would change if `player` dropped in the open column `col`."""
        mine = self._tallies[player]
        theirs = self._tallies[player.opponent]
        table = _GAINS[player]
        delta = CENTER_BONUS if col == CENTER_COLUMN and player is Player.AI else 0
        for w in _CELL_WINDOWS[col][self.heights[col]]:
            delta += table[mine[w]][theirs[w]]
        return delta

    def drop(self, col: int, player: Player) -> None:
        """Drop into an open column; legality is the caller's job."""
        row = self.heights[col]
        mine = self._tallies[player]
        theirs = self._tallies[player.opponent]
        table = _GAINS[player]

        self._scores.append(self.score)
        score = self.score + (CENTER_BONUS if col == CENTER_COLUMN and player is Player.AI else 0)
        for w in _CELL_WINDOWS[col][row]:
            held = mine[w]
            score += table[held][theirs[w]]
            mine[w] = held + 1

        self.score = score
        self.heights[col] = row + 1
        self.move_count += 1
        self.key += _KEY_BITS[player][col][row]

    def undo(self, col: int, player: Player) -> None:
        """Take back the last drop, which must have been `player`'s in `col`."""
        row = self.heights[col] - 1
        mine = self._tallies[player]
        for w in _CELL_WINDOWS[col][row]:
            mine[w] -= 1

        self.score = self._scores.pop()
        self.heights[col] = row
        self.move_count -= 1
        self.key -= _KEY_BITS[player][col][row]
