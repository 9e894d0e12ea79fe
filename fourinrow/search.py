"""Move selection for the computer player: tactical shortcuts plus alpha-beta minimax."""

from __future__ import annotations

import logging
import math
import random
from typing import Dict, Iterable, List, Optional, Tuple

from fourinrow.engine import CENTER_COLUMN, COLUMNS, ROWS, Board, Difficulty, Player
from fourinrow.searchboard import SearchBoard

logger = logging.getLogger(__name__)

WIN_SCORE = 100_000
CENTER_CANDIDATES = 3

# Kinds of transposition entry: how the cached score relates to the true one.
EXACT, LOWER, UPPER = 0, 1, 2


def order_moves(moves: Iterable[int]) -> List[int]:
    """Center columns first; sorted() is stable so ties keep ascending order."""
    return sorted(moves, key=lambda c: abs(c - CENTER_COLUMN))


def find_immediate_win(board: Board, player: Player) -> Optional[int]:
    """Lowest column that completes four in a row for `player`, if any."""
    for col in board.valid_moves():
        row = board.drop_disc(col, player)
        won = board.wins_through(col, row)
        board.undo_drop(col)
        if won:
            return col
    return None


def find_setup_move(board: Board, player: Player) -> Optional[int]:
    """
    Lowest column after which `player` would have two or more winning follow-ups.

    Only the mover's own next move is considered; replies in between are not.
    """

    for col in board.valid_moves():
        row = board.drop_disc(col, player)
        already_won = board.wins_through(col, row)
        threats = 0
        for next_col in board.valid_moves():
            next_row = board.drop_disc(next_col, player)
            if already_won or board.wins_through(next_col, next_row):
                threats += 1
            board.undo_drop(next_col)
        board.undo_drop(col)
        if threats >= 2:
            return col
    return None


class _Counter:
    __slots__ = ("nodes",)

    def __init__(self) -> None:
        self.nodes = 0


class TranspositionTable:
    """Scores of positions already searched, keyed by SearchBoard.key."""

    def __init__(self) -> None:
        self.table: Dict[int, Tuple[int, float]] = {}
        self.hits = 0

    def get(self, key: int) -> Optional[Tuple[int, float]]:
        entry = self.table.get(key)
        if entry is not None:
            self.hits += 1
        return entry

    def put(self, key: int, kind: int, score: float) -> None:
        self.table[key] = (kind, score)

    def __len__(self) -> int:
        return len(self.table)


def minimax(
    board: SearchBoard,
    depth: int,
    alpha: float,
    beta: float,
    maximizing: bool,
    table: Optional[TranspositionTable] = None,
    counter: Optional[_Counter] = None,
) -> float:
    """
    Alpha-beta minimax; the AI maximizes and the human minimizes.

    Wins score +/-WIN_SCORE adjusted by the remaining depth, so the AI prefers
    faster wins and slower losses. `board` must not be decided yet: a win is
    scored one ply early, as soon as the mover has a column that completes four.

    Scores are exact inside (alpha, beta) and bounds outside it, so the root
    settles on the same column a plain full-width minimax would.
    """

    if counter is not None:
        counter.nodes += 1

    if board.is_full:
        return 0
    if depth == 0:
        return board.score

    player = Player.AI if maximizing else Player.HUMAN
    sign = 1 if maximizing else -1
    moves = order_moves(board.valid_moves())

    # Winning on this ply beats anything found deeper.
    for col in moves:
        if board.wins_at(col, player):
            return sign * (WIN_SCORE + depth - 1)

    if depth == 1:
        if board.move_count + 1 == COLUMNS * ROWS:
            return 0  # the last disc draws
        leaves = [board.score + board.gain(col, player) for col in moves]
        return max(leaves) if maximizing else min(leaves)

    key = board.key
    if table is not None:
        entry = table.get(key)
        if entry is not None:
            kind, cached = entry
            if kind == EXACT:
                return cached
            if kind == LOWER:
                alpha = max(alpha, cached)
            else:
                beta = min(beta, cached)
            if beta <= alpha:
                return cached

    # The opponent wins next ply unless every threat is covered.
    threats = [col for col in moves if board.wins_at(col, player.opponent)]
    if len(threats) > 1:
        return -sign * (WIN_SCORE + depth - 2)
    if threats:
        moves = threats
    else:
        moves.sort(key=lambda c: -sign * board.gain(c, player))

    window_alpha, window_beta = alpha, beta
    if maximizing:
        value = -math.inf
        for col in moves:
            board.drop(col, player)
            score = minimax(board, depth - 1, alpha, beta, False, table, counter)
            board.undo(col, player)
            value = max(value, score)
            alpha = max(alpha, score)
            if beta <= alpha:
                break  # beta cut-off
    else:
        value = math.inf
        for col in moves:
            board.drop(col, player)
            score = minimax(board, depth - 1, alpha, beta, True, table, counter)
            board.undo(col, player)
            value = min(value, score)
            beta = min(beta, score)
            if beta <= alpha:
                break  # alpha cut-off

    if table is not None:
        if value <= window_alpha:
            table.put(key, UPPER, value)
        elif value >= window_beta:
            table.put(key, LOWER, value)
        else:
            table.put(key, EXACT, value)
    return value


def _score_column(
    board: SearchBoard,
    col: int,
    depth: int,
    alpha: float,
    table: TranspositionTable,
    counter: Optional[_Counter],
) -> float:
    if board.wins_at(col, Player.AI):
        return WIN_SCORE + depth - 1
    board.drop(col, Player.AI)
    score = minimax(board, depth - 1, alpha, math.inf, False, table, counter)
    board.undo(col, Player.AI)
    return score


def score_root_moves(board: Board, depth: int, counter: Optional[_Counter] = None) -> Dict[int, float]:
    """
    Exact minimax score of every valid column for the AI, in search order.

    Each column gets a full window, so a losing column reports how badly it
    loses instead of a bound. The table is shared, so later columns still
    reuse what earlier ones found.
    """

    search = SearchBoard.from_board(board)
    table = TranspositionTable()
    return {
        col: _score_column(search, col, depth, -math.inf, table, counter)
        for col in order_moves(search.valid_moves())
    }


def minimax_move(board: Board, depth: int) -> int:
    """Column with the best root score; ties go to the first in center-first order."""
    search = SearchBoard.from_board(board)
    table = TranspositionTable()
    counter = _Counter()

    best_col = -1
    best_score = -math.inf
    for col in order_moves(search.valid_moves()):
        # Alpha carries over, so columns after the best only get bounds.
        score = _score_column(search, col, depth, best_score, table, counter)
        if best_col < 0 or score > best_score:
            best_col = col
            best_score = score

    logger.debug(
        "minimax depth=%d col=%d score=%s nodes=%d cached=%d hits=%d",
        depth,
        best_col,
        best_score,
        counter.nodes,
        len(table),
        table.hits,
    )
    return best_col


class SearchEngine:
    """
    Picks a column for the AI at a given difficulty.

    The engine never touches the caller's board: it works on a private copy,
    so one engine may serve several threads. `rng` is the only state and can be
    seeded to make the random choices reproducible.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng if rng is not None else random.Random()

    def best_move(self, board: Board, difficulty: Difficulty) -> int:
        moves = board.valid_moves()
        if not moves:
            raise ValueError("no legal moves available")
        if len(moves) == 1:
            return moves[0]

        board = board.copy()

        if difficulty.mistake_rate > 0 and self.rng.random() < difficulty.mistake_rate:
            col = self._mistake_move(board, difficulty)
            logger.debug("%s mistake -> col %d", difficulty.value, col)
            return col

        if difficulty is Difficulty.EASY:
            col = self._easy_move(board)
        elif difficulty is Difficulty.NORMAL:
            col = self._normal_move(board)
        else:
            col = self.search_move(board, difficulty.search_depth)
        logger.debug("%s -> col %d", difficulty.value, col)
        return col

    def search_move(self, board: Board, depth: int) -> int:
        """Hard/Expert choice at any depth, without the mistake roll: win, block, then minimax."""
        board = board.copy()
        win = find_immediate_win(board, Player.AI)
        if win is not None:
            return win

        block = find_immediate_win(board, Player.HUMAN)
        if block is not None:
            return block

        return minimax_move(board, depth)

    def score_moves(self, board: Board, depth: int) -> Dict[int, float]:
        return score_root_moves(board, depth)

    def _easy_move(self, board: Board) -> int:
        block = find_immediate_win(board, Player.HUMAN)
        if block is not None:
            return block

        win = find_immediate_win(board, Player.AI)
        if win is not None:
            return win

        return self.rng.choice(board.valid_moves())

    def _normal_move(self, board: Board) -> int:
        for tactic in (find_immediate_win, find_setup_move):
            col = tactic(board, Player.AI)
            if col is not None:
                return col
            col = tactic(board, Player.HUMAN)
            if col is not None:
                return col

        candidates = order_moves(board.valid_moves())[:CENTER_CANDIDATES]
        return self.rng.choice(candidates)

    def _mistake_move(self, board: Board, difficulty: Difficulty) -> int:
        moves = board.valid_moves()
        if difficulty is Difficulty.EASY:
            return self.rng.choice(moves)

        # Random, but never hand the human an immediate win.
        safe = []
        for col in moves:
            board.drop_disc(col, Player.AI)
            if find_immediate_win(board, Player.HUMAN) is None:
                safe.append(col)
            board.undo_drop(col)
        return self.rng.choice(safe or moves)
