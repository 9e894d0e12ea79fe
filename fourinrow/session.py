"""Game session: owns the authoritative board and drives the AI off the event loop."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Callable, List, Optional

from fourinrow.engine import Board, Cell, Difficulty, GameState, Player, resolve_state
from fourinrow.search import SearchEngine
from fourinrow.storage import GameStats, Settings, SettingsStore

logger = logging.getLogger(__name__)

AI_PACING_DELAY = 0.4  # seconds between the AI's decision and its drop


class FeedbackEvent(str, enum.Enum):
    DISC_DROP = "disc_drop"
    WIN = "win"
    LOSS = "loss"
    DRAW = "draw"
    INVALID_MOVE = "invalid_move"


FeedbackListener = Callable[[FeedbackEvent], None]


class GameSession:
    """
    One human-vs-AI game at a time.

    Board mutation happens only on the event loop that owns the session. The
    search runs in a worker thread on a board copy; its result is applied only
    if the session revision has not changed since the job was started.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        engine: Optional[SearchEngine] = None,
        store: Optional[SettingsStore] = None,
        pacing_delay: float = AI_PACING_DELAY,
    ) -> None:
        settings = settings if settings is not None else Settings()
        self.settings = settings
        self.engine = engine if engine is not None else SearchEngine()
        self.store = store
        self.pacing_delay = pacing_delay

        self.board = Board()
        self.state = GameState.playing()
        self.current_player = settings.first_player
        self.has_started = False
        self.is_ai_thinking = False
        self.winning_cells: List[Cell] = []

        self._listeners: List[FeedbackListener] = []
        self._ai_task: Optional[asyncio.Task] = None
        self._revision = 0

    # Settings passthroughs

    @property
    def difficulty(self) -> Difficulty:
        return self.settings.difficulty

    @property
    def first_player(self) -> Player:
        return self.settings.first_player

    @property
    def stats(self) -> GameStats:
        return self.settings.stats

    @property
    def revision(self) -> int:
        return self._revision

    def set_difficulty(self, difficulty: Difficulty) -> None:
        self.settings.difficulty = difficulty
        self._persist()

    def set_first_player(self, player: Player) -> None:
        self.settings.first_player = player
        if not self.has_started:
            self.current_player = player
        self._persist()

    def set_sound_enabled(self, enabled: bool) -> None:
        self.settings.sound_enabled = enabled
        self._persist()

    def reset_stats(self) -> None:
        self.settings.stats.reset()
        self._persist()

    def _persist(self) -> None:
        if self.store is not None:
            self.store.save(self.settings)

    # Feedback port

    def subscribe(self, listener: FeedbackListener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: FeedbackEvent) -> None:
        for listener in self._listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("feedback listener failed on %s", event.value)

    # Lifecycle

    def start(self) -> None:
        self.has_started = True
        self._reset_board()

    def restart(self) -> None:
        if not self.has_started:
            return
        self._reset_board()

    def _reset_board(self) -> None:
        if self._ai_task is not None:
            self._ai_task.cancel()
            self._ai_task = None
        self._revision += 1

        self.board = Board()
        self.state = GameState.playing()
        self.current_player = self.first_player
        self.is_ai_thinking = False
        self.winning_cells = []

        if self.current_player is Player.AI:
            self.schedule_ai_move()

    # Moves

    @property
    def can_human_drop(self) -> bool:
        return (
            self.has_started
            and not self.state.is_over
            and self.current_player is Player.HUMAN
            and not self.is_ai_thinking
        )

    def drop_disc(self, col: int) -> Optional[int]:
        """Human input. Returns the landing row, or None when the move is rejected."""
        if not self.can_human_drop or not self.board.can_drop(col):
            self._emit(FeedbackEvent.INVALID_MOVE)
            return None
        return self._perform_drop(col, Player.HUMAN)

    def _perform_drop(self, col: int, player: Player) -> Optional[int]:
        row = self.board.drop_disc(col, player)
        if row is None:
            return None
        self._emit(FeedbackEvent.DISC_DROP)

        self.state = resolve_state(self.board, player)
        if self.state.is_over:
            self.winning_cells = list(self.board.winning_cells or [])
            self._handle_game_end()
            return row

        self.current_player = player.opponent
        if self.current_player is Player.AI:
            self.schedule_ai_move()
        return row

    def _handle_game_end(self) -> None:
        if self.state.winner is Player.HUMAN:
            self.stats.record_win(self.difficulty)
            self._emit(FeedbackEvent.WIN)
        elif self.state.winner is Player.AI:
            self.stats.record_loss(self.difficulty)
            self._emit(FeedbackEvent.LOSS)
        else:
            self.stats.record_draw(self.difficulty)
            self._emit(FeedbackEvent.DRAW)
        self._persist()

    # AI job

    def schedule_ai_move(self) -> Optional[asyncio.Task]:
        """Start the AI job on the running loop; ignored while one is in flight."""
        if self.is_ai_thinking:
            return None
        self.is_ai_thinking = True
        task = asyncio.get_running_loop().create_task(
            self._run_ai(self.board.copy(), self.difficulty, self._revision)
        )
        self._ai_task = task
        return task

    async def _run_ai(self, snapshot: Board, difficulty: Difficulty, revision: int) -> None:
        task = asyncio.current_task()
        loop = asyncio.get_running_loop()
        try:
            col = await loop.run_in_executor(None, self.engine.best_move, snapshot, difficulty)
            await asyncio.sleep(self.pacing_delay)
            self.apply_ai_move(col, revision)
        finally:
            # A restart may already have replaced this job; leave the new one alone.
            if self._ai_task is task:
                self._ai_task = None
                self.is_ai_thinking = False

    def apply_ai_move(self, col: int, revision: int) -> bool:
        """Apply a finished AI decision; stale or out-of-turn results are dropped."""
        if revision != self._revision:
            logger.debug("discarding AI move %d from revision %d (now %d)", col, revision, self._revision)
            return False
        if self.state.is_over or self.current_player is not Player.AI or not self.is_ai_thinking:
            self.is_ai_thinking = False
            return False
        self.is_ai_thinking = False
        return self._perform_drop(col, Player.AI) is not None

    async def wait_for_ai(self) -> None:
        """Wait for the AI job in flight, if any; an error raised by the search surfaces here."""
        task = self._ai_task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            if not task.cancelled():
                raise

    # Presentation helpers

    @property
    def status_text(self) -> str:
        if not self.has_started:
            return "Press play to start"
        if self.state.winner is Player.HUMAN:
            return "You win!"
        if self.state.winner is Player.AI:
            return "AI wins!"
        if self.state.is_draw:
            return "Draw!"
        if self.is_ai_thinking:
            return "Thinking..."
        return "Your turn" if self.current_player is Player.HUMAN else "AI's turn"
