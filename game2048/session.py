import logging
import random
from typing import Optional

import numpy as np

from game2048.board import apply_move, create_empty_board, is_terminal, spawn_tile
from game2048.config import DEFAULT_TIME_LIMIT, MAX_UNDOS
from game2048.history import History
from game2048.observer import GameOverReason, notify
from game2048.timer_utils import Countdown

logger = logging.getLogger(__name__)


class Session:
    """
    The authoritative state of one game: board, score, win flag, undo budget
    and, for timed games, the countdown.

    A session sequences every move end to end (snapshot, resolve, score,
    spawn, terminal check, persistence) and owns the win, terminal and timer
    policy. Collaborators are passed in: ``gateway`` persists the session
    after each change and ``observer`` receives notifications. Both are
    optional.
    """

    def __init__(self, board: Optional[np.ndarray] = None, score: int = 0, best_score: int = 0,
                 won: bool = False, timed: bool = False, time_remaining: int = DEFAULT_TIME_LIMIT,
                 undos_remaining: int = MAX_UNDOS, history: Optional[History] = None,
                 gateway=None, observer=None, rng=None):
        self.board = create_empty_board() if board is None else np.array(board, dtype=int)
        self.score = score
        self.best_score = max(best_score, score)
        self.won = won
        self.timed = timed
        self.countdown = Countdown(time_remaining)
        self.undos_remaining = undos_remaining
        self.history = History() if history is None else history
        self.game_over: Optional[GameOverReason] = None
        self.gateway = gateway
        self.observer = observer
        self.rng = rng if rng is not None else random

    # ---------- State ----------

    @property
    def time_remaining(self) -> int:
        return self.countdown.remaining

    @time_remaining.setter
    def time_remaining(self, value: int):
        self.countdown.remaining = int(value)

    @property
    def is_over(self) -> bool:
        return self.game_over is not None

    @property
    def can_undo(self) -> bool:
        return not self.is_over and self.history.can_undo(self.undos_remaining)

    # ---------- Moves ----------

    def apply_direction(self, direction: str) -> bool:
        """
        Play one move. Returns True if the board changed; an illegal move
        (nothing slides or merges) is a silent no-op.
        """
        if self.is_over:
            return False

        snapshot = self.history.capture(self)
        previous_board = self.board.copy()
        result = apply_move(self.board, direction, already_won=self.won)
        if not result.changed:
            return False

        self.history.push(snapshot)
        self._add_score(result.score_delta)
        if result.won_this_move:
            self.won = True
            logger.info("Reached the winning tile with score %d", self.score)

        spawn_tile(self.board, self.rng)
        notify(self.observer, 'on_board_changed', self.board.copy(), previous_board)
        notify(self.observer, 'on_score_changed', self.score, self.best_score)
        if result.won_this_move:
            # Observers see the winning board before the win itself
            notify(self.observer, 'on_win')
        self._notify_undo()

        if is_terminal(self.board):
            self.end(GameOverReason.BOARD_FULL)
        else:
            self._persist()
        return True

    def undo(self) -> bool:
        """Step back one move. No-op once the game has ended."""
        if self.is_over:
            return False
        previous_board = self.board.copy()
        if not self.history.undo(self):
            return False
        notify(self.observer, 'on_board_changed', self.board.copy(), previous_board)
        notify(self.observer, 'on_score_changed', self.score, self.best_score)
        if self.timed:
            notify(self.observer, 'on_timer_tick', self.time_remaining)
        self._notify_undo()
        self._persist()
        return True

    # ---------- Timer ----------

    def start_countdown(self, seconds: Optional[int] = None):
        if not self.timed or self.is_over:
            return
        self.countdown.start(seconds)

    def stop_countdown(self):
        self.countdown.stop()

    def tick(self) -> bool:
        """
        Advance the countdown by one second. Returns True if the countdown is
        still running afterwards.
        """
        if not self.timed or not self.countdown.running:
            return False
        expired = self.countdown.tick()
        notify(self.observer, 'on_timer_tick', self.time_remaining)
        if expired:
            self.end(GameOverReason.TIME_EXPIRED)
            return False
        self._persist()
        return True

    def end(self, reason: GameOverReason):
        # Each terminal condition fires at most once; the session is then frozen.
        if self.is_over:
            return
        self.countdown.stop()
        self.game_over = reason
        logger.info("Game over (%s) with score %d", reason.value, self.score)
        notify(self.observer, 'on_game_over', reason)
        self._notify_undo()
        if self.gateway is not None:
            self.gateway.clear()

    # ---------- Internals ----------

    def _add_score(self, delta: int):
        self.score += delta
        if self.score > self.best_score:
            self.best_score = self.score
            if self.gateway is not None:
                self.gateway.save_best_score(self.best_score)

    def _notify_undo(self):
        notify(self.observer, 'on_undo_availability_changed', self.undos_remaining, self.can_undo)

    def _persist(self):
        if self.gateway is not None:
            self.gateway.save(self)

    def __repr__(self):
        return (f"Session(score={self.score}, best={self.best_score}, won={self.won}, "
                f"timed={self.timed}, time_remaining={self.time_remaining}, "
                f"undos={self.undos_remaining}, history={len(self.history)}, "
                f"game_over={self.game_over})")
