import logging
from enum import Enum

import numpy as np

logger = logging.getLogger(__name__)


class GameOverReason(str, Enum):
    BOARD_FULL = 'boardFull'
    TIME_EXPIRED = 'timeExpired'


class SessionObserver:
    """
    Receives notifications from a session. Rendering, sound, vibration and
    celebration effects hang off these hooks; every method is a no-op here so
    subclasses only override what they need.
    """

    def on_board_changed(self, board: np.ndarray, previous_board: np.ndarray):
        pass

    def on_score_changed(self, score: int, best_score: int):
        pass

    def on_win(self):
        pass

    def on_game_over(self, reason: GameOverReason):
        pass

    def on_timer_tick(self, seconds_remaining: int):
        pass

    def on_undo_availability_changed(self, undos_remaining: int, can_undo: bool):
        pass


def notify(observer, hook: str, *args):
    """Call an observer hook; a failing observer never affects the game."""
    if observer is None:
        return
    try:
        getattr(observer, hook)(*args)
    except Exception:
        logger.exception("Observer hook %s failed", hook)
