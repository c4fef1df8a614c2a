import logging
import math
import random
from typing import Optional

from game2048.board import new_board
from game2048.config import DEFAULT_TIME_LIMIT
from game2048.observer import GameOverReason, notify
from game2048.persistence import MemoryStore, PersistenceGateway
from game2048.session import Session

logger = logging.getLogger(__name__)


def minutes_to_seconds(minutes) -> Optional[int]:
    """Custom timer input in minutes; None unless it gives at least one second."""
    if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
        return None
    if not math.isfinite(minutes) or minutes <= 0:
        return None
    seconds = int(math.floor(minutes * 60))
    return seconds if seconds >= 1 else None


class GameController:
    """
    Entry point for the input and presentation layers. Owns the one active
    session and the storage slot it is saved to; every call from the outside
    goes through here and runs to completion before the next one.
    """

    def __init__(self, store=None, observer=None, rng=None):
        self.gateway = PersistenceGateway(store if store is not None else MemoryStore())
        self.observer = observer
        self.rng = rng
        self.session: Optional[Session] = None

    def _session_kwargs(self) -> dict:
        return {'gateway': self.gateway, 'observer': self.observer, 'rng': self.rng}

    def _announce(self, session: Session):
        notify(self.observer, 'on_board_changed', session.board.copy(), None)
        notify(self.observer, 'on_score_changed', session.score, session.best_score)
        notify(self.observer, 'on_undo_availability_changed', session.undos_remaining, session.can_undo)
        if session.timed:
            notify(self.observer, 'on_timer_tick', session.time_remaining)

    # ---------- Session lifecycle ----------

    def start_session(self, timed: bool = False, custom_seconds=None) -> Session:
        """Abandon any saved game and start a fresh one."""
        self.gateway.clear()
        if self.session is not None:
            self.session.stop_countdown()

        seconds = DEFAULT_TIME_LIMIT
        if custom_seconds is not None:
            if isinstance(custom_seconds, bool) or not isinstance(custom_seconds, (int, float)) \
                    or not math.isfinite(custom_seconds) or custom_seconds <= 0:
                logger.warning("Ignoring invalid custom time %r; using %ds", custom_seconds, seconds)
            else:
                seconds = max(1, int(custom_seconds))

        session = Session(
            board=new_board(self.rng if self.rng is not None else random),
            best_score=self.gateway.load_best_score(),
            timed=timed,
            time_remaining=seconds,
            **self._session_kwargs(),
        )
        self.session = session
        self.gateway.save(session)
        if timed:
            session.start_countdown(seconds)
        logger.info("Started %s session", "timed" if timed else "untimed")
        self._announce(session)
        return session

    def resume_session(self) -> Optional[Session]:
        """Load the saved game, if any, and restart its countdown."""
        session = self.gateway.load(**self._session_kwargs())
        if session is None:
            return None
        stored_best = self.gateway.load_best_score()
        if stored_best > session.best_score:
            session.best_score = stored_best

        if self.session is not None:
            self.session.stop_countdown()
        self.session = session
        self._announce(session)
        if session.timed:
            if session.time_remaining > 0:
                session.start_countdown(session.time_remaining)
            else:
                session.end(GameOverReason.TIME_EXPIRED)
        logger.info("Resumed session: %r", session)
        return session

    def clear_session(self):
        if self.session is not None:
            self.session.stop_countdown()
        self.session = None
        self.gateway.clear()

    def has_saved_session(self) -> bool:
        return self.gateway.has_saved_session()

    def pause(self):
        """Leave the game screen: save and stop the countdown."""
        if self.session is None or self.session.is_over:
            return
        self.gateway.save(self.session)
        self.session.stop_countdown()

    # ---------- Input ----------

    def apply_direction(self, direction: str) -> bool:
        if self.session is None:
            return False
        return self.session.apply_direction(direction)

    def undo(self) -> bool:
        if self.session is None:
            return False
        return self.session.undo()

    def tick(self) -> bool:
        if self.session is None:
            return False
        return self.session.tick()
