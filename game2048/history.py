from collections import deque
from dataclasses import dataclass
from typing import Iterable, Iterator, Optional

import numpy as np

from game2048.config import MAX_HISTORY


@dataclass(frozen=True, eq=False)
class Snapshot:
    """Pre-move copy of the parts of a session that undo restores."""
    board: np.ndarray
    score: int
    time_remaining: Optional[int]
    timed: bool

    def __post_init__(self):
        board = np.array(self.board, dtype=int)
        board.setflags(write=False)
        object.__setattr__(self, 'board', board)


class History:
    """
    Bounded undo stack. Holds at most MAX_HISTORY snapshots; pushing past the
    limit evicts the oldest one.
    """

    def __init__(self, snapshots: Iterable[Snapshot] = ()):
        self._stack = deque(snapshots, maxlen=MAX_HISTORY)

    def __len__(self) -> int:
        return len(self._stack)

    def __iter__(self) -> Iterator[Snapshot]:
        # Oldest first
        return iter(self._stack)

    def capture(self, session) -> Snapshot:
        return Snapshot(
            board=session.board.copy(),
            score=session.score,
            time_remaining=session.time_remaining if session.timed else None,
            timed=session.timed,
        )

    def push(self, snapshot: Snapshot):
        self._stack.append(snapshot)

    def clear(self):
        self._stack.clear()

    def can_undo(self, undos_remaining: int) -> bool:
        return len(self._stack) > 0 and undos_remaining > 0

    def undo(self, session) -> bool:
        """
        Restore the most recent snapshot onto the session.

        Fails without touching anything when the stack is empty or the undo
        budget is spent. The won flag is left as it is.
        """
        if not self.can_undo(session.undos_remaining):
            return False
        snapshot = self._stack.pop()
        session.board = snapshot.board.copy()
        session.score = snapshot.score
        if snapshot.timed:
            session.timed = True
            if snapshot.time_remaining is not None:
                session.time_remaining = snapshot.time_remaining
            session.start_countdown(session.time_remaining)
        session.undos_remaining -= 1
        return True
