"""
Save and resume support.

A session is stored as one JSON record under a single well-known key. Writes
are best effort: a failing store is logged and play carries on. Reads are
forgiving: each field that has the wrong shape falls back to its default
instead of failing the whole load.
"""

import json
import logging
import math
import os
import shutil
import tempfile
from typing import Optional

from game2048.board import board_from_list, board_to_list, create_empty_board
from game2048.config import (
    BEST_SCORE_KEY, DEFAULT_TIME_LIMIT, MAX_HISTORY, MAX_UNDOS, PREFERENCES_KEY, STATE_KEY,
    Preferences,
)
from game2048.history import History, Snapshot
from game2048.session import Session

logger = logging.getLogger(__name__)


# ===== Key-value stores =====

class MemoryStore:
    """In-process store, used for headless play and tests."""

    def __init__(self):
        self.data = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str):
        self.data[key] = value

    def delete(self, key: str):
        self.data.pop(key, None)


class JsonFileStore:
    """One file per key under a directory; writes replace the file atomically."""

    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str):
        os.makedirs(self.directory, exist_ok=True)
        tf = tempfile.NamedTemporaryFile('w', delete=False, dir=self.directory,
                                         encoding='utf-8', suffix='.tmp')
        tempname = tf.name
        try:
            with tf:
                tf.write(value)
            shutil.move(tempname, self._path(key))
        except BaseException:
            # Leave no partial temp file behind
            if os.path.exists(tempname):
                os.remove(tempname)
            raise

    def delete(self, key: str):
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass


# ===== Field helpers =====

def _int_or(value, default: int, minimum: int = 0) -> int:
    # JSON numbers may come back as floats; bools are not scores.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value) or value < minimum:
        return default
    return int(value)


def snapshot_to_dict(snapshot: Snapshot) -> dict:
    return {
        'board': board_to_list(snapshot.board),
        'score': snapshot.score,
        'timeRemaining': snapshot.time_remaining,
        'timed': snapshot.timed,
    }


def snapshot_from_dict(data) -> Optional[Snapshot]:
    """Decode one history entry; None when it cannot be trusted."""
    if not isinstance(data, dict):
        return None
    board = board_from_list(data.get('board'))
    if board is None:
        return None
    timed = data.get('timed') is True
    time_remaining = data.get('timeRemaining')
    if timed:
        time_remaining = _int_or(time_remaining, DEFAULT_TIME_LIMIT)
    else:
        time_remaining = None
    return Snapshot(
        board=board,
        score=_int_or(data.get('score'), 0),
        time_remaining=time_remaining,
        timed=timed,
    )


def session_to_dict(session: Session) -> dict:
    return {
        'board': board_to_list(session.board),
        'score': int(session.score),
        'bestScore': int(session.best_score),
        'timed': bool(session.timed),
        'timeRemaining': int(session.time_remaining),
        'won': bool(session.won),
        'history': [snapshot_to_dict(s) for s in session.history],
        'undosRemaining': int(session.undos_remaining),
    }


def session_from_dict(data: dict, **session_kwargs) -> Session:
    """Rebuild a session, substituting defaults for malformed fields."""
    board = board_from_list(data.get('board'))
    if board is None:
        logger.warning("Saved board is malformed; starting from an empty board")
        board = create_empty_board()

    history_data = data.get('history')
    snapshots = []
    if isinstance(history_data, list):
        for item in history_data:
            snapshot = snapshot_from_dict(item)
            if snapshot is None:
                logger.warning("Dropping malformed history entry")
                continue
            snapshots.append(snapshot)
    snapshots = snapshots[-MAX_HISTORY:]

    undos = min(MAX_UNDOS, _int_or(data.get('undosRemaining'), MAX_UNDOS))

    return Session(
        board=board,
        score=_int_or(data.get('score'), 0),
        best_score=_int_or(data.get('bestScore'), 0),
        won=bool(data.get('won')),
        timed=bool(data.get('timed')),
        time_remaining=_int_or(data.get('timeRemaining'), DEFAULT_TIME_LIMIT),
        undos_remaining=undos,
        history=History(snapshots),
        **session_kwargs,
    )


# ===== Gateway =====

class PersistenceGateway:
    def __init__(self, store, key: str = STATE_KEY):
        self.store = store
        self.key = key

    def save(self, session: Session):
        """Write the full session. Failures are logged and ignored."""
        try:
            self.store.set(self.key, json.dumps(session_to_dict(session)))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not save game state: %s", e)

    def load(self, **session_kwargs) -> Optional[Session]:
        """
        Read the saved session, or None if there is nothing usable. Extra
        keyword arguments (gateway, observer, rng) go to the Session.
        """
        try:
            raw = self.store.get(self.key)
        except OSError as e:
            logger.warning("Could not read game state: %s", e)
            return None
        if raw is None:
            return None
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Saved game state is not valid JSON: %s", e)
            return None
        if not isinstance(data, dict):
            logger.warning("Saved game state is not an object; ignoring it")
            return None
        return session_from_dict(data, **session_kwargs)

    def clear(self):
        try:
            self.store.delete(self.key)
        except OSError as e:
            logger.warning("Could not clear game state: %s", e)

    def has_saved_session(self) -> bool:
        try:
            return self.store.get(self.key) is not None
        except OSError:
            return False

    # ---------- Values that outlive a session ----------

    def load_best_score(self) -> int:
        try:
            raw = self.store.get(BEST_SCORE_KEY)
        except OSError as e:
            logger.warning("Could not read best score: %s", e)
            return 0
        if raw is None:
            return 0
        try:
            return _int_or(json.loads(raw), 0)
        except ValueError:
            return 0

    def save_best_score(self, value: int):
        try:
            self.store.set(BEST_SCORE_KEY, json.dumps(int(value)))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not save best score: %s", e)

    def load_preferences(self) -> Preferences:
        try:
            raw = self.store.get(PREFERENCES_KEY)
            return Preferences.from_dict(json.loads(raw)) if raw is not None else Preferences()
        except (OSError, ValueError) as e:
            logger.warning("Could not read preferences: %s", e)
            return Preferences()

    def save_preferences(self, preferences: Preferences):
        try:
            self.store.set(PREFERENCES_KEY, json.dumps(preferences.to_dict()))
        except (OSError, TypeError, ValueError) as e:
            logger.warning("Could not save preferences: %s", e)
