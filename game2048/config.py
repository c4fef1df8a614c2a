import os
from dataclasses import asdict, dataclass

# ------------------------
# Game rules
# ------------------------
GRID_N = 4
WIN_TILE = 2048
SPAWN_FOUR_PROBABILITY = 0.1
DIRECTIONS = ('up', 'down', 'left', 'right')

# Undo
MAX_HISTORY = 3
MAX_UNDOS = 3

# Timed mode (seconds)
DEFAULT_TIME_LIMIT = 300
TICK_SECONDS = 1.0

# Input
SWIPE_THRESHOLD = 20

# ------------------------
# Storage
# ------------------------
STATE_KEY = 'gameState'
BEST_SCORE_KEY = 'bestScore'
PREFERENCES_KEY = 'preferences'
STATE_DIR_ENV = 'GAME2048_STATE_DIR'
DEFAULT_STATE_DIR = os.path.join(os.path.expanduser('~'), '.game2048')

THEMES = ('default', 'stealth')


def state_dir() -> str:
    """Directory for saved games, overridable through GAME2048_STATE_DIR."""
    return os.environ.get(STATE_DIR_ENV, DEFAULT_STATE_DIR)


@dataclass
class Preferences:
    """Feedback-layer settings. The engine stores them but never reads them."""
    theme: str = 'default'
    sound: bool = False
    vibration: bool = False

    @classmethod
    def from_dict(cls, data) -> 'Preferences':
        if not isinstance(data, dict):
            return cls()
        theme = data.get('theme')
        return cls(
            theme=theme if theme in THEMES else 'default',
            sound=data.get('sound') is True,
            vibration=data.get('vibration') is True,
        )

    def to_dict(self) -> dict:
        return asdict(self)
