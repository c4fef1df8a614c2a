from typing import Optional

from game2048.config import SWIPE_THRESHOLD

KEY_DIRECTIONS = {
    # Key names as reported by browsers and GUI toolkits
    'ArrowUp': 'up',
    'ArrowDown': 'down',
    'ArrowLeft': 'left',
    'ArrowRight': 'right',
    # Terminal escape sequences
    '\x1b[A': 'up',
    '\x1b[B': 'down',
    '\x1b[C': 'right',
    '\x1b[D': 'left',
    # WASD
    'w': 'up',
    'a': 'left',
    's': 'down',
    'd': 'right',
}


def direction_for_key(key: str) -> Optional[str]:
    """Map a key name, escape sequence or WASD letter to a direction."""
    if key in KEY_DIRECTIONS:
        return KEY_DIRECTIONS[key]
    if len(key) == 1:
        return KEY_DIRECTIONS.get(key.lower())
    return None


def direction_for_swipe(dx: float, dy: float, threshold: float = SWIPE_THRESHOLD) -> Optional[str]:
    """
    Turn a swipe (end minus start, screen coordinates with y pointing down)
    into a direction. The dominant axis wins; short swipes are ignored.
    """
    abs_dx, abs_dy = abs(dx), abs(dy)
    if max(abs_dx, abs_dy) <= threshold:
        return None
    if abs_dx > abs_dy:
        return 'right' if dx > 0 else 'left'
    return 'down' if dy > 0 else 'up'
