"""
Countdown bookkeeping for timed sessions.

The countdown never schedules anything itself: the host calls ``tick`` once
per second (an event loop callback, a ``select`` timeout, a test) and stops
calling it when the countdown is no longer running.
"""

from game2048.config import DEFAULT_TIME_LIMIT


def format_clock(seconds):
    """Format remaining seconds as MM:SS"""
    seconds = max(0, int(seconds))
    minutes, secs = divmod(seconds, 60)
    return f"{minutes:02d}:{secs:02d}"


class Countdown:
    """Remaining time plus whether the periodic tick is currently armed"""

    def __init__(self, remaining=DEFAULT_TIME_LIMIT):
        self.remaining = int(remaining)
        self.running = False

    def start(self, seconds=None):
        """(Re)arm the countdown, optionally from a new starting value."""
        if seconds is not None:
            self.remaining = int(seconds)
        self.running = True

    def stop(self):
        # Safe to call repeatedly
        self.running = False

    def tick(self):
        """Advance one second. Returns True when this tick reached zero."""
        if not self.running:
            return False
        self.remaining = max(0, self.remaining - 1)
        if self.remaining == 0:
            self.running = False
            return True
        return False

    def __repr__(self):
        state = "running" if self.running else "stopped"
        return f"Countdown({format_clock(self.remaining)}, {state})"
