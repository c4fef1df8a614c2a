#!/usr/bin/env python3
"""
2048 Game - Command Line Interface
Play 2048 using arrow keys or WASD, 'u' to undo, 'q' to save and quit
"""

import argparse
import logging
import os
import select
import sys
import termios
import time
import tty

import numpy as np

from game2048.config import TICK_SECONDS, state_dir
from game2048.controller import GameController, minutes_to_seconds
from game2048.controls import direction_for_key
from game2048.observer import GameOverReason, SessionObserver
from game2048.persistence import JsonFileStore
from game2048.timer_utils import format_clock

# Updated high-contrast ANSI colors
COLORS = {
    2: '\033[97m',    # white
    4: '\033[90m',    # bright black
    8: '\033[36m',    # cyan
    16: '\033[31m',   # red
    32: '\033[32m',   # green
    64: '\033[33m',   # yellow
    128: '\033[35m',  # magenta
    256: '\033[34m',  # blue
    512: '\033[91m',  # bright red
    1024: '\033[92m', # bright green
    2048: '\033[95m', # bright magenta
}
RESET = '\033[0m'
BOLD = '\033[1m'
RED = '\033[91m'
GREEN = '\033[92m'
YELLOW = '\033[93m'
BLUE = '\033[94m'


def clear_screen():
    sys.stdout.write('\033[2J\033[H')


def format_tile(value):
    if value == 0:
        return "     "
    color = COLORS.get(value, YELLOW)
    num_str = str(value)
    padding = " " * (5 - len(num_str))
    return f"{padding}{color}{BOLD}{num_str}{RESET}"


class TerminalView(SessionObserver):
    """Redraws the board whenever the session reports a change."""

    def __init__(self):
        self.board = None
        self.score = 0
        self.best_score = 0
        self.seconds_remaining = None
        self.undos_remaining = 0
        self.can_undo = False
        self.message = ""

    def on_board_changed(self, board, previous_board):
        self.board = board

    def on_score_changed(self, score, best_score):
        self.score = score
        self.best_score = best_score

    def on_win(self):
        self.message = f"{GREEN}{BOLD}You win!{RESET} Keep going for a higher score."

    def on_game_over(self, reason):
        if reason == GameOverReason.TIME_EXPIRED:
            self.message = f"{RED}{BOLD}Time's up! Game Over{RESET}"
        else:
            self.message = f"{RED}{BOLD}Game Over{RESET}"
        self.draw()

    def on_timer_tick(self, seconds_remaining):
        self.seconds_remaining = seconds_remaining

    def on_undo_availability_changed(self, undos_remaining, can_undo):
        self.undos_remaining = undos_remaining
        self.can_undo = can_undo

    def draw(self):
        if self.board is None:
            return
        clear_screen()
        out = [f"{BOLD}2048 Game{RESET}",
               f"Score: {GREEN}{self.score}{RESET} | Best: {BLUE}{self.best_score}{RESET}"]
        if self.seconds_remaining is not None:
            out.append(f"Time: {YELLOW}{format_clock(self.seconds_remaining)}{RESET}")
        undo_state = "" if self.can_undo else " (unavailable)"
        out.append(f"Undo: {self.undos_remaining}{undo_state}")
        out.append("Arrow keys or WASD to move, 'u' to undo, 'q' to save and quit")
        out.append("")
        out.append("┌─────┬─────┬─────┬─────┐")
        for i, row in enumerate(self.board):
            out.append("│" + "│".join(format_tile(int(v)) for v in row) + "│")
            if i < len(self.board) - 1:
                out.append("├─────┼─────┼─────┼─────┤")
        out.append("└─────┴─────┴─────┴─────┘")
        if self.message:
            out.append("")
            out.append(self.message)
        sys.stdout.write("\r\n".join(out) + "\r\n")
        sys.stdout.flush()


def read_key(timeout=None):
    """Read one key press in raw mode; None if the timeout expires first.

    Raises EOFError once stdin is closed.
    """
    fd = sys.stdin.fileno()
    old_settings = termios.tcgetattr(fd)
    try:
        tty.setraw(fd)
        ready, _, _ = select.select([fd], [], [], timeout)
        if not ready:
            return None
        data = os.read(fd, 1)
        if not data:
            raise EOFError("stdin closed")
        ch = data.decode(errors='ignore')
        if ch == '\x1b':
            more, _, _ = select.select([fd], [], [], 0.05)
            if more:
                ch += os.read(fd, 2).decode(errors='ignore')
        return ch
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)


def parse_arguments(argv=None):
    parser = argparse.ArgumentParser(
        description="Play 2048 in the terminal",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument("--timed", "-t", action="store_true",
                        help="Play against the clock")
    parser.add_argument("--minutes", "-m", type=float, default=None,
                        help="Custom time limit for timed games")
    parser.add_argument("--resume", "-r", action="store_true",
                        help="Resume the saved game if there is one")
    parser.add_argument("--state-dir", type=str, default=state_dir(),
                        help="Directory for the saved game and best score")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log debug output to stderr")
    return parser.parse_args(argv)


def run(controller, view):
    session = controller.session
    next_tick = time.monotonic() + TICK_SECONDS
    view.draw()
    while not session.is_over:
        timeout = None
        if session.countdown.running:
            timeout = max(0.0, next_tick - time.monotonic())
        try:
            key = read_key(timeout)
        except EOFError:
            controller.pause()
            return False
        if key is None:
            controller.tick()
            next_tick = time.monotonic() + TICK_SECONDS
            view.draw()
            continue
        if key in ('q', 'Q', '\x03'):
            controller.pause()
            return False
        if key in ('u', 'U'):
            controller.undo()
        else:
            direction = direction_for_key(key)
            if direction is None:
                continue
            controller.apply_direction(direction)
        if not session.is_over:
            view.draw()
    return True


def main(argv=None):
    args = parse_arguments(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    view = TerminalView()
    controller = GameController(store=JsonFileStore(args.state_dir), observer=view)

    session = controller.resume_session() if args.resume else None
    if session is None:
        seconds = minutes_to_seconds(args.minutes) if args.minutes is not None else None
        if args.minutes is not None and seconds is None:
            sys.stdout.write(f"{YELLOW}Ignoring invalid --minutes {args.minutes}{RESET}\n")
        session = controller.start_session(timed=args.timed or seconds is not None,
                                           custom_seconds=seconds)

    finished = run(controller, view)
    if finished:
        sys.stdout.write(f"\nFinal Score: {GREEN}{session.score}{RESET}\n")
        sys.stdout.write(f"Highest Tile: {YELLOW}{int(np.max(session.board))}{RESET}\n")
    else:
        sys.stdout.write(f"\n{YELLOW}Game saved. Resume with --resume.{RESET}\n")
    sys.stdout.flush()


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.stdout.write(f"\n\n{YELLOW}Game interrupted. Thanks for playing!{RESET}\n")
        sys.stdout.flush()
