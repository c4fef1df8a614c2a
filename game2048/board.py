import random
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from game2048.config import DIRECTIONS, GRID_N, SPAWN_FOUR_PROBABILITY, WIN_TILE

EMPTY = 0
MAX_TILE = 2 ** 62  # largest power of two an int64 cell holds

# ===== Merge event structures =====

@dataclass(frozen=True)
class LineMerge:
    value: int
    index: int  # output slot of the merged tile, counted from the slide end


@dataclass(frozen=True)
class MergeEvent:
    row: int
    col: int
    value: int


@dataclass
class MoveResult:
    changed: bool
    score_delta: int = 0
    won_this_move: bool = False
    merges: List[MergeEvent] = field(default_factory=list)


def _check_direction(direction: str):
    if direction not in DIRECTIONS:
        raise ValueError(f"Invalid move direction: {direction!r}")


def create_empty_board() -> np.ndarray:
    return np.zeros((GRID_N, GRID_N), dtype=int)


def spawn_tile(board: np.ndarray, rng=random) -> Optional[Tuple[int, int, int]]:
    """Add a random tile and return (row, col, value) or None if no space."""
    empty = [(i, j) for i in range(GRID_N) for j in range(GRID_N) if board[i, j] == EMPTY]
    if not empty:
        return None
    i, j = rng.choice(empty)
    val = 4 if rng.random() < SPAWN_FOUR_PROBABILITY else 2
    board[i, j] = val
    return (i, j, val)


def new_board(rng=random) -> np.ndarray:
    """Fresh board with the two starting tiles."""
    board = create_empty_board()
    spawn_tile(board, rng)
    spawn_tile(board, rng)
    return board


def _transform(arr: np.ndarray, direction: str) -> Tuple[np.ndarray, bool]:
    """Return a transformed view where every move slides toward index 0."""
    rotated = False
    out = arr
    if direction in ['up', 'down']:
        out = out.T
        rotated = True
    if direction in ['down', 'right']:
        out = np.flip(out, axis=1)
    return out, rotated


def _inverse_transform(arr: np.ndarray, direction: str, rotated: bool) -> np.ndarray:
    out = arr
    if direction in ['down', 'right']:
        out = np.flip(out, axis=1)
    if rotated:
        out = out.T
    return out


def _board_coords(r: int, c: int, direction: str) -> Tuple[int, int]:
    """Map (line, slot) in transformed space back to (row, col)."""
    if direction in ['down', 'right']:
        c = GRID_N - 1 - c
    if direction in ['up', 'down']:
        r, c = c, r
    return r, c


def resolve_line(line) -> Tuple[np.ndarray, int, List[LineMerge]]:
    """
    Slide and merge a single line toward index 0.

    Tiles are compacted, then merged in one left-to-right sweep. A slot that
    was produced by a merge is marked consumed and never merges again in the
    same sweep, so [2, 2, 2, 2] becomes [4, 4, 0, 0] rather than [8, 0, 0, 0].
    Returns (new_line, score_delta, merges).
    """
    values = [int(v) for v in line if v != EMPTY]
    out: List[int] = []
    consumed: List[bool] = []
    merges: List[LineMerge] = []
    score_delta = 0

    for v in values:
        if out and out[-1] == v and not consumed[-1]:
            merged_val = v * 2
            out[-1] = merged_val
            consumed[-1] = True
            score_delta += merged_val
            merges.append(LineMerge(value=merged_val, index=len(out) - 1))
        else:
            out.append(v)
            consumed.append(False)

    # Pad with empties
    while len(out) < len(line):
        out.append(EMPTY)
    return np.array(out, dtype=int), score_delta, merges


def apply_move(board: np.ndarray, direction: str, already_won: bool = False) -> MoveResult:
    """
    Resolve a move over all four lines, mutating the board in place when the
    move changes it. A slide without any merge still counts as a move.
    """
    _check_direction(direction)

    vboard, rotated = _transform(board.copy(), direction)
    vboard = vboard.copy()

    changed = False
    total_score = 0
    merges: List[MergeEvent] = []

    for r in range(GRID_N):
        old_row = vboard[r].copy()
        new_row, score_delta, line_merges = resolve_line(old_row)
        vboard[r] = new_row
        total_score += score_delta
        for m in line_merges:
            row, col = _board_coords(r, m.index, direction)
            merges.append(MergeEvent(row=row, col=col, value=m.value))
        if not np.array_equal(old_row, new_row):
            changed = True

    if not changed:
        return MoveResult(changed=False)

    board[...] = _inverse_transform(vboard, direction, rotated)
    won = not already_won and any(m.value == WIN_TILE for m in merges)
    return MoveResult(changed=True, score_delta=total_score, won_this_move=won, merges=merges)


def can_move(board: np.ndarray, direction: str) -> bool:
    """Check if a move in the given direction would change the board."""
    _check_direction(direction)
    vboard, _ = _transform(board, direction)
    for r in range(GRID_N):
        new_row, _, _ = resolve_line(vboard[r])
        if not np.array_equal(vboard[r], new_row):
            return True
    return False


def valid_moves(board: np.ndarray) -> List[str]:
    """Return list of directions that would change the board."""
    return [d for d in DIRECTIONS if can_move(board, d)]


def is_terminal(board: np.ndarray) -> bool:
    """Full board with no two orthogonally adjacent equal tiles."""
    if np.any(board == EMPTY):
        return False
    if np.any(board[:, :-1] == board[:, 1:]):
        return False
    if np.any(board[:-1, :] == board[1:, :]):
        return False
    return True


def is_valid_cell(value) -> bool:
    """Empty, or a power of two between 2 and MAX_TILE."""
    if value is None:
        return True
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return 2 <= value <= MAX_TILE and (value & (value - 1)) == 0


def board_to_list(board: np.ndarray) -> List[List[Optional[int]]]:
    return [[int(v) if v != EMPTY else None for v in row] for row in board]


def board_from_list(rows) -> Optional[np.ndarray]:
    """Build a board from nested lists of null/int; None when malformed."""
    if not isinstance(rows, list) or len(rows) != GRID_N:
        return None
    board = create_empty_board()
    for i, row in enumerate(rows):
        if not isinstance(row, list) or len(row) != GRID_N:
            return None
        for j, cell in enumerate(row):
            if not is_valid_cell(cell):
                return None
            board[i, j] = EMPTY if cell is None else cell
    return board
