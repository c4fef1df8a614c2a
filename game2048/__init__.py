from game2048.board import (
    apply_move, create_empty_board, is_terminal, new_board, resolve_line, spawn_tile, valid_moves,
)
from game2048.controller import GameController
from game2048.history import History, Snapshot
from game2048.observer import GameOverReason, SessionObserver
from game2048.persistence import JsonFileStore, MemoryStore, PersistenceGateway
from game2048.session import Session

__all__ = [
    'apply_move', 'create_empty_board', 'is_terminal', 'new_board', 'resolve_line',
    'spawn_tile', 'valid_moves',
    'GameController', 'History', 'Snapshot', 'GameOverReason', 'SessionObserver',
    'JsonFileStore', 'MemoryStore', 'PersistenceGateway', 'Session',
]
