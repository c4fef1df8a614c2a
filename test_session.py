import json
import unittest
import numpy as np
from unittest.mock import Mock, patch
from game2048.config import BEST_SCORE_KEY, STATE_KEY
from game2048.observer import GameOverReason, SessionObserver
from game2048.persistence import MemoryStore, PersistenceGateway
from game2048.session import Session


def board_with(*cells):
    board = np.zeros((4, 4), dtype=int)
    for row, col, value in cells:
        board[row, col] = value
    return board


ALMOST_FULL = np.array([
    [2, 4, 2, 4],
    [4, 2, 4, 2],
    [2, 4, 2, 4],
    [0, 8, 16, 32]
])


def spawn_two_at_corner(board, rng):
    board[3, 3] = 2
    return (3, 3, 2)


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.store = MemoryStore()
        self.gateway = PersistenceGateway(self.store)
        self.observer = Mock(spec=SessionObserver)

    def make_session(self, board, **kwargs):
        return Session(board=board, gateway=self.gateway, observer=self.observer, **kwargs)


@patch('game2048.session.spawn_tile')
class TestApplyDirection(SessionTestCase):

    def test_successful_move(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2), (0, 1, 2)))
        self.assertTrue(session.apply_direction('left'))
        np.testing.assert_array_equal(session.board, board_with((0, 0, 4)))
        self.assertEqual(session.score, 4)
        self.assertEqual(len(session.history), 1)
        mock_spawn.assert_called_once()
        self.assertIn(STATE_KEY, self.store.data)

    def test_board_changed_gets_previous_board(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2), (0, 1, 2)))
        session.apply_direction('left')
        board, previous = self.observer.on_board_changed.call_args[0]
        np.testing.assert_array_equal(board, board_with((0, 0, 4)))
        np.testing.assert_array_equal(previous, board_with((0, 0, 2), (0, 1, 2)))
        self.observer.on_score_changed.assert_called_with(4, 4)
        self.observer.on_undo_availability_changed.assert_called_with(3, True)

    def test_illegal_move_is_noop(self, mock_spawn):
        start = board_with((0, 0, 2), (1, 0, 4))
        session = self.make_session(start.copy(), score=10)
        self.assertFalse(session.apply_direction('left'))
        np.testing.assert_array_equal(session.board, start)
        self.assertEqual(session.score, 10)
        self.assertEqual(len(session.history), 0)
        mock_spawn.assert_not_called()
        self.assertEqual(self.store.data, {})
        self.observer.on_board_changed.assert_not_called()

    def test_best_score_tracks_score(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2), (0, 1, 2), (1, 0, 8), (1, 1, 8)), best_score=10)
        session.apply_direction('left')
        self.assertEqual(session.score, 20)
        self.assertEqual(session.best_score, 20)
        self.assertEqual(json.loads(self.store.data[BEST_SCORE_KEY]), 20)

    def test_best_score_never_decreases(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2), (0, 1, 2)), best_score=100)
        session.apply_direction('left')
        self.assertEqual(session.best_score, 100)
        self.assertNotIn(BEST_SCORE_KEY, self.store.data)

    def test_win_fires_once(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 512), (0, 1, 512), (1, 0, 1024)))
        session.apply_direction('left')
        self.assertFalse(session.won)
        session.apply_direction('up')
        self.assertTrue(session.won)
        self.observer.on_win.assert_called_once()
        # Another 2048 merge does not fire again
        session.board[:] = board_with((0, 0, 1024), (0, 1, 1024))
        session.apply_direction('right')
        self.observer.on_win.assert_called_once()

    def test_win_reported_after_board_and_score(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 1024), (0, 1, 1024)))
        session.apply_direction('left')
        names = [name for name, _, _ in self.observer.mock_calls]
        self.assertLess(names.index('on_board_changed'), names.index('on_win'))
        self.assertLess(names.index('on_score_changed'), names.index('on_win'))
        board, _ = self.observer.on_board_changed.call_args[0]
        self.assertEqual(board[0, 0], 2048)

    def test_undo_keeps_won(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 1024), (0, 1, 1024)))
        session.apply_direction('left')
        self.assertTrue(session.won)
        self.assertTrue(session.undo())
        np.testing.assert_array_equal(session.board, board_with((0, 0, 1024), (0, 1, 1024)))
        self.assertTrue(session.won)

    def test_board_full_ends_game(self, mock_spawn):
        mock_spawn.side_effect = spawn_two_at_corner
        session = self.make_session(ALMOST_FULL.copy())
        self.assertTrue(session.apply_direction('left'))
        self.assertEqual(session.game_over, GameOverReason.BOARD_FULL)
        self.observer.on_game_over.assert_called_once_with(GameOverReason.BOARD_FULL)
        # A lost game is never resumable
        self.assertNotIn(STATE_KEY, self.store.data)
        # Ended sessions accept nothing
        board = session.board.copy()
        self.assertFalse(session.apply_direction('right'))
        self.assertFalse(session.undo())
        np.testing.assert_array_equal(session.board, board)
        self.observer.on_undo_availability_changed.assert_called_with(3, False)

    def test_unknown_direction(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2)))
        with self.assertRaises(ValueError):
            session.apply_direction('north')


@patch('game2048.session.spawn_tile')
class TestUndo(SessionTestCase):

    def test_undo_restores_previous_move(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2), (0, 1, 2)))
        session.apply_direction('left')
        self.assertTrue(session.undo())
        np.testing.assert_array_equal(session.board, board_with((0, 0, 2), (0, 1, 2)))
        self.assertEqual(session.score, 0)
        self.assertEqual(session.undos_remaining, 2)
        self.observer.on_undo_availability_changed.assert_called_with(2, False)

    def test_history_holds_three_most_recent(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2)))
        for direction in ('right', 'down', 'left', 'up'):
            self.assertTrue(session.apply_direction(direction))
        np.testing.assert_array_equal(session.board, board_with((0, 0, 2)))
        self.assertEqual(len(session.history), 3)

        self.assertTrue(session.undo())
        np.testing.assert_array_equal(session.board, board_with((3, 0, 2)))
        self.assertTrue(session.undo())
        np.testing.assert_array_equal(session.board, board_with((3, 3, 2)))
        self.assertTrue(session.undo())
        np.testing.assert_array_equal(session.board, board_with((0, 3, 2)))
        self.assertFalse(session.undo())
        self.assertEqual(session.undos_remaining, 0)

    def test_undo_budget_never_replenished(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2)))
        for _ in range(3):
            self.assertTrue(session.apply_direction('right'))
            self.assertTrue(session.undo())
        self.assertEqual(session.undos_remaining, 0)
        self.assertTrue(session.apply_direction('right'))
        self.assertEqual(len(session.history), 1)
        self.assertFalse(session.can_undo)
        self.assertFalse(session.undo())

    def test_undo_with_empty_history(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2)))
        self.assertFalse(session.undo())
        self.assertEqual(session.undos_remaining, 3)
        self.assertEqual(self.store.data, {})

    def test_undo_persists(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2), (0, 1, 2)))
        session.apply_direction('left')
        session.undo()
        saved = json.loads(self.store.data[STATE_KEY])
        self.assertEqual(saved['score'], 0)
        self.assertEqual(saved['undosRemaining'], 2)
        self.assertEqual(saved['history'], [])


class TestCountdown(SessionTestCase):

    def test_five_ticks_expire_once(self):
        session = self.make_session(board_with((0, 0, 2)), timed=True, time_remaining=5)
        session.start_countdown()
        for _ in range(4):
            self.assertTrue(session.tick())
            self.observer.on_game_over.assert_not_called()
        self.assertFalse(session.tick())
        self.assertEqual(session.time_remaining, 0)
        self.assertEqual(session.game_over, GameOverReason.TIME_EXPIRED)
        self.observer.on_game_over.assert_called_once_with(GameOverReason.TIME_EXPIRED)
        self.assertFalse(session.tick())
        self.observer.on_game_over.assert_called_once_with(GameOverReason.TIME_EXPIRED)
        self.assertNotIn(STATE_KEY, self.store.data)

    def test_ticks_report_remaining_time(self):
        session = self.make_session(board_with((0, 0, 2)), timed=True, time_remaining=3)
        session.start_countdown()
        session.tick()
        self.observer.on_timer_tick.assert_called_with(2)
        self.assertEqual(json.loads(self.store.data[STATE_KEY])['timeRemaining'], 2)

    def test_expiry_keeps_won(self):
        session = self.make_session(board_with((0, 0, 2)), timed=True, time_remaining=1, won=True)
        session.start_countdown()
        session.tick()
        self.assertTrue(session.is_over)
        self.assertTrue(session.won)

    def test_untimed_session_ignores_ticks(self):
        session = self.make_session(board_with((0, 0, 2)))
        session.start_countdown()
        self.assertFalse(session.tick())
        self.assertFalse(session.countdown.running)
        self.observer.on_timer_tick.assert_not_called()

    def test_stopped_countdown_ignores_ticks(self):
        session = self.make_session(board_with((0, 0, 2)), timed=True, time_remaining=10)
        session.start_countdown()
        session.stop_countdown()
        session.stop_countdown()
        self.assertFalse(session.tick())
        self.assertEqual(session.time_remaining, 10)

    @patch('game2048.session.spawn_tile')
    def test_undo_restores_time(self, mock_spawn):
        session = self.make_session(board_with((0, 0, 2)), timed=True, time_remaining=10)
        session.start_countdown()
        session.apply_direction('right')
        for _ in range(3):
            session.tick()
        self.assertEqual(session.time_remaining, 7)
        session.stop_countdown()
        self.assertTrue(session.undo())
        self.assertEqual(session.time_remaining, 10)
        self.assertTrue(session.countdown.running)
        self.observer.on_timer_tick.assert_called_with(10)


class TestObserverFailures(unittest.TestCase):

    @patch('game2048.session.spawn_tile')
    def test_failing_observer_does_not_break_move(self, mock_spawn):
        observer = Mock(spec=SessionObserver)
        observer.on_board_changed.side_effect = RuntimeError("render failed")
        session = Session(board=board_with((0, 0, 2), (0, 1, 2)), observer=observer)
        with self.assertLogs('game2048.observer', level='ERROR'):
            self.assertTrue(session.apply_direction('left'))
        self.assertEqual(session.score, 4)
        observer.on_score_changed.assert_called_once_with(4, 4)


if __name__ == "__main__":
    unittest.main()
