import random
import numpy as np
import gymnasium as gym
from gymnasium import spaces

from game2048.board import new_board, valid_moves
from game2048.config import DIRECTIONS, GRID_N
from game2048.session import Session


class Game2048Env(gym.Env):
    """
    Headless environment over an untimed Session, for bots and automated
    play. Nothing is persisted; undo is not exposed.
    """
    metadata = {"render_modes": ["human", "ansi"]}

    def __init__(self, invalid_penalty: float = -5.0, render_mode=None):
        super().__init__()
        self.action_space = spaces.Discrete(len(DIRECTIONS))
        self.observation_space = spaces.Box(low=0, high=1, shape=(GRID_N * GRID_N,), dtype=np.float32)
        self.invalid_penalty = invalid_penalty
        self.render_mode = render_mode
        self._rng = random.Random()
        self.session = Session(board=new_board(self._rng), rng=self._rng)

        # Episode-level counters
        self.episode_moves = 0
        self.episode_invalid_moves = 0

    def reset(self, seed=None, options=None):
        super().reset(seed=seed)
        if seed is not None:
            self._rng.seed(seed)
        self.session = Session(board=new_board(self._rng), rng=self._rng)
        self.episode_moves = 0
        self.episode_invalid_moves = 0
        return self._get_obs(), self._get_info(invalid_move=False)

    def step(self, action):
        direction = DIRECTIONS[int(action)]
        score_before = self.session.score

        changed = self.session.apply_direction(direction)
        self.episode_moves += 1
        if not changed:
            self.episode_invalid_moves += 1
            reward = self.invalid_penalty
        else:
            reward = float(self.session.score - score_before)

        terminated = self.session.is_over
        return self._get_obs(), reward, terminated, False, self._get_info(invalid_move=not changed)

    def _get_obs(self):
        board = self.session.board
        with np.errstate(divide='ignore'):
            obs = np.where(board > 0, np.log2(board) / 16, 0)
        return obs.flatten().astype(np.float32)

    def _get_info(self, invalid_move: bool) -> dict:
        return {
            "score": self.session.score,
            "max_tile": int(np.max(self.session.board)),
            "won": self.session.won,
            "invalid_move": invalid_move,
            "episode_moves": self.episode_moves,
            "episode_invalid_moves": self.episode_invalid_moves,
            "action_mask": self.get_action_mask(),
        }

    def get_action_mask(self):
        # Float mask in {0.0, 1.0}, ordered like DIRECTIONS
        moves = valid_moves(self.session.board)
        return np.array([1.0 if d in moves else 0.0 for d in DIRECTIONS], dtype=np.float32)

    def render(self):
        text = "\n".join(" ".join(f"{int(v):5d}" if v else "    ." for v in row)
                         for row in self.session.board)
        if self.render_mode == "ansi":
            return text
        print(text)

    def close(self):
        pass
