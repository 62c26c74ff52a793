"""Shared fixtures"""

import numpy as np
import pytest

from onlinerl.envs.timestep import EndKind, StepKind, TimeStep


class ScriptedEnvironment:
    """Deterministic episodes of fixed length with reward 1 per step."""

    def __init__(self, episode_length=5, obs_dim=2, action_dim=2, terminal=True, gamma=0.9):
        self.episode_length = episode_length
        self.obs_dim = obs_dim
        self.action_dim = action_dim
        self.is_discrete = True
        self.terminal = terminal
        self.gamma = gamma
        self.number = 0
        self.actions = []

    def _obs(self):
        return np.full(self.obs_dim, self.number / 10.0)

    def reset(self):
        self.number = 0
        return TimeStep(StepKind.FIRST, 0.0, self.gamma, self._obs(), number=0)

    def step(self, action):
        self.actions.append(np.asarray(action).copy())
        self.number += 1
        if self.number < self.episode_length:
            return TimeStep(StepKind.MID, 1.0, self.gamma, self._obs(), number=self.number)
        if self.terminal:
            return TimeStep(StepKind.LAST, 1.0, 0.0, self._obs(),
                            number=self.number, end=EndKind.TERMINAL)
        return TimeStep(StepKind.LAST, 1.0, self.gamma, self._obs(),
                        number=self.number, end=EndKind.TRUNCATED)

    def close(self):
        pass


@pytest.fixture
def make_scripted_env():
    return ScriptedEnvironment


