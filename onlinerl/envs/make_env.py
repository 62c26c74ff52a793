"""Environment creation and the Gymnasium timestep adapter"""

import gymnasium as gym
from typing import Optional
import numpy as np

from onlinerl.common.errors import ConfigurationError
from onlinerl.envs.timestep import EndKind, StepKind, TimeStep


def make_env(
    env_name: str,
    seed: Optional[int] = None,
    render_mode: Optional[str] = None
) -> gym.Env:
    """
    Create and configure a Gymnasium environment.

    Args:
        env_name: Name of the environment (e.g., "CartPole-v1")
        seed: Random seed for environment
        render_mode: Rendering mode ("human", "rgb_array", or None)

    Returns:
        Configured environment
    """
    env = gym.make(env_name, render_mode=render_mode)

    if seed is not None:
        env.reset(seed=seed)
        env.action_space.seed(seed)

    return env


def get_env_info(env: gym.Env) -> dict:
    """
    Extract environment information.

    Args:
        env: Gymnasium environment

    Returns:
        Dictionary with obs_dim, action_dim, is_discrete, max_episode_steps
    """
    obs_space = env.observation_space
    action_space = env.action_space

    if obs_space.shape:
        obs_dim = int(np.prod(obs_space.shape))
    else:
        obs_dim = 1

    if isinstance(action_space, gym.spaces.Discrete):
        action_dim = int(action_space.n)
        is_discrete = True
    else:
        action_dim = int(np.prod(action_space.shape))
        is_discrete = False

    max_episode_steps = None
    if env.spec is not None:
        max_episode_steps = env.spec.max_episode_steps

    return {
        "obs_dim": obs_dim,
        "action_dim": action_dim,
        "is_discrete": is_discrete,
        "max_episode_steps": max_episode_steps
    }


class GymEnvironment:
    """
    Wraps a Gymnasium environment so that reset() and step() return
    TimeSteps.

    A `terminated` episode ends with EndKind.TERMINAL and discount 0.
    A `truncated` episode, or one that hits step_limit, ends with
    EndKind.TRUNCATED and keeps discount gamma.
    """

    def __init__(
        self,
        env: gym.Env,
        gamma: float = 0.99,
        step_limit: Optional[int] = None,
        seed: Optional[int] = None
    ):
        if not 0.0 <= gamma <= 1.0:
            raise ConfigurationError(f"gamma must be in [0, 1], got {gamma}")
        if step_limit is not None and step_limit < 1:
            raise ConfigurationError(f"step limit must be >= 1, got {step_limit}")
        self.env = env
        self.gamma = gamma
        self.step_limit = step_limit
        self._seed = seed
        self._number = 0

        info = get_env_info(env)
        self.obs_dim = info["obs_dim"]
        self.action_dim = info["action_dim"]
        self.is_discrete = info["is_discrete"]

    def reset(self) -> TimeStep:
        obs, _ = self.env.reset(seed=self._seed)
        # Only the first reset is seeded; later episodes continue the stream
        self._seed = None
        self._number = 0
        return TimeStep(StepKind.FIRST, 0.0, self.gamma, obs, number=0)

    def _env_action(self, action: np.ndarray):
        action = np.asarray(action)
        if self.is_discrete:
            return int(action.ravel()[0])
        space = self.env.action_space
        return np.clip(action.reshape(space.shape), space.low, space.high).astype(space.dtype)

    def step(self, action: np.ndarray) -> TimeStep:
        obs, reward, terminated, truncated, _ = self.env.step(self._env_action(action))
        self._number += 1

        if terminated:
            return TimeStep(StepKind.LAST, float(reward), 0.0, obs,
                            number=self._number, end=EndKind.TERMINAL)
        if truncated or (self.step_limit is not None and self._number >= self.step_limit):
            return TimeStep(StepKind.LAST, float(reward), self.gamma, obs,
                            number=self._number, end=EndKind.TRUNCATED)
        return TimeStep(StepKind.MID, float(reward), self.gamma, obs, number=self._number)

    def close(self) -> None:
        self.env.close()
