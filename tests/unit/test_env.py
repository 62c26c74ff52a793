"""Gymnasium adapter tests"""

import numpy as np
import pytest

from onlinerl.common.errors import ConfigurationError
from onlinerl.envs.make_env import GymEnvironment, get_env_info, make_env
from onlinerl.envs.timestep import EndKind, StepKind


@pytest.fixture
def cartpole():
    env = GymEnvironment(make_env("CartPole-v1", seed=0), gamma=0.9, seed=0)
    yield env
    env.close()


class TestGymEnvironment:

    def test_env_info(self):
        info = get_env_info(make_env("CartPole-v1"))

        assert info["obs_dim"] == 4
        assert info["action_dim"] == 2
        assert info["is_discrete"]
        assert info["max_episode_steps"] == 500

    def test_reset_is_first(self, cartpole):
        step = cartpole.reset()

        assert step.first()
        assert step.number == 0
        assert step.observation.shape == (4,)
        assert cartpole.obs_dim == 4

    def test_terminal_step_has_zero_discount(self, cartpole):
        step = cartpole.reset()
        # Pushing left every step topples the pole long before truncation
        while not step.last():
            step = cartpole.step(np.array([0.0]))
            if not step.last():
                assert step.kind == StepKind.MID
                assert step.discount == 0.9

        assert step.end == EndKind.TERMINAL
        assert step.discount == 0.0
        assert step.reward == 1.0

    def test_step_limit_truncates(self):
        env = GymEnvironment(make_env("CartPole-v1", seed=0), gamma=0.9, step_limit=3, seed=0)
        step = env.reset()
        numbers = []
        while not step.last():
            step = env.step(np.array([float(step.number % 2)]))
            numbers.append(step.number)

        assert numbers == [1, 2, 3]
        assert step.truncated_end()
        assert step.discount == 0.9

    def test_reset_restarts_numbering(self):
        env = GymEnvironment(make_env("CartPole-v1"), step_limit=2, seed=0)
        env.reset()
        env.step(np.array([0.0]))
        env.step(np.array([1.0]))

        assert env.reset().number == 0
        assert env.step(np.array([0.0])).number == 1

    def test_seeded_reset_is_reproducible(self):
        a = GymEnvironment(make_env("CartPole-v1"), seed=3).reset()
        b = GymEnvironment(make_env("CartPole-v1"), seed=3).reset()

        np.testing.assert_array_equal(a.observation, b.observation)

    def test_continuous_actions_are_clipped(self):
        env = GymEnvironment(make_env("Pendulum-v1"), seed=0)
        env.reset()
        step = env.step(np.array([100.0]))

        assert not env.is_discrete
        assert env.action_dim == 1
        assert step.mid()

    @pytest.mark.parametrize("kwargs", [dict(gamma=1.5), dict(step_limit=0)])
    def test_illegal_settings(self, kwargs):
        with pytest.raises(ConfigurationError):
            GymEnvironment(make_env("CartPole-v1"), **kwargs)
