"""TrajectoryBuffer tests"""

import numpy as np
import pytest

from onlinerl.common.errors import (
    BufferFullError,
    BufferNotFullError,
    ConfigurationError,
    DimensionMismatchError,
    OpenPathError,
)
from onlinerl.pg.buffers import TrajectoryBuffer


def three_step_buffer(lam=0.0, gamma=0.99):
    buffer = TrajectoryBuffer(obs_dim=2, action_dim=1, capacity=3, lam=lam, gamma=gamma)
    buffer.store([0., 1.], [2.], -1.0, -1.0)
    buffer.store([3., 4.], [5.], -1.0, -1.5)
    buffer.store([6., 7.], [8.], -1.0, -2.0)
    return buffer


class TestStore:

    def test_store_advances_write_pos(self):
        buffer = TrajectoryBuffer(2, 1, 3)
        buffer.store([0., 1.], [2.], 1.0, 0.5)

        assert buffer.write_pos == 1
        assert buffer.path_start == 0
        np.testing.assert_array_equal(buffer.observations[0], [0., 1.])
        assert buffer.rewards[0] == 1.0
        assert buffer.values[0] == 0.5

    def test_store_on_full_buffer_fails(self):
        buffer = three_step_buffer()

        with pytest.raises(BufferFullError):
            buffer.store([9., 10.], [11.], -1.0, -1.0)
        assert buffer.write_pos == 3

    def test_wrong_observation_length(self):
        buffer = TrajectoryBuffer(2, 1, 3)

        with pytest.raises(DimensionMismatchError):
            buffer.store([0., 1., 2.], [2.], 0.0, 0.0)
        assert buffer.write_pos == 0

    def test_wrong_action_length(self):
        buffer = TrajectoryBuffer(2, 1, 3)

        with pytest.raises(DimensionMismatchError):
            buffer.store([0., 1.], [2., 3.], 0.0, 0.0)
        assert buffer.write_pos == 0

    @pytest.mark.parametrize("kwargs", [
        dict(capacity=0),
        dict(lam=1.5),
        dict(gamma=-0.1),
        dict(obs_dim=0),
    ])
    def test_illegal_configuration(self, kwargs):
        args = dict(obs_dim=2, action_dim=1, capacity=3, lam=0.9, gamma=0.9)
        args.update(kwargs)
        with pytest.raises(ConfigurationError):
            TrajectoryBuffer(**args)


class TestFinishPath:

    def test_td_residual_advantages_and_returns(self):
        buffer = three_step_buffer(lam=0.0, gamma=0.99)
        buffer.finish_path(-3.0)

        np.testing.assert_allclose(buffer.advantages, [-1.485, -1.48, -1.97])
        np.testing.assert_allclose(buffer.returns, [-5.880997, -4.9303, -3.97])
        assert buffer.path_start == 3

    def test_lambda_one_gives_monte_carlo_advantage(self):
        buffer = three_step_buffer(lam=1.0, gamma=0.99)
        buffer.finish_path(-3.0)

        np.testing.assert_allclose(buffer.advantages, buffer.returns - buffer.values)

    def test_returns_follow_recursion(self):
        buffer = TrajectoryBuffer(1, 1, 5, lam=0.8, gamma=0.9)
        rewards = [0.5, -1.0, 2.0, 0.0, 3.0]
        for i, r in enumerate(rewards):
            buffer.store([float(i)], [0.], r, 0.1 * i)
        buffer.finish_path(4.0)

        g = buffer.returns
        assert g[4] == pytest.approx(rewards[4] + 0.9 * 4.0)
        for t in range(4):
            assert g[t] == pytest.approx(rewards[t] + 0.9 * g[t + 1])

    def test_gae_recursion(self):
        buffer = TrajectoryBuffer(1, 1, 4, lam=0.5, gamma=0.9)
        for i, (r, v) in enumerate([(1.0, 0.2), (0.0, 0.4), (2.0, -0.3), (1.0, 0.0)]):
            buffer.store([float(i)], [0.], r, v)
        buffer.finish_path(0.0)

        values = np.append(buffer.values, 0.0)
        deltas = buffer.rewards + 0.9 * values[1:] - values[:-1]
        a = buffer.advantages
        assert a[3] == pytest.approx(deltas[3])
        for t in range(3):
            assert a[t] == pytest.approx(deltas[t] + 0.45 * a[t + 1])

    def test_paths_are_independent(self):
        buffer = TrajectoryBuffer(1, 1, 4, lam=1.0, gamma=1.0)
        buffer.store([0.], [0.], 1.0, 0.0)
        buffer.store([1.], [0.], 1.0, 0.0)
        buffer.finish_path(0.0)
        buffer.store([2.], [0.], 5.0, 0.0)
        buffer.store([3.], [0.], 5.0, 0.0)
        buffer.finish_path(10.0)

        np.testing.assert_allclose(buffer.returns, [2.0, 1.0, 20.0, 15.0])

    def test_empty_path_is_noop(self):
        buffer = TrajectoryBuffer(2, 1, 3)
        buffer.finish_path(5.0)

        assert buffer.path_start == 0
        assert buffer.write_pos == 0
        np.testing.assert_array_equal(buffer.advantages, 0.0)

        buffer.store([0., 1.], [2.], 1.0, 0.0)
        buffer.finish_path(0.0)
        buffer.finish_path(0.0)
        assert buffer.path_start == 1


class TestGet:

    def test_get_before_full_fails(self):
        buffer = TrajectoryBuffer(2, 1, 3)
        buffer.store([0., 1.], [2.], 1.0, 0.0)
        buffer.finish_path(0.0)

        with pytest.raises(BufferNotFullError):
            buffer.get()
        assert buffer.write_pos == 1

    def test_get_with_open_path_fails(self):
        buffer = three_step_buffer()

        with pytest.raises(OpenPathError):
            buffer.get()

    def test_get_normalizes_advantages_only(self):
        buffer = three_step_buffer(lam=0.0, gamma=0.99)
        buffer.finish_path(-3.0)
        batch = buffer.get()

        assert batch.advantages.mean() == pytest.approx(0.0, abs=1e-10)
        assert batch.advantages.std(ddof=1) == pytest.approx(1.0)
        np.testing.assert_allclose(batch.returns, [-5.880997, -4.9303, -3.97])
        np.testing.assert_array_equal(batch.observations, [[0., 1.], [3., 4.], [6., 7.]])
        np.testing.assert_array_equal(batch.actions, [[2.], [5.], [8.]])

    def test_identical_advantages_do_not_divide_by_zero(self):
        buffer = TrajectoryBuffer(1, 1, 2, lam=0.0, gamma=0.0)
        buffer.store([0.], [0.], 1.0, 0.0)
        buffer.store([1.], [0.], 1.0, 0.0)
        buffer.finish_path(0.0)
        batch = buffer.get()

        assert np.all(np.isfinite(batch.advantages))
        np.testing.assert_allclose(batch.advantages, 0.0)

    def test_get_resets_for_next_epoch(self):
        buffer = three_step_buffer(lam=0.0, gamma=0.99)
        buffer.finish_path(-3.0)
        first = buffer.get()

        assert buffer.write_pos == 0
        assert buffer.path_start == 0

        buffer.store([0., 1.], [2.], -1.0, -1.0)
        buffer.store([3., 4.], [5.], -1.0, -1.5)
        buffer.store([6., 7.], [8.], -1.0, -2.0)
        buffer.finish_path(-3.0)
        second = buffer.get()

        for a, b in zip(first, second):
            np.testing.assert_allclose(a, b)
