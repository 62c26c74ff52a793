"""Fixed-size rollout buffer with GAE-lambda advantage estimation"""

from typing import NamedTuple, Sequence
import numpy as np

from onlinerl.common.errors import (
    BufferFullError,
    BufferNotFullError,
    ConfigurationError,
    DimensionMismatchError,
    OpenPathError,
)
from onlinerl.common.utils import discount_cumsum, normalize_advantages


class RolloutBatch(NamedTuple):
    """One full epoch of on-policy data."""
    observations: np.ndarray
    actions: np.ndarray
    advantages: np.ndarray
    returns: np.ndarray


class TrajectoryBuffer:
    """
    Buffer for storing one epoch of on-policy experience.

    Steps are written contiguously. Each episode (or truncated piece of
    an episode) is closed with finish_path, which fills in the GAE-lambda
    advantages and the rewards-to-go for that path. Storage is allocated
    once and overwritten in place on every epoch.

    See https://arxiv.org/abs/1506.02438 for GAE-lambda.
    """

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        capacity: int,
        lam: float = 0.97,
        gamma: float = 0.99
    ):
        """
        Initialize buffer.

        Args:
            obs_dim: Observation dimension
            action_dim: Action dimension (1 for discrete actions)
            capacity: Number of steps in one epoch
            lam: GAE lambda
            gamma: Discount factor
        """
        if capacity <= 0:
            raise ConfigurationError(f"capacity must be positive, got {capacity}")
        if obs_dim <= 0 or action_dim <= 0:
            raise ConfigurationError(
                f"dimensions must be positive, got obs_dim={obs_dim}, action_dim={action_dim}"
            )
        if not 0.0 <= lam <= 1.0:
            raise ConfigurationError(f"lambda must be in [0, 1], got {lam}")
        if not 0.0 <= gamma <= 1.0:
            raise ConfigurationError(f"gamma must be in [0, 1], got {gamma}")

        self.obs_dim = obs_dim
        self.action_dim = action_dim
        self.capacity = capacity
        self.lam = lam
        self.gamma = gamma

        self.observations = np.zeros((capacity, obs_dim), dtype=np.float64)
        self.actions = np.zeros((capacity, action_dim), dtype=np.float64)
        self.rewards = np.zeros(capacity, dtype=np.float64)
        self.values = np.zeros(capacity, dtype=np.float64)
        self.advantages = np.zeros(capacity, dtype=np.float64)
        self.returns = np.zeros(capacity, dtype=np.float64)

        self.write_pos = 0
        self.path_start = 0

    def __len__(self) -> int:
        return self.write_pos

    def full(self) -> bool:
        return self.write_pos == self.capacity

    def path_open(self) -> bool:
        """Whether steps have been stored since the last finish_path."""
        return self.path_start < self.write_pos

    def store(
        self,
        obs: Sequence[float],
        action: Sequence[float],
        reward: float,
        value: float
    ) -> None:
        """
        Append a single step.

        Raises:
            BufferFullError: If every slot of the epoch is used
            DimensionMismatchError: If obs or action has the wrong length
        """
        if self.write_pos >= self.capacity:
            raise BufferFullError(
                f"store: buffer at maximum capacity ({self.capacity})"
            )
        obs = np.asarray(obs, dtype=np.float64).ravel()
        action = np.asarray(action, dtype=np.float64).ravel()
        if obs.size != self.obs_dim:
            raise DimensionMismatchError(
                f"store: illegal observation length, want {self.obs_dim}, have {obs.size}"
            )
        if action.size != self.action_dim:
            raise DimensionMismatchError(
                f"store: illegal action length, want {self.action_dim}, have {action.size}"
            )

        self.observations[self.write_pos] = obs
        self.actions[self.write_pos] = action
        self.rewards[self.write_pos] = reward
        self.values[self.write_pos] = value
        self.write_pos += 1

    def finish_path(self, bootstrap_value: float = 0.0) -> None:
        """
        Close the current path and compute its advantages and returns.

        Args:
            bootstrap_value: 0 if the path ended in a terminal state,
                otherwise the estimated value of the observation the
                path was cut off at
        """
        path = slice(self.path_start, self.write_pos)
        if self.path_start == self.write_pos:
            return

        rewards = np.append(self.rewards[path], bootstrap_value)
        values = np.append(self.values[path], bootstrap_value)

        # One-step TD residuals
        deltas = rewards[:-1] + self.gamma * values[1:] - values[:-1]
        self.advantages[path] = discount_cumsum(deltas, self.gamma * self.lam)

        # Rewards-to-go, bootstrapped from the final value
        self.returns[path] = discount_cumsum(rewards, self.gamma)[:-1]

        self.path_start = self.write_pos

    def get(self) -> RolloutBatch:
        """
        Return the epoch's data and reset the buffer for the next epoch.

        Advantages are normalized to zero mean and unit standard deviation;
        returns are left as they are.

        Raises:
            BufferNotFullError: If the epoch has not been filled
            OpenPathError: If the last path was never finished
        """
        if self.write_pos != self.capacity:
            raise BufferNotFullError(
                f"get: buffer must be full before sampling ({self.write_pos}/{self.capacity})"
            )
        if self.path_open():
            raise OpenPathError("get: finish_path must be called before get")

        self.write_pos = 0
        self.path_start = 0
        normalize_advantages(self.advantages)

        return RolloutBatch(
            observations=self.observations.copy(),
            actions=self.actions.copy(),
            advantages=self.advantages.copy(),
            returns=self.returns.copy()
        )
