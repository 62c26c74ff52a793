"""Deep Q-learning with a target network"""

import logging
from typing import Optional

import numpy as np
import torch
import torch.nn as nn

from onlinerl.agent import Agent, StepInfo
from onlinerl.common.checkpoint import load_module, save_module
from onlinerl.common.config import DeepQConfig
from onlinerl.common.errors import ConfigurationError, SampleUnavailableError
from onlinerl.common.seed import make_rng
from onlinerl.common.target import TargetSynchronizer
from onlinerl.envs.timestep import TimeStep, Transition
from onlinerl.pg.networks import QNetwork, make_solver, make_target, parameter_tensors
from onlinerl.replay.buffer import make_replay

logger = logging.getLogger(__name__)


class DeepQ(Agent):
    """
    Q-learning with a neural network, experience replay and a target
    network.

    Actions are chosen epsilon-greedily (greedily in evaluation mode).
    Each step regresses Q(s, a) onto r + gamma * max_a' Q'(s', a') for a
    replay batch, where Q' is the target network.
    """

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        config: Optional[DeepQConfig] = None,
        is_discrete: bool = True,
        seed: Optional[int] = None,
        device: str = "cpu"
    ):
        """
        Initialize DeepQ agent.

        Args:
            obs_dim: Observation dimension
            action_dim: Number of discrete actions
            config: Hyperparameters
            is_discrete: Must be True
            seed: Seed for exploration and replay sampling
            device: Device to run on
        """
        super().__init__(device)
        if not is_discrete:
            raise ConfigurationError("DeepQ requires a discrete action space")
        self.config = config if config is not None else DeepQConfig()
        self.config.validate()
        self.obs_dim = obs_dim
        self.action_dim = action_dim
        self.rng = make_rng(seed)

        self.q = QNetwork(
            obs_dim, action_dim, self.config.hidden_sizes, self.config.activation,
            weight_init=self.config.weight_init,
            weight_init_args=self.config.weight_init_args
        ).to(device)
        self.target_q = make_target(self.q)
        self.synchronizer = TargetSynchronizer(
            self.config.tau, self.config.target_update_interval
        )
        self.synchronizer.check_compatible(
            parameter_tensors(self.q), parameter_tensors(self.target_q)
        )
        self.optimizer = make_solver(self.config.solver, self.q.parameters(), self.config.lr)

        # Actions are replayed one-hot so Q(s, a) is a dot product
        self.replay = make_replay(self.config.replay, obs_dim, action_dim, seed)

    def _one_hot(self, action: np.ndarray) -> np.ndarray:
        one_hot = np.zeros(self.action_dim, dtype=np.float64)
        one_hot[int(np.asarray(action).ravel()[0])] = 1.0
        return one_hot

    def select_action(self, step: TimeStep) -> np.ndarray:
        """Epsilon-greedy action index as a length-1 vector (greedy in eval mode)."""
        if not self.is_eval() and self.rng.random() < self.config.epsilon:
            index = int(self.rng.integers(self.action_dim))
        else:
            with torch.no_grad():
                q_values = self.q(self._batch(step.observation))
            index = int(torch.argmax(q_values, dim=-1).item())
        return np.array([index], dtype=np.float64)

    def observe_first(self, step: TimeStep) -> None:
        """Remember the first timestep of an episode."""
        if not step.first():
            logger.warning(
                "observe_first should only be called on the first timestep "
                "(current timestep = %d)", step.number
            )
        self.prev_step = step

    def observe(self, action: np.ndarray, next_step: TimeStep) -> None:
        """Add the transition into next_step to replay, one-hot encoded."""
        if not self.is_eval() and not next_step.first():
            self.replay.add(
                Transition.from_steps(self.prev_step, self._one_hot(action), next_step)
            )
        self.prev_step = next_step

    def step(self) -> Optional[StepInfo]:
        """Take one Q-learning step on a replay batch, if one is available."""
        if self.is_eval():
            return None

        try:
            batch = self.replay.sample()
        except SampleUnavailableError as err:
            logger.debug("skipping update: %s", err)
            return None

        states = self._tensor(batch.states)
        actions = self._tensor(batch.actions)
        rewards = self._tensor(batch.rewards)
        discounts = self._tensor(batch.discounts)
        next_states = self._tensor(batch.next_states)

        with torch.no_grad():
            next_q = self.target_q(next_states).max(dim=-1).values
            targets = rewards + discounts * next_q

        q_sa = (self.q(states) * actions).sum(dim=-1)
        loss = nn.MSELoss()(q_sa, targets)

        self.optimizer.zero_grad()
        loss.backward()
        torch.nn.utils.clip_grad_norm_(self.q.parameters(), max_norm=self.config.max_grad_norm)
        self.optimizer.step()

        synced = self.synchronizer.maybe_sync(
            parameter_tensors(self.q), parameter_tensors(self.target_q)
        )
        return StepInfo(q_loss=loss.item(), target_synced=synced)

    def _action_index(self, action: np.ndarray) -> int:
        """Index of an action given one-hot (as replayed) or as a length-1 index."""
        action = np.asarray(action).ravel()
        if action.size == self.action_dim:
            return int(np.argmax(action))
        if action.size == 1:
            return int(action[0])
        raise ValueError(
            f"action of size {action.size} is neither one-hot over {self.action_dim} "
            "actions nor an index"
        )

    def td_error(self, transition: Transition) -> float:
        """
        r + gamma * max_a' Q(s', a') - Q(s, a) under the online network.

        Args:
            transition: Transition whose action is one-hot or a length-1 index

        Returns:
            The TD error
        """
        action = self._action_index(transition.action)
        with torch.no_grad():
            q = self.q(self._batch(transition.state))[0]
            next_q = self.q(self._batch(transition.next_state))[0]
        return (transition.reward + transition.discount * next_q.max().item()
                - q[action].item())

    def save(self, filepath_prefix: str) -> None:
        """Save the online and target Q networks."""
        save_module(f"{filepath_prefix}_q.json", self.q)
        save_module(f"{filepath_prefix}_target_q.json", self.target_q)

    def load(self, filepath_prefix: str) -> None:
        """Load the online and target Q networks."""
        load_module(f"{filepath_prefix}_q.json", self.q)
        load_module(f"{filepath_prefix}_target_q.json", self.target_q)
