"""Vanilla actor-critic trained from experience replay"""

import logging
from typing import Optional

import numpy as np
import torch
import torch.nn as nn

from onlinerl.agent import Agent, StepInfo
from onlinerl.common.checkpoint import load_module, save_module
from onlinerl.common.config import VACConfig
from onlinerl.common.errors import SampleUnavailableError
from onlinerl.common.target import TargetSynchronizer
from onlinerl.envs.timestep import TimeStep, Transition
from onlinerl.pg.distributions import entropy
from onlinerl.pg.networks import (
    ValueEstimator,
    ValueNetwork,
    make_policy,
    make_solver,
    make_target,
    parameter_tensors,
)
from onlinerl.replay.buffer import make_replay

logger = logging.getLogger(__name__)


class VAC(Agent):
    """
    Actor-critic with TD-error as advantage.

    Each step samples a batch of transitions and uses the target critic
    V' to form the advantage r + gamma * V'(s') - V'(s). The critic is
    regressed onto r + gamma * V'(s'), and V' follows the critic through
    a TargetSynchronizer. The discount of each transition comes from the
    environment, so terminal transitions do not bootstrap.
    """

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        config: Optional[VACConfig] = None,
        is_discrete: bool = True,
        seed: Optional[int] = None,
        device: str = "cpu"
    ):
        """
        Initialize VAC agent.

        Args:
            obs_dim: Observation dimension
            action_dim: Number of discrete actions, or continuous action dimension
            config: Hyperparameters
            is_discrete: Whether the action space is discrete
            seed: Seed for replay sampling
            device: Device to run on
        """
        super().__init__(device)
        self.config = config if config is not None else VACConfig()
        self.config.validate()
        self.obs_dim = obs_dim
        self.action_dim = action_dim

        # Networks
        self.policy = make_policy(
            obs_dim, action_dim, is_discrete,
            self.config.hidden_sizes, self.config.activation,
            weight_init=self.config.weight_init,
            weight_init_args=self.config.weight_init_args
        ).to(device)
        self.value = ValueNetwork(
            obs_dim, self.config.hidden_sizes, self.config.activation,
            weight_init=self.config.weight_init,
            weight_init_args=self.config.weight_init_args
        ).to(device)
        self.target_value = make_target(self.value)

        self.synchronizer = TargetSynchronizer(
            self.config.tau, self.config.target_update_interval
        )
        self.synchronizer.check_compatible(
            parameter_tensors(self.value), parameter_tensors(self.target_value)
        )

        # Optimizers
        self.policy_optimizer = make_solver(
            self.config.solver, self.policy.parameters(), self.config.lr_policy
        )
        self.value_optimizer = make_solver(
            self.config.solver, self.value.parameters(), self.config.lr_value
        )

        self.action_size = self.policy.action_size
        self.replay = make_replay(self.config.replay, obs_dim, self.action_size, seed)
        self.value_estimator = ValueEstimator(self.value, device)

    def select_action(self, step: TimeStep) -> np.ndarray:
        """
        Sample an action from the policy (its mode in evaluation mode).

        Args:
            step: Current timestep

        Returns:
            Action as a vector: a length-1 index for discrete actions
        """
        with torch.no_grad():
            action = self.policy.act(
                self._batch(step.observation), deterministic=self.is_eval()
            )
        return action[0].cpu().numpy()

    def observe_first(self, step: TimeStep) -> None:
        """Remember the first timestep of an episode."""
        if not step.first():
            logger.warning(
                "observe_first should only be called on the first timestep "
                "(current timestep = %d)", step.number
            )
        self.prev_step = step

    def observe(self, action: np.ndarray, next_step: TimeStep) -> None:
        """
        Add the transition into next_step to replay. Nothing is stored in
        evaluation mode or across an episode reset.
        """
        if not self.is_eval() and not next_step.first():
            self.replay.add(Transition.from_steps(self.prev_step, action, next_step))
        self.prev_step = next_step

    def step(self) -> Optional[StepInfo]:
        """Take one actor and critic update from a replay batch."""
        if self.is_eval():
            return None

        try:
            batch = self.replay.sample()
        except SampleUnavailableError as err:
            logger.debug("skipping update: %s", err)
            return None

        states = self._tensor(batch.states)
        next_states = self._tensor(batch.next_states)
        actions = torch.as_tensor(batch.actions, device=self.device)
        rewards = self._tensor(batch.rewards)
        discounts = self._tensor(batch.discounts)

        with torch.no_grad():
            state_values = self.target_value(states)
            targets = rewards + discounts * self.target_value(next_states)
            advantages = targets - state_values

        # Actor step
        log_probs = self.policy.log_prob(states, actions)
        policy_loss = -(log_probs * advantages).mean()
        policy_entropy = entropy(self.policy.distribution(states))
        policy_loss_total = policy_loss - self.config.entropy_coef * policy_entropy

        self.policy_optimizer.zero_grad()
        policy_loss_total.backward()
        torch.nn.utils.clip_grad_norm_(self.policy.parameters(), max_norm=self.config.max_grad_norm)
        self.policy_optimizer.step()

        # Critic steps
        value_loss = None
        for _ in range(self.config.value_grad_steps):
            value_loss = nn.MSELoss()(self.value(states), targets)
            self.value_optimizer.zero_grad()
            value_loss.backward()
            torch.nn.utils.clip_grad_norm_(self.value.parameters(), max_norm=self.config.max_grad_norm)
            self.value_optimizer.step()

        synced = self.synchronizer.maybe_sync(
            parameter_tensors(self.value), parameter_tensors(self.target_value)
        )

        return StepInfo(
            policy_loss=policy_loss.item(),
            value_loss=None if value_loss is None else value_loss.item(),
            entropy=policy_entropy.item(),
            mean_advantage=advantages.mean().item(),
            target_synced=synced
        )

    def td_error(self, transition: Transition) -> float:
        """r + gamma * V(s') - V(s) under the online critic."""
        state_value = self.value_estimator(transition.state)
        next_state_value = self.value_estimator(transition.next_state)
        return transition.reward + transition.discount * next_state_value - state_value

    def save(self, filepath_prefix: str) -> None:
        """Save the policy, critic and target critic under filepath_prefix."""
        save_module(f"{filepath_prefix}_policy.json", self.policy)
        save_module(f"{filepath_prefix}_value.json", self.value)
        save_module(f"{filepath_prefix}_target_value.json", self.target_value)

    def load(self, filepath_prefix: str) -> None:
        """Load networks written by save() with the same filepath_prefix."""
        load_module(f"{filepath_prefix}_policy.json", self.policy)
        load_module(f"{filepath_prefix}_value.json", self.value)
        load_module(f"{filepath_prefix}_target_value.json", self.target_value)
