"""Vanilla policy gradient with generalized advantage estimation"""

import logging
from typing import Optional

import numpy as np
import torch
import torch.nn as nn

from onlinerl.agent import Agent, StepInfo
from onlinerl.common.checkpoint import load_module, save_module
from onlinerl.common.config import VPGConfig
from onlinerl.envs.timestep import TimeStep
from onlinerl.pg.buffers import RolloutBatch, TrajectoryBuffer
from onlinerl.pg.distributions import entropy
from onlinerl.pg.epoch import EpochController
from onlinerl.pg.networks import (
    ValueEstimator,
    ValueNetwork,
    make_policy,
    make_solver,
)

logger = logging.getLogger(__name__)


class VPG(Agent):
    """
    Vanilla policy gradient (REINFORCE with a learned baseline) using
    GAE-lambda advantages.

    Experience is collected for a fixed number of steps (an epoch). At
    the end of each epoch the policy takes one gradient step on
    -mean(log pi(a|s) * A), then the value function takes
    value_grad_steps steps of regression onto the rewards-to-go.

    Adapted from https://spinningup.openai.com/en/latest/algorithms/vpg.html
    """

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        config: Optional[VPGConfig] = None,
        is_discrete: bool = True,
        device: str = "cpu"
    ):
        """
        Initialize VPG agent.

        Args:
            obs_dim: Observation dimension
            action_dim: Number of discrete actions, or continuous action dimension
            config: Hyperparameters
            is_discrete: Whether the action space is discrete
            device: Device to run on
        """
        super().__init__(device)
        self.config = config if config is not None else VPGConfig()
        self.config.validate()
        self.obs_dim = obs_dim
        self.action_dim = action_dim
        self.is_discrete = is_discrete

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

        # Optimizers
        self.policy_optimizer = make_solver(
            self.config.solver, self.policy.parameters(), self.config.lr_policy
        )
        self.value_optimizer = make_solver(
            self.config.solver, self.value.parameters(), self.config.lr_value
        )

        # Epoch buffer
        self.buffer = TrajectoryBuffer(
            obs_dim,
            self.policy.action_size,
            self.config.epoch_length,
            lam=self.config.lam,
            gamma=self.config.gamma
        )
        self.controller = EpochController(
            self.buffer,
            ValueEstimator(self.value, device),
            finish_episode_on_epoch_end=self.config.finish_episode_on_epoch_end
        )

    @property
    def completed_epochs(self) -> int:
        return self.controller.completed_epochs

    def select_action(self, step: TimeStep) -> np.ndarray:
        """Sample from the policy, or act greedily in evaluation mode."""
        with torch.no_grad():
            action = self.policy.act(
                self._batch(step.observation), deterministic=self.is_eval()
            )
        return action[0].cpu().numpy()

    def observe_first(self, step: TimeStep) -> None:
        """Start recording an episode at step."""
        self.controller.observe_first(step)

    def observe(self, action: np.ndarray, next_step: TimeStep) -> None:
        """Record the step into next_step for the open epoch (not in evaluation mode)."""
        if self.is_eval():
            return
        self.controller.observe(action, next_step)

    def end_episode(self) -> None:
        # An episode that straddled the last epoch boundary was not
        # recorded; the next one may be.
        self.controller.end_episode()

    def step(self) -> Optional[StepInfo]:
        """Update the agent once a full epoch has been collected."""
        if self.is_eval():
            return None
        return self.controller.step(self._update)

    def _update(self, batch: RolloutBatch) -> StepInfo:
        obs = self._tensor(batch.observations)
        actions = torch.as_tensor(batch.actions, device=self.device)
        advantages = self._tensor(batch.advantages)
        returns = self._tensor(batch.returns)

        # Policy gradient step
        log_probs = self.policy.log_prob(obs, actions)
        policy_loss = -(log_probs * advantages).mean()
        policy_entropy = entropy(self.policy.distribution(obs))
        policy_loss_total = policy_loss - self.config.entropy_coef * policy_entropy

        self.policy_optimizer.zero_grad()
        policy_loss_total.backward()
        torch.nn.utils.clip_grad_norm_(self.policy.parameters(), max_norm=self.config.max_grad_norm)
        self.policy_optimizer.step()

        # Value function regression onto rewards-to-go
        value_loss = None
        for _ in range(self.config.value_grad_steps):
            value_loss = nn.MSELoss()(self.value(obs), returns)
            self.value_optimizer.zero_grad()
            value_loss.backward()
            torch.nn.utils.clip_grad_norm_(self.value.parameters(), max_norm=self.config.max_grad_norm)
            self.value_optimizer.step()

        logger.debug(
            "epoch %d: policy loss %.4f", self.controller.completed_epochs,
            policy_loss.item()
        )
        return StepInfo(
            policy_loss=policy_loss.item(),
            value_loss=None if value_loss is None else value_loss.item(),
            entropy=policy_entropy.item(),
            mean_advantage=advantages.mean().item(),
            mean_return=returns.mean().item()
        )

    def save(self, filepath_prefix: str) -> None:
        """Save both networks."""
        save_module(f"{filepath_prefix}_policy.json", self.policy)
        save_module(f"{filepath_prefix}_value.json", self.value)

    def load(self, filepath_prefix: str) -> None:
        """Load both networks."""
        load_module(f"{filepath_prefix}_policy.json", self.policy)
        load_module(f"{filepath_prefix}_value.json", self.value)
