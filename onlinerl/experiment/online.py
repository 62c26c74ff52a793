"""Online agent-environment interaction loop"""

import logging
from typing import List, Optional

from onlinerl.agent import Agent
from onlinerl.common.config import AGENT_CONFIGS
from onlinerl.common.errors import ConfigurationError
from onlinerl.common.logging import MetricsLogger
from onlinerl.envs.make_env import GymEnvironment
from onlinerl.envs.timestep import TimeStep
from onlinerl.pg.vac import VAC
from onlinerl.pg.vpg import VPG
from onlinerl.qlearning.deepq import DeepQ

logger = logging.getLogger(__name__)

AGENTS = {
    "vpg": VPG,
    "vac": VAC,
    "deepq": DeepQ,
}


def make_agent(
    name: str,
    obs_dim: int,
    action_dim: int,
    is_discrete: bool,
    config=None,
    seed: Optional[int] = None,
    device: str = "cpu"
) -> Agent:
    """Construct an agent by name ("vpg", "vac" or "deepq")."""
    if name not in AGENTS:
        raise ConfigurationError(f"Unknown agent {name!r}, expected one of {sorted(AGENTS)}")
    if config is None:
        config = AGENT_CONFIGS[name]()
    if name == "vpg":
        return VPG(obs_dim, action_dim, config, is_discrete=is_discrete, device=device)
    return AGENTS[name](
        obs_dim, action_dim, config, is_discrete=is_discrete, seed=seed, device=device
    )


class Tracker:
    """Follows the timesteps of an experiment."""

    def track(self, step: TimeStep) -> None:
        raise NotImplementedError


class EpisodeReturnTracker(Tracker):
    """Records the undiscounted return of every episode."""

    def __init__(self, metrics: Optional[MetricsLogger] = None, tag: str = "episode_return"):
        self.metrics = metrics
        self.tag = tag
        self.returns: List[float] = []
        self._current = 0.0

    def track(self, step: TimeStep) -> None:
        if step.first():
            self._current = 0.0
            return
        self._current += step.reward
        if step.last():
            self.returns.append(self._current)
            if self.metrics is not None:
                self.metrics.log_scalar(self.tag, self._current, len(self.returns))


class EpisodeLengthTracker(Tracker):
    """Records the number of steps in every episode."""

    def __init__(self, metrics: Optional[MetricsLogger] = None, tag: str = "episode_length"):
        self.metrics = metrics
        self.tag = tag
        self.lengths: List[int] = []

    def track(self, step: TimeStep) -> None:
        if step.last():
            self.lengths.append(step.number)
            if self.metrics is not None:
                self.metrics.log_scalar(self.tag, step.number, len(self.lengths))


class OnlineExperiment:
    """
    Runs an agent online in an environment for a fixed number of steps.

    Episodes that are cut off by the step budget are not counted by the
    trackers, since they never reach their last timestep.
    """

    def __init__(
        self,
        env: GymEnvironment,
        agent: Agent,
        max_steps: int,
        trackers: Optional[List[Tracker]] = None,
        metrics: Optional[MetricsLogger] = None,
        log_interval: int = 10
    ):
        if max_steps < 1:
            raise ConfigurationError(f"max steps must be >= 1, got {max_steps}")
        self.env = env
        self.agent = agent
        self.max_steps = max_steps
        self.current_steps = 0
        self.episodes = 0
        self.trackers = list(trackers) if trackers is not None else []
        self.metrics = metrics
        self.log_interval = log_interval

    def _track(self, step: TimeStep) -> None:
        for tracker in self.trackers:
            tracker.track(step)

    def run_episode(self) -> bool:
        """
        Run one episode, or until the step budget is used up.

        Returns:
            True if the step budget is used up
        """
        step = self.env.reset()
        self.agent.observe_first(step)
        self._track(step)

        while not step.last() and self.current_steps < self.max_steps:
            self.current_steps += 1

            action = self.agent.select_action(step)
            step = self.env.step(action)
            self._track(step)

            self.agent.observe(action, step)
            info = self.agent.step()
            if info is not None and self.metrics is not None:
                for tag, value in info.to_dict().items():
                    self.metrics.log_scalar(tag, value, self.current_steps)

        self.episodes += 1
        if self.log_interval and self.episodes % self.log_interval == 0:
            logger.info(
                "episode %d finished after %d steps (total steps %d/%d)",
                self.episodes, step.number, self.current_steps, self.max_steps
            )
        return self.current_steps >= self.max_steps

    def run(self) -> None:
        self.agent.train()
        ended = False
        while not ended:
            ended = self.run_episode()
            self.agent.end_episode()
