"""Interface shared by all agents"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Dict, Optional

import numpy as np
import torch

from onlinerl.envs.timestep import TimeStep, Transition


@dataclass
class StepInfo:
    """Diagnostics of one learning update, returned by Agent.step()."""
    policy_loss: Optional[float] = None
    value_loss: Optional[float] = None
    q_loss: Optional[float] = None
    entropy: Optional[float] = None
    mean_advantage: Optional[float] = None
    mean_return: Optional[float] = None
    target_synced: bool = False

    def to_dict(self) -> Dict[str, float]:
        """Numeric fields that were set, for logging."""
        return {
            k: float(v) for k, v in asdict(self).items()
            if v is not None and not isinstance(v, bool)
        }


class Agent(ABC):
    """
    An agent interacting with an environment one timestep at a time.

    The driving loop calls observe_first() on the first timestep of each
    episode, then for every step select_action(), observe() and step(),
    and end_episode() once the episode is over.
    """

    def __init__(self, device: str = "cpu"):
        self.device = device
        self._eval = False
        self.prev_step: Optional[TimeStep] = None

    def train(self) -> None:
        self._eval = False

    def eval(self) -> None:
        self._eval = True

    def is_eval(self) -> bool:
        return self._eval

    def _tensor(self, x: np.ndarray) -> torch.Tensor:
        return torch.as_tensor(np.asarray(x), dtype=torch.float32, device=self.device)

    def _batch(self, obs: np.ndarray) -> torch.Tensor:
        return self._tensor(obs).reshape(1, -1)

    @abstractmethod
    def observe_first(self, step: TimeStep) -> None:
        """Record the first timestep of an episode."""

    @abstractmethod
    def select_action(self, step: TimeStep) -> np.ndarray:
        """Choose an action at the given timestep."""

    @abstractmethod
    def observe(self, action: np.ndarray, next_step: TimeStep) -> None:
        """Record the result of taking action at the previous timestep."""

    @abstractmethod
    def step(self) -> Optional[StepInfo]:
        """Learn from recorded experience; None if no update was made."""

    def end_episode(self) -> None:
        pass

    def td_error(self, transition: Transition) -> float:
        raise NotImplementedError(f"{type(self).__name__} does not estimate TD errors")

    @abstractmethod
    def save(self, filepath_prefix: str) -> None:
        pass

    @abstractmethod
    def load(self, filepath_prefix: str) -> None:
        pass
