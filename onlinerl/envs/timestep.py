"""Timesteps and transitions of the agent-environment interaction"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import numpy as np


class StepKind(Enum):
    """Position of a timestep within its episode."""
    FIRST = 0
    MID = 1
    LAST = 2


class EndKind(Enum):
    """Why an episode ended.

    TERMINAL means a true terminal state was reached, so the value of the
    final observation is zero. TRUNCATED means the episode was cut off
    (e.g. by a step limit) and the final observation still has value.
    """
    NONE = 0
    TERMINAL = 1
    TRUNCATED = 2


@dataclass
class TimeStep:
    """A single environment timestep."""
    kind: StepKind
    reward: float
    discount: float
    observation: np.ndarray
    number: int = 0
    end: EndKind = EndKind.NONE

    def __post_init__(self):
        self.observation = np.asarray(self.observation, dtype=np.float64).ravel()
        if self.kind is not StepKind.LAST and self.end is not EndKind.NONE:
            raise ValueError(f"only the last step of an episode can have an end kind, got {self.end} on {self.kind}")

    def first(self) -> bool:
        return self.kind is StepKind.FIRST

    def mid(self) -> bool:
        return self.kind is StepKind.MID

    def last(self) -> bool:
        return self.kind is StepKind.LAST

    def terminal_end(self) -> bool:
        """Whether the episode ended in a true terminal state."""
        return self.last() and self.end is EndKind.TERMINAL

    def truncated_end(self) -> bool:
        """Whether the episode was cut off before reaching a terminal state."""
        return self.last() and self.end is EndKind.TRUNCATED


@dataclass
class Transition:
    """An (s, a, r, gamma, s', a') tuple built from two consecutive timesteps."""
    state: np.ndarray
    action: np.ndarray
    reward: float
    discount: float
    next_state: np.ndarray
    next_action: Optional[np.ndarray] = None

    @classmethod
    def from_steps(
        cls,
        step: TimeStep,
        action: np.ndarray,
        next_step: TimeStep,
        next_action: Optional[np.ndarray] = None
    ) -> "Transition":
        """
        Build a transition from a timestep, the action taken in it, and
        the timestep that action led to.

        Reward and discount come from next_step.
        """
        return cls(
            state=np.array(step.observation, dtype=np.float64),
            action=np.asarray(action, dtype=np.float64).ravel().copy(),
            reward=float(next_step.reward),
            discount=float(next_step.discount),
            next_state=np.array(next_step.observation, dtype=np.float64),
            next_action=None if next_action is None
            else np.asarray(next_action, dtype=np.float64).ravel().copy()
        )
