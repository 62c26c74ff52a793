"""Epoch/episode boundary bookkeeping for on-policy agents"""

import logging
from enum import Enum
from typing import Callable, Optional, Sequence, TypeVar

import numpy as np

from onlinerl.common.errors import BufferError
from onlinerl.envs.timestep import TimeStep
from onlinerl.pg.buffers import RolloutBatch, TrajectoryBuffer

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EpochState(Enum):
    COLLECTING = 0
    FINISHING_EPISODE = 1


class EpochController:
    """
    Decides which environment steps go into the trajectory buffer and
    when a full epoch is ready for a policy update.

    Each call to observe() records one step. When the episode ends, or
    the epoch fills up, the open path is finished: with a zero bootstrap
    value if a terminal state was reached, and with the estimated value
    of the next observation otherwise.

    If the epoch fills up in the middle of an episode and
    finish_episode_on_epoch_end is set, the rest of that episode is
    played out but not recorded. The next epoch then starts with the next
    episode. Otherwise the next epoch starts at the very next step.
    """

    def __init__(
        self,
        buffer: TrajectoryBuffer,
        value_fn: Callable[[np.ndarray], float],
        finish_episode_on_epoch_end: bool = True
    ):
        """
        Initialize controller.

        Args:
            buffer: Buffer whose capacity is the epoch length
            value_fn: Maps an observation to its estimated state value
            finish_episode_on_epoch_end: Discard the remainder of an
                episode that straddles an epoch boundary
        """
        self.buffer = buffer
        self.value_fn = value_fn
        self.finish_episode_on_epoch_end = finish_episode_on_epoch_end

        self.epoch_length = buffer.capacity
        self.current_epoch_step = 0
        self.completed_epochs = 0
        self.state = EpochState.COLLECTING
        self.prev_step: Optional[TimeStep] = None

    @property
    def finishing_episode(self) -> bool:
        return self.state is EpochState.FINISHING_EPISODE

    def ready(self) -> bool:
        """Whether a full epoch has been recorded."""
        return self.current_epoch_step == self.epoch_length

    def observe_first(self, step: TimeStep) -> None:
        if not step.first():
            logger.warning(
                "observe_first should only be called on the first timestep "
                "(current timestep = %d)", step.number
            )
        self.prev_step = step

    def observe(self, action: Sequence[float], next_step: TimeStep) -> None:
        """Record the step taken from the previous timestep into next_step."""
        if self.prev_step is None:
            raise RuntimeError("observe: observe_first must be called first")

        if self.finishing_episode:
            self.prev_step = next_step
            return

        obs = self.prev_step.observation
        try:
            self.buffer.store(obs, action, next_step.reward, self.value_fn(obs))
        except BufferError as err:
            raise RuntimeError(f"observe: trajectory buffer misused: {err}") from err

        self.prev_step = next_step
        self.current_epoch_step += 1

        epoch_full = self.current_epoch_step == self.epoch_length
        if not (next_step.last() or epoch_full):
            return

        if next_step.terminal_end():
            self.buffer.finish_path(0.0)
        else:
            self.buffer.finish_path(self.value_fn(next_step.observation))

        if epoch_full and self.finish_episode_on_epoch_end and not next_step.last():
            self.state = EpochState.FINISHING_EPISODE
            logger.debug(
                "epoch %d full at episode step %d, discarding rest of episode",
                self.completed_epochs, next_step.number
            )

    def end_episode(self) -> None:
        """Allow the next episode to contribute to the open epoch."""
        self.state = EpochState.COLLECTING

    def step(self, update: Callable[[RolloutBatch], T]) -> Optional[T]:
        """
        Run update on the epoch's data if the epoch is complete.

        Args:
            update: Performs the gradient update on a full batch

        Returns:
            Whatever update returns, or None if the epoch is not complete
        """
        if not self.ready():
            return None

        try:
            batch = self.buffer.get()
        except BufferError as err:
            raise RuntimeError(f"step: trajectory buffer misused: {err}") from err

        # The buffer is already reset, so a failed update drops this epoch
        self.current_epoch_step = 0
        result = update(batch)
        self.completed_epochs += 1
        return result
