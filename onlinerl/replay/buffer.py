"""Experience replay for off-policy agents"""

import logging
from collections import deque
from itertools import islice
from typing import List, NamedTuple, Optional

import numpy as np

from onlinerl.common.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmptyBufferError,
    InsufficientSamplesError,
)
from onlinerl.envs.timestep import Transition

logger = logging.getLogger(__name__)


class TransitionBatch(NamedTuple):
    """A batch of transitions, one row per sample."""
    states: np.ndarray
    actions: np.ndarray
    rewards: np.ndarray
    discounts: np.ndarray
    next_states: np.ndarray
    next_actions: Optional[np.ndarray]


class Selector:
    """Chooses slots of a replay buffer, either to sample or to evict."""

    def __init__(self, batch_size: int):
        if batch_size < 1:
            raise ConfigurationError(f"batch size must be >= 1, got {batch_size}")
        self.batch_size = batch_size

    def choose(self, replay: "ExperienceReplay") -> List[int]:
        raise NotImplementedError


class UniformSelector(Selector):
    """Selects slots uniformly at random, with replacement."""

    def __init__(self, batch_size: int, seed: Optional[int] = None):
        super().__init__(batch_size)
        self.rng = np.random.default_rng(seed)

    def choose(self, replay: "ExperienceReplay") -> List[int]:
        in_use = replay.in_use_indices()
        picks = self.rng.integers(0, len(in_use), size=self.batch_size)
        return in_use[picks].tolist()


class FifoSelector(Selector):
    """Selects the oldest slots; as a remover it also forgets them."""

    def choose(self, replay: "ExperienceReplay") -> List[int]:
        return replay.insert_order(self.batch_size)


SELECTORS = {
    "uniform": UniformSelector,
    "fifo": FifoSelector,
}


def make_selector(method: str, batch_size: int, seed: Optional[int] = None) -> Selector:
    if method == "uniform":
        return UniformSelector(batch_size, seed)
    if method == "fifo":
        return FifoSelector(batch_size)
    raise ConfigurationError(f"Unknown selector: {method}")


class ExperienceReplay:
    """
    Fixed-capacity store of transitions.

    Once max_capacity transitions are held, adding another first evicts
    the slots chosen by the remover. Sampling is refused until at least
    min_capacity transitions have been added.
    """

    def __init__(
        self,
        remover: Selector,
        sampler: Selector,
        min_capacity: int,
        max_capacity: int,
        feature_size: int,
        action_size: int,
        include_next_action: bool = False
    ):
        """
        Initialize replay buffer.

        Args:
            remover: Chooses which transitions to evict when full
            sampler: Chooses which transitions make up a batch
            min_capacity: Transitions required before sampling is allowed
            max_capacity: Maximum number of transitions held
            feature_size: Length of a state observation
            action_size: Length of an action
            include_next_action: Whether to store and return next actions
        """
        if min_capacity <= 0:
            raise ConfigurationError(f"min capacity must be > 0, got {min_capacity}")
        if max_capacity < 1:
            raise ConfigurationError(f"max capacity must be >= 1, got {max_capacity}")
        if min_capacity > max_capacity:
            raise ConfigurationError(
                f"min capacity ({min_capacity}) > max capacity ({max_capacity})"
            )
        if sampler.batch_size > max_capacity:
            raise ConfigurationError(
                f"cannot have batch size ({sampler.batch_size}) > max "
                f"capacity ({max_capacity})"
            )
        if max_capacity == 1 and remover.batch_size > 1:
            logger.warning("using online replay, ignoring remover batch size > 1")
            remover.batch_size = 1

        self.remover = remover
        self.sampler = sampler
        self.min_capacity = min_capacity
        self.max_capacity = max_capacity
        self.feature_size = feature_size
        self.action_size = action_size
        self.include_next_action = include_next_action

        self.states = np.zeros((max_capacity, feature_size), dtype=np.float64)
        self.next_states = np.zeros((max_capacity, feature_size), dtype=np.float64)
        self.actions = np.zeros((max_capacity, action_size), dtype=np.float64)
        self.next_actions = (
            np.zeros((max_capacity, action_size), dtype=np.float64)
            if include_next_action else None
        )
        self.rewards = np.zeros(max_capacity, dtype=np.float64)
        self.discounts = np.zeros(max_capacity, dtype=np.float64)

        # Slots in use are packed into _in_use[:_size] in no particular
        # order; _position maps a slot back to its index there, or -1 if free
        self._in_use = np.zeros(max_capacity, dtype=np.int64)
        self._position = np.full(max_capacity, -1, dtype=np.int64)
        self._size = 0
        # Free slots are popped from the end
        self._empty = list(reversed(range(max_capacity)))

        # (stamp, slot) pairs, oldest first. Evicted slots leave stale
        # pairs behind that are skipped and dropped lazily.
        self._order = deque()
        self._stamps = np.full(max_capacity, -1, dtype=np.int64)
        self._next_stamp = 0

    @property
    def capacity(self) -> int:
        """Number of transitions currently held."""
        return self._size

    @property
    def batch_size(self) -> int:
        return self.sampler.batch_size

    def __len__(self) -> int:
        return self.capacity

    def in_use_indices(self) -> np.ndarray:
        """Slots currently holding a transition, unordered. Do not modify."""
        return self._in_use[:self._size]

    def _live(self, stamp: int, slot: int) -> bool:
        return self._position[slot] >= 0 and self._stamps[slot] == stamp

    def insert_order(self, n: int) -> List[int]:
        """Slots of the n oldest transitions, oldest first."""
        while self._order and not self._live(*self._order[0]):
            self._order.popleft()
        live = (slot for stamp, slot in self._order if self._live(stamp, slot))
        return list(islice(live, min(n, self.capacity)))

    def _release(self, slot: int) -> None:
        position = self._position[slot]
        last = self._in_use[self._size - 1]
        self._in_use[position] = last
        self._position[last] = position
        self._position[slot] = -1
        self._size -= 1
        self._empty.append(slot)

    def _remove(self) -> None:
        for slot in set(self.remover.choose(self)):
            if self._position[slot] >= 0:
                self._release(slot)
        if len(self._order) > 2 * self.max_capacity:
            self._order = deque(e for e in self._order if self._live(*e))

    def add(self, transition: Transition) -> None:
        """
        Add a transition, evicting old ones first if the buffer is full.

        Raises:
            DimensionMismatchError: If the transition does not match the
                buffer's feature or action size
        """
        if (transition.state.size != self.feature_size
                or transition.next_state.size != self.feature_size):
            raise DimensionMismatchError(
                f"add: invalid feature size, want {self.feature_size}, "
                f"have {transition.state.size}"
            )
        if transition.action.size != self.action_size:
            raise DimensionMismatchError(
                f"add: invalid action size, want {self.action_size}, "
                f"have {transition.action.size}"
            )
        if self.include_next_action and (
                transition.next_action is None
                or transition.next_action.size != self.action_size):
            raise DimensionMismatchError("add: transition is missing a valid next action")

        if self.capacity >= self.max_capacity:
            self._remove()

        index = self._empty.pop()
        self._position[index] = self._size
        self._in_use[self._size] = index
        self._size += 1
        self._stamps[index] = self._next_stamp
        self._order.append((self._next_stamp, index))
        self._next_stamp += 1

        self.states[index] = transition.state
        self.next_states[index] = transition.next_state
        self.actions[index] = transition.action
        if self.include_next_action:
            self.next_actions[index] = transition.next_action
        self.rewards[index] = transition.reward
        self.discounts[index] = transition.discount

    def sample(self) -> TransitionBatch:
        """
        Sample a batch of transitions.

        Raises:
            EmptyBufferError: If nothing has been added
            InsufficientSamplesError: If fewer than min_capacity
                transitions are held
        """
        if self.capacity == 0:
            raise EmptyBufferError("sample: replay buffer is empty")
        if self.capacity < self.min_capacity:
            raise InsufficientSamplesError(
                f"sample: {self.capacity} transitions held, need {self.min_capacity}"
            )

        indices = np.asarray(self.sampler.choose(self), dtype=np.int64)
        return TransitionBatch(
            states=self.states[indices],
            actions=self.actions[indices],
            rewards=self.rewards[indices],
            discounts=self.discounts[indices],
            next_states=self.next_states[indices],
            next_actions=self.next_actions[indices] if self.include_next_action else None
        )


def make_replay(
    config,
    feature_size: int,
    action_size: int,
    seed: Optional[int] = None,
    include_next_action: bool = False
) -> ExperienceReplay:
    """Build an ExperienceReplay from a ReplayConfig."""
    config.validate()
    remover = make_selector(config.remove_method, config.remove_size, seed)
    sampler = make_selector(config.sample_method, config.sample_size, seed)
    return ExperienceReplay(
        remover,
        sampler,
        min_capacity=config.min_capacity,
        max_capacity=config.max_capacity,
        feature_size=feature_size,
        action_size=action_size,
        include_next_action=include_next_action
    )
