"""Target network synchronization (hard copy or Polyak averaging)"""

from typing import Sequence

from onlinerl.common.errors import ConfigurationError, ShapeMismatchError


class TargetSynchronizer:
    """
    Moves target parameters toward online parameters every
    update_interval gradient steps.

    With tau == 1 the online parameters are copied exactly. Otherwise
    each target tensor becomes (1 - tau) * target + tau * online.

    Parameters are any sequence of arrays supporting elementwise
    arithmetic, `shape` and slice assignment (numpy arrays, or the
    `.data` of torch parameters).
    """

    def __init__(self, tau: float = 1.0, update_interval: int = 1):
        if not 0.0 < tau <= 1.0:
            raise ConfigurationError(f"tau must be in (0, 1], got {tau}")
        if update_interval < 1:
            raise ConfigurationError(
                f"update interval must be >= 1, got {update_interval}"
            )
        self.tau = tau
        self.update_interval = update_interval
        self.gradient_steps = 0

    @staticmethod
    def check_compatible(online: Sequence, target: Sequence) -> None:
        """Raise ShapeMismatchError unless the two sets line up tensor for tensor."""
        if len(online) != len(target):
            raise ShapeMismatchError(
                f"online has {len(online)} parameter tensors, target has {len(target)}"
            )
        for i, (o, t) in enumerate(zip(online, target)):
            if tuple(o.shape) != tuple(t.shape):
                raise ShapeMismatchError(
                    f"parameter {i}: online shape {tuple(o.shape)} "
                    f"!= target shape {tuple(t.shape)}"
                )

    def maybe_sync(self, online: Sequence, target: Sequence) -> bool:
        """
        Count one gradient step and update target if the interval is hit.

        Returns:
            True if target was updated
        """
        self.check_compatible(online, target)
        self.gradient_steps += 1
        if self.gradient_steps % self.update_interval != 0:
            return False

        if self.tau == 1.0:
            for o, t in zip(online, target):
                t[...] = o
        else:
            for o, t in zip(online, target):
                t[...] = (1.0 - self.tau) * t + self.tau * o
        return True
