"""Exception types raised by buffers, controllers and agents"""


class OnlineRLError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(OnlineRLError, ValueError):
    """Illegal hyperparameter or construction argument."""


class ShapeMismatchError(ConfigurationError):
    """Two parameter sets that must line up tensor-for-tensor do not."""


class BufferError(OnlineRLError):
    """Misuse of a trajectory buffer."""


class BufferFullError(BufferError):
    """Store called on a buffer with no free slot."""


class BufferNotFullError(BufferError):
    """Get called before the buffer was filled."""


class DimensionMismatchError(BufferError, ValueError):
    """Observation or action has the wrong length."""


class SampleUnavailableError(OnlineRLError):
    """A replay buffer cannot produce a batch right now.

    Agents treat this as "skip this update", never as a failure.
    """


class EmptyBufferError(SampleUnavailableError):
    """Replay buffer holds no transitions."""


class InsufficientSamplesError(SampleUnavailableError):
    """Replay buffer has not reached its minimum capacity."""


class OpenPathError(BufferError):
    """Get called while the current path has not been finished."""
