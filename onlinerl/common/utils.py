"""General utility functions"""

from typing import List
import numpy as np


def parse_hidden_sizes(hidden_sizes_str: str) -> List[int]:
    """
    Parse comma-separated hidden sizes string.

    Args:
        hidden_sizes_str: Comma-separated string like "128,128"

    Returns:
        List of integers (empty for a linear model)
    """
    return [int(s.strip()) for s in hidden_sizes_str.split(",") if s.strip()]


def discount_cumsum(x: np.ndarray, discount: float) -> np.ndarray:
    """
    Reverse discounted cumulative sum.

    For x = [x0, x1, ..., xN] returns y with
    y_t = x_t + discount * y_{t+1} and y_N = x_N.

    Args:
        x: 1-D array
        discount: Decay applied per step

    Returns:
        Array of the same length as x
    """
    x = np.asarray(x, dtype=np.float64)
    out = np.zeros_like(x)
    running = 0.0
    for t in reversed(range(len(x))):
        running = x[t] + discount * running
        out[t] = running
    return out


def normalize_advantages(advantages: np.ndarray, eps: float = 1e-8) -> np.ndarray:
    """
    Normalize advantages in place to zero mean and unit (sample) standard deviation.

    The standard deviation is floored at eps so that a batch of identical
    advantages maps to all zeros instead of dividing by zero.

    Args:
        advantages: Array of advantages, modified in place
        eps: Floor for the standard deviation

    Returns:
        The same array
    """
    mean = advantages.mean()
    std = advantages.std(ddof=1) if advantages.size > 1 else 0.0
    advantages -= mean
    advantages /= max(std, eps)
    return advantages
