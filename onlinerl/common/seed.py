"""Deterministic seeding utilities"""

import random
from typing import Optional

import numpy as np
import torch


def set_seed(seed: int, deterministic: bool = True) -> None:
    """
    Set global random seeds for reproducibility.

    Args:
        seed: Random seed value
        deterministic: If True, use deterministic cuDNN kernels (slower but reproducible)
    """
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    torch.cuda.manual_seed_all(seed)

    if deterministic:
        torch.backends.cudnn.deterministic = True
        torch.backends.cudnn.benchmark = False


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Independent generator for an agent's own exploration noise."""
    return np.random.default_rng(seed)
