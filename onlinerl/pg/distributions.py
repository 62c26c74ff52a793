"""Action distribution helpers for discrete and continuous actions"""

import torch
from torch.distributions import Categorical, Independent, Normal


def categorical(logits: torch.Tensor) -> Categorical:
    """Categorical distribution over action indices."""
    return Categorical(logits=logits)


def gaussian(mean: torch.Tensor, log_std: torch.Tensor) -> Independent:
    """
    Diagonal Gaussian over action vectors.

    Args:
        mean: Action means (batch_size, action_dim)
        log_std: Log standard deviation (action_dim,)

    Returns:
        Distribution whose log_prob sums over action dimensions
    """
    return Independent(Normal(mean, log_std.exp().expand_as(mean)), 1)


def squeeze_discrete_actions(actions: torch.Tensor) -> torch.Tensor:
    """Turn stored (batch_size, 1) float action indices into (batch_size,) longs."""
    if actions.dim() > 1:
        actions = actions.squeeze(-1)
    return actions.long()


def entropy(dist: torch.distributions.Distribution) -> torch.Tensor:
    """Mean entropy of a batch of action distributions."""
    return dist.entropy().mean()
