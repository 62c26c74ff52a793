"""Neural network architectures for policies, value functions and Q functions"""

import copy
import inspect
import math
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import torch
import torch.nn as nn

from onlinerl.common.errors import ConfigurationError
from onlinerl.pg.distributions import (
    categorical,
    gaussian,
    squeeze_discrete_actions,
)

ACTIVATIONS = {
    "relu": nn.ReLU,
    "tanh": nn.Tanh,
    "elu": nn.ELU,
}

# scheme -> initializer of a weight matrix; keyword defaults are the
# scheme's settings. He schemes scale the unit-gain fan-in init by gain.
WEIGHT_INITS = {
    "default": None,
    "glorot_uniform": lambda w, gain=1.0: nn.init.xavier_uniform_(w, gain=gain),
    "glorot_normal": lambda w, gain=1.0: nn.init.xavier_normal_(w, gain=gain),
    "he_uniform": lambda w, gain=math.sqrt(2.0):
        nn.init.kaiming_uniform_(w, nonlinearity="linear").mul_(gain),
    "he_normal": lambda w, gain=math.sqrt(2.0):
        nn.init.kaiming_normal_(w, nonlinearity="linear").mul_(gain),
    "uniform": lambda w, low=-0.1, high=0.1: nn.init.uniform_(w, low, high),
    "gaussian": lambda w, mean=0.0, std=0.1: nn.init.normal_(w, mean, std),
    "zeros": lambda w: nn.init.zeros_(w),
    "constant": lambda w, value=1.0: nn.init.constant_(w, value),
}


def check_weight_init(scheme: str, args: Optional[Dict[str, float]] = None) -> None:
    """Raise ConfigurationError for an unknown scheme or setting."""
    if scheme not in WEIGHT_INITS:
        raise ConfigurationError(
            f"Unknown weight init {scheme!r}, expected one of {sorted(WEIGHT_INITS)}"
        )
    args = args or {}
    if scheme == "default":
        if args:
            raise ConfigurationError("the default weight init takes no settings")
        return
    allowed = list(inspect.signature(WEIGHT_INITS[scheme]).parameters)[1:]
    unknown = sorted(set(args) - set(allowed))
    if unknown:
        raise ConfigurationError(
            f"weight init {scheme!r} got unknown settings {unknown}, expected {allowed}"
        )


def init_weights(
    module: nn.Module,
    scheme: str = "default",
    args: Optional[Dict[str, float]] = None
) -> None:
    """
    Initialize the weights of every linear layer of a module in place.

    Biases are set to zero for every scheme except "default", which keeps
    torch's own nn.Linear initialization.

    Args:
        module: Module whose nn.Linear layers are initialized
        scheme: Key of WEIGHT_INITS
        args: Settings of the scheme, e.g. {"gain": 1.0} or {"low": -1, "high": 1}
    """
    check_weight_init(scheme, args)
    if scheme == "default":
        return
    init = WEIGHT_INITS[scheme]
    with torch.no_grad():
        for layer in module.modules():
            if isinstance(layer, nn.Linear):
                init(layer.weight, **(args or {}))
                nn.init.constant_(layer.bias, 0)


class MLP(nn.Module):
    """Multi-layer perceptron with configurable hidden layers."""

    def __init__(
        self,
        input_dim: int,
        output_dim: int,
        hidden_sizes: List[int],
        activation: Union[str, List[str]] = "relu",
        output_activation: Optional[str] = None,
        weight_init: str = "default",
        weight_init_args: Optional[Dict[str, float]] = None
    ):
        """
        Initialize MLP.

        Args:
            input_dim: Input dimension
            output_dim: Output dimension
            hidden_sizes: List of hidden layer sizes
            activation: Activation for all hidden layers, or one per layer
            output_activation: Activation function for output layer (None, "tanh", "sigmoid")
            weight_init: Weight initialization scheme (see WEIGHT_INITS)
            weight_init_args: Settings of the weight initialization scheme
        """
        super().__init__()

        if isinstance(activation, str):
            activations = [activation] * len(hidden_sizes)
        else:
            activations = list(activation)
        if len(activations) != len(hidden_sizes):
            raise ConfigurationError(
                f"got {len(activations)} activations for {len(hidden_sizes)} hidden layers"
            )

        layers = []
        prev_size = input_dim
        for hidden_size, name in zip(hidden_sizes, activations):
            if name not in ACTIVATIONS:
                raise ConfigurationError(f"Unknown activation: {name}")
            layers.append(nn.Linear(prev_size, hidden_size))
            layers.append(ACTIVATIONS[name]())
            prev_size = hidden_size

        layers.append(nn.Linear(prev_size, output_dim))
        if output_activation == "tanh":
            layers.append(nn.Tanh())
        elif output_activation == "sigmoid":
            layers.append(nn.Sigmoid())
        elif output_activation is not None:
            raise ConfigurationError(f"Unknown output activation: {output_activation}")

        self.net = nn.Sequential(*layers)
        init_weights(self.net, weight_init, weight_init_args)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: Input tensor (batch_size, input_dim)

        Returns:
            Output tensor (batch_size, output_dim)
        """
        return self.net(x)


class ValueNetwork(nn.Module):
    """Value network that estimates V(s)."""

    def __init__(
        self,
        obs_dim: int,
        hidden_sizes: List[int] = [64, 64],
        activation: Union[str, List[str]] = "tanh",
        weight_init: str = "default",
        weight_init_args: Optional[Dict[str, float]] = None
    ):
        """
        Initialize value network.

        Args:
            obs_dim: Observation dimension
            hidden_sizes: List of hidden layer sizes
            activation: Activation for the hidden layers
            weight_init: Weight initialization scheme
            weight_init_args: Settings of the weight initialization scheme
        """
        super().__init__()
        self.mlp = MLP(obs_dim, 1, hidden_sizes, activation,
                       weight_init=weight_init, weight_init_args=weight_init_args)

    def forward(self, obs: torch.Tensor) -> torch.Tensor:
        """
        Args:
            obs: Observation tensor (batch_size, obs_dim)

        Returns:
            Value estimates (batch_size,)
        """
        return self.mlp(obs).squeeze(-1)


class QNetwork(nn.Module):
    """Estimates Q(s, a) for every discrete action at once."""

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        hidden_sizes: List[int] = [64, 64],
        activation: Union[str, List[str]] = "relu",
        weight_init: str = "default",
        weight_init_args: Optional[Dict[str, float]] = None
    ):
        """
        Initialize Q network.

        Args:
            obs_dim: Observation dimension
            action_dim: Number of discrete actions
            hidden_sizes: List of hidden layer sizes
            activation: Activation for the hidden layers
            weight_init: Weight initialization scheme
            weight_init_args: Settings of the weight initialization scheme
        """
        super().__init__()
        self.mlp = MLP(obs_dim, action_dim, hidden_sizes, activation,
                       weight_init=weight_init, weight_init_args=weight_init_args)

    def forward(self, obs: torch.Tensor) -> torch.Tensor:
        """
        Args:
            obs: Observation tensor (batch_size, obs_dim)

        Returns:
            Action values (batch_size, action_dim)
        """
        return self.mlp(obs)


class CategoricalPolicy(nn.Module):
    """Softmax policy over discrete actions.

    Actions are represented as length-1 float vectors holding the action
    index, so that discrete and continuous actions share one layout.
    """

    action_size = 1

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        hidden_sizes: List[int] = [64, 64],
        activation: Union[str, List[str]] = "tanh",
        weight_init: str = "default",
        weight_init_args: Optional[Dict[str, float]] = None
    ):
        super().__init__()
        self.logits = MLP(obs_dim, action_dim, hidden_sizes, activation,
                          weight_init=weight_init, weight_init_args=weight_init_args)

    def distribution(self, obs: torch.Tensor) -> torch.distributions.Distribution:
        """Action distribution at each observation of the batch."""
        return categorical(self.logits(obs))

    def act(self, obs: torch.Tensor, deterministic: bool = False) -> torch.Tensor:
        """
        Choose actions for a batch of observations.

        Args:
            obs: Observation tensor (batch_size, obs_dim)
            deterministic: Take the most likely action instead of sampling

        Returns:
            Action indices as float64 (batch_size, 1)
        """
        logits = self.logits(obs)
        if deterministic:
            action = torch.argmax(logits, dim=-1)
        else:
            action = categorical(logits).sample()
        return action.unsqueeze(-1).to(torch.float64)

    def log_prob(self, obs: torch.Tensor, actions: torch.Tensor) -> torch.Tensor:
        """
        Args:
            obs: Observation tensor (batch_size, obs_dim)
            actions: Action indices (batch_size, 1) or (batch_size,)

        Returns:
            Log probabilities (batch_size,)
        """
        return self.distribution(obs).log_prob(squeeze_discrete_actions(actions))


class GaussianPolicy(nn.Module):
    """Diagonal Gaussian policy with a state-independent standard deviation."""

    def __init__(
        self,
        obs_dim: int,
        action_dim: int,
        hidden_sizes: List[int] = [64, 64],
        activation: Union[str, List[str]] = "tanh",
        init_log_std: float = -0.5,
        weight_init: str = "default",
        weight_init_args: Optional[Dict[str, float]] = None
    ):
        super().__init__()
        self.action_size = action_dim
        self.mean = MLP(obs_dim, action_dim, hidden_sizes, activation,
                        weight_init=weight_init, weight_init_args=weight_init_args)
        self.log_std = nn.Parameter(torch.full((action_dim,), init_log_std))

    def distribution(self, obs: torch.Tensor) -> torch.distributions.Distribution:
        """Action distribution at each observation of the batch."""
        return gaussian(self.mean(obs), self.log_std)

    def act(self, obs: torch.Tensor, deterministic: bool = False) -> torch.Tensor:
        """Sample actions (batch_size, action_dim), or take the mean."""
        if deterministic:
            return self.mean(obs).to(torch.float64)
        return self.distribution(obs).sample().to(torch.float64)

    def log_prob(self, obs: torch.Tensor, actions: torch.Tensor) -> torch.Tensor:
        """Log probabilities (batch_size,) of a batch of actions."""
        return self.distribution(obs).log_prob(actions.to(obs.dtype))


Policy = Union[CategoricalPolicy, GaussianPolicy]


def make_policy(
    obs_dim: int,
    action_dim: int,
    is_discrete: bool,
    hidden_sizes: List[int],
    activation: Union[str, List[str]] = "tanh",
    weight_init: str = "default",
    weight_init_args: Optional[Dict[str, float]] = None
) -> Policy:
    """Categorical policy for discrete actions, Gaussian otherwise."""
    cls = CategoricalPolicy if is_discrete else GaussianPolicy
    return cls(obs_dim, action_dim, hidden_sizes, activation,
               weight_init=weight_init, weight_init_args=weight_init_args)


class ValueEstimator:
    """Callable giving the scalar value of a single observation."""

    def __init__(self, network: ValueNetwork, device: str = "cpu"):
        self.network = network
        self.device = device

    def __call__(self, obs: np.ndarray) -> float:
        obs_tensor = torch.as_tensor(
            np.asarray(obs), dtype=torch.float32, device=self.device
        ).reshape(1, -1)
        with torch.no_grad():
            value = self.network(obs_tensor)
        if value.numel() != 1:
            raise RuntimeError(
                f"value function predicted {value.numel()} values for one state"
            )
        return value.item()


def make_solver(
    name: str,
    params: Iterable[nn.Parameter],
    lr: float
) -> torch.optim.Optimizer:
    """Create the optimizer that applies gradients to a network."""
    if name == "adam":
        return torch.optim.Adam(params, lr=lr)
    if name == "sgd":
        return torch.optim.SGD(params, lr=lr)
    if name == "rmsprop":
        return torch.optim.RMSprop(params, lr=lr)
    raise ConfigurationError(f"Unknown solver: {name}")


def make_target(network: nn.Module) -> nn.Module:
    """Frozen copy of a network, for computing bootstrapped targets."""
    target = copy.deepcopy(network)
    for p in target.parameters():
        p.requires_grad_(False)
    return target


def parameter_tensors(network: nn.Module) -> List[torch.Tensor]:
    """The network's parameter tensors, detached for in-place writes."""
    return [p.data for p in network.parameters()]
