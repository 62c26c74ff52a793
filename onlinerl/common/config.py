"""Agent hyperparameter configurations and JSON loading"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from onlinerl.common.errors import ConfigurationError
from onlinerl.pg.networks import check_weight_init
from onlinerl.replay.buffer import SELECTORS

SOLVERS = ("adam", "sgd", "rmsprop")


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ConfigurationError(f"{name} must be in [0, 1], got {value}")


def _check_positive(name: str, value: float) -> None:
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")


def _check_network(
    hidden_sizes: List[int],
    activation: Union[str, List[str]],
    weight_init: str = "default",
    weight_init_args: Optional[Dict[str, float]] = None
) -> None:
    if any(size <= 0 for size in hidden_sizes):
        raise ConfigurationError(f"hidden sizes must be positive, got {hidden_sizes}")
    if isinstance(activation, (list, tuple)) and len(activation) != len(hidden_sizes):
        raise ConfigurationError(
            f"got {len(activation)} activations for {len(hidden_sizes)} hidden layers"
        )
    check_weight_init(weight_init, weight_init_args)


def _check_target(tau: float, interval: int) -> None:
    if not 0.0 < tau <= 1.0:
        raise ConfigurationError(f"tau must be in (0, 1], got {tau}")
    if interval < 1:
        raise ConfigurationError(f"target update interval must be >= 1, got {interval}")


class _Config:
    """from_dict / to_dict shared by all configs."""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in data.items() if k in known}
        if isinstance(kwargs.get("replay"), dict):
            kwargs["replay"] = ReplayConfig.from_dict(kwargs["replay"])
        config = cls(**kwargs)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReplayConfig(_Config):
    remove_method: str = "fifo"
    sample_method: str = "uniform"
    remove_size: int = 1
    sample_size: int = 32
    max_capacity: int = 100_000
    min_capacity: int = 32

    def validate(self) -> None:
        for method in (self.remove_method, self.sample_method):
            if method not in SELECTORS:
                raise ConfigurationError(f"Unknown selector: {method}")
        if self.remove_size < 1 or self.sample_size < 1:
            raise ConfigurationError("remove and sample sizes must be >= 1")
        if self.min_capacity <= 0:
            raise ConfigurationError(f"min capacity must be > 0, got {self.min_capacity}")
        if self.max_capacity < 1:
            raise ConfigurationError(f"max capacity must be >= 1, got {self.max_capacity}")
        if self.min_capacity > self.max_capacity:
            raise ConfigurationError(
                f"min capacity ({self.min_capacity}) > max capacity ({self.max_capacity})"
            )
        if self.sample_size > self.max_capacity:
            raise ConfigurationError(
                f"sample size ({self.sample_size}) > max capacity ({self.max_capacity})"
            )


@dataclass
class VPGConfig(_Config):
    """Vanilla policy gradient with GAE-lambda."""
    epoch_length: int = 4000
    lam: float = 0.97
    gamma: float = 0.99
    hidden_sizes: List[int] = field(default_factory=lambda: [64, 64])
    activation: Union[str, List[str]] = "tanh"
    weight_init: str = "default"
    weight_init_args: Dict[str, float] = field(default_factory=dict)
    solver: str = "adam"
    lr_policy: float = 3e-4
    lr_value: float = 1e-3
    value_grad_steps: int = 80
    entropy_coef: float = 0.0
    max_grad_norm: float = 0.5
    finish_episode_on_epoch_end: bool = True

    def validate(self) -> None:
        if self.epoch_length <= 0:
            raise ConfigurationError(f"epoch length must be positive, got {self.epoch_length}")
        _check_unit_interval("lambda", self.lam)
        _check_unit_interval("gamma", self.gamma)
        _check_network(
            self.hidden_sizes, self.activation, self.weight_init, self.weight_init_args
        )
        if self.solver not in SOLVERS:
            raise ConfigurationError(f"Unknown solver: {self.solver}")
        _check_positive("policy learning rate", self.lr_policy)
        _check_positive("value learning rate", self.lr_value)
        if self.value_grad_steps < 0:
            raise ConfigurationError("value gradient steps must be >= 0")


@dataclass
class VACConfig(_Config):
    """Vanilla actor-critic trained from experience replay."""
    hidden_sizes: List[int] = field(default_factory=lambda: [64, 64])
    activation: Union[str, List[str]] = "tanh"
    weight_init: str = "default"
    weight_init_args: Dict[str, float] = field(default_factory=dict)
    solver: str = "adam"
    lr_policy: float = 3e-4
    lr_value: float = 1e-3
    value_grad_steps: int = 1
    entropy_coef: float = 0.0
    max_grad_norm: float = 0.5
    tau: float = 0.01
    target_update_interval: int = 1
    replay: ReplayConfig = field(
        default_factory=lambda: ReplayConfig(max_capacity=1, min_capacity=1, sample_size=1)
    )

    def validate(self) -> None:
        _check_network(
            self.hidden_sizes, self.activation, self.weight_init, self.weight_init_args
        )
        if self.solver not in SOLVERS:
            raise ConfigurationError(f"Unknown solver: {self.solver}")
        _check_positive("policy learning rate", self.lr_policy)
        _check_positive("value learning rate", self.lr_value)
        if self.value_grad_steps < 0:
            raise ConfigurationError("value gradient steps must be >= 0")
        _check_target(self.tau, self.target_update_interval)
        self.replay.validate()


@dataclass
class DeepQConfig(_Config):
    """Deep Q-learning with an epsilon-greedy behaviour policy."""
    hidden_sizes: List[int] = field(default_factory=lambda: [64, 64])
    activation: Union[str, List[str]] = "relu"
    weight_init: str = "default"
    weight_init_args: Dict[str, float] = field(default_factory=dict)
    solver: str = "adam"
    lr: float = 1e-3
    epsilon: float = 0.1
    max_grad_norm: float = 10.0
    tau: float = 1.0
    target_update_interval: int = 100
    replay: ReplayConfig = field(default_factory=ReplayConfig)

    def validate(self) -> None:
        _check_network(
            self.hidden_sizes, self.activation, self.weight_init, self.weight_init_args
        )
        if self.solver not in SOLVERS:
            raise ConfigurationError(f"Unknown solver: {self.solver}")
        _check_positive("learning rate", self.lr)
        _check_unit_interval("epsilon", self.epsilon)
        _check_target(self.tau, self.target_update_interval)
        self.replay.validate()


AGENT_CONFIGS = {
    "vpg": VPGConfig,
    "vac": VACConfig,
    "deepq": DeepQConfig,
}


def load_config(path: Union[str, Path]) -> Tuple[str, _Config]:
    """
    Load an agent configuration from a JSON file of the form
    {"agent": "vpg", "config": {...}}.

    Returns:
        Tuple of (agent name, validated config)
    """
    with open(path, 'r') as f:
        data = json.load(f)

    agent = data.get("agent")
    if agent not in AGENT_CONFIGS:
        raise ConfigurationError(
            f"Unknown agent {agent!r}, expected one of {sorted(AGENT_CONFIGS)}"
        )
    return agent, AGENT_CONFIGS[agent].from_dict(data.get("config", {}))


def save_config(path: Union[str, Path], agent: str, config: _Config) -> None:
    with open(path, 'w') as f:
        json.dump({"agent": agent, "config": config.to_dict()}, f, indent=2)
