"""Network construction and weight initialization tests"""

import math

import pytest
import torch
import torch.nn as nn

from onlinerl.common.errors import ConfigurationError
from onlinerl.pg.networks import (
    MLP,
    WEIGHT_INITS,
    QNetwork,
    ValueNetwork,
    init_weights,
    make_policy,
)


def linear_layers(module):
    return [m for m in module.modules() if isinstance(m, nn.Linear)]


class TestWeightInit:

    @pytest.mark.parametrize("scheme", sorted(set(WEIGHT_INITS) - {"default"}))
    def test_every_scheme_zeroes_biases(self, scheme):
        torch.manual_seed(0)
        mlp = MLP(4, 2, [8, 8], weight_init=scheme)

        layers = linear_layers(mlp)
        assert len(layers) == 3
        for layer in layers:
            assert torch.count_nonzero(layer.bias) == 0

    def test_zeros_and_constant(self):
        zeros = MLP(3, 2, [5], weight_init="zeros")
        constant = MLP(3, 2, [5], weight_init="constant", weight_init_args={"value": 0.25})

        for layer in linear_layers(zeros):
            assert torch.count_nonzero(layer.weight) == 0
        for layer in linear_layers(constant):
            assert torch.all(layer.weight == 0.25)

    def test_uniform_bounds(self):
        torch.manual_seed(0)
        mlp = MLP(10, 10, [50], weight_init="uniform",
                  weight_init_args={"low": 0.5, "high": 0.75})

        for layer in linear_layers(mlp):
            assert layer.weight.min() >= 0.5
            assert layer.weight.max() <= 0.75

    def test_gaussian_moments(self):
        torch.manual_seed(0)
        mlp = MLP(200, 1, [200], weight_init="gaussian",
                  weight_init_args={"mean": 1.0, "std": 0.01})
        weight = linear_layers(mlp)[0].weight

        assert weight.mean().item() == pytest.approx(1.0, abs=1e-3)
        assert weight.std().item() == pytest.approx(0.01, rel=0.05)

    def test_glorot_uniform_bound_scales_with_gain(self):
        torch.manual_seed(0)
        mlp = MLP(30, 10, [], weight_init="glorot_uniform", weight_init_args={"gain": 2.0})
        bound = 2.0 * math.sqrt(6.0 / (30 + 10))

        weight = linear_layers(mlp)[0].weight
        assert weight.abs().max().item() <= bound
        assert weight.abs().max().item() > 0.8 * bound

    def test_he_normal_std(self):
        torch.manual_seed(0)
        mlp = MLP(400, 400, [], weight_init="he_normal")

        std = linear_layers(mlp)[0].weight.std().item()
        assert std == pytest.approx(math.sqrt(2.0 / 400), rel=0.05)

    def test_he_uniform_bound(self):
        torch.manual_seed(0)
        mlp = MLP(100, 50, [], weight_init="he_uniform", weight_init_args={"gain": 1.0})

        assert linear_layers(mlp)[0].weight.abs().max().item() <= math.sqrt(3.0 / 100)

    def test_default_keeps_torch_init(self):
        torch.manual_seed(0)
        mlp = MLP(4, 2, [8])

        assert torch.count_nonzero(linear_layers(mlp)[0].bias) > 0

    def test_reaches_every_network(self):
        settings = dict(weight_init="constant", weight_init_args={"value": 0.5})
        networks = [
            ValueNetwork(3, [4], **settings),
            QNetwork(3, 2, [4], **settings),
            make_policy(3, 2, True, [4], **settings),
            make_policy(3, 2, False, [4], **settings),
        ]

        for network in networks:
            for layer in linear_layers(network):
                assert torch.all(layer.weight == 0.5)

    def test_gaussian_policy_log_std_untouched(self):
        policy = make_policy(3, 2, False, [4], weight_init="zeros")

        assert torch.allclose(policy.log_std, torch.full((2,), -0.5))

    @pytest.mark.parametrize("scheme,args", [
        ("orthogonal", None),
        ("uniform", {"gain": 1.0}),
        ("zeros", {"value": 1.0}),
        ("default", {"gain": 1.0}),
    ])
    def test_illegal_settings(self, scheme, args):
        with pytest.raises(ConfigurationError):
            init_weights(nn.Linear(2, 2), scheme, args)
