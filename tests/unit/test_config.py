"""Configuration tests"""

import json

import pytest

from onlinerl.common.config import (
    DeepQConfig,
    ReplayConfig,
    VACConfig,
    VPGConfig,
    load_config,
    save_config,
)
from onlinerl.common.errors import ConfigurationError


class TestValidation:

    def test_defaults_are_valid(self):
        for cls in (VPGConfig, VACConfig, DeepQConfig, ReplayConfig):
            cls().validate()

    @pytest.mark.parametrize("kwargs", [
        dict(epoch_length=0),
        dict(lam=1.1),
        dict(gamma=-0.5),
        dict(solver="adagrad"),
        dict(hidden_sizes=[64, 64], activation=["relu"]),
        dict(lr_policy=0.0),
    ])
    def test_illegal_vpg(self, kwargs):
        with pytest.raises(ConfigurationError):
            VPGConfig(**kwargs).validate()

    @pytest.mark.parametrize("kwargs", [
        dict(tau=0.0),
        dict(tau=1.01),
        dict(target_update_interval=0),
    ])
    def test_illegal_target_settings(self, kwargs):
        with pytest.raises(ConfigurationError):
            VACConfig(**kwargs).validate()
        with pytest.raises(ConfigurationError):
            DeepQConfig(**kwargs).validate()

    @pytest.mark.parametrize("kwargs", [
        dict(min_capacity=0),
        dict(max_capacity=0, min_capacity=0),
        dict(min_capacity=50, max_capacity=10, sample_size=5),
        dict(sample_size=20, max_capacity=10, min_capacity=1),
        dict(sample_method="prioritized"),
    ])
    def test_illegal_replay(self, kwargs):
        with pytest.raises(ConfigurationError):
            ReplayConfig(**kwargs).validate()

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            VPGConfig(epoch_length=-1).validate()


class TestSerialization:

    def test_from_dict_ignores_unknown_keys(self):
        config = VPGConfig.from_dict({"epoch_length": 100, "comment": "ignored"})

        assert config.epoch_length == 100
        assert config.lam == VPGConfig().lam

    def test_from_dict_builds_nested_replay(self):
        config = DeepQConfig.from_dict({
            "epsilon": 0.2,
            "replay": {"sample_size": 8, "min_capacity": 8, "max_capacity": 64},
        })

        assert isinstance(config.replay, ReplayConfig)
        assert config.replay.sample_size == 8

    def test_from_dict_validates(self):
        with pytest.raises(ConfigurationError):
            VPGConfig.from_dict({"epoch_length": 0})

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(path, "vac", VACConfig(tau=0.5))
        agent, config = load_config(path)

        assert agent == "vac"
        assert isinstance(config, VACConfig)
        assert config.tau == 0.5
        assert config.replay == VACConfig().replay

    def test_unknown_agent(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"agent": "ppo", "config": {}}))

        with pytest.raises(ConfigurationError):
            load_config(path)


class TestWeightInitConfig:

    @pytest.mark.parametrize("cls", [VPGConfig, VACConfig, DeepQConfig])
    def test_unknown_scheme(self, cls):
        with pytest.raises(ConfigurationError):
            cls(weight_init="orthogonal").validate()

    def test_unknown_setting(self):
        with pytest.raises(ConfigurationError):
            VPGConfig(weight_init="glorot_uniform", weight_init_args={"std": 1.0}).validate()

    def test_round_trip(self, tmp_path):
        path = tmp_path / "config.json"
        save_config(path, "deepq", DeepQConfig(
            weight_init="uniform", weight_init_args={"low": -0.5, "high": 0.5}
        ))
        _, config = load_config(path)

        assert config.weight_init == "uniform"
        assert config.weight_init_args == {"low": -0.5, "high": 0.5}
