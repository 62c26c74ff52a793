"""Short training runs on CartPole"""

import math

import pytest
import torch

from onlinerl.common.config import DeepQConfig, ReplayConfig, VACConfig, VPGConfig
from onlinerl.common.logging import MetricsLogger
from onlinerl.common.seed import set_seed
from onlinerl.envs.make_env import GymEnvironment, make_env
from onlinerl.experiment.online import EpisodeReturnTracker, OnlineExperiment, make_agent
from onlinerl.pg.evaluation import evaluate_agent

CONFIGS = {
    "vpg": VPGConfig(epoch_length=100, hidden_sizes=[16], value_grad_steps=5),
    "vac": VACConfig(
        hidden_sizes=[16], value_grad_steps=1,
        replay=ReplayConfig(sample_size=8, min_capacity=8, max_capacity=200)
    ),
    "deepq": DeepQConfig(
        hidden_sizes=[16], target_update_interval=20,
        replay=ReplayConfig(sample_size=16, min_capacity=32, max_capacity=500)
    ),
}


@pytest.mark.parametrize("name", sorted(CONFIGS))
def test_train_and_evaluate(name, tmp_path):
    set_seed(0)
    env = GymEnvironment(make_env("CartPole-v1", seed=0), gamma=0.99, seed=0)
    agent = make_agent(name, env.obs_dim, env.action_dim, env.is_discrete,
                       config=CONFIGS[name], seed=0)
    metrics = MetricsLogger(tmp_path / "tb", tmp_path / "artifacts", run_name=name)
    returns = EpisodeReturnTracker(metrics)

    OnlineExperiment(env, agent, max_steps=300, trackers=[returns], metrics=metrics).run()
    metrics.close()

    assert len(returns.returns) > 0
    assert all(r >= 1.0 for r in returns.returns)
    assert "episode_return" in metrics.get_metrics()

    results = evaluate_agent(agent, env, n_episodes=2, max_steps=200)
    assert len(results["episode_returns"]) == 2
    assert math.isfinite(results["mean_return"])
    assert not agent.is_eval()

    agent.save(str(tmp_path / name))
    restored = make_agent(name, env.obs_dim, env.action_dim, env.is_discrete,
                          config=CONFIGS[name], seed=0)
    restored.load(str(tmp_path / name))
    for a, b in zip(_parameters(agent), _parameters(restored)):
        assert torch.allclose(a, b)
    env.close()


def _parameters(agent):
    module = agent.q if hasattr(agent, "q") else agent.policy
    return list(module.parameters())
