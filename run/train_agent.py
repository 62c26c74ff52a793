#!/usr/bin/env python3
"""Training script for the VPG, VAC and DeepQ agents"""

import argparse
import logging
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from onlinerl.common.config import AGENT_CONFIGS, load_config, save_config
from onlinerl.common.logging import MetricsLogger
from onlinerl.common.plotting import plot_metrics
from onlinerl.common.seed import set_seed
from onlinerl.common.utils import parse_hidden_sizes
from onlinerl.envs.make_env import GymEnvironment, make_env
from onlinerl.experiment.online import (
    EpisodeLengthTracker,
    EpisodeReturnTracker,
    OnlineExperiment,
    make_agent,
)
from onlinerl.pg.evaluation import evaluate_agent


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Train an online RL agent")

    # Agent
    parser.add_argument("--agent", type=str, default="vpg", choices=sorted(AGENT_CONFIGS),
                        help="Agent to train")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON config file ({\"agent\": ..., \"config\": {...}})")
    parser.add_argument("--hidden_sizes", type=str, default=None,
                        help="Hidden layer sizes (comma-separated), overrides config")

    # Environment
    parser.add_argument("--env", type=str, default="CartPole-v1", help="Environment name")
    parser.add_argument("--seed", type=int, default=0, help="Random seed")
    parser.add_argument("--gamma", type=float, default=0.99, help="Environment discount factor")
    parser.add_argument("--max_episode_steps", type=int, default=None,
                        help="Truncate episodes after this many steps")

    # Training
    parser.add_argument("--total_steps", type=int, default=100_000, help="Training step budget")
    parser.add_argument("--eval_episodes", type=int, default=10,
                        help="Number of episodes for the final evaluation")

    # Output
    parser.add_argument("--log_dir", type=str, default=None, help="TensorBoard log directory")
    parser.add_argument("--artifact_dir", type=str, default=None, help="Artifact output directory")

    return parser.parse_args()


def main():
    args = parse_args()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

    set_seed(args.seed)

    if args.config is not None:
        agent_name, config = load_config(args.config)
    else:
        agent_name, config = args.agent, AGENT_CONFIGS[args.agent]()
    if args.hidden_sizes is not None:
        config.hidden_sizes = parse_hidden_sizes(args.hidden_sizes)
        config.validate()

    env = GymEnvironment(
        make_env(args.env, seed=args.seed),
        gamma=args.gamma,
        step_limit=args.max_episode_steps,
        seed=args.seed
    )

    print(f"Environment: {args.env}")
    print(f"Observation dim: {env.obs_dim}")
    print(f"Action dim: {env.action_dim}")
    print(f"Discrete actions: {env.is_discrete}")
    print(f"Agent: {agent_name}")

    agent = make_agent(
        agent_name, env.obs_dim, env.action_dim, env.is_discrete,
        config=config, seed=args.seed
    )

    if args.log_dir is None:
        args.log_dir = f"artifacts/{agent_name}/tensorboard/seed_{args.seed}"
    if args.artifact_dir is None:
        args.artifact_dir = f"artifacts/{agent_name}"

    metrics = MetricsLogger(
        log_dir=args.log_dir,
        artifact_dir=args.artifact_dir,
        run_name=f"{agent_name}_{args.env}_{args.seed}"
    )
    save_config(Path(args.artifact_dir) / "config.json", agent_name, config)

    returns = EpisodeReturnTracker(metrics)
    lengths = EpisodeLengthTracker(metrics)
    experiment = OnlineExperiment(env, agent, args.total_steps, [returns, lengths], metrics)

    print("\nStarting training...")
    print(f"Total steps: {args.total_steps}")
    print("-" * 50)
    experiment.run()

    agent.save(f"{args.artifact_dir}/checkpoints/agent_final")

    eval_results = evaluate_agent(agent, env, n_episodes=args.eval_episodes)

    metrics.save_metrics()
    plot_metrics(metrics.get_metrics(), Path(args.artifact_dir) / "plots")
    metrics.close()

    print("\n" + "=" * 50)
    print("Training Summary")
    print("=" * 50)
    print(f"Episodes: {experiment.episodes}")
    if returns.returns:
        recent = returns.returns[-100:]
        print(f"Mean return (last {len(recent)} episodes): {sum(recent) / len(recent):.2f}")
    print(f"Eval return: {eval_results['mean_return']:.2f} ± {eval_results['std_return']:.2f}")
    print(f"Metrics saved to: {args.artifact_dir}/metrics.json")
    print(f"Plots saved to: {args.artifact_dir}/plots/")
    print(f"TensorBoard logs: {args.log_dir}")
    print("=" * 50)

    env.close()


if __name__ == "__main__":
    main()
