"""Evaluation utilities for trained agents"""

import numpy as np

from onlinerl.agent import Agent
from onlinerl.envs.make_env import GymEnvironment


def evaluate_agent(
    agent: Agent,
    env: GymEnvironment,
    n_episodes: int = 10,
    max_steps: int = 10_000
) -> dict:
    """
    Run an agent in evaluation mode over multiple episodes.

    The agent acts greedily and records nothing; its previous train/eval
    mode is restored afterwards.

    Args:
        agent: Agent to evaluate
        env: Environment
        n_episodes: Number of episodes to run
        max_steps: Step cap per episode

    Returns:
        Dictionary with evaluation metrics
    """
    was_eval = agent.is_eval()
    agent.eval()

    episode_returns = []
    episode_lengths = []
    try:
        for _ in range(n_episodes):
            step = env.reset()
            agent.observe_first(step)
            episode_return = 0.0

            while not step.last() and step.number < max_steps:
                action = agent.select_action(step)
                step = env.step(action)
                agent.observe(action, step)
                episode_return += step.reward

            agent.end_episode()
            episode_returns.append(episode_return)
            episode_lengths.append(step.number)
    finally:
        if not was_eval:
            agent.train()

    return {
        "mean_return": float(np.mean(episode_returns)),
        "std_return": float(np.std(episode_returns)),
        "min_return": float(np.min(episode_returns)),
        "max_return": float(np.max(episode_returns)),
        "mean_length": float(np.mean(episode_lengths)),
        "std_length": float(np.std(episode_lengths)),
        "episode_returns": episode_returns,
        "episode_lengths": episode_lengths
    }
