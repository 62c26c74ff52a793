"""Plotting utilities for training metrics"""

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from pathlib import Path
from typing import Dict, List, Union

from onlinerl.common.logging import load_metrics

# metric tag -> (y label, x label, colour)
SERIES = {
    "episode_return": ("Return", "Episode", "blue"),
    "episode_length": ("Length", "Episode", "teal"),
    "policy_loss": ("Loss", "Step", "green"),
    "value_loss": ("Loss", "Step", "orange"),
    "q_loss": ("Loss", "Step", "purple"),
    "entropy": ("Entropy", "Step", "brown"),
    "mean_advantage": ("Advantage", "Step", "gray"),
}


def moving_average(data: np.ndarray, window: int = 100) -> np.ndarray:
    """Moving average over a full window; empty if data is shorter than window."""
    return np.convolve(data, np.ones(window) / window, mode='valid')


def _plot_series(
    tag: str,
    points: List[Dict[str, float]],
    output_dir: Path,
    window: int
) -> Path:
    ylabel, xlabel, color = SERIES[tag]
    values = [m["value"] for m in points]
    steps = [m["step"] for m in points]
    title = tag.replace("_", " ").title()

    plt.figure(figsize=(10, 6))
    plt.plot(steps, values, alpha=0.3, label=title, color=color)
    if len(values) >= window:
        plt.plot(steps[window - 1:], moving_average(np.array(values), window),
                 label=f"{window}-point Moving Average", color="red", linewidth=2)
    plt.xlabel(xlabel)
    plt.ylabel(ylabel)
    plt.title(f"{title} Over Time")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()

    out = output_dir / f"{tag}.png"
    plt.savefig(out, dpi=150)
    plt.close()
    return out


def plot_metrics(
    metrics: Dict[str, List[Dict[str, float]]],
    output_dir: Union[str, Path],
    window: int = 100
) -> List[Path]:
    """
    Generate one plot per known metric.

    Args:
        metrics: Metric names mapped to lists of {step, value} dicts
        output_dir: Directory to save plots
        window: Window size for moving average

    Returns:
        Paths of the written plots
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    return [
        _plot_series(tag, metrics[tag], output_dir, window)
        for tag in SERIES if metrics.get(tag)
    ]


def plot_comparison(
    metrics_files: List[str],
    labels: List[str],
    output_file: Union[str, Path],
    metric_name: str = "episode_return",
    window: int = 100
) -> None:
    """
    Plot the moving average of one metric for several runs.

    Args:
        metrics_files: List of paths to metrics JSON files
        labels: List of labels for each run
        output_file: Path to save comparison plot
        metric_name: Name of metric to compare
        window: Window size for moving average
    """
    plt.figure(figsize=(12, 6))

    for metrics_file, label in zip(metrics_files, labels):
        metrics = load_metrics(metrics_file)
        if metric_name not in metrics:
            continue
        values = [m["value"] for m in metrics[metric_name]]
        steps = [m["step"] for m in metrics[metric_name]]
        if len(values) >= window:
            plt.plot(steps[window - 1:], moving_average(np.array(values), window),
                     label=label, linewidth=2)

    plt.xlabel("Episode")
    plt.ylabel(metric_name.replace('_', ' ').title())
    plt.title(f"Comparison: {metric_name.replace('_', ' ').title()}")
    plt.legend()
    plt.grid(True, alpha=0.3)
    plt.tight_layout()
    plt.savefig(output_file, dpi=150)
    plt.close()
