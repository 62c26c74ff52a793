"""TensorBoard logging and metrics saving utilities"""

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Union

from torch.utils.tensorboard import SummaryWriter

logger = logging.getLogger(__name__)


class MetricsLogger:
    """Logs scalar metrics to TensorBoard and keeps them for a JSON dump."""

    def __init__(
        self,
        log_dir: Union[str, Path],
        artifact_dir: Union[str, Path],
        run_name: str = "run"
    ):
        """
        Initialize logger.

        Args:
            log_dir: Directory for TensorBoard logs
            artifact_dir: Directory for artifacts (checkpoints, metrics, plots)
            run_name: Name of this run
        """
        self.log_dir = Path(log_dir)
        self.artifact_dir = Path(artifact_dir)
        self.run_name = run_name

        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.artifact_dir.mkdir(parents=True, exist_ok=True)
        (self.artifact_dir / "checkpoints").mkdir(parents=True, exist_ok=True)
        (self.artifact_dir / "plots").mkdir(parents=True, exist_ok=True)

        self.writer = SummaryWriter(log_dir=str(self.log_dir))

        # In-memory metrics storage
        self.metrics: Dict[str, list] = {}

    def log_scalar(self, tag: str, value: float, step: int) -> None:
        """Log a scalar value to TensorBoard and store in memory."""
        self.writer.add_scalar(tag, value, step)
        self.metrics.setdefault(tag, []).append({"step": step, "value": float(value)})

    def log_scalars(self, values: Mapping[str, float], step: int) -> None:
        for tag, value in values.items():
            self.log_scalar(tag, value, step)

    def save_metrics(self, filename: str = "metrics.json") -> Path:
        """Save all logged metrics to a JSON file in the artifact directory."""
        metrics_file = self.artifact_dir / filename
        with open(metrics_file, 'w') as f:
            json.dump(self.metrics, f, indent=2)
        logger.info("Metrics saved to %s", metrics_file)
        return metrics_file

    def close(self) -> None:
        self.writer.close()

    def get_metrics(self) -> Dict[str, list]:
        return {tag: list(points) for tag, points in self.metrics.items()}


def load_metrics(metrics_file: Union[str, Path]) -> Dict[str, list]:
    """Load metrics from a JSON file."""
    with open(metrics_file, 'r') as f:
        return json.load(f)
