#!/usr/bin/env python3
"""Generate plots from saved metrics"""

import argparse
import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from onlinerl.common.logging import load_metrics
from onlinerl.common.plotting import plot_comparison, plot_metrics


def parse_args():
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Generate plots from metrics")

    parser.add_argument("--metrics_files", type=str, nargs="+", required=True,
                        help="Metrics JSON file(s); several files produce a comparison plot")
    parser.add_argument("--labels", type=str, nargs="*", default=None,
                        help="Run labels for a comparison plot")
    parser.add_argument("--output_dir", type=str, required=True, help="Directory to save plots")
    parser.add_argument("--window", type=int, default=100, help="Moving average window")

    return parser.parse_args()


def main():
    args = parse_args()
    output_dir = Path(args.output_dir)

    if len(args.metrics_files) == 1:
        print(f"Loading metrics from: {args.metrics_files[0]}")
        metrics = load_metrics(args.metrics_files[0])
        print(f"Generating plots in: {output_dir}")
        plot_metrics(metrics, output_dir, window=args.window)
    else:
        labels = args.labels or [Path(f).parent.name for f in args.metrics_files]
        output_dir.mkdir(parents=True, exist_ok=True)
        plot_comparison(args.metrics_files, labels, output_dir / "comparison.png",
                        window=args.window)

    print("Done!")


if __name__ == "__main__":
    main()
