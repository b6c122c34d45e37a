import json
import logging
import os

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from tcpbench.errors import ReportError

logger = logging.getLogger(__name__)

RUNS_CSV = "throughput_runs.csv"
SUMMARY_CSV = "throughput_summary.csv"
GRAPHS_PNG = "throughput_graphs.png"

# Fields written by TransferStats.to_dict() that the report reads
RUN_KEYS = ("peer", "n_bytes", "total_bytes", "elapsed", "bandwidth_mbps",
            "stable_bandwidth_mbps", "round_durations")


def load_results(results_path):
    """Load saved throughput runs, one dict per accepted client"""
    if not os.path.exists(results_path):
        raise ReportError(f"Results file not found: {results_path}. Run the server with --results first.")

    try:
        with open(results_path, "r") as f:
            runs = json.load(f)
    except (OSError, ValueError) as e:
        raise ReportError(f"Cannot read results file {results_path}: {e}") from e
    if not isinstance(runs, list):
        raise ReportError(f"Results file {results_path} does not hold a list of runs")
    if not runs:
        raise ReportError(f"No runs recorded in {results_path}")

    for i, run in enumerate(runs, start=1):
        missing = [key for key in RUN_KEYS if not isinstance(run, dict) or key not in run]
        if missing:
            raise ReportError(f"Run {i} in {results_path} is missing {', '.join(missing)}")
    return runs


def round_throughput(run):
    """Per-round throughput in Mbit/s for a single run"""
    durations = np.asarray(run["round_durations"], dtype=float)
    with np.errstate(divide="ignore"):
        rates = np.where(durations > 0, run["n_bytes"] * 8 / (1048576 * durations), 0.0)
    return rates


def create_report(results_path, output_dir="."):
    """Create CSV tables and graphs for saved throughput runs"""
    runs = load_results(results_path)
    os.makedirs(output_dir, exist_ok=True)

    runs_df = pd.DataFrame({
        "Run": range(1, len(runs) + 1),
        "Peer": [r["peer"] for r in runs],
        "Total Bytes": [r["total_bytes"] for r in runs],
        "Elapsed (s)": [round(r["elapsed"], 6) for r in runs],
        "Bandwidth (Mbit/s)": [round(r["bandwidth_mbps"], 2) for r in runs],
        "Stable Bandwidth (Mbit/s)": [round(r["stable_bandwidth_mbps"], 2) for r in runs],
    })

    bandwidth = runs_df["Bandwidth (Mbit/s)"]
    summary = {
        "Runs": len(runs),
        "Mean Bandwidth (Mbit/s)": round(float(bandwidth.mean()), 2),
        "Min Bandwidth (Mbit/s)": round(float(bandwidth.min()), 2),
        "Max Bandwidth (Mbit/s)": round(float(bandwidth.max()), 2),
    }
    summary_df = pd.DataFrame(list(summary.items()), columns=["Metric", "Value"])

    plt.figure(figsize=(12, 10))

    # 1. Bandwidth of every run
    plt.subplot(2, 1, 1)
    plt.bar(runs_df["Run"], bandwidth)
    plt.title('Bandwidth per Run', fontsize=16)
    plt.xlabel('Run', fontsize=12)
    plt.ylabel('Mbit/s', fontsize=12)
    plt.xticks(list(runs_df["Run"]))
    plt.grid(True, axis='y')

    # 2. Round-by-round throughput of the latest run
    rates = round_throughput(runs[-1])
    plt.subplot(2, 1, 2)
    plt.plot(np.arange(1, len(rates) + 1), rates, 'b-', linewidth=1)
    plt.title('Per-Round Throughput (latest run)', fontsize=16)
    plt.xlabel('Round', fontsize=12)
    plt.ylabel('Mbit/s', fontsize=12)
    plt.grid(True)

    plt.tight_layout()
    graphs_path = os.path.join(output_dir, GRAPHS_PNG)
    plt.savefig(graphs_path, dpi=100)
    plt.close()
    logger.info(f"Performance graphs saved to {graphs_path}")

    runs_df.to_csv(os.path.join(output_dir, RUNS_CSV), index=False)
    summary_df.to_csv(os.path.join(output_dir, SUMMARY_CSV), index=False)
    logger.info(f"Run metrics saved to {os.path.join(output_dir, RUNS_CSV)}")
    logger.info(f"Summary saved to {os.path.join(output_dir, SUMMARY_CSV)}")

    for metric, value in summary.items():
        logger.info(f"{metric}: {value}")

    return summary
