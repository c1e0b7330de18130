"""
Visualization utilities for simulation results.

Generates charts comparing rate managers across channel conditions.
"""

from pathlib import Path
from typing import Sequence

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from simulations.src.metrics import SimulationMetrics


def setup_style() -> None:
    """Set up matplotlib/seaborn style for consistent visuals."""
    sns.set_theme(style="whitegrid", palette="husl")
    plt.rcParams["figure.figsize"] = (12, 6)
    plt.rcParams["figure.dpi"] = 100
    plt.rcParams["font.size"] = 10


def metrics_to_dataframe(metrics_list: Sequence[SimulationMetrics]) -> pd.DataFrame:
    """Convert list of metrics to DataFrame."""
    return pd.DataFrame([m.to_dict() for m in metrics_list])


def plot_strategy_comparison(
    df: pd.DataFrame,
    output_path: Path,
    title: str = "Rate Manager Comparison",
) -> None:
    """
    Create line charts of each metric against the mean SNR, one line per strategy.

    Args:
        df: DataFrame built by metrics_to_dataframe(); the "strategy" column
            holds the sweep label of each manager.
        output_path: Path to save the chart.
        title: Chart title.
    """
    setup_style()

    fig, axes = plt.subplots(2, 2, figsize=(14, 10))
    panels = [
        ("goodput_mbps", "Goodput (Mb/s)\n(Higher is better)"),
        ("delivery_ratio", "Delivery Ratio (%)\n(Higher is better)"),
        ("mean_rate_mbps", "Mean Selected Rate (Mb/s)"),
        ("attempts_per_frame", "Attempts per Frame\n(Lower is better)"),
    ]

    for ax, (column, label) in zip(axes.flat, panels):
        sns.lineplot(data=df, x="mean_snr_db", y=column, hue="strategy", marker="o", ax=ax)
        ax.set_title(label)
        ax.set_xlabel("Mean SNR (dB)")
        ax.set_ylabel(label.split("\n")[0])

    fig.suptitle(title, fontsize=14, fontweight="bold")
    plt.tight_layout()
    plt.savefig(output_path, bbox_inches="tight")
    plt.close()


def plot_time_series(
    metrics: SimulationMetrics,
    output_path: Path,
) -> None:
    """
    Plot the selected rate against the channel SNR over time for one run.

    Args:
        metrics: Metrics of a single run (with time series).
        output_path: Path to save the chart.
    """
    setup_style()

    fig, ax_rate = plt.subplots(figsize=(14, 5))

    rate_times = [p.time for p in metrics.rate_over_time]
    rate_values = [p.value for p in metrics.rate_over_time]
    ax_rate.step(rate_times, rate_values, where="post", color="#3498db", linewidth=2, label="Selected rate")
    ax_rate.set_xlabel("Time (s)")
    ax_rate.set_ylabel("Rate (Mb/s)", color="#3498db")

    ax_snr = ax_rate.twinx()
    snr_times = [p.time for p in metrics.snr_over_time]
    snr_values = [p.value for p in metrics.snr_over_time]
    ax_snr.plot(snr_times, snr_values, color="#e74c3c", alpha=0.6, label="SNR")
    ax_snr.set_ylabel("SNR (dB)", color="#e74c3c")

    ax_rate.set_title(f"{metrics.scenario_name}: selected rate vs. channel SNR", fontweight="bold")
    plt.tight_layout()
    plt.savefig(output_path, bbox_inches="tight")
    plt.close()
