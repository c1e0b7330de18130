#!/usr/bin/env python3
"""
Run the SNR sweep and generate line charts comparing rate managers.

Usage:
    python run_sweep.py                       # Default: 802.11a, 10s, 1 station
    python run_sweep.py --standard 802.11g    # Mixed DSSS/ERP-OFDM catalog
    python run_sweep.py --duration 30 --stations 4
"""

import argparse
import logging
import sys
from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd

sys.path.insert(0, str(Path(__file__).parent.parent))

from simulations.scenarios.sweep_test import SIMULATION, SNR_LEVELS, STRATEGIES, create_scenarios
from simulations.src.config import ScenarioConfig
from simulations.src.metrics import SimulationMetrics
from simulations.src.simulator import run_scenario
from simulations.src.visualize import metrics_to_dataframe, plot_strategy_comparison, plot_time_series


def create_run_directory(base_dir: Path, standard: str) -> Path:
    """
    Create a timestamped directory for this run and update the 'latest' symlink.

    Args:
        base_dir: Base results directory (e.g., simulations/results/)
        standard: Standard of the sweep (e.g., 802.11a)

    Returns:
        Path to the created run directory (e.g., simulations/results/802.11a/2024-02-01_12-30-45/)
    """
    standard_dir = base_dir / standard
    standard_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
    run_dir = standard_dir / timestamp
    run_dir.mkdir(parents=True, exist_ok=True)

    # Create/update symlink "latest" pointing to this run
    latest = standard_dir / "latest"
    if latest.is_symlink():
        latest.unlink()
    elif latest.is_file():
        latest.unlink()
    latest.symlink_to(run_dir.name)

    return run_dir


def run_sweep(scenarios: list[ScenarioConfig]) -> dict[str, dict[int, SimulationMetrics]]:
    """
    Run all sweep scenarios and organize results by strategy and SNR level.

    Returns:
        Dict[strategy_name, Dict[mean_snr_db, metrics]]
    """
    results = defaultdict(dict)

    total = len(scenarios)
    for i, scenario in enumerate(scenarios, 1):
        # Parse scenario name: "NdB-strategy"
        parts = scenario.name.split("-", 1)
        snr_level = int(parts[0].replace("dB", ""))
        strategy = parts[1]

        print(f"  [{i:2d}/{total}] {scenario.name}...", end=" ", flush=True)

        metrics = run_scenario(scenario)
        results[strategy][snr_level] = metrics

        print(f"Goodput: {metrics.goodput_mbps:5.2f} Mb/s, Delivery: {metrics.delivery_ratio:5.1f}%")

    return dict(results)


def results_to_dataframe(results: dict[str, dict[int, SimulationMetrics]]) -> pd.DataFrame:
    """Flatten sweep results, labelling each row with its sweep strategy."""
    frames = []
    for strategy, levels in results.items():
        df = metrics_to_dataframe([levels[snr] for snr in sorted(levels)])
        df["strategy"] = strategy
        frames.append(df)
    return pd.concat(frames, ignore_index=True)


def create_line_charts(
    results: dict[str, dict[int, SimulationMetrics]],
    output_dir: Path,
    standard: str,
) -> pd.DataFrame:
    """
    Create the sweep charts and the raw CSV.

    Generates:
    1. graph_01_strategy_comparison.png - Goodput, delivery, rate and attempts vs SNR
    2. graph_02_goodput_vs_snr.png - Main chart: goodput vs SNR
    3. graph_03_rate_trace_<strategy>.png - Rate vs SNR over time at the median SNR level
    4. results.csv - One row per scenario
    """
    df = results_to_dataframe(results)
    df.to_csv(output_dir / "results.csv", index=False)

    plot_strategy_comparison(
        df,
        output_dir / "graph_01_strategy_comparison.png",
        title=f"Rate Manager Comparison ({standard})",
    )

    # ==========================================================================
    # Chart 2: Goodput vs SNR (MAIN CHART)
    # ==========================================================================
    fig, ax = plt.subplots(figsize=(10, 6))
    for strategy in STRATEGIES.keys():
        strategy_data = df[df["strategy"] == strategy].sort_values("mean_snr_db")
        if strategy_data.empty:
            continue
        ax.plot(
            strategy_data["mean_snr_db"],
            strategy_data["goodput_mbps"],
            marker="o",
            linewidth=2,
            markersize=8,
            label=strategy.replace("_", " ").title(),
        )

    ax.set_xlabel("Mean SNR (dB)", fontsize=11)
    ax.set_ylabel("Goodput (Mb/s)", fontsize=11)
    ax.set_title(f"Goodput vs. Channel Quality ({standard})\n(Higher is better)", fontsize=12, fontweight="bold")
    ax.set_xticks(SNR_LEVELS)
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper left", fontsize=9)
    plt.tight_layout()
    plt.savefig(output_dir / "graph_02_goodput_vs_snr.png", dpi=150, bbox_inches="tight")
    plt.close()

    # ==========================================================================
    # Chart 3: Rate trace of each adaptive strategy at the median SNR
    # ==========================================================================
    median_snr = SNR_LEVELS[len(SNR_LEVELS) // 2]
    for strategy, levels in results.items():
        if strategy.startswith("arf") and median_snr in levels:
            plot_time_series(levels[median_snr], output_dir / f"graph_03_rate_trace_{strategy}.png")

    return df


def print_summary_table(results: dict[str, dict[int, SimulationMetrics]]) -> None:
    """Print summary table."""
    print("\n" + "=" * 90)
    print("  SUMMARY TABLE")
    print("=" * 90)

    header = f"{'Strategy':<15}"
    for snr in SNR_LEVELS:
        header += f" {snr:>5}dB"
    print(header)
    print("-" * 90)

    rows = [
        ("Goodput (Mb/s)", lambda m: f" {m.goodput_mbps:7.2f}"),
        ("Delivery Ratio (%)", lambda m: f" {m.delivery_ratio:7.1f}"),
        ("Mean Rate (Mb/s)", lambda m: f" {m.mean_rate_mbps:7.2f}"),
        ("Attempts per Frame", lambda m: f" {m.attempts_per_frame:7.2f}"),
        ("Rate Changes", lambda m: f" {m.rate_changes:7d}"),
    ]

    for title, fmt in rows:
        print(f"\n{title}:")
        for strategy in STRATEGIES.keys():
            row = f"  {strategy:<13}"
            for snr in SNR_LEVELS:
                if snr in results.get(strategy, {}):
                    row += fmt(results[strategy][snr])
                else:
                    row += "     N/A"
            print(row)

    print("\n" + "=" * 90)


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run the SNR sweep comparing wifirate rate managers.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python run_sweep.py                     # 802.11a, 10 simulated seconds
    python run_sweep.py --standard 802.11b  # DSSS/HR-DSSS catalog
    python run_sweep.py --stations 4 -v     # 4 peers, verbose logging
        """,
    )
    parser.add_argument(
        "--standard",
        type=str,
        choices=["802.11a", "802.11b", "802.11g"],
        default=SIMULATION.standard,
        help=f"Standard used to build each peer's catalog (default: {SIMULATION.standard})",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=SIMULATION.duration_seconds,
        help=f"Simulated seconds per scenario (default: {SIMULATION.duration_seconds})",
    )
    parser.add_argument(
        "--stations",
        type=int,
        default=SIMULATION.num_stations,
        help=f"Number of peers per scenario (default: {SIMULATION.num_stations})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path(__file__).parent / "results",
        help="Base results directory (default: simulations/results)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log every rate change of the managers",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    simulation = replace(
        SIMULATION,
        standard=args.standard,
        duration_seconds=args.duration,
        num_stations=args.stations,
    )
    scenarios = create_scenarios(simulation)

    print("=" * 70)
    print(f"  SWEEP TEST: {args.standard} rate adaptation")
    print("=" * 70)
    print(f"\n  Strategies: {', '.join(STRATEGIES.keys())}")
    print(f"  SNR levels: {SNR_LEVELS} dB")
    print(f"  Stations: {args.stations}, duration: {args.duration}s")
    print(f"  Total scenarios: {len(scenarios)}")
    print()

    run_dir = create_run_directory(args.output, args.standard)
    print(f"  Output directory: {args.standard}/{run_dir.name}/")
    print()

    print("Running simulations...")
    results = run_sweep(scenarios)

    print("\nGenerating charts...")
    create_line_charts(results, run_dir, args.standard)

    print_summary_table(results)

    print("\n" + "=" * 70)
    print("  Sweep test complete!")
    print(f"  Charts saved to: {run_dir}")
    print(f"  Latest symlink: {args.output / args.standard / 'latest'}")
    print("=" * 70)


if __name__ == "__main__":
    main()
