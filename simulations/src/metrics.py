"""
Metrics collection and aggregation for simulations.

Collects detailed metrics during simulation runs for analysis and visualization.
"""

from dataclasses import dataclass, field
from typing import Any

import numpy as np


class FailureReason:
    """Constants for frame drop reasons."""

    NONE = None  # Delivered
    DATA_RETRY_LIMIT = "data_retry_limit"  # Every data attempt failed
    RTS_RETRY_LIMIT = "rts_retry_limit"  # Every RTS attempt failed


@dataclass
class FrameMetrics:
    """Metrics for a single data frame (all its attempts)."""

    address: str
    frame_id: int
    start_time: float
    end_time: float
    delivered: bool
    attempts: int
    payload_bits: int
    failure_reason: str | None = None


@dataclass
class TimeSeriesPoint:
    """A point in a time series."""

    time: float
    value: float


@dataclass
class SimulationMetrics:
    """Aggregated metrics from a simulation run."""

    # Configuration
    scenario_name: str
    strategy: str
    mean_snr_db: float
    num_stations: int
    duration: float

    # Primary metrics
    total_frames: int = 0
    delivered_frames: int = 0
    dropped_frames: int = 0
    total_attempts: int = 0
    drops_data_retry_limit: int = 0
    drops_rts_retry_limit: int = 0
    rate_changes: int = 0

    # Throughput (Mb/s of delivered payload)
    goodput_mbps: float = 0.0

    # Selected data rate (Mb/s), averaged over data attempts
    mean_rate_mbps: float = 0.0
    mean_rate_index: float = 0.0

    # Frame latency (seconds), first attempt to last attempt
    latency_p50: float = 0.0
    latency_p95: float = 0.0
    latency_mean: float = 0.0

    # Time series data (for visualization)
    rate_over_time: list[TimeSeriesPoint] = field(default_factory=list)
    snr_over_time: list[TimeSeriesPoint] = field(default_factory=list)
    delivery_ratio_over_time: list[TimeSeriesPoint] = field(default_factory=list)

    @property
    def delivery_ratio(self) -> float:
        """Percentage of frames delivered."""
        if self.total_frames == 0:
            return 0.0
        return (self.delivered_frames / self.total_frames) * 100

    @property
    def attempts_per_frame(self) -> float:
        """Mean number of data attempts per frame."""
        if self.total_frames == 0:
            return 0.0
        return self.total_attempts / self.total_frames

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for DataFrame creation."""
        return {
            "scenario": self.scenario_name,
            "strategy": self.strategy,
            "mean_snr_db": self.mean_snr_db,
            "stations": self.num_stations,
            "duration": self.duration,
            "total_frames": self.total_frames,
            "delivered_frames": self.delivered_frames,
            "dropped_frames": self.dropped_frames,
            "delivery_ratio": self.delivery_ratio,
            "total_attempts": self.total_attempts,
            "attempts_per_frame": self.attempts_per_frame,
            "drops_data_retry_limit": self.drops_data_retry_limit,
            "drops_rts_retry_limit": self.drops_rts_retry_limit,
            "rate_changes": self.rate_changes,
            "goodput_mbps": self.goodput_mbps,
            "mean_rate_mbps": self.mean_rate_mbps,
            "mean_rate_index": self.mean_rate_index,
            "latency_p50": self.latency_p50,
            "latency_p95": self.latency_p95,
            "latency_mean": self.latency_mean,
        }


class MetricsCollector:
    """
    Collects metrics during a simulation run.

    The collector is shared by every simulated transmitter of a run.
    """

    def __init__(
        self,
        scenario_name: str,
        strategy: str,
        mean_snr_db: float,
        num_stations: int,
        bucket_size: float = 0.5,  # Time bucket for time series (seconds)
    ):
        self.scenario_name = scenario_name
        self.strategy = strategy
        self.mean_snr_db = mean_snr_db
        self.num_stations = num_stations
        self.bucket_size = bucket_size

        self._frames: list[FrameMetrics] = []
        self._attempt_rates: list[tuple[float, int, int]] = []  # (time, rate_bps, rate_index)
        self._snr_samples: list[tuple[float, float]] = []
        self._rate_changes = 0

    def record_frame(self, metrics: FrameMetrics) -> None:
        """Record metrics for a completed (delivered or dropped) frame."""
        self._frames.append(metrics)

    def record_attempt(self, time: float, rate_bps: int, rate_index: int, snr_db: float) -> None:
        """Record a data attempt at the rate chosen by the manager."""
        self._attempt_rates.append((time, rate_bps, rate_index))
        self._snr_samples.append((time, snr_db))

    def record_rate_change(self) -> None:
        self._rate_changes += 1

    def aggregate(self, duration: float) -> SimulationMetrics:
        """
        Aggregate collected metrics into summary statistics.

        Args:
            duration: Total simulation duration in seconds.

        Returns:
            SimulationMetrics with aggregated data.
        """
        metrics = SimulationMetrics(
            scenario_name=self.scenario_name,
            strategy=self.strategy,
            mean_snr_db=self.mean_snr_db,
            num_stations=self.num_stations,
            duration=duration,
        )
        metrics.rate_changes = self._rate_changes

        if not self._frames:
            return metrics

        # Count totals
        metrics.total_frames = len(self._frames)
        metrics.delivered_frames = sum(1 for f in self._frames if f.delivered)
        metrics.dropped_frames = metrics.total_frames - metrics.delivered_frames
        metrics.total_attempts = sum(f.attempts for f in self._frames)
        metrics.drops_data_retry_limit = sum(
            1 for f in self._frames if f.failure_reason == FailureReason.DATA_RETRY_LIMIT
        )
        metrics.drops_rts_retry_limit = sum(
            1 for f in self._frames if f.failure_reason == FailureReason.RTS_RETRY_LIMIT
        )

        # Goodput
        if duration > 0:
            delivered_bits = sum(f.payload_bits for f in self._frames if f.delivered)
            metrics.goodput_mbps = delivered_bits / duration / 1e6

        # Selected rate
        if self._attempt_rates:
            rates = np.array([r for _, r, _ in self._attempt_rates], dtype=float)
            indexes = np.array([i for _, _, i in self._attempt_rates], dtype=float)
            metrics.mean_rate_mbps = float(np.mean(rates)) / 1e6
            metrics.mean_rate_index = float(np.mean(indexes))

        # Latencies
        latencies = [f.end_time - f.start_time for f in self._frames]
        metrics.latency_p50 = float(np.percentile(latencies, 50))
        metrics.latency_p95 = float(np.percentile(latencies, 95))
        metrics.latency_mean = float(np.mean(latencies))

        # Time series
        metrics.rate_over_time = self._bucket_mean(
            [(t, r / 1e6) for t, r, _ in self._attempt_rates], duration
        )
        metrics.snr_over_time = self._bucket_mean(self._snr_samples, duration)
        metrics.delivery_ratio_over_time = self._bucket_mean(
            [(f.end_time, 100.0 if f.delivered else 0.0) for f in self._frames], duration
        )

        return metrics

    def _bucket_mean(self, samples: list[tuple[float, float]], duration: float) -> list[TimeSeriesPoint]:
        """Average (time, value) samples over fixed time buckets, skipping empty ones."""
        if not samples:
            return []

        times = np.array([t for t, _ in samples])
        values = np.array([v for _, v in samples])
        num_buckets = max(1, int(np.ceil(duration / self.bucket_size)))
        bucket_ids = np.minimum((times // self.bucket_size).astype(int), num_buckets - 1)

        points = []
        for bucket in range(num_buckets):
            mask = bucket_ids == bucket
            if mask.any():
                points.append(TimeSeriesPoint(time=bucket * self.bucket_size, value=float(values[mask].mean())))
        return points
