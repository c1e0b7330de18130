"""
Configuration dataclasses for simulations.

The rate manager parameters mirror wifirate's ArfConfig/StationManagerConfig,
but scenarios stay plain data so sweeps can be built declaratively.
"""

from dataclasses import dataclass, field
from typing import Literal

ManagerStrategy = Literal["arf", "constant"]
WifiStandard = Literal["802.11a", "802.11b", "802.11g"]


@dataclass(frozen=True)
class ManagerConfig:
    """
    Rate manager under test.

    Attributes:
        strategy: "arf" for ArfRateManager, "constant" for ConstantRateManager.
        success_threshold: ARF success threshold.
        timer_threshold: ARF timer threshold.
        constant_rate_index: Catalog index used by the constant strategy
            (clamped to the catalog).
    """

    strategy: ManagerStrategy = "arf"
    success_threshold: int = 10
    timer_threshold: int = 15
    constant_rate_index: int = 0

    # Preset factories
    @classmethod
    def arf(cls, success_threshold: int = 10, timer_threshold: int = 15) -> "ManagerConfig":
        """ARF with the given thresholds (defaults match the published algorithm)."""
        return cls(strategy="arf", success_threshold=success_threshold, timer_threshold=timer_threshold)

    @classmethod
    def constant(cls, rate_index: int = 0) -> "ManagerConfig":
        """No adaptation: always the same catalog entry."""
        return cls(strategy="constant", constant_rate_index=rate_index)


@dataclass(frozen=True)
class ChannelConfig:
    """
    Lossy channel model.

    SNR follows a Gauss-Markov process around `mean_snr_db`, resampled every
    `coherence_time` seconds. Frame success follows a logistic curve around
    each mode's SNR threshold.

    Attributes:
        mean_snr_db: Long-term average SNR.
        snr_std_db: Standard deviation of the SNR around its mean.
        coherence_time: Seconds between two SNR samples.
        correlation: Correlation between consecutive samples (0-1).
        steepness: Slope of the logistic success curve (1/dB).
    """

    mean_snr_db: float = 20.0
    snr_std_db: float = 4.0
    coherence_time: float = 0.05
    correlation: float = 0.9
    steepness: float = 1.5


@dataclass(frozen=True)
class SimulationConfig:
    """
    Simulation run configuration.

    Attributes:
        duration_seconds: Total simulated time.
        num_stations: Number of peers, each with its own channel.
        standard: Legacy standard used to build every peer's catalog.
        payload_bytes: Size of each data frame.
        max_slrc: Maximum attempts per data frame.
        rts_enabled: Whether each data attempt is protected by RTS/CTS.
        rx_probability: Probability that a delivered frame triggers a frame
            back from the peer (reported as rx ok).
        random_seed: Seed for reproducibility (None = random).
    """

    duration_seconds: float = 10.0
    num_stations: int = 1
    standard: WifiStandard = "802.11a"
    payload_bytes: int = 1500
    max_slrc: int = 7
    rts_enabled: bool = False
    rx_probability: float = 0.1
    random_seed: int | None = 42


@dataclass
class ScenarioConfig:
    """
    Complete scenario configuration.

    Combines all configuration components for a simulation run.
    """

    name: str
    description: str
    channel: ChannelConfig = field(default_factory=ChannelConfig)
    manager: ManagerConfig = field(default_factory=ManagerConfig.arf)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
