"""
Simulated lossy channel.

Turns an SNR trace and a transmission mode into frame success draws.
"""

import math
import random

from simulations.src.config import ChannelConfig
from wifirate import WifiMode

# SNR (dB) at which a 1500-byte frame has ~50% chance of success, per data rate.
_SNR_THRESHOLDS_DB: dict[int, float] = {
    1_000_000: 0.0,
    2_000_000: 3.0,
    5_500_000: 5.0,
    6_000_000: 4.0,
    9_000_000: 6.0,
    11_000_000: 8.0,
    12_000_000: 7.0,
    18_000_000: 9.0,
    24_000_000: 12.0,
    36_000_000: 16.0,
    48_000_000: 20.0,
    54_000_000: 22.0,
}


def snr_threshold(mode: WifiMode) -> float:
    """Return the 50%-success SNR of a mode (interpolated for unknown rates)."""
    if mode.nominal_rate in _SNR_THRESHOLDS_DB:
        return _SNR_THRESHOLDS_DB[mode.nominal_rate]
    # ~3 dB per doubling of the data rate, anchored at 6 Mb/s
    return _SNR_THRESHOLDS_DB[6_000_000] + 3.0 * math.log2(mode.nominal_rate / 6_000_000)


class SimulatedChannel:
    """
    Channel between the transmitter and one peer.

    The SNR is piecewise constant over `coherence_time` windows and evolves as
    a first-order Gauss-Markov process, so good and bad periods alternate the
    way rate adaptation expects.
    """

    def __init__(self, config: ChannelConfig, rng: random.Random | None = None):
        """
        Initialize the channel.

        Args:
            config: Channel configuration.
            rng: Random generator (injected for reproducibility).
        """
        assert 0 <= config.correlation < 1, "correlation must be in [0, 1)."
        assert config.coherence_time > 0, "coherence_time must be greater than 0."

        self.config = config
        self._rng = rng or random.Random()
        self._snr_db = config.mean_snr_db
        self._last_update: float | None = None

    def snr_at(self, current_time: float) -> float:
        """Return the SNR (dB) at `current_time`, advancing the process as needed."""
        if self._last_update is None:
            self._last_update = current_time
            return self._snr_db

        steps = int((current_time - self._last_update) / self.config.coherence_time)
        if steps > 0:
            for _ in range(min(steps, 1000)):
                self._snr_db = self._next_sample(self._snr_db)
            self._last_update += steps * self.config.coherence_time
        return self._snr_db

    def _next_sample(self, snr_db: float) -> float:
        rho = self.config.correlation
        innovation = math.sqrt(1.0 - rho * rho) * self.config.snr_std_db * self._rng.gauss(0.0, 1.0)
        return self.config.mean_snr_db + rho * (snr_db - self.config.mean_snr_db) + innovation

    def success_probability(self, mode: WifiMode, snr_db: float) -> float:
        """Logistic frame success probability of `mode` at `snr_db`."""
        x = self.config.steepness * (snr_db - snr_threshold(mode))
        # Guard math.exp against overflow on very poor channels
        if x < -50:
            return 0.0
        return 1.0 / (1.0 + math.exp(-x))

    def transmit(self, mode: WifiMode, current_time: float) -> tuple[bool, float]:
        """
        Draw the outcome of a frame sent with `mode` at `current_time`.

        Returns:
            Tuple of (success, snr_db).
        """
        snr_db = self.snr_at(current_time)
        return self._rng.random() < self.success_probability(mode, snr_db), snr_db
