"""Tests for the simulated channel."""

import math
import random

import pytest

from simulations.src.channel import SimulatedChannel, snr_threshold
from simulations.src.config import ChannelConfig
from wifirate import WifiMode, catalog_for_standard
from wifirate._modes import ModulationClass

OFDM = catalog_for_standard("802.11a")


class TestSnrThreshold:
    def test_known_rates(self):
        assert snr_threshold(OFDM[0]) == 4.0
        assert snr_threshold(OFDM[-1]) == 22.0

    def test_unknown_rate_is_interpolated(self):
        mode = WifiMode("Half6", ModulationClass.OFDM, 3_000_000)
        assert snr_threshold(mode) == pytest.approx(1.0)

    def test_thresholds_grow_with_rate(self):
        thresholds = [snr_threshold(m) for m in OFDM]
        assert thresholds == sorted(thresholds)


class TestSimulatedChannel:
    def test_success_probability_is_half_at_threshold(self):
        channel = SimulatedChannel(ChannelConfig())
        assert channel.success_probability(OFDM[3], snr_threshold(OFDM[3])) == pytest.approx(0.5)

    def test_success_probability_is_monotonic_in_snr(self):
        channel = SimulatedChannel(ChannelConfig())
        probabilities = [channel.success_probability(OFDM[5], snr) for snr in range(0, 40, 5)]
        assert probabilities == sorted(probabilities)

    def test_very_poor_channel_never_succeeds(self):
        channel = SimulatedChannel(ChannelConfig(steepness=5.0))
        assert channel.success_probability(OFDM[-1], -100.0) == 0.0

    def test_first_sample_is_mean(self):
        channel = SimulatedChannel(ChannelConfig(mean_snr_db=17.0), rng=random.Random(1))
        assert channel.snr_at(0.3) == 17.0

    def test_snr_constant_within_coherence_time(self):
        channel = SimulatedChannel(ChannelConfig(coherence_time=0.1), rng=random.Random(1))
        first = channel.snr_at(0.0)
        assert channel.snr_at(0.05) == first
        assert channel.snr_at(0.099) == first

    def test_snr_without_variance_stays_at_mean(self):
        channel = SimulatedChannel(ChannelConfig(mean_snr_db=12.0, snr_std_db=0.0), rng=random.Random(1))
        assert all(channel.snr_at(t / 10) == 12.0 for t in range(50))

    def test_snr_varies_around_mean(self):
        config = ChannelConfig(mean_snr_db=20.0, snr_std_db=4.0, coherence_time=0.01, correlation=0.5)
        channel = SimulatedChannel(config, rng=random.Random(7))
        samples = [channel.snr_at(t * 0.01) for t in range(2000)]

        mean = sum(samples) / len(samples)
        std = math.sqrt(sum((s - mean) ** 2 for s in samples) / len(samples))
        assert mean == pytest.approx(20.0, abs=1.0)
        assert std == pytest.approx(4.0, abs=1.0)

    def test_transmit_is_reproducible(self):
        def draws(seed):
            channel = SimulatedChannel(ChannelConfig(), rng=random.Random(seed))
            return [channel.transmit(OFDM[4], t * 0.01) for t in range(100)]

        assert draws(3) == draws(3)

    def test_rejects_invalid_correlation(self):
        with pytest.raises(AssertionError, match="correlation"):
            SimulatedChannel(ChannelConfig(correlation=1.0))
