"""End-to-end tests for the SimPy simulation harness."""

from dataclasses import replace

import pytest

from simulations.scenarios import SCENARIOS, SNR_LEVELS, STRATEGIES, create_scenarios
from simulations.src.config import ChannelConfig, ManagerConfig, ScenarioConfig, SimulationConfig
from simulations.src.simulator import Simulator, create_manager, run_scenario
from simulations.src.transmitter import DSSS_LONG_PREAMBLE, DSSS_SHORT_PREAMBLE, OFDM_PREAMBLE, frame_duration
from wifirate import (
    ArfRateManager,
    ConstantRateManager,
    TxVector,
    WifiPreamble,
    catalog_for_standard,
)

SHORT_RUN = SimulationConfig(duration_seconds=1.0, random_seed=42)


def _scenario(manager: ManagerConfig, mean_snr_db: float, snr_std_db: float = 0.0, **simulation) -> ScenarioConfig:
    return ScenarioConfig(
        name=f"test-{manager.strategy}-{mean_snr_db}",
        description="test",
        channel=ChannelConfig(mean_snr_db=mean_snr_db, snr_std_db=snr_std_db),
        manager=manager,
        simulation=replace(SHORT_RUN, **simulation),
    )


class TestCreateManager:
    def test_arf(self):
        manager = create_manager(ManagerConfig.arf(success_threshold=4, timer_threshold=6), SHORT_RUN)
        assert isinstance(manager, ArfRateManager)
        assert manager.success_threshold == 4
        assert manager.timer_threshold == 6
        assert manager.config.max_slrc == SHORT_RUN.max_slrc

    def test_constant(self):
        manager = create_manager(ManagerConfig.constant(rate_index=3), SHORT_RUN)
        assert isinstance(manager, ConstantRateManager)
        assert manager.rate_index == 3

    def test_unknown_strategy(self):
        with pytest.raises(ValueError, match="Unknown strategy"):
            create_manager(ManagerConfig(strategy="minstrel"), SHORT_RUN)  # type: ignore


class TestFrameDuration:
    def _tx_vector(self, mode, preamble=WifiPreamble.LONG):
        return TxVector(mode=mode, tx_power_level=0, retry_count=7, preamble=preamble, channel_width=20, aggregation=False)

    def test_ofdm(self):
        mode = catalog_for_standard("802.11a")[0]
        assert frame_duration(self._tx_vector(mode), 6_000) == pytest.approx(OFDM_PREAMBLE + 0.001)

    def test_dsss_preambles(self):
        mode = catalog_for_standard("802.11b")[0]
        assert frame_duration(self._tx_vector(mode), 1_000) == pytest.approx(DSSS_LONG_PREAMBLE + 0.001)
        assert frame_duration(self._tx_vector(mode, WifiPreamble.SHORT), 1_000) == pytest.approx(
            DSSS_SHORT_PREAMBLE + 0.001
        )


class TestSimulator:
    def test_arf_climbs_to_fastest_rate_on_a_clean_channel(self):
        metrics = run_scenario(_scenario(ManagerConfig.arf(), mean_snr_db=45.0))

        assert metrics.total_frames > 0
        assert metrics.delivery_ratio == pytest.approx(100.0)
        assert metrics.rate_over_time[-1].value == pytest.approx(54.0)
        assert metrics.rate_changes >= 7

    def test_constant_high_rate_fails_on_a_poor_channel(self):
        metrics = run_scenario(_scenario(ManagerConfig.constant(rate_index=7), mean_snr_db=2.0))

        assert metrics.total_frames > 0
        assert metrics.delivered_frames == 0
        assert metrics.drops_data_retry_limit == metrics.total_frames
        assert metrics.attempts_per_frame == pytest.approx(SHORT_RUN.max_slrc)

    def test_arf_outperforms_fixed_top_rate_on_a_mediocre_channel(self):
        arf = run_scenario(_scenario(ManagerConfig.arf(), mean_snr_db=10.0))
        constant = run_scenario(_scenario(ManagerConfig.constant(rate_index=7), mean_snr_db=10.0))

        assert arf.goodput_mbps > constant.goodput_mbps
        assert arf.delivery_ratio > constant.delivery_ratio

    def test_runs_are_reproducible(self):
        scenario = _scenario(ManagerConfig.arf(), mean_snr_db=15.0, snr_std_db=4.0)
        assert run_scenario(scenario).to_dict() == run_scenario(scenario).to_dict()

    def test_every_station_is_registered(self):
        simulator = Simulator(_scenario(ManagerConfig.arf(), mean_snr_db=20.0, num_stations=3))
        metrics = simulator.run()

        assert len(simulator.manager.addresses) == 3
        assert len(simulator.transmitters) == 3
        assert metrics.num_stations == 3

    def test_rts_protected_run(self):
        metrics = run_scenario(_scenario(ManagerConfig.arf(), mean_snr_db=30.0, rts_enabled=True))

        assert metrics.total_frames > 0
        assert metrics.delivery_ratio > 90.0

    @pytest.mark.parametrize("standard", ["802.11b", "802.11g"])
    def test_other_standards(self, standard):
        metrics = run_scenario(_scenario(ManagerConfig.arf(), mean_snr_db=30.0, standard=standard))
        assert metrics.total_frames > 0
        assert metrics.delivered_frames > 0


class TestSweepScenarios:
    def test_one_scenario_per_level_and_strategy(self):
        assert len(SCENARIOS) == len(SNR_LEVELS) * len(STRATEGIES)

    def test_names_encode_level_and_strategy(self):
        names = {s.name for s in create_scenarios()}
        assert "20dB-arf_default" in names
        assert "5dB-constant_low" in names

    def test_custom_simulation_is_shared(self):
        simulation = replace(SHORT_RUN, standard="802.11g")
        assert all(s.simulation is simulation for s in create_scenarios(simulation))
