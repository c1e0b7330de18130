"""
Main simulation engine using SimPy.

Orchestrates one simulated transmitter per peer over independent channels,
all sharing the same rate manager, and collects metrics.
"""

import logging
import random

import simpy

from simulations.src.channel import SimulatedChannel
from simulations.src.config import ManagerConfig, ScenarioConfig, SimulationConfig
from simulations.src.metrics import MetricsCollector, SimulationMetrics
from simulations.src.transmitter import SimulatedTransmitter
from wifirate import (
    ArfRateManager,
    ConstantRateManager,
    RemoteStation,
    RemoteStationManager,
    StationManagerConfig,
    catalog_for_standard,
)

logger = logging.getLogger(__name__)


def create_manager(manager_config: ManagerConfig, simulation: SimulationConfig) -> RemoteStationManager:
    """
    Create the rate manager described by `manager_config`.

    Raises:
        ValueError: If the strategy is unknown.
    """
    station_config = StationManagerConfig(max_slrc=simulation.max_slrc)

    if manager_config.strategy == "arf":
        return ArfRateManager(
            success_threshold=manager_config.success_threshold,
            timer_threshold=manager_config.timer_threshold,
            config=station_config,
        )

    if manager_config.strategy == "constant":
        return ConstantRateManager(
            rate_index=manager_config.constant_rate_index,
            config=station_config,
        )

    raise ValueError(f"Unknown strategy: {manager_config.strategy}")


class Simulator:
    """
    Discrete-event simulator for rate adaptation scenarios.

    Uses SimPy to simulate saturated transmitters, one per peer, each over
    its own lossy channel.
    """

    def __init__(self, config: ScenarioConfig):
        """
        Initialize the simulator.

        Args:
            config: Complete scenario configuration.
        """
        self.config = config
        self.env: simpy.Environment | None = None
        self.manager: RemoteStationManager | None = None
        self.metrics_collector: MetricsCollector | None = None
        self.transmitters: list[SimulatedTransmitter] = []

    def run(self) -> SimulationMetrics:
        """
        Execute the simulation and return aggregated metrics.

        Returns:
            SimulationMetrics with all collected data.
        """
        simulation = self.config.simulation
        rng = random.Random(simulation.random_seed)

        self.env = simpy.Environment()
        self.manager = create_manager(self.config.manager, simulation)
        self.metrics_collector = MetricsCollector(
            scenario_name=self.config.name,
            strategy=self.config.manager.strategy,
            mean_snr_db=self.config.channel.mean_snr_db,
            num_stations=simulation.num_stations,
        )

        catalog = catalog_for_standard(simulation.standard)
        self.transmitters = []
        for station_id in range(simulation.num_stations):
            station = RemoteStation(address=f"00:00:00:00:00:{station_id + 1:02x}", supported_modes=catalog)
            self.manager.add_station(station)

            # Every peer gets its own channel and its own random stream
            transmitter = SimulatedTransmitter(
                station=station,
                manager=self.manager,
                channel=SimulatedChannel(self.config.channel, rng=random.Random(rng.getrandbits(32))),
                config=simulation,
                metrics_collector=self.metrics_collector,
                env=self.env,
                rng=random.Random(rng.getrandbits(32)),
            )
            self.transmitters.append(transmitter)
            self.env.process(transmitter.run(until=simulation.duration_seconds))

        logger.info(f"{self.config.name} | SIM | running {simulation.num_stations} station(s) for {simulation.duration_seconds}s")
        self.env.run(until=simulation.duration_seconds)

        return self.metrics_collector.aggregate(duration=simulation.duration_seconds)


def run_scenario(config: ScenarioConfig) -> SimulationMetrics:
    """
    Convenience function to run a single scenario.

    Args:
        config: Scenario configuration.

    Returns:
        Aggregated simulation metrics.
    """
    simulator = Simulator(config)
    return simulator.run()
