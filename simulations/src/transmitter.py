"""
Simulated transmitter driving a wifirate rate manager.

Sends saturated traffic to one peer and reports the outcome of every attempt
to the rate manager, exactly as a MAC layer would.
"""

import random
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generator

from simulations.src.channel import SimulatedChannel
from simulations.src.config import SimulationConfig
from simulations.src.metrics import FailureReason, FrameMetrics, MetricsCollector
from wifirate import RemoteStation, RemoteStationManager, TxVector, WifiPreamble

if TYPE_CHECKING:
    import simpy

# 802.11 OFDM timings (seconds)
SLOT_TIME = 9e-6
SIFS = 16e-6
DIFS = SIFS + 2 * SLOT_TIME
CW_MIN = 15
CW_MAX = 1023

# PHY preamble + header durations (seconds)
OFDM_PREAMBLE = 20e-6
DSSS_LONG_PREAMBLE = 192e-6
DSSS_SHORT_PREAMBLE = 96e-6

ACK_BITS = 14 * 8
RTS_BITS = 20 * 8
CTS_BITS = 14 * 8
MAC_OVERHEAD_BITS = 36 * 8


def frame_duration(tx_vector: TxVector, bits: int) -> float:
    """Airtime of a frame of `bits` bits sent with `tx_vector`."""
    if tx_vector.mode.modulation_class.is_dsss_family:
        preamble = DSSS_SHORT_PREAMBLE if tx_vector.preamble is WifiPreamble.SHORT else DSSS_LONG_PREAMBLE
    else:
        preamble = OFDM_PREAMBLE
    return preamble + bits / tx_vector.data_rate


@dataclass
class FrameResult:
    """Result of a frame transmission."""

    delivered: bool
    attempts: int
    total_time: float


class SimulatedTransmitter:
    """
    Transmitter with saturated traffic towards a single peer.

    Every data attempt, first transmission or retry, asks the manager for a
    fresh TxVector and reports its outcome, so the manager sees the same event
    sequence a real MAC would deliver.
    """

    def __init__(
        self,
        station: RemoteStation,
        manager: RemoteStationManager,
        channel: SimulatedChannel,
        config: SimulationConfig,
        metrics_collector: MetricsCollector,
        env: "simpy.Environment",
        rng: random.Random | None = None,
    ):
        """
        Initialize the simulated transmitter.

        Args:
            station: Peer this transmitter sends to (already added to the manager).
            manager: Rate manager under test.
            channel: Channel towards the peer.
            config: Simulation configuration.
            metrics_collector: Collector for metrics.
            env: SimPy environment.
            rng: Random generator for backoff and reverse traffic.
        """
        self.station = station
        self.manager = manager
        self.channel = channel
        self.config = config
        self.metrics_collector = metrics_collector
        self.env = env
        self._rng = rng or random.Random()

        self.payload_bits = config.payload_bytes * 8
        self._frame_id = 0
        self._last_rate_index: int | None = None

    @property
    def address(self) -> str:
        return self.station.address

    def run(self, until: float) -> Generator["simpy.Event", None, None]:
        """SimPy process: send frames back-to-back until `until`."""
        while self.env.now < until:
            yield self.env.process(self.send_frame())

    def send_frame(self) -> Generator["simpy.Event", None, FrameResult]:
        """
        Send one data frame, retrying up to `max_slrc` attempts.

        Yields:
            SimPy timeout events for backoff and airtime.

        Returns:
            FrameResult via process return value.
        """
        self._frame_id += 1
        start_time = self.env.now
        attempts = 0
        delivered = False
        failure_reason: str | None = FailureReason.DATA_RETRY_LIMIT

        while attempts < self.config.max_slrc:
            attempts += 1
            yield self.env.timeout(self._backoff(attempts))

            # Step 1: RTS/CTS handshake (if enabled)
            if self.config.rts_enabled:
                rts_ok = yield self.env.process(self._rts_handshake())
                if not rts_ok:
                    failure_reason = FailureReason.RTS_RETRY_LIMIT
                    break

            # Step 2: Data attempt at the rate chosen by the manager
            tx_vector = self.manager.get_data_tx_vector(self.address)
            rate_index = self.station.supported_modes.index(tx_vector.mode)
            self._track_rate_index(rate_index)

            yield self.env.timeout(frame_duration(tx_vector, self.payload_bits + MAC_OVERHEAD_BITS))
            success, snr_db = self.channel.transmit(tx_vector.mode, self.env.now)
            self.metrics_collector.record_attempt(self.env.now, tx_vector.data_rate, rate_index, snr_db)

            # Step 3: Report outcome
            if success:
                ack_vector = self.manager.get_rts_tx_vector(self.address)
                yield self.env.timeout(SIFS + frame_duration(ack_vector, ACK_BITS))
                self.manager.report_data_ok(self.address, ack_snr=snr_db, ack_mode=ack_vector.mode, data_snr=snr_db)
                delivered = True
                failure_reason = None
                if self._rng.random() < self.config.rx_probability:
                    self.manager.report_rx_ok(self.address, rx_snr=snr_db, tx_mode=ack_vector.mode)
                break

            self.manager.report_data_failed(self.address)

        if not delivered and failure_reason == FailureReason.DATA_RETRY_LIMIT:
            self.manager.report_final_data_failed(self.address)

        self.metrics_collector.record_frame(
            FrameMetrics(
                address=self.address,
                frame_id=self._frame_id,
                start_time=start_time,
                end_time=self.env.now,
                delivered=delivered,
                attempts=attempts,
                payload_bits=self.payload_bits,
                failure_reason=failure_reason,
            )
        )
        return FrameResult(delivered=delivered, attempts=attempts, total_time=self.env.now - start_time)

    def _rts_handshake(self) -> Generator["simpy.Event", None, bool]:
        """Send RTS until a CTS comes back or the retry budget is exhausted."""
        for attempt in range(1, self.config.max_slrc + 1):
            if attempt > 1:
                yield self.env.timeout(self._backoff(attempt))
            rts_vector = self.manager.get_rts_tx_vector(self.address)
            yield self.env.timeout(frame_duration(rts_vector, RTS_BITS))
            rts_ok, rts_snr = self.channel.transmit(rts_vector.mode, self.env.now)
            if rts_ok:
                yield self.env.timeout(SIFS + frame_duration(rts_vector, CTS_BITS) + SIFS)
                self.manager.report_rts_ok(self.address, cts_snr=rts_snr, cts_mode=rts_vector.mode, rts_snr=rts_snr)
                return True
            self.manager.report_rts_failed(self.address)

        self.manager.report_final_rts_failed(self.address)
        return False

    def _backoff(self, attempt: int) -> float:
        """DIFS plus a random backoff; the contention window doubles per retry."""
        cw = min(CW_MAX, (CW_MIN + 1) * 2 ** (attempt - 1) - 1)
        return DIFS + self._rng.randint(0, cw) * SLOT_TIME

    def _track_rate_index(self, rate_index: int) -> None:
        if self._last_rate_index is not None and rate_index != self._last_rate_index:
            self.metrics_collector.record_rate_change()
        self._last_rate_index = rate_index
