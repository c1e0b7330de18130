"""
Automatic Rate Fallback (ARF) rate manager.

ARF probes the next faster rate after `success_threshold` consecutive
successful transmissions, or after `timer_threshold` transmissions without a
rate change, and falls back to the next slower rate:

- immediately, on the first failure right after a rate increase (recovery);
- on every second consecutive failure otherwise (steady state).

Reference: A. Kamerman and L. Monteban, "WaveLAN-II: A High-Performance
Wireless LAN for the Unlicensed Band", Bell Labs Technical Journal, 1997.

Example:
    >>> from wifirate import ArfRateManager, RemoteStation, catalog_for_standard
    >>> manager = ArfRateManager(success_threshold=3)
    >>> state = manager.add_station(RemoteStation("peer-1", catalog_for_standard("802.11b")))
    >>> for _ in range(3):
    ...     manager.report_data_ok("peer-1")
    >>> manager.get_data_tx_vector("peer-1").mode.name
    'DsssRate2Mbps'
"""

import logging
from typing import override

from wifirate._config import WIFIRATE, ArfConfig, StationManagerConfig
from wifirate._listeners import StationEventListener
from wifirate._manager import RemoteStationManager, StationEntry
from wifirate._modes import WifiMode
from wifirate._state import ArfStationState, create_state, select_control_rate, select_data_rate
from wifirate._station import RemoteStation

logger = logging.getLogger(__name__)


class ArfRateManager(RemoteStationManager):
    """
    Rate manager implementing Automatic Rate Fallback.

    Each peer gets an independent ArfStationState; thresholds are copied into
    the state when the peer is added.

    Args:
        success_threshold: Consecutive successes needed to try a faster rate.
            If None, uses WIFIRATE.config.arf.success_threshold (default 10).
        timer_threshold: Transmissions since the last rate change after which
            a faster rate is tried. If None, uses
            WIFIRATE.config.arf.timer_threshold (default 15).
        config: Transmission parameters. If None, uses WIFIRATE.config.station.
        listeners: Observers of the manager's events.

    Raises:
        ConfigValidationError: If a threshold is lower than 1.
    """

    def __init__(
        self,
        success_threshold: int | None = None,
        timer_threshold: int | None = None,
        config: StationManagerConfig | None = None,
        listeners: list[StationEventListener] | None = None,
    ):
        super().__init__(config=config, listeners=listeners)
        self.arf_config: ArfConfig = WIFIRATE.config.arf.with_overrides({
            "success_threshold": success_threshold,
            "timer_threshold": timer_threshold,
        }).validate()

    @property
    def success_threshold(self) -> int:
        return self.arf_config.success_threshold

    @property
    def timer_threshold(self) -> int:
        return self.arf_config.timer_threshold

    @override
    def _create_state(self, station: RemoteStation) -> ArfStationState:
        return create_state(
            success_threshold=self.arf_config.success_threshold,
            timer_threshold=self.arf_config.timer_threshold,
        )

    @override
    def _on_data_failed(self, entry: StationEntry) -> None:
        state: ArfStationState = entry.state
        was_recovery = state.in_recovery
        if state.on_data_failed():
            logger.debug(
                f"{entry.station.address} | ARF | dec rate to index {state.rate_index} "
                f"({'recovery' if was_recovery else 'normal'} fallback, retry={state.retry})"
            )

    @override
    def _on_data_ok(self, entry: StationEntry, ack_snr: float, ack_mode: WifiMode | None, data_snr: float) -> None:
        state: ArfStationState = entry.state
        if state.on_data_ok(entry.station.catalog_size):
            logger.debug(f"{entry.station.address} | ARF | inc rate to index {state.rate_index}")
        else:
            logger.debug(f"{entry.station.address} | ARF | data ok success={state.success}, timer={state.timer}")

    @override
    def _select_data_mode(self, entry: StationEntry) -> WifiMode:
        mode, _ = select_data_rate(entry.state, entry.station.supported_modes)
        return mode

    @override
    def _select_rts_mode(self, entry: StationEntry) -> WifiMode:
        # TODO: adapt RTS frames too, by picking a single rate within the basic rate set.
        return select_control_rate(
            entry.state,
            entry.station.supported_modes,
            entry.station.non_erp_modes,
            use_non_erp_protection=self.config.use_non_erp_protection,
        )
