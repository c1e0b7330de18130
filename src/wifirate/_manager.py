"""
Remote station managers: the seam between the transmission pipeline and a
rate adaptation algorithm.

A manager owns a station table keyed by peer address. The pipeline registers
peers, reports the outcome of every transmission attempt, and asks for the
TxVector to use before each transmission.

Available implementations:
    - RemoteStationManager: Abstract base class for all rate managers.
    - ConstantRateManager: Always transmits at a fixed catalog index.
    - ArfRateManager: Automatic Rate Fallback (see wifirate._arf).

Example:
    >>> from wifirate import ConstantRateManager, RemoteStation, catalog_for_standard
    >>> manager = ConstantRateManager(rate_index=2)
    >>> rate_index = manager.add_station(RemoteStation("peer-1", catalog_for_standard("802.11a")))
    >>> manager.get_data_tx_vector("peer-1").mode.name
    'OfdmRate12Mbps'
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, override

from wifirate._config import WIFIRATE, StationManagerConfig
from wifirate._listeners import StationEventListener
from wifirate._modes import WifiMode, legacy_channel_width
from wifirate._station import RemoteStation, TxVector, WifiPreamble

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================


class Capability(StrEnum):
    """Extended capability sets a manager may be asked to enable."""

    HT = "ht"
    VHT = "vht"
    HE = "he"


class UnsupportedCapabilityError(RuntimeError):
    """
    Raised when an extended capability is enabled on a legacy rate manager.

    Legacy managers have no decision policy for HT/VHT/HE rate tables.
    Continuing with a catalog they cannot reason about would silently
    degrade, so this error is fatal and must not be caught and ignored.

    Attributes:
        capability: The capability that was requested.
    """

    def __init__(self, capability: Capability):
        self.capability = capability
        super().__init__(
            f"The selected rate manager does not support {capability.upper()} rates"
        )


class UnknownStationError(KeyError):
    """Raised when an event or query names a peer that was never added."""

    def __init__(self, address: str):
        self.address = address
        super().__init__(f"Unknown station: {address!r}. Was add_station() called?")


# =============================================================================
# Station table
# =============================================================================


@dataclass
class StationEntry:
    """
    A row of the station table: the peer, its algorithm state and its lock.

    `long_retry_count` counts the failed data attempts of the frame in flight;
    it is forwarded as `TxVector.retry_count`.
    """

    station: RemoteStation
    state: Any
    long_retry_count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class RemoteStationManager(ABC):
    """
    Abstract base class for rate managers.

    Subclasses implement the algorithm through four hooks: `_create_state`,
    `_on_data_failed`, `_on_data_ok` and `_select_data_mode`. The base class
    owns everything else: the station table, per-peer serialization, the
    TxVector plumbing, capability gating, and listener notification.

    Events for one peer are applied under that peer's lock, so handlers for
    the same peer never interleave; distinct peers never contend.

    Args:
        config: Transmission parameters. If None, uses WIFIRATE.config.station.
        listeners: Observers of the manager's events.
    """

    def __init__(
        self,
        config: StationManagerConfig | None = None,
        listeners: list[StationEventListener] | None = None,
    ):
        self.config: StationManagerConfig = (config or WIFIRATE.config.station).validate()
        self.listeners: list[StationEventListener] = list(listeners or [])

        self._stations: dict[str, StationEntry] = {}
        self._stations_lock = threading.Lock()

        self._current_rate = 0
        self._rate_lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Algorithm hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def _create_state(self, station: RemoteStation) -> Any:
        """Create the algorithm state of a newly added peer."""

    @abstractmethod
    def _on_data_failed(self, entry: StationEntry) -> None:
        """Apply a failed data attempt to the peer's state."""

    @abstractmethod
    def _on_data_ok(self, entry: StationEntry, ack_snr: float, ack_mode: WifiMode | None, data_snr: float) -> None:
        """Apply a successful data transmission to the peer's state."""

    @abstractmethod
    def _select_data_mode(self, entry: StationEntry) -> WifiMode:
        """Return the mode to use for the peer's next data frame."""

    def _select_rts_mode(self, entry: StationEntry) -> WifiMode:
        """Return the mode used for RTS frames. Not adapted by default."""
        station = entry.station
        if self.config.use_non_erp_protection:
            return station.get_non_erp_supported(0)
        return station.get_supported(0)

    # -------------------------------------------------------------------------
    # Station table
    # -------------------------------------------------------------------------

    def add_station(self, station: RemoteStation) -> Any:
        """
        Start tracking a peer.

        Adding a peer that is already tracked replaces its state.

        Returns:
            The freshly created algorithm state.
        """
        entry = StationEntry(station=station, state=self._create_state(station))
        with self._stations_lock:
            self._stations[station.address] = entry
        logger.info(f"{station.address} | STATION | added with {station.catalog_size} rate(s)")
        return entry.state

    def remove_station(self, address: str) -> None:
        """Stop tracking a peer and drop its state."""
        with self._stations_lock:
            if self._stations.pop(address, None) is None:
                raise UnknownStationError(address)
        logger.info(f"{address} | STATION | removed")

    def has_station(self, address: str) -> bool:
        with self._stations_lock:
            return address in self._stations

    def get_state(self, address: str) -> Any:
        """Return the algorithm state of a tracked peer."""
        return self._entry(address).state

    def get_station(self, address: str) -> RemoteStation:
        return self._entry(address).station

    @property
    def addresses(self) -> list[str]:
        with self._stations_lock:
            return list(self._stations)

    def _entry(self, address: str) -> StationEntry:
        with self._stations_lock:
            entry = self._stations.get(address)
        if entry is None:
            raise UnknownStationError(address)
        return entry

    # -------------------------------------------------------------------------
    # Transmission outcome events
    # -------------------------------------------------------------------------

    def report_data_failed(self, address: str) -> None:
        """Report a data attempt (first transmission or retry) that got no ACK."""
        entry = self._entry(address)
        with entry.lock:
            entry.long_retry_count += 1
            self._on_data_failed(entry)

    def report_data_ok(
        self,
        address: str,
        ack_snr: float = 0.0,
        ack_mode: WifiMode | None = None,
        data_snr: float = 0.0,
    ) -> None:
        """Report a data transmission acknowledged by the peer."""
        entry = self._entry(address)
        with entry.lock:
            entry.long_retry_count = 0
            self._on_data_ok(entry, ack_snr, ack_mode, data_snr)

    def report_rts_failed(self, address: str) -> None:
        self._entry(address)
        self._notify_listeners("on_rts_failed", address=address)

    def report_rts_ok(self, address: str, cts_snr: float, cts_mode: WifiMode, rts_snr: float) -> None:
        self._entry(address)
        self._notify_listeners("on_rts_ok", address=address, cts_snr=cts_snr, cts_mode=cts_mode, rts_snr=rts_snr)

    def report_rx_ok(self, address: str, rx_snr: float, tx_mode: WifiMode) -> None:
        self._entry(address)
        self._notify_listeners("on_rx_ok", address=address, rx_snr=rx_snr, tx_mode=tx_mode)

    def report_final_rts_failed(self, address: str) -> None:
        self._entry(address)
        self._notify_listeners("on_final_rts_failed", address=address)

    def report_final_data_failed(self, address: str) -> None:
        entry = self._entry(address)
        with entry.lock:
            entry.long_retry_count = 0
        self._notify_listeners("on_final_data_failed", address=address)

    # -------------------------------------------------------------------------
    # Rate queries
    # -------------------------------------------------------------------------

    def get_data_tx_vector(self, address: str) -> TxVector:
        """
        Return the parameters of the peer's next data transmission.

        Also updates `current_rate` and notifies listeners when the selected
        data rate differs from the previous selection.
        """
        entry = self._entry(address)
        with entry.lock:
            mode = self._select_data_mode(entry)
        channel_width = legacy_channel_width(entry.station.channel_width)
        self._update_current_rate(address, mode.get_data_rate(channel_width))
        return self._build_tx_vector(entry, mode, channel_width)

    def get_rts_tx_vector(self, address: str) -> TxVector:
        """Return the parameters of the peer's next RTS frame."""
        entry = self._entry(address)
        with entry.lock:
            mode = self._select_rts_mode(entry)
        channel_width = legacy_channel_width(entry.station.channel_width)
        return self._build_tx_vector(entry, mode, channel_width)

    @property
    def current_rate(self) -> int:
        """Data rate in bits per second of the last selected data mode (0 before any selection)."""
        return self._current_rate

    @property
    def is_low_latency(self) -> bool:
        return True

    def _update_current_rate(self, address: str, new_rate: int) -> None:
        # Listeners are notified under the lock so they see changes in order
        with self._rate_lock:
            old_rate = self._current_rate
            if old_rate == new_rate:
                return
            self._current_rate = new_rate
            logger.debug(f"{address} | RATE | New datarate: {new_rate}")
            self._notify_listeners("on_rate_change", address=address, old_rate=old_rate, new_rate=new_rate)

    def _build_tx_vector(self, entry: StationEntry, mode: WifiMode, channel_width: int) -> TxVector:
        return TxVector(
            mode=mode,
            tx_power_level=self.config.default_tx_power_level,
            retry_count=entry.long_retry_count,
            preamble=self._preamble_for(entry.station, mode),
            channel_width=channel_width,
            aggregation=entry.station.aggregation,
        )

    def _preamble_for(self, station: RemoteStation, mode: WifiMode) -> WifiPreamble:
        if (
            mode.modulation_class.is_dsss_family
            and self.config.short_preamble_enabled
            and station.short_preamble_supported
        ):
            return WifiPreamble.SHORT
        return WifiPreamble.LONG

    # -------------------------------------------------------------------------
    # Capability gating
    # -------------------------------------------------------------------------

    def enable_extended_capability(self, capability: Capability | str, enable: bool) -> None:
        """
        Enable or disable an extended (HT/VHT/HE) capability set.

        Legacy managers only accept disabling.

        Raises:
            UnsupportedCapabilityError: If `enable` is True.
        """
        capability = Capability(capability)
        if enable:
            raise UnsupportedCapabilityError(capability)

    def set_ht_supported(self, enable: bool) -> None:
        self.enable_extended_capability(Capability.HT, enable)

    def set_vht_supported(self, enable: bool) -> None:
        self.enable_extended_capability(Capability.VHT, enable)

    def set_he_supported(self, enable: bool) -> None:
        self.enable_extended_capability(Capability.HE, enable)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def add_listener(self, listener: StationEventListener) -> None:
        assert listener is not None, "listener cannot be None."
        self.listeners.append(listener)

    def _notify_listeners(self, event: str, **kwargs: Any) -> None:
        """
        Notifies all registered listeners about an event.

        Exceptions raised by listeners are logged but do not interrupt the
        transmission path.
        """
        for listener in self.listeners:
            try:
                method = getattr(listener, event, None)
                if method and callable(method):
                    method(**kwargs)
            except Exception as e:
                logger.exception(
                    f"{kwargs.get('address', 'unknown')} | LISTENER | Error notifying {type(listener).__name__}.{event}: {e}"
                )


class ConstantRateManager(RemoteStationManager):
    """
    Transmits every data frame at the same catalog index.

    The index is clamped to each peer's catalog, so a peer with fewer rates
    uses its fastest one. Used as the baseline of rate adaptation
    comparisons.

    Args:
        rate_index: Catalog index used for data frames.
        config: Transmission parameters. If None, uses WIFIRATE.config.station.
        listeners: Observers of the manager's events.
    """

    def __init__(
        self,
        rate_index: int = 0,
        config: StationManagerConfig | None = None,
        listeners: list[StationEventListener] | None = None,
    ):
        assert rate_index >= 0, "rate_index must be greater than or equal to 0."
        super().__init__(config=config, listeners=listeners)
        self.rate_index = rate_index

    @override
    def _create_state(self, station: RemoteStation) -> int:
        return min(self.rate_index, station.catalog_size - 1)

    @override
    def _on_data_failed(self, entry: StationEntry) -> None:
        pass

    @override
    def _on_data_ok(self, entry: StationEntry, ack_snr: float, ack_mode: WifiMode | None, data_snr: float) -> None:
        pass

    @override
    def _select_data_mode(self, entry: StationEntry) -> WifiMode:
        return entry.station.get_supported(entry.state)
