"""
Event listeners for rate managers.

This module contains the StationEventListener base class and concrete
implementations for observing what a rate manager sees and decides.

Available Listeners:
    - StationEventListener: Base class for all event listeners.
    - LoggingStationListener: Logs every observed event.
    - RateTraceListener: Records every rate change in memory.

Example:
    >>> from wifirate import ArfRateManager, RateTraceListener
    >>> trace = RateTraceListener()
    >>> manager = ArfRateManager(listeners=[trace])
"""

import logging
from dataclasses import dataclass
from typing import override

from wifirate._modes import WifiMode

logger = logging.getLogger(__name__)


class StationEventListener:
    """
    Base class for observing rate manager events.

    Listeners are read-only observers: they can react to events, log, or
    collect metrics, but must NOT call back into the manager's handlers.

    All methods have default empty implementations, so subclasses only need to
    override the methods they care about.

    Example:
        >>> class RtsCounter(StationEventListener):
        ...     def __init__(self):
        ...         self.failures = 0
        ...
        ...     def on_rts_failed(self, address):
        ...         self.failures += 1
    """

    def on_rate_change(self, address: str, old_rate: int, new_rate: int) -> None:
        """
        Called when the selected data rate changes.

        Args:
            address: Peer for which the new rate was selected.
            old_rate: Previous data rate in bits per second (0 before the first selection).
            new_rate: New data rate in bits per second.
        """
        pass

    def on_rts_failed(self, address: str) -> None:
        """Called when an RTS frame got no CTS back."""
        pass

    def on_rts_ok(self, address: str, cts_snr: float, cts_mode: WifiMode, rts_snr: float) -> None:
        """Called when an RTS frame was answered by a CTS."""
        pass

    def on_rx_ok(self, address: str, rx_snr: float, tx_mode: WifiMode) -> None:
        """Called when a frame from the peer was received successfully."""
        pass

    def on_final_rts_failed(self, address: str) -> None:
        """Called when an RTS frame exhausted its retry budget."""
        pass

    def on_final_data_failed(self, address: str) -> None:
        """Called when a data frame exhausted its retry budget."""
        pass


class LoggingStationListener(StationEventListener):
    """
    Logs every observed event at a configurable level.

    Example:
        >>> import logging
        >>> listener = LoggingStationListener(level=logging.INFO)
    """

    def __init__(self, level: int = logging.DEBUG, log: logging.Logger | None = None):
        self.level = level
        self.log = log or logger

    @override
    def on_rate_change(self, address: str, old_rate: int, new_rate: int) -> None:
        self.log.log(self.level, f"{address} | RATE | {old_rate} b/s -> {new_rate} b/s")

    @override
    def on_rts_failed(self, address: str) -> None:
        self.log.log(self.level, f"{address} | RTS  | failed")

    @override
    def on_rts_ok(self, address: str, cts_snr: float, cts_mode: WifiMode, rts_snr: float) -> None:
        self.log.log(self.level, f"{address} | RTS  | ok cts_snr={cts_snr:.2f} cts_mode={cts_mode} rts_snr={rts_snr:.2f}")

    @override
    def on_rx_ok(self, address: str, rx_snr: float, tx_mode: WifiMode) -> None:
        self.log.log(self.level, f"{address} | RX   | ok snr={rx_snr:.2f} mode={tx_mode}")

    @override
    def on_final_rts_failed(self, address: str) -> None:
        self.log.log(self.level, f"{address} | RTS  | retry budget exhausted")

    @override
    def on_final_data_failed(self, address: str) -> None:
        self.log.log(self.level, f"{address} | DATA | retry budget exhausted")


@dataclass(frozen=True)
class RateChange:
    """A single entry of a RateTraceListener."""

    address: str
    old_rate: int
    new_rate: int


class RateTraceListener(StationEventListener):
    """Keeps every rate change in memory, in the order it happened."""

    def __init__(self) -> None:
        self.changes: list[RateChange] = []

    @override
    def on_rate_change(self, address: str, old_rate: int, new_rate: int) -> None:
        self.changes.append(RateChange(address=address, old_rate=old_rate, new_rate=new_rate))

    @property
    def rates(self) -> list[int]:
        return [c.new_rate for c in self.changes]
