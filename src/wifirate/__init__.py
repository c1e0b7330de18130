"""
Link-rate adaptation for legacy wireless transmitters.

For each peer, a rate manager decides which transmission rate (from an
ordered catalog of increasing speeds) to use next, based solely on the
success or failure of each transmission attempt.

Quick Start:
    >>> from wifirate import ArfRateManager, RemoteStation, catalog_for_standard
    >>> manager = ArfRateManager()
    >>> state = manager.add_station(RemoteStation("00:00:00:00:00:01", catalog_for_standard("802.11a")))
    >>> tx_vector = manager.get_data_tx_vector("00:00:00:00:00:01")
    >>> manager.report_data_ok("00:00:00:00:00:01")
    >>> manager.report_data_failed("00:00:00:00:00:01")

Global Configuration:
    >>> from wifirate import WIFIRATE
    >>> WIFIRATE.configure(arf={"success_threshold": 5, "timer_threshold": 10})

Main Classes:
    - ArfRateManager: Automatic Rate Fallback rate manager.
    - ConstantRateManager: Fixed-rate baseline manager.
    - RemoteStationManager: Abstract base class for rate managers.
    - RemoteStation: A peer as seen by the transmission pipeline.
    - TxVector: Parameters of a single transmission.

ARF State:
    - ArfStationState: Per-peer counters and fallback mode.
    - FallbackMode: RECOVERY or STEADY_STATE.
    - create_state / select_data_rate / select_control_rate: Functional API.

Rate Catalog:
    - WifiMode, ModulationClass, WifiPreamble
    - catalog_for_standard: Legacy 802.11a/b/g catalogs.

Listeners:
    - StationEventListener, LoggingStationListener, RateTraceListener

Configuration:
    - WIFIRATE: Global singleton for configuration.
    - WifiRateConfig, ArfConfig, StationManagerConfig, ConfigEntry
    - ConfigEnvVarError, ConfigValidationError

Errors:
    - UnsupportedCapabilityError: An HT/VHT/HE capability was enabled.
    - InvariantViolationError: A failure handler observed an impossible state.
    - UnknownStationError: An event named a peer that was never added.
"""

from importlib.metadata import version as _get_version

__version__ = _get_version("wifirate")

from wifirate._arf import ArfRateManager
from wifirate._config import (
    WIFIRATE,
    ArfConfig,
    ConfigEntry,
    ConfigEnvVarError,
    ConfigValidationError,
    StationManagerConfig,
    WifiRateConfig,
)
from wifirate._listeners import (
    LoggingStationListener,
    RateChange,
    RateTraceListener,
    StationEventListener,
)
from wifirate._manager import (
    Capability,
    ConstantRateManager,
    RemoteStationManager,
    UnknownStationError,
    UnsupportedCapabilityError,
)
from wifirate._modes import (
    ModulationClass,
    WifiMode,
    catalog_for_standard,
    legacy_channel_width,
)
from wifirate._state import (
    ArfStationState,
    FallbackMode,
    InvariantViolationError,
    create_state,
    select_control_rate,
    select_data_rate,
)
from wifirate._station import (
    RemoteStation,
    TxVector,
    WifiPreamble,
)

__all__ = [
    "__version__",
    # Managers
    "ArfRateManager",
    "ConstantRateManager",
    "RemoteStationManager",
    "Capability",
    # ARF state
    "ArfStationState",
    "FallbackMode",
    "create_state",
    "select_data_rate",
    "select_control_rate",
    # Stations
    "RemoteStation",
    "TxVector",
    "WifiPreamble",
    # Rate catalog
    "WifiMode",
    "ModulationClass",
    "catalog_for_standard",
    "legacy_channel_width",
    # Listeners
    "StationEventListener",
    "LoggingStationListener",
    "RateTraceListener",
    "RateChange",
    # Configuration
    "WIFIRATE",
    "WifiRateConfig",
    "ArfConfig",
    "StationManagerConfig",
    "ConfigEntry",
    "ConfigEnvVarError",
    "ConfigValidationError",
    # Errors
    "UnsupportedCapabilityError",
    "InvariantViolationError",
    "UnknownStationError",
]
