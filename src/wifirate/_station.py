"""
Peer descriptions and transmission parameters.

`RemoteStation` is what the transmission pipeline knows about a peer: its
address, the ordered rate catalog negotiated with it, and the physical
parameters the rate manager forwards untouched into every `TxVector`.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from wifirate._modes import WifiMode


class WifiPreamble(StrEnum):
    """Preamble types available to legacy modes."""

    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class RemoteStation:
    """
    A peer as seen by the transmission pipeline.

    Attributes:
        address: Unique peer identity (usually a MAC address).
        supported_modes: Ordered rate catalog; index 0 is the most robust.
        channel_width: Channel width in MHz currently used with the peer.
        short_preamble_supported: Whether the peer accepts short DSSS preambles.
        aggregation: Whether frame aggregation is negotiated with the peer.

    Example:
        >>> from wifirate import RemoteStation, catalog_for_standard
        >>> station = RemoteStation("00:00:00:00:00:01", catalog_for_standard("802.11a"))
        >>> station.catalog_size
        8
    """

    address: str
    supported_modes: tuple[WifiMode, ...]
    channel_width: int = 20
    short_preamble_supported: bool = False
    aggregation: bool = False
    non_erp_modes: tuple[WifiMode, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        assert self.address, "address cannot be empty."
        assert self.supported_modes, "supported_modes cannot be empty."
        assert self.channel_width > 0, "channel_width must be greater than 0."

        object.__setattr__(self, "supported_modes", tuple(self.supported_modes))
        object.__setattr__(
            self,
            "non_erp_modes",
            tuple(m for m in self.supported_modes if not m.is_erp),
        )

    @property
    def catalog_size(self) -> int:
        return len(self.supported_modes)

    def get_supported(self, index: int) -> WifiMode:
        """Return the catalog entry at `index`."""
        return self.supported_modes[index]

    def get_non_erp_supported(self, index: int) -> WifiMode:
        """
        Return the `index`-th non-ERP catalog entry.

        Falls back to the regular catalog when the peer has no non-ERP mode
        (e.g., an 802.11a peer).
        """
        if not self.non_erp_modes:
            return self.supported_modes[index]
        return self.non_erp_modes[index]


@dataclass(frozen=True)
class TxVector:
    """
    Parameters of a single transmission, returned by the rate managers.

    Only `mode` is chosen by the rate adaptation algorithm; every other field
    is forwarded from the manager configuration or from the peer.

    Attributes:
        retry_count: Failed data attempts of the frame in flight (long retry
            count), reset on success and on final failure.
    """

    mode: WifiMode
    tx_power_level: int
    retry_count: int
    preamble: WifiPreamble
    channel_width: int
    aggregation: bool
    guard_interval: int = 800
    n_tx: int = 1
    nss: int = 1
    ness: int = 0
    stbc: bool = False

    @property
    def data_rate(self) -> int:
        """Data rate in bits per second of this transmission."""
        return self.mode.get_data_rate(self.channel_width)
