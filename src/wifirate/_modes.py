"""
Legacy transmission modes and rate catalogs.

A rate catalog is an ordered tuple of `WifiMode` instances, from the most
robust (index 0) to the fastest. Rate managers never build catalogs on their
own: they receive them from the pipeline through `RemoteStation`.

Available helpers:
    - WifiMode: A single modulation/coding combination with its data rate.
    - ModulationClass: Enum with the legacy modulation families.
    - catalog_for_standard: Builds the catalog used by 802.11a/b/g peers.

Example:
    >>> from wifirate import catalog_for_standard
    >>> catalog = catalog_for_standard("802.11b")
    >>> [m.name for m in catalog]
    ['DsssRate1Mbps', 'DsssRate2Mbps', 'DsssRate5_5Mbps', 'DsssRate11Mbps']
"""

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

WifiStandard = Literal["802.11a", "802.11b", "802.11g"]

# Width of a DSSS channel, in MHz. Never clamped.
DSSS_CHANNEL_WIDTH = 22
LEGACY_CHANNEL_WIDTH = 20


class ModulationClass(StrEnum):
    """Modulation families supported by legacy rate managers."""

    DSSS = "dsss"
    HR_DSSS = "hr_dsss"
    ERP_OFDM = "erp_ofdm"
    OFDM = "ofdm"

    @property
    def is_dsss_family(self) -> bool:
        return self in (ModulationClass.DSSS, ModulationClass.HR_DSSS)


@dataclass(frozen=True)
class WifiMode:
    """
    A transmission mode: modulation class plus coding, at a nominal data rate.

    Attributes:
        name: Human readable identifier (e.g., "OfdmRate54Mbps").
        modulation_class: Family the mode belongs to.
        nominal_rate: Data rate in bits per second on a 20 MHz channel
            (or the 22 MHz DSSS channel).
    """

    name: str
    modulation_class: ModulationClass
    nominal_rate: int

    def get_data_rate(self, channel_width: int) -> int:
        """
        Return the data rate in bits per second for the given channel width.

        OFDM rates scale linearly with 5/10/20 MHz channels. Wider channels
        are treated as 20 MHz since legacy modes never use them. DSSS rates
        do not depend on the channel width.
        """
        if self.modulation_class.is_dsss_family:
            return self.nominal_rate
        width = min(channel_width, LEGACY_CHANNEL_WIDTH)
        return self.nominal_rate * width // LEGACY_CHANNEL_WIDTH

    @property
    def is_erp(self) -> bool:
        return self.modulation_class is ModulationClass.ERP_OFDM

    def __str__(self) -> str:
        return self.name


def _mode(name: str, modulation_class: ModulationClass, rate_mbps: float) -> WifiMode:
    return WifiMode(name=name, modulation_class=modulation_class, nominal_rate=int(rate_mbps * 1_000_000))


# =============================================================================
# Standard mode tables
# =============================================================================

DSSS_MODES: tuple[WifiMode, ...] = (
    _mode("DsssRate1Mbps", ModulationClass.DSSS, 1),
    _mode("DsssRate2Mbps", ModulationClass.DSSS, 2),
    _mode("DsssRate5_5Mbps", ModulationClass.HR_DSSS, 5.5),
    _mode("DsssRate11Mbps", ModulationClass.HR_DSSS, 11),
)

OFDM_MODES: tuple[WifiMode, ...] = tuple(
    _mode(f"OfdmRate{rate}Mbps", ModulationClass.OFDM, rate)
    for rate in (6, 9, 12, 18, 24, 36, 48, 54)
)

ERP_OFDM_MODES: tuple[WifiMode, ...] = tuple(
    _mode(f"ErpOfdmRate{rate}Mbps", ModulationClass.ERP_OFDM, rate)
    for rate in (6, 9, 12, 18, 24, 36, 48, 54)
)


def catalog_for_standard(standard: WifiStandard) -> tuple[WifiMode, ...]:
    """
    Return the ordered rate catalog of a legacy standard.

    802.11g peers mix DSSS and ERP-OFDM modes; the catalog is sorted by data
    rate so that index 0 stays the most robust entry.

    Raises:
        ValueError: If the standard is unknown.
    """
    if standard == "802.11a":
        return OFDM_MODES
    if standard == "802.11b":
        return DSSS_MODES
    if standard == "802.11g":
        return tuple(sorted(DSSS_MODES + ERP_OFDM_MODES, key=lambda m: m.nominal_rate))
    raise ValueError(f"Unknown standard: {standard!r}. Valid standards are: 802.11a, 802.11b, 802.11g")


def legacy_channel_width(channel_width: int) -> int:
    """
    Clamp a channel width to the widest legacy width.

    Legacy rate adaptation predates 40+ MHz channels; anything wider than
    20 MHz (other than the 22 MHz DSSS channel) is reported as 20 MHz.
    """
    if channel_width > LEGACY_CHANNEL_WIDTH and channel_width != DSSS_CHANNEL_WIDTH:
        return LEGACY_CHANNEL_WIDTH
    return channel_width
