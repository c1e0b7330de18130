"""
Per-peer ARF state and its fallback state machine.

Automatic Rate Fallback (ARF) keeps, for every peer, a handful of counters
and one of two fallback modes:

- RECOVERY: entered right after a rate increase and left at the next
  successful data transmission. Any first failure in this mode steps the
  rate down immediately (aggressive fallback).
- STEADY_STATE: every other moment. The rate steps down on every second
  failure of a failure streak (conservative fallback).

Every data attempt, first transmission or retransmission, is an independent
trial: a random backoff separates every attempt, so recovery transcends
retransmission boundaries.

Example:
    >>> from wifirate._state import create_state
    >>> state = create_state(success_threshold=3, timer_threshold=15)
    >>> for _ in range(3):
    ...     _ = state.on_data_ok(catalog_size=4)
    >>> state.rate_index, state.in_recovery
    (1, True)
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from wifirate._modes import WifiMode


# =============================================================================
# Exceptions
# =============================================================================


class InvariantViolationError(AssertionError):
    """
    Raised when a failure handler observes an impossible state.

    A failure handler always runs with at least one failure accounted for
    since the last success. Seeing `retry < 1` means the event delivery
    invoked the handler out of order; it is a bug, never a runtime condition.
    Only checked when Python runs without `-O`, like any other assertion.
    """

    def __init__(self, retry: int):
        self.retry = retry
        super().__init__(f"retry count must be >= 1 inside a failure handler, got {retry}")


# =============================================================================
# Fallback state machine
# =============================================================================


class FallbackMode(StrEnum):
    """The two fallback policies of ARF."""

    RECOVERY = "recovery"
    STEADY_STATE = "steady_state"


class FallbackEvent(StrEnum):
    """Events that move the fallback state machine."""

    DATA_OK = "data_ok"
    DATA_FAILED = "data_failed"
    RATE_INCREASED = "rate_increased"


# (mode, event) -> next mode. Pairs not listed keep the current mode.
FALLBACK_TRANSITIONS: dict[tuple[FallbackMode, FallbackEvent], FallbackMode] = {
    (FallbackMode.RECOVERY, FallbackEvent.DATA_OK): FallbackMode.STEADY_STATE,
    (FallbackMode.RECOVERY, FallbackEvent.RATE_INCREASED): FallbackMode.RECOVERY,
    (FallbackMode.STEADY_STATE, FallbackEvent.RATE_INCREASED): FallbackMode.RECOVERY,
}


def next_fallback_mode(mode: FallbackMode, event: FallbackEvent) -> FallbackMode:
    """Return the fallback mode reached from `mode` on `event`."""
    return FALLBACK_TRANSITIONS.get((mode, event), mode)


@dataclass(frozen=True)
class FallbackDecision:
    """What a fallback policy asks for after a failed data attempt."""

    step_down: bool
    reset_timer: bool


def recovery_fallback(retry: int) -> FallbackDecision:
    """Aggressive fallback: step down on the first failure, always reset the timer."""
    return FallbackDecision(step_down=retry == 1, reset_timer=True)


def steady_state_fallback(retry: int) -> FallbackDecision:
    """
    Conservative fallback: step down on every second failure of a streak.

    The timer restarts once the streak reaches two failures.
    """
    return FallbackDecision(step_down=(retry - 1) % 2 == 1, reset_timer=retry >= 2)


FALLBACK_POLICIES: dict[FallbackMode, Callable[[int], FallbackDecision]] = {
    FallbackMode.RECOVERY: recovery_fallback,
    FallbackMode.STEADY_STATE: steady_state_fallback,
}


# =============================================================================
# Per-peer state
# =============================================================================


@dataclass
class ArfStationState:
    """
    Mutable ARF state of a single peer.

    Attributes:
        success_threshold: Consecutive successes that trigger a rate increase.
        timer_threshold: Transmissions since the last rate change that trigger
            a rate increase.
        rate_index: Index of the current rate in the peer's catalog.
        success: Consecutive successful data transmissions.
        failed: Consecutive failed data transmissions.
        retry: Failures since the last success.
        timer: Transmissions since the last rate change.
        fallback_mode: Current fallback policy.
    """

    success_threshold: int
    timer_threshold: int
    rate_index: int = 0
    success: int = 0
    failed: int = 0
    retry: int = 0
    timer: int = 0
    fallback_mode: FallbackMode = FallbackMode.STEADY_STATE

    @property
    def in_recovery(self) -> bool:
        return self.fallback_mode is FallbackMode.RECOVERY

    def on_data_failed(self) -> bool:
        """
        Account for a failed data attempt.

        Returns:
            True if the rate stepped down.
        """
        self.timer += 1
        self.failed += 1
        self.retry += 1
        self.success = 0

        if __debug__ and self.retry < 1:
            raise InvariantViolationError(self.retry)

        decision = FALLBACK_POLICIES[self.fallback_mode](self.retry)
        stepped_down = False
        if decision.step_down and self.rate_index != 0:
            self.rate_index -= 1
            stepped_down = True
        if decision.reset_timer:
            self.timer = 0
        self.fallback_mode = next_fallback_mode(self.fallback_mode, FallbackEvent.DATA_FAILED)
        return stepped_down

    def on_data_ok(self, catalog_size: int) -> bool:
        """
        Account for a successfully acknowledged data transmission.

        Args:
            catalog_size: Number of entries in the peer's rate catalog.

        Returns:
            True if the rate stepped up.
        """
        self.timer += 1
        self.success += 1
        self.failed = 0
        self.retry = 0
        self.fallback_mode = next_fallback_mode(self.fallback_mode, FallbackEvent.DATA_OK)

        triggered = self.success == self.success_threshold or self.timer == self.timer_threshold
        if triggered and self.rate_index < catalog_size - 1:
            self.rate_index += 1
            self.timer = 0
            self.success = 0
            self.fallback_mode = next_fallback_mode(self.fallback_mode, FallbackEvent.RATE_INCREASED)
            return True
        return False


def create_state(success_threshold: int = 10, timer_threshold: int = 15) -> ArfStationState:
    """Create a fresh state at the lowest rate with every counter zeroed."""
    return ArfStationState(success_threshold=success_threshold, timer_threshold=timer_threshold)


def select_data_rate(state: ArfStationState, catalog: Sequence[WifiMode]) -> tuple[WifiMode, int]:
    """Return the catalog entry currently selected for data frames, with its index."""
    return catalog[state.rate_index], state.rate_index


def select_control_rate(
    state: ArfStationState,
    catalog: Sequence[WifiMode],
    non_erp_catalog: Sequence[WifiMode] = (),
    use_non_erp_protection: bool = False,
) -> WifiMode:
    """
    Return the mode used for RTS frames.

    Control frames are not adapted: they always go at the most robust rate of
    the catalog matching the protection mode.
    """
    if use_non_erp_protection and non_erp_catalog:
        return non_erp_catalog[0]
    return catalog[0]
