"""Tests for the per-peer ARF state and its fallback state machine."""

import random
import unittest

import pytest

from wifirate import catalog_for_standard
from wifirate._state import (
    FALLBACK_POLICIES,
    ArfStationState,
    FallbackDecision,
    FallbackEvent,
    FallbackMode,
    InvariantViolationError,
    create_state,
    next_fallback_mode,
    recovery_fallback,
    select_control_rate,
    select_data_rate,
    steady_state_fallback,
)

CATALOG_SIZE = 8


def _state_at(rate_index: int, mode: FallbackMode = FallbackMode.STEADY_STATE, **kwargs) -> ArfStationState:
    state = create_state(**kwargs)
    state.rate_index = rate_index
    state.fallback_mode = mode
    return state


# =============================================================================
# Fallback policies and transitions
# =============================================================================


class TestFallbackPolicies:
    """Tests for the per-mode fallback policy functions."""

    def test_recovery_steps_down_only_on_first_failure(self):
        assert recovery_fallback(1) == FallbackDecision(step_down=True, reset_timer=True)
        assert recovery_fallback(2) == FallbackDecision(step_down=False, reset_timer=True)
        assert recovery_fallback(3) == FallbackDecision(step_down=False, reset_timer=True)

    @pytest.mark.parametrize(
        "retry, step_down, reset_timer",
        [
            (1, False, False),
            (2, True, True),
            (3, False, True),
            (4, True, True),
            (5, False, True),
        ],
    )
    def test_steady_state_steps_down_on_every_second_failure(self, retry, step_down, reset_timer):
        decision = steady_state_fallback(retry)
        assert decision.step_down is step_down
        assert decision.reset_timer is reset_timer

    def test_every_mode_has_a_policy(self):
        assert set(FALLBACK_POLICIES) == set(FallbackMode)


class TestFallbackTransitions:
    """Tests for the fallback state machine transition table."""

    def test_data_ok_leaves_recovery(self):
        assert next_fallback_mode(FallbackMode.RECOVERY, FallbackEvent.DATA_OK) is FallbackMode.STEADY_STATE

    def test_rate_increase_enters_recovery(self):
        assert next_fallback_mode(FallbackMode.STEADY_STATE, FallbackEvent.RATE_INCREASED) is FallbackMode.RECOVERY
        assert next_fallback_mode(FallbackMode.RECOVERY, FallbackEvent.RATE_INCREASED) is FallbackMode.RECOVERY

    def test_data_failed_keeps_current_mode(self):
        assert next_fallback_mode(FallbackMode.RECOVERY, FallbackEvent.DATA_FAILED) is FallbackMode.RECOVERY
        assert next_fallback_mode(FallbackMode.STEADY_STATE, FallbackEvent.DATA_FAILED) is FallbackMode.STEADY_STATE

    def test_data_ok_in_steady_state_is_a_noop(self):
        assert next_fallback_mode(FallbackMode.STEADY_STATE, FallbackEvent.DATA_OK) is FallbackMode.STEADY_STATE


# =============================================================================
# State creation
# =============================================================================


class TestCreateState(unittest.TestCase):
    """Tests for create_state()."""

    def test_fresh_state_uses_lowest_rate_and_zeroed_counters(self):
        state = create_state()

        self.assertEqual(state.rate_index, 0)
        self.assertEqual(state.success, 0)
        self.assertEqual(state.failed, 0)
        self.assertEqual(state.retry, 0)
        self.assertEqual(state.timer, 0)
        self.assertFalse(state.in_recovery)

    def test_default_thresholds(self):
        state = create_state()
        self.assertEqual(state.success_threshold, 10)
        self.assertEqual(state.timer_threshold, 15)

    def test_thresholds_are_copied(self):
        state = create_state(success_threshold=3, timer_threshold=5)
        self.assertEqual(state.success_threshold, 3)
        self.assertEqual(state.timer_threshold, 5)


# =============================================================================
# Data failure handler
# =============================================================================


class TestOnDataFailed(unittest.TestCase):
    """Tests for ArfStationState.on_data_failed()."""

    def test_updates_counters(self):
        state = _state_at(3)
        state.success = 4

        state.on_data_failed()

        self.assertEqual(state.failed, 1)
        self.assertEqual(state.retry, 1)
        self.assertEqual(state.success, 0)
        self.assertEqual(state.timer, 1)

    def test_recovery_first_failure_steps_down(self):
        """Aggressive fallback: one failure right after an increase drops one rate."""
        state = _state_at(4, FallbackMode.RECOVERY)
        state.timer = 3

        stepped_down = state.on_data_failed()

        self.assertTrue(stepped_down)
        self.assertEqual(state.rate_index, 3)
        self.assertEqual(state.timer, 0)

    def test_recovery_second_failure_does_not_step_down_again(self):
        state = _state_at(4, FallbackMode.RECOVERY)

        state.on_data_failed()
        stepped_down = state.on_data_failed()

        self.assertFalse(stepped_down)
        self.assertEqual(state.rate_index, 3)
        self.assertEqual(state.timer, 0)
        self.assertTrue(state.in_recovery)

    def test_steady_state_steps_down_on_second_failure_only(self):
        """Conservative fallback: two failures, one decrement, on the second."""
        state = _state_at(4)

        self.assertFalse(state.on_data_failed())
        self.assertEqual(state.rate_index, 4)
        self.assertEqual(state.timer, 1)

        self.assertTrue(state.on_data_failed())
        self.assertEqual(state.rate_index, 3)
        self.assertEqual(state.timer, 0)

    def test_steady_state_long_streak_alternates(self):
        state = _state_at(6)

        for _ in range(6):
            state.on_data_failed()

        # Steps down on retry 2, 4, 6
        self.assertEqual(state.rate_index, 3)
        self.assertEqual(state.retry, 6)
        self.assertEqual(state.timer, 0)

    def test_no_decrease_at_floor(self):
        state = _state_at(0, FallbackMode.RECOVERY)
        self.assertFalse(state.on_data_failed())
        self.assertEqual(state.rate_index, 0)

        state = _state_at(0)
        state.on_data_failed()
        self.assertFalse(state.on_data_failed())
        self.assertEqual(state.rate_index, 0)
        self.assertEqual(state.timer, 0)

    def test_raises_invariant_violation_when_retry_is_impossible(self):
        state = _state_at(2)
        state.retry = -5

        with self.assertRaises(InvariantViolationError) as context:
            state.on_data_failed()

        self.assertEqual(context.exception.retry, -4)
        self.assertIsInstance(context.exception, AssertionError)


# =============================================================================
# Data success handler
# =============================================================================


class TestOnDataOk(unittest.TestCase):
    """Tests for ArfStationState.on_data_ok()."""

    def test_updates_counters(self):
        state = _state_at(2)
        state.failed = 1
        state.retry = 1

        state.on_data_ok(CATALOG_SIZE)

        self.assertEqual(state.success, 1)
        self.assertEqual(state.timer, 1)
        self.assertEqual(state.failed, 0)
        self.assertEqual(state.retry, 0)

    def test_success_leaves_recovery(self):
        state = _state_at(2, FallbackMode.RECOVERY)
        state.on_data_ok(CATALOG_SIZE)
        self.assertFalse(state.in_recovery)

    def test_increase_by_success_count(self):
        state = create_state(success_threshold=3, timer_threshold=15)

        self.assertFalse(state.on_data_ok(CATALOG_SIZE))
        self.assertFalse(state.on_data_ok(CATALOG_SIZE))
        self.assertTrue(state.on_data_ok(CATALOG_SIZE))

        self.assertEqual(state.rate_index, 1)
        self.assertTrue(state.in_recovery)
        self.assertEqual(state.success, 0)
        self.assertEqual(state.timer, 0)

    def test_increase_by_timer(self):
        """Timer counts failures too, so a single failure does not stop it."""
        state = create_state(success_threshold=10, timer_threshold=5)

        state.on_data_failed()
        for _ in range(3):
            self.assertFalse(state.on_data_ok(CATALOG_SIZE))
        self.assertTrue(state.on_data_ok(CATALOG_SIZE))

        self.assertEqual(state.rate_index, 1)
        self.assertTrue(state.in_recovery)

    def test_default_thresholds_need_ten_successes(self):
        state = create_state()

        for _ in range(9):
            state.on_data_ok(CATALOG_SIZE)
        self.assertEqual(state.rate_index, 0)

        state.on_data_ok(CATALOG_SIZE)
        self.assertEqual(state.rate_index, 1)

    def test_no_increase_at_ceiling(self):
        state = _state_at(CATALOG_SIZE - 1, success_threshold=2)

        for _ in range(20):
            self.assertFalse(state.on_data_ok(CATALOG_SIZE))

        self.assertEqual(state.rate_index, CATALOG_SIZE - 1)
        self.assertFalse(state.in_recovery)

    def test_single_rate_catalog_never_moves(self):
        state = create_state(success_threshold=1, timer_threshold=1)
        for _ in range(5):
            state.on_data_ok(1)
            state.on_data_failed()
        self.assertEqual(state.rate_index, 0)

    def test_recovery_window_after_increase(self):
        """Recovery holds from the increase until the next success."""
        state = create_state(success_threshold=2)

        state.on_data_ok(CATALOG_SIZE)
        self.assertFalse(state.in_recovery)
        state.on_data_ok(CATALOG_SIZE)
        self.assertTrue(state.in_recovery)

        state.on_data_ok(CATALOG_SIZE)
        self.assertFalse(state.in_recovery)
        self.assertEqual(state.rate_index, 1)


# =============================================================================
# Properties over random event sequences
# =============================================================================


class TestRandomEventSequences:
    """Bounds that must hold for any interleaving of events."""

    @pytest.mark.parametrize("seed", range(10))
    def test_rate_index_stays_within_catalog(self, seed):
        rng = random.Random(seed)
        catalog_size = rng.randint(1, 12)
        state = create_state(success_threshold=rng.randint(1, 5), timer_threshold=rng.randint(1, 8))

        for _ in range(500):
            before = state.rate_index
            if rng.random() < 0.5:
                state.on_data_ok(catalog_size)
            else:
                state.on_data_failed()
            assert 0 <= state.rate_index < catalog_size
            assert abs(state.rate_index - before) <= 1

    @pytest.mark.parametrize("seed", range(5))
    def test_recovery_only_after_increase(self, seed):
        rng = random.Random(seed)
        state = create_state(success_threshold=3, timer_threshold=5)

        for _ in range(300):
            before = state.rate_index
            if rng.random() < 0.6:
                stepped_up = state.on_data_ok(CATALOG_SIZE)
                assert state.in_recovery is stepped_up
                assert stepped_up is (state.rate_index == before + 1)
            else:
                was_recovery = state.in_recovery
                state.on_data_failed()
                assert state.in_recovery is was_recovery


# =============================================================================
# Rate queries
# =============================================================================


class TestRateQueries(unittest.TestCase):
    """Tests for select_data_rate() and select_control_rate()."""

    def setUp(self):
        self.catalog = catalog_for_standard("802.11g")
        self.non_erp = tuple(m for m in self.catalog if not m.is_erp)

    def test_data_rate_follows_rate_index(self):
        state = _state_at(5)
        mode, index = select_data_rate(state, self.catalog)
        self.assertEqual(index, 5)
        self.assertIs(mode, self.catalog[5])

    def test_data_rate_reflects_latest_mutation(self):
        state = _state_at(5, FallbackMode.RECOVERY)
        state.on_data_failed()
        mode, index = select_data_rate(state, self.catalog)
        self.assertEqual(index, 4)
        self.assertIs(mode, self.catalog[4])

    def test_control_rate_is_lowest_entry(self):
        state = _state_at(7)
        self.assertIs(select_control_rate(state, self.catalog, self.non_erp), self.catalog[0])

    def test_control_rate_uses_non_erp_catalog_under_protection(self):
        state = _state_at(7)
        mode = select_control_rate(state, self.catalog, self.non_erp, use_non_erp_protection=True)
        self.assertIs(mode, self.non_erp[0])
        self.assertFalse(mode.is_erp)

    def test_control_rate_falls_back_without_non_erp_modes(self):
        state = _state_at(3)
        catalog = catalog_for_standard("802.11a")
        self.assertIs(select_control_rate(state, catalog, (), use_non_erp_protection=True), catalog[0])
