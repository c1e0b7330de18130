"""Tests for station event listeners."""

import logging
import unittest

from wifirate import (
    ArfRateManager,
    LoggingStationListener,
    RateChange,
    RateTraceListener,
    RemoteStation,
    StationEventListener,
    catalog_for_standard,
)

PEER = "00:00:00:00:00:01"


class TestStationEventListenerDefaults(unittest.TestCase):
    """Default hooks do nothing and accept every event."""

    def test_default_hooks_are_noops(self):
        listener = StationEventListener()
        mode = catalog_for_standard("802.11a")[0]

        self.assertIsNone(listener.on_rate_change(PEER, 0, 6_000_000))
        self.assertIsNone(listener.on_rts_failed(PEER))
        self.assertIsNone(listener.on_rts_ok(PEER, 1.0, mode, 2.0))
        self.assertIsNone(listener.on_rx_ok(PEER, 1.0, mode))
        self.assertIsNone(listener.on_final_rts_failed(PEER))
        self.assertIsNone(listener.on_final_data_failed(PEER))


class TestLoggingStationListener(unittest.TestCase):
    """Tests for LoggingStationListener."""

    def setUp(self):
        self.manager = ArfRateManager(
            success_threshold=1,
            listeners=[LoggingStationListener(level=logging.INFO)],
        )
        self.manager.add_station(RemoteStation(PEER, catalog_for_standard("802.11a")))

    def test_logs_rate_changes(self):
        with self.assertLogs("wifirate._listeners", level=logging.INFO) as logs:
            self.manager.get_data_tx_vector(PEER)
            self.manager.report_data_ok(PEER)
            self.manager.get_data_tx_vector(PEER)

        self.assertEqual(len(logs.output), 2)
        self.assertIn(f"{PEER} | RATE | 0 b/s -> 6000000 b/s", logs.output[0])
        self.assertIn("6000000 b/s -> 9000000 b/s", logs.output[1])

    def test_logs_informational_events(self):
        mode = catalog_for_standard("802.11a")[0]

        with self.assertLogs("wifirate._listeners", level=logging.INFO) as logs:
            self.manager.report_rts_failed(PEER)
            self.manager.report_rts_ok(PEER, cts_snr=10.0, cts_mode=mode, rts_snr=11.5)
            self.manager.report_rx_ok(PEER, rx_snr=9.0, tx_mode=mode)
            self.manager.report_final_rts_failed(PEER)
            self.manager.report_final_data_failed(PEER)

        output = "\n".join(logs.output)
        self.assertIn("RTS  | failed", output)
        self.assertIn("cts_snr=10.00 cts_mode=OfdmRate6Mbps rts_snr=11.50", output)
        self.assertIn("RX   | ok snr=9.00 mode=OfdmRate6Mbps", output)
        self.assertIn("RTS  | retry budget exhausted", output)
        self.assertIn("DATA | retry budget exhausted", output)

    def test_custom_logger(self):
        custom = logging.getLogger("tests.custom_station_logger")
        listener = LoggingStationListener(level=logging.WARNING, log=custom)

        with self.assertLogs("tests.custom_station_logger", level=logging.WARNING) as logs:
            listener.on_rts_failed(PEER)

        self.assertEqual(len(logs.output), 1)
        self.assertTrue(logs.output[0].startswith("WARNING:tests.custom_station_logger:"))


class TestRateTraceListener(unittest.TestCase):
    """Tests for RateTraceListener."""

    def test_records_changes_in_order(self):
        trace = RateTraceListener()
        trace.on_rate_change("a", 0, 1_000_000)
        trace.on_rate_change("b", 1_000_000, 2_000_000)

        self.assertEqual(
            trace.changes,
            [RateChange("a", 0, 1_000_000), RateChange("b", 1_000_000, 2_000_000)],
        )
        self.assertEqual(trace.rates, [1_000_000, 2_000_000])

    def test_ignores_other_events(self):
        trace = RateTraceListener()
        trace.on_rts_failed(PEER)
        trace.on_final_data_failed(PEER)
        self.assertEqual(trace.changes, [])
