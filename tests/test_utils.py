"""
Tests for the metrics and audit logging helpers.
"""

import logging
import os
import tempfile
import unittest

from relayer.utils.logger import AUDIT_LOGGER_NAME, create_audit_logger, log_order_audit
from relayer.utils.performance import PerformanceMonitor, measure_latency


class TestPerformanceMonitor(unittest.TestCase):
    """Test cases for latency samples and counters."""

    def test_metric_stats(self):
        """Test statistics over recorded samples."""
        monitor = PerformanceMonitor()
        for value in (1.0, 2.0, 3.0, 4.0):
            monitor.record_metric("op_latency_ms", value)

        stats = monitor.get_metric_stats("op_latency_ms")

        self.assertEqual(stats["min"], 1.0)
        self.assertEqual(stats["max"], 4.0)
        self.assertEqual(stats["avg"], 2.5)
        self.assertEqual(stats["count"], 4)
        self.assertEqual(monitor.get_metric_stats("unknown")["count"], 0)

    def test_samples_bounded(self):
        """Test old samples are discarded beyond max_samples."""
        monitor = PerformanceMonitor(max_samples=3)
        for value in range(10):
            monitor.record_metric("op", float(value))

        self.assertEqual(monitor.get_metric_stats("op")["min"], 7.0)

    def test_disabled_monitor_records_nothing(self):
        """Test a disabled monitor ignores samples and counters."""
        monitor = PerformanceMonitor(enabled=False)
        monitor.record_metric("op", 1.0)
        monitor.increment_counter("orders")

        self.assertEqual(monitor.get_metric_stats("op")["count"], 0)
        self.assertEqual(monitor.get_counter("orders"), 0)

    def test_measure_latency_and_reset(self):
        """Test measured operations are recorded and reset clears them."""
        monitor = PerformanceMonitor()
        with measure_latency(monitor, "lookup"):
            pass
        with measure_latency(None, "ignored"):
            pass
        monitor.increment_counter("orders", 3)

        summary = monitor.get_summary()
        self.assertIn("lookup_latency_ms", summary["metrics"])
        self.assertEqual(summary["counters"], {"orders": 3})
        self.assertIn("memory_rss_mb", summary["system"])

        monitor.reset()
        self.assertEqual(monitor.get_summary()["metrics"], {})
        self.assertEqual(monitor.get_counter("orders"), 0)


class TestAuditLogger(unittest.TestCase):
    """Test cases for the audit trail."""

    def setUp(self):
        """Set up an audit logger writing to a temporary file."""
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.log_file = os.path.join(self.tmp_dir.name, "audit", "audit.log")
        logging.getLogger(AUDIT_LOGGER_NAME).handlers.clear()
        self.audit_logger = create_audit_logger(self.log_file)

    def tearDown(self):
        for handler in list(self.audit_logger.handlers):
            handler.close()
            self.audit_logger.removeHandler(handler)
        self.tmp_dir.cleanup()

    def test_order_audit_record(self):
        """Test order audit records are pipe-delimited and kept out of the app log."""
        log_order_audit(self.audit_logger, "ACCEPT", {"orderHash": "0xabc", "poolId": "7"})
        for handler in self.audit_logger.handlers:
            handler.flush()

        with open(self.log_file) as f:
            line = f.read().strip()

        self.assertIn("ORDER_ACCEPT|HASH:0xabc|POOL:7|", line)
        self.assertIn("MAKER:N/A", line)
        self.assertFalse(self.audit_logger.propagate)


if __name__ == '__main__':
    unittest.main()
