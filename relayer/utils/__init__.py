"""
Utility modules for the relayer.

This module provides logging, audit trail and operation metrics
helpers shared by the services and the API layer.
"""

from .logger import setup_logging, get_logger, create_audit_logger, get_audit_logger
from .performance import PerformanceMonitor, measure_latency

__all__ = [
    "setup_logging",
    "get_logger",
    "create_audit_logger",
    "get_audit_logger",
    "PerformanceMonitor",
    "measure_latency",
]
