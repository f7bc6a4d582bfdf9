"""
Configuration module for the relayer.

This module provides configuration management and settings
for the order book relayer.
"""

from .settings import Settings, get_settings, reload_settings

__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
]
