"""
API layer for the order book relayer.

This module provides the REST API for order and offer queries and
submission, and the WebSocket API streaming book snapshots.
"""

from .rest_api import create_app
from .websocket_api import WebSocketServer, SubscriberRegistry, WebSocketNotificationChannel

__all__ = [
    "create_app",
    "WebSocketServer",
    "SubscriberRegistry",
    "WebSocketNotificationChannel",
]
