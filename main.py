#!/usr/bin/env python3
"""
Main entry point for the order book relayer.

This script wires the order store, watcher and services together and
starts both the REST API and WebSocket servers.
"""

import asyncio
import signal
import sys
import threading
import time

from relayer.api.rest_api import create_app
from relayer.api.websocket_api import SubscriberRegistry, WebSocketNotificationChannel, WebSocketServer
from relayer.config.settings import get_settings
from relayer.core.offer_service import OfferService
from relayer.core.order_watcher import LocalOrderWatcher
from relayer.core.orderbook_service import OrderBookService
from relayer.core.pool_registry import PoolRegistry, StaticPoolRegistry, Web3PoolRegistry
from relayer.storage.order_store import OrderStore
from relayer.utils.logger import create_audit_logger, get_logger, setup_logging
from relayer.utils.performance import PerformanceMonitor

logger = get_logger(__name__)


class RelayerServer:
    """
    Main server class that manages both REST and WebSocket servers.
    """

    def __init__(self):
        """Initialize the server."""
        self.settings = get_settings()

        # Setup logging
        setup_logging(
            level=self.settings.log_level,
            log_file=self.settings.log_file
        )
        create_audit_logger(self.settings.audit_log_file)

        self.performance_monitor = PerformanceMonitor(enabled=self.settings.enable_performance_monitoring)
        self.store = OrderStore.from_url(self.settings.database_url)
        self.order_watcher = LocalOrderWatcher(
            self.store,
            expiration_buffer_seconds=self.settings.sra_order_expiration_buffer_seconds,
            chunk_size=self.settings.db_orders_update_chunk_size
        )
        self.registry = SubscriberRegistry()
        self.notification_channel = WebSocketNotificationChannel(self.registry)

        self.orderbook_service = OrderBookService(
            self.store,
            self.order_watcher,
            notification_channel=self.notification_channel,
            settings=self.settings,
            performance_monitor=self.performance_monitor
        )
        self.offer_service = OfferService(
            self.store,
            self._create_pool_registry(),
            performance_monitor=self.performance_monitor
        )

        self.rest_app = None
        self.websocket_server = None
        self.rest_thread = None

        logger.info("Relayer server initialized")

    def _create_pool_registry(self) -> PoolRegistry:
        """Read pools from the protocol contract when RPC endpoints are configured."""
        if self.settings.chain_rpc_urls:
            return Web3PoolRegistry.from_settings(self.settings)

        logger.warning("CHAIN_RPC_URLS not set, add-liquidity offers will be rejected")
        return StaticPoolRegistry()

    def start(self) -> None:
        """Start both REST and WebSocket servers."""
        try:
            logger.info("Starting relayer server...")

            # Start REST API server in a separate thread
            self._start_rest_server()

            # Start WebSocket server in the main thread
            self._start_websocket_server()

        except KeyboardInterrupt:
            logger.info("Received interrupt signal, shutting down...")
        except Exception as e:
            logger.error(f"Error starting server: {str(e)}")
            sys.exit(1)
        finally:
            self.stop()

    def _start_rest_server(self) -> None:
        """Start REST API server in a separate thread."""
        self.rest_app = create_app(
            self.orderbook_service,
            self.offer_service,
            settings=self.settings,
            performance_monitor=self.performance_monitor
        )

        def run_rest_server():
            try:
                logger.info(f"Starting REST API server on {self.settings.rest_host}:{self.settings.rest_port}")
                self.rest_app.run(
                    host=self.settings.rest_host,
                    port=self.settings.rest_port,
                    debug=self.settings.debug,
                    use_reloader=False  # Disable reloader in production
                )
            except Exception as e:
                logger.error(f"Error starting REST server: {str(e)}")

        self.rest_thread = threading.Thread(target=run_rest_server, daemon=True)
        self.rest_thread.start()

        # Give the server time to start
        time.sleep(1)

    def _start_websocket_server(self) -> None:
        """Start WebSocket server on the main thread's event loop."""
        self.websocket_server = WebSocketServer(
            self.orderbook_service,
            self.registry,
            host=self.settings.websocket_host,
            port=self.settings.websocket_port,
            ping_interval=self.settings.websocket_ping_interval,
            ping_timeout=self.settings.websocket_ping_timeout
        )

        asyncio.run(self.websocket_server.start(self.notification_channel))

    def stop(self) -> None:
        """Stop the server."""
        logger.info("Stopping relayer server...")

        # The REST thread is a daemon and exits with the process
        self.orderbook_service.close()
        self.store.engine.dispose()

        logger.info("Server stopped")


def signal_handler(signum, frame):
    """Handle shutdown signals."""
    logger.info(f"Received signal {signum}, shutting down...")
    raise KeyboardInterrupt


def main():
    """Main entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        server = RelayerServer()
        server.start()

    except Exception as e:
        logger.error(f"Fatal error: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
