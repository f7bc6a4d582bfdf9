"""
WebSocket API for real-time order book updates.

This module streams a snapshot of every touched pool's book to all
connected clients after each order ingestion, and answers ping and
order book requests on the same connection.
"""
import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Set, Dict, Any, Optional, Sequence

import websockets
from websockets.asyncio.server import ServerConnection, serve

from ..core.notifications import NotificationChannel, PoolOrderbookSnapshot, snapshots_to_message
from ..core.orderbook_service import OrderBookService
from .validators import validate_book_request

logger = logging.getLogger(__name__)


class SubscriberRegistry:
    """
    Connected clients that receive book snapshots.

    Only touched from the event loop thread.
    """

    def __init__(self):
        self.subscribers: Set[Any] = set()

    def register(self, websocket) -> None:
        self.subscribers.add(websocket)

    def deregister(self, websocket) -> None:
        self.subscribers.discard(websocket)

    def count(self) -> int:
        return len(self.subscribers)

    async def broadcast(self, message: str) -> int:
        """
        Send a message to every subscriber.

        Subscribers whose send fails are dropped.

        Returns:
            Number of subscribers the message was delivered to
        """
        subscribers = list(self.subscribers)
        if not subscribers:
            return 0

        results = await asyncio.gather(
            *(websocket.send(message) for websocket in subscribers),
            return_exceptions=True
        )

        delivered = 0
        for websocket, result in zip(subscribers, results):
            if isinstance(result, Exception):
                logger.info(f"Dropping subscriber after failed send: {str(result)}")
                self.deregister(websocket)
            else:
                delivered += 1
        return delivered


class WebSocketNotificationChannel(NotificationChannel):
    """
    Publishes book snapshots to websocket subscribers.

    ``publish`` may be called from any thread. The broadcast is scheduled
    on the websocket event loop and never waited for.
    """

    def __init__(self, registry: SubscriberRegistry):
        self.registry = registry
        self.loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop

    def publish(self, snapshots: Sequence[PoolOrderbookSnapshot]) -> None:
        if self.loop is None or self.loop.is_closed():
            logger.debug("WebSocket loop not running, skipping book snapshot broadcast")
            return

        message = json.dumps(snapshots_to_message(snapshots))
        asyncio.run_coroutine_threadsafe(self.registry.broadcast(message), self.loop)


class WebSocketServer:
    """
    WebSocket server for real-time book streaming.

    Every connected client is subscribed to all book snapshots.
    """

    def __init__(
        self,
        orderbook_service: OrderBookService,
        registry: SubscriberRegistry,
        host: str = 'localhost',
        port: int = 8765,
        ping_interval: int = 20,
        ping_timeout: int = 10,
    ):
        """
        Initialize WebSocket server.

        Args:
            orderbook_service: Service answering get_orderbook requests
            registry: Subscribers receiving book snapshots
            host: Host to bind to
            port: Port to bind to
            ping_interval: Seconds between keepalive pings
            ping_timeout: Seconds to wait for a keepalive pong
        """
        self.orderbook_service = orderbook_service
        self.registry = registry
        self.host = host
        self.port = port
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout
        self._stop: Optional[asyncio.Future] = None

        logger.info(f"WebSocket server initialized on {host}:{port}")

    async def start(self, channel: Optional[WebSocketNotificationChannel] = None) -> None:
        """
        Start the WebSocket server and serve until ``stop`` is called.

        Args:
            channel: Notification channel to bind to this server's event loop
        """
        loop = asyncio.get_running_loop()
        if channel is not None:
            channel.bind_loop(loop)
        self._stop = loop.create_future()

        logger.info(f"Starting WebSocket server on {self.host}:{self.port}")

        async with serve(
            self._handle_client,
            self.host,
            self.port,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
            close_timeout=10
        ):
            await self._stop

    def stop(self) -> None:
        if self._stop is not None and not self._stop.done():
            self._stop.set_result(None)

    async def _handle_client(self, websocket: ServerConnection) -> None:
        """
        Handle new client connection.

        Args:
            websocket: WebSocket connection
        """
        client_address = f"{websocket.remote_address[0]}:{websocket.remote_address[1]}"
        logger.info(f"Client connected: {client_address}")

        self.registry.register(websocket)

        try:
            async for message in websocket:
                await self._handle_message(websocket, message)

        except websockets.exceptions.ConnectionClosed:
            logger.info(f"Client disconnected: {client_address}")
        except Exception as e:
            logger.error(f"Error handling client {client_address}: {str(e)}")
        finally:
            self.registry.deregister(websocket)

    async def _handle_message(self, websocket, message: str) -> None:
        """
        Handle message from client.

        Args:
            websocket: WebSocket connection
            message: Message from client
        """
        try:
            data = json.loads(message)
            if not isinstance(data, dict):
                await self._send_error(websocket, "Message must be a JSON object")
                return

            message_type = str(data.get('type', '')).lower()

            if message_type == 'ping':
                await self._handle_ping(websocket)
            elif message_type == 'get_orderbook':
                await self._handle_get_orderbook(websocket, data)
            else:
                await self._send_error(websocket, f"Unknown message type: {message_type}")

        except json.JSONDecodeError:
            await self._send_error(websocket, "Invalid JSON format")
        except Exception as e:
            logger.error(f"Error handling message: {str(e)}")
            await self._send_error(websocket, f"Error processing message: {str(e)}")

    async def _handle_ping(self, websocket) -> None:
        await self._send_message(websocket, {
            'type': 'pong',
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    async def _handle_get_orderbook(self, websocket, data: Dict[str, Any]) -> None:
        """Answer a book request for a token pair."""
        is_valid, error, params = validate_book_request(data)
        if not is_valid:
            await self._send_error(websocket, error)
            return

        # The service blocks on the database
        loop = asyncio.get_running_loop()
        book = await loop.run_in_executor(
            None,
            self.orderbook_service.get_order_book,
            params['page'],
            params['per_page'],
            params['base_token'],
            params['quote_token'],
        )

        await self._send_message(websocket, {
            'type': 'orderbook',
            'baseToken': params['base_token'],
            'quoteToken': params['quote_token'],
            **book.to_dict()
        })

    async def _send_message(self, websocket, message: Dict[str, Any]) -> None:
        try:
            await websocket.send(json.dumps(message))
        except websockets.exceptions.ConnectionClosed:
            logger.debug("Client connection closed while sending message")

    async def _send_error(self, websocket, error_message: str) -> None:
        await self._send_message(websocket, {
            'type': 'error',
            'message': error_message,
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    def get_client_count(self) -> int:
        return self.registry.count()
