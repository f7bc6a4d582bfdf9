"""
Core relayer components.

This module contains the order and offer data structures, the filter
expressions used to query the store, and the order book and offer
services built on top of them.
"""

from .order import SignedOrder, OrderMetaData, ApiOrder
from .order_types import OrderEventEndState, OfferKind, TERMINAL_ORDER_STATES
from .offer import OfferCreateContingentPool, OfferAddLiquidity, OfferRemoveLiquidity, OfferFilter
from .errors import ValidationError, OrderDecodeError, RecordDecodeError, ExpiredOrderError
from .pagination import PaginatedCollection
from .order_watcher import OrderWatcher, LocalOrderWatcher, OrderWatcherResult
from .pool_registry import PoolRegistry, StaticPoolRegistry, Web3PoolRegistry, PoolParameters, PoolNotFoundError
from .notifications import NotificationChannel, OrderbookResponse, PoolOrderbookSnapshot
from .orderbook_service import OrderBookService
from .offer_service import OfferService

__all__ = [
    "SignedOrder",
    "OrderMetaData",
    "ApiOrder",
    "OrderEventEndState",
    "OfferKind",
    "TERMINAL_ORDER_STATES",
    "OfferCreateContingentPool",
    "OfferAddLiquidity",
    "OfferRemoveLiquidity",
    "OfferFilter",
    "ValidationError",
    "OrderDecodeError",
    "RecordDecodeError",
    "ExpiredOrderError",
    "PaginatedCollection",
    "OrderWatcher",
    "LocalOrderWatcher",
    "OrderWatcherResult",
    "PoolRegistry",
    "StaticPoolRegistry",
    "Web3PoolRegistry",
    "PoolNotFoundError",
    "PoolParameters",
    "NotificationChannel",
    "OrderbookResponse",
    "PoolOrderbookSnapshot",
    "OrderBookService",
    "OfferService",
]
