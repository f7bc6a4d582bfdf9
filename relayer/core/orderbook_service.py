"""
Order book service.

Serves single-order lookups, two-sided books, filtered order queries and
order ingestion on top of the order store. The watcher decides which
submitted orders enter the active table; this service only reads that
table, promotes accepted orders to the persistent table on request, and
publishes book snapshots after every ingestion.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import ROUND_DOWN, Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..config.settings import Settings, get_settings
from ..storage import filters as f
from ..storage.models import ActiveOrderEntity, PersistentOrderEntity
from ..storage.order_store import OrderStore
from ..utils.logger import get_audit_logger, log_order_audit
from ..utils.performance import PerformanceMonitor, measure_latency
from .errors import ValidationError, ValidationErrorCodes, ValidationErrorItem, ValidationErrorReasons
from .notifications import NotificationChannel, NullNotificationChannel, OrderbookResponse, PoolOrderbookSnapshot
from .order import ApiOrder, SignedOrder, decode_order_record
from .order_types import DEFAULT_PAGE, DEFAULT_PER_PAGE, TERMINAL_ORDER_STATES
from .order_utils import (
    ask_sort_key,
    bid_sort_key,
    group_by_freshness,
    is_fresh,
    log_error_on_expired_orders,
    now_seconds,
)
from .order_watcher import OrderWatcher, OrderWatcherResult
from .pagination import PaginatedCollection, paginate, paginate_db_filters, paginate_serialize

logger = logging.getLogger(__name__)

TERMINAL_STATE_VALUES = tuple(sorted(state.value for state in TERMINAL_ORDER_STATES))


class OrderBookService:
    """
    Relayer order book.

    Each public method is an independent unit of work. Count and row
    queries that feed one response run concurrently on the service's
    worker pool and are joined before the response is built.
    """

    def __init__(
        self,
        store: OrderStore,
        order_watcher: OrderWatcher,
        notification_channel: Optional[NotificationChannel] = None,
        settings: Optional[Settings] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ):
        """
        Initialize the service.

        Args:
            store: Order store holding active and persistent orders
            order_watcher: Watcher that accepts submitted orders
            notification_channel: Where book snapshots are published
            settings: Relayer settings, the global settings when omitted
            performance_monitor: Optional latency and counter sink
            executor: Worker pool for concurrent sub-queries
        """
        settings = settings or get_settings()
        self.store = store
        self.order_watcher = order_watcher
        self.notification_channel = notification_channel or NullNotificationChannel()
        self.performance_monitor = performance_monitor
        self.expiration_buffer_seconds = settings.sra_order_expiration_buffer_seconds
        self.max_expiration_buffer_seconds = settings.max_order_expiration_buffer_seconds
        self.chunk_size = settings.db_orders_update_chunk_size
        self.persistent_order_api_keys = frozenset(settings.persistent_order_api_keys)
        self.fee_recipient_addresses = list(settings.fee_recipient_addresses)
        self.order_sender_address = settings.order_sender_address
        self.trading_fee = settings.trading_fee
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=settings.service_worker_threads,
            thread_name_prefix="orderbook",
        )
        self._order_columns = store.columns(ActiveOrderEntity)
        self._audit_logger = get_audit_logger()

        logger.info("Order book service initialized")

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _run_parallel(self, *calls: Callable[[], Any]) -> List[Any]:
        futures = [self._executor.submit(call) for call in calls]
        return [future.result() for future in futures]

    def is_allowed_persistent_orders(self, api_key: Optional[str]) -> bool:
        """Only allow-listed API keys may post persistent orders."""
        return bool(api_key) and api_key in self.persistent_order_api_keys

    def get_fee_recipients(self, page: int, per_page: int) -> PaginatedCollection[str]:
        return paginate(self.fee_recipient_addresses, page, per_page)

    def get_order_config(self, taker_amount: Decimal) -> Dict[str, str]:
        """
        Field values an order must carry for the relayer to charge its fee.

        Orders go to the first configured fee recipient. The taker fee is
        the trading fee share of the taker amount, rounded down to whole
        base units.
        """
        taker_fee = (taker_amount * self.trading_fee).to_integral_value(rounding=ROUND_DOWN)
        return {
            "feeRecipient": self.fee_recipient_addresses[0],
            "sender": self.order_sender_address,
            "takerTokenFeeAmount": str(taker_fee),
        }

    def get_order_by_hash(self, order_hash: str) -> Optional[ApiOrder]:
        """
        Look an order up by hash.

        Searches the active table first, then the persistent one.

        Returns:
            The order, or None if neither table has it
        """
        with measure_latency(self.performance_monitor, "get_order_by_hash"):
            record = self.store.find_one(ActiveOrderEntity, order_hash)
            if record is None:
                record = self.store.find_one(PersistentOrderEntity, order_hash)
            if record is None:
                return None
            return decode_order_record(record)

    def get_order_book(self, page: int, per_page: int, base_token: str, quote_token: str) -> OrderbookResponse:
        """
        Build both sides of the book for a token pair.

        Bids offer the quote token for the base token, asks the reverse.
        Only fresh orders are listed; bids best (highest) price first,
        asks best (lowest) price first, ties broken by hash.

        Args:
            page: 1-based page, applied to each side independently
            per_page: Page size
            base_token: Base token address
            quote_token: Quote token address
        """
        with measure_latency(self.performance_monitor, "get_order_book"):
            tokens = (base_token, quote_token)
            records = self.store.find(
                ActiveOrderEntity,
                f.and_(f.in_("taker_token", tokens), f.in_("maker_token", tokens)),
            )
            now = now_seconds()

            bid_orders = []
            ask_orders = []
            for record in records:
                if record["taker_token"] == base_token and record["maker_token"] == quote_token:
                    bid_orders.append(decode_order_record(record))
                elif record["taker_token"] == quote_token and record["maker_token"] == base_token:
                    ask_orders.append(decode_order_record(record))

            bids = sorted(
                (o for o in bid_orders if is_fresh(o, self.expiration_buffer_seconds, now)),
                key=bid_sort_key,
            )
            asks = sorted(
                (o for o in ask_orders if is_fresh(o, self.expiration_buffer_seconds, now)),
                key=ask_sort_key,
            )

            return OrderbookResponse(
                bids=paginate(bids, page, per_page),
                asks=paginate(asks, page, per_page),
            )

    def _build_order_filters(self, order_field_filters: Mapping[str, Any], trader: Optional[str]) -> List[f.And]:
        # Keys that are not order columns are dropped
        known = {name: value for name, value in order_field_filters.items()
                 if name in self._order_columns and value is not None}
        if trader:
            return [
                f.from_field_filters({**known, "maker": trader}),
                f.from_field_filters({**known, "taker": trader}),
            ]
        return [f.from_field_filters(known)]

    def get_orders(
        self,
        page: int,
        per_page: int,
        order_field_filters: Mapping[str, Any],
        is_unfillable: Optional[bool] = None,
        trader: Optional[str] = None,
    ) -> PaginatedCollection[ApiOrder]:
        """
        Query orders by field values.

        Args:
            page: 1-based page
            per_page: Page size
            order_field_filters: Column name -> required value
            is_unfillable: Also return persistent orders in a terminal state
            trader: Match orders where this address is maker or taker

        Returns:
            Active matches followed by persistent matches, with the summed total

        Raises:
            ValidationError: If is_unfillable is requested without a maker filter
        """
        if is_unfillable is True and order_field_filters.get("maker") is None:
            raise ValidationError([
                ValidationErrorItem(
                    field="maker",
                    code=ValidationErrorCodes.REQUIRED_FIELD,
                    reason=ValidationErrorReasons.UNFILLABLE_REQUIRES_MAKER_ADDRESS.value,
                )
            ])

        with measure_latency(self.performance_monitor, "get_orders"):
            filters = self._build_order_filters(order_field_filters, trader)
            db_filters = paginate_db_filters(page, per_page)

            min_expiry = now_seconds() + self.expiration_buffer_seconds
            active_where = f.or_(*(f.and_(clause, f.gte("expiry", min_expiry)) for clause in filters))
            active_count, active_records = self._run_parallel(
                lambda: self.store.count(ActiveOrderEntity, active_where),
                lambda: self.store.find(
                    ActiveOrderEntity, active_where,
                    order_by_key=True, skip=db_filters.skip, take=db_filters.take,
                ),
            )
            api_orders = [decode_order_record(record) for record in active_records]

            persistent_count = 0
            persistent_orders: List[ApiOrder] = []
            if is_unfillable is True:
                persistent_where = f.or_(
                    *(f.and_(clause, f.in_("order_state", TERMINAL_STATE_VALUES)) for clause in filters)
                )
                persistent_count, persistent_records = self._run_parallel(
                    lambda: self.store.count(PersistentOrderEntity, persistent_where),
                    lambda: self.store.find(
                        PersistentOrderEntity, persistent_where,
                        order_by_key=True, skip=db_filters.skip, take=db_filters.take,
                    ),
                )
                persistent_orders = [decode_order_record(record) for record in persistent_records]

            # Each source is paged on its own, so pages can overlap or gap
            # where the active results end and the persistent ones begin.
            return paginate_serialize(
                api_orders + persistent_orders,
                active_count + persistent_count,
                page,
                per_page,
            )

    def get_batch_orders(
        self,
        page: int,
        per_page: int,
        maker_tokens: Sequence[str],
        taker_tokens: Sequence[str],
    ) -> PaginatedCollection[ApiOrder]:
        """Fresh active orders trading any of the maker tokens for any of the taker tokens."""
        with measure_latency(self.performance_monitor, "get_batch_orders"):
            records = self.store.find(
                ActiveOrderEntity,
                f.and_(f.in_("maker_token", maker_tokens), f.in_("taker_token", taker_tokens)),
            )
            api_orders = [decode_order_record(record) for record in records]

            fresh, expired = group_by_freshness(api_orders, self.expiration_buffer_seconds)
            log_error_on_expired_orders(expired, self.max_expiration_buffer_seconds)

            return paginate(fresh, page, per_page)

    def _find_by_hashes(self, entity, order_hashes: Sequence[str]) -> List[Dict[str, Any]]:
        records = []
        for start in range(0, len(order_hashes), self.chunk_size):
            chunk = order_hashes[start:start + self.chunk_size]
            records.extend(self.store.find(entity, f.in_("hash", chunk)))
        return records

    def get_order_prices(self, order_hashes: Sequence[str]) -> List[Dict[str, str]]:
        """
        Price of each known order, in request order.

        The price is maker amount per taker amount. Unknown hashes are skipped.
        """
        order_hashes = list(dict.fromkeys(order_hashes))
        active, persistent = self._run_parallel(
            lambda: self._find_by_hashes(ActiveOrderEntity, order_hashes),
            lambda: self._find_by_hashes(PersistentOrderEntity, order_hashes),
        )
        by_hash = {record["hash"]: record for record in persistent}
        by_hash.update({record["hash"]: record for record in active})

        prices = []
        for order_hash in order_hashes:
            record = by_hash.get(order_hash)
            if record is None:
                continue
            api_order = decode_order_record(record)
            prices.append({
                "orderHash": order_hash,
                "makerToken": api_order.order.maker_token,
                "takerToken": api_order.order.taker_token,
                "price": str(api_order.order.price),
            })
        return prices

    def add_order(self, order: SignedOrder) -> OrderWatcherResult:
        return self.add_orders([order])

    def add_orders(self, orders: Sequence[SignedOrder]) -> OrderWatcherResult:
        """
        Submit orders to the watcher and publish the touched pools' books.

        Returns:
            The watcher's accept/reject result
        """
        with measure_latency(self.performance_monitor, "add_orders"):
            result = self._submit(orders)
            self._publish_pool_snapshots(orders)
            return result

    def add_persistent_orders(self, orders: Sequence[SignedOrder]) -> OrderWatcherResult:
        """
        Submit orders and keep a durable copy of those the watcher accepted.

        The copy is written in chunks; a failing chunk leaves earlier chunks
        in place.
        """
        with measure_latency(self.performance_monitor, "add_persistent_orders"):
            result = self._submit(orders)
            self._publish_pool_snapshots(orders)

            # Accepted orders are the ones now present in the active table
            order_hashes = list(dict.fromkeys(order.get_hash() for order in orders))
            added = self._find_by_hashes(ActiveOrderEntity, order_hashes)
            if added:
                self.store.save(PersistentOrderEntity, added, self.chunk_size)
            for record in added:
                self._audit_logger.info(f"ORDER_PERSIST|HASH:{record['hash']}|POOL:{record['pool_id']}")
            self._count_many("orders_persisted", len(added))
            logger.info(f"Persisted {len(added)} of {len(orders)} submitted orders")
            return result

    def _count_many(self, name: str, value: int) -> None:
        if self.performance_monitor is not None and value:
            self.performance_monitor.increment_counter(name, value)

    def _submit(self, orders: Sequence[SignedOrder]) -> OrderWatcherResult:
        result = self.order_watcher.post_orders(orders)

        orders_by_hash = {order.get_hash(): order for order in orders}
        for order_hash in result.accepted:
            order = orders_by_hash.get(order_hash)
            if order is not None:
                log_order_audit(self._audit_logger, "ACCEPT", {**order.to_dict(), "orderHash": order_hash})
        for rejected in result.rejected:
            order = orders_by_hash.get(rejected.order_hash)
            if order is not None:
                log_order_audit(self._audit_logger, "REJECT", {**order.to_dict(), "orderHash": rejected.order_hash})

        self._count_many("orders_submitted", len(orders))
        self._count_many("orders_accepted", len(result.accepted))
        return result

    def build_pool_snapshots(self, orders: Sequence[SignedOrder]) -> List[PoolOrderbookSnapshot]:
        """Both book orientations for every distinct pool in ``orders``, once per pool."""
        snapshots = []
        seen_pools = set()
        for order in orders:
            if order.pool_id in seen_pools:
                continue
            seen_pools.add(order.pool_id)
            snapshots.append(PoolOrderbookSnapshot(
                pool_id=order.pool_id,
                first=self.get_order_book(DEFAULT_PAGE, DEFAULT_PER_PAGE, order.maker_token, order.taker_token),
                second=self.get_order_book(DEFAULT_PAGE, DEFAULT_PER_PAGE, order.taker_token, order.maker_token),
            ))
        return snapshots

    def _publish_pool_snapshots(self, orders: Sequence[SignedOrder]) -> None:
        if not orders:
            return
        snapshots = self.build_pool_snapshots(orders)
        try:
            self.notification_channel.publish(snapshots)
        except Exception as e:
            logger.error(f"Error publishing book snapshots: {str(e)}")
