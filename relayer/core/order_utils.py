"""
Freshness checks and book ordering for stored orders.
"""

import logging
import time
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from .errors import ExpiredOrderError
from .order import ApiOrder

logger = logging.getLogger(__name__)


def now_seconds() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def is_fresh(api_order: ApiOrder, buffer_seconds: int, now: Optional[int] = None) -> bool:
    """
    Check whether an order is still fillable for at least ``buffer_seconds``.

    Args:
        api_order: Order to check
        buffer_seconds: Margin before expiry inside which the order counts as stale
        now: Unix time to check against, defaults to the current time

    Returns:
        True iff the order's expiry lies strictly after now + buffer
    """
    if now is None:
        now = now_seconds()
    return api_order.order.expiry > now + buffer_seconds


def group_by_freshness(
    api_orders: Iterable[ApiOrder],
    buffer_seconds: int,
    now: Optional[int] = None,
) -> Tuple[List[ApiOrder], List[ApiOrder]]:
    """
    Split orders into (fresh, expired), preserving input order.

    Every input order lands in exactly one of the two lists.
    """
    if now is None:
        now = now_seconds()
    fresh: List[ApiOrder] = []
    expired: List[ApiOrder] = []
    for api_order in api_orders:
        if is_fresh(api_order, buffer_seconds, now):
            fresh.append(api_order)
        else:
            expired.append(api_order)
    return fresh, expired


def bid_sort_key(api_order: ApiOrder) -> Tuple[Decimal, str]:
    """Best bid first: highest maker/taker ratio, then hash."""
    order = api_order.order
    return -(order.maker_amount / order.taker_amount), api_order.order_hash


def ask_sort_key(api_order: ApiOrder) -> Tuple[Decimal, str]:
    """Best ask first: lowest taker/maker ratio, then hash."""
    order = api_order.order
    return order.taker_amount / order.maker_amount, api_order.order_hash


def find_overdue_expired_order(
    expired: Iterable[ApiOrder],
    max_expiration_buffer_seconds: int,
    now: Optional[int] = None,
) -> Optional[ApiOrder]:
    """Return the first expired order whose expiry is beyond now + max buffer."""
    if now is None:
        now = now_seconds()
    limit = now + max_expiration_buffer_seconds
    for api_order in expired:
        if api_order.order.expiry > limit:
            return api_order
    return None


def log_error_on_expired_orders(
    expired: Iterable[ApiOrder],
    max_expiration_buffer_seconds: int,
    details: Optional[str] = None,
    now: Optional[int] = None,
) -> Optional[ExpiredOrderError]:
    """
    Log an error when the watcher has left an expired order in the store.

    Never raises; returns the logged error so callers can inspect it.
    """
    overdue = find_overdue_expired_order(expired, max_expiration_buffer_seconds, now)
    if overdue is None:
        return None
    error = ExpiredOrderError(
        overdue.order_hash,
        overdue.order.expiry,
        max_expiration_buffer_seconds,
        details,
    )
    logger.error(str(error))
    return error
