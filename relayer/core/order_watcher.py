"""
Order watcher interface and a local in-process watcher.

The watcher owns the active order table: it decides whether a submitted
order is acceptable, adds it, and removes it once it reaches a terminal
state. The relayer only submits orders to it and reads the table back.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Sequence

from ..storage.models import ActiveOrderEntity, PersistentOrderEntity
from ..storage.order_store import OrderStore
from .order import SignedOrder, order_to_record
from .order_types import OrderEventEndState, is_terminal_state
from .order_utils import now_seconds

logger = logging.getLogger(__name__)

SIGNATURE_FIELDS = ("signatureType", "v", "r", "s")


@dataclass
class RejectedOrder:
    order_hash: str
    reason: str

    def to_dict(self):
        return {"orderHash": self.order_hash, "reason": self.reason}


@dataclass
class OrderWatcherResult:
    accepted: List[str] = field(default_factory=list)
    rejected: List[RejectedOrder] = field(default_factory=list)

    def to_dict(self):
        return {
            "accepted": list(self.accepted),
            "rejected": [rejected.to_dict() for rejected in self.rejected],
        }


class OrderWatcher(ABC):
    """Accepts orders into the active order table."""

    @abstractmethod
    def post_orders(self, orders: Sequence[SignedOrder]) -> OrderWatcherResult:
        """
        Submit orders for watching.

        Accepted orders are visible in the active order table once this
        returns.
        """


class LocalOrderWatcher(OrderWatcher):
    """
    In-process watcher writing straight into the order store.

    Checks only what can be checked without chain access: expiry and the
    shape of the signature. Fillability and signature validity are the
    concern of a chain-connected watcher.
    """

    def __init__(self, store: OrderStore, expiration_buffer_seconds: int, chunk_size: int):
        self.store = store
        self.expiration_buffer_seconds = expiration_buffer_seconds
        self.chunk_size = chunk_size

    def _rejection_reason(self, order: SignedOrder, now: int):
        if order.expiry <= now + self.expiration_buffer_seconds:
            return "ORDER_EXPIRED"
        if any(name not in order.signature for name in SIGNATURE_FIELDS):
            return "INVALID_SIGNATURE"
        return None

    def post_orders(self, orders: Sequence[SignedOrder]) -> OrderWatcherResult:
        result = OrderWatcherResult()
        records = []
        now = now_seconds()
        for order in orders:
            order_hash = order.get_hash()
            reason = self._rejection_reason(order, now)
            if reason:
                logger.info(f"Watcher rejected order {order_hash}: {reason}")
                result.rejected.append(RejectedOrder(order_hash, reason))
                continue
            records.append(order_to_record(order, OrderEventEndState.ADDED))
            result.accepted.append(order_hash)

        if records:
            self.store.save(ActiveOrderEntity, records, self.chunk_size)
        logger.info(f"Watcher accepted {len(result.accepted)} orders, rejected {len(result.rejected)}")
        return result

    def set_order_state(self, order_hash: str, state: OrderEventEndState) -> None:
        """
        Record a lifecycle change for an order.

        A terminal state removes the order from the active table and is
        mirrored onto its persistent copy, if one exists.
        """
        if is_terminal_state(state):
            self.store.update(PersistentOrderEntity, order_hash, {"order_state": state.value})
            self.store.delete(ActiveOrderEntity, [order_hash])
            logger.info(f"Order {order_hash} reached terminal state {state.value}")
        else:
            self.store.update(ActiveOrderEntity, order_hash, {"order_state": state.value})
