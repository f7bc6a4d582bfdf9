"""
Book change notifications.

After orders are ingested the order book service publishes a snapshot of
every touched pool's book. Delivery is best-effort and never blocks the
request that triggered it.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from .order import ApiOrder
from .pagination import PaginatedCollection

logger = logging.getLogger(__name__)


@dataclass
class OrderbookResponse:
    bids: PaginatedCollection[ApiOrder]
    asks: PaginatedCollection[ApiOrder]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bids": self.bids.to_dict(),
            "asks": self.asks.to_dict(),
        }


@dataclass
class PoolOrderbookSnapshot:
    """Both orientations of one pool's book."""

    pool_id: str
    first: OrderbookResponse
    second: OrderbookResponse

    def to_dict(self) -> Dict[str, Any]:
        return {
            "poolId": self.pool_id,
            "first": self.first.to_dict(),
            "second": self.second.to_dict(),
        }


def snapshots_to_message(snapshots: Sequence[PoolOrderbookSnapshot]) -> List[Dict[str, Any]]:
    return [snapshot.to_dict() for snapshot in snapshots]


class NotificationChannel(ABC):

    @abstractmethod
    def publish(self, snapshots: Sequence[PoolOrderbookSnapshot]) -> None:
        """Hand snapshots to subscribers without waiting for delivery."""


class NullNotificationChannel(NotificationChannel):
    """Channel with no subscribers, for deployments without a push feed."""

    def publish(self, snapshots: Sequence[PoolOrderbookSnapshot]) -> None:
        logger.debug(f"Dropping {len(snapshots)} book snapshots, no notification channel configured")
