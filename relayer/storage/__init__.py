"""
Durable storage for orders and offers.
"""

from .models import (
    Base,
    ActiveOrderEntity,
    PersistentOrderEntity,
    OfferCreateContingentPoolEntity,
    OfferAddLiquidityEntity,
    OfferRemoveLiquidityEntity,
)
from .order_store import OrderStore, compile_filter, create_store_engine

__all__ = [
    "Base",
    "ActiveOrderEntity",
    "PersistentOrderEntity",
    "OfferCreateContingentPoolEntity",
    "OfferAddLiquidityEntity",
    "OfferRemoveLiquidityEntity",
    "OrderStore",
    "compile_filter",
    "create_store_engine",
]
