"""
Liquidity offer service.

Stores the three offer kinds and answers filtered listings over them.
"""

import dataclasses
import logging
from typing import Dict, Optional

from ..storage.models import (
    OfferAddLiquidityEntity,
    OfferCreateContingentPoolEntity,
    OfferRemoveLiquidityEntity,
)
from ..storage.order_store import OrderStore
from ..utils.logger import get_audit_logger, log_offer_audit
from ..utils.performance import PerformanceMonitor, measure_latency
from .offer import OFFER_TYPES, Offer, OfferAddLiquidity, OfferFilter
from .order_types import OfferKind
from .pagination import PaginatedCollection, paginate
from .pool_registry import PoolRegistry

logger = logging.getLogger(__name__)

OFFER_ENTITIES: Dict[OfferKind, type] = {
    OfferKind.CREATE_CONTINGENT_POOL: OfferCreateContingentPoolEntity,
    OfferKind.ADD_LIQUIDITY: OfferAddLiquidityEntity,
    OfferKind.REMOVE_LIQUIDITY: OfferRemoveLiquidityEntity,
}


class OfferService:
    """Offer storage and matching for every offer kind."""

    def __init__(self, store: OrderStore, pool_registry: PoolRegistry,
                 performance_monitor: Optional[PerformanceMonitor] = None):
        self.store = store
        self.pool_registry = pool_registry
        self.performance_monitor = performance_monitor
        self._audit_logger = get_audit_logger()

    def list_offers(self, kind: OfferKind, offer_filter: OfferFilter,
                    page: int, per_page: int) -> PaginatedCollection[Offer]:
        """
        List offers of one kind matching every set filter field.

        Args:
            kind: Offer kind
            offer_filter: Filter, unset fields match anything
            page: 1-based page
            per_page: Page size
        """
        with measure_latency(self.performance_monitor, "list_offers"):
            offer_type = OFFER_TYPES[kind]
            records = self.store.find(OFFER_ENTITIES[kind], order_by_key=True)
            offers = [offer_type.from_record(record) for record in records]
            matching = [offer for offer in offers if offer_filter.matches(offer)]
            return paginate(matching, page, per_page)

    def get_offer_by_hash(self, kind: OfferKind, offer_hash: str) -> Optional[Offer]:
        record = self.store.find_one(OFFER_ENTITIES[kind], offer_hash)
        if record is None:
            return None
        return OFFER_TYPES[kind].from_record(record)

    def submit_offer(self, kind: OfferKind, offer: Offer) -> str:
        """
        Store a new offer.

        Add-liquidity offers take their pool attributes from the pool
        registry, whatever the maker submitted.

        Returns:
            The offer hash

        Raises:
            PoolNotFoundError: If an add-liquidity offer names an unknown pool
            sqlalchemy.exc.IntegrityError: If the offer hash is already stored
        """
        if not isinstance(offer, OFFER_TYPES[kind]):
            raise ValueError(f"Offer of type {type(offer).__name__} does not match kind {kind.value}")

        with measure_latency(self.performance_monitor, "submit_offer"):
            if isinstance(offer, OfferAddLiquidity):
                parameters = self.pool_registry.get_pool_parameters(
                    offer.pool_id, offer.chain_id, offer.verifying_contract
                )
                offer = dataclasses.replace(
                    offer,
                    reference_asset=parameters.reference_asset,
                    collateral_token=parameters.collateral_token,
                    data_provider=parameters.data_provider,
                )

            self.store.insert(OFFER_ENTITIES[kind], offer.to_record())

        log_offer_audit(self._audit_logger, kind.value, offer.to_dict())
        if self.performance_monitor is not None:
            self.performance_monitor.increment_counter("offers_submitted")
        logger.info(f"Stored {kind.value} offer {offer.offer_hash}")
        return offer.offer_hash
