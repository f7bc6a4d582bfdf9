"""
Tests for liquidity offer storage and matching.
"""

import unittest

from sqlalchemy.exc import IntegrityError

from relayer.core.errors import RecordDecodeError
from relayer.core.offer import OfferAddLiquidity, OfferCreateContingentPool, OfferFilter
from relayer.core.offer_service import OFFER_ENTITIES, OfferService
from relayer.core.order_types import OfferKind
from relayer.core.pool_registry import PoolNotFoundError, PoolParameters, StaticPoolRegistry
from relayer.storage.order_store import OrderStore

from tests.factories import (
    DATA_PROVIDER,
    MAKER,
    OTHER_MAKER,
    TOKEN_A,
    add_liquidity_offer,
    create_pool_offer,
    remove_liquidity_offer,
)


class TestOfferService(unittest.TestCase):
    """Test cases for offer submission and listing."""

    def setUp(self):
        """Set up an in-memory store and a registry with one pool."""
        self.store = OrderStore.from_url("sqlite://")
        self.registry = StaticPoolRegistry()
        self.registry.register_pool(1, "5", PoolParameters(
            reference_asset="ETH/USD",
            collateral_token=TOKEN_A,
            data_provider=DATA_PROVIDER,
        ))
        self.service = OfferService(self.store, self.registry)

    def tearDown(self):
        self.store.engine.dispose()

    def test_submit_and_get(self):
        """Test a submitted offer is returned by hash."""
        offer = create_pool_offer("0x01")

        offer_hash = self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, offer)

        self.assertEqual(offer_hash, "0x01")
        self.assertEqual(self.service.get_offer_by_hash(OfferKind.CREATE_CONTINGENT_POOL, "0x01"), offer)
        self.assertIsNone(self.service.get_offer_by_hash(OfferKind.ADD_LIQUIDITY, "0x01"))

    def test_duplicate_hash_rejected(self):
        """Test a second offer with the same hash fails."""
        self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, create_pool_offer("0x01"))

        with self.assertRaises(IntegrityError):
            self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, create_pool_offer("0x01"))

    def test_kind_mismatch_rejected(self):
        """Test an offer submitted under the wrong kind fails."""
        with self.assertRaises(ValueError):
            self.service.submit_offer(OfferKind.ADD_LIQUIDITY, create_pool_offer("0x01"))

    def test_add_liquidity_uses_registry(self):
        """Test pool attributes are overwritten from the registry."""
        self.service.submit_offer(OfferKind.ADD_LIQUIDITY, add_liquidity_offer("0x02"))

        stored = self.service.get_offer_by_hash(OfferKind.ADD_LIQUIDITY, "0x02")

        self.assertEqual(stored.reference_asset, "ETH/USD")
        self.assertEqual(stored.collateral_token, TOKEN_A)
        self.assertEqual(stored.data_provider, DATA_PROVIDER)

    def test_add_liquidity_unknown_pool(self):
        """Test an unknown pool fails and nothing is stored."""
        with self.assertRaises(PoolNotFoundError):
            self.service.submit_offer(OfferKind.ADD_LIQUIDITY, add_liquidity_offer("0x02", pool_id="99"))

        self.assertIsNone(self.service.get_offer_by_hash(OfferKind.ADD_LIQUIDITY, "0x02"))

    def test_empty_filter_returns_everything(self):
        """Test a filter with no fields set matches every offer."""
        for i in range(3):
            self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, create_pool_offer(f"0x0{i}"))

        result = self.service.list_offers(OfferKind.CREATE_CONTINGENT_POOL, OfferFilter(), 1, 10)

        self.assertEqual(result.total, 3)
        self.assertEqual([o.offer_hash for o in result.records], ["0x00", "0x01", "0x02"])

    def test_filters_combine_with_and(self):
        """Test every set field must match."""
        self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, create_pool_offer("0x01"))
        self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL,
                                  create_pool_offer("0x02", maker_direction="short"))
        self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL,
                                  create_pool_offer("0x03", maker=OTHER_MAKER))

        result = self.service.list_offers(
            OfferKind.CREATE_CONTINGENT_POOL,
            OfferFilter(maker=MAKER, maker_direction="long"),
            1, 10
        )

        self.assertEqual([o.offer_hash for o in result.records], ["0x01"])

    def test_address_filters_ignore_case(self):
        """Test address fields compare case-insensitively, text fields exactly."""
        self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, create_pool_offer("0x01"))

        by_address = self.service.list_offers(
            OfferKind.CREATE_CONTINGENT_POOL, OfferFilter(collateral_token=TOKEN_A.upper()), 1, 10
        )
        by_text = self.service.list_offers(
            OfferKind.CREATE_CONTINGENT_POOL, OfferFilter(reference_asset="eth/usd"), 1, 10
        )

        self.assertEqual(by_address.total, 1)
        self.assertEqual(by_text.total, 0)

    def test_pool_id_filter(self):
        """Test liquidity offers filter by pool id."""
        self.service.submit_offer(OfferKind.REMOVE_LIQUIDITY, remove_liquidity_offer("0x01"))
        self.service.submit_offer(OfferKind.REMOVE_LIQUIDITY, remove_liquidity_offer("0x02", pool_id="6"))

        result = self.service.list_offers(OfferKind.REMOVE_LIQUIDITY, OfferFilter(pool_id="6"), 1, 10)

        self.assertEqual([o.offer_hash for o in result.records], ["0x02"])

    def test_pool_id_ignored_for_create_pool(self):
        """Test create-pool offers, which have no pool id, ignore that filter."""
        self.service.submit_offer(OfferKind.CREATE_CONTINGENT_POOL, create_pool_offer("0x01"))

        result = self.service.list_offers(OfferKind.CREATE_CONTINGENT_POOL, OfferFilter(pool_id="6"), 1, 10)

        self.assertEqual(result.total, 1)

    def test_incomplete_record_raises(self):
        """Test a stored row missing a required field fails to decode."""
        record = remove_liquidity_offer("0x01").to_record()
        record["reference_asset"] = None
        self.store.insert(OFFER_ENTITIES[OfferKind.REMOVE_LIQUIDITY], record)

        with self.assertRaises(RecordDecodeError) as ctx:
            self.service.get_offer_by_hash(OfferKind.REMOVE_LIQUIDITY, "0x01")
        self.assertEqual(ctx.exception.field, "reference_asset")


class TestOfferWireFormat(unittest.TestCase):
    """Test cases for offer wire conversion."""

    def test_wire_names(self):
        """Test wire names are camelCase with the token override."""
        data = create_pool_offer("0x01").to_dict()

        self.assertIn("permissionedERC721Token", data)
        self.assertIn("makerCollateralAmount", data)
        self.assertEqual(OfferCreateContingentPool.from_dict(data), create_pool_offer("0x01"))

    def test_missing_required_field(self):
        """Test from_dict names missing fields."""
        data = add_liquidity_offer("0x01").to_dict()
        del data["poolId"]

        with self.assertRaises(ValueError) as ctx:
            OfferAddLiquidity.from_dict(data)
        self.assertIn("poolId", str(ctx.exception))


if __name__ == '__main__':
    unittest.main()
