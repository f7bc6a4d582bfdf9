"""
Tests for signed orders and stored-record decoding.
"""

import json
import unittest
from decimal import Decimal

from relayer.core.errors import OrderDecodeError
from relayer.core.order import SignedOrder, decode_order_record, order_to_record
from relayer.core.order_types import NULL_ADDRESS, OrderEventEndState

from tests.factories import MAKER, TOKEN_A, TOKEN_B, VALID_SIGNATURE, make_order


class TestSignedOrder(unittest.TestCase):
    """Test cases for signed order validation and wire format."""

    def test_amounts_are_parsed(self):
        """Test string amounts are converted to Decimal."""
        order = make_order(maker_amount="250", taker_amount="125")
        self.assertEqual(order.maker_amount, Decimal("250"))
        self.assertEqual(order.price, Decimal("2"))

    def test_invalid_orders_rejected(self):
        """Test that malformed orders raise ValueError."""
        with self.assertRaises(ValueError):
            make_order(taker_token=TOKEN_A)
        with self.assertRaises(ValueError):
            make_order(maker_amount=Decimal("0"))
        with self.assertRaises(ValueError):
            make_order(taker_amount="1.5")
        with self.assertRaises(ValueError):
            make_order(maker="")

    def test_hash_is_stable(self):
        """Test the same terms produce the same hash and a new salt a new one."""
        expiry = 2000000000
        first = make_order(expiry=expiry)
        second = make_order(expiry=expiry)
        third = make_order(expiry=expiry, salt="2")

        self.assertEqual(first.get_hash(), second.get_hash())
        self.assertNotEqual(first.get_hash(), third.get_hash())
        self.assertTrue(first.get_hash().startswith("0x"))
        self.assertEqual(len(first.get_hash()), 66)

    def test_wire_round_trip(self):
        """Test to_dict output is accepted by from_dict."""
        order = make_order()
        data = order.to_dict()

        self.assertEqual(data["makerAmount"], "100")
        self.assertEqual(data["taker"], NULL_ADDRESS)
        self.assertEqual(SignedOrder.from_dict(data).get_hash(), order.get_hash())

    def test_from_dict_missing_fields(self):
        """Test from_dict names missing fields."""
        data = make_order().to_dict()
        del data["poolId"]
        del data["salt"]

        with self.assertRaises(ValueError) as ctx:
            SignedOrder.from_dict(data)
        self.assertIn("poolId", str(ctx.exception))
        self.assertIn("salt", str(ctx.exception))

    def test_from_dict_accepts_signature_string(self):
        """Test a JSON-encoded signature is accepted."""
        data = make_order().to_dict()
        data["signature"] = json.dumps(VALID_SIGNATURE)

        order = SignedOrder.from_dict(data)
        self.assertEqual(order.signature, VALID_SIGNATURE)


class TestOrderRecordDecoding(unittest.TestCase):
    """Test cases for decoding stored order rows."""

    def test_decode_record(self):
        """Test a stored row decodes into the public order shape."""
        order = make_order()
        record = order_to_record(order, OrderEventEndState.ADDED)

        api_order = decode_order_record(record)

        self.assertEqual(api_order.order_hash, order.get_hash())
        self.assertEqual(api_order.order.maker, MAKER)
        self.assertEqual(api_order.order.taker_token, TOKEN_B)
        self.assertEqual(api_order.order.signature, VALID_SIGNATURE)
        self.assertEqual(api_order.meta_data.state, OrderEventEndState.ADDED)
        self.assertEqual(api_order.meta_data.remaining_fillable_taker_amount, Decimal("50"))

        data = api_order.to_dict()
        self.assertEqual(set(data), {"order", "metaData"})
        self.assertEqual(data["metaData"]["orderHash"], order.get_hash())

    def test_missing_field_raises(self):
        """Test a row missing a required field raises OrderDecodeError naming it."""
        record = order_to_record(make_order())
        del record["maker_amount"]

        with self.assertRaises(OrderDecodeError) as ctx:
            decode_order_record(record)
        self.assertEqual(ctx.exception.field, "maker_amount")

    def test_null_field_raises(self):
        """Test a NULL column is treated as missing."""
        record = order_to_record(make_order())
        record["pool_id"] = None

        with self.assertRaises(OrderDecodeError) as ctx:
            decode_order_record(record)
        self.assertEqual(ctx.exception.field, "pool_id")

    def test_unknown_state_raises(self):
        """Test an unknown order state is a decode error."""
        record = order_to_record(make_order())
        record["order_state"] = "SOMETHING_ELSE"

        with self.assertRaises(OrderDecodeError):
            decode_order_record(record)


if __name__ == '__main__':
    unittest.main()
