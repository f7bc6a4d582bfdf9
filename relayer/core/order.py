"""
Signed order data structures for the relayer.

This module defines the signed limit order a maker submits, the metadata
the relayer attaches to it, and the explicit decoding step that turns a
stored row back into the public order shape.
"""

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional, Dict, Any, Mapping

from .errors import OrderDecodeError
from .order_types import OrderEventEndState, NULL_ADDRESS

# Order fields as (attribute, wire name), in signing order
ORDER_FIELDS = (
    ("maker_token", "makerToken"),
    ("taker_token", "takerToken"),
    ("maker_amount", "makerAmount"),
    ("taker_amount", "takerAmount"),
    ("taker_token_fee_amount", "takerTokenFeeAmount"),
    ("maker", "maker"),
    ("taker", "taker"),
    ("sender", "sender"),
    ("fee_recipient", "feeRecipient"),
    ("pool_id", "poolId"),
    ("expiry", "expiry"),
    ("salt", "salt"),
    ("chain_id", "chainId"),
    ("verifying_contract", "verifyingContract"),
)

REQUIRED_WIRE_FIELDS = (
    "makerToken", "takerToken", "makerAmount", "takerAmount", "maker",
    "poolId", "expiry", "salt", "chainId", "verifyingContract", "signature",
)

# Columns a stored row must carry to be decoded
REQUIRED_RECORD_FIELDS = (
    "hash", "maker_token", "taker_token", "maker_amount", "taker_amount",
    "taker_token_fee_amount", "maker", "taker", "sender", "fee_recipient",
    "pool_id", "expiry", "salt", "chain_id", "verifying_contract", "signature",
    "remaining_fillable_taker_amount", "order_state",
)

AMOUNT_FIELDS = ("maker_amount", "taker_amount", "taker_token_fee_amount")


def _parse_amount(value: Any, name: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValueError(f"Invalid {name}: {value}")
    if not amount.is_finite() or amount < 0 or amount != amount.to_integral_value():
        raise ValueError(f"{name} must be a non-negative integer, got: {value}")
    return amount


def _format_amount(amount: Decimal) -> str:
    return str(amount.quantize(Decimal(1)))


@dataclass
class SignedOrder:
    """
    A limit order signed off-chain by its maker.

    The relayer only stores and ranks these; it never fills them.
    Amounts are token base units held as integral Decimals.
    """

    maker_token: str = ""
    taker_token: str = ""
    maker_amount: Decimal = Decimal('0')
    taker_amount: Decimal = Decimal('0')
    maker: str = ""
    pool_id: str = ""
    expiry: int = 0
    salt: str = ""
    chain_id: int = 1
    verifying_contract: str = ""
    signature: Dict[str, Any] = field(default_factory=dict)
    taker: str = NULL_ADDRESS
    sender: str = NULL_ADDRESS
    fee_recipient: str = NULL_ADDRESS
    taker_token_fee_amount: Decimal = Decimal('0')

    def __post_init__(self):
        """Validate order after initialization."""
        self._validate()

    def _validate(self) -> None:
        """
        Validate order parameters.

        Raises:
            ValueError: If order parameters are invalid
        """
        if not self.maker_token or not self.taker_token:
            raise ValueError("Maker and taker tokens cannot be empty")

        if self.maker_token == self.taker_token:
            raise ValueError("Maker and taker tokens must differ")

        if not self.maker:
            raise ValueError("Maker cannot be empty")

        for name in AMOUNT_FIELDS:
            setattr(self, name, _parse_amount(getattr(self, name), name))

        if self.maker_amount <= 0 or self.taker_amount <= 0:
            raise ValueError("Maker and taker amounts must be positive")

        if self.expiry < 0:
            raise ValueError(f"Expiry cannot be negative, got: {self.expiry}")

    @property
    def price(self) -> Decimal:
        """Maker tokens offered per taker token."""
        return self.maker_amount / self.taker_amount

    def get_hash(self) -> str:
        """
        Content hash identifying this order.

        Derived from every signable field, so two orders with the same
        terms and salt always share a hash.
        """
        payload = {wire: self._wire_value(attr) for attr, wire in ORDER_FIELDS}
        digest = hashlib.sha256(json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8"))
        return "0x" + digest.hexdigest()

    def _wire_value(self, attr: str) -> Any:
        value = getattr(self, attr)
        if attr in AMOUNT_FIELDS:
            return _format_amount(value)
        if attr == "expiry":
            return str(value)
        return value

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to its wire representation."""
        data = {wire: self._wire_value(attr) for attr, wire in ORDER_FIELDS}
        data["signature"] = self.signature
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SignedOrder':
        """
        Create order from its wire representation.

        Raises:
            ValueError: If a required field is missing or malformed
        """
        missing = [name for name in REQUIRED_WIRE_FIELDS if data.get(name) in (None, "")]
        if missing:
            raise ValueError(f"Missing required order fields: {', '.join(missing)}")

        signature = data["signature"]
        if isinstance(signature, str):
            try:
                signature = json.loads(signature)
            except json.JSONDecodeError:
                raise ValueError("Signature must be a JSON object")
        if not isinstance(signature, dict):
            raise ValueError("Signature must be a JSON object")

        try:
            expiry = int(data["expiry"])
            chain_id = int(data["chainId"])
        except (ValueError, TypeError):
            raise ValueError("Expiry and chainId must be integers")

        return cls(
            maker_token=data["makerToken"],
            taker_token=data["takerToken"],
            maker_amount=data["makerAmount"],
            taker_amount=data["takerAmount"],
            taker_token_fee_amount=data.get("takerTokenFeeAmount", "0"),
            maker=data["maker"],
            taker=data.get("taker") or NULL_ADDRESS,
            sender=data.get("sender") or NULL_ADDRESS,
            fee_recipient=data.get("feeRecipient") or NULL_ADDRESS,
            pool_id=str(data["poolId"]),
            expiry=expiry,
            salt=str(data["salt"]),
            chain_id=chain_id,
            verifying_contract=data["verifyingContract"],
            signature=signature,
        )


@dataclass
class OrderMetaData:
    """Relayer-side metadata attached to a stored order."""

    order_hash: str
    remaining_fillable_taker_amount: Decimal
    state: OrderEventEndState
    created_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "orderHash": self.order_hash,
            "remainingFillableTakerAmount": _format_amount(self.remaining_fillable_taker_amount),
            "state": self.state.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class ApiOrder:
    """Public order shape returned by every query."""

    order: SignedOrder
    meta_data: OrderMetaData

    @property
    def order_hash(self) -> str:
        return self.meta_data.order_hash

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "metaData": self.meta_data.to_dict(),
        }


def order_to_record(
    order: SignedOrder,
    state: OrderEventEndState = OrderEventEndState.ADDED,
    remaining_fillable_taker_amount: Optional[Decimal] = None,
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Flatten an order into a storage row."""
    record = {attr: getattr(order, attr) for attr, _ in ORDER_FIELDS}
    for name in AMOUNT_FIELDS:
        record[name] = _format_amount(record[name])
    record["hash"] = order.get_hash()
    record["signature"] = json.dumps(order.signature, sort_keys=True)
    remaining = order.taker_amount if remaining_fillable_taker_amount is None else remaining_fillable_taker_amount
    record["remaining_fillable_taker_amount"] = _format_amount(remaining)
    record["order_state"] = state.value
    record["created_at"] = created_at or datetime.now(timezone.utc)
    return record


def decode_order_record(record: Mapping[str, Any]) -> ApiOrder:
    """
    Decode a stored order row into the public order shape.

    Args:
        record: Row mapping as returned by the order store

    Returns:
        ApiOrder built from the row

    Raises:
        OrderDecodeError: If the row lacks a field the public shape requires
    """
    order_hash = record.get("hash")
    for name in REQUIRED_RECORD_FIELDS:
        if record.get(name) is None:
            raise OrderDecodeError(name, order_hash)

    signature = record["signature"]
    if isinstance(signature, str):
        try:
            signature = json.loads(signature)
        except json.JSONDecodeError:
            raise OrderDecodeError("signature", order_hash, problem="has malformed field")

    try:
        order = SignedOrder(
            maker_token=record["maker_token"],
            taker_token=record["taker_token"],
            maker_amount=record["maker_amount"],
            taker_amount=record["taker_amount"],
            taker_token_fee_amount=record["taker_token_fee_amount"],
            maker=record["maker"],
            taker=record["taker"],
            sender=record["sender"],
            fee_recipient=record["fee_recipient"],
            pool_id=record["pool_id"],
            expiry=int(record["expiry"]),
            salt=record["salt"],
            chain_id=int(record["chain_id"]),
            verifying_contract=record["verifying_contract"],
            signature=signature,
        )
        meta_data = OrderMetaData(
            order_hash=order_hash,
            remaining_fillable_taker_amount=Decimal(record["remaining_fillable_taker_amount"]),
            state=OrderEventEndState(record["order_state"]),
            created_at=record.get("created_at"),
        )
    except (ValueError, InvalidOperation) as e:
        raise OrderDecodeError(str(e), order_hash, problem="has an invalid value:") from e

    return ApiOrder(order=order, meta_data=meta_data)
