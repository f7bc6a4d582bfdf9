"""
Liquidity offer data structures.

Offers are signed intents to create a pool or to add or remove pool
collateral together with a taker. Unlike orders they are not ranked,
only stored, filtered and returned.
"""

from dataclasses import dataclass, fields
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Type, Union

from .errors import RecordDecodeError
from .order_types import NULL_ADDRESS, OfferKind


def _to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


# Wire names that do not follow the plain snake/camel mapping
_WIRE_OVERRIDES = {
    "permissioned_token": "permissionedERC721Token",
}


def wire_name(attr: str) -> str:
    return _WIRE_OVERRIDES.get(attr, _to_camel(attr))


class _OfferMixin:
    """Shared (de)serialization for the offer dataclasses."""

    KIND: ClassVar[OfferKind]
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]]

    def to_dict(self) -> Dict[str, Any]:
        """Convert offer to its wire representation."""
        return {wire_name(f.name): getattr(self, f.name) for f in fields(self)}

    def to_record(self) -> Dict[str, Any]:
        """Flatten offer into a storage row."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        """
        Create offer from its wire representation.

        Raises:
            ValueError: If a required field is missing or malformed
        """
        missing = [wire_name(name) for name in cls.REQUIRED_FIELDS if data.get(wire_name(name)) in (None, "")]
        if missing:
            raise ValueError(f"Missing required offer fields: {', '.join(missing)}")

        values = {}
        for f in fields(cls):
            raw = data.get(wire_name(f.name))
            if raw is None:
                continue
            if f.name == "chain_id":
                try:
                    raw = int(raw)
                except (ValueError, TypeError):
                    raise ValueError(f"chainId must be an integer, got: {raw}")
            else:
                raw = str(raw)
            values[f.name] = raw
        return cls(**values)

    @classmethod
    def from_record(cls, record: Mapping[str, Any]):
        """
        Decode a stored offer row.

        Raises:
            RecordDecodeError: If the row lacks a required field
        """
        key = record.get("offer_hash")
        for name in cls.REQUIRED_FIELDS:
            if record.get(name) is None:
                raise RecordDecodeError(cls.__name__, name, key)
        values = {f.name: record[f.name] for f in fields(cls) if record.get(f.name) is not None}
        return cls(**values)


@dataclass
class OfferCreateContingentPool(_OfferMixin):
    """Offer to create a new contingent pool together with a taker."""

    KIND: ClassVar[OfferKind] = OfferKind.CREATE_CONTINGENT_POOL
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = (
        "offer_hash", "maker", "taker", "maker_collateral_amount", "taker_collateral_amount",
        "maker_direction", "offer_expiry", "minimum_taker_fill_amount", "reference_asset",
        "expiry_time", "floor", "inflection", "cap", "gradient", "collateral_token",
        "data_provider", "capacity", "permissioned_token", "salt", "signature",
        "chain_id", "verifying_contract",
    )

    offer_hash: str = ""
    maker: str = ""
    taker: str = NULL_ADDRESS
    maker_collateral_amount: str = "0"
    taker_collateral_amount: str = "0"
    maker_direction: str = ""
    offer_expiry: str = ""
    minimum_taker_fill_amount: str = "0"
    reference_asset: str = ""
    expiry_time: str = ""
    floor: str = ""
    inflection: str = ""
    cap: str = ""
    gradient: str = ""
    collateral_token: str = ""
    data_provider: str = ""
    capacity: str = ""
    permissioned_token: str = NULL_ADDRESS
    salt: str = ""
    signature: str = ""
    chain_id: int = 1
    verifying_contract: str = ""


@dataclass
class OfferAddLiquidity(_OfferMixin):
    """
    Offer to add collateral to an existing pool.

    The pool attributes (reference asset, collateral token, data provider)
    are overwritten from the pool registry when the offer is submitted.
    """

    KIND: ClassVar[OfferKind] = OfferKind.ADD_LIQUIDITY
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = (
        "offer_hash", "maker", "taker", "maker_collateral_amount", "taker_collateral_amount",
        "maker_direction", "offer_expiry", "minimum_taker_fill_amount", "pool_id",
        "salt", "signature", "chain_id", "verifying_contract",
    )

    offer_hash: str = ""
    maker: str = ""
    taker: str = NULL_ADDRESS
    maker_collateral_amount: str = "0"
    taker_collateral_amount: str = "0"
    maker_direction: str = ""
    offer_expiry: str = ""
    minimum_taker_fill_amount: str = "0"
    pool_id: str = ""
    salt: str = ""
    signature: str = ""
    actual_taker_fillable_amount: str = "0"
    chain_id: int = 1
    verifying_contract: str = ""
    reference_asset: str = ""
    collateral_token: str = ""
    data_provider: str = ""
    permissioned_token: str = NULL_ADDRESS


@dataclass
class OfferRemoveLiquidity(_OfferMixin):
    """Offer to remove collateral from an existing pool."""

    KIND: ClassVar[OfferKind] = OfferKind.REMOVE_LIQUIDITY
    REQUIRED_FIELDS: ClassVar[Tuple[str, ...]] = (
        "offer_hash", "maker", "taker", "position_token_amount", "maker_collateral_amount",
        "maker_direction", "offer_expiry", "minimum_taker_fill_amount", "pool_id",
        "salt", "signature", "chain_id", "verifying_contract", "reference_asset",
        "collateral_token", "data_provider",
    )

    offer_hash: str = ""
    maker: str = ""
    taker: str = NULL_ADDRESS
    position_token_amount: str = "0"
    maker_collateral_amount: str = "0"
    maker_direction: str = ""
    offer_expiry: str = ""
    minimum_taker_fill_amount: str = "0"
    pool_id: str = ""
    salt: str = ""
    signature: str = ""
    actual_taker_fillable_amount: str = "0"
    chain_id: int = 1
    verifying_contract: str = ""
    reference_asset: str = ""
    collateral_token: str = ""
    data_provider: str = ""
    permissioned_token: str = NULL_ADDRESS


Offer = Union[OfferCreateContingentPool, OfferAddLiquidity, OfferRemoveLiquidity]

OFFER_TYPES: Dict[OfferKind, Type] = {
    OfferKind.CREATE_CONTINGENT_POOL: OfferCreateContingentPool,
    OfferKind.ADD_LIQUIDITY: OfferAddLiquidity,
    OfferKind.REMOVE_LIQUIDITY: OfferRemoveLiquidity,
}

ADDRESS_FILTER_FIELDS = ("maker", "taker", "collateral_token", "data_provider", "permissioned_token")


@dataclass(frozen=True)
class OfferFilter:
    """
    Optional-equality filter over offers.

    Only fields that are set take part in matching; all set fields must
    match. Addresses compare case-insensitively, everything else as exact
    text. ``pool_id`` is ignored for create-pool offers, which have none.
    """

    maker: Optional[str] = None
    taker: Optional[str] = None
    maker_direction: Optional[str] = None
    reference_asset: Optional[str] = None
    collateral_token: Optional[str] = None
    data_provider: Optional[str] = None
    permissioned_token: Optional[str] = None
    pool_id: Optional[str] = None

    def active_fields(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def matches(self, offer: Offer) -> bool:
        for name, expected in self.active_fields().items():
            if not hasattr(offer, name):
                continue
            actual = getattr(offer, name)
            if name in ADDRESS_FILTER_FIELDS:
                if (actual or "").lower() != expected.lower():
                    return False
            elif actual != expected:
                return False
        return True
