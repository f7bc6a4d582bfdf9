"""
Input validation utilities for the API layer.

This module checks and converts query parameters and request bodies
into the types the order book and offer services expect. Every
validator returns a tuple whose first two items are (is_valid,
error_message).
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Tuple
import logging

from ..core.offer import ADDRESS_FILTER_FIELDS, OfferFilter, wire_name
from ..core.order import SignedOrder
from ..core.order_types import DEFAULT_PAGE, DEFAULT_PER_PAGE, NULL_ADDRESS, NULL_TEXT, OfferKind

logger = logging.getLogger(__name__)

ADDRESS_PATTERN = re.compile(r'^0x[0-9a-fA-F]{40}$')
ORDER_HASH_PATTERN = re.compile(r'^0x[0-9a-fA-F]{64}$')

MAX_PER_PAGE = DEFAULT_PER_PAGE

# Query parameter -> order column for GET /orders
ORDER_QUERY_FIELDS = {
    "makerToken": "maker_token",
    "takerToken": "taker_token",
    "maker": "maker",
    "taker": "taker",
    "sender": "sender",
    "feeRecipient": "fee_recipient",
    "poolId": "pool_id",
    "verifyingContract": "verifying_contract",
    "chainId": "chain_id",
}

INTEGER_ORDER_FIELDS = ("chain_id",)

ADDRESS_ORDER_FIELDS = ("maker_token", "taker_token", "maker", "taker", "sender", "fee_recipient", "verifying_contract")

# Wire order fields normalized to lowercase before hashing and storage
ORDER_ADDRESS_WIRE_FIELDS = ("makerToken", "takerToken", "maker", "taker", "sender", "feeRecipient", "verifyingContract")


def validate_pagination(page: Any, per_page: Any) -> Tuple[bool, Optional[str], Optional[Tuple[int, int]]]:
    """
    Validate page and perPage parameters.

    Args:
        page: 1-based page number, default 1
        per_page: Page size, default 1000

    Returns:
        Tuple of (is_valid, error_message, (page, per_page))
    """
    try:
        page = DEFAULT_PAGE if page in (None, "") else int(page)
        per_page = DEFAULT_PER_PAGE if per_page in (None, "") else int(per_page)
    except (ValueError, TypeError):
        return False, "page and perPage must be integers", None

    if page < 1:
        return False, "page must be at least 1", None

    if per_page < 1:
        return False, "perPage must be positive", None

    if per_page > MAX_PER_PAGE:
        return False, f"perPage too large. Maximum: {MAX_PER_PAGE}", None

    return True, None, (page, per_page)


def validate_address(value: Any, name: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a hex account or token address.

    Args:
        value: Address to validate
        name: Parameter name used in the error message

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not value:
        return False, f"{name} is required"

    if not isinstance(value, str) or not ADDRESS_PATTERN.match(value):
        return False, f"Invalid {name}: {value}. Expected a 0x-prefixed 20-byte hex address"

    return True, None


def validate_order_hash(value: Any) -> Tuple[bool, Optional[str]]:
    if not isinstance(value, str) or not ORDER_HASH_PATTERN.match(value):
        return False, f"Invalid order hash: {value}"
    return True, None


def validate_book_request(args: Mapping[str, Any]) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Validate an order book request.

    Args:
        args: Query parameters (baseToken, quoteToken, page, perPage)

    Returns:
        Tuple of (is_valid, error_message, parsed_data)
    """
    for name in ("baseToken", "quoteToken"):
        is_valid, error = validate_address(args.get(name), name)
        if not is_valid:
            return False, error, None

    is_valid, error, paging = validate_pagination(args.get("page"), args.get("perPage"))
    if not is_valid:
        return False, error, None

    return True, None, {
        "base_token": args["baseToken"].lower(),
        "quote_token": args["quoteToken"].lower(),
        "page": paging[0],
        "per_page": paging[1],
    }


def parse_bool(value: Any) -> Tuple[bool, Optional[str], Optional[bool]]:
    """Parse a "true"/"false" query flag; absent means None."""
    if value in (None, ""):
        return True, None, None
    if isinstance(value, bool):
        return True, None, value
    lowered = str(value).lower()
    if lowered == "true":
        return True, None, True
    if lowered == "false":
        return True, None, False
    return False, f"Invalid boolean: {value}. Must be true or false", None


def validate_orders_query(args: Mapping[str, Any]) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Validate a filtered order query.

    Unknown parameters are ignored.

    Args:
        args: Query parameters

    Returns:
        Tuple of (is_valid, error_message, parsed_data) where parsed_data
        holds page, per_page, order_field_filters, is_unfillable and trader
    """
    is_valid, error, paging = validate_pagination(args.get("page"), args.get("perPage"))
    if not is_valid:
        return False, error, None

    field_filters: Dict[str, Any] = {}
    for param, column in ORDER_QUERY_FIELDS.items():
        value = args.get(param)
        if value in (None, ""):
            continue
        if column in INTEGER_ORDER_FIELDS:
            try:
                value = int(value)
            except (ValueError, TypeError):
                return False, f"{param} must be an integer", None
        elif column in ADDRESS_ORDER_FIELDS:
            value = str(value).lower()
        field_filters[column] = value

    is_valid, error, is_unfillable = parse_bool(args.get("isUnfillable"))
    if not is_valid:
        return False, error, None

    return True, None, {
        "page": paging[0],
        "per_page": paging[1],
        "order_field_filters": field_filters,
        "is_unfillable": is_unfillable,
        "trader": args["trader"].lower() if args.get("trader") else None,
    }


def validate_order_payload(data: Any) -> Tuple[bool, Optional[str], Optional[SignedOrder]]:
    """
    Validate a signed order body.

    Address fields are lowercased so stored orders match lowercase
    queries.

    Args:
        data: Decoded JSON body

    Returns:
        Tuple of (is_valid, error_message, order)
    """
    if not isinstance(data, dict):
        return False, "Order must be a JSON object", None

    for name in ("makerToken", "takerToken", "maker", "verifyingContract"):
        is_valid, error = validate_address(data.get(name), name)
        if not is_valid:
            return False, error, None

    data = {
        name: value.lower() if name in ORDER_ADDRESS_WIRE_FIELDS and isinstance(value, str) else value
        for name, value in data.items()
    }

    try:
        order = SignedOrder.from_dict(data)
    except ValueError as e:
        return False, str(e), None

    return True, None, order


def validate_orders_payload(data: Any) -> Tuple[bool, Optional[str], Optional[List[SignedOrder]]]:
    """
    Validate a batch of signed orders.

    The whole batch is rejected when any order is invalid.
    """
    if not isinstance(data, list):
        return False, "Request body must be a JSON array of orders", None

    orders = []
    for index, item in enumerate(data):
        is_valid, error, order = validate_order_payload(item)
        if not is_valid:
            return False, f"Order {index}: {error}", None
        orders.append(order)

    return True, None, orders


def validate_order_config_request(data: Any) -> Tuple[bool, Optional[str], Optional[Decimal]]:
    """
    Validate an order config request.

    Args:
        data: Decoded JSON body describing the order to be created

    Returns:
        Tuple of (is_valid, error_message, taker_amount)
    """
    if not isinstance(data, dict):
        return False, "Order config request must be a JSON object", None

    for name in ("makerToken", "takerToken", "maker"):
        is_valid, error = validate_address(data.get(name), name)
        if not is_valid:
            return False, error, None

    try:
        taker_amount = Decimal(str(data.get("takerAmount")))
    except (InvalidOperation, ValueError):
        return False, "takerAmount must be an integer", None

    if not taker_amount.is_finite() or taker_amount <= 0 or taker_amount != taker_amount.to_integral_value():
        return False, f"takerAmount must be a positive integer, got: {data.get('takerAmount')}", None

    return True, None, taker_amount


def validate_offer_kind(value: Any) -> Tuple[bool, Optional[str], Optional[OfferKind]]:
    if not value:
        return False, "offerType is required", None

    try:
        kind = OfferKind(value)
    except ValueError:
        valid_kinds = [kind.value for kind in OfferKind]
        return False, f"Invalid offerType: {value}. Must be one of: {valid_kinds}", None

    return True, None, kind


def _null_sentinel(name: str) -> str:
    return NULL_ADDRESS if name in ADDRESS_FILTER_FIELDS else NULL_TEXT


def parse_offer_filter(args: Mapping[str, Any]) -> OfferFilter:
    """
    Build an offer filter from query parameters.

    Absent parameters and the legacy "no filter" sentinels (the zero
    address for address fields, "NULL" for text fields) leave the field
    unset.
    """
    values = {}
    for name in OfferFilter.__dataclass_fields__:
        value = args.get(wire_name(name))
        if value in (None, "") or value == _null_sentinel(name):
            continue
        values[name] = value
    return OfferFilter(**values)


def parse_order_hashes(value: Any) -> Tuple[bool, Optional[str], Optional[List[str]]]:
    """Parse a comma-separated list of order hashes."""
    if not value:
        return False, "orderHashes is required", None

    hashes = [item.strip() for item in str(value).split(",") if item.strip()]
    for order_hash in hashes:
        is_valid, error = validate_order_hash(order_hash)
        if not is_valid:
            return False, error, None

    return True, None, hashes
