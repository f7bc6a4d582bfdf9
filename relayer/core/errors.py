"""
Error types raised by the relayer services.

Codes follow the standard relayer API numbering so that clients of other
relayers can branch on them unchanged.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional


class GeneralErrorCodes(Enum):
    VALIDATION_ERROR = 100
    MALFORMED_JSON = 101
    NOT_FOUND = 102
    INVALID_API_KEY = 106
    INTERNAL_ERROR = 500


class ValidationErrorCodes(Enum):
    REQUIRED_FIELD = 1000
    INCORRECT_FORMAT = 1001
    INVALID_ADDRESS = 1002
    ADDRESS_NOT_SUPPORTED = 1003
    VALUE_OUT_OF_RANGE = 1004
    INVALID_SIGNATURE_OR_HASH = 1005
    UNSUPPORTED_OPTION = 1006
    INVALID_ORDER = 1007


class ValidationErrorReasons(Enum):
    UNFILLABLE_REQUIRES_MAKER_ADDRESS = "UNFILLABLE_REQUIRES_MAKER_ADDRESS"
    INVALID_ORDER_PARAMETERS = "INVALID_ORDER_PARAMETERS"
    INVALID_OFFER_PARAMETERS = "INVALID_OFFER_PARAMETERS"


@dataclass(frozen=True)
class ValidationErrorItem:
    field: str
    code: ValidationErrorCodes
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "code": self.code.value,
            "reason": self.reason,
        }


class RelayerError(Exception):
    """Base class for errors raised by the relayer."""


class ValidationError(RelayerError):
    """
    Raised when a request is rejected before any query executes.

    Carries one item per offending field.
    """

    def __init__(self, validation_errors: List[ValidationErrorItem]):
        self.validation_errors = validation_errors
        fields = ", ".join(item.field for item in validation_errors)
        super().__init__(f"Validation failed for: {fields}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": GeneralErrorCodes.VALIDATION_ERROR.value,
            "reason": "Validation Failed",
            "validationErrors": [item.to_dict() for item in self.validation_errors],
        }


class RecordDecodeError(RelayerError):
    """Raised when a stored record cannot be decoded into its public shape."""

    def __init__(self, record_type: str, field: str, key: Optional[str] = None,
                 problem: str = "is missing required field"):
        self.record_type = record_type
        self.field = field
        self.key = key
        location = f" (key {key})" if key else ""
        super().__init__(f"{record_type} record{location} {problem} '{field}'")


class OrderDecodeError(RecordDecodeError):
    """Raised when a stored order row is missing a field of the public order shape."""

    def __init__(self, field: str, order_hash: Optional[str] = None,
                 problem: str = "is missing required field"):
        super().__init__("Order", field, order_hash, problem)


class ExpiredOrderError(RelayerError):
    """
    Data-integrity signal for an expired order that should already have been
    purged by the watcher. Logged, never raised to callers.
    """

    def __init__(self, order_hash: str, expiry: int, max_expiration_buffer_seconds: int,
                 details: Optional[str] = None):
        self.order_hash = order_hash
        self.expiry = expiry
        self.max_expiration_buffer_seconds = max_expiration_buffer_seconds
        self.details = details
        message = (
            f"Found expired order {order_hash} with expiry {expiry} beyond the "
            f"max expiration buffer of {max_expiration_buffer_seconds}s"
        )
        if details:
            message = f"{message}: {details}"
        super().__init__(message)
