"""
Order state and offer kind definitions for the relayer.

This module defines the lifecycle states the watcher assigns to orders,
the liquidity offer kinds the relayer stores, and the shared constants
used at the API boundary.
"""

from enum import Enum
from typing import FrozenSet

NULL_ADDRESS = "0x0000000000000000000000000000000000000000"
NULL_TEXT = "NULL"

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 1000

API_KEY_HEADER = "0x-api-key"


class OrderEventEndState(Enum):
    """
    Lifecycle states assigned to an order by the watcher.

    The relayer never moves an order between states; it only reads them.
    """
    ADDED = "ADDED"
    FILLED = "FILLED"
    FULLY_FILLED = "FULLY_FILLED"
    CANCELLED = "CANCELLED"
    EXPIRED = "EXPIRED"
    INVALID = "INVALID"
    UNEXPIRED = "UNEXPIRED"
    UNFUNDED = "UNFUNDED"
    FILLABILITY_INCREASED = "FILLABILITY_INCREASED"
    STOPPED_WATCHING = "STOPPED_WATCHING"


# States after which an order can no longer be filled
TERMINAL_ORDER_STATES: FrozenSet[OrderEventEndState] = frozenset({
    OrderEventEndState.CANCELLED,
    OrderEventEndState.EXPIRED,
    OrderEventEndState.FULLY_FILLED,
    OrderEventEndState.INVALID,
    OrderEventEndState.STOPPED_WATCHING,
    OrderEventEndState.UNFUNDED,
})


class OfferKind(Enum):
    """
    Liquidity offer kinds.

    - CREATE_CONTINGENT_POOL: offer to create a new pool together with a taker
    - ADD_LIQUIDITY: offer to add collateral to an existing pool
    - REMOVE_LIQUIDITY: offer to remove collateral from an existing pool
    """
    CREATE_CONTINGENT_POOL = "createContingentPool"
    ADD_LIQUIDITY = "addLiquidity"
    REMOVE_LIQUIDITY = "removeLiquidity"


def is_terminal_state(state: OrderEventEndState) -> bool:
    """Check whether an order state means the order is no longer fillable."""
    return state in TERMINAL_ORDER_STATES
