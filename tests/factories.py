"""
Shared builders for relayer tests.
"""

import os
import tempfile
from decimal import Decimal

from relayer.config.settings import Settings
from relayer.core.notifications import NotificationChannel
from relayer.core.offer import OfferAddLiquidity, OfferCreateContingentPool, OfferRemoveLiquidity
from relayer.core.order import SignedOrder
from relayer.core.order_types import NULL_ADDRESS
from relayer.core.order_utils import now_seconds
from relayer.storage.order_store import OrderStore

MAKER = "0x" + "1" * 40
OTHER_MAKER = "0x" + "2" * 40
TOKEN_A = "0x" + "a" * 40
TOKEN_B = "0x" + "b" * 40
TOKEN_C = "0x" + "c" * 40
EXCHANGE = "0x" + "e" * 40
DATA_PROVIDER = "0x" + "d" * 40

VALID_SIGNATURE = {
    "signatureType": 2,
    "v": 27,
    "r": "0x" + "0" * 64,
    "s": "0x" + "0" * 64,
}


def make_order(**overrides) -> SignedOrder:
    values = {
        "maker_token": TOKEN_A,
        "taker_token": TOKEN_B,
        "maker_amount": Decimal("100"),
        "taker_amount": Decimal("50"),
        "maker": MAKER,
        "pool_id": "1",
        "expiry": now_seconds() + 3600,
        "salt": "1",
        "chain_id": 1,
        "verifying_contract": EXCHANGE,
        "signature": dict(VALID_SIGNATURE),
    }
    values.update(overrides)
    return SignedOrder(**values)


def make_settings(**overrides) -> Settings:
    settings = Settings()
    settings.sra_order_expiration_buffer_seconds = 10
    settings.max_order_expiration_buffer_seconds = 360
    settings.db_orders_update_chunk_size = 300
    settings.persistent_order_api_keys = ["test-key"]
    settings.service_worker_threads = 2
    for name, value in overrides.items():
        setattr(settings, name, value)
    return settings


class TempStore:
    """File-backed SQLite store in a temporary directory."""

    def __init__(self):
        self.tmp_dir = tempfile.TemporaryDirectory()
        self.store = OrderStore.from_url(f"sqlite:///{os.path.join(self.tmp_dir.name, 'relayer.db')}")

    def close(self):
        self.store.engine.dispose()
        self.tmp_dir.cleanup()


class RecordingChannel(NotificationChannel):
    """Notification channel remembering every publish call."""

    def __init__(self):
        self.published = []

    def publish(self, snapshots):
        self.published.append(list(snapshots))


def create_pool_offer(offer_hash, **overrides):
    values = dict(
        offer_hash=offer_hash,
        maker=MAKER,
        taker=NULL_ADDRESS,
        maker_collateral_amount="100",
        taker_collateral_amount="100",
        maker_direction="long",
        offer_expiry="2000000000",
        minimum_taker_fill_amount="10",
        reference_asset="ETH/USD",
        expiry_time="2000000000",
        floor="1000",
        inflection="1500",
        cap="2000",
        gradient="500000000000000000",
        collateral_token=TOKEN_A,
        data_provider=DATA_PROVIDER,
        capacity="1000",
        permissioned_token=NULL_ADDRESS,
        salt="1",
        signature="0xsig",
        chain_id=1,
        verifying_contract=EXCHANGE,
    )
    values.update(overrides)
    return OfferCreateContingentPool(**values)


def add_liquidity_offer(offer_hash, **overrides):
    values = dict(
        offer_hash=offer_hash,
        maker=MAKER,
        maker_collateral_amount="100",
        taker_collateral_amount="100",
        maker_direction="short",
        offer_expiry="2000000000",
        minimum_taker_fill_amount="10",
        pool_id="5",
        salt="1",
        signature="0xsig",
        chain_id=1,
        verifying_contract=EXCHANGE,
        reference_asset="SUBMITTED",
        collateral_token=TOKEN_C,
        data_provider=OTHER_MAKER,
    )
    values.update(overrides)
    return OfferAddLiquidity(**values)


def remove_liquidity_offer(offer_hash, **overrides):
    values = dict(
        offer_hash=offer_hash,
        maker=MAKER,
        position_token_amount="50",
        maker_collateral_amount="100",
        maker_direction="long",
        offer_expiry="2000000000",
        minimum_taker_fill_amount="10",
        pool_id="5",
        salt="1",
        signature="0xsig",
        chain_id=1,
        verifying_contract=EXCHANGE,
        reference_asset="ETH/USD",
        collateral_token=TOKEN_A,
        data_provider=DATA_PROVIDER,
    )
    values.update(overrides)
    return OfferRemoveLiquidity(**values)
