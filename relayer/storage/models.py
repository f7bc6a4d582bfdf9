"""
Table definitions for the relayer's durable store.

Active orders are owned by the watcher and disappear once an order is no
longer fillable. Persistent orders are snapshots promoted on request and
are never removed by the relayer.
"""

from sqlalchemy import BigInteger, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class SignedOrderColumns:
    hash = Column(String, primary_key=True)
    maker_token = Column(String, nullable=False, index=True)
    taker_token = Column(String, nullable=False, index=True)
    maker_amount = Column(String, nullable=False)
    taker_amount = Column(String, nullable=False)
    taker_token_fee_amount = Column(String, nullable=False)
    maker = Column(String, nullable=False, index=True)
    taker = Column(String, nullable=False, index=True)
    sender = Column(String, nullable=False)
    fee_recipient = Column(String, nullable=False)
    pool_id = Column(String, nullable=False, index=True)
    expiry = Column(BigInteger, nullable=False)
    salt = Column(String, nullable=False)
    chain_id = Column(Integer, nullable=False)
    verifying_contract = Column(String, nullable=False)
    signature = Column(Text, nullable=False)
    remaining_fillable_taker_amount = Column(String, nullable=False)
    order_state = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True))


class ActiveOrderEntity(SignedOrderColumns, Base):
    __tablename__ = 'signed_orders_v4'


class PersistentOrderEntity(SignedOrderColumns, Base):
    __tablename__ = 'persistent_signed_orders_v4'


class OfferColumns:
    offer_hash = Column(String, primary_key=True)
    maker = Column(String, nullable=False)
    taker = Column(String, nullable=False)
    maker_collateral_amount = Column(String, nullable=False)
    maker_direction = Column(String, nullable=False)
    offer_expiry = Column(String, nullable=False)
    minimum_taker_fill_amount = Column(String, nullable=False)
    reference_asset = Column(String)
    collateral_token = Column(String)
    data_provider = Column(String)
    permissioned_token = Column(String)
    salt = Column(String, nullable=False)
    signature = Column(Text, nullable=False)
    chain_id = Column(Integer, nullable=False)
    verifying_contract = Column(String, nullable=False)


class OfferCreateContingentPoolEntity(OfferColumns, Base):
    __tablename__ = 'offer_create_contingent_pool'

    taker_collateral_amount = Column(String, nullable=False)
    expiry_time = Column(String, nullable=False)
    floor = Column(String, nullable=False)
    inflection = Column(String, nullable=False)
    cap = Column(String, nullable=False)
    gradient = Column(String, nullable=False)
    capacity = Column(String, nullable=False)


class OfferAddLiquidityEntity(OfferColumns, Base):
    __tablename__ = 'offer_add_liquidity'

    taker_collateral_amount = Column(String, nullable=False)
    pool_id = Column(String, nullable=False, index=True)
    actual_taker_fillable_amount = Column(String)


class OfferRemoveLiquidityEntity(OfferColumns, Base):
    __tablename__ = 'offer_remove_liquidity'

    position_token_amount = Column(String, nullable=False)
    pool_id = Column(String, nullable=False, index=True)
    actual_taker_fillable_amount = Column(String)
