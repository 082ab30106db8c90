from sqlalchemy import Column, String, UniqueConstraint

from database import DBBaseClass, DBBase

from .rate_card import RateCardColumns


class Seller_Rate_Card(DBBase, DBBaseClass, RateCardColumns):
    __tablename__ = "seller_rate_card"

    seller_id = Column(String(64), nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint(
            "seller_id",
            "courier",
            "mode",
            "zone",
            "weight_slab",
            name="uq_seller_rate_card_key",
        ),
    )
