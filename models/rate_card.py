from sqlalchemy import Boolean, Column, Numeric, String, UniqueConstraint

from database import DBBaseClass, DBBase


class RateCardColumns:
    """Tariff columns shared by the global rate card and seller overrides"""

    courier = Column(String(50), nullable=False, index=True)
    # Surface / Air
    mode = Column(String(20), nullable=False)
    zone = Column(String(30), nullable=False)
    weight_slab = Column(Numeric(10, 3), nullable=False)

    base_rate = Column(Numeric(10, 2), nullable=False)
    additional_rate = Column(Numeric(10, 2), nullable=False)
    cod_flat_fee = Column(Numeric(10, 2), nullable=False, default=0)
    cod_percent = Column(Numeric(5, 2), nullable=False, default=0)
    minimum_billable_weight = Column(Numeric(10, 3), nullable=False, default=0)
    # return to origin, per billed half kilo
    rto_charge = Column(Numeric(10, 2), nullable=False, default=0)

    # status
    is_active = Column(Boolean, default=True, nullable=False)


class Rate_Card(DBBase, DBBaseClass, RateCardColumns):
    __tablename__ = "rate_card"

    __table_args__ = (
        UniqueConstraint(
            "courier", "mode", "zone", "weight_slab", name="uq_rate_card_key"
        ),
    )
