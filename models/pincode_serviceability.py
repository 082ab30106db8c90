from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint

from database import DBBaseClass, DBBase


class Pincode_Serviceability(DBBase, DBBaseClass):

    __tablename__ = "pincode_serviceability"

    pincode = Column(Integer, nullable=False, index=True)
    courier = Column(String(50), nullable=False)

    # first mile
    surface_pickup = Column(Boolean, nullable=False, default=False)
    air_pickup = Column(Boolean, nullable=False, default=False)
    # last mile
    surface_delivery = Column(Boolean, nullable=False, default=False)
    air_delivery = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        UniqueConstraint("pincode", "courier", name="uq_pincode_serviceability"),
    )
