from sqlalchemy import Column, String, Integer, Index

from database import DBBaseClass, DBBase


class Pincode_Mapping(DBBase, DBBaseClass):

    __tablename__ = "pincode_mapping"

    pincode = Column(Integer, nullable=False, unique=True)
    city = Column(String(50), nullable=False)
    # district falls back to city when the master has no district column filled
    district = Column(String(50), nullable=True)
    state = Column(String(50), nullable=False)
    region = Column(String(20), nullable=True)

    # covering index, pincode lookups never touch the table
    __table_args__ = (
        Index(
            "ix_pincode_mapping_pincode_city_state",
            "pincode",
            "city",
            "district",
            "state",
        ),
    )
