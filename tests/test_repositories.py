"""
SQLAlchemy repositories against an in-memory SQLite database.
"""

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from models import Pincode_Mapping, Pincode_Serviceability, Rate_Card, Seller_Rate_Card
from modules.rate_engine.rate_engine_errors import (
    LocationStoreUnavailableError,
    TariffStoreUnavailableError,
)
from modules.rate_engine.rate_engine_schema import CourierId, ServiceMode, Zone
from modules.rate_engine.repositories import (
    SqlCourierRoster,
    SqlLocationLookup,
    SqlTariffRepository,
)
from modules.rate_engine.serviceability_adapters import PincodeTableServiceabilityAdapter


# ============================================
# FIXTURES
# ============================================


def rate_card(courier="Delhivery", mode="Surface", zone="Within City", slab="0.5", **kwargs):
    values = dict(
        courier=courier,
        mode=mode,
        zone=zone,
        weight_slab=Decimal(slab),
        base_rate=Decimal("40"),
        additional_rate=Decimal("20"),
        cod_flat_fee=Decimal("30"),
        cod_percent=Decimal("1.5"),
        minimum_billable_weight=Decimal("0"),
        rto_charge=Decimal("0"),
        is_active=True,
    )
    values.update(kwargs)
    return values


@pytest.fixture
def seeded(db_session_factory):
    with db_session_factory() as db:
        db.add_all(
            [
                Pincode_Mapping(
                    pincode=110001,
                    city="New Delhi",
                    district="Central Delhi",
                    state="Delhi",
                    region="north",
                ),
                Pincode_Mapping(pincode=400001, city="Mumbai", state="Maharashtra"),
                Rate_Card(**rate_card()),
                Rate_Card(**rate_card(slab="1", base_rate=Decimal("50"))),
                Rate_Card(**rate_card(courier="dtdc", mode="Air")),
                Rate_Card(**rate_card(courier="Blue Dart", is_active=False)),
                Rate_Card(**rate_card(courier="Unknown Courier")),
                Rate_Card(**rate_card(courier="ekart", is_deleted=True)),
                Seller_Rate_Card(
                    seller_id="seller-1",
                    **rate_card(slab="1", base_rate=Decimal("30"), rto_charge=Decimal("12")),
                ),
                Seller_Rate_Card(
                    seller_id="seller-2", **rate_card(slab="1", base_rate=Decimal("35"))
                ),
                Pincode_Serviceability(
                    pincode=110001,
                    courier="delhivery",
                    surface_pickup=True,
                    surface_delivery=True,
                    air_pickup=False,
                    air_delivery=True,
                ),
                Pincode_Serviceability(
                    pincode=400001,
                    courier="delhivery",
                    surface_pickup=True,
                    surface_delivery=True,
                    air_pickup=True,
                    air_delivery=True,
                ),
            ]
        )
        db.commit()
    return db_session_factory


class BrokenSession:
    def __enter__(self):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    def __exit__(self, *args):
        return False


# ============================================
# LOCATIONS
# ============================================


class TestSqlLocationLookup:
    def test_known_pincode(self, seeded):
        location = SqlLocationLookup(seeded).get_location("110001")
        assert location.city == "New Delhi"
        assert location.district == "Central Delhi"
        assert location.state == "Delhi"
        assert location.region == "north"

    def test_unknown_pincode(self, seeded):
        assert SqlLocationLookup(seeded).get_location("999999") is None

    def test_malformed_pincode_skips_query(self):
        lookup = SqlLocationLookup(BrokenSession)
        assert lookup.get_location("12ab") is None

    def test_results_are_cached(self, seeded):
        lookup = SqlLocationLookup(seeded)
        first = lookup.get_location("400001")

        with seeded() as db:
            db.query(Pincode_Mapping).filter(Pincode_Mapping.pincode == 400001).delete()
            db.commit()

        assert lookup.get_location("400001") == first
        lookup.clear_cache()
        assert lookup.get_location("400001") is None

    def test_database_down(self):
        with pytest.raises(LocationStoreUnavailableError):
            SqlLocationLookup(BrokenSession).get_location("110001")


# ============================================
# TARIFFS
# ============================================


class TestSqlTariffRepository:
    def test_active_rows_with_known_couriers(self, seeded):
        rows = SqlTariffRepository(seeded).list_tariff_rows()
        assert {(row.courier, row.mode, row.weight_slab) for row in rows} == {
            (CourierId.DELHIVERY, ServiceMode.SURFACE, Decimal("0.5")),
            (CourierId.DELHIVERY, ServiceMode.SURFACE, Decimal("1")),
            (CourierId.DTDC, ServiceMode.AIR, Decimal("0.5")),
        }
        assert all(row.is_global for row in rows)
        assert all(row.zone == Zone.WITHIN_CITY for row in rows)

    def test_filters(self, seeded):
        repository = SqlTariffRepository(seeded)
        assert len(repository.list_tariff_rows(courier=CourierId.DTDC)) == 1
        assert len(repository.list_tariff_rows(mode=ServiceMode.SURFACE)) == 2
        assert repository.list_tariff_rows(zone=Zone.SPECIAL_ZONE) == []

    def test_overrides_for_one_seller(self, seeded):
        rows = SqlTariffRepository(seeded).list_overrides("seller-1")
        assert len(rows) == 1
        assert rows[0].seller_id == "seller-1"
        assert rows[0].base_rate == Decimal("30")
        assert rows[0].rto_charge == Decimal("12")

    def test_database_down(self):
        repository = SqlTariffRepository(BrokenSession)
        with pytest.raises(TariffStoreUnavailableError):
            repository.list_tariff_rows()
        with pytest.raises(TariffStoreUnavailableError):
            repository.list_overrides("seller-1")


class TestSqlCourierRoster:
    def test_distinct_active_couriers(self, seeded):
        assert SqlCourierRoster(seeded).list_active_couriers() == [
            CourierId.DELHIVERY,
            CourierId.DTDC,
        ]

    def test_database_down(self):
        with pytest.raises(TariffStoreUnavailableError):
            SqlCourierRoster(BrokenSession).list_active_couriers()


# ============================================
# SERVICEABILITY TABLE
# ============================================


class TestPincodeTableServiceabilityAdapter:
    def check(self, session_factory, origin, destination, mode, courier=CourierId.DELHIVERY):
        adapter = PincodeTableServiceabilityAdapter(session_factory)
        return asyncio.run(adapter.check_serviceable(courier, origin, destination, mode))

    def test_serviceable_surface(self, seeded):
        assert self.check(seeded, "110001", "400001", ServiceMode.SURFACE).serviceable

    def test_no_air_pickup(self, seeded):
        check = self.check(seeded, "110001", "400001", ServiceMode.AIR)
        assert check.serviceable is False
        assert check.reason == "pickup pincode not serviceable"

    def test_air_other_direction(self, seeded):
        assert self.check(seeded, "400001", "110001", ServiceMode.AIR).serviceable

    def test_unlisted_destination(self, seeded):
        check = self.check(seeded, "110001", "560001", ServiceMode.SURFACE)
        assert check.reason == "delivery pincode not serviceable"

    def test_other_courier(self, seeded):
        check = self.check(
            seeded, "110001", "400001", ServiceMode.SURFACE, courier=CourierId.DTDC
        )
        assert check.serviceable is False
