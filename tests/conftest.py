"""
Shared fixtures for the rate engine test suite.

The database is an in-memory SQLite engine (DATABASE_URL must be set
before anything imports database.db). Engine collaborators that would
normally hit the database or a courier API are replaced by the small
in-memory fakes defined here.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import asyncio
from decimal import Decimal

import pytest

from modules.rate_engine.rate_aggregator import RateAggregator
from modules.rate_engine.rate_engine_config import RateEngineConfig
from modules.rate_engine.rate_engine_schema import (
    CourierId,
    Location,
    ServiceabilityCheck,
    ServiceMode,
    TariffRow,
    Zone,
)
from modules.rate_engine.serviceability_prober import ServiceabilityProber
from modules.rate_engine.tariff_store import TariffStoreCache


# ============================================
# FAKES
# ============================================


LOCATIONS = {
    "110001": Location("110001", "New Delhi", "Delhi", "Central Delhi", "north"),
    "110002": Location("110002", "New Delhi", "Delhi", "Central Delhi", "north"),
    "110085": Location("110085", "Delhi", "Delhi", "North West Delhi", "north"),
    "122001": Location("122001", "Gurgaon", "Haryana", "Gurgaon", "north"),
    "400001": Location("400001", "Mumbai", "Maharashtra", "Mumbai", "west"),
    "411001": Location("411001", "Pune", "Maharashtra", "Pune", "west"),
    "560001": Location("560001", "Bangalore", "Karnataka", "Bangalore Urban", "south"),
    "781001": Location("781001", "Guwahati", "Assam", "Kamrup Metropolitan", "northeast"),
    "302001": Location("302001", "Jaipur", "Rajasthan", "Jaipur", "west"),
}


class FakeLocationLookup:
    def __init__(self, locations=None, error=None):
        self.locations = LOCATIONS if locations is None else locations
        self.error = error

    def get_location(self, pincode):
        if self.error is not None:
            raise self.error
        return self.locations.get(pincode)


class FakeTariffRepository:
    def __init__(self, rows=(), overrides=None, error=None):
        self.rows = list(rows)
        self.overrides = overrides or {}
        self.error = error
        self.load_count = 0

    def list_tariff_rows(self, courier=None, mode=None, zone=None):
        if self.error is not None:
            raise self.error
        self.load_count += 1
        return [
            row
            for row in self.rows
            if (courier is None or row.courier == courier)
            and (mode is None or row.mode == mode)
            and (zone is None or row.zone == zone)
        ]

    def list_overrides(self, seller_id):
        if self.error is not None:
            raise self.error
        return list(self.overrides.get(seller_id, []))


class FakeRoster:
    def __init__(self, couriers):
        self.couriers = list(couriers)

    def list_active_couriers(self):
        return list(self.couriers)


class FakeAdapter:
    """
    behaviours maps a courier (or (courier, mode)) to one of:
    a ServiceabilityCheck, an Exception instance, or a (delay, check) tuple.
    Couriers not listed are serviceable.
    """

    def __init__(self, behaviours=None):
        self.behaviours = behaviours or {}
        self.calls = []

    async def check_serviceable(self, courier, origin_pincode, destination_pincode, mode):
        self.calls.append((courier, origin_pincode, destination_pincode, mode))
        behaviour = self.behaviours.get(
            (courier, mode), self.behaviours.get(courier, ServiceabilityCheck(True))
        )

        if isinstance(behaviour, tuple):
            delay, behaviour = behaviour
            await asyncio.sleep(delay)

        if isinstance(behaviour, Exception):
            raise behaviour
        return behaviour


def make_row(
    courier=CourierId.DELHIVERY,
    mode=ServiceMode.SURFACE,
    zone=Zone.WITHIN_CITY,
    slab="0.5",
    base="40",
    additional="20",
    cod_flat_fee="30",
    cod_percent="1.5",
    minimum_billable_weight="0",
    rto_charge="0",
    seller_id=None,
) -> TariffRow:
    return TariffRow(
        courier=courier,
        mode=mode,
        zone=zone,
        weight_slab=Decimal(slab),
        base_rate=Decimal(base),
        additional_rate=Decimal(additional),
        cod_flat_fee=Decimal(cod_flat_fee),
        cod_percent=Decimal(cod_percent),
        minimum_billable_weight=Decimal(minimum_billable_weight),
        rto_charge=Decimal(rto_charge),
        seller_id=seller_id,
    )


def build_aggregator(
    rows=(),
    overrides=None,
    couriers=(CourierId.DELHIVERY,),
    adapter=None,
    locations=None,
    config=None,
    timeout=2.0,
):
    config = config or RateEngineConfig()
    return RateAggregator(
        location_lookup=FakeLocationLookup(locations),
        tariff_cache=TariffStoreCache(
            FakeTariffRepository(rows, overrides), refresh_seconds=300
        ),
        courier_roster=FakeRoster(couriers),
        prober=ServiceabilityProber(
            adapter or FakeAdapter(), timeout_for=lambda courier: timeout
        ),
        config=config,
    )


# ============================================
# FIXTURES
# ============================================


@pytest.fixture
def locations():
    return dict(LOCATIONS)


@pytest.fixture
def db_session_factory():
    from database.db import DBBase, SessionLocal, db_engine

    import models  # noqa: F401

    DBBase.metadata.drop_all(bind=db_engine)
    DBBase.metadata.create_all(bind=db_engine)
    yield SessionLocal
    DBBase.metadata.drop_all(bind=db_engine)
