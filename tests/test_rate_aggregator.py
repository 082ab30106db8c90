"""
End to end tests of the rate aggregator with in-memory collaborators.
"""

import asyncio
import threading
import time
from decimal import Decimal

import pytest

from modules.rate_engine.rate_engine_config import RateEngineConfig
from modules.rate_engine.rate_engine_errors import (
    LocationStoreUnavailableError,
    ShipmentValidationError,
    TariffStoreUnavailableError,
)
from modules.rate_engine.rate_engine_schema import (
    CourierId,
    ServiceabilityCheck,
    ServiceMode,
    ShipmentRequest,
    Zone,
)
from modules.rate_engine.rate_aggregator import RateAggregator
from modules.rate_engine.serviceability_prober import ServiceabilityProber
from modules.rate_engine.tariff_store import TariffStoreCache

from tests.conftest import (
    FakeAdapter,
    FakeLocationLookup,
    FakeRoster,
    FakeTariffRepository,
    build_aggregator,
    make_row,
)


COURIERS = [CourierId.DELHIVERY, CourierId.DTDC, CourierId.EKART]

# ============================================
# FIXTURES
# ============================================


@pytest.fixture
def rows():
    """Within City rows for three couriers, both modes, 0.5 and 1 kg slabs"""
    bases = {
        CourierId.DELHIVERY: (40, 50),
        CourierId.DTDC: (35, 45),
        CourierId.EKART: (38, 60),
    }
    table = []
    for courier, (half_kilo, one_kilo) in bases.items():
        for mode, uplift in ((ServiceMode.SURFACE, 0), (ServiceMode.AIR, 20)):
            table.append(
                make_row(courier=courier, mode=mode, slab="0.5", base=str(half_kilo + uplift))
            )
            table.append(
                make_row(courier=courier, mode=mode, slab="1", base=str(one_kilo + uplift))
            )
    return table


@pytest.fixture
def request_payload():
    return {
        "pickup_pincode": "110001",
        "delivery_pincode": "110002",
        "weight": 0.6,
        "length": 10,
        "breadth": 10,
        "height": 10,
        "declared_value": 500,
        "payment_mode": "prepaid",
    }


def run(aggregator, payload):
    return asyncio.run(aggregator.compute_rate_quotes(payload))


# ============================================
# JOIN & FILTER
# ============================================


class TestServiceabilityJoin:
    def test_one_timeout_two_quoted(self, rows, request_payload):
        adapter = FakeAdapter({CourierId.EKART: (5, ServiceabilityCheck(True))})
        aggregator = build_aggregator(
            rows, couriers=COURIERS, adapter=adapter, timeout=0.1
        )
        request_payload["service_modes"] = ["Surface"]

        result = run(aggregator, request_payload)

        assert {q.courier for q in result.quotes} == {
            CourierId.DELHIVERY,
            CourierId.DTDC,
        }
        ekart = [d for d in result.diagnostics if d.courier == CourierId.EKART]
        assert len(ekart) == 1
        assert ekart[0].serviceable is False
        assert ekart[0].reason == "timeout"

    def test_non_serviceable_never_quoted(self, rows, request_payload):
        adapter = FakeAdapter(
            {CourierId.DTDC: ServiceabilityCheck(False, "delivery pincode not serviceable")}
        )
        result = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)

        assert CourierId.DTDC not in {q.courier for q in result.quotes}
        assert len(result.quotes) == 4

    def test_nothing_serviceable_is_not_an_error(self, rows, request_payload):
        adapter = FakeAdapter(
            {courier: ServiceabilityCheck(False, "no") for courier in COURIERS}
        )
        result = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)

        assert result.quotes == []
        assert result.summary.total_options == 0
        assert result.summary.cheapest is None
        assert result.summary.fastest_delivery is None
        assert len(result.diagnostics) == 6
        assert all(d.reason == "no" for d in result.diagnostics)

    def test_serviceable_without_tariff_is_diagnosed(self, rows, request_payload):
        couriers = COURIERS + [CourierId.BLUEDART]
        result = run(build_aggregator(rows, couriers=couriers), request_payload)

        bluedart = [d for d in result.diagnostics if d.courier == CourierId.BLUEDART]
        assert len(bluedart) == 2
        assert all(d.serviceable and not d.quoted for d in bluedart)
        assert all(
            d.reason == "serviceable but no tariff configured" for d in bluedart
        )

    def test_empty_roster(self, rows, request_payload):
        result = run(build_aggregator(rows, couriers=[]), request_payload)
        assert result.quotes == []
        assert result.diagnostics == []


# ============================================
# ORDERING & GROUPING
# ============================================


class TestOrdering:
    def test_sorted_by_total(self, rows, request_payload):
        result = run(build_aggregator(rows, couriers=COURIERS), request_payload)
        totals = [q.total for q in result.quotes]
        assert totals == sorted(totals)
        assert len(result.quotes) == 6

    def test_ties_broken_by_courier_name(self, request_payload):
        same_price = [
            make_row(courier=courier, slab="1", base="50")
            for courier in (CourierId.XPRESSBEES, CourierId.DTDC, CourierId.DELHIVERY)
        ]
        request_payload["service_modes"] = ["Surface"]
        result = run(
            build_aggregator(
                same_price,
                couriers=[CourierId.XPRESSBEES, CourierId.DTDC, CourierId.DELHIVERY],
            ),
            request_payload,
        )
        assert [q.courier.display_name for q in result.quotes] == [
            "Delhivery",
            "DTDC",
            "XpressBees",
        ]

    def test_order_does_not_depend_on_probe_completion(self, rows, request_payload):
        adapter = FakeAdapter(
            {
                CourierId.DTDC: (0.1, ServiceabilityCheck(True)),
                CourierId.DELHIVERY: (0.05, ServiceabilityCheck(True)),
            }
        )
        first = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)
        second = run(build_aggregator(rows, couriers=list(reversed(COURIERS))), request_payload)
        assert [(q.courier, q.mode) for q in first.quotes] == [
            (q.courier, q.mode) for q in second.quotes
        ]

    def test_grouped_by_mode(self, rows, request_payload):
        result = run(build_aggregator(rows, couriers=COURIERS), request_payload)

        assert set(result.quotes_by_mode) == {ServiceMode.SURFACE, ServiceMode.AIR}
        for mode, quotes in result.quotes_by_mode.items():
            assert all(q.mode == mode for q in quotes)
            assert len(quotes) == 3

    def test_summary(self, rows, request_payload):
        result = run(build_aggregator(rows, couriers=COURIERS), request_payload)
        summary = result.summary

        assert summary.total_options == 6
        assert summary.options_by_mode == {ServiceMode.SURFACE: 3, ServiceMode.AIR: 3}
        # 0.6 kg lands on the 1 kg slab, DTDC surface is 45
        assert summary.cheapest.courier == CourierId.DTDC
        assert summary.cheapest.mode == ServiceMode.SURFACE
        assert summary.cheapest_by_mode[ServiceMode.AIR].courier == CourierId.DTDC
        assert summary.fastest_delivery == "1-2 days"

    def test_requested_modes_only(self, rows, request_payload):
        request_payload["service_modes"] = ["Express"]
        adapter = FakeAdapter()
        result = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)

        assert {q.mode for q in result.quotes} == {ServiceMode.AIR}
        assert {call[3] for call in adapter.calls} == {ServiceMode.AIR}
        assert list(result.quotes_by_mode) == [ServiceMode.AIR]

    def test_courier_filter_narrows_roster(self, rows, request_payload):
        request_payload["couriers"] = ["dtdc"]
        adapter = FakeAdapter()
        result = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)

        assert {q.courier for q in result.quotes} == {CourierId.DTDC}
        assert {call[0] for call in adapter.calls} == {CourierId.DTDC}
        assert {d.courier for d in result.diagnostics} == {CourierId.DTDC}

    def test_filter_outside_active_roster(self, rows, request_payload):
        request_payload["couriers"] = ["Blue Dart"]
        adapter = FakeAdapter()
        result = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)

        assert result.quotes == []
        assert result.diagnostics == []
        assert adapter.calls == []


# ============================================
# PRICING
# ============================================


class TestPricing:
    def test_weight_resolution(self, rows, request_payload):
        result = run(build_aggregator(rows, couriers=COURIERS), request_payload)

        assert result.zone == Zone.WITHIN_CITY
        assert result.weight.volumetric_weight == Decimal("0.2")
        assert result.weight.chargeable_weight == Decimal("0.6")
        assert all(q.slab == Decimal("1") for q in result.quotes)

    def test_seller_override_used(self, rows, request_payload):
        overrides = {
            "seller-1": [
                make_row(
                    courier=CourierId.DELHIVERY, slab="1", base="30", seller_id="seller-1"
                )
            ]
        }
        request_payload["seller_id"] = "seller-1"
        result = run(
            build_aggregator(rows, overrides=overrides, couriers=COURIERS), request_payload
        )

        delhivery = [
            q
            for q in result.quotes
            if q.courier == CourierId.DELHIVERY and q.mode == ServiceMode.SURFACE
        ][0]
        assert delhivery.breakdown.base == Decimal("30")
        assert delhivery.is_custom_rate is True
        assert result.has_custom_rates is True
        assert result.custom_rates_used == 1
        assert result.quotes[0] is delhivery

    def test_other_seller_gets_global_rate(self, rows, request_payload):
        overrides = {
            "seller-1": [
                make_row(
                    courier=CourierId.DELHIVERY, slab="1", base="30", seller_id="seller-1"
                )
            ]
        }
        request_payload["seller_id"] = "seller-2"
        result = run(
            build_aggregator(rows, overrides=overrides, couriers=COURIERS), request_payload
        )

        assert result.has_custom_rates is False
        assert all(not q.is_custom_rate for q in result.quotes)

    def test_cod(self, request_payload):
        rows = [
            make_row(slab="1", base="80", additional="10", cod_flat_fee="25", cod_percent="2")
        ]
        request_payload.update(
            {"weight": 2, "payment_mode": "COD", "service_modes": ["Surface"]}
        )
        result = run(build_aggregator(rows), request_payload)

        quote = result.to_dict()["rates"][0]
        assert quote["breakdown"] == {
            "base": 80.0,
            "additional_weight_charge": 20.0,
            "cod_charge": 27.0,
            "rto_charge": 0.0,
            "tax": 22.86,
            "total": 149.86,
        }

    def test_include_rto(self, request_payload):
        rows = [make_row(slab="1", base="50", rto_charge="6")]
        request_payload.update({"include_rto": True, "service_modes": ["Surface"]})
        result = run(build_aggregator(rows), request_payload)

        quote = result.quotes[0]
        # 0.6 kg is two started half kilos
        assert quote.breakdown.rto_charge == Decimal("12")
        assert quote.to_dict()["total"] == 73.16

    def test_special_zone_delivery_estimate(self, request_payload):
        rows = [
            make_row(zone=Zone.SPECIAL_ZONE, slab="1", base="90"),
            make_row(zone=Zone.SPECIAL_ZONE, mode=ServiceMode.AIR, slab="1", base="120"),
        ]
        request_payload["delivery_pincode"] = "781001"
        result = run(build_aggregator(rows), request_payload)

        assert result.zone == Zone.SPECIAL_ZONE
        estimates = {q.mode: q.estimated_delivery for q in result.quotes}
        assert estimates == {ServiceMode.SURFACE: "6-8 days", ServiceMode.AIR: "4-5 days"}


# ============================================
# DEGRADED INPUT & ERRORS
# ============================================


class TestDegradedAndErrors:
    def test_unknown_pincode_falls_back(self, request_payload):
        rows = [make_row(zone=Zone.REST_OF_INDIA, slab="1", base="70")]
        request_payload["delivery_pincode"] = "999999"
        result = run(build_aggregator(rows), request_payload)

        assert result.zone == Zone.REST_OF_INDIA
        assert result.zone_is_fallback is True
        assert result.warnings == [
            "pincode 999999 not found, zone defaulted to Rest of India"
        ]
        assert len(result.quotes) == 1

    def test_invalid_request(self, rows, request_payload):
        request_payload.update({"pickup_pincode": "1100", "weight": 0})
        with pytest.raises(ShipmentValidationError) as exc_info:
            run(build_aggregator(rows), request_payload)

        assert set(exc_info.value.fields) == {"pickup_pincode", "weight"}
        assert exc_info.value.status_code == 422

    def test_location_store_down(self, rows, request_payload):
        aggregator = RateAggregator(
            location_lookup=FakeLocationLookup(error=LocationStoreUnavailableError()),
            tariff_cache=TariffStoreCache(FakeTariffRepository(rows)),
            courier_roster=FakeRoster(COURIERS),
            prober=ServiceabilityProber(FakeAdapter()),
        )
        with pytest.raises(LocationStoreUnavailableError):
            run(aggregator, request_payload)

    def test_tariff_store_down(self, request_payload):
        aggregator = RateAggregator(
            location_lookup=FakeLocationLookup(),
            tariff_cache=TariffStoreCache(
                FakeTariffRepository(error=TariffStoreUnavailableError())
            ),
            courier_roster=FakeRoster(COURIERS),
            prober=ServiceabilityProber(FakeAdapter()),
        )
        with pytest.raises(TariffStoreUnavailableError):
            run(aggregator, request_payload)


# ============================================
# ENTRY POINTS
# ============================================


class TestEntryPoints:
    def test_store_reads_run_off_the_event_loop(self, rows, request_payload):
        loop_thread = threading.get_ident()
        read_threads = []

        class RecordingRoster(FakeRoster):
            def list_active_couriers(self):
                read_threads.append(threading.get_ident())
                return super().list_active_couriers()

        aggregator = build_aggregator(rows, couriers=COURIERS)
        aggregator.courier_roster = RecordingRoster(COURIERS)
        result = run(aggregator, request_payload)

        assert len(result.quotes) == 6
        assert read_threads and loop_thread not in read_threads

    def test_blocking_wrapper(self, rows, request_payload):
        result = build_aggregator(rows, couriers=COURIERS).compute_rate_quotes_blocking(
            ShipmentRequest(**request_payload)
        )
        assert len(result.quotes) == 6

    def test_latency_close_to_slowest_probe(self, rows, request_payload):
        adapter = FakeAdapter(
            {courier: (0.2, ServiceabilityCheck(True)) for courier in COURIERS}
        )
        start = time.perf_counter()
        result = run(build_aggregator(rows, couriers=COURIERS, adapter=adapter), request_payload)
        elapsed = time.perf_counter() - start

        assert len(result.quotes) == 6
        assert elapsed < 0.6

    def test_within_region_enabled_by_config(self, request_payload):
        rows = [make_row(zone=Zone.WITHIN_REGION, slab="1", base="60")]
        request_payload.update({"pickup_pincode": "110085", "delivery_pincode": "122001"})
        aggregator = build_aggregator(
            rows, config=RateEngineConfig(enable_within_region_zone=True)
        )
        result = run(aggregator, request_payload)
        assert result.zone == Zone.WITHIN_REGION
        assert len(result.quotes) == 1

    def test_to_dict_shape(self, rows, request_payload):
        payload = run(build_aggregator(rows, couriers=COURIERS), request_payload).to_dict()

        assert payload["zone"] == "Within City"
        assert payload["chargeable_weight"] == 0.6
        assert len(payload["rates"]) == 6
        assert set(payload["rates_by_mode"]) == {"standard", "express"}
        assert payload["summary"]["options_by_mode"] == {"standard": 3, "express": 3}
        assert payload["serviceability"]["total_checked"] == 6
        assert payload["rate_source"] == {"has_custom_rates": False, "custom_rates_used": 0}
        assert payload["rates"][0]["service_label"] == "Standard"
