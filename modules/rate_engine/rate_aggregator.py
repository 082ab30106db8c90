"""
Rate Aggregator

Turns one ShipmentRequest into an AggregatedResult:

1. resolve both pincodes and classify the zone
2. resolve volumetric and chargeable weight
3. start the serviceability probes for every (courier, mode)
4. while they run, price every (courier, mode) against the seller's
   effective tariff
5. join on (courier, mode), keep serviceable and priced pairs, sort by
   total then courier name, group by mode and summarise

No serviceable courier is a normal outcome: the result has no quotes and
the diagnostics say why each courier was excluded.
"""

import asyncio
import contextvars
import uuid
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError

from context_manager.context import context_user_data
from data.locations import default_delivery_estimate, delivery_estimates
from database import time_now_ist
from logger import logger

from .price_calculator import PriceCalculator
from .rate_engine_config import RateEngineConfig
from .rate_engine_errors import ShipmentValidationError
from .rate_engine_schema import (
    AggregatedResult,
    CourierId,
    RateQuote,
    RateSummary,
    ServiceabilityDiagnostic,
    ServiceabilityResult,
    ServiceMode,
    ShipmentRequest,
    Zone,
    ZoneResult,
)
from .serviceability_prober import ServiceabilityProber
from .tariff_store import EffectiveRateResolver, TariffStore, TariffStoreCache
from .weight_resolver import WeightResolver
from .zone_classifier import ZoneClassifier


NO_TARIFF_REASON = "serviceable but no tariff configured"
UNKNOWN_LOCATION_WARNING = "pincode {} not found, zone defaulted to Rest of India"


def delivery_estimate_for(zone: Zone, mode: ServiceMode) -> str:
    return delivery_estimates.get((zone.value, mode.value), default_delivery_estimate)


def estimate_sort_key(label: Optional[str]) -> Tuple[int, int]:
    # "2-3 days" -> (2, 3), unparseable labels sort last
    try:
        low, high = label.split()[0].split("-")
        return int(low), int(high)
    except (AttributeError, IndexError, ValueError):
        return (10**6, 10**6)


@dataclass
class PricedPair:
    quote: Optional[RateQuote]
    reason: Optional[str] = None


class RateAggregator:
    def __init__(
        self,
        location_lookup,
        tariff_cache: TariffStoreCache,
        courier_roster,
        prober: ServiceabilityProber,
        config: RateEngineConfig = None,
    ):
        self.config = config or RateEngineConfig()
        self.location_lookup = location_lookup
        self.tariff_cache = tariff_cache
        self.courier_roster = courier_roster
        self.prober = prober

        self.zone_classifier = ZoneClassifier(
            enable_within_region=self.config.enable_within_region_zone
        )
        self.weight_resolver = WeightResolver(
            volumetric_divisor=self.config.volumetric_divisor,
            additional_weight_unit=self.config.additional_weight_unit,
        )
        self.price_calculator = PriceCalculator(
            weight_resolver=self.weight_resolver, gst_rate=self.config.gst_rate
        )

    # ============================================
    # INPUT
    # ============================================

    @staticmethod
    def validate_request(request: Union[ShipmentRequest, Dict]) -> ShipmentRequest:
        if isinstance(request, ShipmentRequest):
            return request
        try:
            return ShipmentRequest.model_validate(request)
        except ValidationError as e:
            raise ShipmentValidationError.from_pydantic(e) from e

    def classify(self, pickup_pincode: str, delivery_pincode: str):
        origin = self.location_lookup.get_location(pickup_pincode)
        destination = self.location_lookup.get_location(delivery_pincode)

        warnings = [
            UNKNOWN_LOCATION_WARNING.format(pincode)
            for pincode, location in (
                (pickup_pincode, origin),
                (delivery_pincode, destination),
            )
            if location is None
        ]
        return self.zone_classifier.classify(origin, destination), warnings

    def active_couriers(self, request: ShipmentRequest) -> List[CourierId]:
        couriers = list(self.courier_roster.list_active_couriers())
        if request.couriers is None:
            return couriers
        return [courier for courier in couriers if courier in request.couriers]

    def load_inputs(self, request: ShipmentRequest):
        """Every blocking read one request needs: roster, tariffs, locations."""
        couriers = self.active_couriers(request)
        store = self.tariff_cache.for_seller(request.seller_id)
        zone_result, warnings = self.classify(
            request.pickup_pincode, request.delivery_pincode
        )
        return couriers, store, zone_result, warnings

    # ============================================
    # PRICING
    # ============================================

    def price_pair(
        self,
        store: TariffStore,
        resolver: EffectiveRateResolver,
        request: ShipmentRequest,
        courier: CourierId,
        mode: ServiceMode,
        zone: Zone,
        chargeable_weight,
    ) -> PricedPair:
        boundaries = store.slab_boundaries(
            courier, mode, zone, seller_id=request.seller_id
        )
        selection = self.weight_resolver.select_slab(chargeable_weight, boundaries)
        if selection is None:
            return PricedPair(quote=None, reason=NO_TARIFF_REASON)

        tariff = resolver.resolve(
            request.seller_id, courier, mode, zone, selection.slab
        )
        if tariff is None:
            return PricedPair(quote=None, reason=NO_TARIFF_REASON)

        breakdown = self.price_calculator.calculate(
            tariff,
            chargeable_weight,
            request.payment_mode,
            include_rto=request.include_rto,
        )

        return PricedPair(
            quote=RateQuote(
                courier=courier,
                mode=mode,
                zone=zone,
                chargeable_weight=chargeable_weight,
                slab=selection.slab,
                breakdown=breakdown,
                is_custom_rate=tariff.is_override,
                estimated_delivery=delivery_estimate_for(zone, mode),
            )
        )

    # ============================================
    # RESULT
    # ============================================

    @staticmethod
    def summarise(quotes: List[RateQuote], modes: List[ServiceMode]) -> RateSummary:
        by_mode = {mode: [q for q in quotes if q.mode == mode] for mode in modes}

        fastest = None
        if quotes:
            fastest = min(
                (q.estimated_delivery for q in quotes), key=estimate_sort_key
            )

        return RateSummary(
            total_options=len(quotes),
            options_by_mode={mode: len(items) for mode, items in by_mode.items()},
            cheapest=quotes[0] if quotes else None,
            cheapest_by_mode={
                mode: items[0] if items else None for mode, items in by_mode.items()
            },
            fastest_delivery=fastest,
        )

    @staticmethod
    def diagnose(
        couriers: List[CourierId],
        modes: List[ServiceMode],
        probes: Dict[Tuple[CourierId, ServiceMode], ServiceabilityResult],
        priced: Dict[Tuple[CourierId, ServiceMode], PricedPair],
    ) -> List[ServiceabilityDiagnostic]:
        diagnostics = []
        for mode in modes:
            for courier in couriers:
                probe = probes[(courier, mode)]
                pair = priced[(courier, mode)]

                reason = probe.reason
                if probe.serviceable and pair.quote is None:
                    reason = pair.reason

                diagnostics.append(
                    ServiceabilityDiagnostic(
                        courier=courier,
                        mode=mode,
                        serviceable=probe.serviceable,
                        quoted=probe.serviceable and pair.quote is not None,
                        reason=reason,
                        latency_ms=probe.latency_ms,
                    )
                )
        return diagnostics

    # ============================================
    # ENTRY POINTS
    # ============================================

    async def compute_rate_quotes(
        self, request: Union[ShipmentRequest, Dict]
    ) -> AggregatedResult:
        request = self.validate_request(request)
        modes = list(request.service_modes)
        request_id = uuid.uuid4().hex

        # store reads block, keep them off the event loop
        loop = asyncio.get_running_loop()
        couriers, store, zone_result, warnings = await loop.run_in_executor(
            None, contextvars.copy_context().run, self.load_inputs, request
        )
        weight = self.weight_resolver.resolve(
            request.weight, request.length, request.breadth, request.height
        )

        logger.info(
            extra=context_user_data.get(),
            msg=f"Rate request {request_id}: {request.pickup_pincode} -> "
            f"{request.delivery_pincode} zone={zone_result.zone.value} "
            f"chargeable={weight.chargeable_weight} couriers={len(couriers)}",
        )

        probe_task = asyncio.ensure_future(
            self.prober.probe_modes(
                couriers, request.pickup_pincode, request.delivery_pincode, modes
            )
        )
        # let the probes send their requests before pricing starts
        await asyncio.sleep(0)

        try:
            resolver = EffectiveRateResolver(store)
            priced = OrderedDict()
            for mode in modes:
                for courier in couriers:
                    priced[(courier, mode)] = self.price_pair(
                        store,
                        resolver,
                        request,
                        courier,
                        mode,
                        zone_result.zone,
                        weight.chargeable_weight,
                    )
        except BaseException:
            probe_task.cancel()
            raise

        probes = await probe_task

        quotes = [
            pair.quote
            for key, pair in priced.items()
            if pair.quote is not None and probes[key].serviceable
        ]
        quotes.sort(key=lambda quote: quote.sort_key)

        quotes_by_mode = OrderedDict(
            (mode, [q for q in quotes if q.mode == mode]) for mode in modes
        )

        result = AggregatedResult(
            request_id=request_id,
            generated_at=time_now_ist(),
            zone=zone_result.zone,
            zone_is_fallback=zone_result.is_fallback,
            weight=weight,
            quotes=quotes,
            quotes_by_mode=quotes_by_mode,
            summary=self.summarise(quotes, modes),
            diagnostics=self.diagnose(couriers, modes, probes, priced),
            has_custom_rates=store.has_overrides(request.seller_id),
            custom_rates_used=sum(1 for q in quotes if q.is_custom_rate),
            warnings=warnings,
        )

        if not quotes:
            logger.info(
                extra=context_user_data.get(),
                msg=f"Rate request {request_id}: no serviceable couriers",
            )
        return result

    def compute_rate_quotes_blocking(
        self, request: Union[ShipmentRequest, Dict]
    ) -> AggregatedResult:
        """For callers without a running event loop."""
        return asyncio.run(self.compute_rate_quotes(request))

    def zone_for(self, pickup_pincode: str, delivery_pincode: str) -> ZoneResult:
        zone_result, _ = self.classify(pickup_pincode, delivery_pincode)
        return zone_result
