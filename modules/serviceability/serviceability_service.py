import http
from threading import Lock
from typing import Optional

from context_manager.context import context_user_data, get_user_data

from logger import logger

# schema
from schema.base import GenericResponseModel
from modules.serviceability.serviceability_schema import (
    PincodeDetailsResponseModel,
    RateCalculatorParamsModel,
    ZoneResponseModel,
)

# rate engine
from modules.rate_engine import RateAggregator, RateEngineConfig
from modules.rate_engine.rate_engine_config import SERVICEABILITY_SOURCE_API
from modules.rate_engine.rate_engine_schema import PINCODE_REGEX
from modules.rate_engine.repositories import (
    SqlCourierRoster,
    SqlLocationLookup,
    SqlTariffRepository,
)
from modules.rate_engine.serviceability_adapters import (
    PartnerServiceabilityAdapter,
    PincodeTableServiceabilityAdapter,
)
from modules.rate_engine.serviceability_prober import ServiceabilityProber
from modules.rate_engine.tariff_store import TariffStoreCache

from database import SessionLocal


def build_rate_aggregator(
    config: RateEngineConfig = None, session_factory=SessionLocal
) -> RateAggregator:
    config = config or RateEngineConfig.from_env()

    if config.serviceability_source == SERVICEABILITY_SOURCE_API:
        adapter = PartnerServiceabilityAdapter(config)
    else:
        adapter = PincodeTableServiceabilityAdapter(session_factory)

    return RateAggregator(
        location_lookup=SqlLocationLookup(
            session_factory,
            cache_ttl=config.location_cache_ttl,
            cache_size=config.location_cache_size,
        ),
        tariff_cache=TariffStoreCache(
            SqlTariffRepository(session_factory),
            refresh_seconds=config.tariff_refresh_seconds,
        ),
        courier_roster=SqlCourierRoster(session_factory),
        prober=ServiceabilityProber(
            adapter,
            timeout_for=config.probe_timeout_for,
            max_concurrent=config.max_concurrent_probes,
        ),
        config=config,
    )


class ServiceabilityService:

    _rate_aggregator: Optional[RateAggregator] = None
    _lock = Lock()

    @classmethod
    def get_rate_aggregator(cls) -> RateAggregator:
        if cls._rate_aggregator is None:
            with cls._lock:
                if cls._rate_aggregator is None:
                    cls._rate_aggregator = build_rate_aggregator()
        return cls._rate_aggregator

    @classmethod
    def set_rate_aggregator(cls, aggregator: Optional[RateAggregator]):
        with cls._lock:
            cls._rate_aggregator = aggregator

    @classmethod
    async def calculate_rates(
        cls, rate_calculator_params: RateCalculatorParamsModel
    ) -> GenericResponseModel:
        user_data = get_user_data()
        payload = rate_calculator_params.to_shipment_payload(
            seller_id=user_data.seller_id if user_data else None
        )

        result = await cls.get_rate_aggregator().compute_rate_quotes(payload)

        if result.quotes:
            message = f"Found {len(result.quotes)} shipping options"
        else:
            message = "No courier partners are serviceable for this route"

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            data=result.to_dict(),
            message=message,
        )

    @classmethod
    def get_pincode_details(cls, pincode: str) -> GenericResponseModel:
        pincode = str(pincode).strip()
        if not PINCODE_REGEX.match(pincode):
            return GenericResponseModel(
                status_code=http.HTTPStatus.BAD_REQUEST,
                status=False,
                message="Pincode must be exactly 6 digits",
            )

        location = cls.get_rate_aggregator().location_lookup.get_location(pincode)

        if location is None:
            return GenericResponseModel(
                status_code=http.HTTPStatus.NOT_FOUND,
                status=False,
                message="Pincode not found",
            )

        zone_classifier = cls.get_rate_aggregator().zone_classifier
        response_data = PincodeDetailsResponseModel(
            pincode=location.pincode,
            city=location.city,
            district=location.district,
            state=location.state,
            region=location.region or zone_classifier.region_for_state(location.state),
        )

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            data=response_data.model_dump(),
            message="Pincode data fetched successfully",
        )

    @classmethod
    def get_zone(cls, pickup_pincode: str, delivery_pincode: str) -> GenericResponseModel:
        for pincode in (pickup_pincode, delivery_pincode):
            if not PINCODE_REGEX.match(str(pincode).strip()):
                return GenericResponseModel(
                    status_code=http.HTTPStatus.BAD_REQUEST,
                    status=False,
                    message=f"Invalid pincode {pincode}",
                )

        zone_result = cls.get_rate_aggregator().zone_for(
            pickup_pincode.strip(), delivery_pincode.strip()
        )

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            data=ZoneResponseModel(
                pickup_pincode=pickup_pincode.strip(),
                delivery_pincode=delivery_pincode.strip(),
                zone=zone_result.zone.value,
                is_fallback=zone_result.is_fallback,
            ).model_dump(),
            message="Zone fetched successfully",
        )

    @classmethod
    def refresh_rate_cards(cls) -> GenericResponseModel:
        snapshot = cls.get_rate_aggregator().tariff_cache.refresh()

        logger.info(
            extra=context_user_data.get(),
            msg=f"Rate cards refreshed on request, v{snapshot.version}",
        )

        return GenericResponseModel(
            status_code=http.HTTPStatus.OK,
            status=True,
            data={"version": snapshot.version, "rows": len(snapshot)},
            message="Rate cards refreshed successfully",
        )
