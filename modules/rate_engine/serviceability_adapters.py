"""
Serviceability adapters the prober can be wired with.

PartnerServiceabilityAdapter asks each courier's own API through the
classes in data.courier_service_mapping.

PincodeTableServiceabilityAdapter answers from the pincode_serviceability
table, one row per (pincode, courier) with pickup and delivery flags per
mode.
"""

import asyncio
from typing import Callable, Mapping, Optional

import httpx
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import SessionLocal
from models import Pincode_Serviceability

from .rate_engine_config import RateEngineConfig
from .rate_engine_schema import CourierId, ServiceabilityCheck, ServiceMode


NO_ADAPTER_REASON = "no serviceability adapter configured"


class PartnerServiceabilityAdapter:
    def __init__(
        self,
        config: RateEngineConfig,
        courier_mapping: Mapping = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if courier_mapping is None:
            from data.courier_service_mapping import courier_service_mapping

            courier_mapping = courier_service_mapping

        self.config = config
        self.courier_mapping = courier_mapping
        self.transport = transport

    async def check_serviceable(
        self,
        courier: CourierId,
        origin_pincode: str,
        destination_pincode: str,
        mode: ServiceMode,
    ) -> ServiceabilityCheck:
        partner_class = self.courier_mapping.get(courier)
        api_config = self.config.partner_api.get(courier)
        if partner_class is None or api_config is None:
            return ServiceabilityCheck(False, NO_ADAPTER_REASON)

        async with httpx.AsyncClient(
            timeout=self.config.probe_timeout_for(courier), transport=self.transport
        ) as client:
            partner = partner_class(api_config, client)
            return await partner.check_serviceability(
                origin_pincode, destination_pincode, mode
            )


class PincodeTableServiceabilityAdapter:

    flag_columns = {
        ServiceMode.SURFACE: ("surface_pickup", "surface_delivery"),
        ServiceMode.AIR: ("air_pickup", "air_delivery"),
    }

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def _lookup(self, courier, origin_pincode, destination_pincode, mode):
        pickup_column, delivery_column = self.flag_columns[mode]

        with self.session_factory() as db:
            records = (
                db.execute(
                    select(Pincode_Serviceability).where(
                        Pincode_Serviceability.courier == courier.value,
                        Pincode_Serviceability.pincode.in_(
                            [int(origin_pincode), int(destination_pincode)]
                        ),
                        Pincode_Serviceability.is_deleted.is_(False),
                    )
                )
                .scalars()
                .all()
            )

        by_pincode = {str(record.pincode): record for record in records}
        origin = by_pincode.get(str(origin_pincode))
        destination = by_pincode.get(str(destination_pincode))

        if origin is None or not getattr(origin, pickup_column):
            return ServiceabilityCheck(False, "pickup pincode not serviceable")
        if destination is None or not getattr(destination, delivery_column):
            return ServiceabilityCheck(False, "delivery pincode not serviceable")
        return ServiceabilityCheck(True)

    async def check_serviceable(
        self,
        courier: CourierId,
        origin_pincode: str,
        destination_pincode: str,
        mode: ServiceMode,
    ) -> ServiceabilityCheck:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                None,
                self._lookup,
                courier,
                origin_pincode,
                destination_pincode,
                mode,
            )
        except SQLAlchemyError as e:
            raise RuntimeError(f"serviceability table unavailable: {e}") from e
