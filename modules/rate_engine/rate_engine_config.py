"""
Rate Engine Configuration

Values are read from the environment (a .env file is honoured) once, when
RateEngineConfig.from_env() is called, and frozen. The engine receives the
config object at construction and never reads the environment itself.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Mapping, Optional

from dotenv import load_dotenv

from .rate_engine_schema import CourierId

load_dotenv()


# Defaults
DEFAULT_GST_RATE = "0.18"
DEFAULT_VOLUMETRIC_DIVISOR = "5000"
DEFAULT_ADDITIONAL_WEIGHT_UNIT = "0.5"
DEFAULT_PROBE_TIMEOUT_SECONDS = "8"
DEFAULT_TARIFF_REFRESH_SECONDS = "300"
DEFAULT_LOCATION_CACHE_TTL = "3600"
DEFAULT_LOCATION_CACHE_SIZE = "1000"

SERVICEABILITY_SOURCE_API = "api"
SERVICEABILITY_SOURCE_TABLE = "table"

# Partner serviceability endpoints
PARTNER_API_DEFAULTS = {
    CourierId.DELHIVERY: "https://track.delhivery.com",
    CourierId.DTDC: "https://blktracksvc.dtdc.com",
    CourierId.EKART: "https://app.elite.ekartlogistics.in",
    CourierId.ECOM_EXPRESS: "https://api.ecomexpress.in",
    CourierId.XPRESSBEES: "https://ship.xpressbees.com",
    CourierId.BLUEDART: "https://apigateway.bluedart.com",
}


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_key(courier: CourierId) -> str:
    return courier.value.upper()


@dataclass(frozen=True)
class PartnerApiConfig:
    base_url: str
    api_token: str = ""
    username: str = ""
    password: str = ""


@dataclass(frozen=True)
class RateEngineConfig:
    gst_rate: Decimal = Decimal(DEFAULT_GST_RATE)
    volumetric_divisor: Decimal = Decimal(DEFAULT_VOLUMETRIC_DIVISOR)
    additional_weight_unit: Decimal = Decimal(DEFAULT_ADDITIONAL_WEIGHT_UNIT)

    probe_timeout_seconds: float = float(DEFAULT_PROBE_TIMEOUT_SECONDS)
    courier_probe_timeouts: Mapping[CourierId, float] = field(
        default_factory=lambda: MappingProxyType({})
    )
    # None means every probe starts at once
    max_concurrent_probes: Optional[int] = None

    tariff_refresh_seconds: float = float(DEFAULT_TARIFF_REFRESH_SECONDS)
    location_cache_ttl: float = float(DEFAULT_LOCATION_CACHE_TTL)
    location_cache_size: int = int(DEFAULT_LOCATION_CACHE_SIZE)

    enable_within_region_zone: bool = False
    serviceability_source: str = SERVICEABILITY_SOURCE_TABLE

    partner_api: Mapping[CourierId, PartnerApiConfig] = field(
        default_factory=lambda: MappingProxyType(
            {
                courier: PartnerApiConfig(base_url=url)
                for courier, url in PARTNER_API_DEFAULTS.items()
            }
        )
    )

    def probe_timeout_for(self, courier: CourierId) -> float:
        return self.courier_probe_timeouts.get(courier, self.probe_timeout_seconds)

    @classmethod
    def from_env(cls) -> "RateEngineConfig":
        courier_timeouts = {}
        partner_api = {}

        for courier in CourierId:
            key = _env_key(courier)

            timeout = os.getenv(f"SERVICEABILITY_TIMEOUT_{key}")
            if timeout:
                courier_timeouts[courier] = float(timeout)

            partner_api[courier] = PartnerApiConfig(
                base_url=os.getenv(
                    f"{key}_API_BASE_URL", PARTNER_API_DEFAULTS[courier]
                ),
                api_token=os.getenv(f"{key}_API_TOKEN", ""),
                username=os.getenv(f"{key}_API_USERNAME", ""),
                password=os.getenv(f"{key}_API_PASSWORD", ""),
            )

        max_concurrent = os.getenv("MAX_CONCURRENT_PROBES")

        return cls(
            gst_rate=Decimal(os.getenv("GST_RATE", DEFAULT_GST_RATE)),
            volumetric_divisor=Decimal(
                os.getenv("VOLUMETRIC_DIVISOR", DEFAULT_VOLUMETRIC_DIVISOR)
            ),
            additional_weight_unit=Decimal(
                os.getenv("ADDITIONAL_WEIGHT_UNIT", DEFAULT_ADDITIONAL_WEIGHT_UNIT)
            ),
            probe_timeout_seconds=float(
                os.getenv(
                    "SERVICEABILITY_TIMEOUT_SECONDS", DEFAULT_PROBE_TIMEOUT_SECONDS
                )
            ),
            courier_probe_timeouts=MappingProxyType(courier_timeouts),
            max_concurrent_probes=int(max_concurrent) if max_concurrent else None,
            tariff_refresh_seconds=float(
                os.getenv("TARIFF_REFRESH_SECONDS", DEFAULT_TARIFF_REFRESH_SECONDS)
            ),
            location_cache_ttl=float(
                os.getenv("LOCATION_CACHE_TTL", DEFAULT_LOCATION_CACHE_TTL)
            ),
            location_cache_size=int(
                os.getenv("LOCATION_CACHE_SIZE", DEFAULT_LOCATION_CACHE_SIZE)
            ),
            enable_within_region_zone=_env_flag("ENABLE_WITHIN_REGION_ZONE"),
            serviceability_source=os.getenv(
                "SERVICEABILITY_SOURCE", SERVICEABILITY_SOURCE_TABLE
            ).strip().lower(),
            partner_api=MappingProxyType(partner_api),
        )
