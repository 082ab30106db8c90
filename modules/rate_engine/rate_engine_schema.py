"""
Rate Engine Types

Enumerations, request model and the value objects passed between the
zone classifier, weight resolver, tariff store, price calculator,
serviceability prober and rate aggregator.

Money and weights are carried as Decimal end to end. Rounding to two
places happens only in the to_dict() methods, which are the single
point where values leave the engine.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


PINCODE_REGEX = re.compile(r"^\d{6}$")

MONEY_PLACES = Decimal("0.01")
WEIGHT_PLACES = Decimal("0.001")


def round_money(value: Decimal) -> float:
    return float(Decimal(value).quantize(MONEY_PLACES, rounding=ROUND_HALF_UP))


def round_weight(value: Decimal) -> float:
    return float(Decimal(value).quantize(WEIGHT_PLACES, rounding=ROUND_HALF_UP))


def to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary expansion
    return Decimal(str(value))


# ============================================
# ENUMERATIONS
# ============================================


class Zone(str, Enum):
    WITHIN_CITY = "Within City"
    WITHIN_STATE = "Within State"
    WITHIN_REGION = "Within Region"
    METRO_TO_METRO = "Metro to Metro"
    REST_OF_INDIA = "Rest of India"
    SPECIAL_ZONE = "Special Zone"


class ServiceMode(str, Enum):
    SURFACE = "Surface"
    AIR = "Air"

    @property
    def label(self) -> str:
        return SERVICE_MODE_LABELS[self]

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalised = value.strip().lower()
            for mode, label in SERVICE_MODE_LABELS.items():
                if normalised in (mode.value.lower(), label.lower()):
                    return mode
        return None


SERVICE_MODE_LABELS = {
    ServiceMode.SURFACE: "Standard",
    ServiceMode.AIR: "Express",
}


class PaymentMode(str, Enum):
    PREPAID = "prepaid"
    COD = "cod"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalised = value.strip().lower()
            for mode in cls:
                if mode.value == normalised:
                    return mode
        return None


class CourierId(str, Enum):
    DELHIVERY = "delhivery"
    DTDC = "dtdc"
    EKART = "ekart"
    ECOM_EXPRESS = "ecom_express"
    XPRESSBEES = "xpressbees"
    BLUEDART = "bluedart"

    @property
    def display_name(self) -> str:
        return COURIER_DISPLAY_NAMES[self]

    @classmethod
    def from_name(cls, name: str) -> Optional["CourierId"]:
        """Resolve a stored or partner supplied courier name to its id."""
        if name is None:
            return None
        key = re.sub(r"[\s_\-]+", " ", str(name).strip().lower())
        return COURIER_ALIASES.get(key)


COURIER_DISPLAY_NAMES = {
    CourierId.DELHIVERY: "Delhivery",
    CourierId.DTDC: "DTDC",
    CourierId.EKART: "Ekart",
    CourierId.ECOM_EXPRESS: "Ecom Express",
    CourierId.XPRESSBEES: "XpressBees",
    CourierId.BLUEDART: "BlueDart",
}

# the only place alternative courier spellings are recognised
COURIER_ALIASES = {
    "delhivery": CourierId.DELHIVERY,
    "delhivery surface": CourierId.DELHIVERY,
    "delhivery express": CourierId.DELHIVERY,
    "dtdc": CourierId.DTDC,
    "dtdc surface": CourierId.DTDC,
    "dtdc air": CourierId.DTDC,
    "ekart": CourierId.EKART,
    "ekart logistics": CourierId.EKART,
    "flipkart ekart": CourierId.EKART,
    "ecom": CourierId.ECOM_EXPRESS,
    "ecom express": CourierId.ECOM_EXPRESS,
    "ecomexpress": CourierId.ECOM_EXPRESS,
    "xpressbees": CourierId.XPRESSBEES,
    "xpress bees": CourierId.XPRESSBEES,
    "xbees": CourierId.XPRESSBEES,
    "bluedart": CourierId.BLUEDART,
    "blue dart": CourierId.BLUEDART,
}


# ============================================
# REQUEST
# ============================================


class ShipmentRequest(BaseModel):
    # NaN and Infinity are valid JSON to python's decoder
    model_config = ConfigDict(allow_inf_nan=False)

    pickup_pincode: str
    delivery_pincode: str
    weight: float = Field(..., description="Actual weight in kg")
    length: Optional[float] = None
    breadth: Optional[float] = None
    height: Optional[float] = None
    declared_value: float = 0.0
    payment_mode: PaymentMode = PaymentMode.PREPAID
    seller_id: Optional[str] = None
    service_modes: List[ServiceMode] = Field(
        default_factory=lambda: [ServiceMode.SURFACE, ServiceMode.AIR]
    )
    # narrows the active roster, None quotes every active courier
    couriers: Optional[List[CourierId]] = None
    include_rto: bool = False

    @field_validator("pickup_pincode", "delivery_pincode", mode="before")
    @classmethod
    def validate_pincode(cls, value):
        value = str(value).strip() if value is not None else ""
        if not PINCODE_REGEX.match(value):
            raise ValueError("Pincode must be exactly 6 digits")
        return value

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, value):
        if value < 0.1:
            raise ValueError("Weight must be at least 0.1 kg")
        return value

    @field_validator("length", "breadth", "height")
    @classmethod
    def validate_dimension(cls, value):
        if value is not None and value <= 0:
            raise ValueError("Dimensions must be greater than 0")
        return value

    @field_validator("declared_value")
    @classmethod
    def validate_declared_value(cls, value):
        if value < 0:
            raise ValueError("Declared value cannot be negative")
        return value

    @field_validator("payment_mode", mode="before")
    @classmethod
    def coerce_payment_mode(cls, value):
        if isinstance(value, str):
            return PaymentMode(value)
        return value

    @field_validator("service_modes", mode="before")
    @classmethod
    def coerce_service_modes(cls, value):
        if value is None:
            return [ServiceMode.SURFACE, ServiceMode.AIR]
        if isinstance(value, (str, ServiceMode)):
            value = [value]
        return [ServiceMode(item) if isinstance(item, str) else item for item in value]

    @field_validator("service_modes")
    @classmethod
    def validate_service_modes(cls, value):
        if not value:
            raise ValueError("At least one service mode is required")
        # keep the caller's order, drop repeats
        return list(dict.fromkeys(value))

    @field_validator("couriers", mode="before")
    @classmethod
    def coerce_couriers(cls, value):
        if value is None:
            return None
        if isinstance(value, (str, CourierId)):
            value = [value]

        couriers = []
        for item in value:
            courier = item if isinstance(item, CourierId) else CourierId.from_name(item)
            if courier is None:
                raise ValueError(f"Unknown courier {item}")
            couriers.append(courier)

        if not couriers:
            raise ValueError("At least one courier is required when filtering")
        return list(dict.fromkeys(couriers))


# ============================================
# REFERENCE DATA
# ============================================


@dataclass(frozen=True)
class Location:
    pincode: str
    city: str
    state: str
    district: Optional[str] = None
    region: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "pincode": self.pincode,
            "city": self.city,
            "district": self.district,
            "state": self.state,
            "region": self.region,
        }


@dataclass(frozen=True)
class ZoneResult:
    zone: Zone
    is_fallback: bool = False


# ============================================
# WEIGHT
# ============================================


@dataclass(frozen=True)
class WeightResolution:
    actual_weight: Decimal
    volumetric_weight: Decimal
    chargeable_weight: Decimal


@dataclass(frozen=True)
class SlabSelection:
    slab: Decimal
    extra_units: int


# ============================================
# TARIFF
# ============================================


@dataclass(frozen=True)
class TariffRow:
    courier: CourierId
    mode: ServiceMode
    zone: Zone
    weight_slab: Decimal
    base_rate: Decimal
    additional_rate: Decimal
    cod_flat_fee: Decimal = Decimal("0")
    cod_percent: Decimal = Decimal("0")
    minimum_billable_weight: Decimal = Decimal("0")
    # per billed half kilo, charged only when the request asks for RTO
    rto_charge: Decimal = Decimal("0")
    seller_id: Optional[str] = None

    @property
    def key(self):
        return (self.courier, self.mode, self.zone, self.weight_slab)

    @property
    def is_global(self) -> bool:
        return self.seller_id is None


@dataclass(frozen=True)
class EffectiveTariff:
    row: TariffRow
    is_override: bool


# ============================================
# SERVICEABILITY
# ============================================


@dataclass(frozen=True)
class ServiceabilityCheck:
    """What a partner adapter answers for one lane."""

    serviceable: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class ServiceabilityResult:
    courier: CourierId
    mode: ServiceMode
    serviceable: bool
    reason: Optional[str] = None
    latency_ms: float = 0.0
    timed_out: bool = False


# ============================================
# QUOTES & RESULT
# ============================================


@dataclass(frozen=True)
class PriceBreakdown:
    base: Decimal
    additional_weight_charge: Decimal
    cod_charge: Decimal
    tax: Decimal
    total: Decimal
    billable_weight: Decimal
    extra_units: int
    rto_charge: Decimal = Decimal("0")

    def to_dict(self) -> Dict:
        return {
            "base": round_money(self.base),
            "additional_weight_charge": round_money(self.additional_weight_charge),
            "cod_charge": round_money(self.cod_charge),
            "rto_charge": round_money(self.rto_charge),
            "tax": round_money(self.tax),
            "total": round_money(self.total),
        }


@dataclass(frozen=True)
class RateQuote:
    courier: CourierId
    mode: ServiceMode
    zone: Zone
    chargeable_weight: Decimal
    slab: Decimal
    breakdown: PriceBreakdown
    is_custom_rate: bool
    estimated_delivery: str
    serviceable: bool = True

    @property
    def total(self) -> Decimal:
        return self.breakdown.total

    @property
    def sort_key(self):
        return (
            self.breakdown.total,
            self.courier.display_name.casefold(),
            self.mode.value,
        )

    def to_dict(self) -> Dict:
        return {
            "courier": self.courier.value,
            "courier_name": self.courier.display_name,
            "mode": self.mode.value,
            "service_label": self.mode.label,
            "zone": self.zone.value,
            "chargeable_weight": round_weight(self.chargeable_weight),
            "billable_weight": round_weight(self.breakdown.billable_weight),
            "slab": round_weight(self.slab),
            "extra_units": self.breakdown.extra_units,
            "breakdown": self.breakdown.to_dict(),
            "total": round_money(self.breakdown.total),
            "is_custom_rate": self.is_custom_rate,
            "estimated_delivery": self.estimated_delivery,
            "serviceable": self.serviceable,
        }


@dataclass(frozen=True)
class ServiceabilityDiagnostic:
    courier: CourierId
    mode: ServiceMode
    serviceable: bool
    quoted: bool
    reason: Optional[str]
    latency_ms: float

    def to_dict(self) -> Dict:
        return {
            "courier": self.courier.value,
            "courier_name": self.courier.display_name,
            "mode": self.mode.value,
            "serviceable": self.serviceable,
            "quoted": self.quoted,
            "reason": self.reason,
            "latency_ms": round(self.latency_ms, 2),
        }


@dataclass(frozen=True)
class RateSummary:
    total_options: int
    options_by_mode: Dict[ServiceMode, int]
    cheapest: Optional[RateQuote]
    cheapest_by_mode: Dict[ServiceMode, Optional[RateQuote]]
    fastest_delivery: Optional[str]

    def to_dict(self) -> Dict:
        def quote_ref(quote: Optional[RateQuote]):
            if quote is None:
                return None
            return {
                "courier": quote.courier.value,
                "courier_name": quote.courier.display_name,
                "mode": quote.mode.value,
                "total": round_money(quote.total),
            }

        return {
            "total_options": self.total_options,
            "options_by_mode": {
                mode.label.lower(): count
                for mode, count in self.options_by_mode.items()
            },
            "cheapest": quote_ref(self.cheapest),
            "cheapest_by_mode": {
                mode.label.lower(): quote_ref(quote)
                for mode, quote in self.cheapest_by_mode.items()
            },
            "fastest_delivery": self.fastest_delivery,
        }


@dataclass(frozen=True)
class AggregatedResult:
    request_id: str
    generated_at: datetime
    zone: Zone
    zone_is_fallback: bool
    weight: WeightResolution
    quotes: List[RateQuote]
    quotes_by_mode: Dict[ServiceMode, List[RateQuote]]
    summary: RateSummary
    diagnostics: List[ServiceabilityDiagnostic]
    has_custom_rates: bool = False
    custom_rates_used: int = 0
    warnings: List[str] = field(default_factory=list)

    @property
    def serviceable_couriers(self) -> List[CourierId]:
        return sorted(
            {d.courier for d in self.diagnostics if d.serviceable},
            key=lambda courier: courier.display_name.casefold(),
        )

    def to_dict(self) -> Dict:
        return {
            "request_id": self.request_id,
            "generated_at": self.generated_at.isoformat(),
            "zone": self.zone.value,
            "zone_is_fallback": self.zone_is_fallback,
            "actual_weight": round_weight(self.weight.actual_weight),
            "volumetric_weight": round_weight(self.weight.volumetric_weight),
            "chargeable_weight": round_weight(self.weight.chargeable_weight),
            "rates": [quote.to_dict() for quote in self.quotes],
            "rates_by_mode": {
                mode.label.lower(): [quote.to_dict() for quote in quotes]
                for mode, quotes in self.quotes_by_mode.items()
            },
            "summary": self.summary.to_dict(),
            "serviceability": {
                "total_checked": len(self.diagnostics),
                "serviceable_count": sum(1 for d in self.diagnostics if d.serviceable),
                "non_serviceable_count": sum(
                    1 for d in self.diagnostics if not d.serviceable
                ),
                "details": [d.to_dict() for d in self.diagnostics],
            },
            "rate_source": {
                "has_custom_rates": self.has_custom_rates,
                "custom_rates_used": self.custom_rates_used,
            },
            "warnings": list(self.warnings),
        }
