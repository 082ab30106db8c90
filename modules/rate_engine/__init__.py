from .rate_engine_config import RateEngineConfig
from .rate_engine_errors import (
    LocationStoreUnavailableError,
    RateEngineError,
    RateEngineInfrastructureError,
    ShipmentValidationError,
    TariffStoreUnavailableError,
)
from .rate_engine_schema import (
    AggregatedResult,
    CourierId,
    Location,
    PaymentMode,
    RateQuote,
    ServiceMode,
    ShipmentRequest,
    TariffRow,
    Zone,
)
from .rate_aggregator import RateAggregator
