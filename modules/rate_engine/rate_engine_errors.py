from typing import Dict, List


class RateEngineError(Exception):
    """Base class for errors the rate engine raises to its callers"""

    def __init__(self, message: str, code: str, status_code: int = 400):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class ShipmentValidationError(RateEngineError):
    """The shipment request is malformed. Carries a field -> messages map."""

    def __init__(self, fields: Dict[str, List[str]], message: str = None):
        self.fields = fields
        super().__init__(
            message=message or "Validation error occurred.",
            code="INVALID_SHIPMENT_REQUEST",
            status_code=422,
        )

    @classmethod
    def from_pydantic(cls, exc) -> "ShipmentValidationError":
        fields: Dict[str, List[str]] = {}
        for error in exc.errors():
            field = str(error["loc"][-1]) if error["loc"] else "Unknown"
            fields.setdefault(field, []).append(error["msg"])
        return cls(fields)


class RateEngineInfrastructureError(RateEngineError):
    """A backing store could not be read. Never used for business outcomes."""

    def __init__(self, message: str, code: str):
        super().__init__(message=message, code=code, status_code=503)


class TariffStoreUnavailableError(RateEngineInfrastructureError):
    def __init__(self, message: str = "Rate cards are currently unavailable"):
        super().__init__(message=message, code="TARIFF_STORE_UNAVAILABLE")


class LocationStoreUnavailableError(RateEngineInfrastructureError):
    def __init__(self, message: str = "Pincode directory is currently unavailable"):
        super().__init__(message=message, code="LOCATION_STORE_UNAVAILABLE")
