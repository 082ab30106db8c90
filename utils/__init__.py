from utils.response_handler import build_api_response
from utils.exception_handler import (
    infrastructure_error_response,
    shipment_validation_error_response,
)

__all__ = [
    "build_api_response",
    "infrastructure_error_response",
    "shipment_validation_error_response",
]
