import http
from fastapi import APIRouter

from context_manager.context import context_user_data
from logger import logger

# schema
from schema.base import GenericResponseModel
from modules.serviceability.serviceability_schema import RateCalculatorParamsModel

# rate engine
from modules.rate_engine import RateEngineInfrastructureError, ShipmentValidationError

# utils
from utils.response_handler import build_api_response
from utils.exception_handler import (
    infrastructure_error_response,
    shipment_validation_error_response,
)

# services
from .serviceability_service import ServiceabilityService


serviceability_router = APIRouter(tags=["serviceability"])


@serviceability_router.post(
    "/ratecalculator",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def calculate_rate(rate_calculator_params: RateCalculatorParamsModel):
    try:
        response: GenericResponseModel = await ServiceabilityService.calculate_rates(
            rate_calculator_params
        )
        return build_api_response(response)

    except ShipmentValidationError as e:
        return shipment_validation_error_response(e)

    except RateEngineInfrastructureError as e:
        return infrastructure_error_response(e)

    except Exception as e:
        logger.error(
            extra=context_user_data.get(),
            msg=f"Unhandled error in rate calculator: {str(e)}",
        )
        return build_api_response(
            GenericResponseModel(
                status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
                data=str(e),
                message="An error occurred while calculating the rate.",
            )
        )


@serviceability_router.get(
    "/pincode/details",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def get_pincode_details(pincode: str):
    try:
        response: GenericResponseModel = ServiceabilityService.get_pincode_details(
            pincode=pincode
        )
        return build_api_response(response)

    except RateEngineInfrastructureError as e:
        return infrastructure_error_response(e)

    except Exception as e:
        return build_api_response(
            GenericResponseModel(
                status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
                data=str(e),
                message="An error occurred while getting the pincode details.",
            )
        )


@serviceability_router.get(
    "/zone",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def get_zone(pickup_pincode: str, delivery_pincode: str):
    try:
        response: GenericResponseModel = ServiceabilityService.get_zone(
            pickup_pincode=pickup_pincode, delivery_pincode=delivery_pincode
        )
        return build_api_response(response)

    except RateEngineInfrastructureError as e:
        return infrastructure_error_response(e)

    except Exception as e:
        return build_api_response(
            GenericResponseModel(
                status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
                data=str(e),
                message="An error occurred while getting the zone.",
            )
        )


@serviceability_router.post(
    "/rate-card/refresh",
    status_code=http.HTTPStatus.OK,
    response_model=GenericResponseModel,
)
async def refresh_rate_cards():
    try:
        response: GenericResponseModel = ServiceabilityService.refresh_rate_cards()
        return build_api_response(response)

    except RateEngineInfrastructureError as e:
        return infrastructure_error_response(e)

    except Exception as e:
        logger.error(
            extra=context_user_data.get(),
            msg=f"Unhandled error refreshing rate cards: {str(e)}",
        )
        return build_api_response(
            GenericResponseModel(
                status_code=http.HTTPStatus.INTERNAL_SERVER_ERROR,
                data=str(e),
                message="An error occurred while refreshing the rate cards.",
            )
        )
