from typing import List, Dict
from pydantic import ValidationError
from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from context_manager.context import context_user_data
from logger import logger

from modules.rate_engine.rate_engine_errors import (
    RateEngineError,
    RateEngineInfrastructureError,
    ShipmentValidationError,
)


# format the validation errors into our desired output
def format_validation_errors(errors: List[dict]) -> Dict:
    formatted_errors = {}

    for error in errors:
        # Extract the field name and error message
        field = error["loc"][-1] if len(error["loc"]) > 1 else "Unknown"
        message = error["msg"]

        # Add to the formatted_errors dictionary
        if field in formatted_errors:
            formatted_errors[field].append(message)
        else:
            formatted_errors[field] = [message]

    return format_field_errors(formatted_errors)


def format_field_errors(fields: Dict[str, List[str]]) -> Dict:
    return {
        "data": {"fields": fields},
        "message": "Validation error occurred.",
        "status": False,
    }


def handle_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content=format_validation_errors(exc.errors()))


async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    logger.error(
        extra=context_user_data.get(),
        msg=f"422 on {request.url}: {exc.errors()}",
    )
    return JSONResponse(status_code=422, content=format_validation_errors(exc.errors()))


def shipment_validation_error_response(exc: ShipmentValidationError) -> JSONResponse:
    logger.info(
        extra=context_user_data.get(),
        msg=f"Rejected shipment request: {exc.fields}",
    )
    return JSONResponse(status_code=422, content=format_field_errors(exc.fields))


def infrastructure_error_response(exc: RateEngineInfrastructureError) -> JSONResponse:
    logger.error(
        extra=context_user_data.get(),
        msg=f"Rate engine infrastructure error {exc.code}: {exc.message}",
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "data": {"code": exc.code},
            "message": exc.message,
            "status": False,
        },
    )


async def rate_engine_exception_handler(
    request: Request, exc: RateEngineError
) -> JSONResponse:
    if isinstance(exc, ShipmentValidationError):
        return shipment_validation_error_response(exc)
    if isinstance(exc, RateEngineInfrastructureError):
        return infrastructure_error_response(exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"data": {"code": exc.code}, "message": exc.message, "status": False},
    )


# Custom internal server error handler
async def custom_http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:
    if exc.status_code == 500:
        logger.error(
            extra=context_user_data.get(), msg=f"Internal server error: {exc.detail}"
        )
        return JSONResponse(
            status_code=500,
            content={
                "detail": "An internal server error occurred. Please try again later."
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )
