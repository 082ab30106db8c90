import os
import asyncio

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from logger import logger
from utils.exception_handler import (
    custom_http_exception_handler,
    handle_validation_error,
    rate_engine_exception_handler,
    request_validation_exception_handler,
)

from router import ApiRouter, StatusRouter
from modules.rate_engine import RateEngineError
from modules.serviceability.serviceability_service import ServiceabilityService

from database.db import init_models

app = FastAPI(title="Rate Engine")

# Routers
app.include_router(StatusRouter)
app.include_router(ApiRouter)

# Exception handlers
app.add_exception_handler(ValidationError, handle_validation_error)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(RateEngineError, rate_engine_exception_handler)
app.add_exception_handler(HTTPException, custom_http_exception_handler)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------
# Startup event
# -------------------------------
@app.on_event("startup")
async def startup_event():
    loop = asyncio.get_running_loop()
    # Initialize DB safely in executor
    await loop.run_in_executor(None, init_models)

    # warm the tariff snapshot so the first request does not pay for it
    aggregator = ServiceabilityService.get_rate_aggregator()
    await loop.run_in_executor(None, aggregator.tariff_cache.snapshot)
    logger.info(msg="Rate engine ready")


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 8000)),
    )
