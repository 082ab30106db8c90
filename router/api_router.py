from fastapi import APIRouter, Depends

from context_manager.context import build_request_context

# routers
from modules.serviceability import serviceability_router


# create a common master router for all the routes in the service
ApiRouter = APIRouter(prefix="/api/v1", dependencies=[Depends(build_request_context)])


# add all the routes to the master router
ApiRouter.include_router(serviceability_router)
