from .api_router import ApiRouter
from .status_router import StatusRouter
