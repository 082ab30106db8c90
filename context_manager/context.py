import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from logger import logger


@dataclass(frozen=True)
class RequesterData:
    request_id: str
    seller_id: Optional[str] = None

    def __str__(self):
        return f"request_id={self.request_id} seller_id={self.seller_id or '-'}"


# defining the context variable that carries the requester through a request
context_user_data: ContextVar = ContextVar("user_data", default="")


# whenever an api is hit, define the context variables for it
async def build_request_context(
    x_seller_id: Optional[str] = Header(default=None),
):
    context_user_data.set(
        RequesterData(request_id=uuid.uuid4().hex, seller_id=x_seller_id)
    )
    logger.info(extra=context_user_data.get(), msg="REQUEST_INITIATED")


def get_user_data() -> Optional[RequesterData]:
    """
    Safely get the requester data from context.
    Returns None if the context has not been built for this request.
    """
    user_data = context_user_data.get()
    if not isinstance(user_data, RequesterData):
        return None
    return user_data
