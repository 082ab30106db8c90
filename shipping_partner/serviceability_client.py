import httpx

from context_manager.context import context_user_data
from logger import logger

from modules.rate_engine.rate_engine_schema import CourierId, ServiceabilityCheck, ServiceMode


class PartnerResponseError(Exception):
    """The partner answered with a body we cannot interpret"""


class PartnerServiceabilityClient:
    """
    One partner's pincode serviceability API. Subclasses implement
    check_serviceability; the http client and credentials are handed in
    so one request's probes never share connection state.
    """

    courier: CourierId = None

    def __init__(self, api_config, client: httpx.AsyncClient):
        self.api_config = api_config
        self.client = client

    @property
    def base_url(self) -> str:
        return self.api_config.base_url.rstrip("/")

    async def check_serviceability(
        self, origin_pincode: str, destination_pincode: str, mode: ServiceMode
    ) -> ServiceabilityCheck:
        raise NotImplementedError

    def parse_json(self, response: httpx.Response):
        response.raise_for_status()
        try:
            return response.json()
        except ValueError as e:
            logger.error(
                extra=context_user_data.get(),
                msg=f"{self.courier.display_name} serviceability: invalid JSON {e}",
            )
            raise PartnerResponseError(
                f"invalid JSON from {self.courier.display_name}"
            ) from e
