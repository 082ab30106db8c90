import asyncio

from modules.rate_engine.rate_engine_schema import CourierId, ServiceabilityCheck

from shipping_partner.serviceability_client import PartnerServiceabilityClient


class Ekart(PartnerServiceabilityClient):

    courier = CourierId.EKART

    serviceability_path = "/api/v2/serviceability/"

    async def _check_pincode(self, pincode: str):
        response = await self.client.get(
            self.base_url + self.serviceability_path + str(pincode),
            headers={"Authorization": f"Bearer {self.api_config.api_token}"},
        )
        return self.parse_json(response)

    async def check_serviceability(self, origin_pincode, destination_pincode, mode):
        origin, destination = await asyncio.gather(
            self._check_pincode(origin_pincode),
            self._check_pincode(destination_pincode),
        )

        if not origin.get("status"):
            return ServiceabilityCheck(
                False, origin.get("remark") or "pickup pincode not serviceable"
            )

        if not destination.get("status"):
            return ServiceabilityCheck(
                False, destination.get("remark") or "delivery pincode not serviceable"
            )

        return ServiceabilityCheck(True)
