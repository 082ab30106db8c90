from modules.rate_engine.rate_engine_schema import (
    CourierId,
    ServiceabilityCheck,
    ServiceMode,
)

from shipping_partner.serviceability_client import PartnerServiceabilityClient


class Xpressbees(PartnerServiceabilityClient):

    courier = CourierId.XPRESSBEES

    serviceability_path = "/api/courier/serviceability"

    async def check_serviceability(self, origin_pincode, destination_pincode, mode):
        body = {
            "origin": origin_pincode,
            "destination": destination_pincode,
            "payment_type": "prepaid",
        }

        response = await self.client.post(
            self.base_url + self.serviceability_path,
            json=body,
            headers={
                "Authorization": f"Bearer {self.api_config.api_token}",
                "Content-Type": "application/json",
            },
        )
        response_data = self.parse_json(response)

        services = response_data.get("data") or []
        if not response_data.get("status") or not services:
            return ServiceabilityCheck(
                False, response_data.get("message") or "lane not serviceable"
            )

        # air products carry "air" in their name, everything else is surface
        air_services = [s for s in services if "air" in str(s.get("name", "")).lower()]
        if mode == ServiceMode.AIR and not air_services:
            return ServiceabilityCheck(False, "no air service on this lane")
        if mode == ServiceMode.SURFACE and len(air_services) == len(services):
            return ServiceabilityCheck(False, "no surface service on this lane")

        return ServiceabilityCheck(True)
