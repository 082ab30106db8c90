from modules.rate_engine.rate_engine_schema import (
    CourierId,
    ServiceabilityCheck,
    ServiceMode,
)

from shipping_partner.serviceability_client import (
    PartnerResponseError,
    PartnerServiceabilityClient,
)


class Bluedart(PartnerServiceabilityClient):

    courier = CourierId.BLUEDART

    location_finder_path = "/in/transportation/finder/v1/GetServicesforPincode"

    inbound_flags = {
        ServiceMode.AIR: ("ApexInbound", "eTailPrePaidAirInbound"),
        ServiceMode.SURFACE: ("GroundInbound", "eTailPrePaidGroundInbound"),
    }

    async def _services_for(self, pincode: str):
        response = await self.client.post(
            self.base_url + self.location_finder_path,
            json={
                "pinCode": pincode,
                "profile": {
                    "LoginID": self.api_config.username,
                    "LicenceKey": self.api_config.password,
                    "Api_type": "S",
                },
            },
            headers={"JWTToken": self.api_config.api_token},
        )
        response_data = self.parse_json(response)

        result = response_data.get("GetServicesforPincodeResult")
        if result is None:
            raise PartnerResponseError("GetServicesforPincodeResult missing")
        return result

    async def check_serviceability(self, origin_pincode, destination_pincode, mode):
        origin = await self._services_for(origin_pincode)
        if origin.get("IsError"):
            return ServiceabilityCheck(
                False, origin.get("ErrorMessage") or "pickup pincode not serviceable"
            )

        destination = await self._services_for(destination_pincode)
        if destination.get("IsError"):
            return ServiceabilityCheck(
                False,
                destination.get("ErrorMessage") or "delivery pincode not serviceable",
            )

        if not any(destination.get(flag) == "Yes" for flag in self.inbound_flags[mode]):
            return ServiceabilityCheck(False, f"no {mode.value.lower()} inbound service")

        return ServiceabilityCheck(True)
