from modules.rate_engine.rate_engine_schema import CourierId, ServiceabilityCheck

from shipping_partner.serviceability_client import (
    PartnerResponseError,
    PartnerServiceabilityClient,
)


class Dtdc(PartnerServiceabilityClient):

    courier = CourierId.DTDC

    pincode_serviceability_path = "/dtdc-api/pincode/check"

    async def check_serviceability(self, origin_pincode, destination_pincode, mode):
        body = {"orgPincode": origin_pincode, "desPincode": destination_pincode}

        response = await self.client.post(
            self.base_url + self.pincode_serviceability_path,
            json=body,
            headers={
                "x-access-token": self.api_config.api_token,
                "Content-Type": "application/json",
            },
        )
        response_data = self.parse_json(response)

        zipcode_resp = response_data.get("ZIPCODE_RESP")
        if not isinstance(zipcode_resp, list):
            raise PartnerResponseError("ZIPCODE_RESP missing from DTDC response")

        if not zipcode_resp:
            return ServiceabilityCheck(False, "lane not serviceable")

        for entry in zipcode_resp:
            if entry.get("SERVFLAG") != "Y":
                return ServiceabilityCheck(
                    False, entry.get("MESSAGE") or "lane not serviceable"
                )

        return ServiceabilityCheck(True)
