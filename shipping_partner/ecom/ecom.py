from modules.rate_engine.rate_engine_schema import CourierId, ServiceabilityCheck

from shipping_partner.serviceability_client import (
    PartnerResponseError,
    PartnerServiceabilityClient,
)


class Ecom(PartnerServiceabilityClient):

    courier = CourierId.ECOM_EXPRESS

    pincode_check_path = "/apiv2/pincode/"

    async def _pincode_record(self, pincode: str):
        response = await self.client.post(
            self.base_url + self.pincode_check_path,
            data={
                "username": self.api_config.username,
                "password": self.api_config.password,
                "pincode": pincode,
            },
        )
        response_data = self.parse_json(response)

        # the API answers either with a list of pincode records or a status object
        if isinstance(response_data, list):
            for record in response_data:
                if str(record.get("pincode")) == str(pincode):
                    return record
            return None

        if isinstance(response_data, dict):
            if response_data.get("status") in (True, 1):
                return response_data
            return None

        raise PartnerResponseError("unexpected Ecom Express pincode response")

    async def check_serviceability(self, origin_pincode, destination_pincode, mode):
        origin = await self._pincode_record(origin_pincode)
        if origin is None or origin.get("active") is False:
            return ServiceabilityCheck(False, "pickup pincode not serviceable")

        destination = await self._pincode_record(destination_pincode)
        if destination is None or destination.get("active") is False:
            return ServiceabilityCheck(False, "delivery pincode not serviceable")

        return ServiceabilityCheck(True)
