from context_manager.context import context_user_data
from logger import logger

from modules.rate_engine.rate_engine_schema import CourierId, ServiceabilityCheck

from shipping_partner.serviceability_client import PartnerServiceabilityClient


class Delhivery(PartnerServiceabilityClient):

    courier = CourierId.DELHIVERY

    # API URL'S
    pincode_serviceability_path = "/c/api/pin-codes/json/"

    def headers(self):
        return {
            "Authorization": "Token " + self.api_config.api_token,
            "Content-Type": "application/json",
        }

    async def check_serviceability(self, origin_pincode, destination_pincode, mode):
        response = await self.client.get(
            self.base_url + self.pincode_serviceability_path,
            params={"filter_codes": f"{origin_pincode},{destination_pincode}"},
            headers=self.headers(),
        )
        response_data = self.parse_json(response)

        postal_codes = {
            str(entry.get("postal_code", {}).get("pin")): entry.get("postal_code", {})
            for entry in response_data.get("delivery_codes", [])
        }

        origin = postal_codes.get(str(origin_pincode))
        destination = postal_codes.get(str(destination_pincode))

        if origin is None or origin.get("pickup") != "Y":
            return ServiceabilityCheck(False, "pickup pincode not serviceable")

        if destination is None or (
            destination.get("pre_paid") != "Y" and destination.get("cod") != "Y"
        ):
            return ServiceabilityCheck(False, "delivery pincode not serviceable")

        logger.info(
            extra=context_user_data.get(),
            msg=f"Delhivery serviceable {origin_pincode} -> {destination_pincode}",
        )
        return ServiceabilityCheck(True)
