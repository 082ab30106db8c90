from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from typing import List, Optional, Union


class RateCalculatorParamsModel(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    pickup_pincode: str
    delivery_pincode: str
    weight: float = Field(validation_alias=AliasChoices("weight", "actualWeight"))
    length: Optional[float] = None
    breadth: Optional[float] = None
    height: Optional[float] = None
    declared_value: Optional[float] = Field(
        default=0.0, validation_alias=AliasChoices("declared_value", "shipment_value")
    )
    payment_mode: Optional[str] = Field(
        default="prepaid", validation_alias=AliasChoices("payment_mode", "paymentType")
    )
    service_modes: Optional[List[str]] = None
    # one courier name or a list of them
    couriers: Optional[Union[str, List[str]]] = Field(
        default=None, validation_alias=AliasChoices("couriers", "courier")
    )
    include_rto: Optional[bool] = Field(
        default=False, validation_alias=AliasChoices("include_rto", "includeRTO")
    )
    # falls back to the X-Seller-Id header
    seller_id: Optional[str] = None

    def to_shipment_payload(self, seller_id: Optional[str] = None) -> dict:
        payload = self.model_dump(exclude_none=True)
        payload["seller_id"] = self.seller_id or seller_id
        return payload


class PincodeDetailsResponseModel(BaseModel):
    pincode: str
    city: str
    district: Optional[str] = None
    state: str
    region: Optional[str] = None


class ZoneResponseModel(BaseModel):
    pickup_pincode: str
    delivery_pincode: str
    zone: str
    is_fallback: bool
