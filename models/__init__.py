from .pincode_mapping import Pincode_Mapping
from .pincode_serviceability import Pincode_Serviceability
from .rate_card import Rate_Card
from .seller_rate_card import Seller_Rate_Card
