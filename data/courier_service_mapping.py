# services
from modules.rate_engine.rate_engine_schema import CourierId

from shipping_partner.delhivery.delhivery import Delhivery
from shipping_partner.dtdc.dtdc import Dtdc
from shipping_partner.xpressbees.xpressbees import Xpressbees
from shipping_partner.ecom.ecom import Ecom
from shipping_partner.ekart.ekart import Ekart
from shipping_partner.bluedart.bluedart import Bluedart

courier_service_mapping = {
    CourierId.DELHIVERY: Delhivery,
    CourierId.DTDC: Dtdc,
    CourierId.XPRESSBEES: Xpressbees,
    CourierId.ECOM_EXPRESS: Ecom,
    CourierId.EKART: Ekart,
    CourierId.BLUEDART: Bluedart,
}
