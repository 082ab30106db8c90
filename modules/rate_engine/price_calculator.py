"""
Price Calculator

    billable    = max(chargeable, minimum billable weight)
    extra units = ceil(max(0, billable - slab) / 0.5)
    additional  = extra units x additional rate
    cod         = cod flat fee + cod percent / 100 x (base + additional)   (COD only)
    rto         = rto charge x ceil(billable / 0.5)                     (RTO only)
    subtotal    = base + additional + cod + rto
    tax         = subtotal x GST
    total       = subtotal + tax

Everything is accumulated in Decimal without rounding. Rounding happens
when a quote is serialised.
"""

from decimal import Decimal

from .rate_engine_schema import (
    EffectiveTariff,
    PaymentMode,
    PriceBreakdown,
    to_decimal,
)
from .weight_resolver import WeightResolver


class PriceCalculator:

    GST_RATE = Decimal("0.18")

    def __init__(self, weight_resolver: WeightResolver = None, gst_rate: Decimal = None):
        self.weight_resolver = weight_resolver or WeightResolver()
        self.gst_rate = self.GST_RATE if gst_rate is None else to_decimal(gst_rate)

    def calculate_cod_charge(self, tariff: EffectiveTariff, freight: Decimal) -> Decimal:
        row = tariff.row
        return to_decimal(row.cod_flat_fee) + (
            to_decimal(row.cod_percent) / Decimal("100")
        ) * freight

    def calculate_rto_charge(self, tariff: EffectiveTariff, billable_weight: Decimal) -> Decimal:
        units = self.weight_resolver.units_of(billable_weight)
        return to_decimal(tariff.row.rto_charge) * units

    def calculate(
        self,
        tariff: EffectiveTariff,
        chargeable_weight,
        payment_mode: PaymentMode,
        include_rto: bool = False,
    ) -> PriceBreakdown:
        row = tariff.row

        billable_weight = max(
            to_decimal(chargeable_weight), to_decimal(row.minimum_billable_weight)
        )
        extra_units = self.weight_resolver.extra_units(billable_weight, row.weight_slab)

        base = to_decimal(row.base_rate)
        additional = to_decimal(row.additional_rate) * extra_units

        # cod percent applies to freight, not to the declared value
        cod = Decimal("0")
        if payment_mode == PaymentMode.COD:
            cod = self.calculate_cod_charge(tariff, base + additional)

        rto = Decimal("0")
        if include_rto:
            rto = self.calculate_rto_charge(tariff, billable_weight)

        subtotal = base + additional + cod + rto
        tax = subtotal * self.gst_rate

        return PriceBreakdown(
            base=base,
            additional_weight_charge=additional,
            cod_charge=cod,
            tax=tax,
            total=subtotal + tax,
            billable_weight=billable_weight,
            extra_units=extra_units,
            rto_charge=rto,
        )
