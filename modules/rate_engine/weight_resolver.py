"""
Weight Resolver

volumetric weight = L x W x H / 5000 (cm -> kg)
chargeable weight = max(actual weight, volumetric weight)

A chargeable weight is billed against the smallest configured slab that
covers it. Above the largest slab the largest one is used and every
started half kilo beyond it is one extra unit.
"""

from bisect import bisect_left
from decimal import Decimal, ROUND_CEILING
from typing import Optional, Sequence

from .rate_engine_schema import SlabSelection, WeightResolution, to_decimal


ZERO = Decimal("0")


class WeightResolver:

    # Volumetric divisor (standard for couriers)
    VOLUMETRIC_DIVISOR = Decimal("5000")

    # Billing unit above a slab, in kg
    ADDITIONAL_WEIGHT_UNIT = Decimal("0.5")

    def __init__(
        self,
        volumetric_divisor: Decimal = None,
        additional_weight_unit: Decimal = None,
    ):
        self.volumetric_divisor = volumetric_divisor or self.VOLUMETRIC_DIVISOR
        self.additional_weight_unit = (
            additional_weight_unit or self.ADDITIONAL_WEIGHT_UNIT
        )

    def calculate_volumetric_weight(self, length, breadth, height) -> Decimal:
        if not length or not breadth or not height:
            return ZERO

        return (
            to_decimal(length) * to_decimal(breadth) * to_decimal(height)
        ) / self.volumetric_divisor

    def resolve(self, actual_weight, length=None, breadth=None, height=None):
        actual = to_decimal(actual_weight)
        volumetric = self.calculate_volumetric_weight(length, breadth, height)

        return WeightResolution(
            actual_weight=actual,
            volumetric_weight=volumetric,
            chargeable_weight=max(actual, volumetric),
        )

    def units_of(self, weight: Decimal) -> int:
        """Started billing units in weight, e.g. 1.2 kg -> 3 half kilos"""
        weight = to_decimal(weight)
        if weight <= ZERO:
            return 0
        return int(
            (weight / self.additional_weight_unit).to_integral_value(
                rounding=ROUND_CEILING
            )
        )

    def extra_units(self, weight: Decimal, slab: Decimal) -> int:
        return self.units_of(to_decimal(weight) - to_decimal(slab))

    def select_slab(
        self, chargeable_weight: Decimal, boundaries: Sequence[Decimal]
    ) -> Optional[SlabSelection]:
        """
        boundaries must be sorted ascending. Returns None when there are
        no boundaries at all.
        """
        if not boundaries:
            return None

        chargeable_weight = to_decimal(chargeable_weight)
        index = bisect_left(boundaries, chargeable_weight)

        if index < len(boundaries):
            return SlabSelection(slab=boundaries[index], extra_units=0)

        largest = boundaries[-1]
        return SlabSelection(
            slab=largest, extra_units=self.extra_units(chargeable_weight, largest)
        )
