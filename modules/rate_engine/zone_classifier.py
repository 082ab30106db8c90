"""
Zone Classifier

Maps a (pickup, delivery) pair of locations to exactly one pricing zone.
The rules are an ordered list and the first match wins:

1. delivery state is a special-zone state        -> Special Zone
2. either location is unknown                    -> Rest of India (fallback)
3. same district (city when district is missing)
   and same state                                -> Within City
4. same state                                    -> Within State
5. both cities are metros                        -> Metro to Metro
6. same macro-region, only when enabled          -> Within Region
7. anything else                                 -> Rest of India

No I/O happens here; the caller resolves pincodes to Location records.
"""

from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, List, Optional

from data.locations import metro_cities, special_zone, state_regions

from .rate_engine_schema import Location, Zone, ZoneResult


def normalise(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.strip().lower().split())


@dataclass(frozen=True)
class ZoneRule:
    name: str
    zone: Zone
    matches: Callable[[Optional[Location], Optional[Location]], bool]
    is_fallback: bool = False


class ZoneClassifier:
    def __init__(
        self,
        enable_within_region: bool = False,
        metros: FrozenSet[str] = frozenset(metro_cities),
        special_states: FrozenSet[str] = frozenset(special_zone),
        regions: Dict[str, str] = None,
    ):
        self.metros = frozenset(normalise(city) for city in metros)
        self.special_states = frozenset(normalise(state) for state in special_states)
        self.regions = {
            normalise(state): region
            for state, region in (regions or state_regions).items()
        }
        self.rules = self._build_rules(enable_within_region)

    def _build_rules(self, enable_within_region: bool) -> List[ZoneRule]:
        rules = [
            ZoneRule("special_zone", Zone.SPECIAL_ZONE, self._is_special_destination),
            ZoneRule(
                "unknown_location",
                Zone.REST_OF_INDIA,
                lambda origin, destination: origin is None or destination is None,
                is_fallback=True,
            ),
            ZoneRule("within_city", Zone.WITHIN_CITY, self._same_district),
            ZoneRule("within_state", Zone.WITHIN_STATE, self._same_state),
            ZoneRule("metro_to_metro", Zone.METRO_TO_METRO, self._both_metro),
        ]
        if enable_within_region:
            rules.append(
                ZoneRule("within_region", Zone.WITHIN_REGION, self._same_region)
            )
        return rules

    def classify(
        self, origin: Optional[Location], destination: Optional[Location]
    ) -> ZoneResult:
        for rule in self.rules:
            if rule.matches(origin, destination):
                return ZoneResult(zone=rule.zone, is_fallback=rule.is_fallback)

        return ZoneResult(zone=Zone.REST_OF_INDIA)

    # rule predicates, every one of them may assume the earlier rules failed

    def _is_special_destination(self, origin, destination) -> bool:
        return (
            destination is not None
            and normalise(destination.state) in self.special_states
        )

    def _same_state(self, origin, destination) -> bool:
        state = normalise(origin.state)
        return bool(state) and state == normalise(destination.state)

    def _same_district(self, origin, destination) -> bool:
        if not self._same_state(origin, destination):
            return False
        origin_area = normalise(origin.district) or normalise(origin.city)
        destination_area = normalise(destination.district) or normalise(
            destination.city
        )
        return bool(origin_area) and origin_area == destination_area

    def _both_metro(self, origin, destination) -> bool:
        return (
            normalise(origin.city) in self.metros
            and normalise(destination.city) in self.metros
        )

    def _region_of(self, location: Location) -> str:
        return normalise(location.region) or self.regions.get(
            normalise(location.state), ""
        )

    def _same_region(self, origin, destination) -> bool:
        region = self._region_of(origin)
        return bool(region) and region == self._region_of(destination)

    def region_for_state(self, state: str) -> Optional[str]:
        return self.regions.get(normalise(state))


def classify_zone(
    origin: Optional[Location],
    destination: Optional[Location],
    enable_within_region: bool = False,
) -> Zone:
    return ZoneClassifier(enable_within_region).classify(origin, destination).zone
