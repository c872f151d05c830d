"""Domain models for facility records."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

# Internal coordinate type: (lat, lng)
LatLng = Tuple[float, float]


class FacilityCategory(str, Enum):
    """Education level of a facility, as shown by its map marker colour."""

    PRIMARY = "Primary"
    LOWER_SECONDARY = "LowerSecondary"
    UPPER_SECONDARY = "UpperSecondary"
    UNKNOWN = "Unknown"


# Dataset codes checked in order; "SMA" also covers "SMALB" and similar variants.
CATEGORY_CODES: tuple[tuple[str, FacilityCategory], ...] = (
    ("SMP", FacilityCategory.LOWER_SECONDARY),
    ("SMA", FacilityCategory.UPPER_SECONDARY),
    # Vocational schools share the upper-secondary marker instead of the plain default icon.
    ("SMK", FacilityCategory.UPPER_SECONDARY),
    ("SD", FacilityCategory.PRIMARY),
)


def parse_category(value: str | None) -> FacilityCategory:
    """Map a raw category code or enum name to a FacilityCategory.

    Unrecognized values degrade to ``UNKNOWN`` instead of failing.
    """
    if not value:
        return FacilityCategory.UNKNOWN
    text = str(value).strip()
    for member in FacilityCategory:
        if text.lower() == member.value.lower():
            return member
    upper = text.upper()
    for code, category in CATEGORY_CODES:
        if code in upper:
            return category
    return FacilityCategory.UNKNOWN


@dataclass(frozen=True, slots=True)
class Facility:
    """A geo-located facility shown as a marker on the map."""

    id: str
    name: str
    address: str
    latitude: float
    longitude: float
    category: FacilityCategory = FacilityCategory.UNKNOWN

    @property
    def position(self) -> LatLng:
        return (self.latitude, self.longitude)
