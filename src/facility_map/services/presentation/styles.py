"""Marker appearance configuration passed explicitly to each render."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping

from ...models.domain import Facility, FacilityCategory
from .resolver import IconClass, PresentationEntry


@dataclass(frozen=True, slots=True)
class MarkerStyle:
    icon_url: str
    icon_retina_url: str | None = None
    shadow_url: str | None = "/leaflet/marker-shadow.png"
    icon_size: tuple[int, int] = (25, 41)
    icon_anchor: tuple[int, int] = (12, 41)
    popup_anchor: tuple[int, int] = (1, -34)


@dataclass(frozen=True)
class MarkerStyleConfig:
    default: MarkerStyle
    by_icon_class: Mapping[IconClass, MarkerStyle] = field(default_factory=dict)
    by_category: Mapping[FacilityCategory, MarkerStyle] = field(default_factory=dict)

    def style_for(self, facility: Facility, entry: PresentationEntry) -> MarkerStyle:
        if entry.icon_class is IconClass.CATEGORY:
            return self.by_category.get(facility.category, self.default)
        return self.by_icon_class.get(entry.icon_class, self.default)

    def style_for_class(self, icon_class: IconClass) -> MarkerStyle:
        return self.by_icon_class.get(icon_class, self.default)


def _coloured(base_url: str, colour: str) -> MarkerStyle:
    return MarkerStyle(
        icon_url=f"{base_url}/marker-icon-{colour}.png",
        icon_retina_url=f"{base_url}/marker-icon-2x-{colour}.png",
    )


def default_marker_styles(base_url: str = "/marker") -> MarkerStyleConfig:
    base = base_url.rstrip("/")
    return MarkerStyleConfig(
        default=MarkerStyle(
            icon_url="/leaflet/marker-icon.png",
            icon_retina_url="/leaflet/marker-icon-2x.png",
        ),
        by_icon_class={
            IconClass.SEARCH_HIGHLIGHT: _coloured(base, "red"),
            IconClass.ROUTE_ORIGIN: _coloured(base, "green"),
            IconClass.ROUTE_DESTINATION: _coloured(base, "green"),
            IconClass.DEVICE_LOCATION: MarkerStyle(
                icon_url=f"{base}/location.png",
                icon_size=(32, 32),
                icon_anchor=(16, 16),
                popup_anchor=(0, -16),
            ),
        },
        by_category={
            FacilityCategory.PRIMARY: _coloured(base, "blue"),
            FacilityCategory.LOWER_SECONDARY: _coloured(base, "green"),
            FacilityCategory.UPPER_SECONDARY: _coloured(base, "violet"),
        },
    )
