"""Assemble the render payload consumed by the map surface."""

from __future__ import annotations

from typing import Iterable, Optional

from ...config import settings
from ...models.domain import Facility
from ..outputs.route_formatter import route_summary
from ..routing.coordinator import RoutePlanningCoordinator
from .resolver import resolve, resolve_device_marker
from .styles import MarkerStyle, MarkerStyleConfig, default_marker_styles


def _style_to_json(style: MarkerStyle) -> dict:
    return {
        "icon_url": style.icon_url,
        "icon_retina_url": style.icon_retina_url,
        "shadow_url": style.shadow_url,
        "icon_size": list(style.icon_size),
        "icon_anchor": list(style.icon_anchor),
        "popup_anchor": list(style.popup_anchor),
    }


def build_map_view(
    facilities: Iterable[Facility],
    coordinator: RoutePlanningCoordinator,
    search_selection: Optional[str] = None,
    styles: MarkerStyleConfig | None = None,
) -> dict:
    facilities = list(facilities)
    styles = styles or default_marker_styles(settings.marker_icon_base_url)
    snapshot = coordinator.snapshot()
    table = resolve(facilities, search_selection, snapshot.selection, snapshot.route_active)

    markers = []
    for facility in facilities:
        entry = table[facility.id]
        if not entry.visible:
            continue
        markers.append(
            {
                "facility_id": facility.id,
                "name": facility.name,
                "address": facility.address,
                "category": facility.category.value,
                "position": list(facility.position),
                "icon_class": entry.icon_class.value,
                "style": _style_to_json(styles.style_for(facility, entry)),
            }
        )

    device_marker = resolve_device_marker(snapshot.device_location, snapshot.selection, snapshot.route_active)
    device_payload = None
    if device_marker is not None:
        device_payload = {
            "position": list(device_marker.position),
            "icon_class": device_marker.icon_class.value,
            "style": _style_to_json(styles.style_for_class(device_marker.icon_class)),
        }

    searched = next((f for f in facilities if f.id == search_selection), None) if search_selection else None
    if searched is not None:
        viewport = {"center": list(searched.position), "zoom": settings.search_zoom}
    else:
        viewport = {"center": list(settings.map_center), "zoom": settings.map_zoom}

    return {
        "presentation": {
            facility_id: {"visible": entry.visible, "icon_class": entry.icon_class.value}
            for facility_id, entry in table.items()
        },
        "markers": markers,
        "device_marker": device_payload,
        "viewport": viewport,
        "summary": route_summary(snapshot.result, coordinator.origin_label(), coordinator.destination_label()),
    }
