"""Serializers for route summaries shown in the planner panel."""

from __future__ import annotations

from typing import Optional

from ..routing.models import RouteResult


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{meters:.0f} m"
    return f"{meters / 1000:.1f} km"


def format_duration(seconds: float) -> str:
    return f"{round(seconds / 60)} min"


def route_result_to_json(result: RouteResult) -> dict:
    return {
        "distance_meters": result.distance_meters,
        "duration_seconds": result.duration_seconds,
        "instructions": [
            {
                "maneuver": instruction.maneuver.value,
                "text": instruction.text,
                "distance_meters": instruction.distance_meters,
                "distance_label": format_distance(instruction.distance_meters),
            }
            for instruction in result.instructions
        ],
        "geometry": [list(point) for point in result.geometry],
    }


def route_summary(
    result: Optional[RouteResult],
    origin_label: str,
    destination_label: str,
) -> Optional[dict]:
    if result is None:
        return None
    return {
        "origin": origin_label,
        "destination": destination_label,
        "distance": format_distance(result.distance_meters),
        "duration": format_duration(result.duration_seconds),
        "route": route_result_to_json(result),
    }
