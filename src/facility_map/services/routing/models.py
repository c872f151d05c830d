"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from ...models.domain import LatLng


class Maneuver(str, Enum):
    LEFT = "Left"
    RIGHT = "Right"
    STRAIGHT = "Straight"
    UNKNOWN = "Unknown"


@dataclass(frozen=True, slots=True)
class Instruction:
    maneuver: Maneuver
    text: str
    distance_meters: float


@dataclass(frozen=True, slots=True)
class RouteResult:
    distance_meters: float
    duration_seconds: float
    instructions: Tuple[Instruction, ...] = ()
    geometry: Tuple[LatLng, ...] = ()
