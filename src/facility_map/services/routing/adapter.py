"""Routing engine adapter with single-in-flight request discipline.

The adapter turns two coordinates into a ``RouteResult``. Every call to
``compute_route`` bumps a generation counter and cancels the request that
was in flight before it; when a request finishes, its generation is compared
with the current one and a mismatch raises ``RouteSuperseded`` instead of
returning the (stale) outcome. Callers therefore only ever observe the
result of the most recently issued request.
"""

from __future__ import annotations

import asyncio
import logging
import math
from typing import Any, Optional, Protocol, Sequence

from ...config import settings
from ...models.domain import LatLng
from .errors import RouteSuperseded, RoutingError, RoutingErrorKind
from .models import Instruction, Maneuver, RouteResult
from .osrm_client import decode_polyline

logger = logging.getLogger(__name__)

COMPASS_POINTS = ("north", "northeast", "east", "southeast", "south", "southwest", "west", "northwest")
ORDINAL_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}
STRAIGHT_TYPES = {"depart", "arrive", "continue", "new name"}


class RoutingEngine(Protocol):
    """Anything that answers OSRM-shaped route queries for (lat, lng) waypoints."""

    async def route(self, coordinates: Sequence[LatLng]) -> dict: ...


def normalize_maneuver(maneuver_type: str | None, modifier: str | None) -> Maneuver:
    """Collapse the engine's maneuver vocabulary into Left/Right/Straight/Unknown."""
    modifier_text = (modifier or "").strip().lower()
    type_text = (maneuver_type or "").strip().lower()
    if modifier_text == "uturn":
        return Maneuver.UNKNOWN
    if "left" in modifier_text:
        return Maneuver.LEFT
    if "right" in modifier_text:
        return Maneuver.RIGHT
    if modifier_text == "straight":
        return Maneuver.STRAIGHT
    if not modifier_text and type_text in STRAIGHT_TYPES:
        return Maneuver.STRAIGHT
    return Maneuver.UNKNOWN


def _compass(bearing: Any) -> str | None:
    try:
        value = float(bearing)
    except (TypeError, ValueError):
        return None
    return COMPASS_POINTS[int(((value % 360) + 22.5) // 45) % 8]


def _ordinal(number: int) -> str:
    if 10 <= number % 100 <= 20:
        return f"{number}th"
    return f"{number}{ORDINAL_SUFFIXES.get(number % 10, 'th')}"


def instruction_text(step: dict) -> str:
    """Render a human-readable instruction for one OSRM step."""
    maneuver = step.get("maneuver") or {}
    maneuver_type = (maneuver.get("type") or "").lower()
    modifier = (maneuver.get("modifier") or "").lower()
    road = (step.get("name") or "").strip()
    onto = f" onto {road}" if road else ""

    if maneuver_type == "depart":
        direction = _compass(maneuver.get("bearing_after"))
        text = f"Head {direction}" if direction else "Head out"
        return f"{text} on {road}" if road else text
    if maneuver_type == "arrive":
        return "You have arrived at your destination"
    if maneuver_type in {"roundabout", "rotary", "roundabout turn"}:
        exit_number = maneuver.get("exit")
        if isinstance(exit_number, int) and exit_number > 0:
            return f"Enter the roundabout and take the {_ordinal(exit_number)} exit{onto}"
        return f"Enter the roundabout{onto}"
    if modifier == "uturn":
        return f"Make a U-turn{onto}"
    if modifier == "straight" or (maneuver_type in STRAIGHT_TYPES and not modifier):
        return f"Continue straight{onto}"
    if maneuver_type in {"turn", "end of road", "fork", "on ramp", "off ramp", "merge"} and modifier:
        verb = {"fork": "Keep", "merge": "Merge", "on ramp": "Take the ramp", "off ramp": "Take the exit"}.get(maneuver_type, "Turn")
        return f"{verb} {modifier}{onto}"
    if modifier:
        return f"Continue {modifier}{onto}"
    return f"Continue{onto}"


def parse_route(payload: dict) -> RouteResult:
    """Convert an OSRM route response into a RouteResult."""
    try:
        route = payload["routes"][0]
        instructions: list[Instruction] = []
        for leg in route.get("legs") or []:
            for step in leg.get("steps") or []:
                maneuver = step.get("maneuver") or {}
                instructions.append(
                    Instruction(
                        maneuver=normalize_maneuver(maneuver.get("type"), maneuver.get("modifier")),
                        text=instruction_text(step),
                        distance_meters=float(step.get("distance") or 0.0),
                    )
                )
        geometry = route.get("geometry")
        path = tuple(decode_polyline(geometry)) if isinstance(geometry, str) else ()
        return RouteResult(
            distance_meters=float(route["distance"]),
            duration_seconds=float(route["duration"]),
            instructions=tuple(instructions),
            geometry=path,
        )
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE, f"Malformed routing engine response: {exc}") from exc


def _valid_coordinate(coordinate: Optional[LatLng]) -> bool:
    if coordinate is None:
        return False
    try:
        lat, lng = coordinate
    except (TypeError, ValueError):
        return False
    return all(isinstance(v, (int, float)) and math.isfinite(v) for v in (lat, lng)) and -90 <= lat <= 90 and -180 <= lng <= 180


class RoutingEngineAdapter:
    """Owns the lifecycle of route requests against a routing engine."""

    def __init__(self, engine: RoutingEngine, timeout_seconds: float | None = None) -> None:
        self.engine = engine
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.route_timeout_seconds
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def cancel(self) -> None:
        """Invalidate the outstanding request, if any."""
        self._generation += 1
        if self._task is not None and not self._task.done():
            logger.debug(f"Cancelling route request superseded by generation {self._generation}")
            self._task.cancel()
        self._task = None

    async def compute_route(self, origin: Optional[LatLng], destination: Optional[LatLng]) -> RouteResult:
        self.cancel()
        generation = self._generation

        if not _valid_coordinate(origin) or not _valid_coordinate(destination):
            raise RoutingError(RoutingErrorKind.INVALID_COORDINATES)

        task = asyncio.ensure_future(self._fetch(origin, destination))
        self._task = task
        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                raise RouteSuperseded(generation) from None
            raise
        except RoutingError:
            if generation != self._generation:
                raise RouteSuperseded(generation) from None
            raise
        finally:
            if self._task is task:
                self._task = None

        if generation != self._generation:
            logger.debug(f"Dropping stale route result for generation {generation}")
            raise RouteSuperseded(generation)
        return result

    async def _fetch(self, origin: LatLng, destination: LatLng) -> RouteResult:
        try:
            payload = await asyncio.wait_for(self.engine.route([origin, destination]), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.warning(f"Routing engine did not answer within {self.timeout_seconds:.1f}s")
            raise RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE) from exc
        except RoutingError:
            raise
        except (OSError, ConnectionError) as exc:
            logger.warning(f"Routing engine call failed: {exc}")
            raise RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE) from exc
        except Exception as exc:
            logger.exception(f"Routing engine crashed: {exc}")
            raise RoutingError(RoutingErrorKind.ENGINE_UNAVAILABLE) from exc
        return parse_route(payload)
