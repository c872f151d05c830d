import asyncio

import pytest

from conftest import FakeEngine, make_osrm_payload, wait_for_calls
from facility_map.services.routing.adapter import (
    RoutingEngineAdapter,
    instruction_text,
    normalize_maneuver,
    parse_route,
)
from facility_map.services.routing.errors import RouteSuperseded, RoutingError, RoutingErrorKind
from facility_map.services.routing.models import Maneuver

ORIGIN = (3.5931, 98.6990)
DESTINATION = (3.6050, 98.7038)


@pytest.mark.parametrize(
    "maneuver_type,modifier,expected",
    [
        ("turn", "left", Maneuver.LEFT),
        ("turn", "sharp left", Maneuver.LEFT),
        ("fork", "slight right", Maneuver.RIGHT),
        ("continue", "straight", Maneuver.STRAIGHT),
        ("depart", None, Maneuver.STRAIGHT),
        ("arrive", None, Maneuver.STRAIGHT),
        ("turn", "uturn", Maneuver.UNKNOWN),
        ("roundabout", None, Maneuver.UNKNOWN),
        ("teleport", "sideways", Maneuver.UNKNOWN),
        (None, None, Maneuver.UNKNOWN),
    ],
)
def test_normalize_maneuver(maneuver_type, modifier, expected):
    assert normalize_maneuver(maneuver_type, modifier) is expected


def test_instruction_text_variants():
    assert instruction_text({"maneuver": {"type": "depart", "bearing_after": 90}, "name": ""}) == "Head east"
    assert (
        instruction_text({"maneuver": {"type": "turn", "modifier": "left"}, "name": "Jalan Denai"})
        == "Turn left onto Jalan Denai"
    )
    assert (
        instruction_text({"maneuver": {"type": "roundabout", "exit": 2}, "name": ""})
        == "Enter the roundabout and take the 2nd exit"
    )
    assert instruction_text({"maneuver": {"type": "arrive"}}) == "You have arrived at your destination"


def test_parse_route_keeps_unknown_maneuvers_and_geometry():
    payload = make_osrm_payload(
        steps=[{"maneuver": {"type": "mystery", "modifier": "wobble"}, "name": "X", "distance": 12}],
    )
    result = parse_route(payload)

    assert result.instructions[0].maneuver is Maneuver.UNKNOWN
    assert result.instructions[0].distance_meters == 12
    assert result.geometry == ((38.5, -120.2), (40.7, -120.95))


def test_parse_route_rejects_malformed_payload():
    with pytest.raises(RoutingError) as excinfo:
        parse_route({"code": "Ok", "routes": [{"legs": []}]})
    assert excinfo.value.kind is RoutingErrorKind.ENGINE_UNAVAILABLE


@pytest.mark.asyncio
async def test_compute_route_passes_both_coordinates():
    engine = FakeEngine()
    adapter = RoutingEngineAdapter(engine)

    result = await adapter.compute_route(ORIGIN, DESTINATION)

    assert engine.calls == [[ORIGIN, DESTINATION]]
    assert result.distance_meters == 2400
    assert not adapter.in_flight


@pytest.mark.asyncio
@pytest.mark.parametrize("origin,destination", [(None, DESTINATION), (ORIGIN, None), ((91.0, 0.0), DESTINATION)])
async def test_missing_coordinates_are_invalid(origin, destination):
    engine = FakeEngine()
    adapter = RoutingEngineAdapter(engine)

    with pytest.raises(RoutingError) as excinfo:
        await adapter.compute_route(origin, destination)

    assert excinfo.value.kind is RoutingErrorKind.INVALID_COORDINATES
    assert engine.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [ConnectionError("refused"), ValueError("engine process crashed")])
async def test_engine_failure_is_reported(error):
    adapter = RoutingEngineAdapter(FakeEngine(error=error))

    with pytest.raises(RoutingError) as excinfo:
        await adapter.compute_route(ORIGIN, DESTINATION)

    assert excinfo.value.kind is RoutingErrorKind.ENGINE_UNAVAILABLE


@pytest.mark.asyncio
async def test_slow_engine_times_out_as_unavailable():
    adapter = RoutingEngineAdapter(FakeEngine(manual=True), timeout_seconds=0.01)

    with pytest.raises(RoutingError) as excinfo:
        await adapter.compute_route(ORIGIN, DESTINATION)

    assert excinfo.value.kind is RoutingErrorKind.ENGINE_UNAVAILABLE


@pytest.mark.asyncio
async def test_new_request_supersedes_outstanding_one():
    engine = FakeEngine(manual=True)
    adapter = RoutingEngineAdapter(engine)

    first = asyncio.create_task(adapter.compute_route(ORIGIN, DESTINATION))
    await wait_for_calls(engine, 1)
    second = asyncio.create_task(adapter.compute_route(DESTINATION, ORIGIN))
    await wait_for_calls(engine, 2)
    engine.pending[1].set_result(make_osrm_payload(distance=5.0))

    with pytest.raises(RouteSuperseded):
        await first
    assert (await second).distance_meters == 5.0
    assert adapter.generation == 2


@pytest.mark.asyncio
async def test_cancel_drops_result_that_arrives_late():
    engine = FakeEngine(manual=True, stubborn=True)
    adapter = RoutingEngineAdapter(engine)

    pending = asyncio.create_task(adapter.compute_route(ORIGIN, DESTINATION))
    await wait_for_calls(engine, 1)
    adapter.cancel()
    engine.pending[0].set_result(make_osrm_payload())

    with pytest.raises(RouteSuperseded):
        await pending
