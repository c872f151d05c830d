import asyncio

import pytest

from facility_map.data.facility_repository import FacilityCatalog
from facility_map.models.domain import Facility, FacilityCategory
from facility_map.services.routing.adapter import RoutingEngineAdapter
from facility_map.services.routing.coordinator import RoutePlanningCoordinator

DEVICE_LOCATION = (3.60, 98.67)


def _facility(fid: str, lat: float, lng: float, category: FacilityCategory) -> Facility:
    return Facility(
        id=fid,
        name=f"Sekolah {fid.upper()}",
        address=f"Jl. Denai No. {fid[-1]}",
        latitude=lat,
        longitude=lng,
        category=category,
    )


def make_osrm_payload(distance=2400.0, duration=360.0, steps=None, geometry="_p~iF~ps|U_ulLnnqC"):
    if steps is None:
        steps = [
            {"maneuver": {"type": "depart", "bearing_after": 0}, "name": "", "distance": 800.0},
            {"maneuver": {"type": "turn", "modifier": "right"}, "name": "", "distance": 1600.0},
        ]
    return {
        "code": "Ok",
        "routes": [
            {
                "distance": distance,
                "duration": duration,
                "geometry": geometry,
                "legs": [{"steps": steps}],
            }
        ],
    }


class FakeEngine:
    """Routing engine double that records calls and can hold them open."""

    def __init__(self, payload=None, error=None, manual=False, stubborn=False):
        self.payload = payload if payload is not None else make_osrm_payload()
        self.error = error
        self.manual = manual
        self.stubborn = stubborn
        self.calls = []
        self.pending = []

    async def route(self, coordinates):
        self.calls.append(list(coordinates))
        if self.manual:
            future = asyncio.get_running_loop().create_future()
            self.pending.append(future)
            if not self.stubborn:
                return await future
            while True:
                try:
                    return await asyncio.shield(future)
                except asyncio.CancelledError:
                    continue
        if self.error is not None:
            raise self.error
        return self.payload


async def wait_for_calls(engine: FakeEngine, count: int) -> None:
    for _ in range(100):
        if len(engine.calls) >= count:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"engine saw {len(engine.calls)} calls, expected {count}")


@pytest.fixture
def facilities():
    return [
        _facility("s1", 3.5931, 98.6990, FacilityCategory.PRIMARY),
        _facility("s2", 3.6050, 98.7038, FacilityCategory.UPPER_SECONDARY),
        _facility("s3", 3.5889, 98.7102, FacilityCategory.LOWER_SECONDARY),
    ]


@pytest.fixture
def catalog(facilities):
    return FacilityCatalog(facilities)


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def coordinator(catalog, engine):
    return RoutePlanningCoordinator(catalog, RoutingEngineAdapter(engine, timeout_seconds=5.0))
