import pytest

from facility_map.models.domain import Facility, FacilityCategory
from facility_map.services.presentation.resolver import (
    IconClass,
    PresentationEntry,
    resolve,
    resolve_device_marker,
)
from facility_map.services.presentation.styles import default_marker_styles
from facility_map.services.routing.endpoints import DeviceLocation, FacilityRef, RouteSelection

ROUTE = RouteSelection(origin=FacilityRef("s1"), destination=FacilityRef("s3"))


def test_default_rule_shows_everything_by_category(facilities):
    unknown = Facility("u1", "TK Ceria", "Jl. Ceria", 3.59, 98.69, FacilityCategory.UNKNOWN)
    table = resolve([*facilities, unknown], None, RouteSelection(), route_active=False)

    assert set(table) == {"s1", "s2", "s3", "u1"}
    assert all(table[fid] == PresentationEntry(True, IconClass.CATEGORY) for fid in ("s1", "s2", "s3"))
    assert table["u1"] == PresentationEntry(True, IconClass.DEFAULT)


def test_route_rule_shows_only_endpoints(facilities):
    table = resolve(facilities, None, ROUTE, route_active=True)

    assert table["s1"] == PresentationEntry(True, IconClass.ROUTE_ORIGIN)
    assert table["s2"].visible is False
    assert table["s3"] == PresentationEntry(True, IconClass.ROUTE_DESTINATION)


def test_selected_but_inactive_route_does_not_filter(facilities):
    table = resolve(facilities, None, ROUTE, route_active=False)
    assert all(entry.visible for entry in table.values())


def test_search_beats_route(facilities):
    table = resolve(facilities, "s2", ROUTE, route_active=True)

    assert table["s2"] == PresentationEntry(True, IconClass.SEARCH_HIGHLIGHT)
    assert table["s1"].visible is False
    assert table["s3"].visible is False


def test_search_for_unknown_id_hides_everything(facilities):
    table = resolve(facilities, "nope", RouteSelection(), route_active=False)
    assert not any(entry.visible for entry in table.values())


def test_device_origin_route_shows_only_destination_facility(facilities):
    selection = RouteSelection(origin=DeviceLocation(), destination=FacilityRef("s2"))
    table = resolve(facilities, None, selection, route_active=True)
    assert [fid for fid, entry in table.items() if entry.visible] == ["s2"]


@pytest.mark.parametrize(
    "location,selection,active,expected",
    [
        (None, RouteSelection(), False, None),
        ((3.6, 98.67), RouteSelection(), False, IconClass.DEVICE_LOCATION),
        ((3.6, 98.67), ROUTE, True, None),
        ((3.6, 98.67), RouteSelection(DeviceLocation(), FacilityRef("s2")), True, IconClass.ROUTE_ORIGIN),
    ],
)
def test_device_marker(location, selection, active, expected):
    marker = resolve_device_marker(location, selection, active)
    if expected is None:
        assert marker is None
    else:
        assert marker.icon_class is expected
        assert marker.position == location


def test_marker_styles_follow_category_and_fall_back_to_default():
    styles = default_marker_styles("/marker/")
    unknown = Facility("u", "TK", "", 0.0, 0.0, FacilityCategory.UNKNOWN)
    primary = Facility("p", "SD", "", 0.0, 0.0, FacilityCategory.PRIMARY)

    assert styles.style_for(primary, PresentationEntry(True, IconClass.CATEGORY)).icon_url == "/marker/marker-icon-blue.png"
    assert styles.style_for(unknown, PresentationEntry(True, IconClass.CATEGORY)) == styles.default
    assert styles.style_for(primary, PresentationEntry(True, IconClass.SEARCH_HIGHLIGHT)).icon_url == "/marker/marker-icon-red.png"
    assert styles.style_for_class(IconClass.DEVICE_LOCATION).icon_size == (32, 32)
