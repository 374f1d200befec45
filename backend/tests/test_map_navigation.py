import asyncio

import pytest

from domain.models import CameraTarget, CandidateLocation, SelectedLocation
from services.map_navigation import MapNavigationController, QueueMapSurface
from services.search_session import SearchSession

BRIDGE = CandidateLocation(place_id="p2", label="Golden Gate Bridge", lat=37.83, lon=-122.48)
ALCATRAZ = CandidateLocation(place_id="p9", label="Alcatraz Island", lat=37.8267, lon=-122.4230)


class RecordingSurface:
    def __init__(self):
        self.cameras = []
        self.markers = {}
        self.removed = []
        self._next_handle = 0

    def set_camera(self, center, zoom, duration_ms):
        self.cameras.append((center, zoom, duration_ms))

    def add_marker(self, coords, label):
        self._next_handle += 1
        self.markers[self._next_handle] = (coords, label)
        return self._next_handle

    def remove_marker(self, handle):
        self.removed.append(handle)
        del self.markers[handle]


def test_default_camera_target_before_selection():
    nav = MapNavigationController(RecordingSurface(), default_center=(37.8, -122.4), default_zoom=12)
    assert nav.selected is None
    assert nav.camera_target == CameraTarget(center_lat=37.8, center_lon=-122.4, zoom=12)


def test_select_location_flies_and_places_single_marker():
    surface = RecordingSurface()
    nav = MapNavigationController(surface, target_zoom=14, fly_duration_ms=2000)

    target = nav.select_location(BRIDGE)

    assert target == CameraTarget(center_lat=37.83, center_lon=-122.48, zoom=14)
    assert nav.camera_target == target
    assert nav.selected == SelectedLocation(lat=37.83, lon=-122.48, label="Golden Gate Bridge")
    assert surface.cameras == [((37.83, -122.48), 14, 2000)]
    assert list(surface.markers.values()) == [((37.83, -122.48), "Golden Gate Bridge")]


def test_selecting_same_candidate_twice_keeps_one_marker():
    surface = RecordingSurface()
    nav = MapNavigationController(surface)

    nav.select_location(BRIDGE)
    nav.select_location(BRIDGE)

    assert len(surface.markers) == 1
    assert list(surface.markers.values()) == [((37.83, -122.48), "Golden Gate Bridge")]
    assert surface.removed == [1]


def test_new_selection_replaces_previous_marker():
    surface = RecordingSurface()
    nav = MapNavigationController(surface)

    nav.select_location(BRIDGE)
    nav.select_location(ALCATRAZ)

    assert list(surface.markers.values()) == [((37.8267, -122.4230), "Alcatraz Island")]
    assert nav.selected.label == "Alcatraz Island"


@pytest.mark.asyncio
async def test_session_selection_drives_map():
    class OneShotGeocoder:
        async def asearch(self, query):
            return [ALCATRAZ, BRIDGE]

    surface = RecordingSurface()
    nav = MapNavigationController(surface, target_zoom=14)
    session = SearchSession(OneShotGeocoder(), on_select=nav.select_location, debounce_seconds=0.0)

    session.input("Golden Gate")
    await session.wait_idle()
    session.select_by_id("p2")

    assert nav.camera_target == CameraTarget(center_lat=37.83, center_lon=-122.48, zoom=14)
    assert list(surface.markers.values()) == [((37.83, -122.48), "Golden Gate Bridge")]
    assert session.state.query == "Golden Gate Bridge"
    assert session.state.results_visible is False


@pytest.mark.asyncio
async def test_queue_surface_serialises_commands():
    queue = asyncio.Queue()
    nav = MapNavigationController(QueueMapSurface(queue), target_zoom=14, fly_duration_ms=2000)

    nav.select_location(BRIDGE)
    nav.select_location(ALCATRAZ)

    messages = [queue.get_nowait() for _ in range(queue.qsize())]
    assert [m["op"] for m in messages] == [
        "set_camera",
        "add_marker",
        "set_camera",
        "remove_marker",
        "add_marker",
    ]
    assert messages[0] == {
        "type": "map",
        "op": "set_camera",
        "center": {"lat": 37.83, "lon": -122.48},
        "zoom": 14,
        "duration_ms": 2000,
    }
    assert messages[3]["marker_id"] == messages[1]["marker_id"]
    assert messages[4]["label"] == "Alcatraz Island"
