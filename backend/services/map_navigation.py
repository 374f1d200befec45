"""
Map navigation: camera fly-to and the single selected-location marker.

The controller owns the marker handle; callers only get select_location(),
so replacing the marker is atomic from their point of view. The rendering
backend sits behind the MapSurface protocol.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from typing import Any, Dict, Optional, Protocol, Tuple

from domain.models import CameraTarget, CandidateLocation, SelectedLocation
from settings import settings

logger = logging.getLogger(__name__)

LatLon = Tuple[float, float]


class MapSurface(Protocol):
    def set_camera(self, center: LatLon, zoom: int, duration_ms: int) -> None:
        ...

    def add_marker(self, coords: LatLon, label: str) -> Any:
        ...

    def remove_marker(self, handle: Any) -> None:
        ...


class MapNavigationController:
    def __init__(
        self,
        surface: MapSurface,
        target_zoom: Optional[int] = None,
        fly_duration_ms: Optional[int] = None,
        default_center: Optional[LatLon] = None,
        default_zoom: Optional[int] = None,
    ):
        self._surface = surface
        self.target_zoom = settings.MAP_TARGET_ZOOM if target_zoom is None else target_zoom
        self.fly_duration_ms = (
            settings.MAP_FLY_DURATION_MS if fly_duration_ms is None else fly_duration_ms
        )
        center = default_center or (settings.MAP_DEFAULT_LAT, settings.MAP_DEFAULT_LON)
        self.default_target = CameraTarget(
            center_lat=center[0],
            center_lon=center[1],
            zoom=settings.MAP_DEFAULT_ZOOM if default_zoom is None else default_zoom,
        )
        self._selected: Optional[SelectedLocation] = None
        self._marker_handle: Any = None

    @property
    def selected(self) -> Optional[SelectedLocation]:
        return self._selected

    @property
    def camera_target(self) -> CameraTarget:
        """Target derived from the selection, or the default viewport."""
        if self._selected is None:
            return self.default_target
        return CameraTarget(
            center_lat=self._selected.lat,
            center_lon=self._selected.lon,
            zoom=self.target_zoom,
        )

    def select_location(self, candidate: CandidateLocation) -> CameraTarget:
        """Fly to `candidate` and make it the only marker on the map."""
        selected = SelectedLocation(lat=candidate.lat, lon=candidate.lon, label=candidate.label)
        self._selected = selected
        target = self.camera_target
        self._surface.set_camera(target.center, target.zoom, self.fly_duration_ms)

        if self._marker_handle is not None:
            self._surface.remove_marker(self._marker_handle)
            self._marker_handle = None
        self._marker_handle = self._surface.add_marker((selected.lat, selected.lon), selected.label)
        logger.info(
            "Selected %r at %.5f,%.5f (zoom %d)",
            selected.label,
            selected.lat,
            selected.lon,
            target.zoom,
        )
        return target


class QueueMapSurface:
    """Map surface that forwards every call as a command message to a remote renderer.

    Used by the websocket session: the browser map library executes the
    commands, this side only decides what they are.
    """

    def __init__(self, queue: "asyncio.Queue[Dict[str, Any]]"):
        self._queue = queue
        self._ids = itertools.count(1)

    def set_camera(self, center: LatLon, zoom: int, duration_ms: int) -> None:
        self._queue.put_nowait({
            "type": "map",
            "op": "set_camera",
            "center": {"lat": center[0], "lon": center[1]},
            "zoom": zoom,
            "duration_ms": duration_ms,
        })

    def add_marker(self, coords: LatLon, label: str) -> str:
        handle = f"marker-{next(self._ids)}"
        self._queue.put_nowait({
            "type": "map",
            "op": "add_marker",
            "marker_id": handle,
            "position": {"lat": coords[0], "lon": coords[1]},
            "label": label,
        })
        return handle

    def remove_marker(self, handle: str) -> None:
        self._queue.put_nowait({"type": "map", "op": "remove_marker", "marker_id": handle})
