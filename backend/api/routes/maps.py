"""
Map API routes.

`/config` tells the front-end how to set up its map; `/session` runs one
search box session per websocket connection. Session state lives only as
long as the connection.
"""
import asyncio
import contextlib
import json
import logging
from typing import Any, Dict
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from services.geocoding import get_default_geocode_client
from services.map_navigation import MapNavigationController, QueueMapSurface
from services.search_session import SearchSession
from settings import settings

router = APIRouter()
logger = logging.getLogger(__name__)


class LatLonResponse(BaseModel):
    lat: float
    lon: float


class MapConfigResponse(BaseModel):
    default_center: LatLonResponse
    default_zoom: int
    target_zoom: int
    fly_duration_ms: int
    debounce_ms: int
    tile_url_template: str
    tile_attribution: str
    geocoder_provider: str


@router.get("/config", response_model=MapConfigResponse)
async def map_config():
    """Front-end map defaults."""
    return MapConfigResponse(
        default_center=LatLonResponse(lat=settings.MAP_DEFAULT_LAT, lon=settings.MAP_DEFAULT_LON),
        default_zoom=settings.MAP_DEFAULT_ZOOM,
        target_zoom=settings.MAP_TARGET_ZOOM,
        fly_duration_ms=settings.MAP_FLY_DURATION_MS,
        debounce_ms=settings.SEARCH_DEBOUNCE_MS,
        tile_url_template=settings.MAP_TILE_URL_TEMPLATE,
        tile_attribution=settings.MAP_TILE_ATTRIBUTION,
        geocoder_provider=settings.GEOCODER_PROVIDER,
    )


def _state_message(session: SearchSession) -> Dict[str, Any]:
    return {"type": "state", **session.state.snapshot()}


def dispatch_message(session: SearchSession, message: Dict[str, Any]) -> Dict[str, Any] | None:
    """Apply one client message to the session; returns an error message or None."""
    kind = message.get("type")
    if kind == "input":
        session.input(str(message.get("text") or ""))
    elif kind == "focus":
        session.focus()
    elif kind == "dismiss":
        session.dismiss()
    elif kind == "clear":
        session.clear()
    elif kind == "select":
        place_id = message.get("place_id")
        if place_id is None or session.select_by_id(str(place_id)) is None:
            return {"type": "error", "detail": f"Unknown place_id: {place_id}"}
    else:
        return {"type": "error", "detail": f"Unsupported message type: {kind}"}
    return None


async def _pump(websocket: WebSocket, outbox: "asyncio.Queue[Dict[str, Any]]") -> None:
    try:
        while True:
            message = await outbox.get()
            await websocket.send_json(message)
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Map session sender stopped: %s", exc)


async def _shutdown(session: SearchSession, sender: "asyncio.Task[None]") -> None:
    session.close()
    sender.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sender


@router.websocket("/session")
async def map_session(websocket: WebSocket):
    """
    Drive a search box + map over a websocket.

    Client messages: input{text}, focus, dismiss, select{place_id}, clear.
    Server messages: state snapshots and map commands (set_camera,
    add_marker, remove_marker).
    """
    if not settings.MAP_SESSION_ENABLED:
        await websocket.close(code=1008)
        return
    await websocket.accept()
    outbox: "asyncio.Queue[Dict[str, Any]]" = asyncio.Queue()
    navigator = MapNavigationController(QueueMapSurface(outbox))
    session = SearchSession(
        get_default_geocode_client(),
        on_select=navigator.select_location,
        on_change=lambda _state: outbox.put_nowait(_state_message(session)),
    )
    outbox.put_nowait(_state_message(session))
    sender = asyncio.create_task(_pump(websocket, outbox))
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                outbox.put_nowait({"type": "error", "detail": "Message is not valid JSON"})
                continue
            if not isinstance(message, dict):
                outbox.put_nowait({"type": "error", "detail": "Message must be a JSON object"})
                continue
            error = dispatch_message(session, message)
            if error is not None:
                outbox.put_nowait(error)
    except WebSocketDisconnect:
        logger.info("Map session disconnected")
    finally:
        await _shutdown(session, sender)
