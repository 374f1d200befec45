import asyncio
from unittest.mock import patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from api.routes import maps as maps_router
from domain.models import CandidateLocation
from services.search_session import SearchSession
from settings import settings

P1 = CandidateLocation(place_id="p1", label="Golden Gate Park", lat=37.7694, lon=-122.4862)
P2 = CandidateLocation(place_id="p2", label="Golden Gate Bridge", lat=37.83, lon=-122.48)
P3 = CandidateLocation(place_id="p3", label="Golden Gate Heights", lat=37.7557, lon=-122.4681)


class FakeGeocoder:
    def __init__(self):
        self.calls = []

    async def asearch(self, query):
        self.calls.append(query)
        return [P1, P2, P3] if query == "Golden Gate" else []


def _client() -> TestClient:
    app = FastAPI()
    app.include_router(maps_router.router, prefix="/map")
    return TestClient(app)


def _receive_until(ws, predicate, limit=20):
    for _ in range(limit):
        message = ws.receive_json()
        if predicate(message):
            return message
    raise AssertionError("expected message not received")


@pytest.fixture
def fast_debounce(monkeypatch):
    monkeypatch.setattr(settings, "SEARCH_DEBOUNCE_MS", 0)


def test_map_config_exposes_defaults(monkeypatch):
    monkeypatch.setattr(settings, "MAP_DEFAULT_LAT", 37.8)
    monkeypatch.setattr(settings, "MAP_DEFAULT_LON", -122.4)
    monkeypatch.setattr(settings, "MAP_TARGET_ZOOM", 14)

    resp = _client().get("/map/config")

    assert resp.status_code == 200
    data = resp.json()
    assert data["default_center"] == {"lat": 37.8, "lon": -122.4}
    assert data["target_zoom"] == 14
    assert "{z}" in data["tile_url_template"]


@patch.object(maps_router, "get_default_geocode_client")
def test_session_search_and_select(mock_get_client, fast_debounce):
    geocoder = FakeGeocoder()
    mock_get_client.return_value = geocoder

    with _client().websocket_connect("/map/session") as ws:
        initial = ws.receive_json()
        assert initial["type"] == "state"
        assert initial["phase"] == "idle"

        ws.send_json({"type": "input", "text": "Golden Gate"})
        showing = _receive_until(ws, lambda m: m["type"] == "state" and m["phase"] == "showing")
        assert [c["place_id"] for c in showing["candidates"]] == ["p1", "p2", "p3"]
        assert showing["results_visible"] is True
        assert showing["loading"] is False

        ws.send_json({"type": "select", "place_id": "p2"})
        hidden = _receive_until(ws, lambda m: m["type"] == "state")
        assert hidden["query"] == "Golden Gate Bridge"
        assert hidden["results_visible"] is False

        camera = ws.receive_json()
        assert camera["op"] == "set_camera"
        assert camera["center"] == {"lat": 37.83, "lon": -122.48}
        assert camera["zoom"] == settings.MAP_TARGET_ZOOM
        marker = ws.receive_json()
        assert marker["op"] == "add_marker"
        assert marker["label"] == "Golden Gate Bridge"

    assert geocoder.calls == ["Golden Gate"]


@patch.object(maps_router, "get_default_geocode_client")
def test_session_clear_and_bad_messages(mock_get_client, fast_debounce):
    mock_get_client.return_value = FakeGeocoder()

    with _client().websocket_connect("/map/session") as ws:
        ws.receive_json()

        ws.send_json({"type": "teleport"})
        error = _receive_until(ws, lambda m: m["type"] == "error")
        assert "teleport" in error["detail"]

        ws.send_text("not json")
        error = _receive_until(ws, lambda m: m["type"] == "error")
        assert error["detail"] == "Message is not valid JSON"

        ws.send_json({"type": "select", "place_id": "nowhere"})
        error = _receive_until(ws, lambda m: m["type"] == "error")
        assert "nowhere" in error["detail"]

        ws.send_json({"type": "input", "text": "Golden Gate"})
        _receive_until(ws, lambda m: m["type"] == "state" and m["phase"] == "showing")
        ws.send_json({"type": "clear"})
        cleared = _receive_until(ws, lambda m: m["type"] == "state" and m["phase"] == "idle")
        assert cleared["candidates"] == []
        assert cleared["query"] == ""
        assert cleared["loading"] is False


def test_session_disabled_rejects_connection(monkeypatch):
    monkeypatch.setattr(settings, "MAP_SESSION_ENABLED", False)

    with pytest.raises(WebSocketDisconnect):
        with _client().websocket_connect("/map/session") as ws:
            ws.receive_json()


@pytest.mark.asyncio
async def test_shutdown_closes_session_and_reaps_sender():
    session = SearchSession(FakeGeocoder(), debounce_seconds=0)
    sender = asyncio.create_task(asyncio.sleep(3600))

    await maps_router._shutdown(session, sender)

    assert session.closed
    assert sender.done()
    assert sender.cancelled()


@pytest.mark.asyncio
async def test_state_message_matches_snapshot():
    session = SearchSession(FakeGeocoder(), debounce_seconds=0)
    session.input("Golden Gate")
    await session.wait_idle()

    message = maps_router._state_message(session)

    assert message["type"] == "state"
    assert message["phase"] == "showing"
    assert [c["place_id"] for c in message["candidates"]] == ["p1", "p2", "p3"]
    session.close()
