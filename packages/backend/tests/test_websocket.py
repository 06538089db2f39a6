"""WebSocket tests — live newPoints delivery and ping/pong.

Learn: Starlette's TestClient drives the app on its own event loop, with
lifespan. So these tests are plain (sync) functions and build a fresh
engine that is first used inside that loop; lifespan creates the schema.
"""

import pytest
from starlette.testclient import TestClient

from houseboard.db.engine import build_engine
from houseboard.main import create_app


@pytest.fixture
def ws_client(tmp_path, scripted_source):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}")
    app = create_app(engine=engine, generator_source=scripted_source(hold_open=True))
    with TestClient(app) as client:
        yield client


def test_ping_pong(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}


def test_submitted_event_is_pushed(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        r = ws_client.post(
            "/api/events",
            json={"id": "ws-1", "category": "Gryff", "points": 5,
                  "timestamp": "2026-10-19T11:00:00Z"},
        )
        assert r.status_code == 201

        assert ws.receive_json() == {
            "type": "newPoints",
            "data": {
                "id": "ws-1",
                "category": "Gryff",
                "points": 5,
                "timestamp": "2026-10-19T11:00:00+00:00",
            },
        }


def test_every_connected_client_receives_the_event(ws_client):
    with ws_client.websocket_connect("/ws") as first, ws_client.websocket_connect("/ws") as second:
        ws_client.post("/api/events", json={"id": "ws-2", "category": "Huff", "points": 1})
        assert first.receive_json()["data"]["id"] == "ws-2"
        assert second.receive_json()["data"]["id"] == "ws-2"


def test_rejected_submission_is_not_pushed(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        r = ws_client.post("/api/events", json={"id": "bad", "category": "Nope", "points": 1})
        assert r.status_code == 400

        ws.send_json({"type": "ping"})
        # The pong is the first thing on the socket; no newPoints preceded it.
        assert ws.receive_json() == {"type": "pong"}


def test_disconnect_unsubscribes(ws_client):
    notifier = ws_client.app.state.notifier
    with ws_client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "ping"})
        ws.receive_json()
        assert notifier.subscriber_count == 1

    ws_client.get("/health")  # let the server side finish its cleanup
    r = ws_client.post("/api/events", json={"id": "after", "category": "Raven", "points": 1})
    assert r.status_code == 201
    assert notifier.subscriber_count == 0
