"""WebSocket endpoint protocol, exercised through Starlette's TestClient."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from homelearn.auth.jwt import create_access_token
from homelearn.config import get_settings
from homelearn.main import create_app
from homelearn.ws.manager import ConnectionManager
from homelearn.ws.notifier import LocalNotifier


@pytest.fixture(autouse=True)
def fresh_manager(monkeypatch: pytest.MonkeyPatch) -> ConnectionManager:
    """Isolate connection bookkeeping; sessions may be torn down before their disconnect is handled."""
    connections = ConnectionManager()
    monkeypatch.setattr("homelearn.ws.router.manager", connections)
    monkeypatch.setattr("homelearn.ws.notifier.manager", connections)
    return connections


@pytest.fixture
def ws_app() -> FastAPI:
    return create_app()


@pytest.fixture
def ws_client(ws_app: FastAPI) -> Iterator[TestClient]:
    # no context manager: lifespan (database, Redis) stays off
    yield TestClient(ws_app)


def _url(user_id: int = 1) -> str:
    return f"/ws?token={create_access_token(user_id)}"


class TestAuthentication:
    def test_missing_token(self, ws_client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info, ws_client.websocket_connect("/ws"):
            pass
        assert exc_info.value.code == 4001

    def test_bad_token(self, ws_client: TestClient) -> None:
        with pytest.raises(WebSocketDisconnect) as exc_info, ws_client.websocket_connect("/ws?token=garbage"):
            pass
        assert exc_info.value.code == 4001

    def test_connection_limit(self, ws_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(get_settings(), "ws_max_connections_per_user", 1)
        with ws_client.websocket_connect(_url(42)) as first:
            first.send_json({"action": "ping"})
            assert first.receive_json() == {"type": "pong"}
            with pytest.raises(WebSocketDisconnect) as exc_info, ws_client.websocket_connect(_url(42)):
                pass
            assert exc_info.value.code == 4008


class TestProtocol:
    def test_ping(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_json({"action": "ping"})
            assert ws.receive_json() == {"type": "pong"}

    def test_subscribe_and_unsubscribe(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_json({"action": "subscribe", "channel": "course:3"})
            assert ws.receive_json() == {"type": "subscribed", "channel": "course:3"}
            ws.send_json({"action": "unsubscribe", "channel": "course:3"})
            assert ws.receive_json() == {"type": "unsubscribed", "channel": "course:3"}

    def test_invalid_channel(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_json({"action": "subscribe", "channel": "everything"})
            assert ws.receive_json() == {"type": "error", "message": "Invalid channel: everything"}

    @pytest.mark.parametrize("course_id", [8, "8"])
    def test_join_course(self, ws_client: TestClient, course_id: int | str) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_json({"action": "join-course", "courseId": course_id})
            assert ws.receive_json() == {"type": "subscribed", "channel": "course:8"}

    @pytest.mark.parametrize("course_id", [None, True, "abc", -1])
    def test_join_course_requires_id(self, ws_client: TestClient, course_id: object) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_json({"action": "join-course", "courseId": course_id})
            assert ws.receive_json() == {"type": "error", "message": "courseId is required"}

    def test_unknown_action(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_json({"action": "dance"})
            assert ws.receive_json() == {"type": "error", "message": "Unknown action: dance"}

    def test_malformed_frames(self, ws_client: TestClient) -> None:
        with ws_client.websocket_connect(_url()) as ws:
            ws.send_text("{not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid JSON"}
            ws.send_text("[1, 2]")
            assert ws.receive_json() == {"type": "error", "message": "Invalid message"}
            # connection still usable
            ws.send_json({"action": "ping"})
            assert ws.receive_json() == {"type": "pong"}


def test_published_event_reaches_subscriber(ws_client: TestClient) -> None:
    with ws_client.websocket_connect(_url(5)) as ws:
        ws.send_json({"action": "join-course", "courseId": 11})
        assert ws.receive_json()["type"] == "subscribed"

        ws.portal.call(
            LocalNotifier().publish,
            "course:11",
            "level-completed",
            {"userId": 5, "levelId": 2, "username": "eve"},
        )
        assert ws.receive_json() == {
            "channel": "course:11",
            "data": {"type": "level-completed", "userId": 5, "levelId": 2, "username": "eve"},
        }
