"""
Daily Doodles Backend — Voice WebSocket Tests
===============================================

What:  The /api/editor/voice protocol through the real app.
How:   Starlette's TestClient runs the app (and its lifespan) on a portal
       thread, so it can speak WebSocket where ASGITransport cannot. The
       fake live session queues `ai.transcripts` on the app's own loop.

What we test:
    ✅ Close codes: no browser session (4401), no open editor (4404)
    ✅ start → recording, transcripts carry the updated content
    ✅ Audio frames reach the live session; malformed frames are dropped
    ✅ Sample rate mismatch and permission_denied alerts
    ✅ stop command and client disconnect both release dictation
"""

import struct
import time

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from daily_doodles.config import settings
from daily_doodles.controllers.voice_capture import MICROPHONE_ALERT
from daily_doodles.routes.editor import SAMPLE_RATE_ALERT, WS_NO_EDITOR, WS_NO_SESSION
from daily_doodles.services.audio import float_to_pcm16

VOICE_URL = "/api/editor/voice"


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def open_editor(client) -> None:
    client.post("/api/session/mount")
    client.post("/api/session/navigate", json={"view": "login"})
    client.post("/api/auth/login", json={"email": "ava@example.com", "password": "pw"})
    response = client.post("/api/editor", json={})
    assert response.status_code == 200


def receive_until(ws, kind: str, **fields) -> dict:
    """Read messages until one of type `kind` (matching `fields`) arrives."""
    while True:
        message = ws.receive_json()
        if message["type"] == kind and all(message.get(k) == v for k, v in fields.items()):
            return message


def eventually(predicate, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not reached in time")
        time.sleep(0.01)


def float32_frame(*samples: float) -> bytes:
    return struct.pack(f"<{len(samples)}f", *samples)


class TestHandshake:
    def test_without_session_closes_4401(self, client):
        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(VOICE_URL) as ws:
                ws.receive_json()
        assert exc.value.code == WS_NO_SESSION == 4401

    def test_without_editor_closes_4404(self, client):
        client.get("/api/session")

        with pytest.raises(WebSocketDisconnect) as exc:
            with client.websocket_connect(VOICE_URL) as ws:
                ws.receive_json()
        assert exc.value.code == WS_NO_EDITOR == 4404

    def test_sends_current_state_on_connect(self, client):
        open_editor(client)

        with client.websocket_connect(VOICE_URL) as ws:
            assert ws.receive_json() == {"type": "state", "state": "idle"}


class TestDictation:
    def test_transcripts_carry_updated_content(self, client, ai):
        ai.transcripts = ["Hello"]
        open_editor(client)

        with client.websocket_connect(VOICE_URL) as ws:
            ws.send_json({"type": "start", "sample_rate": settings.audio_sample_rate})
            receive_until(ws, "state", state="recording")
            message = receive_until(ws, "transcript")

        assert message == {"type": "transcript", "text": "Hello", "content": "Hello"}
        assert client.get("/api/editor").json()["content"] == "Hello"

    def test_frames_reach_live_session_and_bad_frames_are_dropped(self, client, ai):
        open_editor(client)

        with client.websocket_connect(VOICE_URL) as ws:
            ws.send_json({"type": "start"})
            receive_until(ws, "state", state="recording")
            ws.send_bytes(b"\x00\x01\x02")
            ws.send_text("not json")
            ws.send_bytes(float32_frame(0.5, -0.5))

            live = ai.live_sessions[0]
            eventually(lambda: len(live.sent) == 1)
            assert live.sent[0].data == float_to_pcm16([0.5, -0.5])

            ws.send_json({"type": "stop"})
            receive_until(ws, "state", state="idle")

        assert ai.transcription_sessions[0].closed

    def test_wrong_sample_rate_alerts_without_starting(self, client, ai):
        open_editor(client)

        with client.websocket_connect(VOICE_URL) as ws:
            ws.send_json({"type": "start", "sample_rate": 44100})
            alert = receive_until(ws, "alert")

        assert alert["message"] == SAMPLE_RATE_ALERT
        assert ai.live_sessions == []

    def test_permission_denied_alerts_and_stays_idle(self, client, ai):
        open_editor(client)

        with client.websocket_connect(VOICE_URL) as ws:
            ws.receive_json()
            ws.send_json({"type": "permission_denied"})
            alert = receive_until(ws, "alert")
            state = ws.receive_json()

        assert alert["message"] == MICROPHONE_ALERT
        assert state == {"type": "state", "state": "idle"}
        assert ai.live_sessions == []

    def test_disconnect_stops_dictation(self, client, ai):
        open_editor(client)

        with client.websocket_connect(VOICE_URL) as ws:
            ws.send_json({"type": "start"})
            receive_until(ws, "state", state="recording")

        eventually(lambda: ai.transcription_sessions[0].closed)
        assert client.get("/api/editor").json()["voice_state"] == "idle"
