"""
Daily Doodles Backend — Editor Route Handlers
===============================================

What:  Open, edit, analyze, save and cancel the entry draft, plus the voice
       dictation WebSocket.
How:   HTTP handlers drive the session's Editor component. The WebSocket
       turns the browser's microphone stream into an AudioSource for the
       editor's VoiceCapture and pushes transcripts back as they arrive.

Voice WebSocket:
    client → server                       server → client
    ───────────────                       ───────────────
    {"type": "start", "sample_rate": N}   {"type": "state", "state": "recording"}
    {"type": "permission_denied"}         {"type": "alert", "message": "..."}
    <binary float32-LE frame> ...         {"type": "transcript", "text", "content"}
    {"type": "stop"}                      {"type": "state", "state": "idle"}

    The socket needs an existing session cookie and an open editor; it is
    closed with 4401 / 4404 otherwise. Disconnecting stops dictation.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from daily_doodles.config import settings
from daily_doodles.controllers.editor import Editor
from daily_doodles.controllers.view_controller import ViewController
from daily_doodles.dependencies import get_controller, get_editor, get_websocket_session
from daily_doodles.exceptions import MicrophoneAccessError, NotFoundError
from daily_doodles.schemas.journal import (
    EditorState,
    EditorUpdateRequest,
    ErrorResponse,
    OpenEditorRequest,
    SaveResponse,
    SessionState,
)
from daily_doodles.services.audio import decode_float32_frame

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/editor", tags=["Editor"])

_NO_EDITOR = {404: {"description": "The editor is not open", "model": ErrorResponse}}

SAMPLE_RATE_ALERT = f"Voice journaling needs {settings.audio_sample_rate // 1000}kHz audio from the browser."

# WebSocket close codes (4000-4999 are application defined)
WS_NO_SESSION = 4401
WS_NO_EDITOR = 4404


# ══════════════════════════════════════════════════════════════════════════
# HTTP: draft lifecycle
# ══════════════════════════════════════════════════════════════════════════


@router.post(
    "",
    response_model=EditorState,
    responses={
        404: {"description": "Entry is not in the dashboard list", "model": ErrorResponse},
        409: {"description": "The dashboard is not showing", "model": ErrorResponse},
    },
    summary="Open the editor",
    description="Opens the editor on an entry from the dashboard list, or on a blank draft.",
)
async def open_editor(
    body: OpenEditorRequest,
    controller: ViewController = Depends(get_controller),
) -> EditorState:
    entry = None
    if body.entry_id is not None:
        if controller.dashboard is not None:
            entry = controller.dashboard.find_entry(body.entry_id)
        if entry is None:
            raise NotFoundError(resource="entry", resource_id=body.entry_id)
    editor = await controller.open_editor(entry)
    return EditorState.from_editor(editor)


@router.get("", response_model=EditorState, responses=_NO_EDITOR, summary="Read the draft")
async def get_draft(editor: Editor = Depends(get_editor)) -> EditorState:
    return EditorState.from_editor(editor)


@router.patch("", response_model=EditorState, responses=_NO_EDITOR, summary="Edit title or content")
async def update_draft(
    body: EditorUpdateRequest,
    editor: Editor = Depends(get_editor),
) -> EditorState:
    editor.update(title=body.title, content=body.content)
    return EditorState.from_editor(editor)


@router.post(
    "/analyze",
    response_model=EditorState,
    responses=_NO_EDITOR,
    summary="AI mood and insight",
    description="Replaces mood and insight with a fresh analysis. Blank content is left untouched.",
)
async def analyze_draft(editor: Editor = Depends(get_editor)) -> EditorState:
    await editor.analyze()
    return EditorState.from_editor(editor)


@router.post(
    "/save",
    response_model=SaveResponse,
    responses=_NO_EDITOR,
    summary="Save the entry",
    description=(
        "Analyses first when mood or insight is missing, then inserts or updates. "
        "On success the view returns to the dashboard; on failure the draft and "
        "its alert are returned and the editor stays open."
    ),
)
async def save_draft(
    controller: ViewController = Depends(get_controller),
    editor: Editor = Depends(get_editor),
) -> SaveResponse:
    saved = await editor.save()
    return SaveResponse(
        saved=saved,
        editor=None if saved else EditorState.from_editor(editor),
        session=SessionState.from_controller(controller),
    )


@router.post("/cancel", response_model=SessionState, responses=_NO_EDITOR, summary="Discard the draft")
async def cancel_draft(
    controller: ViewController = Depends(get_controller),
    editor: Editor = Depends(get_editor),
) -> SessionState:
    await controller.close_editor()
    return SessionState.from_controller(controller)


# ══════════════════════════════════════════════════════════════════════════
# WebSocket: voice dictation
# ══════════════════════════════════════════════════════════════════════════


class WebSocketAudioSource:
    """
    AudioSource fed by binary frames arriving on the voice WebSocket.

    The browser has already asked for the microphone by the time it sends
    `start`; a refusal arrives as `permission_denied` and makes open() fail.
    """

    def __init__(self, denied: bool = False):
        self._denied = denied
        self._frames: "asyncio.Queue[Optional[Sequence[float]]]" = asyncio.Queue()
        self._closed = False

    async def open(self) -> None:
        if self._denied:
            raise MicrophoneAccessError("Microphone permission denied by the browser")

    def push(self, frame: Sequence[float]) -> None:
        if not self._closed:
            self._frames.put_nowait(frame)

    async def frames(self) -> AsyncIterator[Sequence[float]]:
        while True:
            frame = await self._frames.get()
            if frame is None:
                return
            yield frame

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._frames.put_nowait(None)


def _state_message(editor: Editor) -> Dict[str, Any]:
    return {"type": "state", "state": editor.voice_state.value}


@router.websocket("/voice")
async def voice(websocket: WebSocket) -> None:
    await websocket.accept()

    session = get_websocket_session(websocket)
    if session is None:
        await websocket.close(code=WS_NO_SESSION)
        return
    editor = session.controller.editor
    if editor is None:
        await websocket.close(code=WS_NO_EDITOR)
        return

    outbox: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
    watchers: List[asyncio.Task] = []
    source: Optional[WebSocketAudioSource] = None

    def on_transcript(text: str) -> None:
        outbox.put_nowait({"type": "transcript", "text": text, "content": editor.content})

    async def sender() -> None:
        while True:
            message = await outbox.get()
            if message is None:
                return
            await websocket.send_json(message)

    async def report_when_stopped() -> None:
        # Dictation can end on its own (session closed, remote error)
        await editor.voice.wait_stopped()
        outbox.put_nowait(_state_message(editor))

    async def start(new_source: WebSocketAudioSource) -> None:
        if await editor.start_voice(new_source):
            watchers.append(asyncio.create_task(report_when_stopped()))
        else:
            outbox.put_nowait({"type": "alert", "message": editor.alert})
        outbox.put_nowait(_state_message(editor))

    editor.transcript_listeners.append(on_transcript)
    send_task = asyncio.create_task(sender())
    outbox.put_nowait(_state_message(editor))

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                if source is None or not editor.voice.is_recording:
                    continue
                try:
                    source.push(decode_float32_frame(message["bytes"]))
                except ValueError as e:
                    logger.warning("Dropped malformed audio frame: %s", e)
                continue

            try:
                command = _parse_control(message.get("text") or "")
            except ValueError:
                logger.warning("Ignoring malformed voice control message")
                continue
            kind = command.get("type")

            if kind == "start":
                if command.get("sample_rate", settings.audio_sample_rate) != settings.audio_sample_rate:
                    outbox.put_nowait({"type": "alert", "message": SAMPLE_RATE_ALERT})
                    continue
                source = WebSocketAudioSource()
                await start(source)
            elif kind == "permission_denied":
                await start(WebSocketAudioSource(denied=True))
            elif kind == "stop":
                await editor.stop_voice()
            else:
                logger.debug("Unknown voice control message: %s", kind)
    except WebSocketDisconnect:
        pass
    finally:
        editor.transcript_listeners.remove(on_transcript)
        await editor.stop_voice()
        for task in watchers:
            task.cancel()
        send_task.cancel()
        await asyncio.gather(send_task, *watchers, return_exceptions=True)
        logger.info("Voice socket closed")


def _parse_control(text: str) -> Dict[str, Any]:
    """Parse a control frame; anything but a JSON object raises ValueError."""
    value = json.loads(text)
    if not isinstance(value, dict):
        raise ValueError("control message must be a JSON object")
    return value
