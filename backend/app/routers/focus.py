"""
Focus Watch Router
==================
REST endpoints for session summaries and the websocket endpoint that runs a
FocusEngine per connected viewer.

Persistence and broadcast are delegated to ``session_store``; engine work to
``focus_service``. This router is a thin controller.
"""

import asyncio
import functools
import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from sqlalchemy.orm import Session

from focus_engine import FocusEngine

from app.core.config import settings
from app.core.database import get_db
from app.models.schemas import (
    FocusSessionDetail,
    FocusSessionResponse,
    FrameData,
    PlaybackMessage,
    PopupMessage,
    StartMessage,
)
from app.models.session import FocusSession
from app.services import session_store as store
from app.services.focus_service import get_focus_service
from app.services.websocket_manager import ws_manager

logger = logging.getLogger("focuswatch.router")

router = APIRouter(tags=["Focus"])


# ══════════════════════════════════════════════════════════
# REST endpoints
# ══════════════════════════════════════════════════════════

@router.get("/api/focus/modes")
def list_modes():
    """Available session modes and threshold profiles"""
    service = get_focus_service()
    return {
        "modes": service.available_modes(),
        "profiles": service.available_profiles(),
        "default_mode": settings.DEFAULT_MODE,
        "default_profile": settings.DEFAULT_PROFILE,
    }


@router.get("/api/focus/sessions", response_model=List[FocusSessionResponse])
def list_sessions(skip: int = 0, limit: int = 20, db: Session = Depends(get_db)):
    """List focus sessions, newest first"""
    return (
        db.query(FocusSession)
        .order_by(FocusSession.created_at.desc(), FocusSession.id.desc())
        .offset(skip)
        .limit(limit)
        .all()
    )


@router.get("/api/focus/sessions/{session_id}", response_model=FocusSessionDetail)
def get_session(session_id: int, db: Session = Depends(get_db)):
    row = db.get(FocusSession, session_id)
    if row is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return row


# ══════════════════════════════════════════════════════════
# WebSocket endpoints
# ══════════════════════════════════════════════════════════

class _ActiveSession:
    """Engine + persistence handles for the session running on one socket"""

    def __init__(self, engine: FocusEngine, session_id: Optional[int], profile: str):
        self.engine = engine
        self.session_id = session_id
        self.profile = profile
        self.stats = store.SessionStats()

    async def finish(self):
        profile = self.engine.profile
        calibration = profile.to_dict() if profile is not None else None
        summary = get_focus_service().stop(self.engine)
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(
            store.finalise_session,
            session_id=self.session_id,
            stats=self.stats,
            summary=summary,
            calibration=calibration,
        ))
        return summary


async def _send_error(websocket: WebSocket, message: str):
    await websocket.send_json({"type": "error", "message": message})


@router.websocket("/ws/focus")
async def websocket_focus(websocket: WebSocket):
    """
    Real-time focus scoring WebSocket.

    Protocol (client -> server):
      {"type": "start", "mode": "intrusive", "profile": "refined", "config": {...}}
      {"type": "frame", "data": {"timestamp": .., "landmarks": [...], "expressions": {...},
                                 "pose_matrix": [...], "media_time": ..}}
      {"type": "playback", "playing": true}
      {"type": "popup", "choice": "pause" | "continue"}
      {"type": "stop"}
      {"type": "ping"}

    Server -> client: "session", "score", "commands", "summary", "pong", "error".
    """
    await ws_manager.connect(websocket, "focus")
    service = get_focus_service()
    active: Optional[_ActiveSession] = None

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid JSON")
                continue
            if not isinstance(msg, dict):
                await _send_error(websocket, "Message must be a JSON object")
                continue

            msg_type = msg.get("type", "")

            if msg_type == "ping":
                await websocket.send_json({"type": "pong"})
                continue

            # ── Session start ──
            if msg_type == "start":
                try:
                    start = StartMessage.model_validate(msg)
                    engine = service.create_engine(start)
                except (ValidationError, ValueError) as e:
                    await _send_error(websocket, f"Invalid start message: {e}")
                    continue

                if active is not None:
                    await active.finish()
                profile = start.profile or settings.DEFAULT_PROFILE
                commands = service.start(engine)
                # Database writes stay off the event loop
                session_id = await asyncio.get_running_loop().run_in_executor(
                    None, store.create_focus_session, engine.mode.value, profile)
                active = _ActiveSession(engine, session_id, profile)
                active.stats.count_commands(commands)

                await websocket.send_json({
                    "type": "session",
                    "session_id": active.session_id,
                    "mode": engine.mode.value,
                    "profile": profile,
                    "config": engine.config.to_dict(),
                    "commands": [c.to_dict() for c in commands],
                })
                await store.broadcast_commands(active.session_id, commands)
                continue

            if msg_type not in ("frame", "playback", "popup", "stop"):
                await _send_error(websocket, f"Unknown message type: {msg_type!r}")
                continue

            if active is None:
                await _send_error(websocket, "No active session, send a start message first")
                continue

            # ── Frame processing ──
            if msg_type == "frame":
                try:
                    frame = FrameData.model_validate(msg.get("data"))
                    event = await service.process_frame(active.engine, frame)
                except (ValidationError, ValueError) as e:
                    await _send_error(websocket, f"Invalid frame: {e}")
                    continue
                if event is None:
                    continue

                active.stats.observe(event)
                await websocket.send_json({
                    "type": "score",
                    "session_id": active.session_id,
                    "frame_number": active.stats.frame_count,
                    "data": event.to_dict(),
                })
                await store.broadcast_commands(active.session_id, event.commands)

            elif msg_type == "playback":
                try:
                    playback = PlaybackMessage.model_validate(msg)
                except ValidationError as e:
                    await _send_error(websocket, f"Invalid playback message: {e}")
                    continue
                active.engine.set_playback_active(playback.playing)

            elif msg_type == "popup":
                try:
                    popup = PopupMessage.model_validate(msg)
                    commands = service.resolve_popup(active.engine, popup.choice)
                except (ValidationError, ValueError) as e:
                    await _send_error(websocket, f"Invalid popup message: {e}")
                    continue
                active.stats.count_commands(commands)
                await websocket.send_json({
                    "type": "commands",
                    "session_id": active.session_id,
                    "commands": [c.to_dict() for c in commands],
                })
                await store.broadcast_commands(active.session_id, commands)

            elif msg_type == "stop":
                session_id = active.session_id
                summary = await active.finish()
                active = None
                await websocket.send_json({
                    "type": "summary",
                    "session_id": session_id,
                    "data": summary.to_dict(),
                })

    except WebSocketDisconnect:
        logger.info("Focus client disconnected (session=%s)",
                    active.session_id if active else None)
    except Exception as e:
        logger.error("Focus WS error: %s", e, exc_info=True)
    finally:
        ws_manager.disconnect(websocket, "focus")
        if active is not None:
            await active.finish()


@router.websocket("/ws/focus/events")
async def websocket_focus_events(websocket: WebSocket):
    """Observer channel: receives every command issued by any session."""
    await ws_manager.connect(websocket, "events")
    try:
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket, "events")
