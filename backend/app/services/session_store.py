"""
Focus Watch Session Store
==========================
Persists ``FocusSession`` rows and broadcasts player commands on the
``"events"`` websocket channel. Database failures are logged and rolled
back so they never break the socket loop.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session as SASession

from focus_engine import Command, CommandType, ScoreEvent
from focus_engine.scoring import SessionSummary

from app.core.database import SessionLocal
from app.models.session import FocusSession
from app.services.websocket_manager import ws_manager

logger = logging.getLogger("focuswatch.store")


@dataclass
class SessionStats:
    """Running counters for one websocket session."""
    frame_count: int = 0
    min_average_score: float = 100.0
    command_count: int = 0
    pause_count: int = 0
    popup_count: int = 0

    def observe(self, event: ScoreEvent) -> None:
        self.frame_count += 1
        if event.average_score is not None:
            self.min_average_score = min(self.min_average_score, event.average_score)
        self.count_commands(event.commands)

    def count_commands(self, commands: List[Command]) -> None:
        self.command_count += len(commands)
        for command in commands:
            if command.type is CommandType.PAUSE:
                self.pause_count += 1
            elif command.type is CommandType.SHOW_POPUP:
                self.popup_count += 1


# ─────────────────────────────────────────────────────────
# Session lifecycle
# ─────────────────────────────────────────────────────────

def create_focus_session(mode: str, profile: str) -> Optional[int]:
    db: SASession = SessionLocal()
    try:
        row = FocusSession(mode=mode, profile=profile, status="active")
        db.add(row)
        db.commit()
        db.refresh(row)
        logger.info("FocusSession #%s created (mode=%s, profile=%s)", row.id, mode, profile)
        return row.id
    except Exception as exc:
        logger.error("Failed to create FocusSession: %s", exc)
        db.rollback()
        return None
    finally:
        db.close()


def finalise_session(
    *,
    session_id: Optional[int],
    stats: SessionStats,
    summary: SessionSummary,
    calibration: Optional[Dict[str, Any]] = None,
) -> None:
    """Write the final counters and summary when the session stops or the socket closes."""
    if session_id is None:
        return

    db: SASession = SessionLocal()
    try:
        row = db.get(FocusSession, session_id)
        if row is None:
            logger.warning("FocusSession #%s vanished before finalisation", session_id)
            return
        row.status = "ended"
        row.total_frames = stats.frame_count
        row.total_samples = summary.total_samples
        row.average_score = float(summary.average_score)
        row.min_average_score = stats.min_average_score
        row.total_commands = stats.command_count
        row.pause_count = stats.pause_count
        row.popup_count = stats.popup_count
        row.duration_seconds = summary.duration_seconds
        row.summary = summary.to_dict()
        row.calibration = calibration
        row.ended_at = datetime.utcnow()
        db.commit()
        logger.info(
            "FocusSession #%s finalised: %d frames, average=%d, pauses=%d, popups=%d",
            session_id, stats.frame_count, summary.average_score,
            stats.pause_count, stats.popup_count,
        )
    except Exception as exc:
        logger.error("Failed to finalise FocusSession #%s: %s", session_id, exc)
        db.rollback()
    finally:
        db.close()


# ─────────────────────────────────────────────────────────
# Command broadcast
# ─────────────────────────────────────────────────────────

async def broadcast_commands(session_id: Optional[int], commands: List[Command]) -> None:
    """Fan player commands out to observers on ``/ws/focus/events``."""
    if not commands:
        return
    await ws_manager.send_event({
        "session_id": session_id,
        "commands": [c.to_dict() for c in commands],
    })
    logger.debug("Broadcast %d command(s) for session %s", len(commands), session_id)
