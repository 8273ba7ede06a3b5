"""
Pydantic Schemas for API request/response and websocket message validation
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field


# ── Session start ────────────────────────────────────────
class SessionConfig(BaseModel):
    """Per-session engine overrides; unset fields keep the server defaults."""
    calibration_frames: Optional[int] = Field(default=None, ge=1, le=600)
    gaze_away_threshold: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    unfocus_threshold: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    cooldown_seconds: Optional[float] = Field(default=None, ge=0.0)
    recovery_seconds: Optional[float] = Field(default=None, ge=0.0)
    eyes_closed_seconds: Optional[float] = Field(default=None, ge=0.0)
    rolling_window_seconds: Optional[float] = Field(default=None, gt=0.0)

    def to_overrides(self) -> Dict[str, Any]:
        return {
            "CALIBRATION_FRAME_COUNT": self.calibration_frames,
            "GAZE_AWAY_THRESHOLD": self.gaze_away_threshold,
            "UNFOCUS_THRESHOLD": self.unfocus_threshold,
            "COOLDOWN": self.cooldown_seconds,
            "RECOVERY_DURATION": self.recovery_seconds,
            "EYES_CLOSED_DEBOUNCE": self.eyes_closed_seconds,
            "ROLLING_WINDOW": self.rolling_window_seconds,
        }


class StartMessage(BaseModel):
    mode: Optional[str] = None
    profile: Optional[str] = None
    config: SessionConfig = Field(default_factory=SessionConfig)


# ── Frames & control ─────────────────────────────────────
class FrameData(BaseModel):
    """One face-tracking result produced by the client."""
    timestamp: float
    media_time: Optional[float] = None
    landmarks: Optional[List[Union[List[float], Dict[str, float]]]] = None
    expressions: Optional[Union[Dict[str, float], List[Dict[str, Any]]]] = None
    blendshapes: Optional[Union[Dict[str, float], List[Dict[str, Any]]]] = None
    pose_matrix: Optional[List[float]] = None


class PlaybackMessage(BaseModel):
    playing: bool


class PopupMessage(BaseModel):
    choice: str


# ── Session responses ────────────────────────────────────
class FocusSessionResponse(BaseModel):
    id: int
    mode: str
    profile: str
    status: str
    total_frames: int
    total_samples: int
    average_score: float
    min_average_score: float
    total_commands: int
    pause_count: int
    popup_count: int
    duration_seconds: float
    created_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class FocusSessionDetail(FocusSessionResponse):
    summary: Optional[Dict[str, Any]] = None
    calibration: Optional[Dict[str, Any]] = None
