"""
Focus Session Model
One row per watch session (one per websocket session start).
"""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String

from app.core.database import Base


class FocusSession(Base):
    """Tracks a focus monitoring session and its final summary."""
    __tablename__ = "focus_sessions"

    id = Column(Integer, primary_key=True, index=True)
    mode = Column(String(20), default="normal")
    profile = Column(String(20), default="refined")
    status = Column(String(20), default="active")  # active, ended
    total_frames = Column(Integer, default=0)
    total_samples = Column(Integer, default=0)
    average_score = Column(Float, default=0.0)
    min_average_score = Column(Float, default=100.0)
    total_commands = Column(Integer, default=0)
    pause_count = Column(Integer, default=0)
    popup_count = Column(Integer, default=0)
    duration_seconds = Column(Float, default=0.0)
    summary = Column(JSON, nullable=True)
    calibration = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    ended_at = Column(DateTime, nullable=True)

