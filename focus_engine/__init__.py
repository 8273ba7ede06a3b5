"""
Focus Watch Engine Package
Attention scoring for video viewers from face-tracking observations.

Usage (Headless API - one ScoreEvent per frame):
    from focus_engine import FocusEngine, EngineConfig, observation_from_dict

    engine = FocusEngine(mode="intrusive", config=EngineConfig.for_profile("refined"))
    commands = engine.start_session()
    event = engine.step(observation_from_dict(payload))
    if event is not None:
        print(event.to_dict())
    summary = engine.stop_session()

Usage (Standalone webcam with OpenCV window):
    python -m focus_engine.camera_source --mode nonintrusive
"""

from .config import EngineConfig, PROFILES
from .engine import FocusEngine
from .models import (
    CalibrationProfile,
    Command,
    CommandType,
    EngineStatus,
    FocusWarning,
    FrameObservation,
    FrameScore,
    GazeRatio,
    ScoreEvent,
    SessionMode,
)
from .modes import FocusSignal, ModeController, create_mode_controller
from .observation import observation_from_dict, observation_from_result
from .scoring import SessionSummary

__all__ = [
    "EngineConfig",
    "PROFILES",
    "FocusEngine",
    "CalibrationProfile",
    "Command",
    "CommandType",
    "EngineStatus",
    "FocusWarning",
    "FrameObservation",
    "FrameScore",
    "GazeRatio",
    "ScoreEvent",
    "SessionMode",
    "FocusSignal",
    "ModeController",
    "create_mode_controller",
    "observation_from_dict",
    "observation_from_result",
    "SessionSummary",
]
