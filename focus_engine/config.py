"""
Focus Engine Configuration
Immutable tuning constants for calibration, scoring and playback control.

Two profiles exist because the deployed revisions of the engine disagree on a
handful of constants. Neither is canonical; hosts pick one per session.
"""

from dataclasses import dataclass, fields, replace
from typing import Any, Dict


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration for focus detection thresholds and timing (seconds)"""

    # Calibration
    CALIBRATION_FRAME_COUNT: int = 30
    EYE_HEIGHT_REFERENCE: float = 0.03

    # Gaze
    GAZE_AWAY_THRESHOLD: float = 0.05
    GAZE_STD_MULTIPLIER: float = 3.0
    GAZE_YAW_COMPENSATION: bool = True
    GAZE_SHIFT_PER_DEGREE: float = 0.004
    EYE_HEIGHT_FLOOR: float = 0.01
    EYE_WIDTH_FLOOR: float = 1e-6

    # Head pose (deviation from baseline, degrees)
    HEAD_YAW_THRESHOLD: float = 25.0
    HEAD_PITCH_THRESHOLD: float = 20.0

    # Eyes closed / yawning (blendshape intensities)
    EYES_CLOSED_BLINK_THRESHOLD: float = 0.3
    EYES_CLOSED_DEBOUNCE: float = 1.0
    YAWN_JAW_OPEN_THRESHOLD: float = 0.4

    # Restlessness
    FACE_HISTORY_SIZE: int = 30
    FACE_MOVEMENT_THRESHOLD: float = 0.07

    # Penalties
    PENALTY_EYES_CLOSED: float = 40.0
    PENALTY_HEAD_AWAY: float = 30.0
    PENALTY_GAZE_AWAY: float = 25.0
    PENALTY_YAWNING: float = 20.0
    PENALTY_RESTLESS: float = 15.0
    EXPRESSION_PENALTIES_ENABLED: bool = True
    EXPRESSION_PENALTY_CAP: float = 30.0

    # Score windows
    ROLLING_WINDOW: float = 5.0
    SCORE_INTERVAL: float = 1.0

    # Playback control
    UNFOCUS_THRESHOLD: float = 75.0
    COOLDOWN: float = 30.0
    RECOVERY_DURATION: float = 2.0
    BASE_VOLUME: float = 1.0
    STRICT_BASE_VOLUME: float = 0.6
    VOLUME_BOOST_STEP: float = 0.4

    def __post_init__(self):
        if self.CALIBRATION_FRAME_COUNT < 1:
            raise ValueError("CALIBRATION_FRAME_COUNT must be at least 1")
        if self.FACE_HISTORY_SIZE < 2:
            raise ValueError("FACE_HISTORY_SIZE must be at least 2")
        for name in ("ROLLING_WINDOW", "SCORE_INTERVAL", "EYE_HEIGHT_REFERENCE",
                     "EYE_HEIGHT_FLOOR", "EYE_WIDTH_FLOOR"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("EYES_CLOSED_DEBOUNCE", "COOLDOWN", "RECOVERY_DURATION",
                     "GAZE_AWAY_THRESHOLD", "EXPRESSION_PENALTY_CAP"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if not 0 <= self.UNFOCUS_THRESHOLD <= 100:
            raise ValueError("UNFOCUS_THRESHOLD must be within [0, 100]")
        for name in ("BASE_VOLUME", "STRICT_BASE_VOLUME"):
            if not 0 <= getattr(self, name) <= 1:
                raise ValueError(f"{name} must be within [0, 1]")

    @classmethod
    def for_profile(cls, profile: str = "refined", **overrides: Any) -> "EngineConfig":
        """Build a config from a named profile plus field overrides."""
        key = (profile or "refined").strip().lower()
        if key not in PROFILES:
            raise ValueError(f"Unknown config profile: {profile!r}")
        values = dict(PROFILES[key])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return replace(cls(), **values)

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


# Profile deltas relative to the dataclass defaults
PROFILES: Dict[str, Dict[str, Any]] = {
    "refined": {},
    "legacy": {
        "GAZE_AWAY_THRESHOLD": 0.12,
        "UNFOCUS_THRESHOLD": 50.0,
        "GAZE_YAW_COMPENSATION": False,
        "EXPRESSION_PENALTIES_ENABLED": False,
    },
}
