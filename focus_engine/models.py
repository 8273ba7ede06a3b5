"""
Focus Engine Data Model
Frame observations, calibration profile, score samples, commands and events.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np


# ============================================================================
# ENUMS
# ============================================================================

class SessionMode(str, Enum):
    """Playback-control behaviour selected once per watch session"""
    NORMAL = "normal"
    SCORE_ONLY = "score_only"
    NON_INTRUSIVE = "nonintrusive"
    INTRUSIVE = "intrusive"
    STRICT = "strict"
    NO_CONTROL = "nocontrol"

    @classmethod
    def parse(cls, value: "str | SessionMode") -> "SessionMode":
        if isinstance(value, cls):
            return value
        key = "".join(ch for ch in str(value).strip().lower() if ch not in "-_ ")
        for mode in cls:
            if key == mode.value.replace("_", ""):
                return mode
        raise ValueError(f"Unknown session mode: {value!r}")


class FocusWarning(str, Enum):
    FACE_NOT_DETECTED = "face_not_detected"
    EYES_CLOSED = "eyes_closed"
    HEAD_AWAY = "head_away"
    GAZE_AWAY = "gaze_away"
    YAWNING = "yawning"
    RESTLESS = "restless"
    BROW_DOWN = "brow_down"
    SMILE = "smile"
    MOUTH_PUCKER = "mouth_pucker"
    MOUTH_PRESS = "mouth_press"
    EYE_WIDE = "eye_wide"
    MOUTH_FROWN = "mouth_frown"
    BROW_INNER_UP = "brow_inner_up"
    MOUTH_FUNNEL = "mouth_funnel"


WARNING_MESSAGES: Dict[FocusWarning, str] = {
    FocusWarning.FACE_NOT_DETECTED: "Face not detected",
    FocusWarning.EYES_CLOSED: "Eyes closed",
    FocusWarning.HEAD_AWAY: "Head turned away",
    FocusWarning.GAZE_AWAY: "Gaze away",
    FocusWarning.YAWNING: "Yawning",
    FocusWarning.RESTLESS: "Restless movement",
    FocusWarning.BROW_DOWN: "Frowning (AU4)",
    FocusWarning.SMILE: "Smile (AU12)",
    FocusWarning.MOUTH_PUCKER: "Mouth pucker (AU18)",
    FocusWarning.MOUTH_PRESS: "Lip press (AU24)",
    FocusWarning.EYE_WIDE: "Eye wide (AU5)",
    FocusWarning.MOUTH_FROWN: "Mouth frown (AU15)",
    FocusWarning.BROW_INNER_UP: "Brow inner up (AU1)",
    FocusWarning.MOUTH_FUNNEL: "Mouth round (AU22)",
}


class EngineStatus(str, Enum):
    SHOW_FACE = "show_face"
    CALIBRATING = "calibrating"
    CALIBRATED = "calibrated"
    ANALYZING = "analyzing"
    IDLE = "idle"


class CommandType(str, Enum):
    """Discrete commands for the playback/UI collaborator"""
    PAUSE = "pause"
    RESUME = "resume"
    SET_VOLUME = "set_volume"
    SHOW_POPUP = "show_popup"
    HIDE_POPUP = "hide_popup"
    PLAY_WARNING_SOUND = "play_warning_sound"
    SHOW_OVERLAY = "show_overlay"
    HIDE_OVERLAY = "hide_overlay"
    ENABLE_CONTROLS = "enable_controls"
    DISABLE_CONTROLS = "disable_controls"


@dataclass(frozen=True)
class Command:
    type: CommandType
    value: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        if self.value is not None:
            data["value"] = round(self.value, 3)
        return data


# ============================================================================
# INPUT
# ============================================================================

@dataclass(frozen=True, eq=False)
class FrameObservation:
    """
    One face-tracking result for a distinct camera frame.

    landmarks: (N, 3) normalized points, or None when no face was found.
    expressions: blendshape name -> intensity in [0, 1].
    pose_matrix: 4x4 facial transformation matrix flattened column-major.
    """
    timestamp: float
    landmarks: Optional[np.ndarray] = None
    expressions: Mapping[str, float] = field(default_factory=dict)
    pose_matrix: Optional[Tuple[float, ...]] = None

    def __post_init__(self):
        if self.landmarks is not None:
            points = np.array(self.landmarks, dtype=np.float64)
            if points.ndim != 2 or points.shape[1] not in (2, 3):
                raise ValueError(f"landmarks must be an (N, 2) or (N, 3) array, got {points.shape}")
            points.setflags(write=False)
            object.__setattr__(self, "landmarks", points)
        if self.pose_matrix is not None:
            # Zero transforms from the tracker means no pose, not a bad matrix
            pose = np.asarray(self.pose_matrix, dtype=np.float64)
            object.__setattr__(self, "pose_matrix", normalize_pose_matrix(pose) if pose.size else None)
        object.__setattr__(self, "expressions", dict(self.expressions or {}))

    @property
    def has_landmarks(self) -> bool:
        return self.landmarks is not None and len(self.landmarks) > 0

    @property
    def has_expressions(self) -> bool:
        return bool(self.expressions)

    @property
    def has_pose(self) -> bool:
        return self.pose_matrix is not None

    @property
    def face_detected(self) -> bool:
        return self.has_landmarks and self.has_expressions

    def expression(self, name: str) -> float:
        return float(self.expressions.get(name, 0.0))


def normalize_pose_matrix(values) -> Tuple[float, ...]:
    """
    Accept a 4x4 transform (16 numbers, column-major) or a 3x3 rotation
    (9 numbers, row-major) and return the 16-element column-major form.
    """
    flat = [float(v) for v in np.asarray(values, dtype=np.float64).ravel()]
    if len(flat) == 16:
        return tuple(flat)
    if len(flat) == 9:
        m = [0.0] * 16
        for i in range(3):
            for j in range(3):
                m[4 * j + i] = flat[3 * i + j]
        m[15] = 1.0
        return tuple(m)
    raise ValueError(f"pose matrix must have 9 or 16 elements, got {len(flat)}")


# ============================================================================
# DERIVED VALUES
# ============================================================================

def _require_finite(**values: float) -> None:
    for name, value in values.items():
        if value is None or not math.isfinite(value):
            raise ValueError(f"{name} must be a finite number, got {value!r}")


@dataclass(frozen=True)
class GazeRatio:
    """Iris position relative to the eye corners, per eye and averaged"""
    left_x: float
    right_x: float
    left_y: float
    right_y: float
    avg_eye_height: float

    def __post_init__(self):
        _require_finite(left_x=self.left_x, right_x=self.right_x, left_y=self.left_y,
                        right_y=self.right_y, avg_eye_height=self.avg_eye_height)
        if self.avg_eye_height < 0:
            raise ValueError("avg_eye_height must not be negative")

    @property
    def avg_x(self) -> float:
        return (self.left_x + self.right_x) / 2.0

    @property
    def avg_y(self) -> float:
        return (self.left_y + self.right_y) / 2.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "left_x": round(self.left_x, 4),
            "right_x": round(self.right_x, 4),
            "avg_x": round(self.avg_x, 4),
            "left_y": round(self.left_y, 4),
            "right_y": round(self.right_y, 4),
            "avg_y": round(self.avg_y, 4),
            "avg_eye_height": round(self.avg_eye_height, 4),
        }


@dataclass(frozen=True)
class CalibrationProfile:
    """Baseline captured while the subject is assumed attentive"""
    base_yaw: float
    base_pitch: float
    base_roll: float
    base_gaze_x: float
    base_gaze_y: float
    std_gaze_x: float
    std_gaze_y: float
    avg_eye_height: float
    gaze_y_weight_factor: float
    base_expressions: Mapping[str, float] = field(default_factory=dict)
    sample_count: int = 0

    def __post_init__(self):
        _require_finite(base_yaw=self.base_yaw, base_pitch=self.base_pitch, base_roll=self.base_roll,
                        base_gaze_x=self.base_gaze_x, base_gaze_y=self.base_gaze_y,
                        std_gaze_x=self.std_gaze_x, std_gaze_y=self.std_gaze_y,
                        avg_eye_height=self.avg_eye_height,
                        gaze_y_weight_factor=self.gaze_y_weight_factor)
        if self.std_gaze_x < 0 or self.std_gaze_y < 0 or self.avg_eye_height < 0:
            raise ValueError("standard deviations and eye height must not be negative")
        object.__setattr__(self, "base_expressions", dict(self.base_expressions))

    def baseline(self, signal: str) -> float:
        return float(self.base_expressions.get(signal, 0.0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_yaw": round(self.base_yaw, 2),
            "base_pitch": round(self.base_pitch, 2),
            "base_roll": round(self.base_roll, 2),
            "base_gaze_x": round(self.base_gaze_x, 4),
            "base_gaze_y": round(self.base_gaze_y, 4),
            "std_gaze_x": round(self.std_gaze_x, 4),
            "std_gaze_y": round(self.std_gaze_y, 4),
            "avg_eye_height": round(self.avg_eye_height, 4),
            "gaze_y_weight_factor": round(self.gaze_y_weight_factor, 3),
            "base_expressions": {k: round(v, 4) for k, v in self.base_expressions.items()},
            "sample_count": self.sample_count,
        }


@dataclass(frozen=True)
class ExpressionPenaltyResult:
    penalty: float = 0.0
    warnings: Tuple[FocusWarning, ...] = ()


@dataclass(frozen=True)
class ScoreSample:
    score: float
    timestamp: float

    def __post_init__(self):
        _require_finite(score=self.score, timestamp=self.timestamp)
        object.__setattr__(self, "score", min(100.0, max(0.0, float(self.score))))


# ============================================================================
# OUTPUT
# ============================================================================

@dataclass
class FrameScore:
    """Per-frame scoring result with the conditions that produced it"""
    score: float
    warnings: List[FocusWarning] = field(default_factory=list)
    face_detected: bool = True
    eyes_closed: bool = False
    head_away: bool = False
    gaze_away: bool = False
    yawning: bool = False
    restless: bool = False
    expression_penalty: float = 0.0
    angles: Optional[Tuple[float, float, float]] = None
    angle_deltas: Optional[Tuple[float, float]] = None
    gaze: Optional[GazeRatio] = None
    expected_gaze_x: Optional[float] = None
    gaze_threshold: Optional[float] = None
    signals: Optional[Dict[str, float]] = None


@dataclass
class ScoreEvent:
    """What the engine reports to the host after one step"""
    timestamp: float
    status: EngineStatus
    face_detected: bool
    calibration_progress: int = 0
    score: Optional[float] = None
    average_score: Optional[float] = None
    warnings: List[FocusWarning] = field(default_factory=list)
    commands: List[Command] = field(default_factory=list)
    frame: Optional[FrameScore] = None
    profile: Optional[CalibrationProfile] = None

    @property
    def rounded_score(self) -> Optional[int]:
        return None if self.score is None else int(round(self.score))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp,
            "status": self.status.value,
            "face_detected": self.face_detected,
            "calibration_progress": self.calibration_progress,
            "score": self.rounded_score,
            "average_score": None if self.average_score is None else round(self.average_score, 1),
            "warnings": [w.value for w in self.warnings],
            "messages": [WARNING_MESSAGES[w] for w in self.warnings],
            "commands": [c.to_dict() for c in self.commands],
        }
        if self.frame is not None and self.frame.face_detected:
            f = self.frame
            data["diagnostics"] = {
                "angles": {
                    "yaw": round(f.angles[0], 2),
                    "pitch": round(f.angles[1], 2),
                    "roll": round(f.angles[2], 2),
                } if f.angles else None,
                "yaw_delta": round(f.angle_deltas[0], 2) if f.angle_deltas else None,
                "pitch_delta": round(f.angle_deltas[1], 2) if f.angle_deltas else None,
                "gaze": f.gaze.to_dict() if f.gaze else None,
                "expected_gaze_x": None if f.expected_gaze_x is None else round(f.expected_gaze_x, 4),
                "gaze_threshold": None if f.gaze_threshold is None else round(f.gaze_threshold, 4),
                "expression_penalty": f.expression_penalty,
            }
        if self.profile is not None:
            data["profile"] = self.profile.to_dict()
        return data
