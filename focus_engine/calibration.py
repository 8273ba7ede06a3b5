"""
Calibration - collects attentive frames and derives the baseline profile.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .config import EngineConfig
from .expression import TRACKED_SIGNALS, extract_signals
from .gaze import GazeAnalyzer
from .geometry import rotation_to_euler
from .landmarks import FaceLandmarks
from .models import CalibrationProfile, EngineStatus, FrameObservation

logger = logging.getLogger("focuswatch.engine.calibration")


@dataclass
class CalibrationSample:
    yaw: float
    pitch: float
    roll: float
    gaze_x: float
    gaze_y: float
    eye_height: float
    signals: Dict[str, float]


def is_usable_frame(frame: FrameObservation) -> bool:
    """Pose, landmarks (with iris points) and expressions must all be present."""
    return (
        frame.has_pose
        and frame.has_landmarks
        and len(frame.landmarks) >= FaceLandmarks.REQUIRED_POINTS
        and frame.has_expressions
    )


class CalibrationCollector:
    def __init__(self, config: Optional[EngineConfig] = None,
                 gaze_analyzer: Optional[GazeAnalyzer] = None):
        self.config = config or EngineConfig()
        self.gaze_analyzer = gaze_analyzer or GazeAnalyzer(self.config)
        self.samples: List[CalibrationSample] = []
        self.profile: Optional[CalibrationProfile] = None
        self.status = EngineStatus.SHOW_FACE

    @property
    def target(self) -> int:
        return self.config.CALIBRATION_FRAME_COUNT

    @property
    def is_calibrated(self) -> bool:
        return self.profile is not None

    @property
    def progress(self) -> int:
        """Collected share of the target sample count, in percent."""
        if self.is_calibrated:
            return 100
        return int(round(len(self.samples) / self.target * 100))

    def observe(self, frame: FrameObservation) -> Optional[CalibrationProfile]:
        """Add one frame. Returns the profile once complete, None while collecting."""
        if self.is_calibrated:
            return self.profile

        if not is_usable_frame(frame):
            self.status = EngineStatus.SHOW_FACE
            return None

        yaw, pitch, roll = rotation_to_euler(frame.pose_matrix)
        ratio = self.gaze_analyzer.gaze_ratio(frame.landmarks)
        self.samples.append(CalibrationSample(
            yaw=yaw,
            pitch=pitch,
            roll=roll,
            gaze_x=ratio.avg_x,
            gaze_y=ratio.avg_y,
            eye_height=ratio.avg_eye_height,
            signals=extract_signals(frame.expressions),
        ))
        self.status = EngineStatus.CALIBRATING

        if len(self.samples) >= self.target:
            self.profile = self._build_profile()
            self.status = EngineStatus.CALIBRATED
            logger.info(
                "Calibration complete: yaw=%.1f pitch=%.1f gaze=(%.3f, %.3f) "
                "std_x=%.4f eye_height=%.4f weight=%.2f",
                self.profile.base_yaw, self.profile.base_pitch,
                self.profile.base_gaze_x, self.profile.base_gaze_y,
                self.profile.std_gaze_x, self.profile.avg_eye_height,
                self.profile.gaze_y_weight_factor,
            )
        return self.profile

    def _build_profile(self) -> CalibrationProfile:
        def column(attr):
            return np.array([getattr(s, attr) for s in self.samples], dtype=np.float64)

        gaze_x = column("gaze_x")
        gaze_y = column("gaze_y")
        avg_eye_height = float(column("eye_height").mean())

        # Narrow-eyed subjects get a compressed vertical sensitivity
        eye_height_ratio = min(avg_eye_height / self.config.EYE_HEIGHT_REFERENCE, 1.0)
        weight_factor = 0.5 + 0.5 * eye_height_ratio

        base_expressions = {
            key: float(np.mean([s.signals[key] for s in self.samples]))
            for key in TRACKED_SIGNALS
        }

        return CalibrationProfile(
            base_yaw=float(column("yaw").mean()),
            base_pitch=float(column("pitch").mean()),
            base_roll=float(column("roll").mean()),
            base_gaze_x=float(gaze_x.mean()),
            base_gaze_y=float(gaze_y.mean()),
            std_gaze_x=float(gaze_x.std()),
            std_gaze_y=float(gaze_y.std()),
            avg_eye_height=avg_eye_height,
            gaze_y_weight_factor=weight_factor,
            base_expressions=base_expressions,
            sample_count=len(self.samples),
        )

    def reset(self):
        self.samples.clear()
        self.profile = None
        self.status = EngineStatus.SHOW_FACE
