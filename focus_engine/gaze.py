"""
Gaze analysis - iris position ratios and head-pose-compensated gaze-away check.
"""

from typing import Optional, Tuple

import numpy as np

from .config import EngineConfig
from .geometry import GeometryUtils
from .landmarks import FaceLandmarks
from .models import CalibrationProfile, GazeRatio


class GazeAnalyzer:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def gaze_ratio(self, landmarks: np.ndarray) -> GazeRatio:
        cfg = self.config
        left_iris = GeometryUtils.centroid(landmarks, FaceLandmarks.LEFT_IRIS)
        right_iris = GeometryUtils.centroid(landmarks, FaceLandmarks.RIGHT_IRIS)

        def x(idx):
            return float(landmarks[idx, 0])

        def y(idx):
            return float(landmarks[idx, 1])

        left_width = abs(x(FaceLandmarks.LEFT_EYE_OUTER) - x(FaceLandmarks.LEFT_EYE_INNER))
        right_width = abs(x(FaceLandmarks.RIGHT_EYE_OUTER) - x(FaceLandmarks.RIGHT_EYE_INNER))
        left_height = abs(y(FaceLandmarks.LEFT_EYE_TOP) - y(FaceLandmarks.LEFT_EYE_BOTTOM))
        right_height = abs(y(FaceLandmarks.RIGHT_EYE_TOP) - y(FaceLandmarks.RIGHT_EYE_BOTTOM))

        left_x = GeometryUtils.safe_ratio(
            left_iris[0] - x(FaceLandmarks.LEFT_EYE_OUTER), left_width, cfg.EYE_WIDTH_FLOOR)
        right_x = GeometryUtils.safe_ratio(
            right_iris[0] - x(FaceLandmarks.RIGHT_EYE_INNER), right_width, cfg.EYE_WIDTH_FLOOR)

        left_mid_y = (y(FaceLandmarks.LEFT_EYE_TOP) + y(FaceLandmarks.LEFT_EYE_BOTTOM)) / 2
        right_mid_y = (y(FaceLandmarks.RIGHT_EYE_TOP) + y(FaceLandmarks.RIGHT_EYE_BOTTOM)) / 2
        left_y = GeometryUtils.safe_ratio(left_iris[1] - left_mid_y, left_height, cfg.EYE_HEIGHT_FLOOR)
        right_y = GeometryUtils.safe_ratio(right_iris[1] - right_mid_y, right_height, cfg.EYE_HEIGHT_FLOOR)

        return GazeRatio(
            left_x=left_x,
            right_x=right_x,
            left_y=left_y,
            right_y=right_y,
            avg_eye_height=(left_height + right_height) / 2,
        )

    def threshold(self, profile: CalibrationProfile) -> float:
        return max(self.config.GAZE_AWAY_THRESHOLD, profile.std_gaze_x * self.config.GAZE_STD_MULTIPLIER)

    def expected_gaze_x(self, current_yaw: float, profile: CalibrationProfile) -> float:
        # Turning right (yaw > 0) moves the iris left to keep looking at the screen
        if not self.config.GAZE_YAW_COMPENSATION:
            return profile.base_gaze_x
        yaw_from_base = current_yaw - profile.base_yaw
        return profile.base_gaze_x - yaw_from_base * self.config.GAZE_SHIFT_PER_DEGREE

    def evaluate(self, ratio: GazeRatio, current_yaw: float,
                 profile: CalibrationProfile) -> Tuple[bool, float, float]:
        """Return (away, expected_gaze_x, threshold). Horizontal axis only."""
        expected = self.expected_gaze_x(current_yaw, profile)
        threshold = self.threshold(profile)
        return abs(ratio.avg_x - expected) > threshold, expected, threshold

    def is_gaze_away(self, ratio: GazeRatio, current_yaw: float, profile: CalibrationProfile) -> bool:
        return self.evaluate(ratio, current_yaw, profile)[0]
