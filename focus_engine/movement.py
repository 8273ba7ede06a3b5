"""
Movement analysis - flags restless head movement from face-center variance.
"""

from collections import deque
from typing import Deque, Optional, Tuple

import numpy as np

from .config import EngineConfig
from .geometry import GeometryUtils
from .landmarks import FaceLandmarks


class MovementAnalyzer:
    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.history: Deque[Tuple[float, float]] = deque(maxlen=self.config.FACE_HISTORY_SIZE)

    @staticmethod
    def face_center(landmarks: np.ndarray) -> Tuple[float, float]:
        nose = landmarks[FaceLandmarks.NOSE_TIP]
        return float(nose[0]), float(nose[1])

    def update(self, landmarks: np.ndarray) -> bool:
        self.history.append(self.face_center(landmarks))
        return self.is_restless()

    def is_restless(self) -> bool:
        # Too few samples to tell movement from noise
        if len(self.history) < self.config.FACE_HISTORY_SIZE / 2:
            return False
        std_x = GeometryUtils.population_std(p[0] for p in self.history)
        std_y = GeometryUtils.population_std(p[1] for p in self.history)
        threshold = self.config.FACE_MOVEMENT_THRESHOLD
        return std_x > threshold or std_y > threshold

    def reset(self):
        self.history.clear()
