"""
Geometry utilities - pure numeric helpers shared by the analyzers.
"""

import math
from typing import Iterable, Sequence, Tuple

import numpy as np


class GeometryUtils:
    @staticmethod
    def centroid(points: np.ndarray, indices: Sequence[int]) -> Tuple[float, float]:
        subset = points[list(indices), :2]
        cx, cy = subset.mean(axis=0)
        return float(cx), float(cy)

    @staticmethod
    def safe_ratio(numerator: float, denominator: float, floor: float) -> float:
        """Divide with the denominator's magnitude floored to avoid blow-ups."""
        return numerator / max(abs(denominator), floor)

    @staticmethod
    def population_std(values: Iterable[float]) -> float:
        arr = np.fromiter(values, dtype=np.float64)
        if arr.size == 0:
            return 0.0
        return float(arr.std())


def rotation_to_euler(matrix: Sequence[float]) -> Tuple[float, float, float]:
    """
    Decompose the rotation embedded in a column-major 4x4 facial transform
    into (yaw, pitch, roll) degrees.
    """
    m = matrix
    yaw = math.atan2(m[8], m[10])
    pitch = math.atan2(-m[9], math.sqrt(m[8] * m[8] + m[10] * m[10]))
    roll = math.atan2(m[1], m[0])
    return math.degrees(yaw), math.degrees(pitch), math.degrees(roll)
