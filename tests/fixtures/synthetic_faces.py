"""
Synthetic face generator for engine tests.

Creates MediaPipe-style 478x3 refined face-mesh landmarks (iris points
included), blendshape maps and head-pose rotation matrices with known
gaze ratios and angles. Coordinates are normalized to [0, 1].

Eye geometry: left eye outer corner (33) at x=0.30, inner (133) at x=0.36;
right eye inner (362) at x=0.64, outer (263) at x=0.70. Both eyes are 0.06
wide and 0.03 tall, so an iris placed at corner + gaze_x * 0.06 yields a
horizontal gaze ratio of exactly gaze_x for each eye.
"""

import math
from typing import Dict, Optional, Tuple

import numpy as np

from focus_engine.models import FrameObservation

EYE_WIDTH = 0.06
EYE_HEIGHT = 0.03
EYE_CENTER_Y = 0.40

LEFT_OUTER_X, LEFT_INNER_X = 0.30, 0.36
RIGHT_INNER_X, RIGHT_OUTER_X = 0.64, 0.70

LEFT_IRIS = range(468, 473)
RIGHT_IRIS = range(473, 478)

# Every blendshape the engine reads, at rest
NEUTRAL_BLENDSHAPES = (
    "browDownLeft", "browDownRight", "browInnerUp",
    "eyeSquintLeft", "eyeSquintRight", "eyeBlinkLeft", "eyeBlinkRight",
    "eyeWideLeft", "eyeWideRight",
    "mouthSmileLeft", "mouthSmileRight", "mouthPucker", "mouthFunnel",
    "mouthPressLeft", "mouthPressRight", "mouthFrownLeft", "mouthFrownRight",
    "jawOpen",
)


def make_landmarks(gaze_x: float = 0.5, gaze_y: float = 0.0,
                   nose: Tuple[float, float] = (0.5, 0.5),
                   eye_height: float = EYE_HEIGHT, points: int = 478) -> np.ndarray:
    """Landmarks with both eyes looking at the given gaze ratio."""
    lm = np.zeros((points, 3), dtype=np.float64)
    lm[:, 0] = 0.5
    lm[:, 1] = 0.5

    lm[33, :2] = (LEFT_OUTER_X, EYE_CENTER_Y)
    lm[133, :2] = (LEFT_INNER_X, EYE_CENTER_Y)
    lm[362, :2] = (RIGHT_INNER_X, EYE_CENTER_Y)
    lm[263, :2] = (RIGHT_OUTER_X, EYE_CENTER_Y)

    top, bottom = EYE_CENTER_Y - eye_height / 2, EYE_CENTER_Y + eye_height / 2
    lm[159, :2] = ((LEFT_OUTER_X + LEFT_INNER_X) / 2, top)
    lm[145, :2] = ((LEFT_OUTER_X + LEFT_INNER_X) / 2, bottom)
    lm[386, :2] = ((RIGHT_INNER_X + RIGHT_OUTER_X) / 2, top)
    lm[374, :2] = ((RIGHT_INNER_X + RIGHT_OUTER_X) / 2, bottom)

    if points >= 478:
        iris_y = EYE_CENTER_Y + gaze_y * eye_height
        for idx in LEFT_IRIS:
            lm[idx, :2] = (LEFT_OUTER_X + gaze_x * EYE_WIDTH, iris_y)
        for idx in RIGHT_IRIS:
            lm[idx, :2] = (RIGHT_INNER_X + gaze_x * EYE_WIDTH, iris_y)

    lm[1, :2] = nose
    return lm


def make_blendshapes(**overrides: float) -> Dict[str, float]:
    shapes = {name: 0.0 for name in NEUTRAL_BLENDSHAPES}
    shapes.update(overrides)
    return shapes


def rotation_matrix(yaw: float = 0.0, pitch: float = 0.0) -> list:
    """Row-major 3x3 rotation R = Ry(yaw) . Rx(pitch), angles in degrees."""
    a, b = math.radians(yaw), math.radians(pitch)
    ry = np.array([[math.cos(a), 0, math.sin(a)], [0, 1, 0], [-math.sin(a), 0, math.cos(a)]])
    rx = np.array([[1, 0, 0], [0, math.cos(b), -math.sin(b)], [0, math.sin(b), math.cos(b)]])
    return (ry @ rx).ravel().tolist()


def make_frame(timestamp: float, gaze_x: float = 0.5, gaze_y: float = 0.0,
               yaw: float = 0.0, pitch: float = 0.0,
               nose: Tuple[float, float] = (0.5, 0.5),
               pose: bool = True, blendshapes: Optional[Dict[str, float]] = None,
               **expression_overrides: float) -> FrameObservation:
    """An attentive-looking frame unless overridden."""
    expressions = blendshapes if blendshapes is not None else make_blendshapes(**expression_overrides)
    return FrameObservation(
        timestamp=timestamp,
        landmarks=make_landmarks(gaze_x=gaze_x, gaze_y=gaze_y, nose=nose),
        expressions=expressions,
        pose_matrix=rotation_matrix(yaw, pitch) if pose else None,
    )


def no_face_frame(timestamp: float) -> FrameObservation:
    return FrameObservation(timestamp=timestamp)


def frame_payload(timestamp: float, gaze_x: float = 0.5, yaw: float = 0.0,
                  media_time: Optional[float] = None, **expression_overrides: float) -> dict:
    """JSON-ready frame as a browser client would send it."""
    payload = {
        "timestamp": timestamp,
        "landmarks": make_landmarks(gaze_x=gaze_x).tolist(),
        "expressions": make_blendshapes(**expression_overrides),
        "pose_matrix": rotation_matrix(yaw),
    }
    if media_time is not None:
        payload["media_time"] = media_time
    return payload


def calibrate(engine, start: float = 0.0, step: float = 0.1, count: Optional[int] = None, **kwargs):
    """Feed enough attentive frames to complete calibration; returns the next timestamp."""
    count = count if count is not None else engine.config.CALIBRATION_FRAME_COUNT
    t = start
    for _ in range(count):
        engine.step(make_frame(t, **kwargs), now=t)
        t = round(t + step, 6)
    return t
