"""
Observation adapters - build FrameObservations from face-tracker output.

MediaPipe Tasks FaceLandmarkerResult objects (Python camera loop) and plain
JSON payloads (browser clients over the websocket) both end up here.
"""

from typing import Any, Dict, Iterable, Mapping, Optional

import numpy as np

from .models import FrameObservation


def _points_from_landmarks(landmarks: Iterable[Any]) -> Optional[np.ndarray]:
    rows = []
    for lm in landmarks:
        if isinstance(lm, Mapping):
            rows.append((lm.get("x", 0.0), lm.get("y", 0.0), lm.get("z", 0.0)))
        elif hasattr(lm, "x"):
            rows.append((lm.x, lm.y, getattr(lm, "z", 0.0) or 0.0))
        else:
            values = list(lm)
            rows.append((values[0], values[1], values[2] if len(values) > 2 else 0.0))
    if not rows:
        return None
    return np.asarray(rows, dtype=np.float64)


def _expressions_from_categories(categories: Any) -> Dict[str, float]:
    """Blendshapes arrive either as {name: score} or as a list of categories."""
    if categories is None:
        return {}
    if isinstance(categories, Mapping):
        return {str(k): float(v) for k, v in categories.items()}
    result = {}
    for cat in categories:
        if isinstance(cat, Mapping):
            name = cat.get("category_name") or cat.get("categoryName")
            score = cat.get("score", 0.0)
        else:
            name = cat.category_name
            score = cat.score
        if name:
            result[str(name)] = float(score)
    return result


def observation_from_result(result: Any, timestamp: float) -> FrameObservation:
    """
    Convert a MediaPipe FaceLandmarkerResult (first face only).

    The facial transformation matrix comes back as a row-major 4x4 numpy
    array and is flattened column-major here.
    """
    if not getattr(result, "face_landmarks", None):
        return FrameObservation(timestamp=timestamp)

    landmarks = _points_from_landmarks(result.face_landmarks[0])

    expressions: Dict[str, float] = {}
    blendshapes = getattr(result, "face_blendshapes", None)
    if blendshapes:
        expressions = _expressions_from_categories(blendshapes[0])

    pose = None
    matrixes = getattr(result, "facial_transformation_matrixes", None)
    if matrixes is not None and len(matrixes) > 0:
        matrix = np.asarray(matrixes[0], dtype=np.float64)
        if matrix.shape == (4, 4):
            pose = matrix.flatten(order="F")
        else:
            pose = matrix.ravel()

    return FrameObservation(timestamp=timestamp, landmarks=landmarks,
                            expressions=expressions, pose_matrix=pose)


def observation_from_dict(payload: Mapping[str, Any],
                          default_timestamp: Optional[float] = None) -> FrameObservation:
    """
    Convert a client frame payload:

        {"timestamp": 12.5,
         "landmarks": [[x, y, z], ...] | [{"x": .., "y": .., "z": ..}, ...],
         "expressions": {"jawOpen": 0.1, ...} | [{"categoryName": .., "score": ..}],
         "pose_matrix": [16 numbers column-major] | [9 numbers row-major]}

    Raises ValueError on malformed payloads.
    """
    if not isinstance(payload, Mapping):
        raise ValueError("frame payload must be an object")

    timestamp = payload.get("timestamp", default_timestamp)
    if timestamp is None:
        raise ValueError("frame payload is missing a timestamp")
    try:
        timestamp = float(timestamp)
    except (TypeError, ValueError):
        raise ValueError(f"invalid frame timestamp: {timestamp!r}") from None

    try:
        raw_landmarks = payload.get("landmarks")
        landmarks = _points_from_landmarks(raw_landmarks) if raw_landmarks else None
        raw_expressions = payload.get("expressions", payload.get("blendshapes"))
        expressions = _expressions_from_categories(raw_expressions)
    except (TypeError, AttributeError, IndexError) as e:
        raise ValueError(f"malformed frame payload: {e}") from e

    pose = payload.get("pose_matrix", payload.get("matrix"))

    return FrameObservation(timestamp=timestamp, landmarks=landmarks,
                            expressions=expressions, pose_matrix=pose)
