"""
Landmark definitions - MediaPipe FaceMesh indices (478-point refined mesh)
"""


class FaceLandmarks:
    """Centralized landmark indices for MediaPipe FaceLandmarker with iris refinement"""

    NOSE_TIP = 1

    LEFT_IRIS = [468, 469, 470, 471, 472]
    RIGHT_IRIS = [473, 474, 475, 476, 477]

    LEFT_EYE_INNER = 133
    LEFT_EYE_OUTER = 33
    RIGHT_EYE_INNER = 362
    RIGHT_EYE_OUTER = 263

    LEFT_EYE_TOP = 159
    LEFT_EYE_BOTTOM = 145
    RIGHT_EYE_TOP = 386
    RIGHT_EYE_BOTTOM = 374

    # Smallest mesh that contains every index above
    REQUIRED_POINTS = 478
