"""
Camera Source - Standalone webcam runner.
Feeds OpenCV frames through the MediaPipe Tasks FaceLandmarker (VIDEO mode,
blendshapes and transformation matrices enabled) into a FocusEngine and
draws the live score on screen.

    python -m focus_engine.camera_source --mode intrusive
"""

import argparse
import logging
import os
import time
import urllib.request
from typing import Callable, Optional

import cv2
import mediapipe as mp
import numpy as np

from .config import EngineConfig
from .engine import FocusEngine
from .models import EngineStatus, ScoreEvent, WARNING_MESSAGES
from .observation import observation_from_result

logger = logging.getLogger("focuswatch.camera")

_MODELS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), ".models")
_FACE_MODEL_PATH = os.path.join(_MODELS_DIR, "face_landmarker.task")
_FACE_MODEL_URL = (
    "https://storage.googleapis.com/mediapipe-models/"
    "face_landmarker/face_landmarker/float16/latest/face_landmarker.task"
)


def ensure_model_downloaded(path: str = _FACE_MODEL_PATH, url: str = _FACE_MODEL_URL) -> str:
    """Download the FaceLandmarker .task file if not already cached."""
    os.makedirs(os.path.dirname(path), exist_ok=True)
    if not os.path.exists(path):
        logger.info("Downloading %s ...", os.path.basename(path))
        urllib.request.urlretrieve(url, path)
        logger.info("Saved %s", path)
    return path


def create_face_landmarker(model_path: Optional[str] = None):
    model_path = model_path or ensure_model_downloaded()
    options = mp.tasks.vision.FaceLandmarkerOptions(
        base_options=mp.tasks.BaseOptions(model_asset_path=model_path),
        running_mode=mp.tasks.vision.RunningMode.VIDEO,
        num_faces=1,
        output_face_blendshapes=True,
        output_facial_transformation_matrixes=True,
    )
    return mp.tasks.vision.FaceLandmarker.create_from_options(options)


class CameraFocusSource:
    """Webcam -> FaceLandmarker -> FocusEngine loop with an OpenCV overlay"""

    WINDOW_TITLE = "Focus Watch"

    def __init__(self, engine: FocusEngine, camera_index: int = 0,
                 model_path: Optional[str] = None,
                 on_event: Optional[Callable[[ScoreEvent], None]] = None):
        self.engine = engine
        self.camera_index = camera_index
        self.model_path = model_path
        self.on_event = on_event
        self.cap = None
        self._landmarker = None
        self._last_ts_ms = -1

    def open(self):
        self.cap = cv2.VideoCapture(self.camera_index)
        if not self.cap.isOpened():
            raise RuntimeError(f"Cannot open camera {self.camera_index}")
        self._landmarker = create_face_landmarker(self.model_path)

    def read_observation(self, frame: np.ndarray, now: float):
        # VIDEO mode requires strictly increasing millisecond timestamps
        ts_ms = max(int(now * 1000), self._last_ts_ms + 1)
        self._last_ts_ms = ts_ms
        frame_rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(frame_rgb))
        result = self._landmarker.detect_for_video(mp_image, ts_ms)
        return observation_from_result(result, timestamp=ts_ms / 1000.0)

    def run(self) -> None:
        """Main loop. ESC exits."""
        if self.cap is None:
            self.open()
        for command in self.engine.start_session():
            logger.info("Command: %s", command.to_dict())

        while True:
            ret, frame = self.cap.read()
            if not ret:
                break
            now = time.monotonic()
            event = self.engine.step(self.read_observation(frame, now), now=now)
            if event is not None:
                for command in event.commands:
                    logger.info("Command: %s", command.to_dict())
                if self.on_event:
                    self.on_event(event)
                self._render_ui(frame, event)

            cv2.imshow(self.WINDOW_TITLE, frame)
            if cv2.waitKey(1) & 0xFF == 27:
                break

        summary = self.engine.stop_session()
        logger.info("Session summary: %s", summary.to_dict())

    def _render_ui(self, frame: np.ndarray, event: ScoreEvent) -> None:
        font = cv2.FONT_HERSHEY_SIMPLEX
        if event.status in (EngineStatus.SHOW_FACE, EngineStatus.CALIBRATING):
            cv2.putText(frame, f"Calibrating... {event.calibration_progress}%", (30, 50),
                        font, 0.9, (0, 255, 255), 2)
            if not event.face_detected:
                cv2.putText(frame, "Show your face to the camera", (30, 90), font, 0.7, (0, 0, 255), 2)
            return

        if event.score is None:
            return
        color = (0, 200, 0) if event.average_score >= self.engine.config.UNFOCUS_THRESHOLD else (0, 0, 255)
        cv2.putText(frame, f"Score: {event.rounded_score}", (30, 50), font, 1.1, color, 3)
        cv2.putText(frame, f"Avg (5s): {event.average_score:.0f}", (30, 90), font, 0.7, color, 2)
        for i, warning in enumerate(event.warnings):
            cv2.putText(frame, WARNING_MESSAGES[warning], (30, 130 + i * 30), font, 0.6, (0, 165, 255), 2)

        if event.frame is not None and event.frame.angles:
            yaw, pitch, roll = event.frame.angles
            right_x = frame.shape[1] - 260
            cv2.putText(frame, f"Yaw: {yaw:.1f}deg", (right_x, 50), font, 0.6, (255, 200, 100), 2)
            cv2.putText(frame, f"Pitch: {pitch:.1f}deg", (right_x, 80), font, 0.6, (255, 200, 100), 2)
            cv2.putText(frame, f"Roll: {roll:.1f}deg", (right_x, 110), font, 0.6, (255, 200, 100), 2)

    def cleanup(self) -> None:
        """Release resources gracefully"""
        try:
            if self.cap is not None and self.cap.isOpened():
                self.cap.release()
        except cv2.error as e:
            logger.warning("Camera release error: %s", e)
        try:
            cv2.destroyAllWindows()
        except cv2.error as e:
            logger.warning("Window cleanup error: %s", e)
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None


def main():
    parser = argparse.ArgumentParser(description="Run focus scoring on the local webcam")
    parser.add_argument("--mode", default="normal", help="session mode (normal, intrusive, ...)")
    parser.add_argument("--profile", default="refined", help="threshold profile (refined, legacy)")
    parser.add_argument("--camera", type=int, default=0)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s")
    engine = FocusEngine(mode=args.mode, config=EngineConfig.for_profile(args.profile))
    source = CameraFocusSource(engine, camera_index=args.camera)

    try:
        source.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    finally:
        source.cleanup()


if __name__ == "__main__":
    main()
