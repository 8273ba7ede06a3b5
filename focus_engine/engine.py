"""
Focus Engine - Headless per-frame step function.

Calibration -> gaze/movement/expression analysis -> score aggregation ->
rolling average -> mode controller. One instance per watch session; all
timers are driven by an injectable monotonic clock.
"""

import logging
import time
from typing import Callable, List, Optional

from .calibration import CalibrationCollector
from .config import EngineConfig
from .expression import ExpressionPenaltyModel
from .gaze import GazeAnalyzer
from .models import (
    CalibrationProfile,
    Command,
    EngineStatus,
    FrameObservation,
    ScoreEvent,
    SessionMode,
)
from .modes import FocusSignal, ModeController, create_mode_controller
from .movement import MovementAnalyzer
from .scoring import RollingScoreWindow, ScoreAggregator, ScoreHistory, SessionSummary

logger = logging.getLogger("focuswatch.engine")


class FocusEngine:
    """
    Core focus detection engine for API/integration use.
    Consumes FrameObservations and returns ScoreEvents without any I/O.
    Not thread-safe: call step() from one thread only.
    """

    def __init__(self, mode: "SessionMode | str" = SessionMode.NORMAL,
                 config: Optional[EngineConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.config = config or EngineConfig()
        self.clock = clock
        self.mode = SessionMode.parse(mode)

        self.gaze_analyzer = GazeAnalyzer(self.config)
        self.calibration = CalibrationCollector(self.config, self.gaze_analyzer)
        self.aggregator = ScoreAggregator(
            self.config,
            gaze_analyzer=self.gaze_analyzer,
            movement_analyzer=MovementAnalyzer(self.config),
            expression_model=ExpressionPenaltyModel(self.config),
        )
        self.rolling_window = RollingScoreWindow(self.config.ROLLING_WINDOW)
        self.history = ScoreHistory(self.config.SCORE_INTERVAL)
        self.controller: ModeController = create_mode_controller(self.mode, self.config)

        self.playback_active = True
        self._last_frame_timestamp: Optional[float] = None

    # ──────────────────────────────────────────────────────
    # Session lifecycle
    # ──────────────────────────────────────────────────────

    def start_session(self, mode: "SessionMode | str | None" = None) -> List[Command]:
        """Clear all state and return the initial player commands for the mode."""
        if mode is not None:
            self.mode = SessionMode.parse(mode)
        self.reset()
        logger.info("Session started (mode=%s)", self.mode.value)
        return self.controller.on_session_start()

    def stop_session(self) -> SessionSummary:
        summary = self.summary()
        logger.debug("Controller state at stop: %s", self.controller.state())
        logger.info("Session stopped (mode=%s, samples=%d, average=%d)",
                    self.mode.value, summary.total_samples, summary.average_score)
        self.reset()
        return summary

    def reset(self):
        self.calibration.reset()
        self.aggregator.reset()
        self.rolling_window.clear()
        self.history.clear()
        self.controller = create_mode_controller(self.mode, self.config)
        self.playback_active = True
        self._last_frame_timestamp = None

    def set_playback_active(self, playing: bool) -> None:
        self.playback_active = bool(playing)

    # ──────────────────────────────────────────────────────
    # State
    # ──────────────────────────────────────────────────────

    @property
    def is_calibrated(self) -> bool:
        return self.calibration.is_calibrated

    @property
    def profile(self) -> Optional[CalibrationProfile]:
        return self.calibration.profile

    def summary(self) -> SessionSummary:
        return self.history.summary()

    # ──────────────────────────────────────────────────────
    # Frame processing
    # ──────────────────────────────────────────────────────

    def step(self, frame: FrameObservation, now: Optional[float] = None,
             media_time: Optional[float] = None) -> Optional[ScoreEvent]:
        """
        Process one frame. Returns None when the frame repeats the previous
        timestamp, otherwise the ScoreEvent for this step.
        """
        if self._last_frame_timestamp is not None and frame.timestamp == self._last_frame_timestamp:
            return None
        self._last_frame_timestamp = frame.timestamp
        now = self.clock() if now is None else now

        if not self.is_calibrated:
            profile = self.calibration.observe(frame)
            return ScoreEvent(
                timestamp=now,
                status=self.calibration.status,
                face_detected=frame.face_detected,
                calibration_progress=self.calibration.progress,
                profile=profile,
            )

        # Paused video is not analysed unless the controller is waiting on it
        if not (self.playback_active or self.controller.holds_playback):
            return ScoreEvent(
                timestamp=now,
                status=EngineStatus.IDLE,
                face_detected=frame.face_detected,
                calibration_progress=100,
            )

        frame_score = self.aggregator.score(frame, self.profile, now)
        self.rolling_window.push(frame_score.score, now)
        average = self.rolling_window.average(now)
        self.history.record(frame_score, now, media_time)

        commands = self.controller.update(FocusSignal(
            average_score=average,
            face_detected=frame_score.face_detected,
            yawning=frame_score.yawning,
            gaze_away=frame_score.gaze_away,
        ), now)

        return ScoreEvent(
            timestamp=now,
            status=EngineStatus.ANALYZING,
            face_detected=frame_score.face_detected,
            calibration_progress=100,
            score=frame_score.score,
            average_score=average,
            warnings=list(frame_score.warnings),
            commands=commands,
            frame=frame_score,
        )

    def resolve_popup(self, choice: str, now: Optional[float] = None) -> List[Command]:
        """Apply the user's answer to a focus popup ("pause" or "continue")."""
        now = self.clock() if now is None else now
        return self.controller.resolve_popup(choice, now)
