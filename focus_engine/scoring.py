"""
Score aggregation - per-frame focus score, debounced rolling average and the
session history used for summaries.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple

from .config import EngineConfig
from .expression import (
    DEFAULT_EXCEED_THRESHOLD,
    EXCEED_THRESHOLDS,
    TRACKED_SIGNALS,
    ExpressionPenaltyModel,
    extract_signals,
)
from .gaze import GazeAnalyzer
from .geometry import rotation_to_euler
from .landmarks import FaceLandmarks
from .models import CalibrationProfile, FocusWarning, FrameObservation, FrameScore, ScoreSample
from .movement import MovementAnalyzer


# ============================================================================
# STATE TRACKERS
# ============================================================================

class TimedAlertTracker:
    """Debounce: a condition counts only after holding continuously for threshold_time."""

    def __init__(self, threshold_time: float):
        self.threshold_time = threshold_time
        self.start_time: Optional[float] = None

    def update(self, condition_active: bool, current_time: float) -> Tuple[bool, float]:
        if condition_active:
            if self.start_time is None:
                self.start_time = current_time
            elapsed = current_time - self.start_time
            return elapsed >= self.threshold_time, elapsed
        self.start_time = None
        return False, 0.0

    def reset(self):
        self.start_time = None


class RollingScoreWindow:
    """Time-bounded window of recent scores for debounced unfocus decisions."""

    def __init__(self, window_seconds: float = 5.0):
        self.window_seconds = window_seconds
        self.samples: Deque[ScoreSample] = deque()

    def push(self, score: float, timestamp: float) -> None:
        self.samples.append(ScoreSample(score=score, timestamp=timestamp))

    def prune(self, now: float) -> None:
        while self.samples and now - self.samples[0].timestamp >= self.window_seconds:
            self.samples.popleft()

    def average(self, now: float) -> float:
        self.prune(now)
        if not self.samples:
            return 100.0
        return sum(s.score for s in self.samples) / len(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def clear(self):
        self.samples.clear()


# ============================================================================
# SESSION HISTORY
# ============================================================================

@dataclass
class HistoryEntry:
    score: int
    recorded_at: float
    media_time: Optional[float] = None
    signals: Optional[Dict[str, float]] = None
    warnings: List[FocusWarning] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "recorded_at": self.recorded_at,
            "media_time": self.media_time,
            "signals": self.signals,
            "warnings": [w.value for w in self.warnings],
        }


@dataclass
class SessionSummary:
    average_score: int = 0
    total_samples: int = 0
    duration_seconds: float = 0.0
    signal_stats: Dict[str, Dict[str, float]] = field(default_factory=dict)
    warning_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_score": self.average_score,
            "total_samples": self.total_samples,
            "duration_seconds": round(self.duration_seconds, 1),
            "signal_stats": self.signal_stats,
            "warning_counts": self.warning_counts,
        }


class ScoreHistory:
    """Long-lived score log, at most one entry per interval."""

    def __init__(self, interval: float = 1.0):
        self.interval = interval
        self.entries: List[HistoryEntry] = []
        self._last_recorded: Optional[float] = None

    def record(self, frame: FrameScore, now: float, media_time: Optional[float] = None) -> bool:
        if self._last_recorded is not None and now - self._last_recorded < self.interval:
            return False
        self._last_recorded = now
        signals = None
        if frame.signals is not None:
            signals = {k: round(v, 2) for k, v in frame.signals.items()}
        self.entries.append(HistoryEntry(
            score=int(round(frame.score)),
            recorded_at=now,
            media_time=media_time,
            signals=signals,
            warnings=list(frame.warnings),
        ))
        return True

    def summary(self) -> SessionSummary:
        if not self.entries:
            return SessionSummary()

        scores = [e.score for e in self.entries]
        warning_counts = Counter(w.value for e in self.entries for w in e.warnings)
        with_signals = [e.signals for e in self.entries if e.signals is not None]

        signal_stats: Dict[str, Dict[str, float]] = {}
        if with_signals:
            for key in TRACKED_SIGNALS:
                values = [s.get(key, 0.0) for s in with_signals]
                threshold = EXCEED_THRESHOLDS.get(key, DEFAULT_EXCEED_THRESHOLD)
                exceed_count = sum(1 for v in values if v > threshold)
                signal_stats[key] = {
                    "average": round(sum(values) / len(values), 3),
                    "max": round(max(values), 3),
                    "exceed_count": exceed_count,
                    "exceed_rate": int(round(exceed_count / len(values) * 100)),
                }

        return SessionSummary(
            average_score=int(round(sum(scores) / len(scores))),
            total_samples=len(self.entries),
            duration_seconds=self.entries[-1].recorded_at - self.entries[0].recorded_at,
            signal_stats=signal_stats,
            warning_counts=dict(warning_counts),
        )

    def clear(self):
        self.entries.clear()
        self._last_recorded = None


# ============================================================================
# SCORE AGGREGATOR
# ============================================================================

class ScoreAggregator:
    """
    Combines discrete-condition penalties into one bounded score per frame.

    Starting from 100: eyes closed (debounced), head turned away, gaze away,
    yawning, restless movement and expression penalties are subtracted, then
    the result is clamped to [0, 100]. No face means a score of 0.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 gaze_analyzer: Optional[GazeAnalyzer] = None,
                 movement_analyzer: Optional[MovementAnalyzer] = None,
                 expression_model: Optional[ExpressionPenaltyModel] = None):
        self.config = config or EngineConfig()
        self.gaze_analyzer = gaze_analyzer or GazeAnalyzer(self.config)
        self.movement_analyzer = movement_analyzer or MovementAnalyzer(self.config)
        self.expression_model = expression_model or ExpressionPenaltyModel(self.config)
        self.eyes_closed_tracker = TimedAlertTracker(self.config.EYES_CLOSED_DEBOUNCE)

    def score(self, frame: FrameObservation, profile: CalibrationProfile, now: float) -> FrameScore:
        cfg = self.config

        if not frame.face_detected or len(frame.landmarks) < FaceLandmarks.REQUIRED_POINTS:
            self.eyes_closed_tracker.reset()
            return FrameScore(score=0.0, warnings=[FocusWarning.FACE_NOT_DETECTED], face_detected=False)

        result = FrameScore(score=100.0)
        signals = extract_signals(frame.expressions)
        result.signals = signals

        eyes_closed_now = (
            frame.expression("eyeBlinkLeft") > cfg.EYES_CLOSED_BLINK_THRESHOLD
            and frame.expression("eyeBlinkRight") > cfg.EYES_CLOSED_BLINK_THRESHOLD
        )
        result.eyes_closed, _ = self.eyes_closed_tracker.update(eyes_closed_now, now)

        current_yaw = profile.base_yaw
        if frame.has_pose:
            yaw, pitch, roll = rotation_to_euler(frame.pose_matrix)
            current_yaw = yaw
            yaw_delta = yaw - profile.base_yaw
            pitch_delta = pitch - profile.base_pitch
            result.angles = (yaw, pitch, roll)
            result.angle_deltas = (yaw_delta, pitch_delta)
            result.head_away = (abs(yaw_delta) > cfg.HEAD_YAW_THRESHOLD
                                or abs(pitch_delta) > cfg.HEAD_PITCH_THRESHOLD)

        ratio = self.gaze_analyzer.gaze_ratio(frame.landmarks)
        result.gaze = ratio
        result.gaze_away, result.expected_gaze_x, result.gaze_threshold = \
            self.gaze_analyzer.evaluate(ratio, current_yaw, profile)

        result.yawning = frame.expression("jawOpen") > cfg.YAWN_JAW_OPEN_THRESHOLD
        result.restless = self.movement_analyzer.update(frame.landmarks)

        for active, penalty, warning in (
            (result.eyes_closed, cfg.PENALTY_EYES_CLOSED, FocusWarning.EYES_CLOSED),
            (result.head_away, cfg.PENALTY_HEAD_AWAY, FocusWarning.HEAD_AWAY),
            (result.gaze_away, cfg.PENALTY_GAZE_AWAY, FocusWarning.GAZE_AWAY),
            (result.yawning, cfg.PENALTY_YAWNING, FocusWarning.YAWNING),
            (result.restless, cfg.PENALTY_RESTLESS, FocusWarning.RESTLESS),
        ):
            if active:
                result.score -= penalty
                result.warnings.append(warning)

        if cfg.EXPRESSION_PENALTIES_ENABLED:
            expression = self.expression_model.evaluate(signals, profile)
            result.expression_penalty = expression.penalty
            result.score -= expression.penalty
            result.warnings.extend(expression.warnings)

        result.score = max(0.0, min(100.0, result.score))
        return result

    def reset(self):
        self.eyes_closed_tracker.reset()
        self.movement_analyzer.reset()
