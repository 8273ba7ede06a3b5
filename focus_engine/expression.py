"""
Expression penalty model - maps blendshape-derived action-unit signals to a
bounded penalty and warning set, relative to the calibrated resting face.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Tuple

from .config import EngineConfig
from .models import CalibrationProfile, ExpressionPenaltyResult, FocusWarning


# Tracked signal -> blendshape names averaged into it
SIGNAL_SOURCES: Dict[str, Tuple[str, ...]] = {
    "brow_down": ("browDownLeft", "browDownRight"),          # AU4
    "eye_squint": ("eyeSquintLeft", "eyeSquintRight"),       # AU6/AU7
    "smile": ("mouthSmileLeft", "mouthSmileRight"),          # AU12
    "jaw_open": ("jawOpen",),                                # AU26/AU27
    "eye_blink": ("eyeBlinkLeft", "eyeBlinkRight"),          # AU45
    "mouth_pucker": ("mouthPucker",),                        # AU18
    "mouth_press": ("mouthPressLeft", "mouthPressRight"),    # AU24
    "eye_wide": ("eyeWideLeft", "eyeWideRight"),             # AU5
    "mouth_frown": ("mouthFrownLeft", "mouthFrownRight"),    # AU15
    "brow_inner_up": ("browInnerUp",),                       # AU1
    "mouth_funnel": ("mouthFunnel",),                        # AU22
}

TRACKED_SIGNALS: Tuple[str, ...] = tuple(SIGNAL_SOURCES)

# Thresholds used for session exceed-rate statistics
EXCEED_THRESHOLDS: Dict[str, float] = {
    "brow_down": 0.3,
    "eye_squint": 0.4,
    "smile": 0.4,
    "jaw_open": 0.4,
    "eye_blink": 0.5,
    "mouth_pucker": 0.4,
}
DEFAULT_EXCEED_THRESHOLD = 0.3


def extract_signals(expressions: Mapping[str, float]) -> Dict[str, float]:
    """Fold named blendshape scores into the tracked signals (missing names read 0)."""
    signals = {}
    for signal, sources in SIGNAL_SOURCES.items():
        signals[signal] = sum(float(expressions.get(name, 0.0)) for name in sources) / len(sources)
    return signals


@dataclass(frozen=True)
class ExpressionRule:
    signal: str
    delta_threshold: float
    absolute_threshold: float
    points: float
    warning: FocusWarning

    def exceeds(self, value: float, baseline: float) -> bool:
        # The absolute clause catches subjects whose resting face is already elevated
        return (value - baseline) > self.delta_threshold or value > self.absolute_threshold


DEFAULT_RULES: Tuple[ExpressionRule, ...] = (
    ExpressionRule("brow_down", 0.02, 0.15, 5, FocusWarning.BROW_DOWN),
    ExpressionRule("smile", 0.15, 0.35, 8, FocusWarning.SMILE),
    ExpressionRule("mouth_pucker", 0.5, 0.8, 3, FocusWarning.MOUTH_PUCKER),
    ExpressionRule("mouth_press", 0.1, 0.3, 3, FocusWarning.MOUTH_PRESS),
    ExpressionRule("eye_wide", 0.01, 0.1, 5, FocusWarning.EYE_WIDE),
    ExpressionRule("mouth_frown", 0.1, 0.25, 5, FocusWarning.MOUTH_FROWN),
    ExpressionRule("brow_inner_up", 0.5, 0.7, 3, FocusWarning.BROW_INNER_UP),
    ExpressionRule("mouth_funnel", 0.15, 0.3, 5, FocusWarning.MOUTH_FUNNEL),
)

# A wide-open jaw is a yawn, not a smile
SMILE_MAX_JAW_OPEN = 0.2


class ExpressionPenaltyModel:
    def __init__(self, config: Optional[EngineConfig] = None,
                 rules: Tuple[ExpressionRule, ...] = DEFAULT_RULES):
        self.config = config or EngineConfig()
        self.rules = rules

    def evaluate(self, signals: Mapping[str, float],
                 profile: Optional[CalibrationProfile] = None) -> ExpressionPenaltyResult:
        penalty = 0.0
        warnings: List[FocusWarning] = []

        for rule in self.rules:
            value = float(signals.get(rule.signal, 0.0))
            baseline = profile.baseline(rule.signal) if profile is not None else 0.0
            if not rule.exceeds(value, baseline):
                continue
            if rule.signal == "smile" and float(signals.get("jaw_open", 0.0)) >= SMILE_MAX_JAW_OPEN:
                continue
            penalty += rule.points
            warnings.append(rule.warning)

        return ExpressionPenaltyResult(
            penalty=min(penalty, self.config.EXPRESSION_PENALTY_CAP),
            warnings=tuple(warnings),
        )
