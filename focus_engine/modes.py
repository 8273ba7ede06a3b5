"""
Mode controllers - turn the debounced focus signal into playback commands.

Every session mode maps to one controller variant sharing the same contract:
update(signal, now) -> commands. Controllers own all per-session runtime
state (cooldown stamps, pause/recovery flags, popup visibility, volume boost).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .config import EngineConfig
from .models import Command, CommandType, SessionMode

logger = logging.getLogger("focuswatch.engine.modes")

POPUP_CHOICES = ("pause", "continue")


@dataclass(frozen=True)
class FocusSignal:
    """Driving input for every controller"""
    average_score: float
    face_detected: bool
    yawning: bool = False
    gaze_away: bool = False


def _check_popup_choice(choice: str) -> None:
    if choice not in POPUP_CHOICES:
        raise ValueError(f"Unknown popup choice: {choice!r}")


def _cooldown_elapsed(last: Optional[float], now: float, cooldown: float) -> bool:
    # The first trigger of a session is never held back
    return last is None or now - last >= cooldown


class ModeController(ABC):
    mode: SessionMode

    def __init__(self, mode: SessionMode, config: Optional[EngineConfig] = None):
        self.mode = mode
        self.config = config or EngineConfig()

    def is_unfocused(self, signal: FocusSignal) -> bool:
        return signal.average_score < self.config.UNFOCUS_THRESHOLD

    def on_session_start(self) -> List[Command]:
        return [
            Command(CommandType.SET_VOLUME, self.config.BASE_VOLUME),
            Command(CommandType.ENABLE_CONTROLS),
        ]

    @abstractmethod
    def update(self, signal: FocusSignal, now: float) -> List[Command]:
        ...

    def resolve_popup(self, choice: str, now: float) -> List[Command]:
        _check_popup_choice(choice)
        return []

    @property
    def holds_playback(self) -> bool:
        """True while the controller itself keeps the video stopped and needs frames."""
        return False

    def state(self) -> Dict[str, Any]:
        return {"mode": self.mode.value}


class ObserverController(ModeController):
    """Normal / score-only: scores are reported, playback is never touched."""

    def update(self, signal: FocusSignal, now: float) -> List[Command]:
        return []


class NonIntrusiveController(ModeController):
    """Offers a popup on sustained unfocus; the user decides what happens."""

    def __init__(self, mode: SessionMode, config: Optional[EngineConfig] = None):
        super().__init__(mode, config)
        self.popup_visible = False
        self.last_popup_closed_at: Optional[float] = None

    def update(self, signal: FocusSignal, now: float) -> List[Command]:
        if self.popup_visible:
            return []
        if not (self.is_unfocused(signal) or not signal.face_detected):
            return []
        if not _cooldown_elapsed(self.last_popup_closed_at, now, self.config.COOLDOWN):
            return []
        self.popup_visible = True
        logger.info("Popup shown (average score %.1f)", signal.average_score)
        return [Command(CommandType.SHOW_POPUP)]

    def resolve_popup(self, choice: str, now: float) -> List[Command]:
        _check_popup_choice(choice)
        if not self.popup_visible:
            return []
        self.popup_visible = False
        # Cooldown runs from dismissal, not from display
        self.last_popup_closed_at = now
        logger.info("Popup dismissed with %r", choice)
        commands = [Command(CommandType.HIDE_POPUP)]
        if choice == "pause":
            commands.append(Command(CommandType.PAUSE))
        return commands

    @property
    def holds_playback(self) -> bool:
        return self.popup_visible

    def state(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "popup_visible": self.popup_visible,
            "last_popup_closed_at": self.last_popup_closed_at,
        }


class IntrusiveState(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"
    RECOVERING = "recovering"


class IntrusiveController(ModeController):
    """
    Auto-pauses on sustained unfocus and resumes after continuous recovery.

    Playing --(unfocus, cooldown elapsed)--> Paused --(focus back)--> Recovering
    --(RECOVERY_DURATION of focus)--> Playing. Unfocus while Recovering drops
    back to Paused with the recovery timer cleared.
    """

    def __init__(self, mode: SessionMode, config: Optional[EngineConfig] = None):
        super().__init__(mode, config)
        self.paused = False
        self.last_pause_at: Optional[float] = None
        self.recovery_started_at: Optional[float] = None

    @property
    def current_state(self) -> IntrusiveState:
        if not self.paused:
            return IntrusiveState.PLAYING
        if self.recovery_started_at is not None:
            return IntrusiveState.RECOVERING
        return IntrusiveState.PAUSED

    def update(self, signal: FocusSignal, now: float) -> List[Command]:
        if self.is_unfocused(signal) or not signal.face_detected:
            self.recovery_started_at = None
            if self.paused or not _cooldown_elapsed(self.last_pause_at, now, self.config.COOLDOWN):
                return []
            self.paused = True
            self.last_pause_at = now
            logger.info("Auto-pause (average score %.1f, face=%s)",
                        signal.average_score, signal.face_detected)
            return [
                Command(CommandType.PLAY_WARNING_SOUND),
                Command(CommandType.SHOW_OVERLAY),
                Command(CommandType.DISABLE_CONTROLS),
                Command(CommandType.PAUSE),
            ]

        if not self.paused:
            return []

        if self.recovery_started_at is None:
            self.recovery_started_at = now
            logger.debug("Recovery started, %.1fs of focus required", self.config.RECOVERY_DURATION)

        if now - self.recovery_started_at < self.config.RECOVERY_DURATION:
            return []

        self.paused = False
        self.recovery_started_at = None
        logger.info("Focus recovered (average score %.1f), resuming", signal.average_score)
        return [
            Command(CommandType.HIDE_OVERLAY),
            Command(CommandType.ENABLE_CONTROLS),
            Command(CommandType.RESUME),
        ]

    @property
    def holds_playback(self) -> bool:
        return self.paused

    def state(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "state": self.current_state.value,
            "last_pause_at": self.last_pause_at,
            "recovery_started_at": self.recovery_started_at,
        }


class StrictController(ModeController):
    """
    Earlier binary behaviour: pause while the face is absent, resume when it
    returns, and boost the volume while yawning or looking away.
    """

    def __init__(self, mode: SessionMode, config: Optional[EngineConfig] = None,
                 lock_controls: bool = False):
        super().__init__(mode, config)
        self.lock_controls = lock_controls
        self.paused = False
        self.volume_boosted = False

    @property
    def boosted_volume(self) -> float:
        return min(1.0, self.config.STRICT_BASE_VOLUME + self.config.VOLUME_BOOST_STEP)

    def on_session_start(self) -> List[Command]:
        controls = CommandType.DISABLE_CONTROLS if self.lock_controls else CommandType.ENABLE_CONTROLS
        return [Command(CommandType.SET_VOLUME, self.config.STRICT_BASE_VOLUME), Command(controls)]

    def update(self, signal: FocusSignal, now: float) -> List[Command]:
        commands: List[Command] = []

        if not signal.face_detected and not self.paused:
            self.paused = True
            logger.info("Face absent, pausing")
            commands += [Command(CommandType.SHOW_OVERLAY), Command(CommandType.PAUSE)]
        elif signal.face_detected and self.paused:
            self.paused = False
            logger.info("Face back, resuming")
            commands += [Command(CommandType.HIDE_OVERLAY), Command(CommandType.RESUME)]

        drifting = signal.face_detected and (signal.yawning or signal.gaze_away)
        if drifting and not self.volume_boosted:
            self.volume_boosted = True
            commands.append(Command(CommandType.SET_VOLUME, self.boosted_volume))
        elif not drifting and self.volume_boosted:
            self.volume_boosted = False
            commands.append(Command(CommandType.SET_VOLUME, self.config.STRICT_BASE_VOLUME))

        return commands

    @property
    def holds_playback(self) -> bool:
        return self.paused

    def state(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "paused": self.paused,
            "volume_boosted": self.volume_boosted,
        }


def create_mode_controller(mode: "SessionMode | str",
                           config: Optional[EngineConfig] = None) -> ModeController:
    mode = SessionMode.parse(mode)
    if mode in (SessionMode.NORMAL, SessionMode.SCORE_ONLY):
        return ObserverController(mode, config)
    if mode is SessionMode.NON_INTRUSIVE:
        return NonIntrusiveController(mode, config)
    if mode is SessionMode.INTRUSIVE:
        return IntrusiveController(mode, config)
    if mode is SessionMode.STRICT:
        return StrictController(mode, config)
    if mode is SessionMode.NO_CONTROL:
        return StrictController(mode, config, lock_controls=True)
    raise ValueError(f"Unsupported session mode: {mode!r}")
