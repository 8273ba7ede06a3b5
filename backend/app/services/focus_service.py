"""
Focus Watch Session Service
Builds one FocusEngine per websocket session and runs its per-frame step in
a thread-pool executor so the CPU-bound numpy work doesn't block the event loop.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from focus_engine import (
    PROFILES,
    Command,
    FocusEngine,
    ScoreEvent,
    SessionMode,
    observation_from_dict,
)
from focus_engine.scoring import SessionSummary

from app.core.config import settings
from app.models.schemas import FrameData, StartMessage

logger = logging.getLogger("focuswatch.service")


class FocusService:
    """
    Singleton service that creates and drives FocusEngine instances.

    - Resolves session mode/profile/overrides against the server settings.
    - Provides an async process_frame() that offloads FocusEngine.step().
    """

    _instance: Optional["FocusService"] = None

    @classmethod
    def get_instance(cls) -> "FocusService":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    # ──────────────────────────────────────────────────────
    # Session creation
    # ──────────────────────────────────────────────────────

    def create_engine(self, start: Optional[StartMessage] = None) -> FocusEngine:
        """Raises ValueError for unknown modes/profiles or invalid overrides."""
        start = start or StartMessage()
        mode = SessionMode.parse(start.mode or settings.DEFAULT_MODE)
        config = settings.engine_config(start.profile, **start.config.to_overrides())
        engine = FocusEngine(mode=mode, config=config)
        logger.info(
            "Engine created (mode=%s, profile=%s, unfocus<%s, cooldown=%ss)",
            mode.value, start.profile or settings.DEFAULT_PROFILE,
            config.UNFOCUS_THRESHOLD, config.COOLDOWN,
        )
        return engine

    @staticmethod
    def available_modes() -> List[str]:
        return [m.value for m in SessionMode]

    @staticmethod
    def available_profiles() -> Dict[str, Dict[str, Any]]:
        return {name: dict(delta) for name, delta in PROFILES.items()}

    # ──────────────────────────────────────────────────────
    # Frame processing
    # ──────────────────────────────────────────────────────

    def process_frame_sync(self, engine: FocusEngine, frame: FrameData) -> Optional[ScoreEvent]:
        observation = observation_from_dict(frame.model_dump(exclude_none=True))
        return engine.step(observation, media_time=frame.media_time)

    async def process_frame(self, engine: FocusEngine, frame: FrameData) -> Optional[ScoreEvent]:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.process_frame_sync, engine, frame)

    # ──────────────────────────────────────────────────────
    # Control
    # ──────────────────────────────────────────────────────

    def start(self, engine: FocusEngine) -> List[Command]:
        return engine.start_session()

    def resolve_popup(self, engine: FocusEngine, choice: str) -> List[Command]:
        return engine.resolve_popup(choice)

    def stop(self, engine: FocusEngine) -> SessionSummary:
        return engine.stop_session()


def get_focus_service() -> FocusService:
    return FocusService.get_instance()
