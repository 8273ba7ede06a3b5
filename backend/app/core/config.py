"""
Focus Watch Configuration
Central configuration loaded from environment variables.
"""

from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from focus_engine import EngineConfig


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=Path(__file__).resolve().parent.parent.parent / ".env",
        extra="allow",
    )

    # App
    APP_NAME: str = "Focus Watch"
    FOCUSWATCH_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: Optional[str] = None

    # Database
    DATABASE_URL: str = "sqlite:///./focuswatch.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000,http://localhost:8000"

    # Session defaults (clients may override per session)
    DEFAULT_MODE: str = "normal"
    DEFAULT_PROFILE: str = "refined"
    CALIBRATION_FRAMES: Optional[int] = None
    GAZE_AWAY_THRESHOLD: Optional[float] = None
    UNFOCUS_THRESHOLD: Optional[float] = None
    COOLDOWN_SECONDS: Optional[float] = None
    RECOVERY_SECONDS: Optional[float] = None
    EYES_CLOSED_SECONDS: Optional[float] = None
    ROLLING_WINDOW_SECONDS: Optional[float] = None

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def log_level(self) -> str:
        return self.LOG_LEVEL or ("DEBUG" if self.DEBUG else "INFO")

    def engine_config(self, profile: Optional[str] = None, **overrides) -> EngineConfig:
        """Engine config for a new session: profile, then env defaults, then client overrides."""
        config = EngineConfig.for_profile(
            profile or self.DEFAULT_PROFILE,
            CALIBRATION_FRAME_COUNT=self.CALIBRATION_FRAMES,
            GAZE_AWAY_THRESHOLD=self.GAZE_AWAY_THRESHOLD,
            UNFOCUS_THRESHOLD=self.UNFOCUS_THRESHOLD,
            COOLDOWN=self.COOLDOWN_SECONDS,
            RECOVERY_DURATION=self.RECOVERY_SECONDS,
            EYES_CLOSED_DEBOUNCE=self.EYES_CLOSED_SECONDS,
            ROLLING_WINDOW=self.ROLLING_WINDOW_SECONDS,
        )
        return config.with_overrides(**overrides)


settings = Settings()
