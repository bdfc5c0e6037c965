import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Harmony score tuning
    HARMONY_BALANCE_WEIGHT: float = 0.75  # must stay within 0..1 to keep the score monotonic
    HARMONY_SCALE_DAYS: float = 21.0

    # Streak history window in days looked back from today; 0 keeps all history
    STREAK_LOOKBACK_DAYS: int = 0

    # Consistency milestones
    CONSISTENCY_WINDOW_DAYS: int = 30

    # Pain statistics
    PAIN_WINDOW_DAYS: int = 30
    PAIN_TREND_DELTA: int = 1

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate engine tuning.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("harmony")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    weight = getattr(cfg, "HARMONY_BALANCE_WEIGHT", 0.75)
    if not 0.0 <= weight <= 1.0:
        problems.append("HARMONY_BALANCE_WEIGHT must be within 0..1")
    if getattr(cfg, "HARMONY_SCALE_DAYS", 21.0) <= 0:
        problems.append("HARMONY_SCALE_DAYS must be positive")
    if getattr(cfg, "STREAK_LOOKBACK_DAYS", 0) < 0:
        problems.append("STREAK_LOOKBACK_DAYS must not be negative")
    for key in ("CONSISTENCY_WINDOW_DAYS", "PAIN_WINDOW_DAYS"):
        if getattr(cfg, key, 1) < 1:
            problems.append(f"{key} must be at least 1")
    if getattr(cfg, "PAIN_TREND_DELTA", 1) < 0:
        problems.append("PAIN_TREND_DELTA must not be negative")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
