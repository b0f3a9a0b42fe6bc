"""Environment-based configuration for the distribution engine."""

import logging
import os
from pathlib import Path

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")


class Settings:
    """Engine configuration loaded from environment variables."""

    def __init__(self):
        self.data_dir = Path(
            os.getenv("LEAD_DIST_DATA_DIR", str(Path.home() / ".lead-distribution"))
        )
        self.log_level = os.getenv("LEAD_DIST_LOG_LEVEL", "INFO").upper()

        # Redistribution
        self.max_import_batch = _env_int("LEAD_DIST_MAX_IMPORT_BATCH", 200)
        self.minutes_per_lead = _env_float("LEAD_DIST_MINUTES_PER_LEAD", 1.5)
        self.min_job_minutes = _env_int("LEAD_DIST_MIN_JOB_MINUTES", 5)

        # Audit
        self.audit_retention = _env_int("LEAD_DIST_AUDIT_RETENTION", 5000)

        if self.max_import_batch < 1:
            raise ConfigurationError("LEAD_DIST_MAX_IMPORT_BATCH must be at least 1")


_settings = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings():
    """Drop cached settings so the environment is read again."""
    global _settings
    _settings = None


class _SettingsProxy:
    """Lazy proxy so settings aren't loaded until first access."""

    def __getattr__(self, name):
        return getattr(get_settings(), name)


settings = _SettingsProxy()
