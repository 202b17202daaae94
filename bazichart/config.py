"""
Runtime settings, read from the environment and an optional .env file.

The only credential is the Google AI key for the chat collaborator.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    google_ai_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    ai_timeout_seconds: float = 30.0
    chart_timeout_seconds: float = 10.0
    session_ttl_seconds: float = 24 * 3600
    session_max_entries: int = 10_000
    geocoder_enabled: bool = True
    geocoder_user_agent: str = "bazichart"
    true_solar_time: bool = False
    sweph_path: Optional[str] = None
    log_level: str = "INFO"


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build Settings from os.environ after loading .env (existing variables win)."""
    load_dotenv(dotenv_path=env_file or Path.cwd() / ".env")
    env = os.environ
    return Settings(
        google_ai_api_key=env.get("GOOGLE_AI_API_KEY") or None,
        gemini_model=env.get("GEMINI_MODEL", Settings.gemini_model),
        ai_timeout_seconds=float(env.get("AI_TIMEOUT_SECONDS", Settings.ai_timeout_seconds)),
        chart_timeout_seconds=float(env.get("CHART_TIMEOUT_SECONDS", Settings.chart_timeout_seconds)),
        session_ttl_seconds=float(env.get("SESSION_TTL_SECONDS", Settings.session_ttl_seconds)),
        session_max_entries=int(env.get("SESSION_MAX_ENTRIES", Settings.session_max_entries)),
        geocoder_enabled=_flag(env.get("GEOCODER_ENABLED"), Settings.geocoder_enabled),
        geocoder_user_agent=env.get("GEOCODER_USER_AGENT", Settings.geocoder_user_agent),
        true_solar_time=_flag(env.get("TRUE_SOLAR_TIME"), Settings.true_solar_time),
        sweph_path=env.get("SWEPH_PATH") or None,
        log_level=env.get("LOG_LEVEL", Settings.log_level).upper(),
    )
