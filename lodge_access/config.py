"""Environment-driven settings."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv
from loguru import logger

DEFAULT_DATABASE_URL = "sqlite:///./lodges.db"
DEFAULT_DISTRICT_LODGE_NAME = "District Grand Lodge of Syria-Lebanon"
DEFAULT_CANDIDATE_WINDOW_DAYS = 20
DEFAULT_RATE_LIMIT = "60/minute"


def database_url() -> str:
    return os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL


def district_lodge_name() -> str:
    return os.getenv("DISTRICT_LODGE_NAME") or DEFAULT_DISTRICT_LODGE_NAME


def candidate_window_days() -> int:
    raw = os.getenv("CANDIDATE_WINDOW_DAYS")
    if not raw:
        return DEFAULT_CANDIDATE_WINDOW_DAYS
    try:
        days = int(raw)
    except ValueError:
        raise ValueError(f"CANDIDATE_WINDOW_DAYS must be an integer, got {raw!r}")
    if days <= 0:
        raise ValueError("CANDIDATE_WINDOW_DAYS must be positive")
    return days


def rate_limit() -> str:
    return os.getenv("RATE_LIMIT") or DEFAULT_RATE_LIMIT


def load_env_file(path: Optional[Union[str, Path]] = None) -> bool:
    """Load ``.env`` into the environment without overriding what is already set."""
    env_path = Path(path) if path is not None else Path(".env")
    if not env_path.exists():
        return False
    loaded = load_dotenv(env_path, override=False)
    logger.info(f"Loaded settings from {env_path}")
    return loaded
