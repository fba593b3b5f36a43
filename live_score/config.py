# live_score/config.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _get_env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, str(default))
    try:
        return int(raw)
    except ValueError:
        return default


# -------------------------
# Persistence
# -------------------------
# Whole-state JSON blob (teams, players, matches, currentMatch)
DB_FILE: Path = Path(_get_env("LIVE_SCORE_DB_FILE", str(PROJECT_ROOT / "db.json")))


# -------------------------
# Match defaults
# -------------------------
DEFAULT_OVERS: int = _get_env_int("DEFAULT_OVERS", 20)
DEFAULT_ASSET: str = _get_env("DEFAULT_ASSET", "/public/assets/logo.png")


# -------------------------
# Live stream (SSE)
# -------------------------
# Reconnect delay advertised to EventSource clients
STREAM_RETRY_MS: int = _get_env_int("STREAM_RETRY_MS", 2000)
STREAM_KEEPALIVE_SECONDS: int = _get_env_int("STREAM_KEEPALIVE_SECONDS", 15)

# Frames buffered per subscriber before it is treated as stalled and dropped
SUBSCRIBER_QUEUE_SIZE: int = _get_env_int("SUBSCRIBER_QUEUE_SIZE", 256)


# -------------------------
# Logging
# -------------------------
LOG_LEVEL: str = _get_env("LIVE_SCORE_LOG_LEVEL", "INFO")


def validate_config() -> None:
    if DEFAULT_OVERS <= 0:
        raise RuntimeError("DEFAULT_OVERS must be positive")

    if STREAM_RETRY_MS <= 0:
        raise RuntimeError("STREAM_RETRY_MS must be positive")

    if STREAM_KEEPALIVE_SECONDS <= 0:
        raise RuntimeError("STREAM_KEEPALIVE_SECONDS must be positive")

    if SUBSCRIBER_QUEUE_SIZE <= 0:
        raise RuntimeError("SUBSCRIBER_QUEUE_SIZE must be positive")

    if not DB_FILE.parent.exists():
        raise RuntimeError(f"LIVE_SCORE_DB_FILE directory does not exist: {DB_FILE.parent}")
