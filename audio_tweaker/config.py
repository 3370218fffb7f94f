from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

log = logging.getLogger("audio_tweaker.config")

DEFAULT_CONCURRENCY = 2
DEFAULT_PORT = 8080
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        log.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_float(name: str) -> Optional[float]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        log.warning("Ignoring invalid %s=%r", name, raw)
        return None
    return value if value > 0 else None


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    log.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
    return default


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    ffmpeg_path: Optional[str] = None
    engine_timeout_s: Optional[float] = None
    concurrency: int = DEFAULT_CONCURRENCY
    enable_advanced: bool = True
    transport: str = "stdio"
    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = ".env") -> "Settings":
        if dotenv_path:
            load_dotenv(dotenv_path)
        transport = os.environ.get("AUDIO_TWEAKER_TRANSPORT", "stdio").strip().lower()
        if transport not in ("stdio", "http"):
            log.warning("Unknown transport %r, falling back to stdio", transport)
            transport = "stdio"
        return cls(
            log_level=os.environ.get("AUDIO_TWEAKER_LOG_LEVEL", "INFO").strip().upper() or "INFO",
            ffmpeg_path=os.environ.get("AUDIO_TWEAKER_FFMPEG_PATH") or None,
            engine_timeout_s=_env_float("AUDIO_TWEAKER_ENGINE_TIMEOUT"),
            concurrency=max(1, _env_int("AUDIO_TWEAKER_CONCURRENCY", DEFAULT_CONCURRENCY)),
            enable_advanced=_env_bool("AUDIO_TWEAKER_ENABLE_ADVANCED", True),
            transport=transport,
            host=os.environ.get("HOST", "0.0.0.0"),
            port=_env_int("PORT", DEFAULT_PORT),
        )


def configure_logging(level: str = "INFO") -> None:
    """Send every log record to stderr; stdout belongs to the stdio transport."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr)
