"""
Server settings, read from the environment.

    CHESS_HOST         Bind address (default 0.0.0.0)
    PORT               Bind port (default 8000; Render and friends set it)
    CHESS_AI_DELAY_MS  Computer "thinking" delay before it moves (default 450)
    CHESS_LOG_LEVEL    Root logging level (default INFO)
"""

import logging
import os
from typing import Mapping

from pydantic import BaseModel, field_validator


class ServerSettings(BaseModel):
    """
    Settings for one server process.

    Fields:
        host:        Bind address for uvicorn.
        port:        Bind port for uvicorn.
        ai_delay_ms: Delay between arming and computing a computer move,
                     clamped to [10, 5000] so it is never zero and never
                     long enough to look like a hang.
        log_level:   Name of a standard logging level.
    """

    host: str = "0.0.0.0"
    port: int = 8000
    ai_delay_ms: int = 450
    log_level: str = "INFO"

    @field_validator("ai_delay_ms")
    @classmethod
    def clamp_ai_delay(cls, v: int) -> int:
        """Clamp ai_delay_ms to a safe operating range."""
        return max(10, min(v, 5000))

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v!r}")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ServerSettings":
        env = os.environ if environ is None else environ
        values = {
            "host": env.get("CHESS_HOST"),
            "port": env.get("PORT"),
            "ai_delay_ms": env.get("CHESS_AI_DELAY_MS"),
            "log_level": env.get("CHESS_LOG_LEVEL"),
        }
        return cls(**{key: value for key, value in values.items() if value is not None})
