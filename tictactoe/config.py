from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from tictactoe.lock import DEFAULT_TTL_MS, DEFAULT_WAIT_MS


@dataclass(frozen=True, slots=True)
class Settings:
    redis_url: str
    owner_id: str
    lock_ttl_ms: int
    lock_wait_ms: int
    log_level: str


def load_env_file() -> None:
    """Load a repo-local .env without overriding variables already exported."""

    load_dotenv(override=False)


def get_settings() -> Settings:
    return Settings(
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        owner_id=os.environ.get("TICTACTOE_OWNER", "owner"),
        lock_ttl_ms=int(os.environ.get("TICTACTOE_LOCK_TTL_MS", DEFAULT_TTL_MS)),
        lock_wait_ms=int(os.environ.get("TICTACTOE_LOCK_WAIT_MS", DEFAULT_WAIT_MS)),
        log_level=os.environ.get("TICTACTOE_LOG_LEVEL", "INFO").upper(),
    )
