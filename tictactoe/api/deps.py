from __future__ import annotations

from collections.abc import Generator

import redis
from fastapi import Depends

from tictactoe.config import get_settings
from tictactoe.first_mover import FirstMoverSource, SystemRandomFirstMover
from tictactoe.game_store import GameRegistry
from tictactoe.infra.redis_client import create_redis


def get_redis() -> Generator[redis.Redis, None, None]:
    client = create_redis()
    try:
        yield client
    finally:
        client.close()


_first_mover = SystemRandomFirstMover()


def get_first_mover() -> FirstMoverSource:
    return _first_mover


def get_registry(
    r: redis.Redis = Depends(get_redis),
    first_mover: FirstMoverSource = Depends(get_first_mover),
) -> GameRegistry:
    settings = get_settings()
    return GameRegistry(
        r=r,
        owner=settings.owner_id,
        first_mover=first_mover,
        lock_ttl_ms=settings.lock_ttl_ms,
        lock_wait_ms=settings.lock_wait_ms,
    )
