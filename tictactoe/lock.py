from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import redis
from redis.exceptions import LockNotOwnedError

from tictactoe.errors import GameBusy

DEFAULT_TTL_MS = 5_000
DEFAULT_WAIT_MS = 250
_RETRY_SLEEP_S = 0.01


@contextmanager
def _redis_lock(*, r: redis.Redis, key: str, ttl_ms: int, wait_ms: int, what: str) -> Iterator[None]:
    """Short-lived mutex on a single Redis key.

    Built on redis-py's `Lock`: the holder writes a unique token and release is
    a compare-and-delete script, so a lock that expired and was taken over by
    someone else is never released by the previous holder. Acquisition is
    retried for at most `wait_ms`, then fails with GameBusy.
    """

    lock = r.lock(key, timeout=ttl_ms / 1000, sleep=_RETRY_SLEEP_S, blocking_timeout=wait_ms / 1000)
    if not lock.acquire():
        raise GameBusy(f"{what} is busy, try again")
    try:
        yield
    finally:
        try:
            lock.release()
        except LockNotOwnedError:
            # Expired and taken over; the WATCH commit already guarded the write.
            pass


@contextmanager
def game_lock(
    *, r: redis.Redis, game_id: int, ttl_ms: int = DEFAULT_TTL_MS, wait_ms: int = DEFAULT_WAIT_MS
) -> Iterator[None]:
    with _redis_lock(r=r, key=f"lock:game:{game_id}", ttl_ms=ttl_ms, wait_ms=wait_ms, what=f"Game {game_id}"):
        yield


@contextmanager
def participant_lock(
    *, r: redis.Redis, participant: str, ttl_ms: int = DEFAULT_TTL_MS, wait_ms: int = DEFAULT_WAIT_MS
) -> Iterator[None]:
    with _redis_lock(
        r=r, key=f"lock:participant:{participant}", ttl_ms=ttl_ms, wait_ms=wait_ms, what=f"Player {participant}"
    ):
        yield
