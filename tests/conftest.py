from __future__ import annotations

from collections.abc import Callable, Generator

import fakeredis
import pytest
from fastapi.testclient import TestClient

from tictactoe.game_store import GameRegistry

OWNER = "owner"


class FixedFirstMover:
    """Deterministic first-mover source; records how often it was consulted."""

    def __init__(self, is_player1_first: bool = True) -> None:
        self.is_player1_first = is_player1_first
        self.calls = 0

    def choose(self) -> bool:
        self.calls += 1
        return self.is_player1_first


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture()
def make_registry(r: fakeredis.FakeRedis) -> Callable[..., GameRegistry]:
    def _make(*, is_player1_first: bool = True, owner: str = OWNER, **kwargs: object) -> GameRegistry:
        return GameRegistry(r=r, owner=owner, first_mover=FixedFirstMover(is_player1_first), **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def registry(make_registry: Callable[..., GameRegistry]) -> GameRegistry:
    return make_registry()


@pytest.fixture()
def client_and_redis(
    r: fakeredis.FakeRedis, monkeypatch: pytest.MonkeyPatch
) -> Generator[tuple[TestClient, fakeredis.FakeRedis], None, None]:
    """FastAPI TestClient wired to fakeredis and a player1-first coin."""

    from tictactoe.api.deps import get_first_mover, get_redis
    from tictactoe.main import app

    monkeypatch.setenv("TICTACTOE_OWNER", OWNER)

    def _override() -> Generator[fakeredis.FakeRedis, None, None]:
        yield r

    app.dependency_overrides[get_redis] = _override
    app.dependency_overrides[get_first_mover] = lambda: FixedFirstMover(True)
    with TestClient(app) as c:
        yield c, r
    app.dependency_overrides.clear()
