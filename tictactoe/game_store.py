from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import redis

from tictactoe.api.models import GameState
from tictactoe.errors import AlreadyInGame, GameNotFound, NotOwner, Paused
from tictactoe.first_mover import FirstMoverSource, SystemRandomFirstMover
from tictactoe.fsm import GameFSM
from tictactoe.lock import DEFAULT_TTL_MS, DEFAULT_WAIT_MS, game_lock, participant_lock
from tictactoe.turn_processing.turns import mark_for
from tictactoe.turn_processing.validators import ValidationContext, pipeline_for_action


GAMES_SET_KEY = "tictactoe:games"
GAME_COUNT_KEY = "tictactoe:game_count"
PAUSED_KEY = "tictactoe:paused"
GAME_KEY_PREFIX = "tictactoe:game:"  # + {game_id}
ACTIVE_KEY_PREFIX = "tictactoe:active:"  # + {participant}


def _now() -> datetime:
    return datetime.now(tz=UTC)


def _game_key(game_id: int) -> str:
    return f"{GAME_KEY_PREFIX}{game_id}"


def _active_key(participant: str) -> str:
    return f"{ACTIVE_KEY_PREFIX}{participant}"


def _parse_id(raw: Any) -> int | None:
    if not raw:
        return None
    return int(raw)


def _load_game(conn: Any, game_id: int) -> GameState | None:
    if game_id <= 0:
        return None
    raw = conn.get(_game_key(game_id))
    if not raw:
        return None
    return GameState.model_validate_json(raw)


def _require_game(conn: Any, game_id: int) -> GameState:
    state = _load_game(conn, game_id)
    if state is None:
        raise GameNotFound(f"Game {game_id} not found")
    return state


def _require_not_paused(conn: Any) -> None:
    if conn.get(PAUSED_KEY) == "1":
        raise Paused()


class GameRegistry:
    """All games, the participant -> active game mapping, the counter and the pause flag.

    State lives in Redis so a restarted process sees the same registry. Every
    mutating operation validates first and then commits all of its writes in a
    single MULTI/EXEC, so callers never observe half-applied effects.

    `owner` is fixed for the lifetime of the object and is the only identity
    allowed to toggle the pause flag.
    """

    def __init__(
        self,
        *,
        r: redis.Redis,
        owner: str,
        first_mover: FirstMoverSource | None = None,
        lock_ttl_ms: int = DEFAULT_TTL_MS,
        lock_wait_ms: int = DEFAULT_WAIT_MS,
    ) -> None:
        self._r = r
        self._owner = owner
        self._first_mover = first_mover or SystemRandomFirstMover()
        self._lock_opts = {"ttl_ms": lock_ttl_ms, "wait_ms": lock_wait_ms}

    # ------------------------------------------------------------------ reads

    @property
    def owner(self) -> str:
        return self._owner

    def get_game(self, *, game_id: int) -> GameState | None:
        return _load_game(self._r, game_id)

    def active_game_of(self, *, participant: str) -> int | None:
        return _parse_id(self._r.get(_active_key(participant)))

    def game_count(self) -> int:
        return int(self._r.get(GAME_COUNT_KEY) or 0)

    def is_paused(self) -> bool:
        return self._r.get(PAUSED_KEY) == "1"

    def list_games(self) -> list[GameState]:
        out: list[GameState] = []
        for sid in self._r.smembers(GAMES_SET_KEY):
            state = _load_game(self._r, int(sid))
            if state is not None:
                out.append(state)
        out.sort(key=lambda s: s.game_id, reverse=True)
        return out

    # -------------------------------------------------------------- mutations

    def start_new_game(self, *, caller: str) -> int:
        """Open a new game with `caller` as player1 and return its id."""

        _require_not_paused(self._r)

        def _apply(pipe: Any) -> int:
            _require_not_paused(pipe)
            active = _parse_id(pipe.get(_active_key(caller)))
            if active is not None:
                raise AlreadyInGame(f"Player already in active game {active}")

            game_id = int(pipe.get(GAME_COUNT_KEY) or 0) + 1
            now = _now()
            state = GameState(game_id=game_id, player1=caller, created_at=now, last_updated_at=now)

            pipe.multi()
            pipe.set(GAME_COUNT_KEY, game_id)
            pipe.set(_game_key(game_id), state.model_dump_json())
            pipe.sadd(GAMES_SET_KEY, game_id)
            pipe.set(_active_key(caller), game_id)
            return game_id

        with participant_lock(r=self._r, participant=caller, **self._lock_opts):
            # WATCH on the counter keeps concurrent creators from minting the same id.
            return self._r.transaction(
                _apply, PAUSED_KEY, GAME_COUNT_KEY, _active_key(caller), value_from_callable=True
            )

    def join_game(self, *, game_id: int, caller: str) -> GameState:
        """Seat `caller` as player2 and draw who moves first."""

        _require_not_paused(self._r)

        def _apply(pipe: Any) -> GameState:
            _require_not_paused(pipe)
            state = _require_game(pipe, game_id)
            ctx = ValidationContext(
                game_id=game_id,
                player_id=caller,
                action="join",
                active_game_id=_parse_id(pipe.get(_active_key(caller))),
            )
            pipeline_for_action("join").validate(ctx=ctx, state=state)

            state.player2 = caller
            state.is_player1_first = self._first_mover.choose()
            state.last_updated_at = _now()

            pipe.multi()
            pipe.set(_game_key(game_id), state.model_dump_json())
            pipe.set(_active_key(caller), game_id)
            return state

        # Lock order: game before participant.
        with game_lock(r=self._r, game_id=game_id, **self._lock_opts):
            with participant_lock(r=self._r, participant=caller, **self._lock_opts):
                return self._r.transaction(
                    _apply, PAUSED_KEY, _game_key(game_id), _active_key(caller), value_from_callable=True
                )

    def make_move(self, *, game_id: int, row: int, col: int, caller: str) -> GameState:
        """Place the caller's mark and settle the game if it just ended."""

        _require_not_paused(self._r)

        def _apply(pipe: Any) -> GameState:
            _require_not_paused(pipe)
            state = _require_game(pipe, game_id)
            ctx = ValidationContext(game_id=game_id, player_id=caller, action="move")
            pipeline_for_action("move").validate(ctx=ctx, state=state)

            state.board.place(row, col, mark_for(state=state, player_id=caller))
            state.ply_count += 1
            ended = GameFSM(state).apply_outcome(state.board.evaluate())
            state.last_updated_at = _now()

            players = [p for p in (state.player1, state.player2) if p is not None]
            # Only clear entries still pointing at this game.
            to_clear = [_active_key(p) for p in players if ended and _parse_id(pipe.get(_active_key(p))) == game_id]

            pipe.multi()
            pipe.set(_game_key(game_id), state.model_dump_json())
            for key in to_clear:
                pipe.delete(key)
            return state

        with game_lock(r=self._r, game_id=game_id, **self._lock_opts):
            state = _load_game(self._r, game_id)
            watches = [PAUSED_KEY, _game_key(game_id)]
            if state is not None:
                watches.extend(_active_key(p) for p in (state.player1, state.player2) if p is not None)
            return self._r.transaction(_apply, *watches, value_from_callable=True)

    def set_is_paused(self, *, caller: str) -> bool:
        """Toggle the pause flag. Owner only; returns the new value.

        Not gated by the flag itself, otherwise the owner could never unpause.
        """

        if caller != self._owner:
            raise NotOwner()

        def _apply(pipe: Any) -> bool:
            paused = pipe.get(PAUSED_KEY) == "1"
            pipe.multi()
            pipe.set(PAUSED_KEY, "0" if paused else "1")
            return not paused

        return self._r.transaction(_apply, PAUSED_KEY, value_from_callable=True)
