from __future__ import annotations

import logging
from typing import Any

import redis
from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from tictactoe.actions import ActionName, dispatch_action
from tictactoe.api.deps import get_redis, get_registry
from tictactoe.api.models import (
    ActiveGameResponse,
    GameCreateRequest,
    GameListResponse,
    GameState,
    MoveRequest,
    RegistryInfo,
)
from tictactoe.errors import (
    AlreadyInGame,
    CannotJoinOwnGame,
    CellOccupied,
    GameBusy,
    GameError,
    GameFinished,
    GameFull,
    GameNotFound,
    GameNotStarted,
    NotOwner,
    NotYourTurn,
    OutOfRange,
    Paused,
)
from tictactoe.game_store import GameRegistry
from tictactoe.streams import Mailbox, read_mailbox
from tictactoe.websocket_hub import hub

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_BY_ERROR: dict[type[GameError], int] = {
    Paused: status.HTTP_503_SERVICE_UNAVAILABLE,
    NotOwner: status.HTTP_403_FORBIDDEN,
    GameNotFound: status.HTTP_404_NOT_FOUND,
    AlreadyInGame: status.HTTP_409_CONFLICT,
    GameFull: status.HTTP_409_CONFLICT,
    CannotJoinOwnGame: status.HTTP_409_CONFLICT,
    GameFinished: status.HTTP_409_CONFLICT,
    GameNotStarted: status.HTTP_409_CONFLICT,
    NotYourTurn: status.HTTP_409_CONFLICT,
    CellOccupied: status.HTTP_409_CONFLICT,
    OutOfRange: status.HTTP_422_UNPROCESSABLE_ENTITY,
    GameBusy: status.HTTP_423_LOCKED,
}


def _rejected(e: ValueError, *, op: str, player_id: str) -> HTTPException:
    if isinstance(e, GameError):
        logger.info("rejected %s by %s: %s (%s)", op, player_id, e.code, e)
        code = _STATUS_BY_ERROR.get(type(e), status.HTTP_422_UNPROCESSABLE_ENTITY)
        return HTTPException(status_code=code, detail={"code": e.code, "message": str(e)})
    logger.info("rejected %s by %s: %s", op, player_id, e)
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


def _registry_info(registry: GameRegistry) -> RegistryInfo:
    return RegistryInfo(game_count=registry.game_count(), is_paused=registry.is_paused(), owner=registry.owner)


@router.websocket("/ws/game/{game_id}")
async def game_updates_ws(websocket: WebSocket, game_id: int) -> None:
    await hub.connect(game_id, websocket)

    try:
        # Keep the socket open; client can optionally send pings.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await hub.disconnect(game_id, websocket)
    except Exception:
        await hub.disconnect(game_id, websocket)
        raise


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/game", response_model=GameState, status_code=status.HTTP_201_CREATED)
async def start_game_route(payload: GameCreateRequest, registry: GameRegistry = Depends(get_registry)) -> GameState:
    try:
        game_id = await run_in_threadpool(registry.start_new_game, caller=payload.player_id)
    except ValueError as e:
        raise _rejected(e, op="start", player_id=payload.player_id) from e

    logger.info("game %s started by %s", game_id, payload.player_id)
    state = registry.get_game(game_id=game_id)
    assert state is not None
    return state


@router.get("/game", response_model=GameListResponse)
async def list_games_route(registry: GameRegistry = Depends(get_registry)) -> GameListResponse:
    return GameListResponse(games=registry.list_games())


@router.get("/game/{game_id}", response_model=GameState)
async def get_game_route(game_id: int, registry: GameRegistry = Depends(get_registry)) -> GameState:
    state = registry.get_game(game_id=game_id)
    if state is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Game not found")
    return state


async def _run_action(
    *,
    registry: GameRegistry,
    r: redis.Redis,
    game_id: int,
    player_id: str,
    action: ActionName,
    payload: dict[str, Any],
) -> GameState:
    try:
        result = await run_in_threadpool(
            dispatch_action, registry=registry, r=r, game_id=game_id, player_id=player_id, action=action, payload=payload
        )
    except ValueError as e:
        raise _rejected(e, op=action, player_id=player_id) from e

    state = result.state
    logger.info("game %s: %s by %s -> %s (ply %s)", game_id, action, player_id, state.status.value, state.ply_count)
    await hub.game_updated(state)
    return state


@router.post("/game/{game_id}/player/{player_id}/join", response_model=GameState)
async def join_game_route(
    game_id: int,
    player_id: str,
    registry: GameRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
) -> GameState:
    return await _run_action(registry=registry, r=r, game_id=game_id, player_id=player_id, action="join", payload={})


@router.post("/game/{game_id}/player/{player_id}/move", response_model=GameState)
async def move_route(
    game_id: int,
    player_id: str,
    payload: MoveRequest,
    registry: GameRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
) -> GameState:
    return await _run_action(
        registry=registry, r=r, game_id=game_id, player_id=player_id, action="move", payload=payload.model_dump()
    )


@router.post("/games/{game_id}/actions/{action}", response_model=GameState)
async def generic_action_route(
    game_id: int,
    action: str,
    body: dict[str, Any],
    registry: GameRegistry = Depends(get_registry),
    r: redis.Redis = Depends(get_redis),
) -> GameState:
    pid = body.get("player_id")
    if action not in {"join", "move"}:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=f"Unknown action: {action}")
    if not pid:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="player_id is required")
    act: ActionName = action  # type: ignore[assignment]
    return await _run_action(registry=registry, r=r, game_id=game_id, player_id=str(pid), action=act, payload=body)


@router.get("/player/{player_id}/active_game", response_model=ActiveGameResponse)
async def active_game_route(player_id: str, registry: GameRegistry = Depends(get_registry)) -> ActiveGameResponse:
    return ActiveGameResponse(player_id=player_id, game_id=registry.active_game_of(participant=player_id))


@router.get("/registry", response_model=RegistryInfo)
async def registry_info_route(registry: GameRegistry = Depends(get_registry)) -> RegistryInfo:
    return _registry_info(registry)


@router.post("/player/{player_id}/pause", response_model=RegistryInfo)
async def toggle_pause_route(player_id: str, registry: GameRegistry = Depends(get_registry)) -> RegistryInfo:
    try:
        paused = await run_in_threadpool(registry.set_is_paused, caller=player_id)
    except ValueError as e:
        raise _rejected(e, op="pause", player_id=player_id) from e

    logger.info("registry %s by %s", "paused" if paused else "resumed", player_id)
    return _registry_info(registry)


@router.get("/games/{game_id}/players/{player_id}/mailbox")
async def get_player_mailbox_route(
    game_id: int,
    player_id: str,
    count: int = 20,
    start: str = "-",
    end: str = "+",
    r: redis.Redis = Depends(get_redis),
) -> dict[str, object]:
    """Debug endpoint: read a player's mailbox Redis Stream.

    Intended for local/dev testing when redis-cli isn't available.
    """

    if count < 1 or count > 200:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="count must be between 1 and 200")

    mailbox = Mailbox(game_id=game_id, player_id=player_id)
    try:
        messages = read_mailbox(r=r, mailbox=mailbox, count=count, start=start, end=end)
    except redis.RedisError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    return {"game_id": game_id, "player_id": player_id, "stream": mailbox.key, "messages": messages}
