from __future__ import annotations

import asyncio
from collections import defaultdict

from fastapi import WebSocket

from tictactoe.api.models import GameState


class GameWebSocketHub:
    """In-process WebSocket fan-out keyed by game_id.

    Subscribers only get a lightweight `game_updated` ping and re-read the game
    over REST. Running several API replicas would need Redis pub/sub instead.
    """

    def __init__(self) -> None:
        self._by_game: dict[int, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, game_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._by_game[game_id].add(websocket)

    async def disconnect(self, game_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            conns = self._by_game.get(game_id)
            if not conns:
                return
            conns.discard(websocket)
            if not conns:
                self._by_game.pop(game_id, None)

    async def game_updated(self, state: GameState) -> None:
        await self._send_all(
            state.game_id,
            {
                "type": "game_updated",
                "game_id": state.game_id,
                "status": state.status.value,
                "ply_count": state.ply_count,
            },
        )

    async def _send_all(self, game_id: int, payload: dict[str, object]) -> None:
        async with self._lock:
            conns = list(self._by_game.get(game_id, set()))

        dead: list[WebSocket] = []
        for ws in conns:
            try:
                await ws.send_json(payload)
            except Exception:
                dead.append(ws)

        if dead:
            async with self._lock:
                for ws in dead:
                    self._by_game.get(game_id, set()).discard(ws)


hub = GameWebSocketHub()
