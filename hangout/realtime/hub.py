"""Room-scoped WebSocket fan-out (in-memory, single process)."""

from __future__ import annotations

import asyncio
from collections import defaultdict
from concurrent.futures import Future
from typing import Any, Dict, Optional, Set

from loguru import logger
from starlette.websockets import WebSocket


class RoomHub:
    def __init__(self) -> None:
        self._clients: Set[WebSocket] = set()
        self._rooms: Dict[str, Set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._lock = asyncio.Lock()

    # ---------------------------
    # Membership
    # ---------------------------

    async def connect(self, ws: WebSocket) -> None:
        await ws.accept()
        async with self._lock:
            self._clients.add(ws)

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._lock:
            self._clients.discard(ws)
            for members in self._rooms.values():
                members.discard(ws)

    async def join(self, ws: WebSocket, room: str) -> None:
        async with self._lock:
            self._rooms[room].add(ws)
        logger.debug(f"ws joined room {room}")

    async def leave(self, ws: WebSocket, room: str) -> None:
        async with self._lock:
            self._rooms[room].discard(ws)
            if not self._rooms[room]:
                del self._rooms[room]
        logger.debug(f"ws left room {room}")

    def room_size(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    # ---------------------------
    # Delivery
    # ---------------------------

    async def send(self, event: str, data: Dict[str, Any], room: Optional[str] = None) -> None:
        targets = list(self._rooms.get(room, ())) if room else list(self._clients)
        if not targets:
            return

        message = {"event": event, "data": data}
        stale: list[WebSocket] = []
        for ws in targets:
            try:
                await ws.send_json(message)
            except Exception:
                stale.append(ws)

        if stale:
            logger.debug(f"Dropping {len(stale)} stale websocket(s)")
            for ws in stale:
                await self.disconnect(ws)

    def emit(self, event: str, data: Dict[str, Any], room: Optional[str] = None) -> None:
        """Schedule a send on the hub's loop. Safe to call from worker threads."""
        loop = self._loop
        if loop is None or loop.is_closed():
            logger.debug(f"Hub not bound to a loop, dropping {event}")
            return

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is loop:
            loop.create_task(self.send(event, data, room))
            return

        future = asyncio.run_coroutine_threadsafe(self.send(event, data, room), loop)
        future.add_done_callback(_log_delivery_failure)


def _log_delivery_failure(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.opt(exception=exc).warning("Realtime delivery failed")


hub = RoomHub()
