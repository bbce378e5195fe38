"""WebSocket fan-out for configurations as the diversifier forms them."""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Set

from fastapi import WebSocket

from .schemas import Configuration

logger = logging.getLogger(__name__)

EVENT_NAME = "pcConfigFormed"


class LiveUpdateHub:
    """Subscribers keyed by requester id; ``None`` subscribes to every update."""

    def __init__(self):
        self._subscribers: Dict[Optional[str], Set[WebSocket]] = {}
        self._tasks: Set[asyncio.Task] = set()

    def subscribe(self, websocket: WebSocket, user_id: Optional[str] = None) -> None:
        self._subscribers.setdefault(user_id, set()).add(websocket)
        logger.info("[LIVE] subscriber connected user_id=%s", user_id)

    def unsubscribe(self, websocket: WebSocket) -> None:
        for key in list(self._subscribers):
            sockets = self._subscribers[key]
            sockets.discard(websocket)
            if not sockets:
                del self._subscribers[key]

    def subscriber_count(self) -> int:
        return sum(len(sockets) for sockets in self._subscribers.values())

    def recipients(self, requester_id: Optional[str]) -> Set[WebSocket]:
        targets = set(self._subscribers.get(None, set()))
        if requester_id is not None:
            targets |= self._subscribers.get(requester_id, set())
        return targets

    def publish(self, configuration: Configuration, requester_id: Optional[str] = None) -> None:
        """Fire-and-forget; resolution never waits on socket sends."""
        targets = self.recipients(requester_id)
        if not targets:
            return
        message = {"event": EVENT_NAME, "configuration": configuration.as_dict()}
        for websocket in targets:
            task = asyncio.get_running_loop().create_task(self._send(websocket, message))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _send(self, websocket: WebSocket, message: dict) -> None:
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.warning("[LIVE] dropping subscriber after send failure: %s", e)
            self.unsubscribe(websocket)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
