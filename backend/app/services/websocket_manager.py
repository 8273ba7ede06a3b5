"""
Focus Watch WebSocket Manager
Session sockets ("focus") and the command observer channel ("events").
"""

import logging
from typing import Dict, Set

from fastapi import WebSocket

logger = logging.getLogger("focuswatch.websocket")

CHANNELS = ("focus", "events")


class ConnectionManager:
    """Tracks viewer sockets and fans player commands out to observers"""

    def __init__(self):
        self.active_connections: Dict[str, Set[WebSocket]] = {name: set() for name in CHANNELS}

    async def connect(self, websocket: WebSocket, channel: str):
        if channel not in self.active_connections:
            raise ValueError(f"Unknown channel: {channel!r}")
        await websocket.accept()
        self.active_connections[channel].add(websocket)
        logger.info("Client joined %s (%d connected)", channel, len(self.active_connections[channel]))

    def disconnect(self, websocket: WebSocket, channel: str):
        self.active_connections[channel].discard(websocket)
        logger.info("Client left %s", channel)

    async def send_event(self, event: dict):
        """Push one batch of player commands to every observer; drop sockets that fail."""
        observers = self.active_connections["events"]
        for ws in list(observers):
            try:
                await ws.send_json({"type": "commands", "data": event})
            except Exception as e:
                logger.debug("Dropping observer socket: %s", e)
                observers.discard(ws)

    @property
    def total_connections(self) -> int:
        return sum(len(conns) for conns in self.active_connections.values())


# Global instance
ws_manager = ConnectionManager()
