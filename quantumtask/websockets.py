from fastapi import WebSocket
from typing import List, Optional, Tuple
import logging

from .schemas import GraphEvent

logger = logging.getLogger(__name__)

class ConnectionManager:
    """Canvas clients listening for graph changes.

    A client may watch a single workflow; `None` means every workflow.
    """

    def __init__(self):
        self.active_connections: List[Tuple[WebSocket, Optional[str]]] = []

    async def connect(self, websocket: WebSocket, workflow: Optional[str] = None):
        await websocket.accept()
        self.active_connections.append((websocket, workflow))
        logger.info(f"Canvas client watching {workflow or 'all workflows'}. "
                    f"Total connections: {len(self.active_connections)}")

    def disconnect(self, websocket: WebSocket):
        # WebSocket compares as a mapping, so match on identity
        remaining = [(ws, wf) for ws, wf in self.active_connections if ws is not websocket]
        if len(remaining) == len(self.active_connections):
            logger.warning("Attempted to disconnect WebSocket that wasn't in active connections")
            return
        self.active_connections = remaining
        logger.info(f"WebSocket disconnected. Total connections: {len(self.active_connections)}")

    def recipients(self, event: GraphEvent) -> List[WebSocket]:
        return [ws for ws, watched in self.active_connections
                if watched is None or watched == event.workflow]

    async def broadcast(self, event: GraphEvent):
        message = event.model_dump_json()
        dead_connections = []

        for connection in self.recipients(event):
            try:
                await connection.send_text(message)
            except Exception as e:
                logger.error(f"Failed to send {event.type} to connection: {e}")
                dead_connections.append(connection)

        # Remove dead connections
        for dead_conn in dead_connections:
            self.disconnect(dead_conn)

manager = ConnectionManager()
