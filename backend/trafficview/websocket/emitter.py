"""
WebSocket Event Emitter

Sends server→client events over Socket.IO and adapts each session id
to the ClientConnection interface the real-time core pushes through.

Features:
- Per-session targeting (Socket.IO room = sid)
- Push failures raised as TransportPushError
- Emission statistics
"""

import time
from typing import Any, Dict, Optional

from trafficview.exceptions import TransportPushError
from trafficview.logger import get_logger

logger = get_logger(__name__)


class WebSocketEmitter:
    """
    Centralized Socket.IO event emitter

    Usage:
        emitter = WebSocketEmitter(sio)
        handle = emitter.connection(sid)
        await handle.send("traffic-data", points)
    """

    def __init__(self, sio):
        """
        Initialize the WebSocket emitter

        Args:
            sio: Socket.IO AsyncServer instance
        """
        self.sio = sio

        # Statistics
        self._emit_count = 0
        self._error_count = 0
        self._last_emit_time = 0.0

    def connection(self, sid: str) -> "SocketIOConnection":
        """Wrap a session id as a transport handle"""
        return SocketIOConnection(self, sid)

    async def emit_to(self, sid: str, event: str, data: Any):
        """
        Emit an event to a single session

        Raises:
            TransportPushError: the Socket.IO emit failed
        """
        try:
            await self.sio.emit(event, data, room=sid)
        except Exception as e:
            self._error_count += 1
            raise TransportPushError(sid, event, str(e)) from e

        self._emit_count += 1
        self._last_emit_time = time.time()

    async def disconnect(self, sid: str):
        """Close a session from the server side"""
        await self.sio.disconnect(sid)

    def get_stats(self) -> Dict[str, Any]:
        """Get emitter statistics"""
        return {
            "totalEmits": self._emit_count,
            "errorCount": self._error_count,
            "lastEmitTime": self._last_emit_time,
        }


class SocketIOConnection:
    """ClientConnection backed by a Socket.IO session"""

    def __init__(self, emitter: WebSocketEmitter, sid: str):
        self.emitter = emitter
        self.sid = sid

    async def send(self, event: str, payload: Any) -> None:
        await self.emitter.emit_to(self.sid, event, payload)

    async def close(self) -> None:
        await self.emitter.disconnect(self.sid)

    def __repr__(self) -> str:
        return f"SocketIOConnection(sid={self.sid!r})"


# Global emitter instance (initialized in main.py)
emitter: Optional[WebSocketEmitter] = None


def get_emitter() -> Optional[WebSocketEmitter]:
    """Get the global WebSocket emitter instance"""
    return emitter


def set_emitter(e: Optional[WebSocketEmitter]):
    """Set the global WebSocket emitter instance"""
    global emitter
    emitter = e
