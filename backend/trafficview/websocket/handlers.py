"""
WebSocket Client Event Handlers

Handles client→server Socket.IO events for the live traffic feed:
connect, disconnect, subscribe-area, unsubscribe-area, subscribe-global.

All handlers are registered with the Socket.IO server in main.py.
"""

import time
from typing import Any, Dict, Optional

from trafficview.exceptions import DuplicateConnectionError, InvalidAreaError
from trafficview.logger import get_logger
from trafficview.realtime import BroadcastScheduler, ConnectionRegistry, SubscriptionManager
from .events import ClientEvent
from .emitter import WebSocketEmitter

logger = get_logger(__name__)


class WebSocketHandlers:
    """
    Centralized WebSocket event handlers

    Translates Socket.IO events into registry, subscription and
    scheduler calls. No handler lets an exception escape to Socket.IO.
    """

    def __init__(
        self,
        sio,
        emitter: WebSocketEmitter,
        registry: ConnectionRegistry,
        subscriptions: SubscriptionManager,
        scheduler: BroadcastScheduler,
    ):
        """
        Initialize handlers

        Args:
            sio: Socket.IO AsyncServer instance
            emitter: WebSocket emitter instance
            registry: Live connection registry
            subscriptions: Subscription manager
            scheduler: Broadcast scheduler (for immediate pushes)
        """
        self.sio = sio
        self.emitter = emitter
        self.registry = registry
        self.subscriptions = subscriptions
        self.scheduler = scheduler

        self._register_handlers()

    def _register_handlers(self):
        """Register all Socket.IO event handlers"""

        # Connection events
        self.sio.on(ClientEvent.CONNECT.value, self.handle_connect)
        self.sio.on(ClientEvent.DISCONNECT.value, self.handle_disconnect)

        # Subscriptions
        self.sio.on(ClientEvent.SUBSCRIBE_AREA.value, self.handle_subscribe_area)
        self.sio.on(ClientEvent.UNSUBSCRIBE_AREA.value, self.handle_unsubscribe_area)
        self.sio.on(ClientEvent.SUBSCRIBE_GLOBAL.value, self.handle_subscribe_global)

    # ============================================
    # Connection Handlers
    # ============================================

    async def handle_connect(self, sid: str, environ: Dict, auth: Any = None):
        """
        Handle client connection

        Registers the session and pushes the current global snapshot
        without waiting for the next tick.

        Args:
            sid: Session ID
            environ: Connection environment
            auth: Optional auth payload (unused)
        """
        try:
            self.registry.register(sid, self.emitter.connection(sid))
        except DuplicateConnectionError as e:
            logger.error("[WS] %s", e)
            return

        remote_addr = (environ or {}).get("REMOTE_ADDR", "unknown")
        logger.info("[WS] Client connected: %s from %s", sid, remote_addr)

        await self.scheduler.send_initial_snapshot(sid)

    async def handle_disconnect(self, sid: str, reason: Any = None):
        """
        Handle client disconnection

        Safe to call more than once for the same sid.

        Args:
            sid: Session ID
            reason: Disconnect reason, when Socket.IO provides one
        """
        connection = self.registry.unregister(sid)
        if connection is not None:
            duration = time.time() - connection.created_at
            logger.info("[WS] Client disconnected: %s (duration: %.1fs)", sid, duration)

    # ============================================
    # Subscription Handlers
    # ============================================

    async def handle_subscribe_area(self, sid: str, data: Any = None):
        """
        Handle area subscription

        Args:
            sid: Session ID
            data: {north, south, east, west}
        """
        try:
            subscription = self.subscriptions.on_subscribe_area(sid, data)
        except InvalidAreaError as e:
            logger.info("[WS] Rejected area from %s: %s", sid, e)
            await self.scheduler.send_error(sid, str(e))
            return

        if subscription is None:
            return

        await self.scheduler.send_area_snapshot(sid, subscription.bounds)

    async def handle_unsubscribe_area(self, sid: str, data: Any = None):
        """
        Handle area unsubscription; the client falls back to global pushes

        Args:
            sid: Session ID
            data: Ignored
        """
        self.subscriptions.on_unsubscribe_area(sid)

    async def handle_subscribe_global(self, sid: str, data: Any = None):
        """
        Handle explicit global subscription

        Args:
            sid: Session ID
            data: Ignored
        """
        if self.subscriptions.on_subscribe_global(sid) is None:
            return
        await self.scheduler.send_initial_snapshot(sid)

    # ============================================
    # Shutdown
    # ============================================

    async def close_all_connections(self):
        """
        Close every live session and empty the registry

        A session that fails to close is logged and skipped.
        """
        for info in self.registry.list_connections():
            handle = self.registry.get_handle(info.connection_id)
            if handle is None:
                continue
            try:
                await handle.close()
            except Exception as e:
                logger.warning("[WS] Failed to close %s: %s", info.connection_id, e)

        self.registry.clear()
        logger.info("[WS] All client sessions closed")

    # ============================================
    # Utility Methods
    # ============================================

    def get_client_count(self) -> int:
        """Get number of connected clients"""
        return self.registry.count()

    def is_client_connected(self, sid: str) -> bool:
        """Check if client is connected"""
        return self.registry.is_registered(sid)


# Global handlers instance (initialized in main.py)
handlers: Optional[WebSocketHandlers] = None


def get_handlers() -> Optional[WebSocketHandlers]:
    """Get the global WebSocket handlers instance"""
    return handlers


def set_handlers(h: Optional[WebSocketHandlers]):
    """Set the global WebSocket handlers instance"""
    global handlers
    handlers = h
