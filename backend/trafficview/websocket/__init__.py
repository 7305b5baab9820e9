"""
WebSocket Package

Real-time Socket.IO communication for the traffic dashboard.

Components:
- events: Event names and payload models
- emitter: Server→Client emission and per-session transport handles
- handlers: Client→Server event handling (import from .handlers)

Usage:
    from trafficview.websocket import WebSocketEmitter
    from trafficview.websocket.handlers import WebSocketHandlers

    emitter = WebSocketEmitter(sio)
    handlers = WebSocketHandlers(sio, emitter, registry, subscriptions, scheduler)
"""

from .events import ServerEvent, ClientEvent
from .emitter import WebSocketEmitter, SocketIOConnection, get_emitter, set_emitter

__all__ = [
    "ServerEvent",
    "ClientEvent",
    "WebSocketEmitter",
    "SocketIOConnection",
    "get_emitter",
    "set_emitter",
]
