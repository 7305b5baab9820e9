"""
Traffic View Real-Time Backend
Main FastAPI Application Entry Point

This is the main entry point for the backend server.
It initializes FastAPI, Socket.IO, the database and the real-time
broadcast service.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import socketio
from dotenv import load_dotenv

from trafficview import __version__
from trafficview.logger import get_logger, setup_logging

# Load environment variables
load_dotenv()
setup_logging()

logger = get_logger(__name__)

# Create Socket.IO server
sio = socketio.AsyncServer(
    async_mode='asgi',
    cors_allowed_origins='*',
    logger=False,
    engineio_logger=False,
    ping_interval=25,
    ping_timeout=60
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events - startup and shutdown"""

    # Startup
    logger.info("[STARTUP] Traffic View real-time backend")

    # Initialize database
    from trafficview.database.database import SessionLocal, init_db
    init_db()

    # Initialize configuration
    from trafficview.config import get_config, load_realtime_settings
    settings = load_realtime_settings(get_config())
    logger.info(
        "[OK] Configuration loaded (interval: %.1fs, limit: %d/%d)",
        settings.broadcast_interval, settings.default_limit, settings.max_limit
    )

    # Build real-time service objects
    from trafficview.database.store import SqlTrafficStore
    from trafficview.realtime import (
        BroadcastScheduler,
        ConnectionRegistry,
        SnapshotQueryService,
        SubscriptionManager,
    )
    from trafficview.websocket import WebSocketEmitter, set_emitter
    from trafficview.websocket.handlers import WebSocketHandlers, set_handlers

    registry = ConnectionRegistry()
    snapshots = SnapshotQueryService(SqlTrafficStore(SessionLocal), settings)
    scheduler = BroadcastScheduler(registry, snapshots, interval=settings.broadcast_interval)

    ws_emitter = WebSocketEmitter(sio)
    ws_handlers = WebSocketHandlers(
        sio,
        ws_emitter,
        registry=registry,
        subscriptions=SubscriptionManager(registry),
        scheduler=scheduler,
    )

    # Set global instances
    set_emitter(ws_emitter)
    set_handlers(ws_handlers)
    logger.info("[OK] WebSocket emitter and handlers initialized")

    await scheduler.start()

    logger.info("[SERVER] Ready, WebSocket accepting connections")

    yield

    # Shutdown
    logger.info("[SHUTDOWN] Shutting down...")
    await scheduler.stop()
    await ws_handlers.close_all_connections()
    set_handlers(None)
    set_emitter(None)
    logger.info("[SHUTDOWN] Complete")


# Create FastAPI application
app = FastAPI(
    title="Traffic View API",
    description="Traffic points, alerts, metrics and live snapshot feed",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================
# Include API Routers
# ============================================

from trafficview.api import traffic_router, metrics_router, alert_router  # noqa: E402

# Traffic point routes: /api/traffic/points, /api/traffic/metrics
app.include_router(traffic_router)

# Metrics routes: /api/metrics, /api/metrics/overview, /api/metrics/predict
app.include_router(metrics_router)

# Alert routes: /api/alerts, /api/alerts/area, /api/alerts/{id}/close
app.include_router(alert_router)


# ============================================
# Root Endpoints
# ============================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint - API information"""
    return {
        "name": "Traffic View",
        "version": __version__,
        "status": "operational",
        "documentation": "/docs",
        "endpoints": {
            "traffic": "/api/traffic/*",
            "metrics": "/api/metrics/*",
            "alerts": "/api/alerts/*",
            "websocket_stats": "/ws/stats",
        }
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Health check endpoint"""
    from trafficview.websocket.handlers import get_handlers

    handlers = get_handlers()

    return {
        "status": "healthy",
        "timestamp": time.time(),
        "websocket": {
            "connected_clients": handlers.get_client_count() if handlers else 0,
            "broadcasting": handlers.scheduler.is_running if handlers else False,
        }
    }


@app.get("/ws/stats", tags=["websocket"])
async def websocket_stats():
    """Get WebSocket and broadcast statistics"""
    from trafficview.websocket import get_emitter
    from trafficview.websocket.handlers import get_handlers

    emitter = get_emitter()
    handlers = get_handlers()

    return {
        "emitter": emitter.get_stats() if emitter else None,
        "registry": handlers.registry.get_stats() if handlers else None,
        "scheduler": handlers.scheduler.get_stats() if handlers else None,
        "timestamp": time.time(),
    }


# ============================================
# Create Socket.IO ASGI app
# ============================================

sio_app = socketio.ASGIApp(sio, app)


# ============================================
# WebSocket Event Reference (handled by WebSocketHandlers)
# ============================================
#
# Server → Client Events:
#   - traffic-data        : Recent points, sent on connect
#   - system-metrics      : System metrics, sent on connect
#   - traffic-update      : Recent points, every tick (global scope)
#   - metrics-update      : System metrics, every tick (global scope)
#   - area-traffic-data   : Points in the subscribed box, on subscribe and every tick
#   - error               : {message} for rejected subscriptions or failed loads
#
# Client → Server Events:
#   - subscribe-area      : {north, south, east, west}
#   - unsubscribe-area    : Back to global pushes
#   - subscribe-global    : Explicit global scope


# ============================================
# Entry Point
# ============================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "trafficview.main:sio_app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
