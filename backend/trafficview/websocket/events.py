"""
WebSocket Event Type Definitions

Event names and payload shapes for the live traffic feed.

Events are categorized as:
- Server → Client: snapshots pushed from the backend
- Client → Server: connection lifecycle and scope changes
"""

from enum import Enum
from pydantic import BaseModel


# ============================================
# Event Name Constants
# ============================================

class ServerEvent(str, Enum):
    """Events emitted from server to client"""

    # Sent once on connect
    TRAFFIC_DATA = "traffic-data"
    SYSTEM_METRICS = "system-metrics"

    # Sent every broadcast tick to global-scope clients
    TRAFFIC_UPDATE = "traffic-update"
    METRICS_UPDATE = "metrics-update"

    # Sent on subscribe and every tick to area-scope clients
    AREA_TRAFFIC_DATA = "area-traffic-data"

    # Client-caused or per-connection failures
    ERROR = "error"


class ClientEvent(str, Enum):
    """Events received from client"""

    # Connection
    CONNECT = "connect"
    DISCONNECT = "disconnect"

    # Subscriptions
    SUBSCRIBE_AREA = "subscribe-area"
    UNSUBSCRIBE_AREA = "unsubscribe-area"
    SUBSCRIBE_GLOBAL = "subscribe-global"


# ============================================
# Server → Client Event Data Models
# ============================================

class ErrorData(BaseModel):
    """Payload for error event"""
    message: str
