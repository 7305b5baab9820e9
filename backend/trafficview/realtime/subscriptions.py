"""
Subscription Manager

Applies subscribe/unsubscribe requests to the connection registry.
Area payloads are validated before anything is written, so a rejected
request leaves the registry untouched.
"""

from typing import Any, Optional

from trafficview.exceptions import UnknownConnectionError
from trafficview.logger import get_logger
from trafficview.models import (
    AreaSubscription,
    GLOBAL_SUBSCRIPTION,
    NO_SUBSCRIPTION,
    GlobalSubscription,
    parse_area_bounds,
)
from .registry import ConnectionRegistry

logger = get_logger(__name__)


class SubscriptionManager:
    """Validates and applies connection scope changes"""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def on_subscribe_area(self, connection_id: str, payload: Any) -> Optional[AreaSubscription]:
        """
        Subscribe a connection to a bounding box

        Args:
            connection_id: Connection id
            payload: {north, south, east, west}

        Returns:
            The applied AreaSubscription, or None if the connection has
            already gone away

        Raises:
            InvalidAreaError: payload rejected; registry not modified
        """
        subscription = AreaSubscription(bounds=parse_area_bounds(payload))

        try:
            self.registry.set_subscription(connection_id, subscription)
        except UnknownConnectionError:
            logger.debug("[SUBSCRIBE] Dropped area for departed %s", connection_id)
            return None

        logger.info("[SUBSCRIBE] %s subscribed to area %s", connection_id, subscription.to_dict())
        return subscription

    def on_subscribe_global(self, connection_id: str) -> Optional[GlobalSubscription]:
        """Subscribe a connection to all data"""
        try:
            self.registry.set_subscription(connection_id, GLOBAL_SUBSCRIPTION)
        except UnknownConnectionError:
            logger.debug("[SUBSCRIBE] Dropped global for departed %s", connection_id)
            return None
        return GLOBAL_SUBSCRIPTION

    def on_unsubscribe_area(self, connection_id: str) -> None:
        """Clear a connection's subscription; never fails"""
        try:
            self.registry.set_subscription(connection_id, NO_SUBSCRIPTION)
        except UnknownConnectionError:
            logger.debug("[SUBSCRIBE] Unsubscribe ignored for departed %s", connection_id)
            return
        logger.info("[SUBSCRIBE] %s unsubscribed from area", connection_id)
