"""
Subscription Manager Tests
"""

import pytest

from trafficview.exceptions import InvalidAreaError
from trafficview.models import (
    AreaBounds,
    AreaSubscription,
    GLOBAL_SUBSCRIPTION,
    NO_SUBSCRIPTION,
)
from conftest import INSIDE_BOUNDS


class TestSubscribeArea:
    """Test area subscriptions"""

    def test_valid_area_applied(self, registry, subscriptions):
        registry.register("c1")
        sub = subscriptions.on_subscribe_area("c1", INSIDE_BOUNDS)
        assert sub == AreaSubscription(AreaBounds(**INSIDE_BOUNDS))
        assert registry.get_subscription("c1") == sub

    def test_invalid_area_leaves_subscription_untouched(self, registry, subscriptions):
        registry.register("c1")
        subscriptions.on_subscribe_area("c1", INSIDE_BOUNDS)
        before = registry.get_subscription("c1")

        with pytest.raises(InvalidAreaError):
            subscriptions.on_subscribe_area("c1", {"north": 1, "south": 2, "east": 1, "west": 0})

        assert registry.get_subscription("c1") == before

    def test_missing_fields_rejected(self, registry, subscriptions):
        registry.register("c1")
        with pytest.raises(InvalidAreaError):
            subscriptions.on_subscribe_area("c1", {"north": 13.0})
        assert registry.get_subscription("c1") == NO_SUBSCRIPTION

    def test_departed_connection_returns_none(self, registry, subscriptions):
        assert subscriptions.on_subscribe_area("gone", INSIDE_BOUNDS) is None
        assert not registry.is_registered("gone")

    def test_invalid_payload_rejected_even_for_departed(self, subscriptions):
        with pytest.raises(InvalidAreaError):
            subscriptions.on_subscribe_area("gone", {"north": "x"})

    def test_resubscribe_replaces_box(self, registry, subscriptions):
        registry.register("c1")
        subscriptions.on_subscribe_area("c1", INSIDE_BOUNDS)
        other = {"north": 28.7, "south": 28.5, "east": 77.3, "west": 77.1}
        subscriptions.on_subscribe_area("c1", other)
        assert registry.get_subscription("c1").bounds == AreaBounds(**other)


class TestSubscribeGlobal:
    """Test global subscriptions"""

    def test_global_applied(self, registry, subscriptions):
        registry.register("c1")
        subscriptions.on_subscribe_area("c1", INSIDE_BOUNDS)
        assert subscriptions.on_subscribe_global("c1") == GLOBAL_SUBSCRIPTION
        assert registry.get_subscription("c1") == GLOBAL_SUBSCRIPTION

    def test_global_for_departed_returns_none(self, subscriptions):
        assert subscriptions.on_subscribe_global("gone") is None


class TestUnsubscribeArea:
    """Test unsubscribe"""

    def test_unsubscribe_resets_to_none(self, registry, subscriptions):
        registry.register("c1")
        subscriptions.on_subscribe_area("c1", INSIDE_BOUNDS)
        subscriptions.on_unsubscribe_area("c1")
        assert registry.get_subscription("c1") == NO_SUBSCRIPTION

    def test_unsubscribe_without_subscription_is_noop(self, registry, subscriptions):
        registry.register("c1")
        subscriptions.on_unsubscribe_area("c1")
        subscriptions.on_unsubscribe_area("c1")
        assert registry.get_subscription("c1") == NO_SUBSCRIPTION

    def test_unsubscribe_departed_never_fails(self, subscriptions):
        subscriptions.on_unsubscribe_area("gone")
