import logging
from typing import Any, Callable, Mapping, Optional

from .feed import ChangeEvent, ChangeFeed, Channel, change_feed
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class Subscription:
    """Handle returned by ``ChangeFeedClient.subscribe``.

    Once ``close()`` returns no further events reach the callback.
    """

    def __init__(self, name: str, table: str, channel: Channel, filters: Optional[Mapping[str, Any]] = None):
        self.name = name
        self.table = table
        self.filters = dict(filters or {})
        self._channel = channel

    @property
    def active(self) -> bool:
        return self._channel.started and not self._channel.closed

    def close(self) -> None:
        self._channel.close()

    def __repr__(self):
        return f"<Subscription {self.name} table={self.table} active={self.active}>"


class ChangeFeedClient:
    def __init__(self, feed: Optional[ChangeFeed] = None, registry: Optional[SubscriptionRegistry] = None):
        self.feed = feed or change_feed
        self.registry = registry if registry is not None else SubscriptionRegistry()

    def subscribe(
        self,
        channel_name: str,
        table: str,
        on_event: Callable[[ChangeEvent], None],
        filters: Optional[Mapping[str, Any]] = None,
    ) -> Subscription:
        channel = self.feed.open_channel(channel_name).on(table, on_event, filters).start()
        subscription = Subscription(channel_name, table, channel, filters)
        self.registry.register(channel_name, subscription)
        logger.debug("Subscribed %s to %s filters=%s", channel_name, table, subscription.filters)
        return subscription

    def unsubscribe(self, channel_name: str) -> None:
        self.registry.release(channel_name)

    def close(self) -> None:
        self.registry.release_all()
