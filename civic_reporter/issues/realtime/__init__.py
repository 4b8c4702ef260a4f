from .client import ChangeFeedClient, Subscription
from .feed import DELETE, INSERT, UPDATE, ChangeEvent, ChangeFeed, change_feed
from .registry import SubscriptionRegistry

__all__ = [
    "ChangeEvent",
    "ChangeFeed",
    "ChangeFeedClient",
    "DELETE",
    "INSERT",
    "Subscription",
    "SubscriptionRegistry",
    "UPDATE",
    "change_feed",
]
