import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from ..models import Notification
from .feed import INSERT
from .reducers import NotificationState, reduce_notifications
from .rows import row_image, table_name
from .screens import ScreenController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Alert:
    title: str
    message: str
    issue_id: Optional[int] = None


class NotificationConsumer(ScreenController):
    """Per-user notification feed: badge count plus a transient alert per new row."""

    table = table_name(Notification)

    def __init__(self, user_id, client=None, on_alert=None, limit=None):
        super().__init__(client=client)
        self.user_id = user_id
        self.on_alert = on_alert
        self.limit = limit or settings.NOTIFICATION_LIST_LIMIT
        self.last_alert = None

    @property
    def channel_name(self):
        return f"notifications-{self.user_id}"

    @property
    def unread_count(self) -> int:
        return self.state.unread_count if self.state is not None else 0

    def get_filters(self):
        return {"user_id": self.user_id}

    def load_snapshot(self):
        rows = [row_image(n) for n in Notification.objects.filter(user_id=self.user_id)[: self.limit]]
        return NotificationState.from_rows(rows, limit=self.limit)

    def reduce(self, state, event):
        return reduce_notifications(state, event, limit=self.limit)

    def after_reduce(self, previous, event):
        # Set before listeners run so each one sees the alert of its own event.
        self.last_alert = None
        if event.event_type == INSERT and self.state is not previous:
            row = event.new or {}
            self.last_alert = Alert(row.get("title", ""), row.get("message", ""), row.get("issue_id"))
            logger.info("New notification for user %s: %s", self.user_id, self.last_alert.title)
            if self.on_alert is not None:
                self.on_alert(self.last_alert)
