"""Pure folds of change events into per-screen view state.

Every reducer takes the prior state and one ``ChangeEvent`` and returns the
next state; the prior state is never mutated. Events for other event types
leave the state as it was.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Optional

from .feed import DELETE, INSERT, UPDATE, ChangeEvent

logger = logging.getLogger(__name__)

STATUS_BUCKETS = ("pending", "in_progress", "resolved", "closed")
NOTIFICATION_LIMIT = 20
PLACEHOLDER_AUTHOR = "System"


@dataclass(frozen=True)
class StatusCounts:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0

    @classmethod
    def from_snapshot(cls, total, pending=0, in_progress=0, resolved=0, closed=None):
        """Build counts from a snapshot, deriving ``closed`` when it is not given."""
        if closed is None:
            closed = max(0, total - pending - in_progress - resolved)
        return cls(
            total=pending + in_progress + resolved + closed,
            pending=pending,
            in_progress=in_progress,
            resolved=resolved,
            closed=closed,
        )

    @property
    def resolution_rate(self) -> int:
        if not self.total:
            return 0
        return round(self.resolved / self.total * 100)

    def as_dict(self) -> dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "in_progress": self.in_progress,
            "resolved": self.resolved,
            "closed": self.closed,
        }


def _status_of(row: Optional[dict]) -> Optional[str]:
    status = (row or {}).get("status")
    return status if status in STATUS_BUCKETS else None


def reduce_status_counts(state: StatusCounts, event: ChangeEvent) -> StatusCounts:
    if event.event_type == INSERT:
        status = _status_of(event.new)
        if status is None:
            return state
        return replace(state, total=state.total + 1, **{status: getattr(state, status) + 1})

    if event.event_type == UPDATE:
        old_status = _status_of(event.old)
        new_status = _status_of(event.new)
        if old_status is None or new_status is None or old_status == new_status:
            return state
        if getattr(state, old_status) == 0:
            logger.debug("Dropping %s -> %s transition, %s bucket is empty", old_status, new_status, old_status)
            return state
        return replace(
            state,
            **{
                old_status: getattr(state, old_status) - 1,
                new_status: getattr(state, new_status) + 1,
            },
        )

    if event.event_type == DELETE:
        status = _status_of(event.old)
        if status is None:
            return state
        if getattr(state, status) == 0:
            logger.debug("Dropping delete, %s bucket is empty", status)
            return state
        return replace(state, total=state.total - 1, **{status: getattr(state, status) - 1})

    return state


@dataclass(frozen=True)
class NotificationState:
    notifications: tuple = field(default_factory=tuple)
    unread_count: int = 0

    @classmethod
    def from_rows(cls, rows, limit=NOTIFICATION_LIMIT):
        rows = tuple(rows)[:limit]
        return cls(notifications=rows, unread_count=sum(1 for row in rows if not row.get("read")))

    def ids(self) -> set:
        return {row.get("id") for row in self.notifications}


def reduce_notifications(
    state: NotificationState,
    event: ChangeEvent,
    limit: int = NOTIFICATION_LIMIT,
) -> NotificationState:
    if event.event_type == INSERT:
        row = event.new or {}
        if row.get("id") in state.ids():
            return state
        unread = state.unread_count if row.get("read") else state.unread_count + 1
        return NotificationState(
            notifications=((row,) + state.notifications)[:limit],
            unread_count=unread,
        )

    if event.event_type == UPDATE:
        row = event.new or {}
        old = event.old or {}
        notifications = tuple(row if entry.get("id") == row.get("id") else entry for entry in state.notifications)
        unread = state.unread_count
        if row.get("read") and not old.get("read"):
            unread = max(0, unread - 1)
        elif old.get("read") and not row.get("read"):
            unread += 1
        return NotificationState(notifications=notifications, unread_count=unread)

    if event.event_type == DELETE:
        old = event.old or {}
        notifications = tuple(entry for entry in state.notifications if entry.get("id") != old.get("id"))
        unread = state.unread_count
        if not old.get("read"):
            unread = max(0, unread - 1)
        return NotificationState(notifications=notifications, unread_count=unread)

    return state


@dataclass(frozen=True)
class IssueThreadState:
    # Newest first. Each entry is an update row plus an ``author`` label.
    updates: tuple = field(default_factory=tuple)

    def ids(self) -> set:
        return {entry.get("id") for entry in self.updates}


def reduce_issue_thread(state: IssueThreadState, event: ChangeEvent) -> IssueThreadState:
    if event.event_type != INSERT:
        return state
    row = event.new or {}
    if row.get("id") in state.ids():
        return state
    # Feed rows carry no joined profile; the real author shows after a reload.
    entry: dict[str, Any] = dict(row, author=PLACEHOLDER_AUTHOR)
    return IssueThreadState(updates=(entry,) + state.updates)
