"""In-process change feed.

Django signal receivers publish row-level events here once the writing
transaction has committed. Consumers open named channels, attach
``(table, filter)`` handlers and receive ``ChangeEvent`` objects through
plain callbacks. There is no replay, retry or reconnection: a channel only
sees events published while it is started.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"
EVENT_TYPES = (INSERT, UPDATE, DELETE)

Row = dict[str, Any]


@dataclass(frozen=True)
class ChangeEvent:
    event_type: str
    table: str
    new: Optional[Row] = None
    old: Optional[Row] = None

    def __post_init__(self):
        if self.event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown change event type: {self.event_type!r}")

    @property
    def row(self) -> Row:
        """Row image the event is about: the new image, or the old one for deletes."""
        if self.event_type == DELETE:
            return self.old or {}
        return self.new or {}


def matches_filter(row: Mapping[str, Any], filters: Optional[Mapping[str, Any]]) -> bool:
    if not filters:
        return True
    for column, expected in filters.items():
        if column not in row or str(row[column]) != str(expected):
            return False
    return True


@dataclass
class _Binding:
    table: str
    callback: Callable[[ChangeEvent], None]
    filters: Optional[Mapping[str, Any]] = None


@dataclass(eq=False)
class Channel:
    """A named group of table bindings opened on a ``ChangeFeed``."""

    name: str
    feed: "ChangeFeed"
    bindings: list[_Binding] = field(default_factory=list)
    started: bool = False
    closed: bool = False
    _delivery_lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    def on(self, table: str, callback: Callable[[ChangeEvent], None], filters=None) -> "Channel":
        if self.started:
            raise RuntimeError(f"Channel {self.name!r} is already started")
        self.bindings.append(_Binding(table=table, callback=callback, filters=dict(filters or {})))
        return self

    def start(self) -> "Channel":
        if self.closed:
            raise RuntimeError(f"Channel {self.name!r} is closed")
        if not self.started:
            self.started = True
            self.feed._attach(self)
        return self

    def close(self) -> None:
        # Taking the delivery lock waits out a callback already in flight, so
        # nothing is delivered once close() has returned.
        with self._delivery_lock:
            if self.closed:
                return
            self.closed = True
        self.feed._detach(self)

    def deliver(self, event: ChangeEvent) -> None:
        with self._delivery_lock:
            if self.closed:
                return
            for binding in self.bindings:
                if self.closed:
                    return
                if binding.table != event.table:
                    continue
                if not matches_filter(event.row, binding.filters):
                    continue
                binding.callback(event)


class ChangeFeed:
    def __init__(self):
        self._lock = threading.Lock()
        self._channels: list[Channel] = []

    def open_channel(self, name: str) -> Channel:
        return Channel(name=name, feed=self)

    def publish(self, event: ChangeEvent) -> None:
        with self._lock:
            channels = list(self._channels)
        logger.debug("Publishing %s on %s to %d channel(s)", event.event_type, event.table, len(channels))
        for channel in channels:
            try:
                channel.deliver(event)
            except Exception:
                # A failing consumer does not stop delivery to the others.
                logger.exception("Change feed callback failed on channel %s", channel.name)

    def channel_names(self) -> list[str]:
        with self._lock:
            return [channel.name for channel in self._channels]

    def _attach(self, channel: Channel) -> None:
        with self._lock:
            self._channels.append(channel)

    def _detach(self, channel: Channel) -> None:
        with self._lock:
            if channel in self._channels:
                self._channels.remove(channel)


change_feed = ChangeFeed()
