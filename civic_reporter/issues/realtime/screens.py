"""Screen controllers: snapshot, subscribe, fold, release."""

import logging

from django.db.models import Count

from ..models import Issue, IssueUpdate
from .client import ChangeFeedClient
from .reducers import IssueThreadState, StatusCounts, reduce_issue_thread, reduce_status_counts
from .rows import row_image, table_name

logger = logging.getLogger(__name__)


class ScreenController:
    """Owns one change feed client for the lifetime of a mounted screen.

    Subclasses provide the channel name, the table, an optional equality
    filter, the snapshot query and the reducer.
    """

    table = None

    def __init__(self, client=None):
        self.client = client or ChangeFeedClient()
        self.state = None
        self.mounted = False
        self._listeners = []

    @property
    def channel_name(self):
        raise NotImplementedError

    def get_filters(self):
        return None

    def load_snapshot(self):
        raise NotImplementedError

    def reduce(self, state, event):
        raise NotImplementedError

    def add_listener(self, listener):
        """Call ``listener(state, event)`` after every folded event."""
        self._listeners.append(listener)

    def mount(self):
        self.state = self.load_snapshot()
        self.mounted = True
        self.client.subscribe(self.channel_name, self.table, self.handle_event, self.get_filters())
        logger.debug("Mounted %s", self.channel_name)
        return self.state

    def after_reduce(self, previous, event):
        """Hook run after each fold and before listeners are called."""

    def handle_event(self, event):
        if not self.mounted:
            return
        previous = self.state
        self.state = self.reduce(self.state, event)
        self.after_reduce(previous, event)
        for listener in list(self._listeners):
            listener(self.state, event)

    def unmount(self):
        self.mounted = False
        self.client.close()
        logger.debug("Unmounted %s", self.channel_name)

    def __enter__(self):
        self.mount()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.unmount()


def count_statuses(queryset) -> StatusCounts:
    buckets = dict(queryset.order_by().values_list("status").annotate(count=Count("id")))
    return StatusCounts.from_snapshot(
        total=sum(buckets.values()),
        pending=buckets.get(Issue.Status.PENDING, 0),
        in_progress=buckets.get(Issue.Status.IN_PROGRESS, 0),
        resolved=buckets.get(Issue.Status.RESOLVED, 0),
        closed=buckets.get(Issue.Status.CLOSED, 0),
    )


class StatusCountsScreen(ScreenController):
    """Live issue counts by status, optionally limited to one reporter."""

    table = table_name(Issue)

    def __init__(self, reporter_id=None, client=None):
        super().__init__(client=client)
        self.reporter_id = reporter_id

    @property
    def channel_name(self):
        if self.reporter_id is None:
            return "issues-changes"
        return f"issues-changes-{self.reporter_id}"

    def get_filters(self):
        if self.reporter_id is None:
            return None
        return {"reporter_id": self.reporter_id}

    def load_snapshot(self):
        queryset = Issue.objects.all()
        if self.reporter_id is not None:
            queryset = queryset.filter(reporter_id=self.reporter_id)
        return count_statuses(queryset)

    def reduce(self, state, event):
        return reduce_status_counts(state, event)


def thread_entry(update) -> dict:
    entry = row_image(update)
    profile = getattr(update.user, "profile", None)
    entry["author"] = profile.display_name if profile else update.user.get_username()
    return entry


class IssueThreadScreen(ScreenController):
    table = table_name(IssueUpdate)

    def __init__(self, issue_id, client=None):
        super().__init__(client=client)
        self.issue_id = issue_id

    @property
    def channel_name(self):
        return f"issue-updates-{self.issue_id}"

    def get_filters(self):
        return {"issue_id": self.issue_id}

    def load_snapshot(self):
        updates = IssueUpdate.objects.filter(issue_id=self.issue_id).select_related("user__profile")
        return IssueThreadState(updates=tuple(thread_entry(update) for update in updates))

    def reduce(self, state, event):
        return reduce_issue_thread(state, event)
