"""Issue lifecycle: pending -> in_progress -> resolved -> closed.

Staff may move an issue from any status to any other status. Entering
``resolved`` from a different status stamps ``resolved_at``; leaving it
never clears the stamp. Status and assignee are written in one update.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from django.db import DatabaseError, transaction
from django.utils import timezone

from .emails import send_status_change_email, status_label
from .exceptions import IssueUpdateFailed
from .models import Issue, IssueUpdate, Notification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuePatch:
    status: str
    assigned_to_id: Optional[int]
    updated_at: datetime
    resolved_at: Optional[datetime] = None

    def fields(self) -> dict:
        values = {
            "status": self.status,
            "assigned_to_id": self.assigned_to_id,
            "updated_at": self.updated_at,
        }
        if self.resolved_at is not None:
            values["resolved_at"] = self.resolved_at
        return values


@dataclass
class StaffUpdateResult:
    issue: Issue
    previous_status: str
    update: Optional[IssueUpdate] = None

    @property
    def status_changed(self) -> bool:
        return self.issue.status != self.previous_status


def plan_transition(issue, status, assigned_to=None, now=None) -> IssuePatch:
    if status not in Issue.Status.values:
        raise ValueError(f"Unknown issue status: {status!r}")
    now = now or timezone.now()
    entering_resolved = status == Issue.Status.RESOLVED and issue.status != Issue.Status.RESOLVED
    return IssuePatch(
        status=status,
        assigned_to_id=assigned_to.pk if assigned_to is not None else None,
        updated_at=now,
        resolved_at=now if entering_resolved else None,
    )


def status_change_notification(issue, new_status) -> Notification:
    return Notification(
        user_id=issue.reporter_id,
        issue=issue,
        title="Issue status updated",
        message=f'Your issue "{issue.title}" is now {status_label(new_status)}.',
    )


def apply_staff_update(issue, author, status, assigned_to=None, message="") -> StaffUpdateResult:
    """Write a status/assignee change plus its thread entry in one transaction.

    Raises ``IssueUpdateFailed`` when the database rejects the write; ``issue``
    is then left exactly as it was.
    """
    message = (message or "").strip()
    try:
        with transaction.atomic():
            current = Issue.objects.select_for_update().get(pk=issue.pk)
            previous_status = current.status
            patch = plan_transition(current, status, assigned_to)
            for name, value in patch.fields().items():
                setattr(current, name, value)
            current.save(update_fields=list(patch.fields()))

            update = None
            if message:
                update = IssueUpdate.objects.create(
                    issue=current,
                    user=author,
                    message=message,
                    status=status if status != previous_status else "",
                )
            if status != previous_status:
                status_change_notification(current, status).save()
    except (DatabaseError, Issue.DoesNotExist) as error:
        logger.warning("Staff update of issue %s failed: %s", issue.pk, error)
        raise IssueUpdateFailed(issue.pk, str(error)) from error

    issue.refresh_from_db()
    logger.info(
        "Issue %s updated by user %s: %s -> %s, assigned to %s",
        issue.pk,
        author.pk,
        previous_status,
        issue.status,
        issue.assigned_to_id,
    )
    if status != previous_status:
        send_status_change_email(issue, previous_status, status)
    return StaffUpdateResult(issue=issue, previous_status=previous_status, update=update)
