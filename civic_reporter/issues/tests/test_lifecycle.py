from datetime import timedelta
from unittest import mock

from django.core import mail
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from issues.exceptions import IssueUpdateFailed
from issues.lifecycle import apply_staff_update, plan_transition
from issues.models import Issue, IssueUpdate, Notification, Profile

from .helpers import create_issue, create_user


class PlanTransitionTests(SimpleTestCase):
    def setUp(self):
        self.now = timezone.now()

    def test_entering_resolved_stamps_resolved_at(self):
        issue = Issue(status=Issue.Status.IN_PROGRESS)
        patch = plan_transition(issue, Issue.Status.RESOLVED, now=self.now)
        self.assertEqual(patch.resolved_at, self.now)
        self.assertEqual(patch.fields()["resolved_at"], self.now)

    def test_staying_resolved_leaves_stamp_alone(self):
        issue = Issue(status=Issue.Status.RESOLVED)
        patch = plan_transition(issue, Issue.Status.RESOLVED, now=self.now)
        self.assertIsNone(patch.resolved_at)
        self.assertNotIn("resolved_at", patch.fields())

    def test_leaving_resolved_does_not_clear_stamp(self):
        issue = Issue(status=Issue.Status.RESOLVED)
        patch = plan_transition(issue, Issue.Status.PENDING, now=self.now)
        self.assertNotIn("resolved_at", patch.fields())

    def test_any_status_may_follow_any_other(self):
        issue = Issue(status=Issue.Status.CLOSED)
        patch = plan_transition(issue, Issue.Status.PENDING, now=self.now)
        self.assertEqual(patch.status, Issue.Status.PENDING)
        self.assertEqual(patch.updated_at, self.now)
        self.assertIsNone(patch.assigned_to_id)

    def test_unknown_status_is_rejected(self):
        with self.assertRaises(ValueError):
            plan_transition(Issue(status=Issue.Status.PENDING), "archived")


@override_settings(EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend")
class ApplyStaffUpdateTests(TestCase):
    def setUp(self):
        self.citizen = create_user("citizen", full_name="Casey Citizen")
        self.staff = create_user("staffer", role=Profile.Role.STAFF, full_name="Dana Staff")
        self.issue = create_issue(self.citizen)

    def test_status_and_assignee_are_written_together(self):
        result = apply_staff_update(
            self.issue,
            author=self.staff,
            status=Issue.Status.IN_PROGRESS,
            assigned_to=self.staff,
            message="Crew has been dispatched.",
        )
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, Issue.Status.IN_PROGRESS)
        self.assertEqual(self.issue.assigned_to, self.staff)
        self.assertIsNone(self.issue.resolved_at)
        self.assertTrue(result.status_changed)
        self.assertEqual(result.previous_status, Issue.Status.PENDING)
        self.assertEqual(result.update.status, Issue.Status.IN_PROGRESS)
        self.assertEqual(result.update.user, self.staff)

    def test_status_change_notifies_reporter(self):
        apply_staff_update(self.issue, author=self.staff, status=Issue.Status.RESOLVED)
        notification = Notification.objects.get(user=self.citizen)
        self.assertEqual(notification.issue, self.issue)
        self.assertEqual(notification.title, "Issue status updated")
        self.assertIn("Resolved", notification.message)
        self.assertFalse(notification.read)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("Pending to Resolved", mail.outbox[0].body)

    def test_reassignment_only_sends_nothing(self):
        result = apply_staff_update(
            self.issue,
            author=self.staff,
            status=Issue.Status.PENDING,
            assigned_to=self.staff,
            message="Taking this one.",
        )
        self.assertFalse(result.status_changed)
        self.assertEqual(result.update.status, "")
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(len(mail.outbox), 0)

    def test_blank_message_adds_no_thread_entry(self):
        result = apply_staff_update(self.issue, author=self.staff, status=Issue.Status.IN_PROGRESS, message="   ")
        self.assertIsNone(result.update)
        self.assertFalse(IssueUpdate.objects.exists())

    def test_unassigning_clears_assignee(self):
        self.issue.assigned_to = self.staff
        self.issue.save()
        apply_staff_update(self.issue, author=self.staff, status=Issue.Status.PENDING, assigned_to=None)
        self.assertIsNone(self.issue.assigned_to_id)

    def test_reentering_resolved_restamps_resolved_at(self):
        apply_staff_update(self.issue, author=self.staff, status=Issue.Status.RESOLVED)
        first_stamp = self.issue.resolved_at
        self.assertIsNotNone(first_stamp)

        Issue.objects.filter(pk=self.issue.pk).update(resolved_at=first_stamp - timedelta(days=2))
        apply_staff_update(self.issue, author=self.staff, status=Issue.Status.IN_PROGRESS)
        self.assertIsNotNone(self.issue.resolved_at)

        apply_staff_update(self.issue, author=self.staff, status=Issue.Status.RESOLVED)
        self.assertGreaterEqual(self.issue.resolved_at, first_stamp)

    def test_database_failure_leaves_issue_unchanged(self):
        with mock.patch("issues.models.IssueUpdate.objects.create", side_effect=DatabaseError("disk full")):
            with self.assertRaises(IssueUpdateFailed) as raised:
                apply_staff_update(
                    self.issue,
                    author=self.staff,
                    status=Issue.Status.RESOLVED,
                    assigned_to=self.staff,
                    message="Fixed the light.",
                )
        self.assertEqual(raised.exception.issue_id, self.issue.pk)
        self.assertIn("disk full", raised.exception.reason)
        self.issue.refresh_from_db()
        self.assertEqual(self.issue.status, Issue.Status.PENDING)
        self.assertIsNone(self.issue.assigned_to_id)
        self.assertIsNone(self.issue.resolved_at)
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(len(mail.outbox), 0)

    def test_deleted_issue_raises_update_failed(self):
        stale = Issue.objects.get(pk=self.issue.pk)
        self.issue.delete()
        with self.assertRaises(IssueUpdateFailed):
            apply_staff_update(stale, author=self.staff, status=Issue.Status.CLOSED)
