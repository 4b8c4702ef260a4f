import random

from django.test import SimpleTestCase

from issues.realtime.feed import DELETE, INSERT, UPDATE, ChangeEvent
from issues.realtime.reducers import (
    PLACEHOLDER_AUTHOR,
    STATUS_BUCKETS,
    IssueThreadState,
    NotificationState,
    StatusCounts,
    reduce_issue_thread,
    reduce_notifications,
    reduce_status_counts,
)


def issue_event(event_type, issue_id, new_status=None, old_status=None):
    new = {"id": issue_id, "status": new_status} if new_status else None
    old = {"id": issue_id, "status": old_status} if old_status else None
    return ChangeEvent(event_type, "issues", new=new, old=old)


def notification(notification_id, read=False, user_id=1):
    return {"id": notification_id, "user_id": user_id, "title": f"N{notification_id}", "message": "", "read": read}


class StatusCountsReducerTests(SimpleTestCase):
    def setUp(self):
        self.snapshot = StatusCounts.from_snapshot(total=10, pending=4, in_progress=3, resolved=3)

    def assertBalanced(self, state):
        self.assertEqual(state.total, state.pending + state.in_progress + state.resolved + state.closed)
        for bucket in STATUS_BUCKETS:
            self.assertGreaterEqual(getattr(state, bucket), 0)

    def test_snapshot_derives_closed_bucket(self):
        state = StatusCounts.from_snapshot(total=12, pending=4, in_progress=3, resolved=3)
        self.assertEqual(state.closed, 2)
        self.assertBalanced(state)

    def test_pending_to_resolved_update_moves_one_issue(self):
        state = reduce_status_counts(self.snapshot, issue_event(UPDATE, 1, "resolved", "pending"))
        self.assertEqual(
            state.as_dict(),
            {"total": 10, "pending": 3, "in_progress": 3, "resolved": 4, "closed": 0},
        )

    def test_insert_increments_total_and_bucket(self):
        state = reduce_status_counts(self.snapshot, issue_event(INSERT, 11, "pending"))
        self.assertEqual(state.total, 11)
        self.assertEqual(state.pending, 5)

    def test_update_without_status_change_is_a_no_op(self):
        state = reduce_status_counts(self.snapshot, issue_event(UPDATE, 1, "pending", "pending"))
        self.assertIs(state, self.snapshot)

    def test_delete_decrements_total_and_bucket(self):
        state = reduce_status_counts(self.snapshot, issue_event(DELETE, 1, old_status="in_progress"))
        self.assertEqual(state.total, 9)
        self.assertEqual(state.in_progress, 2)

    def test_delete_from_empty_bucket_is_clamped(self):
        state = reduce_status_counts(self.snapshot, issue_event(DELETE, 1, old_status="closed"))
        self.assertEqual(state, self.snapshot)
        self.assertBalanced(state)

    def test_update_from_empty_bucket_is_clamped(self):
        state = reduce_status_counts(self.snapshot, issue_event(UPDATE, 1, "pending", "closed"))
        self.assertEqual(state, self.snapshot)

    def test_prior_state_is_not_mutated(self):
        reduce_status_counts(self.snapshot, issue_event(INSERT, 11, "resolved"))
        self.assertEqual(self.snapshot.resolved, 3)

    def test_random_event_sequences_keep_counts_balanced(self):
        rng = random.Random(20240601)
        state = self.snapshot
        for _ in range(500):
            event_type = rng.choice([INSERT, UPDATE, DELETE])
            new_status = rng.choice(STATUS_BUCKETS)
            old_status = rng.choice(STATUS_BUCKETS)
            state = reduce_status_counts(state, issue_event(event_type, 1, new_status, old_status))
            self.assertBalanced(state)


class NotificationReducerTests(SimpleTestCase):
    def setUp(self):
        self.state = NotificationState.from_rows([notification(2), notification(1, read=True)])

    def test_snapshot_counts_unread(self):
        self.assertEqual(self.state.unread_count, 1)

    def test_insert_prepends_and_increments_unread(self):
        state = reduce_notifications(self.state, ChangeEvent(INSERT, "notifications", new=notification(3)))
        self.assertEqual([row["id"] for row in state.notifications], [3, 2, 1])
        self.assertEqual(state.unread_count, 2)

    def test_replayed_insert_is_ignored(self):
        event = ChangeEvent(INSERT, "notifications", new=notification(3))
        state = reduce_notifications(reduce_notifications(self.state, event), event)
        self.assertEqual(len(state.notifications), 3)
        self.assertEqual(state.unread_count, 2)

    def test_list_is_capped(self):
        state = NotificationState()
        for notification_id in range(25):
            state = reduce_notifications(
                state,
                ChangeEvent(INSERT, "notifications", new=notification(notification_id)),
                limit=20,
            )
        self.assertEqual(len(state.notifications), 20)
        self.assertEqual(state.notifications[0]["id"], 24)

    def test_marking_read_twice_never_goes_below_zero(self):
        event = ChangeEvent(UPDATE, "notifications", new=notification(2, read=True), old=notification(2))
        state = reduce_notifications(self.state, event)
        self.assertEqual(state.unread_count, 0)
        state = reduce_notifications(state, event)
        self.assertEqual(state.unread_count, 0)
        self.assertTrue(state.notifications[0]["read"])

    def test_marking_unread_increments(self):
        event = ChangeEvent(UPDATE, "notifications", new=notification(1), old=notification(1, read=True))
        state = reduce_notifications(self.state, event)
        self.assertEqual(state.unread_count, 2)

    def test_deleting_unread_decrements_once(self):
        state = reduce_notifications(self.state, ChangeEvent(DELETE, "notifications", old=notification(2)))
        self.assertEqual(state.unread_count, 0)
        self.assertEqual([row["id"] for row in state.notifications], [1])

    def test_deleting_read_leaves_unread_count(self):
        state = reduce_notifications(
            self.state,
            ChangeEvent(DELETE, "notifications", old=notification(1, read=True)),
        )
        self.assertEqual(state.unread_count, 1)
        self.assertEqual([row["id"] for row in state.notifications], [2])


class IssueThreadReducerTests(SimpleTestCase):
    def setUp(self):
        self.state = IssueThreadState(updates=({"id": 1, "message": "First", "author": "Dana"},))

    def test_insert_prepends_with_placeholder_author(self):
        event = ChangeEvent(INSERT, "issue_updates", new={"id": 2, "issue_id": 5, "message": "Crew dispatched"})
        state = reduce_issue_thread(self.state, event)
        self.assertEqual([entry["id"] for entry in state.updates], [2, 1])
        self.assertEqual(state.updates[0]["author"], PLACEHOLDER_AUTHOR)
        self.assertEqual(state.updates[1]["author"], "Dana")

    def test_other_event_types_are_ignored(self):
        event = ChangeEvent(DELETE, "issue_updates", old={"id": 1})
        self.assertIs(reduce_issue_thread(self.state, event), self.state)

    def test_replayed_insert_is_ignored(self):
        event = ChangeEvent(INSERT, "issue_updates", new={"id": 1, "message": "First"})
        self.assertIs(reduce_issue_thread(self.state, event), self.state)


class ChangeEventTests(SimpleTestCase):
    def test_unknown_event_type_is_rejected(self):
        with self.assertRaises(ValueError):
            ChangeEvent("truncate", "issues")
