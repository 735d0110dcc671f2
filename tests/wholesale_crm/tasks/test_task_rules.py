"""
Tests for task lifecycle rules: generation from lead/buyer events and
overdue / due-today bucketing.
"""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from zoneinfo import ZoneInfo

import pytest

from src.wholesale_crm.db.models import LeadStatus, TaskPriority, TaskStatus
from src.wholesale_crm.tasks import (
    classify_tasks_by_dueness,
    derive_task_for_lead_transition,
    derive_task_for_new_buyer,
)


def make_task(task_id, due_date, status=TaskStatus.PENDING, priority=TaskPriority.MEDIUM):
    return SimpleNamespace(id=task_id, due_date=due_date, status=status, priority=priority)


class TestDeriveTaskForLeadTransition:
    """Tests for lead status -> follow-up task rules."""

    def test_new_lead_gets_contact_task_within_an_hour(self, fixed_now):
        draft = derive_task_for_lead_transition(7, LeadStatus.NEW, 3, fixed_now)

        assert draft.title == "Contact lead within 1 hour"
        assert draft.priority == TaskPriority.HIGH
        assert draft.due_date == fixed_now + timedelta(hours=1)
        assert draft.lead_id == 7
        assert draft.buyer_id is None
        assert draft.assigned_to_id == 3
        assert draft.status == TaskStatus.PENDING

    @pytest.mark.parametrize(
        "status,title,priority,due_in",
        [
            (LeadStatus.CONTACTED, "Follow up with lead in 3 days", TaskPriority.LOW, timedelta(days=3)),
            (LeadStatus.QUALIFIED, "Schedule property visit", TaskPriority.MEDIUM, timedelta(hours=24)),
            (LeadStatus.UNDER_CONTRACT, "Prepare closing documents", TaskPriority.HIGH, timedelta(days=3)),
        ],
    )
    def test_pipeline_rules(self, fixed_now, status, title, priority, due_in):
        draft = derive_task_for_lead_transition(1, status, None, fixed_now)

        assert draft.title == title
        assert draft.priority == priority
        assert draft.due_date == fixed_now + due_in
        assert draft.assigned_to_id is None

    @pytest.mark.parametrize("status", [LeadStatus.CLOSED, LeadStatus.LOST, "CLOSED_WON", "NEGOTIATING", ""])
    def test_statuses_without_rule_produce_nothing(self, fixed_now, status):
        assert derive_task_for_lead_transition(1, status, 1, fixed_now) is None

    def test_plain_string_status_is_accepted(self, fixed_now):
        draft = derive_task_for_lead_transition(1, "NEW", 1, fixed_now)

        assert draft is not None
        assert draft.priority == TaskPriority.HIGH


def test_new_buyer_gets_proof_of_funds_task(fixed_now):
    draft = derive_task_for_new_buyer(4, 2, fixed_now)

    assert draft.title == "Verify buyer proof of funds"
    assert draft.priority == TaskPriority.HIGH
    assert draft.due_date == fixed_now + timedelta(hours=24)
    assert draft.buyer_id == 4
    assert draft.lead_id is None
    assert draft.as_model_kwargs()["buyer_id"] == 4


class TestClassifyTasksByDueness:
    """Tests for overdue / due-today bucketing."""

    def test_overdue_most_overdue_first(self, fixed_now):
        tasks = [
            make_task(1, fixed_now - timedelta(hours=1)),
            make_task(2, fixed_now - timedelta(days=3)),
            make_task(3, fixed_now - timedelta(days=1)),
        ]

        buckets = classify_tasks_by_dueness(tasks, fixed_now)

        assert [t.id for t in buckets.overdue] == [2, 3, 1]
        assert buckets.due_today == []

    def test_due_today_highest_priority_first(self, fixed_now):
        tasks = [
            make_task(1, fixed_now + timedelta(hours=1), priority=TaskPriority.LOW),
            make_task(2, fixed_now + timedelta(hours=3), priority=TaskPriority.URGENT),
            make_task(3, fixed_now + timedelta(hours=2), priority=TaskPriority.HIGH),
            make_task(4, fixed_now + timedelta(hours=1), priority=TaskPriority.HIGH),
        ]

        buckets = classify_tasks_by_dueness(tasks, fixed_now)

        assert [t.id for t in buckets.due_today] == [2, 4, 3, 1]

    def test_earlier_today_is_overdue_only(self, fixed_now):
        task = make_task(1, fixed_now - timedelta(hours=2))

        buckets = classify_tasks_by_dueness([task], fixed_now)

        assert buckets.overdue == [task]
        assert buckets.due_today == []

    def test_tomorrow_is_in_neither_bucket(self, fixed_now):
        buckets = classify_tasks_by_dueness([make_task(1, fixed_now + timedelta(days=1))], fixed_now)

        assert buckets.overdue == []
        assert buckets.due_today == []

    @pytest.mark.parametrize("status", [TaskStatus.COMPLETED, TaskStatus.CANCELLED])
    @pytest.mark.parametrize("offset", [timedelta(days=-5), timedelta(hours=-1), timedelta(hours=1)])
    def test_closed_tasks_never_bucketed(self, fixed_now, status, offset):
        buckets = classify_tasks_by_dueness([make_task(1, fixed_now + offset, status=status)], fixed_now)

        assert buckets.overdue == []
        assert buckets.due_today == []

    def test_in_progress_tasks_are_bucketed(self, fixed_now):
        task = make_task(1, fixed_now - timedelta(minutes=5), status=TaskStatus.IN_PROGRESS)

        assert classify_tasks_by_dueness([task], fixed_now).overdue == [task]

    def test_tasks_without_due_date_ignored(self, fixed_now):
        buckets = classify_tasks_by_dueness([make_task(1, None)], fixed_now)

        assert buckets.overdue == []
        assert buckets.due_today == []

    def test_naive_due_dates_read_as_utc(self, fixed_now):
        naive_past = (fixed_now - timedelta(hours=1)).replace(tzinfo=None)
        naive_later = (fixed_now + timedelta(hours=1)).replace(tzinfo=None)

        buckets = classify_tasks_by_dueness(
            [make_task(1, naive_past), make_task(2, naive_later)], fixed_now
        )

        assert [t.id for t in buckets.overdue] == [1]
        assert [t.id for t in buckets.due_today] == [2]

    def test_day_boundary_follows_reference_timezone(self):
        # 20:00 in Chicago is already the next day in UTC
        now = datetime(2025, 3, 12, 20, 0, tzinfo=ZoneInfo("America/Chicago"))
        due = datetime(2025, 3, 13, 4, 30, tzinfo=timezone.utc)  # 23:30 Chicago

        buckets = classify_tasks_by_dueness([make_task(1, due)], now)

        assert [t.id for t in buckets.due_today] == [1]

    def test_buckets_are_disjoint(self, fixed_now):
        tasks = [make_task(i, fixed_now + timedelta(hours=h)) for i, h in enumerate(range(-30, 30, 3))]

        buckets = classify_tasks_by_dueness(tasks, fixed_now)

        overdue_ids = {t.id for t in buckets.overdue}
        today_ids = {t.id for t in buckets.due_today}
        assert not overdue_ids & today_ids
