"""
Task lifecycle rules.

Derives follow-up tasks from lead status transitions and new buyers, and
buckets open tasks into overdue / due today against a reference time.
All functions here are pure; persistence lives in ``tasks.service``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from src.wholesale_crm.db.models import (
    LeadStatus,
    TaskPriority,
    TaskStatus,
    TASK_PRIORITY_RANK,
)
from src.wholesale_crm.utils.time_utils import ensure_aware, start_of_day, end_of_day

# Statuses that never show up as overdue or due today
CLOSED_TASK_STATUSES = (TaskStatus.COMPLETED, TaskStatus.CANCELLED)


@dataclass(frozen=True)
class TaskRule:
    title: str
    description: str
    priority: TaskPriority
    due_in: timedelta


@dataclass
class TaskDraft:
    """A task ready to be persisted."""
    title: str
    description: str
    priority: TaskPriority
    due_date: datetime
    assigned_to_id: Optional[int]
    lead_id: Optional[int] = None
    buyer_id: Optional[int] = None
    status: TaskStatus = TaskStatus.PENDING

    def as_model_kwargs(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "due_date": self.due_date,
            "assigned_to_id": self.assigned_to_id,
            "lead_id": self.lead_id,
            "buyer_id": self.buyer_id,
            "status": self.status,
        }


LEAD_STATUS_RULES: Dict[str, TaskRule] = {
    LeadStatus.NEW.value: TaskRule(
        title="Contact lead within 1 hour",
        description="Initial contact with new lead to qualify and gather information",
        priority=TaskPriority.HIGH,
        due_in=timedelta(hours=1),
    ),
    LeadStatus.CONTACTED.value: TaskRule(
        title="Follow up with lead in 3 days",
        description="Check in with lead and maintain engagement",
        priority=TaskPriority.LOW,
        due_in=timedelta(days=3),
    ),
    LeadStatus.QUALIFIED.value: TaskRule(
        title="Schedule property visit",
        description="Arrange property inspection and evaluation",
        priority=TaskPriority.MEDIUM,
        due_in=timedelta(hours=24),
    ),
    LeadStatus.UNDER_CONTRACT.value: TaskRule(
        title="Prepare closing documents",
        description="Gather and prepare all necessary closing documentation",
        priority=TaskPriority.HIGH,
        due_in=timedelta(days=3),
    ),
}

NEW_BUYER_RULE = TaskRule(
    title="Verify buyer proof of funds",
    description="Verify and validate buyer's financial capacity and proof of funds",
    priority=TaskPriority.HIGH,
    due_in=timedelta(hours=24),
)


def derive_task_for_lead_transition(
    lead_id: int,
    new_status: Union[LeadStatus, str],
    assignee_id: Optional[int],
    now: datetime,
) -> Optional[TaskDraft]:
    """
    Follow-up task for a lead entering ``new_status``, or None.

    Statuses without a rule (CLOSED, LOST and anything unrecognised,
    including the legacy list-view values) produce no task.
    """
    key = new_status.value if isinstance(new_status, LeadStatus) else str(new_status)
    rule = LEAD_STATUS_RULES.get(key)
    if rule is None:
        return None

    return TaskDraft(
        title=rule.title,
        description=rule.description,
        priority=rule.priority,
        due_date=now + rule.due_in,
        assigned_to_id=assignee_id,
        lead_id=lead_id,
    )


def derive_task_for_new_buyer(buyer_id: int, assignee_id: Optional[int], now: datetime) -> TaskDraft:
    return TaskDraft(
        title=NEW_BUYER_RULE.title,
        description=NEW_BUYER_RULE.description,
        priority=NEW_BUYER_RULE.priority,
        due_date=now + NEW_BUYER_RULE.due_in,
        assigned_to_id=assignee_id,
        buyer_id=buyer_id,
    )


@dataclass
class TaskBuckets:
    overdue: List[Any] = field(default_factory=list)
    due_today: List[Any] = field(default_factory=list)


def classify_tasks_by_dueness(tasks: Iterable[Any], now: datetime) -> TaskBuckets:
    """
    Split tasks into overdue and due-today buckets.

    - overdue: due before ``now``, most overdue first
    - due_today: due between ``now`` and the end of ``now``'s day,
      highest priority first, then soonest due

    A task due earlier today whose time has passed is overdue only. Tasks
    without a due date, and completed or cancelled tasks, are in neither.
    Naive datetimes are read as UTC.
    """
    now = ensure_aware(now)
    day_start = start_of_day(now)
    day_end = end_of_day(now)

    buckets = TaskBuckets()
    for task in tasks:
        if task.due_date is None or task.status in CLOSED_TASK_STATUSES:
            continue

        due = ensure_aware(task.due_date)
        if due < now:
            buckets.overdue.append(task)
        elif day_start <= due <= day_end:
            buckets.due_today.append(task)

    buckets.overdue.sort(key=lambda t: ensure_aware(t.due_date))
    buckets.due_today.sort(
        key=lambda t: (-TASK_PRIORITY_RANK.get(TaskPriority(t.priority), 0), ensure_aware(t.due_date))
    )
    return buckets
