"""
Service layer for task generation and due-date queries.
"""
from __future__ import annotations

from typing import Dict, Optional, Tuple

from sqlalchemy.orm import Session

from src.wholesale_crm.db.models import Lead, LeadStatus, Task
from src.wholesale_crm.db.repository import LeadRepository, TaskRepository
from src.wholesale_crm.db.session import with_retry
from src.wholesale_crm.tasks.rules import (
    TaskBuckets,
    TaskDraft,
    classify_tasks_by_dueness,
    derive_task_for_lead_transition,
    derive_task_for_new_buyer,
)
from src.wholesale_crm.utils.logger import get_logger
from src.wholesale_crm.utils.time_utils import Clock, business_now

logger = get_logger(__name__)


class TaskService:
    """
    Persists rule-derived tasks and answers the dueness queries.

    A generated lead task is skipped when the lead already has an open
    (pending or in progress) task with the same title.
    """

    def __init__(self, session: Session, clock: Clock = business_now):
        self.session = session
        self.clock = clock
        self.tasks = TaskRepository()
        self.leads = LeadRepository()

    def _persist(self, draft: TaskDraft) -> Task:
        task = self.tasks.create(self.session, **draft.as_model_kwargs())
        logger.info(
            "task_generated",
            task_id=task.id,
            title=task.title,
            lead_id=task.lead_id,
            buyer_id=task.buyer_id,
            due_date=task.due_date.isoformat() if task.due_date else None,
        )
        return task

    def generate_for_lead(
        self,
        lead_id: int,
        status: LeadStatus | str,
        assignee_id: Optional[int],
    ) -> Optional[Task]:
        """
        Create the follow-up task for a lead status, if the status has one.

        Returns:
            The new task, or None when no rule applies or an open duplicate exists
        """
        draft = derive_task_for_lead_transition(lead_id, status, assignee_id, self.clock())
        if draft is None:
            logger.debug("task_generation_no_rule", lead_id=lead_id, status=str(status))
            return None

        existing = self.tasks.find_open_duplicate(self.session, lead_id, draft.title)
        if existing is not None:
            logger.info(
                "task_generation_skipped_duplicate",
                lead_id=lead_id,
                existing_task_id=existing.id,
                title=draft.title,
            )
            return None

        return self._persist(draft)

    def generate_for_buyer(self, buyer_id: int, assignee_id: Optional[int]) -> Task:
        return self._persist(derive_task_for_new_buyer(buyer_id, assignee_id, self.clock()))

    @with_retry()
    def change_lead_status(
        self,
        lead_id: int,
        status: LeadStatus,
        assignee_id: Optional[int],
    ) -> Tuple[Optional[Lead], Optional[Task]]:
        """
        Update a lead's status and generate its follow-up task.

        Returns:
            (updated lead or None if missing, generated task or None)
        """
        lead = self.leads.update_status(self.session, lead_id, status)
        if lead is None:
            return None, None
        return lead, self.generate_for_lead(lead_id, status, assignee_id)

    def buckets(self) -> TaskBuckets:
        open_tasks = self.tasks.find_open_with_due_date(self.session)
        return classify_tasks_by_dueness(open_tasks, self.clock())

    def stats(self, assigned_to_id: Optional[int] = None) -> Dict[str, int]:
        counts = self.tasks.counts(self.session, assigned_to_id=assigned_to_id)
        buckets = self.buckets()
        total = counts["total"]
        counts.update(
            overdue=len(buckets.overdue),
            due_today=len(buckets.due_today),
            completion_rate=round(counts["completed"] / total * 100) if total else 0,
        )
        return counts
