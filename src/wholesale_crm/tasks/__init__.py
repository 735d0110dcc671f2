"""
Tasks Module

Rule-derived follow-up tasks and overdue / due-today classification.
"""
from src.wholesale_crm.tasks.rules import (
    TaskBuckets,
    TaskDraft,
    classify_tasks_by_dueness,
    derive_task_for_lead_transition,
    derive_task_for_new_buyer,
)

__all__ = [
    "TaskBuckets",
    "TaskDraft",
    "classify_tasks_by_dueness",
    "derive_task_for_lead_transition",
    "derive_task_for_new_buyer",
]
