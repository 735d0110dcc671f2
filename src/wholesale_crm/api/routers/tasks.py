"""
Tasks Router

Task CRUD, the personal work queue, overdue / due-today views and
rule-based task generation.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from config.settings import settings
from src.wholesale_crm.api.cache import invalidate_cache
from src.wholesale_crm.api.dependencies import get_db, get_current_user_id, get_clock
from src.wholesale_crm.api.schemas import (
    GenerateBuyerTaskRequest,
    GenerateLeadTaskRequest,
    GeneratedTask,
    Pagination,
    TaskCreate,
    TaskOut,
    TaskPage,
    TaskStats,
    TaskUpdate,
)
from src.wholesale_crm.db.models import TaskPriority, TaskStatus
from src.wholesale_crm.db.repository import BuyerRepository, LeadRepository, TaskRepository
from src.wholesale_crm.tasks.service import TaskService
from src.wholesale_crm.utils.time_utils import Clock

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])

tasks_repo = TaskRepository()
leads_repo = LeadRepository()
buyers_repo = BuyerRepository()


@router.get("/", response_model=TaskPage)
def list_tasks(
    lead_id: Optional[int] = Query(None),
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    assigned_to: Optional[int] = Query(None, description="Assignee user id"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """
    List tasks ordered by priority (highest first), due date, then newest.
    """
    tasks, total = tasks_repo.list(
        db,
        lead_id=lead_id,
        status=status,
        priority=priority,
        assigned_to_id=assigned_to,
        page=page,
        limit=limit,
    )
    return TaskPage(tasks=tasks, pagination=Pagination.build(page, limit, total))


@router.get("/mine", response_model=List[TaskOut])
def list_my_tasks(
    status: Optional[TaskStatus] = Query(None),
    priority: Optional[TaskPriority] = Query(None),
    limit: int = Query(10, ge=1, le=50),
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    tasks, _ = tasks_repo.list(db, status=status, priority=priority, assigned_to_id=user_id, limit=limit)
    return tasks


@router.get("/stats", response_model=TaskStats)
def get_task_stats(
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
):
    return TaskService(db, clock).stats(assigned_to_id=user_id)


@router.get("/overdue", response_model=List[TaskOut])
def list_overdue_tasks(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Open tasks past their due date, most overdue first."""
    return TaskService(db, clock).buckets().overdue


@router.get("/due-today", response_model=List[TaskOut])
def list_tasks_due_today(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Open tasks due later today, highest priority first."""
    return TaskService(db, clock).buckets().due_today


@router.post("/generate/lead", response_model=GeneratedTask)
def generate_lead_task(
    payload: GenerateLeadTaskRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
):
    """
    Create the follow-up task for a lead status without changing the lead.
    """
    if leads_repo.get_by_id(db, payload.lead_id) is None:
        raise HTTPException(status_code=404, detail=f"Lead {payload.lead_id} not found")

    task = TaskService(db, clock).generate_for_lead(
        payload.lead_id, payload.lead_status, payload.assigned_to_id or user_id
    )
    db.commit()
    if task is None:
        return GeneratedTask(count=0)
    invalidate_cache("dashboard_stats")
    return GeneratedTask(count=1, task=TaskOut.model_validate(task))


@router.post("/generate/buyer", response_model=GeneratedTask)
def generate_buyer_task(
    payload: GenerateBuyerTaskRequest,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
):
    """Create the proof-of-funds verification task for a buyer."""
    if buyers_repo.get_by_id(db, payload.buyer_id) is None:
        raise HTTPException(status_code=404, detail=f"Buyer {payload.buyer_id} not found")

    task = TaskService(db, clock).generate_for_buyer(payload.buyer_id, payload.assigned_to_id or user_id)
    db.commit()
    invalidate_cache("dashboard_stats")
    return GeneratedTask(count=1, task=TaskOut.model_validate(task))


@router.post("/", response_model=TaskOut, status_code=201)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Create a PENDING task for a lead, a buyer or both."""
    if payload.lead_id is not None and leads_repo.get_by_id(db, payload.lead_id) is None:
        raise HTTPException(status_code=404, detail=f"Lead {payload.lead_id} not found")
    if payload.buyer_id is not None and buyers_repo.get_by_id(db, payload.buyer_id) is None:
        raise HTTPException(status_code=404, detail=f"Buyer {payload.buyer_id} not found")

    data = payload.model_dump()
    data["assigned_to_id"] = payload.assigned_to_id or user_id
    data["status"] = TaskStatus.PENDING
    task = tasks_repo.create(db, **data)
    db.commit()
    invalidate_cache("dashboard_stats")
    return task


@router.get("/{task_id}", response_model=TaskOut)
def get_task(task_id: int, db: Session = Depends(get_db)):
    task = tasks_repo.get_by_id(db, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task


@router.patch("/{task_id}", response_model=TaskOut)
def update_task(task_id: int, payload: TaskUpdate, db: Session = Depends(get_db)):
    task = tasks_repo.update(db, task_id, **payload.model_dump(exclude_unset=True))
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return task


@router.delete("/{task_id}")
def delete_task(task_id: int, db: Session = Depends(get_db)):
    if not tasks_repo.delete(db, task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return {"success": True}
