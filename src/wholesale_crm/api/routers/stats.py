"""
Statistics Router

Endpoints for dashboard statistics and aggregations.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.wholesale_crm.api.cache import cache_result
from src.wholesale_crm.api.dependencies import get_db, get_clock
from src.wholesale_crm.api.schemas import DashboardStats
from src.wholesale_crm.db.repository import (
    BuyerRepository,
    LeadRepository,
    OfferRepository,
    TaskRepository,
)
from src.wholesale_crm.tasks.rules import classify_tasks_by_dueness
from src.wholesale_crm.utils.time_utils import Clock

router = APIRouter(prefix="/api/v1/stats", tags=["statistics"])


@cache_result("dashboard_stats")
def compute_dashboard_stats(db: Session, clock: Clock) -> DashboardStats:
    """
    Aggregate pipeline, buyer, task and offer counts.

    Args:
        db: Database session
        clock: Reference time source for overdue / due-today counts

    Returns:
        Dashboard statistics
    """
    tasks_repo = TaskRepository()

    leads_by_status = LeadRepository().count_by_status(db)
    tasks_by_status = tasks_repo.count_by_status(db)
    total_tasks = sum(tasks_by_status.values())
    completed = tasks_by_status.get("COMPLETED", 0)

    buckets = classify_tasks_by_dueness(tasks_repo.find_open_with_due_date(db), clock())

    buyers_repo = BuyerRepository()
    offer_stats = OfferRepository().stats(db)

    return DashboardStats(
        total_leads=sum(leads_by_status.values()),
        leads_by_status=leads_by_status,
        total_buyers=buyers_repo.count(db),
        cash_buyers=buyers_repo.count_cash(db),
        total_tasks=total_tasks,
        tasks_by_status=tasks_by_status,
        task_completion_rate=round(completed / total_tasks * 100, 2) if total_tasks else 0.0,
        overdue_tasks=len(buckets.overdue),
        tasks_due_today=len(buckets.due_today),
        total_offers=OfferRepository().count(db),
        offer_acceptance_rate=offer_stats["acceptance_rate"],
    )


@router.get("/dashboard", response_model=DashboardStats)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """
    Get dashboard statistics. Cached in Redis when available.
    """
    return compute_dashboard_stats(db, clock)
