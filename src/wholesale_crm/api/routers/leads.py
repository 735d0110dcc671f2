"""
Leads Router

Lead intake, pipeline status changes and buyer matching for a lead.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from config.settings import settings
from src.wholesale_crm.api.cache import invalidate_cache
from src.wholesale_crm.api.dependencies import get_db, get_current_user_id, get_clock
from src.wholesale_crm.api.routers.buyers import to_buyer_matches
from src.wholesale_crm.api.schemas import (
    BuyerMatch,
    LeadCreate,
    LeadDetail,
    LeadOut,
    LeadPage,
    LeadStats,
    LeadStatusChange,
    LeadStatusChangeResult,
    LeadUpdate,
    Pagination,
    TaskOut,
)
from src.wholesale_crm.db.models import LeadStatus
from src.wholesale_crm.db.repository import LeadRepository, BuyerRepository
from src.wholesale_crm.matching import PropertyCriteria, score_buyers
from src.wholesale_crm.tasks.service import TaskService
from src.wholesale_crm.utils.logger import get_logger
from src.wholesale_crm.utils.time_utils import Clock

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/leads", tags=["leads"])

leads_repo = LeadRepository()
buyers_repo = BuyerRepository()


@router.get("/", response_model=LeadPage)
def list_leads(
    status: Optional[LeadStatus] = Query(None, description="Filter by pipeline status"),
    search: Optional[str] = Query(None, description="Name, email, phone or address"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    """
    List leads newest first with optional status filter and search.
    """
    leads, total = leads_repo.list(db, status=status, search=search, page=page, limit=limit)
    return LeadPage(leads=leads, pagination=Pagination.build(page, limit, total))


@router.get("/stats", response_model=LeadStats)
def get_lead_stats(db: Session = Depends(get_db)):
    return leads_repo.stats(db)


@router.post("/", response_model=LeadDetail, status_code=201)
def create_lead(
    payload: LeadCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
):
    """
    Create a lead with its property.

    When ``generate_task`` is set, the NEW-lead contact task is created
    for the assignee.
    """
    assignee_id = payload.assigned_to_id or user_id
    lead = leads_repo.create_with_property(
        db,
        lead_data=payload.model_dump(exclude={"property", "generate_task", "assigned_to_id"})
        | {"assigned_to_id": assignee_id, "status": LeadStatus.NEW},
        property_data=payload.property.model_dump(),
    )

    if payload.generate_task:
        TaskService(db, clock).generate_for_lead(lead.id, LeadStatus.NEW, assignee_id)

    db.commit()
    invalidate_cache("dashboard_stats")
    return leads_repo.get_with_property(db, lead.id)


@router.get("/{lead_id}", response_model=LeadDetail)
def get_lead(lead_id: int, db: Session = Depends(get_db)):
    lead = leads_repo.get_with_property(db, lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    return lead


@router.patch("/{lead_id}", response_model=LeadOut)
def update_lead(lead_id: int, payload: LeadUpdate, db: Session = Depends(get_db)):
    lead = leads_repo.update(db, lead_id, **payload.model_dump(exclude_unset=True))
    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    db.commit()
    return lead


@router.patch("/{lead_id}/status", response_model=LeadStatusChangeResult)
def change_lead_status(
    lead_id: int,
    payload: LeadStatusChange,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
):
    """
    Move a lead to a new pipeline status.

    Unless ``generate_task`` is false, the follow-up task for the new
    status is created (NEW, CONTACTED, QUALIFIED and UNDER_CONTRACT have
    one) and returned alongside the lead.
    """
    service = TaskService(db, clock)
    assignee_id = payload.assigned_to_id or user_id

    if payload.generate_task:
        lead, task = service.change_lead_status(lead_id, payload.status, assignee_id)
    else:
        lead, task = leads_repo.update_status(db, lead_id, payload.status), None

    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")

    db.commit()
    invalidate_cache("dashboard_stats")
    return LeadStatusChangeResult(
        lead=LeadOut.model_validate(lead),
        generated_task=TaskOut.model_validate(task) if task else None,
    )


@router.delete("/{lead_id}")
def delete_lead(lead_id: int, db: Session = Depends(get_db)):
    """Delete a lead together with its tasks, offers and property."""
    if not leads_repo.delete(db, lead_id):
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return {"success": True}


@router.get("/{lead_id}/buyer-matches", response_model=List[BuyerMatch])
def get_buyer_matches(
    lead_id: int,
    limit: int = Query(settings.buyer_match_default_limit, ge=1, le=500, description="Top N matches"),
    db: Session = Depends(get_db),
):
    """
    Rank all buyers against the lead's property, best match first.
    """
    lead = leads_repo.get_with_property(db, lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    if lead.property is None:
        raise HTTPException(status_code=409, detail=f"Lead {lead_id} has no property to match")

    results = score_buyers(buyers_repo.find_with_preferences(db), PropertyCriteria.from_property(lead.property))
    logger.info("lead_buyer_matches", lead_id=lead_id, matches=len(results))
    return to_buyer_matches(results[:limit])
