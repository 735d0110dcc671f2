"""
Offers Router

Offers presented to buyers for a lead's property.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from config.settings import settings
from src.wholesale_crm.api.cache import invalidate_cache
from src.wholesale_crm.api.dependencies import get_db, get_current_user_id
from src.wholesale_crm.api.schemas import (
    OfferCreate,
    OfferOut,
    OfferPage,
    OfferStats,
    OfferUpdate,
    Pagination,
)
from src.wholesale_crm.db.models import OfferStatus
from src.wholesale_crm.db.repository import BuyerRepository, LeadRepository, OfferRepository

router = APIRouter(prefix="/api/v1/offers", tags=["offers"])

offers_repo = OfferRepository()
leads_repo = LeadRepository()
buyers_repo = BuyerRepository()


@router.get("/", response_model=OfferPage)
def list_offers(
    lead_id: Optional[int] = Query(None),
    buyer_id: Optional[int] = Query(None),
    status: Optional[OfferStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    offers, total = offers_repo.list(
        db, lead_id=lead_id, buyer_id=buyer_id, status=status, page=page, limit=limit
    )
    return OfferPage(offers=offers, pagination=Pagination.build(page, limit, total))


@router.get("/stats", response_model=OfferStats)
def get_offer_stats(db: Session = Depends(get_db)):
    return offers_repo.stats(db)


@router.post("/", response_model=OfferOut, status_code=201)
def create_offer(
    payload: OfferCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
):
    """Create a DRAFT offer for a lead/buyer pair."""
    if leads_repo.get_by_id(db, payload.lead_id) is None:
        raise HTTPException(status_code=404, detail=f"Lead {payload.lead_id} not found")
    if buyers_repo.get_by_id(db, payload.buyer_id) is None:
        raise HTTPException(status_code=404, detail=f"Buyer {payload.buyer_id} not found")

    offer = offers_repo.create(db, **payload.model_dump(), created_by_id=user_id, status=OfferStatus.DRAFT)
    db.commit()
    invalidate_cache("dashboard_stats")
    return offer


@router.get("/{offer_id}", response_model=OfferOut)
def get_offer(offer_id: int, db: Session = Depends(get_db)):
    offer = offers_repo.get_by_id(db, offer_id)
    if offer is None:
        raise HTTPException(status_code=404, detail=f"Offer {offer_id} not found")
    return offer


@router.patch("/{offer_id}", response_model=OfferOut)
def update_offer(offer_id: int, payload: OfferUpdate, db: Session = Depends(get_db)):
    offer = offers_repo.update(db, offer_id, **payload.model_dump(exclude_unset=True))
    if offer is None:
        raise HTTPException(status_code=404, detail=f"Offer {offer_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return offer


@router.delete("/{offer_id}")
def delete_offer(offer_id: int, db: Session = Depends(get_db)):
    if not offers_repo.delete(db, offer_id):
        raise HTTPException(status_code=404, detail=f"Offer {offer_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return {"success": True}
