"""
Buyers Router

Buyer list management, purchase preferences and ad-hoc buyer matching.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from src.wholesale_crm.api.cache import invalidate_cache
from src.wholesale_crm.api.dependencies import get_db, get_current_user_id, get_clock
from src.wholesale_crm.api.schemas import (
    BuyerCreate,
    BuyerMatch,
    BuyerOut,
    BuyerPreferenceIn,
    BuyerUpdate,
    PropertyCriteriaIn,
)
from src.wholesale_crm.db.models import Buyer
from src.wholesale_crm.db.repository import BuyerRepository
from src.wholesale_crm.matching import MatchResult, PropertyCriteria, score_buyers
from src.wholesale_crm.tasks.service import TaskService
from src.wholesale_crm.utils.time_utils import Clock

router = APIRouter(prefix="/api/v1/buyers", tags=["buyers"])

buyers_repo = BuyerRepository()


def to_buyer_out(buyer: Buyer, offer_count: int = 0) -> BuyerOut:
    out = BuyerOut.model_validate(buyer)
    out.offer_count = offer_count
    return out


def to_buyer_matches(results: List[MatchResult]) -> List[BuyerMatch]:
    return [
        BuyerMatch(
            buyer_id=r.buyer.id,
            name=r.buyer.name,
            email=r.buyer.email,
            phone=r.buyer.phone,
            company=r.buyer.company,
            cash_buyer=r.buyer.cash_buyer,
            proof_of_funds=r.buyer.proof_of_funds,
            match_score=r.match_score,
            match_label=r.label,
            match_reasons=r.match_reasons,
        )
        for r in results
    ]


@router.get("/", response_model=List[BuyerOut])
def list_buyers(db: Session = Depends(get_db)):
    """List all buyers with preferences and offer counts, newest first."""
    counts = buyers_repo.offer_counts(db)
    return [to_buyer_out(b, counts.get(b.id, 0)) for b in buyers_repo.find_with_preferences(db)]


@router.post("/matches", response_model=List[BuyerMatch])
def match_buyers(
    criteria: PropertyCriteriaIn,
    limit: Optional[int] = Query(None, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """
    Rank all buyers against an ad-hoc property description.
    """
    results = score_buyers(buyers_repo.find_with_preferences(db), PropertyCriteria(**criteria.model_dump()))
    return to_buyer_matches(results[:limit] if limit else results)


@router.post("/", response_model=BuyerOut, status_code=201)
def create_buyer(
    payload: BuyerCreate,
    db: Session = Depends(get_db),
    user_id: int = Depends(get_current_user_id),
    clock: Clock = Depends(get_clock),
):
    """
    Create a buyer, optionally with a preference record.

    With ``generate_task`` set, a proof-of-funds verification task is
    created for the acting user.
    """
    buyer = buyers_repo.create_with_preference(
        db,
        buyer_data=payload.model_dump(exclude={"preferences", "generate_task"}),
        preference_data=payload.preferences.model_dump() if payload.preferences else None,
    )
    if payload.generate_task:
        TaskService(db, clock).generate_for_buyer(buyer.id, user_id)

    db.commit()
    invalidate_cache("dashboard_stats")
    return to_buyer_out(buyer)


@router.get("/{buyer_id}", response_model=BuyerOut)
def get_buyer(buyer_id: int, db: Session = Depends(get_db)):
    buyer = buyers_repo.get_with_offers(db, buyer_id)
    if buyer is None:
        raise HTTPException(status_code=404, detail=f"Buyer {buyer_id} not found")
    return to_buyer_out(buyer, len(buyer.offers))


@router.patch("/{buyer_id}", response_model=BuyerOut)
def update_buyer(buyer_id: int, payload: BuyerUpdate, db: Session = Depends(get_db)):
    buyer = buyers_repo.update(db, buyer_id, **payload.model_dump(exclude_unset=True))
    if buyer is None:
        raise HTTPException(status_code=404, detail=f"Buyer {buyer_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return to_buyer_out(buyer, len(buyer.offers))


@router.put("/{buyer_id}/preferences", response_model=BuyerOut)
def save_buyer_preferences(buyer_id: int, payload: BuyerPreferenceIn, db: Session = Depends(get_db)):
    """Create or replace the preference record used for matching."""
    buyer = buyers_repo.replace_preference(db, buyer_id, payload.model_dump())
    if buyer is None:
        raise HTTPException(status_code=404, detail=f"Buyer {buyer_id} not found")
    db.commit()
    return to_buyer_out(buyer, len(buyer.offers))


@router.delete("/{buyer_id}")
def delete_buyer(buyer_id: int, db: Session = Depends(get_db)):
    """Delete a buyer after its offers and preferences."""
    if not buyers_repo.delete(db, buyer_id):
        raise HTTPException(status_code=404, detail=f"Buyer {buyer_id} not found")
    db.commit()
    invalidate_cache("dashboard_stats")
    return {"success": True}
