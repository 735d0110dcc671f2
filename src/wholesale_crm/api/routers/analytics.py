"""
Analytics Router

KPIs, daily charts, the activity feed and the revenue pipeline for the
analytics dashboard.
"""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.wholesale_crm.analytics.service import AnalyticsService
from src.wholesale_crm.api.dependencies import get_db, get_clock
from src.wholesale_crm.api.schemas import (
    ActivityItem,
    BuyerChartPoint,
    KPIs,
    LeadChartPoint,
    RevenuePipeline,
    TaskChartPoint,
)
from src.wholesale_crm.utils.time_utils import Clock

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])

DEFAULT_CHART_DAYS = 30


@router.get("/kpis", response_model=KPIs)
def get_kpis(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)):
    """Lead, buyer, task and offer totals with their headline rates."""
    return AnalyticsService(db, clock).kpis()


@router.get("/leads-chart", response_model=List[LeadChartPoint])
def get_leads_chart(
    days: int = Query(DEFAULT_CHART_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Leads created per day over the last ``days`` days, by status."""
    return AnalyticsService(db, clock).leads_chart(days)


@router.get("/tasks-chart", response_model=List[TaskChartPoint])
def get_tasks_chart(
    days: int = Query(DEFAULT_CHART_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Tasks created per day, by status and by priority."""
    return AnalyticsService(db, clock).tasks_chart(days)


@router.get("/buyers-chart", response_model=List[BuyerChartPoint])
def get_buyers_chart(
    days: int = Query(DEFAULT_CHART_DAYS, ge=1, le=365),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return AnalyticsService(db, clock).buyers_chart(days)


@router.get("/activity", response_model=List[ActivityItem])
def get_activity_feed(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Recently created records of every kind, newest first."""
    return AnalyticsService(db, clock).activity_feed(limit)


@router.get("/revenue-pipeline", response_model=RevenuePipeline)
def get_revenue_pipeline(db: Session = Depends(get_db)):
    """Offer value split by outcome."""
    return AnalyticsService(db).revenue_pipeline()
