"""
Pydantic Schemas for API Request/Response Models

These schemas define the JSON structure for API endpoints.
"""
from typing import Any, ClassVar, Optional, List, Dict, Tuple
from datetime import date, datetime
from pydantic import BaseModel, Field, model_validator

from src.wholesale_crm.db.models import LeadStatus, TaskPriority, TaskStatus, OfferStatus


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=-(-total // limit))


class PartialUpdate(BaseModel):
    """
    PATCH body base.

    Fields named in ``not_null`` may be omitted but not sent as null,
    since the columns behind them are NOT NULL.
    """
    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_nulls(self):
        nulls = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if nulls:
            raise ValueError(f"{', '.join(nulls)} may not be null")
        return self


# Properties

class PropertyIn(BaseModel):
    """Subject property captured at lead intake."""
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: Optional[str] = None
    property_type: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    estimated_value: Optional[float] = Field(None, ge=0)


class PropertyOut(PropertyIn):
    id: int

    class Config:
        from_attributes = True


# Tasks

class TaskBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None


class TaskCreate(TaskBase):
    lead_id: Optional[int] = None
    buyer_id: Optional[int] = None
    assigned_to_id: Optional[int] = Field(None, description="Defaults to the acting user")

    @model_validator(mode="after")
    def check_subject(self):
        if self.lead_id is None and self.buyer_id is None:
            raise ValueError("lead_id or buyer_id is required")
        return self


class TaskUpdate(PartialUpdate):
    not_null: ClassVar[Tuple[str, ...]] = ("title", "status", "priority")

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    assigned_to_id: Optional[int] = None
    due_date: Optional[datetime] = None


class TaskOut(TaskBase):
    id: int
    status: TaskStatus
    lead_id: Optional[int] = None
    buyer_id: Optional[int] = None
    assigned_to_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TaskPage(BaseModel):
    tasks: List[TaskOut]
    pagination: Pagination


class TaskStats(BaseModel):
    total: int
    pending: int
    in_progress: int
    completed: int
    overdue: int
    due_today: int
    high_priority: int
    mine: int
    completion_rate: int = Field(..., ge=0, le=100)


class GenerateLeadTaskRequest(BaseModel):
    lead_id: int
    lead_status: LeadStatus
    assigned_to_id: Optional[int] = None


class GenerateBuyerTaskRequest(BaseModel):
    buyer_id: int
    assigned_to_id: Optional[int] = None


class GeneratedTask(BaseModel):
    count: int
    task: Optional[TaskOut] = None


# Leads

class LeadBase(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    email: Optional[str] = None
    timeline: Optional[str] = None
    motivation: Optional[str] = None
    notes: Optional[str] = None


class LeadCreate(LeadBase):
    property: PropertyIn
    assigned_to_id: Optional[int] = Field(None, description="Defaults to the acting user")
    generate_task: bool = Field(False, description="Create the NEW-lead contact task")


class LeadUpdate(PartialUpdate):
    """Field edits. Status changes go through the status endpoint."""
    not_null: ClassVar[Tuple[str, ...]] = ("first_name", "last_name", "phone")

    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    timeline: Optional[str] = None
    motivation: Optional[str] = None
    notes: Optional[str] = None
    assigned_to_id: Optional[int] = None


class LeadStatusChange(BaseModel):
    status: LeadStatus
    assigned_to_id: Optional[int] = Field(None, description="Assignee for the follow-up task")
    generate_task: bool = True


class LeadOut(LeadBase):
    id: int
    status: LeadStatus
    assigned_to_id: Optional[int] = None
    property: Optional[PropertyOut] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadDetail(LeadOut):
    tasks: List[TaskOut] = Field(default_factory=list)


class LeadStatusChangeResult(BaseModel):
    lead: LeadOut
    generated_task: Optional[TaskOut] = None


class LeadPage(BaseModel):
    leads: List[LeadOut]
    pagination: Pagination


class LeadStats(BaseModel):
    total: int
    new: int
    qualified: int
    closed: int


# Buyers

class BuyerPreferenceIn(BaseModel):
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    areas: List[str] = Field(default_factory=list)
    property_types: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_price_range(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price must not exceed max_price")
        return self


class BuyerPreferenceOut(BuyerPreferenceIn):
    id: int

    class Config:
        from_attributes = True


class BuyerBase(BaseModel):
    name: str = Field(..., min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    proof_of_funds: Optional[float] = Field(None, ge=0)
    cash_buyer: bool = False
    notes: Optional[str] = None


class BuyerCreate(BuyerBase):
    preferences: Optional[BuyerPreferenceIn] = None
    generate_task: bool = Field(False, description="Create the proof-of-funds verification task")


class BuyerUpdate(PartialUpdate):
    not_null: ClassVar[Tuple[str, ...]] = ("name", "cash_buyer")

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    proof_of_funds: Optional[float] = Field(None, ge=0)
    cash_buyer: Optional[bool] = None
    notes: Optional[str] = None


class BuyerOut(BuyerBase):
    id: int
    preferences: List[BuyerPreferenceOut] = Field(default_factory=list)
    offer_count: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PropertyCriteriaIn(BaseModel):
    """Ad-hoc property description for buyer matching."""
    price: Optional[float] = Field(None, ge=0)
    property_type: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


class BuyerMatch(BaseModel):
    buyer_id: int
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    cash_buyer: bool
    proof_of_funds: Optional[float] = None
    match_score: int = Field(..., ge=0, le=100)
    match_label: str
    match_reasons: List[str]


# Offers

class OfferCreate(BaseModel):
    lead_id: int
    buyer_id: int
    offer_amount: float = Field(..., ge=0)
    terms: Optional[str] = None
    notes: Optional[str] = None


class OfferUpdate(PartialUpdate):
    not_null: ClassVar[Tuple[str, ...]] = ("offer_amount", "status")

    offer_amount: Optional[float] = Field(None, ge=0)
    status: Optional[OfferStatus] = None
    terms: Optional[str] = None
    notes: Optional[str] = None


class OfferOut(BaseModel):
    id: int
    lead_id: int
    buyer_id: int
    offer_amount: float
    status: OfferStatus
    terms: Optional[str] = None
    notes: Optional[str] = None
    created_by_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OfferPage(BaseModel):
    offers: List[OfferOut]
    pagination: Pagination


class OfferStats(BaseModel):
    total: int
    pending: int
    accepted: int
    rejected: int
    expired: int
    acceptance_rate: float


# Dashboard / analytics

class DashboardStats(BaseModel):
    """Dashboard statistics."""
    total_leads: int
    leads_by_status: Dict[str, int]
    total_buyers: int
    cash_buyers: int
    total_tasks: int
    tasks_by_status: Dict[str, int]
    task_completion_rate: float
    overdue_tasks: int
    tasks_due_today: int
    total_offers: int
    offer_acceptance_rate: float


class LeadKPIs(BaseModel):
    total: int
    active: int
    active_rate: float


class BuyerKPIs(BaseModel):
    total: int
    cash: int
    cash_rate: float


class TaskKPIs(BaseModel):
    total: int
    completed: int
    overdue: int
    completion_rate: float


class OfferKPIs(BaseModel):
    total: int
    accepted: int
    acceptance_rate: float


class KPIs(BaseModel):
    """Headline numbers. Rates are percentages rounded to two places."""
    leads: LeadKPIs
    buyers: BuyerKPIs
    tasks: TaskKPIs
    offers: OfferKPIs


class LeadChartPoint(BaseModel):
    """Leads created on one day, by current status."""
    day: date
    new: int = 0
    contacted: int = 0
    qualified: int = 0
    under_contract: int = 0
    closed: int = 0
    lost: int = 0


class TaskChartPoint(BaseModel):
    """Tasks created on one day, by current status and by priority."""
    day: date
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    low: int = 0
    medium: int = 0
    high: int = 0
    urgent: int = 0


class BuyerChartPoint(BaseModel):
    """Buyers created on one day."""
    day: date
    new: int = 0
    cash: int = 0
    with_tasks: int = 0


class ActivityItem(BaseModel):
    id: str
    type: str = Field(..., pattern="^(lead|buyer|task|offer)$")
    title: str
    description: str
    timestamp: datetime


class RevenuePipeline(BaseModel):
    """Offer value by outcome. Pending means SENT."""
    total_offers: int
    total_value: float
    average_offer: float
    pending: float
    accepted: float
    rejected: float
    pending_count: int
    accepted_count: int
    rejected_count: int


# Health

class HealthCheck(BaseModel):
    """Health check response."""
    status: str = Field("healthy", pattern="^(healthy|warning|critical)$")
    version: str
    database: str = "connected"
    database_response_ms: Optional[float] = None
    cache: str = "unavailable"
    timestamp: datetime


class ServiceHealth(BaseModel):
    status: str = Field(..., pattern="^(healthy|warning|critical)$")
    message: str
    response_ms: Optional[float] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    last_checked: datetime


class SystemHealth(BaseModel):
    """Per-service health rolled up into one status."""
    overall: str = Field(..., pattern="^(healthy|warning|critical)$")
    services: Dict[str, ServiceHealth]
    uptime_seconds: float
    peak_memory_mb: float
    version: str
    environment: str
    timestamp: datetime
