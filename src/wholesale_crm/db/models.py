"""
SQLAlchemy ORM Models

CRM entities: users, leads and their properties, buyers with their
purchase preferences, offers and follow-up tasks.
"""
import enum
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    String, Numeric, DateTime, Boolean, Text,
    ForeignKey, CheckConstraint, Index, Enum as SQLEnum
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.wholesale_crm.db.base import Base, IntegerPKMixin, TimestampMixin, JSONList


class LeadStatus(str, enum.Enum):
    """
    Canonical lead pipeline status.

    The list view of the legacy UI used a different set
    (PROPOSAL_SENT, NEGOTIATING, CLOSED_WON, CLOSED_LOST); those values are
    not stored and are rejected at the API boundary.
    """
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    QUALIFIED = "QUALIFIED"
    UNDER_CONTRACT = "UNDER_CONTRACT"
    CLOSED = "CLOSED"
    LOST = "LOST"


class TaskPriority(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class TaskStatus(str, enum.Enum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OfferStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


# Ordering used wherever tasks are sorted "by priority"
TASK_PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.MEDIUM: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class User(Base, IntegerPKMixin, TimestampMixin):
    """Team member that leads and tasks are assigned to."""
    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(50),
        default="ACQUISITIONS",
        nullable=False,
        comment="ADMIN, ACQUISITIONS or DISPOSITIONS"
    )

    assigned_leads: Mapped[list["Lead"]] = relationship("Lead", back_populates="assigned_to")
    assigned_tasks: Mapped[list["Task"]] = relationship("Task", back_populates="assignee")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username})>"


class Lead(Base, IntegerPKMixin, TimestampMixin):
    """
    Prospective seller moving through the acquisition pipeline.

    Each lead owns exactly one Property.
    """
    __tablename__ = "leads"

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    status: Mapped[LeadStatus] = mapped_column(
        SQLEnum(LeadStatus, name="lead_status"),
        default=LeadStatus.NEW,
        nullable=False
    )
    timeline: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    motivation: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    assigned_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    # Defined before the `property` relationship, which shadows the builtin
    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    assigned_to: Mapped[Optional["User"]] = relationship("User", back_populates="assigned_leads")
    property: Mapped[Optional["Property"]] = relationship(
        "Property",
        back_populates="lead",
        uselist=False,
        cascade="all, delete-orphan"
    )
    tasks: Mapped[list["Task"]] = relationship(
        "Task",
        back_populates="lead",
        order_by="Task.created_at.desc()"
    )
    offers: Mapped[list["Offer"]] = relationship("Offer", back_populates="lead")

    __table_args__ = (
        Index("idx_leads_status", "status"),
        Index("idx_leads_assigned_to", "assigned_to_id"),
    )

    def __repr__(self) -> str:
        return f"<Lead(id={self.id}, name={self.full_name}, status={self.status})>"


class Property(Base, IntegerPKMixin, TimestampMixin):
    """Subject property of a lead (1:1 with leads)."""
    __tablename__ = "properties"

    lead_id: Mapped[int] = mapped_column(
        ForeignKey("leads.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        comment="References leads table"
    )
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(50), nullable=False)
    zip_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    property_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 2),
        nullable=True,
        comment="Asking / contract price used for buyer matching"
    )
    estimated_value: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)

    lead: Mapped["Lead"] = relationship("Lead", back_populates="property")

    __table_args__ = (
        CheckConstraint("price IS NULL OR price >= 0", name="check_property_price_positive"),
        Index("idx_properties_city", "city"),
    )

    def __repr__(self) -> str:
        return f"<Property(lead_id={self.lead_id}, address={self.address})>"


class Buyer(Base, IntegerPKMixin, TimestampMixin):
    """Cash or financed investor on the dispositions list."""
    __tablename__ = "buyers"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    cash_buyer: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    proof_of_funds: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    preferences: Mapped[list["BuyerPreference"]] = relationship(
        "BuyerPreference",
        back_populates="buyer",
        order_by="BuyerPreference.id",
        cascade="all, delete-orphan"
    )
    offers: Mapped[list["Offer"]] = relationship("Offer", back_populates="buyer")

    @property
    def primary_preference(self) -> Optional["BuyerPreference"]:
        """The preference record used for matching (first one only)."""
        return self.preferences[0] if self.preferences else None

    def __repr__(self) -> str:
        return f"<Buyer(id={self.id}, name={self.name})>"


class BuyerPreference(Base, IntegerPKMixin, TimestampMixin):
    """Price range, target areas and property types a buyer is looking for."""
    __tablename__ = "buyer_preferences"

    buyer_id: Mapped[int] = mapped_column(
        ForeignKey("buyers.id", ondelete="CASCADE"),
        nullable=False
    )
    min_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    max_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    areas: Mapped[list] = mapped_column(
        JSONList,
        default=list,
        nullable=False,
        comment="Free-text city/region tokens"
    )
    property_types: Mapped[list] = mapped_column(JSONList, default=list, nullable=False)

    buyer: Mapped["Buyer"] = relationship("Buyer", back_populates="preferences")

    __table_args__ = (
        Index("idx_buyer_preferences_buyer_id", "buyer_id"),
    )

    def __repr__(self) -> str:
        return f"<BuyerPreference(buyer_id={self.buyer_id}, {self.min_price}-{self.max_price})>"


class Offer(Base, IntegerPKMixin, TimestampMixin):
    """Offer presented to a buyer for a lead's property."""
    __tablename__ = "offers"

    lead_id: Mapped[int] = mapped_column(ForeignKey("leads.id"), nullable=False)
    buyer_id: Mapped[int] = mapped_column(ForeignKey("buyers.id"), nullable=False)
    offer_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[OfferStatus] = mapped_column(
        SQLEnum(OfferStatus, name="offer_status"),
        default=OfferStatus.DRAFT,
        nullable=False
    )
    terms: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_by_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    lead: Mapped["Lead"] = relationship("Lead", back_populates="offers")
    buyer: Mapped["Buyer"] = relationship("Buyer", back_populates="offers")

    __table_args__ = (
        CheckConstraint("offer_amount >= 0", name="check_offer_amount_positive"),
        Index("idx_offers_lead_id", "lead_id"),
        Index("idx_offers_buyer_id", "buyer_id"),
    )

    def __repr__(self) -> str:
        return f"<Offer(id={self.id}, amount={self.offer_amount}, status={self.status})>"


class Task(Base, IntegerPKMixin, TimestampMixin):
    """
    Follow-up action item.

    Attached to a lead, or to a buyer for buyer-verification tasks.
    """
    __tablename__ = "tasks"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    lead_id: Mapped[Optional[int]] = mapped_column(ForeignKey("leads.id"), nullable=True)
    buyer_id: Mapped[Optional[int]] = mapped_column(ForeignKey("buyers.id"), nullable=True)
    assigned_to_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )
    priority: Mapped[TaskPriority] = mapped_column(
        SQLEnum(TaskPriority, name="task_priority"),
        default=TaskPriority.MEDIUM,
        nullable=False
    )
    status: Mapped[TaskStatus] = mapped_column(
        SQLEnum(TaskStatus, name="task_status"),
        default=TaskStatus.PENDING,
        nullable=False
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lead: Mapped[Optional["Lead"]] = relationship("Lead", back_populates="tasks")
    buyer: Mapped[Optional["Buyer"]] = relationship("Buyer")
    assignee: Mapped[Optional["User"]] = relationship("User", back_populates="assigned_tasks")

    __table_args__ = (
        CheckConstraint(
            "lead_id IS NOT NULL OR buyer_id IS NOT NULL",
            name="check_task_has_subject"
        ),
        Index("idx_tasks_status_due_date", "status", "due_date"),
        Index("idx_tasks_assigned_to", "assigned_to_id"),
        Index("idx_tasks_lead_id", "lead_id"),
    )

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, title={self.title}, status={self.status})>"
