"""
Repository Pattern for Data Access

Provides CRUD operations and domain-specific queries for all models.
"""
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Set, Tuple, Type, TypeVar

from sqlalchemy import select, func, or_, case, desc, asc
from sqlalchemy.orm import Session, selectinload

from src.wholesale_crm.db.models import (
    User,
    Lead,
    Property,
    Buyer,
    BuyerPreference,
    Offer,
    Task,
    LeadStatus,
    TaskStatus,
    TaskPriority,
    OfferStatus,
    TASK_PRIORITY_RANK,
)
from src.wholesale_crm.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

OPEN_TASK_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

# Enum columns are stored by name, so rank them explicitly for ORDER BY
_priority_order = case(
    dict(TASK_PRIORITY_RANK),
    value=Task.priority,
)


class BaseRepository:
    """
    Base repository with common CRUD operations.

    Generic repository that can be extended for specific models.
    """

    def __init__(self, model: Type[T]):
        self.model = model

    def get_by_id(self, session: Session, id_value: Any) -> Optional[T]:
        """
        Get single record by primary key.

        Args:
            session: Database session
            id_value: Primary key value

        Returns:
            Model instance or None
        """
        result = session.get(self.model, id_value)
        logger.debug(
            "repository_get_by_id",
            model=self.model.__name__,
            id=id_value,
            found=result is not None
        )
        return result

    def create(self, session: Session, **kwargs) -> T:
        """
        Create new record.

        Args:
            session: Database session
            **kwargs: Model field values

        Returns:
            Created model instance
        """
        instance = self.model(**kwargs)
        session.add(instance)
        session.flush()
        logger.info("repository_created", model=self.model.__name__, id=instance.id)
        return instance

    def update(self, session: Session, id_value: Any, **kwargs) -> Optional[T]:
        """
        Update existing record.

        Args:
            session: Database session
            id_value: Primary key value
            **kwargs: Fields to update

        Returns:
            Updated model instance or None
        """
        instance = self.get_by_id(session, id_value)
        if not instance:
            logger.warning("repository_update_not_found", model=self.model.__name__, id=id_value)
            return None

        for key, value in kwargs.items():
            setattr(instance, key, value)

        session.flush()
        logger.info("repository_updated", model=self.model.__name__, id=id_value, fields=sorted(kwargs))
        return instance

    def delete(self, session: Session, id_value: Any) -> bool:
        """
        Delete record (hard delete).

        Returns:
            True if deleted, False if not found
        """
        instance = self.get_by_id(session, id_value)
        if not instance:
            logger.warning("repository_delete_not_found", model=self.model.__name__, id=id_value)
            return False

        session.delete(instance)
        session.flush()
        logger.info("repository_deleted", model=self.model.__name__, id=id_value)
        return True

    def count(self, session: Session) -> int:
        return session.scalar(select(func.count()).select_from(self.model)) or 0

    def count_by_status(self, session: Session) -> Dict[str, int]:
        """Row counts grouped by the model's ``status`` column."""
        rows = session.execute(
            select(self.model.status, func.count()).group_by(self.model.status)
        ).all()
        return {status.value: count for status, count in rows}

    def created_between(self, session: Session, start: datetime, end: datetime, *options) -> List[T]:
        """
        Rows created inside [start, end], oldest first.

        Bounds are compared in UTC; SQLite stores naive UTC timestamps.
        """
        query = (
            select(self.model)
            .where(self.model.created_at >= start.astimezone(timezone.utc))
            .where(self.model.created_at <= end.astimezone(timezone.utc))
            .order_by(asc(self.model.created_at), asc(self.model.id))
        )
        if options:
            query = query.options(*options)
        return list(session.execute(query).scalars().all())

    def recent(self, session: Session, limit: int, *options) -> List[T]:
        """Newest rows first."""
        query = select(self.model).order_by(desc(self.model.created_at), desc(self.model.id)).limit(limit)
        if options:
            query = query.options(*options)
        return list(session.execute(query).scalars().all())

    @staticmethod
    def _paginate(query, page: int, limit: int):
        return query.offset((page - 1) * limit).limit(limit)


class UserRepository(BaseRepository):
    """Repository for User model."""

    def __init__(self):
        super().__init__(User)

    def get_by_username(self, session: Session, username: str) -> Optional[User]:
        return session.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()


class LeadRepository(BaseRepository):
    """Repository for Lead model with its owned Property."""

    def __init__(self):
        super().__init__(Lead)

    def get_with_property(self, session: Session, lead_id: int) -> Optional[Lead]:
        """Lead with property, tasks and assignee eagerly loaded."""
        query = (
            select(Lead)
            .where(Lead.id == lead_id)
            .options(
                selectinload(Lead.property),
                selectinload(Lead.tasks),
                selectinload(Lead.assigned_to),
            )
        )
        return session.execute(query).scalar_one_or_none()

    def list(
        self,
        session: Session,
        status: Optional[LeadStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Lead], int]:
        """
        List leads newest first with optional status filter and free-text search.

        Search matches first/last name, email and property address
        (case-insensitive) or phone (substring).

        Returns:
            Tuple of (leads on the requested page, total matching rows)
        """
        query = select(Lead).outerjoin(Lead.property)

        if status:
            query = query.where(Lead.status == status)

        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(
                    Lead.first_name.ilike(pattern),
                    Lead.last_name.ilike(pattern),
                    Lead.email.ilike(pattern),
                    Lead.phone.contains(search),
                    Property.address.ilike(pattern),
                )
            )

        total = session.scalar(select(func.count()).select_from(query.subquery())) or 0

        query = query.options(selectinload(Lead.property)).order_by(desc(Lead.created_at), desc(Lead.id))
        leads = session.execute(self._paginate(query, page, limit)).scalars().all()

        logger.debug("lead_list_query", status=status, search=search, page=page, total=total)
        return list(leads), total

    def create_with_property(
        self,
        session: Session,
        lead_data: Dict[str, Any],
        property_data: Dict[str, Any],
    ) -> Lead:
        """Create a lead and its property in one flush."""
        lead = Lead(**lead_data)
        lead.property = Property(**property_data)
        session.add(lead)
        session.flush()
        logger.info("lead_created", lead_id=lead.id, city=lead.property.city)
        return lead

    def update_status(self, session: Session, lead_id: int, status: LeadStatus) -> Optional[Lead]:
        """
        Set a lead's status.

        Returns:
            Updated lead or None if not found
        """
        lead = self.get_by_id(session, lead_id)
        if lead is None:
            logger.warning("lead_status_update_not_found", lead_id=lead_id)
            return None

        previous = lead.status
        lead.status = status
        session.flush()
        logger.info(
            "lead_status_changed",
            lead_id=lead_id,
            previous_status=previous.value if previous else None,
            new_status=status.value,
        )
        return lead

    def delete(self, session: Session, id_value: Any) -> bool:
        """
        Delete a lead after its tasks and offers.

        The property goes with the lead through the relationship cascade.
        """
        lead = self.get_by_id(session, id_value)
        if lead is None:
            logger.warning("repository_delete_not_found", model="Lead", id=id_value)
            return False

        for task in list(lead.tasks):
            session.delete(task)
        for offer in list(lead.offers):
            session.delete(offer)
        session.delete(lead)
        session.flush()
        logger.info("lead_deleted", lead_id=id_value)
        return True

    def stats(self, session: Session) -> Dict[str, int]:
        by_status = self.count_by_status(session)
        return {
            "total": sum(by_status.values()),
            "new": by_status.get(LeadStatus.NEW.value, 0),
            "qualified": by_status.get(LeadStatus.QUALIFIED.value, 0),
            "closed": by_status.get(LeadStatus.CLOSED.value, 0),
        }


class BuyerRepository(BaseRepository):
    """Repository for Buyer model and its preferences."""

    def __init__(self):
        super().__init__(Buyer)

    def count_cash(self, session: Session) -> int:
        return session.scalar(
            select(func.count()).select_from(Buyer).where(Buyer.cash_buyer.is_(True))
        ) or 0

    def find_with_preferences(self, session: Session) -> List[Buyer]:
        """All buyers, newest first, with preferences eagerly loaded."""
        query = (
            select(Buyer)
            .options(selectinload(Buyer.preferences))
            .order_by(desc(Buyer.created_at), desc(Buyer.id))
        )
        buyers = session.execute(query).scalars().all()
        logger.debug("buyers_loaded_with_preferences", count=len(buyers))
        return list(buyers)

    def get_with_offers(self, session: Session, buyer_id: int) -> Optional[Buyer]:
        query = (
            select(Buyer)
            .where(Buyer.id == buyer_id)
            .options(selectinload(Buyer.preferences), selectinload(Buyer.offers))
        )
        return session.execute(query).scalar_one_or_none()

    def offer_counts(self, session: Session) -> Dict[int, int]:
        """Number of offers per buyer id."""
        rows = session.execute(
            select(Offer.buyer_id, func.count()).group_by(Offer.buyer_id)
        ).all()
        return dict(rows)

    def create_with_preference(
        self,
        session: Session,
        buyer_data: Dict[str, Any],
        preference_data: Optional[Dict[str, Any]] = None,
    ) -> Buyer:
        buyer = Buyer(**buyer_data)
        if preference_data is not None:
            buyer.preferences.append(BuyerPreference(**preference_data))
        session.add(buyer)
        session.flush()
        logger.info("buyer_created", buyer_id=buyer.id, has_preference=preference_data is not None)
        return buyer

    def replace_preference(
        self,
        session: Session,
        buyer_id: int,
        preference_data: Dict[str, Any],
    ) -> Optional[Buyer]:
        """
        Replace the buyer's matching preference.

        Updates the first preference record in place, or creates one.
        """
        buyer = self.get_by_id(session, buyer_id)
        if buyer is None:
            logger.warning("buyer_preference_update_not_found", buyer_id=buyer_id)
            return None

        preference = buyer.primary_preference
        if preference is None:
            buyer.preferences.append(BuyerPreference(**preference_data))
        else:
            for key, value in preference_data.items():
                setattr(preference, key, value)

        session.flush()
        logger.info("buyer_preference_saved", buyer_id=buyer_id)
        return buyer

    def delete(self, session: Session, id_value: Any) -> bool:
        """Delete a buyer after its offers, preferences and buyer tasks."""
        buyer = self.get_by_id(session, id_value)
        if buyer is None:
            logger.warning("repository_delete_not_found", model="Buyer", id=id_value)
            return False

        for offer in list(buyer.offers):
            session.delete(offer)
        for preference in list(buyer.preferences):
            session.delete(preference)
        for task in session.execute(select(Task).where(Task.buyer_id == id_value)).scalars():
            session.delete(task)
        session.delete(buyer)
        session.flush()
        logger.info("buyer_deleted", buyer_id=id_value)
        return True


class TaskRepository(BaseRepository):
    """Repository for Task model with work-queue queries."""

    def __init__(self):
        super().__init__(Task)

    @staticmethod
    def _work_queue_order(query):
        # Highest priority first, then soonest due, then newest
        return query.order_by(
            desc(_priority_order),
            asc(Task.due_date).nulls_last(),
            desc(Task.created_at),
            desc(Task.id),
        )

    def list(
        self,
        session: Session,
        lead_id: Optional[int] = None,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        assigned_to_id: Optional[int] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Task], int]:
        query = select(Task)
        if lead_id is not None:
            query = query.where(Task.lead_id == lead_id)
        if status:
            query = query.where(Task.status == status)
        if priority:
            query = query.where(Task.priority == priority)
        if assigned_to_id is not None:
            query = query.where(Task.assigned_to_id == assigned_to_id)

        total = session.scalar(select(func.count()).select_from(query.subquery())) or 0
        query = self._work_queue_order(query)
        tasks = session.execute(self._paginate(query, page, limit)).scalars().all()
        return list(tasks), total

    def find_open_with_due_date(self, session: Session) -> List[Task]:
        """
        Tasks that can be overdue or due today.

        Completed and cancelled tasks and tasks without a due date are
        excluded; bucketing against the clock happens in
        ``tasks.rules.classify_tasks_by_dueness``.
        """
        query = (
            select(Task)
            .where(Task.due_date.isnot(None))
            .where(Task.status.in_(OPEN_TASK_STATUSES))
            .options(selectinload(Task.lead).selectinload(Lead.property))
        )
        return list(session.execute(query).scalars().all())

    def find_open_duplicate(self, session: Session, lead_id: int, title: str) -> Optional[Task]:
        """An open task for the lead with the same title, if any."""
        query = (
            select(Task)
            .where(Task.lead_id == lead_id)
            .where(Task.title == title)
            .where(Task.status.in_(OPEN_TASK_STATUSES))
            .limit(1)
        )
        return session.execute(query).scalar_one_or_none()

    def buyer_ids_with_tasks(self, session: Session) -> Set[int]:
        rows = session.execute(select(Task.buyer_id).where(Task.buyer_id.isnot(None)).distinct())
        return set(rows.scalars().all())

    def counts(self, session: Session, assigned_to_id: Optional[int] = None) -> Dict[str, int]:
        by_status = self.count_by_status(session)
        high_priority = session.scalar(
            select(func.count()).select_from(Task).where(Task.priority == TaskPriority.HIGH)
        ) or 0
        mine = 0
        if assigned_to_id is not None:
            mine = session.scalar(
                select(func.count()).select_from(Task).where(Task.assigned_to_id == assigned_to_id)
            ) or 0

        return {
            "total": sum(by_status.values()),
            "pending": by_status.get(TaskStatus.PENDING.value, 0),
            "in_progress": by_status.get(TaskStatus.IN_PROGRESS.value, 0),
            "completed": by_status.get(TaskStatus.COMPLETED.value, 0),
            "high_priority": high_priority,
            "mine": mine,
        }


class OfferRepository(BaseRepository):
    """Repository for Offer model."""

    def __init__(self):
        super().__init__(Offer)

    def list(
        self,
        session: Session,
        lead_id: Optional[int] = None,
        buyer_id: Optional[int] = None,
        status: Optional[OfferStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Tuple[List[Offer], int]:
        query = select(Offer)
        if lead_id is not None:
            query = query.where(Offer.lead_id == lead_id)
        if buyer_id is not None:
            query = query.where(Offer.buyer_id == buyer_id)
        if status:
            query = query.where(Offer.status == status)

        total = session.scalar(select(func.count()).select_from(query.subquery())) or 0
        query = query.options(selectinload(Offer.buyer)).order_by(desc(Offer.created_at), desc(Offer.id))
        offers = session.execute(self._paginate(query, page, limit)).scalars().all()
        return list(offers), total

    def stats(self, session: Session) -> Dict[str, Any]:
        """
        Offer outcome counts.

        Offers still in DRAFT are not counted; ``pending`` means SENT.
        """
        by_status = self.count_by_status(session)
        pending = by_status.get(OfferStatus.SENT.value, 0)
        accepted = by_status.get(OfferStatus.ACCEPTED.value, 0)
        rejected = by_status.get(OfferStatus.REJECTED.value, 0)
        expired = by_status.get(OfferStatus.EXPIRED.value, 0)
        total = pending + accepted + rejected + expired
        return {
            "total": total,
            "pending": pending,
            "accepted": accepted,
            "rejected": rejected,
            "expired": expired,
            "acceptance_rate": round(accepted / total * 100, 2) if total else 0.0,
        }

    def value_by_status(self, session: Session) -> Dict[str, Dict[str, Any]]:
        """Offer count and summed amount per status."""
        rows = session.execute(
            select(Offer.status, func.count(), func.coalesce(func.sum(Offer.offer_amount), 0))
            .group_by(Offer.status)
        ).all()
        return {status.value: {"count": count, "value": float(value)} for status, count, value in rows}
