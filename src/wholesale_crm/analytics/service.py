"""
Service layer for dashboard analytics: headline KPIs, daily creation
charts, the recent activity feed and the offer revenue pipeline.
"""
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Tuple

from sqlalchemy.orm import Session, selectinload

from src.wholesale_crm.db.models import Lead, LeadStatus, Offer, OfferStatus, Task, TaskStatus
from src.wholesale_crm.db.repository import (
    BuyerRepository,
    LeadRepository,
    OfferRepository,
    TaskRepository,
)
from src.wholesale_crm.tasks.rules import classify_tasks_by_dueness
from src.wholesale_crm.utils.logger import get_logger
from src.wholesale_crm.utils.time_utils import Clock, business_now, end_of_day, ensure_aware, start_of_day

logger = get_logger(__name__)

# Leads still being worked
ACTIVE_LEAD_STATUSES = (LeadStatus.NEW, LeadStatus.CONTACTED, LeadStatus.QUALIFIED)


def percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def chart_window(now: datetime, days: int) -> Tuple[datetime, datetime]:
    """The last ``days`` calendar days in the timezone of ``now``, today included."""
    return start_of_day(now - timedelta(days=days - 1)), end_of_day(now)


def daily_counts(
    rows: Iterable[Any],
    now: datetime,
    days: int,
    labels: Callable[[Any], Iterable[str]],
) -> List[Dict[str, Any]]:
    """
    Count rows per creation day.

    Every day in the window gets a bucket, so quiet days show as zeros.
    Each row adds one to every counter named by ``labels(row)``.

    Returns:
        One dict per day, oldest first, with a ``day`` key plus counters
    """
    start, _ = chart_window(now, days)
    buckets: Dict[str, Dict[str, Any]] = {}
    for offset in range(days):
        day = start.date() + timedelta(days=offset)
        buckets[day.isoformat()] = {"day": day}

    for row in rows:
        created = ensure_aware(row.created_at).astimezone(now.tzinfo)
        bucket = buckets.get(created.date().isoformat())
        if bucket is None:
            continue
        for label in labels(row):
            bucket[label] = bucket.get(label, 0) + 1

    return list(buckets.values())


def format_money(amount) -> str:
    return f"${float(amount):,.0f}"


class AnalyticsService:
    """Read-only aggregates behind the analytics dashboard."""

    def __init__(self, session: Session, clock: Clock = business_now):
        self.session = session
        self.clock = clock
        self.leads = LeadRepository()
        self.buyers = BuyerRepository()
        self.tasks = TaskRepository()
        self.offers = OfferRepository()

    def kpis(self) -> Dict[str, Dict[str, Any]]:
        leads_by_status = self.leads.count_by_status(self.session)
        total_leads = sum(leads_by_status.values())
        active_leads = sum(leads_by_status.get(s.value, 0) for s in ACTIVE_LEAD_STATUSES)

        total_buyers = self.buyers.count(self.session)
        cash_buyers = self.buyers.count_cash(self.session)

        tasks_by_status = self.tasks.count_by_status(self.session)
        total_tasks = sum(tasks_by_status.values())
        completed = tasks_by_status.get(TaskStatus.COMPLETED.value, 0)
        buckets = classify_tasks_by_dueness(self.tasks.find_open_with_due_date(self.session), self.clock())

        offers_by_status = self.offers.count_by_status(self.session)
        total_offers = sum(offers_by_status.values())
        accepted = offers_by_status.get(OfferStatus.ACCEPTED.value, 0)

        return {
            "leads": {
                "total": total_leads,
                "active": active_leads,
                "active_rate": percentage(active_leads, total_leads),
            },
            "buyers": {
                "total": total_buyers,
                "cash": cash_buyers,
                "cash_rate": percentage(cash_buyers, total_buyers),
            },
            "tasks": {
                "total": total_tasks,
                "completed": completed,
                "overdue": len(buckets.overdue),
                "completion_rate": percentage(completed, total_tasks),
            },
            "offers": {
                "total": total_offers,
                "accepted": accepted,
                "acceptance_rate": percentage(accepted, total_offers),
            },
        }

    def leads_chart(self, days: int) -> List[Dict[str, Any]]:
        now = self.clock()
        leads = self.leads.created_between(self.session, *chart_window(now, days))
        return daily_counts(leads, now, days, lambda lead: [lead.status.value.lower()])

    def tasks_chart(self, days: int) -> List[Dict[str, Any]]:
        now = self.clock()
        tasks = self.tasks.created_between(self.session, *chart_window(now, days))
        return daily_counts(
            tasks, now, days, lambda task: [task.status.value.lower(), task.priority.value.lower()]
        )

    def buyers_chart(self, days: int) -> List[Dict[str, Any]]:
        now = self.clock()
        buyers = self.buyers.created_between(self.session, *chart_window(now, days))
        with_tasks = self.tasks.buyer_ids_with_tasks(self.session)

        def labels(buyer):
            found = ["new"]
            if buyer.cash_buyer:
                found.append("cash")
            if buyer.id in with_tasks:
                found.append("with_tasks")
            return found

        return daily_counts(buyers, now, days, labels)

    def activity_feed(self, limit: int) -> List[Dict[str, Any]]:
        """
        Most recently created leads, buyers, tasks and offers, newest first.
        """
        items = []

        for lead in self.leads.recent(self.session, limit):
            items.append({
                "id": f"lead-{lead.id}",
                "type": "lead",
                "title": f"New lead: {lead.first_name} {lead.last_name}",
                "description": f"Status: {lead.status.value}",
                "timestamp": ensure_aware(lead.created_at),
            })

        for buyer in self.buyers.recent(self.session, limit):
            items.append({
                "id": f"buyer-{buyer.id}",
                "type": "buyer",
                "title": f"New buyer: {buyer.name}",
                "description": f"Cash buyer: {'Yes' if buyer.cash_buyer else 'No'}",
                "timestamp": ensure_aware(buyer.created_at),
            })

        for task in self.tasks.recent(self.session, limit, selectinload(Task.lead)):
            description = f"{task.status.value} - {task.priority.value} priority"
            if task.lead is not None:
                description += f" (Lead: {task.lead.first_name} {task.lead.last_name})"
            items.append({
                "id": f"task-{task.id}",
                "type": "task",
                "title": f"Task: {task.title}",
                "description": description,
                "timestamp": ensure_aware(task.created_at),
            })

        offers = self.offers.recent(
            self.session,
            limit,
            selectinload(Offer.buyer),
            selectinload(Offer.lead).selectinload(Lead.property),
        )
        for offer in offers:
            address = offer.lead.property.address if offer.lead.property else "Unknown property"
            items.append({
                "id": f"offer-{offer.id}",
                "type": "offer",
                "title": f"Offer: {format_money(offer.offer_amount)}",
                "description": f"{offer.status.value} - {address} by {offer.buyer.name}",
                "timestamp": ensure_aware(offer.created_at),
            })

        items.sort(key=lambda item: item["timestamp"], reverse=True)
        return items[:limit]

    def revenue_pipeline(self) -> Dict[str, Any]:
        by_status = self.offers.value_by_status(self.session)

        def bucket(status: OfferStatus) -> Dict[str, Any]:
            return by_status.get(status.value, {"count": 0, "value": 0.0})

        total_offers = sum(b["count"] for b in by_status.values())
        total_value = round(sum(b["value"] for b in by_status.values()), 2)
        pipeline = {
            "total_offers": total_offers,
            "total_value": total_value,
            "average_offer": round(total_value / total_offers, 2) if total_offers else 0.0,
            "pending": bucket(OfferStatus.SENT)["value"],
            "accepted": bucket(OfferStatus.ACCEPTED)["value"],
            "rejected": bucket(OfferStatus.REJECTED)["value"],
            "pending_count": bucket(OfferStatus.SENT)["count"],
            "accepted_count": bucket(OfferStatus.ACCEPTED)["count"],
            "rejected_count": bucket(OfferStatus.REJECTED)["count"],
        }
        logger.debug("revenue_pipeline_computed", total_offers=total_offers, total_value=total_value)
        return pipeline
