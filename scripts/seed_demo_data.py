"""
Seed Demo Data

Loads a small demo team, three Texas leads with their properties, four
buyers with purchase preferences and a handful of tasks. Safe to re-run:
users are matched by username, leads and buyers by email.

Usage:
    python scripts/seed_demo_data.py
"""
import sys
from datetime import timedelta
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select

from src.wholesale_crm.db.models import Buyer, Lead, LeadStatus, Task, TaskPriority, TaskStatus
from src.wholesale_crm.db.repository import BuyerRepository, LeadRepository, UserRepository
from src.wholesale_crm.db.session import get_db_session, create_all_tables
from src.wholesale_crm.utils.logger import setup_logging, get_logger
from src.wholesale_crm.utils.time_utils import business_now

logger = get_logger(__name__)

DEMO_USERS = [
    {"username": "admin", "email": "admin@example.com", "first_name": "Admin", "last_name": "User", "role": "ADMIN"},
    {"username": "agent", "email": "agent@example.com", "first_name": "Agent", "last_name": "Smith", "role": "DISPOSITIONS"},
    {"username": "acq", "email": "acq@example.com", "first_name": "Ibby", "last_name": "Johnson", "role": "ACQUISITIONS"},
]

DEMO_BUYERS = [
    {
        "buyer": {
            "name": "David Thompson",
            "email": "david.thompson@email.com",
            "phone": "(555) 111-2222",
            "cash_buyer": True,
            "proof_of_funds": 400000,
            "notes": "Experienced investor looking for fix-and-flip opportunities",
        },
        "preference": {
            "max_price": 400000,
            "areas": ["Austin", "Dallas", "Houston"],
            "property_types": ["Single Family Home", "Townhouse"],
        },
    },
    {
        "buyer": {
            "name": "Jennifer Martinez",
            "email": "jennifer.martinez@email.com",
            "phone": "(555) 333-4444",
            "cash_buyer": False,
            "proof_of_funds": 600000,
            "notes": "Looking for rental properties in good neighborhoods",
        },
        "preference": {
            "max_price": 600000,
            "areas": ["Austin", "San Antonio"],
            "property_types": ["Single Family Home", "Condo", "Duplex"],
        },
    },
    {
        "buyer": {
            "name": "Michael Chang",
            "email": "michael.chang@email.com",
            "phone": "(555) 555-6666",
            "cash_buyer": False,
            "proof_of_funds": 350000,
            "notes": "First-time investor, interested in turnkey properties",
        },
        "preference": {
            "max_price": 350000,
            "areas": ["Fort Worth", "Plano"],
            "property_types": ["Condo", "Townhouse"],
        },
    },
    {
        "buyer": {
            "name": "Amanda Foster",
            "email": "amanda.foster@email.com",
            "phone": "(555) 777-8888",
            "cash_buyer": True,
            "proof_of_funds": 800000,
            "notes": "High-volume investor, can close quickly on multiple properties",
        },
        "preference": {
            "max_price": 800000,
            "areas": ["Houston", "Dallas", "Austin", "San Antonio", "TX"],
            "property_types": ["Single Family Home", "Multi-Family", "Commercial"],
        },
    },
]

DEMO_LEADS = [
    {
        "lead": {
            "first_name": "John",
            "last_name": "Smith",
            "email": "john.smith@email.com",
            "phone": "(555) 123-4567",
            "motivation": "Relocating for work, need quick sale",
            "timeline": "Within 30 days",
            "status": LeadStatus.NEW,
            "notes": "Motivated seller, needs quick close",
        },
        "property": {
            "address": "123 Main Street",
            "city": "Austin",
            "state": "TX",
            "zip_code": "78701",
            "property_type": "Single Family Home",
            "price": 380000,
            "estimated_value": 450000,
        },
    },
    {
        "lead": {
            "first_name": "Sarah",
            "last_name": "Johnson",
            "email": "sarah.johnson@email.com",
            "phone": "(555) 987-6543",
            "motivation": "Downsizing after retirement",
            "timeline": "60-90 days",
            "status": LeadStatus.CONTACTED,
            "notes": "Flexible on timing, wants fair market value",
        },
        "property": {
            "address": "456 Oak Avenue",
            "city": "Dallas",
            "state": "TX",
            "zip_code": "75201",
            "property_type": "Townhouse",
            "price": 290000,
            "estimated_value": 320000,
        },
    },
    {
        "lead": {
            "first_name": "Mike",
            "last_name": "Rodriguez",
            "email": "mike.rodriguez@email.com",
            "phone": "(555) 456-7890",
            "motivation": "Job relocation",
            "timeline": "30-45 days",
            "status": LeadStatus.QUALIFIED,
            "notes": "Pre-approved buyer lined up, needs quick close",
        },
        "property": {
            "address": "789 Pine Street",
            "city": "Houston",
            "state": "TX",
            "zip_code": "77001",
            "property_type": "Condo",
            "price": 250000,
            "estimated_value": 280000,
        },
    },
]


def seed_users(session):
    repo = UserRepository()
    users = []
    for data in DEMO_USERS:
        user = repo.get_by_username(session, data["username"])
        if user is None:
            user = repo.create(session, **data)
        users.append(user)
    logger.info("demo_users_seeded", count=len(users))
    return users


def seed_buyers(session):
    repo = BuyerRepository()
    buyers = []
    for entry in DEMO_BUYERS:
        existing = session.execute(
            select(Buyer).where(Buyer.email == entry["buyer"]["email"])
        ).scalar_one_or_none()
        if existing is None:
            existing = repo.create_with_preference(session, entry["buyer"], entry["preference"])
        buyers.append(existing)
    logger.info("demo_buyers_seeded", count=len(buyers))
    return buyers


def seed_leads(session, assignee):
    repo = LeadRepository()
    leads = []
    for entry in DEMO_LEADS:
        existing = session.execute(
            select(Lead).where(Lead.email == entry["lead"]["email"])
        ).scalar_one_or_none()
        if existing is None:
            existing = repo.create_with_property(
                session,
                {**entry["lead"], "assigned_to_id": assignee.id},
                entry["property"],
            )
        leads.append(existing)
    logger.info("demo_leads_seeded", count=len(leads))
    return leads


def seed_tasks(session, leads, buyers, users):
    now = business_now()
    tasks = [
        Task(
            title=f"Follow up with {leads[0].full_name}",
            description=f"Initial contact with lead about property at {leads[0].property.address}",
            status=TaskStatus.PENDING,
            priority=TaskPriority.HIGH,
            due_date=now + timedelta(days=1),
            lead_id=leads[0].id,
            assigned_to_id=users[1].id,
        ),
        Task(
            title=f"Schedule property visit - {leads[1].full_name}",
            description=f"Schedule property walkthrough at {leads[1].property.address}",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.MEDIUM,
            due_date=now + timedelta(days=3),
            lead_id=leads[1].id,
            assigned_to_id=users[2].id,
        ),
        Task(
            title=f"Show properties to {buyers[0].name}",
            description="Schedule and conduct property showings for investor",
            status=TaskStatus.PENDING,
            priority=TaskPriority.HIGH,
            due_date=now + timedelta(days=2),
            buyer_id=buyers[0].id,
            assigned_to_id=users[1].id,
        ),
    ]
    for task in tasks:
        duplicate = session.execute(select(Task).where(Task.title == task.title)).first()
        if duplicate is None:
            session.add(task)
    session.flush()
    logger.info("demo_tasks_seeded")


def main():
    setup_logging()
    create_all_tables()

    with get_db_session() as session:
        users = seed_users(session)
        buyers = seed_buyers(session)
        leads = seed_leads(session, users[2])
        seed_tasks(session, leads, buyers, users)

    logger.info("demo_data_seeded")


if __name__ == "__main__":
    main()
