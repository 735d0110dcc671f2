"""
Database Package

Database models, connection management, and data persistence layer.
"""
from src.wholesale_crm.db.base import Base
from src.wholesale_crm.db.session import (
    engine,
    SessionLocal,
    get_db_session,
    check_database,
    close_connections,
    create_all_tables,
    drop_all_tables,
    with_retry,
)
from src.wholesale_crm.db.models import (
    User,
    Lead,
    Property,
    Buyer,
    BuyerPreference,
    Offer,
    Task,
    LeadStatus,
    TaskPriority,
    TaskStatus,
    OfferStatus,
)
from src.wholesale_crm.db.repository import (
    BaseRepository,
    UserRepository,
    LeadRepository,
    BuyerRepository,
    TaskRepository,
    OfferRepository,
)

__all__ = [
    # Base
    "Base",
    # Session management
    "engine",
    "SessionLocal",
    "get_db_session",
    "check_database",
    "close_connections",
    "create_all_tables",
    "drop_all_tables",
    "with_retry",
    # Models
    "User",
    "Lead",
    "Property",
    "Buyer",
    "BuyerPreference",
    "Offer",
    "Task",
    "LeadStatus",
    "TaskPriority",
    "TaskStatus",
    "OfferStatus",
    # Repositories
    "BaseRepository",
    "UserRepository",
    "LeadRepository",
    "BuyerRepository",
    "TaskRepository",
    "OfferRepository",
]
