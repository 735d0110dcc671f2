"""
Health Router

Liveness and system health: per-service checks for the database, the
Redis cache and the API process, rolled up into one overall status.
"""
import resource
import sys
import time
from typing import Callable, Dict

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import settings
from src.wholesale_crm.api.cache import get_cache_stats
from src.wholesale_crm.api.dependencies import get_db
from src.wholesale_crm.api.schemas import HealthCheck, ServiceHealth, SystemHealth
from src.wholesale_crm.db.session import check_database
from src.wholesale_crm.utils.logger import get_logger
from src.wholesale_crm.utils.time_utils import utcnow

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

# Database round trips slower than this report a warning
SLOW_DATABASE_MS = 1000

STATUS_SEVERITY = {"healthy": 0, "warning": 1, "critical": 2}

_started_at = time.monotonic()


def uptime_seconds() -> float:
    """Seconds since the API module was loaded."""
    return round(time.monotonic() - _started_at, 2)


def peak_memory_mb() -> float:
    """Peak resident set size of this process."""
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS and kilobytes on Linux
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(peak / divisor, 1)


def overall_status(services: Dict[str, ServiceHealth]) -> str:
    """Worst status across all services."""
    if not services:
        return "healthy"
    return max((s.status for s in services.values()), key=STATUS_SEVERITY.__getitem__)


def check_database_service(db: Session) -> ServiceHealth:
    try:
        response_ms = check_database(db)
    except SQLAlchemyError as e:
        logger.error("health_check_database_failed", error=str(e))
        return ServiceHealth(
            status="critical",
            message=f"Database connection failed: {e}",
            last_checked=utcnow(),
        )

    if response_ms > SLOW_DATABASE_MS:
        return ServiceHealth(
            status="warning",
            message="Database responding slowly",
            response_ms=response_ms,
            last_checked=utcnow(),
        )
    return ServiceHealth(
        status="healthy",
        message="Database connection successful",
        response_ms=response_ms,
        last_checked=utcnow(),
    )


def check_cache_service(db: Session = None) -> ServiceHealth:
    """
    Redis is optional: an unconfigured cache is healthy, a configured
    but unreachable one is a warning since requests still succeed.
    """
    if not settings.redis_url:
        return ServiceHealth(status="healthy", message="Cache not configured", last_checked=utcnow())

    stats = get_cache_stats()
    if not stats.get("available"):
        return ServiceHealth(
            status="warning",
            message=f"Cache unavailable: {stats.get('error', 'unknown error')}",
            last_checked=utcnow(),
        )
    return ServiceHealth(
        status="healthy",
        message="Cache connection successful",
        details={"total_keys": stats["total_keys"], "hit_rate": round(stats["hit_rate"], 2)},
        last_checked=utcnow(),
    )


def check_api_service(db: Session = None) -> ServiceHealth:
    # Answering at all means the API is up
    return ServiceHealth(
        status="healthy",
        message="API responding",
        details={"uptime_seconds": uptime_seconds()},
        last_checked=utcnow(),
    )


SERVICE_CHECKS: Dict[str, Callable[[Session], ServiceHealth]] = {
    "database": check_database_service,
    "cache": check_cache_service,
    "api": check_api_service,
}


@router.get("", response_model=HealthCheck)
def health_check(db: Session = Depends(get_db)):
    """
    Health check endpoint.

    Overall status is critical when the database is unreachable and
    warning when it is slow.
    """
    database = check_database_service(db)
    cache_status = "connected" if get_cache_stats().get("available") else "unavailable"

    return HealthCheck(
        status=database.status,
        version=settings.api_version,
        database="connected" if database.status != "critical" else f"error: {database.message}",
        database_response_ms=database.response_ms,
        cache=cache_status,
        timestamp=utcnow(),
    )


@router.get("/system", response_model=SystemHealth)
def system_health(db: Session = Depends(get_db)):
    """
    Every service check plus process uptime and memory.

    The overall status is the worst individual service status.
    """
    services = {name: check(db) for name, check in SERVICE_CHECKS.items()}
    overall = overall_status(services)
    if overall != "healthy":
        logger.warning(
            "system_health_degraded",
            overall=overall,
            services={name: s.status for name, s in services.items()},
        )

    return SystemHealth(
        overall=overall,
        services=services,
        uptime_seconds=uptime_seconds(),
        peak_memory_mb=peak_memory_mb(),
        version=settings.api_version,
        environment=settings.environment,
        timestamp=utcnow(),
    )


@router.get("/services/{service}", response_model=ServiceHealth)
def service_health(service: str, db: Session = Depends(get_db)):
    """Run a single service check."""
    check = SERVICE_CHECKS.get(service)
    if check is None:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown service {service}; expected one of {', '.join(SERVICE_CHECKS)}",
        )
    return check(db)
