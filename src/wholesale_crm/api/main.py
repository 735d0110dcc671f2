"""
FastAPI Main Application

Wholesale CRM REST API.
"""
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from config.settings import settings
from src.wholesale_crm.api.dependencies import acting_user_id
from src.wholesale_crm.api.routers import analytics, buyers, health, leads, offers, stats, tasks
from src.wholesale_crm.db.session import close_connections
from src.wholesale_crm.utils.logger import (
    setup_logging,
    get_logger,
    bind_request_context,
    clear_request_context,
)

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("api_startup", version=settings.api_version, environment=settings.environment)
    yield
    close_connections()


app = FastAPI(
    title="Wholesale CRM API",
    description="Lead intake, buyer matching, task management and offers for real estate wholesaling",
    version=settings.api_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(request: Request, call_next):
    """Tag every log line emitted during a request with its id and acting user."""
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    clear_request_context()
    bind_request_context(
        request_id=request_id,
        path=request.url.path,
        user_id=acting_user_id(request.headers.get("X-User-Id")),
    )
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    logger.info("request_completed", method=request.method, status_code=response.status_code)
    return response


app.include_router(leads.router)
app.include_router(buyers.router)
app.include_router(tasks.router)
app.include_router(offers.router)
app.include_router(stats.router)
app.include_router(analytics.router)
app.include_router(health.router)


@app.get("/", tags=["root"])
def root():
    """
    Root endpoint.

    Returns:
        API information
    """
    return {
        "name": "Wholesale CRM API",
        "version": settings.api_version,
        "docs": "/docs",
        "health": "/health",
        "features": [
            "Lead Pipeline",
            "Buyer Matching",
            "Rule-Based Follow-up Tasks",
            "Offer Tracking",
            "Dashboard Statistics",
            "Analytics",
            "System Health",
        ]
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.wholesale_crm.api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
