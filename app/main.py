from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi
from contextlib import asynccontextmanager
import logging

from app.config import settings
from app.database import init_db, close_db
from app.utils.logging import setup_logging

logger = logging.getLogger(__name__)
from app.routes import (
    health,
    hosts,
    participation,
    waitlist,
    attendance,
    notifications,
    meetups
)
from app.utils.errors import ServiceError, service_error_handler
from app.utils.rate_limit import limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    setup_logging()
    logger.info("=== LIFESPAN STARTUP BEGIN ===")
    await init_db()
    logger.info("=== LIFESPAN STARTUP COMPLETE ===")
    yield
    # Shutdown
    logger.info("=== LIFESPAN SHUTDOWN BEGIN ===")
    await close_db()
    logger.info("=== LIFESPAN SHUTDOWN COMPLETE ===")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.API_VERSION,
    description="""Meetup registration service with capacity limits, waitlists and no-show mitigation.

Hosts create meetups and share a registration link; participants confirm or cancel via personal token links.

## Key Features
- Capacity-limited registration with optional bounded waitlist
- FIFO waitlist promotion when a committed participant cancels
- Waitlist slot offers with accept/pass cascading
- Confirmation, 24-hour cancellation cutoff, check-in and no-show tracking
- SMS notifications and D-7/D-3/D-1/D-day reminder bookkeeping

## Architecture
- Database: PostgreSQL via asyncpg, per-meetup row locks around capacity decisions
- Auth: host session JWT (Bearer) or per-meetup host access code (`X-Host-Code`)
- SMS: Solapi REST API""",
    docs_url="/docs" if settings.ENABLE_DOCS else None,
    redoc_url="/redoc" if settings.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if settings.ENABLE_DOCS else None,
    lifespan=lifespan
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=settings.PROJECT_NAME,
        version=settings.API_VERSION,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
            "description": "Host session token from /api/v1/meetups/hosts/login"
        },
        "HostCode": {
            "type": "apiKey",
            "in": "header",
            "name": "X-Host-Code",
            "description": "Meetup host access code"
        }
    }
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Service errors
app.add_exception_handler(ServiceError, service_error_handler)

# Register routers (health and literal paths before /{meetup_id})
app.include_router(health.router)
app.include_router(hosts.router)
app.include_router(participation.router)
app.include_router(waitlist.router)
app.include_router(attendance.router)
app.include_router(notifications.router)
app.include_router(meetups.router)


if __name__ == "__main__":
    import uvicorn
    from app.config import get_settings

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.ENVIRONMENT == "development"
    )
