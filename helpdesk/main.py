"""
Help Desk Service - Main Application
====================================

Ticket lifecycle, access control and SLA reporting for a help desk.

Modules:
- Tickets: Filing, updates, comments, role-scoped listings and dashboards

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities, value objects and the access/lifecycle/reporting engines
- Infrastructure: Database
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration
from helpdesk.config import settings

# Infrastructure
from helpdesk.infrastructure.database import (
    close_engine,
    create_engine,
    create_session_factory,
    create_tables,
)
from helpdesk.tickets.infrastructure import SQLAlchemyTicketRepository

# Module Routers
from helpdesk.tickets.interfaces import tickets_router

# Shared API
from helpdesk.shared.api.auth import ensure_token_secret
from helpdesk.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    register_exception_handlers,
)

# Logging
from helpdesk.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Create database engine and session factory
    3. Create database tables (optional)
    4. Bind the ticket repository

    SHUTDOWN:
    1. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Help Desk Service", extra={
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment
    })

    ensure_token_secret(settings)

    logger.info("Initializing database")
    engine = create_engine(settings)
    session_factory = create_session_factory(engine)

    if settings.create_tables_on_startup:
        # Development convenience - use migrations in production
        logger.info("Creating database tables")
        await create_tables(engine)

    app.state.settings = settings
    app.state.ticket_repository = SQLAlchemyTicketRepository(session_factory)

    logger.info("Help Desk Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Help Desk Service")
    await close_engine(engine)
    logger.info("Help Desk Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Help Desk API",
    description="""
    ## Help Desk Ticketing Service

    Ticket lifecycle with role-based access control and SLA reporting.

    ---

    ### Roles

    | Role  | Sees                   | May modify              | Dashboard        |
    |-------|------------------------|-------------------------|------------------|
    | user  | tickets they filed     | their own tickets       | no               |
    | agent | tickets assigned to them | their assigned tickets | assigned tickets |
    | admin | every ticket           | every ticket            | every ticket     |

    ### SLA

    Every ticket is due 24 hours after creation. Tickets within two hours of
    the deadline are flagged `warning`, past it `breached`; resolved and
    closed tickets are `completed`.

    ---
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
register_exception_handlers(app)

# === Include Module Routers ===
app.include_router(tickets_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {"ticket_store": "configured"}
                }
            }
        }
    }
})
async def health_check(request: Request):
    """Health check endpoint for load balancers and orchestrators."""
    store = getattr(request.app.state, "ticket_repository", None)
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": {
            "ticket_store": "configured" if store is not None else "not_configured"
        }
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Help Desk Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "tickets": {
                "prefix": "/tickets",
                "endpoints": [
                    "POST /tickets - File a ticket",
                    "GET /tickets - List visible tickets",
                    "GET /tickets/mine - Tickets I filed",
                    "GET /tickets/assigned - Tickets assigned to me",
                    "GET /tickets/stats - Reporting dashboard",
                    "GET /tickets/{id} - Get a ticket",
                    "PATCH /tickets/{id} - Update a ticket",
                    "POST /tickets/{id}/comments - Comment on a ticket"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
