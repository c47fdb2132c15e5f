# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# This is the main entry point for the SceneMapper API.
# It configures the FastAPI application with middleware, routers, and handlers.
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import settings
from app.exceptions import (
    SceneMapperException,
    scenemapper_exception_handler,
    validation_exception_handler,
)
from app.routers import health, maps, submissions, featured, account, admin, cron, contact, qr
from app.auth import routes as auth_routes
from lib.supabase_client import SupabaseClientError

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log configuration on startup and shutdown."""
    logger.info(f"Starting SceneMapper API in {settings.ENVIRONMENT} mode")
    logger.info(f"CORS origins: {settings.cors_origins_list}")
    if not settings.email_enabled:
        logger.warning("RESEND_API_KEY not set: invitations, digests and contact form are disabled")

    yield

    logger.info("Shutting down SceneMapper API")


# Create FastAPI application
app = FastAPI(
    title="SceneMapper API",
    description="""
## Community Scene Mapping API

SceneMapper lets communities crowdsource a visual map of their scene: events,
people, spaces, communities, regions and media, and the connections between them.

### Roles

| Role | Can |
|------|-----|
| **Admin** | Edit the map, invite people, moderate submissions, delete the map |
| **Collaborator** | Edit nodes and connections |
| **Visitor** | View public maps, submit nodes/connections for review |

### Authentication

Send the Supabase access token as `Authorization: Bearer <token>`.
Public maps can be read anonymously.
""",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Auth", "description": "Sign-up, login and token checks"},
        {"name": "Maps", "description": "Maps, nodes, connections, export and import"},
        {"name": "Submissions", "description": "Public suggestions awaiting moderation"},
        {"name": "Featured", "description": "Home page showcase"},
        {"name": "Account", "description": "Account deletion and notification preferences"},
        {"name": "Admin", "description": "Platform administration"},
        {"name": "Cron", "description": "Scheduled jobs"},
        {"name": "Misc", "description": "Contact form and QR codes"},
        {"name": "Health", "description": "API health and readiness checks"},
    ],
)


# =============================================================================
# Middleware
# =============================================================================

# CORS middleware - allows cross-origin requests
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list if settings.is_production else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Exception Handlers
# =============================================================================

@app.exception_handler(SceneMapperException)
async def handle_scenemapper_exception(request: Request, exc: SceneMapperException):
    """Handle custom SceneMapper exceptions."""
    return await scenemapper_exception_handler(request, exc)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    """Handle request body/query validation errors."""
    return await validation_exception_handler(request, exc)


@app.exception_handler(SupabaseClientError)
async def handle_supabase_error(request: Request, exc: SupabaseClientError):
    """Database failures surface as 500 with the wrapped message."""
    logger.error(f"Supabase error on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content=exc.to_dict())


@app.exception_handler(Exception)
async def handle_general_exception(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "detail": "An unexpected error occurred",
            "code": "INTERNAL_ERROR",
        }
    )


# =============================================================================
# Routers
# =============================================================================

# Authentication endpoints
app.include_router(
    auth_routes.router,
    prefix="/api/v1/auth",
    tags=["Auth"]
)

# Health check endpoints
app.include_router(
    health.router,
    prefix="/api/v1",
    tags=["Health"]
)

# Map endpoints
app.include_router(
    maps.router,
    prefix="/api/v1/maps",
    tags=["Maps"]
)

# Public submission endpoints
app.include_router(
    submissions.router,
    prefix="/api/v1/maps",
    tags=["Submissions"]
)

# Featured maps
app.include_router(
    featured.router,
    prefix="/api/v1",
    tags=["Featured"]
)

# Account endpoints
app.include_router(
    account.router,
    prefix="/api/v1/account",
    tags=["Account"]
)

# Platform admin endpoints
app.include_router(
    admin.router,
    prefix="/api/v1/admin",
    tags=["Admin"]
)

# Scheduled jobs
app.include_router(
    cron.router,
    prefix="/api/v1/cron",
    tags=["Cron"]
)

# Contact form and QR proxy
app.include_router(contact.router, prefix="/api/v1", tags=["Misc"])
app.include_router(qr.router, prefix="/api/v1", tags=["Misc"])


# =============================================================================
# Root Endpoint
# =============================================================================

@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint - returns API info.
    """
    return {
        "name": "SceneMapper API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health",
    }
