"""
NGO Portal - FastAPI Application Entrypoint

This module initializes the FastAPI application with:
- CORS and security middleware
- Authentication, hub and user routes
- Database lifecycle management

Startup fails with ConfigurationError when SECRET_KEY is not set.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ngo_portal.auth.routes import router as auth_router
from ngo_portal.auth.tokens import get_token_codec
from ngo_portal.config import settings
from ngo_portal.database import get_engine, get_session_factory, init_db
from ngo_portal.gateway.middleware import SecurityMiddleware
from ngo_portal.gateway.policy import MutationPolicy
from ngo_portal.hubs.routes import router as hubs_router
from ngo_portal.membership.routes import router as membership_router
from ngo_portal.logging_config import configure_logging
from ngo_portal.users.routes import router as users_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
        - Configure logging
        - Build the token codec (refuses an empty SECRET_KEY)
        - Load the mutation policy
        - Initialize the database unless one is already attached

    Shutdown:
        - Dispose the engine this lifespan created
    """
    configure_logging(settings.LOG_LEVEL)

    get_token_codec()
    MutationPolicy()

    owns_engine = getattr(app.state, "db_engine", None) is None
    if owns_engine:
        engine = get_engine(settings.DATABASE_URL)
        init_db(engine)
        app.state.db_engine = engine
        app.state.db_session_factory = get_session_factory(engine)
    logger.info("NGO Portal started")

    yield

    if owns_engine:
        app.state.db_engine.dispose()
        app.state.db_engine = None


app = FastAPI(
    title="NGO Portal",
    description="Member, hub and administrator access for the NGO portal",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "PUT", "PATCH"],
    allow_headers=["Authorization", "Content-Type"],
)

app.add_middleware(SecurityMiddleware)


app.include_router(auth_router, prefix="/api/v1")
app.include_router(hubs_router, prefix="/api/v1")
app.include_router(membership_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check endpoint for local dev tooling."""
    return {"status": "healthy", "version": "0.1.0"}


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "NGO Portal",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
