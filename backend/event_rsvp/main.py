"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from event_rsvp.config import settings
from event_rsvp.database import Base, SessionLocal, engine
from event_rsvp.errors import EventRSVPError
from event_rsvp.auth.provider import LocalIdentityProvider
from event_rsvp.services.auth_service import SessionGate

# Import routers
from event_rsvp.routers import admin, auth, events, public, rsvps

# Import all models so Base.metadata knows about them
from event_rsvp.models.identity import AuthIdentity, RevokedToken  # noqa: F401
from event_rsvp.models.profile import Profile  # noqa: F401
from event_rsvp.models.event import Event  # noqa: F401
from event_rsvp.models.rsvp import RSVP  # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Event RSVP Manager",
    description="Event creation, public RSVP collection, attendee management and role-based administration",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Session gate shared by every request
app.state.session_gate = SessionGate(
    LocalIdentityProvider(
        SessionLocal,
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        token_ttl_minutes=settings.ACCESS_TOKEN_TTL_MINUTES,
    ),
    SessionLocal,
)

# Register routers
app.include_router(auth.router, prefix="/api/auth", tags=["Auth"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(rsvps.router, prefix="/api/rsvps", tags=["RSVPs"])
app.include_router(public.router, prefix="/api/public", tags=["Public"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])


@app.exception_handler(EventRSVPError)
def handle_app_error(request: Request, exc: EventRSVPError):
    """Render every application error as {"detail": message}."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
