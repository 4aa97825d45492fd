"""RSVP Tracker Web Application."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from rsvp.core.config import settings
from rsvp.core.database import create_db_and_tables
from rsvp.routes import attendees, events, public

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(log_dir: Path, debug: bool = False) -> Path:
    """Write application logs to ``<log_dir>/latest.log``. Returns the file."""
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "latest.log"
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        filename=str(log_file),
    )
    return log_file


def parse_origins(allowed_origins: str) -> list[str]:
    """Split the comma-separated CORS setting. "*" allows every origin."""
    if allowed_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in allowed_origins.split(",") if o.strip()]


configure_logging(Path(settings.log_dir).expanduser(), settings.debug)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} with database {settings.database_url}")
    create_db_and_tables()
    yield
    logger.info(f"{settings.app_name} shut down")


app = FastAPI(
    title=settings.app_name,
    description="Self-hosted event invitations and RSVP tracking",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=parse_origins(settings.allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Organizer pages live under /admin, guest links under /rsvp
app.include_router(events.router)
app.include_router(attendees.router)
app.include_router(public.router)


@app.get("/")
async def root():
    """Send visitors to the organizer's event list."""
    return RedirectResponse("/admin/events")


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "app": settings.app_name}
