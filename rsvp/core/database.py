"""Database engine and session management.

The RSVP tracker runs as a single process against one embedded SQLite
database by default. Any SQLAlchemy URL works through ``DATABASE_URL``;
the SQLite-only connection options and pragmas are applied only when the
URL points at SQLite.

SQLite pragmas, set on every new connection:
    - **journal_mode=WAL**: guests can load their RSVP page while an
      organizer's batch send is marking attendees as sent.
    - **foreign_keys=ON**: off by default in SQLite. ``attendee.event_id``
      is declared ON DELETE CASCADE, which only fires with this enabled.
"""

from sqlalchemy import event as sa_event
from sqlmodel import Session, SQLModel, create_engine

from rsvp.core.config import settings


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def engine_connect_args(database_url: str) -> dict:
    """Driver arguments for ``create_engine``.

    SQLite connections are shared across FastAPI's worker threads, so the
    same-thread check is turned off. Other backends need nothing extra.
    """
    if is_sqlite(database_url):
        return {"check_same_thread": False}
    return {}


def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable WAL and foreign keys on a new SQLite connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = create_engine(
    settings.database_url,
    connect_args=engine_connect_args(settings.database_url),
    echo=settings.debug,
)

if is_sqlite(settings.database_url):
    sa_event.listen(engine, "connect", set_sqlite_pragma)


def create_db_and_tables():
    """Create the event and attendee tables if they don't exist."""
    SQLModel.metadata.create_all(engine)


def get_session():
    """Dependency for getting database session."""
    with Session(engine) as session:
        yield session
