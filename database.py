"""
Database engine and session management.

The default URL is an in-memory SQLite database. A static pool keeps the one
connection alive for the life of the process, so every session sees the same
(ephemeral) data.
"""

from sqlmodel import SQLModel, Session, create_engine
from sqlmodel.pool import StaticPool

from config import settings

DATABASE_URL = settings.DATABASE_URL

engine_kwargs = {"echo": False}

if DATABASE_URL.startswith("sqlite"):
    # FastAPI may serve requests from worker threads
    engine_kwargs["connect_args"] = {"check_same_thread": False}
    if DATABASE_URL in ("sqlite://", "sqlite:///:memory:"):
        engine_kwargs["poolclass"] = StaticPool

engine = create_engine(DATABASE_URL, **engine_kwargs)


def create_db_and_tables():
    """Create all tables registered on SQLModel.metadata"""
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that provides a database session.

    The session is closed after the request even when the handler raises.
    """
    with Session(engine) as session:
        yield session
