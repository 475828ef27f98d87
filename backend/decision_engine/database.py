"""
Humane Decision Engine - Database Configuration
SQLAlchemy engine and session factory for the persistence collaborator
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .config import DATABASE_URL

# SQLite needs cross-thread access for the FastAPI worker pool
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Create engine
engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for ORM models
Base = declarative_base()


def init_db(bind=None):
    """Initialize database - create all tables."""
    from .models import db_models  # noqa: F401  registers tables on Base

    Base.metadata.create_all(bind=bind or engine)
