"""
Database models for the Beat the Books EV service
SQLAlchemy ORM; PostgreSQL in production, SQLite locally and in tests
"""

from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    BigInteger,
    String,
    DateTime,
    Boolean,
    JSON,
    Text,
)
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from datetime import datetime
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./btb.db")


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        # pool_pre_ping keeps long-lived scheduler connections alive
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty DB
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class OddsSnapshot(Base):
    """Latest annotated odds for one sport (one row per sport, overwritten)"""

    __tablename__ = "odds_snapshots"

    id = Column(Integer, primary_key=True, index=True)
    sport_key = Column(String, unique=True, nullable=False, index=True)
    data = Column(JSON, nullable=False)  # Annotated games array
    last_updated = Column(BigInteger, nullable=False)  # Epoch milliseconds
    games_count = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ApiUsage(Base):
    """Odds API quota as reported by the most recent response"""

    __tablename__ = "api_usage"

    id = Column(Integer, primary_key=True)
    remaining_requests = Column(String)  # Header values; "unknown" if absent
    used_requests = Column(String)
    last_updated = Column(BigInteger, nullable=False)  # Epoch milliseconds


class DataFetch(Base):
    """Track odds fetches for monitoring provider health"""

    __tablename__ = "data_fetches"

    id = Column(Integer, primary_key=True, index=True)
    fetch_time = Column(DateTime, default=datetime.utcnow, index=True)
    data_source = Column(String, nullable=False, index=True)  # "odds_api"
    sport_key = Column(String, index=True)
    trigger = Column(String)  # "scheduled" | "manual" | "script"
    success = Column(Boolean, nullable=False)
    records_fetched = Column(Integer)
    error_message = Column(Text)
    response_time_ms = Column(Integer)

    created_at = Column(DateTime, default=datetime.utcnow)


# Create all tables
def init_db():
    """Initialize database tables"""
    Base.metadata.create_all(bind=engine)
