"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for the local game catalog.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, Integer, Float, String, Text, Date, DateTime, JSON
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class Game(Base):
    """Catalog title plus the fields the backfill passes fill in."""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    genres = Column(JSON, nullable=True)  # list of catalog genre names
    cover_url = Column(String, nullable=True)

    # ratings pass
    igdb_id = Column(Integer, nullable=True, index=True)
    igdb_slug = Column(String, nullable=True)
    igdb_rating = Column(Float, nullable=True)  # total_rating
    igdb_user_rating = Column(Float, nullable=True)
    igdb_critic_rating = Column(Float, nullable=True)
    igdb_rating_count = Column(Integer, nullable=True)
    first_release_date = Column(Date, nullable=True)
    developers = Column(JSON, nullable=True)
    publishers = Column(JSON, nullable=True)
    languages = Column(JSON, nullable=True)
    age_rating_system = Column(String, nullable=True)
    age_rating_label = Column(String, nullable=True)
    age_rating_code = Column(String, nullable=True)
    last_igdb_sync_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


def get_engine(db_path: Path) -> Engine:
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    engine.dispose()


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
