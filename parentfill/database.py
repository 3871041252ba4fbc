"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for the revision and updatelog tables.
"""

from pathlib import Path
from sqlalchemy import create_engine, Column, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


class Revision(Base):
    """One stored edit of a page."""

    __tablename__ = "revision"

    rev_id = Column(Integer, primary_key=True, autoincrement=False)
    rev_page = Column(Integer, nullable=False)
    rev_timestamp = Column(String(14), nullable=False)  # YYYYMMDDHHMMSS
    rev_parent_id = Column(Integer, nullable=True)  # NULL until populated

    __table_args__ = (
        Index("page_timestamp", "rev_page", "rev_timestamp"),
    )


class UpdateLog(Base):
    """Completion markers for one-time migrations."""

    __tablename__ = "updatelog"

    ul_key = Column(String(255), primary_key=True)
    ul_value = Column(Text, nullable=True)


def get_engine(db_path: Path):
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


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = get_engine(db_path)
    Session = sessionmaker(bind=engine)
    return Session()
