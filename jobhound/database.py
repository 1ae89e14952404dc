"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for posting storage.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, Index, Integer, String, Text, DateTime
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from .models import Posting, PostingStatus

Base = declarative_base()


class PostingRecord(Base):
    """Persisted posting, keyed by content fingerprint."""

    __tablename__ = "postings"

    fingerprint = Column(String(32), primary_key=True)  # md5 of title-company-url
    title = Column(String, nullable=False)
    company = Column(String, nullable=False)
    url = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    score = Column(Integer, nullable=True)
    source = Column(String, nullable=False)  # linkedin, google, wttj
    status = Column(String(16), nullable=False, default=PostingStatus.PENDING.value)
    ingested_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index("ix_postings_status_ingested", "status", "ingested_at"),
        Index("ix_postings_score", "score"),
    )

    @classmethod
    def from_posting(cls, posting: Posting, ingested_at: datetime) -> "PostingRecord":
        return cls(
            fingerprint=posting.fingerprint,
            title=posting.title,
            company=posting.company,
            url=posting.url,
            description=posting.description or "",
            score=posting.score,
            source=posting.source,
            status=posting.status.value,
            ingested_at=ingested_at,
        )

    def to_posting(self) -> Posting:
        return Posting(
            title=self.title,
            company=self.company,
            url=self.url,
            source=self.source,
            description=self.description,
            score=self.score,
            status=PostingStatus(self.status),
            ingested_at=self.ingested_at,
        )


def create_db_engine(db_path: Path) -> Engine:
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    Base.metadata.create_all(engine)
    return engine

