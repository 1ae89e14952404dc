"""
Tests for database.py - SQLite schema and record mapping.
"""

import pytest
from datetime import datetime
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from jobhound.database import PostingRecord, init_database
from jobhound.models import Posting, PostingStatus


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        """Test that init_database creates the database file."""
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_creates_tables(self, tmp_path):
        """Test that init_database creates the postings table."""
        db_path = tmp_path / "test.db"
        engine = init_database(db_path)

        assert "postings" in inspect(engine).get_table_names()

        with Session(engine) as session:
            assert session.query(PostingRecord).count() == 0

    def test_init_creates_parent_directories(self, tmp_path):
        """Test that init_database creates parent directories if missing."""
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(db_path)

        assert db_path.exists()

    def test_init_is_idempotent(self, tmp_path):
        db_path = tmp_path / "test.db"
        init_database(db_path)
        init_database(db_path)
        assert db_path.exists()


class TestPostingRecord:
    """Mapping between Posting and its row."""

    @pytest.fixture
    def db_session(self, tmp_path):
        """Create a temporary database and return a session."""
        db_path = tmp_path / "test.db"
        engine = init_database(db_path)
        with Session(engine) as session:
            yield session
        engine.dispose()

    @pytest.fixture
    def sample_posting(self):
        return Posting(
            title="Frontend Developer",
            company="Acme",
            url="https://www.linkedin.com/jobs/view/frontend-developer-123",
            source="linkedin",
            description="React and TypeScript",
            score=88,
            status=PostingStatus.SCORED,
        )

    def test_round_trip(self, db_session, sample_posting):
        """A stored record reads back as an equal posting."""
        ingested = datetime(2024, 3, 1, 9, 30)
        db_session.add(PostingRecord.from_posting(sample_posting, ingested))
        db_session.commit()

        record = db_session.get(PostingRecord, sample_posting.fingerprint)
        posting = record.to_posting()

        assert posting.title == "Frontend Developer"
        assert posting.score == 88
        assert posting.status == PostingStatus.SCORED
        assert posting.ingested_at == ingested
        assert posting.fingerprint == sample_posting.fingerprint

    def test_primary_key_is_fingerprint(self, db_session, sample_posting):
        """Two records with the same fingerprint cannot coexist."""
        now = datetime.now()
        db_session.add(PostingRecord.from_posting(sample_posting, now))
        db_session.commit()
        db_session.expunge_all()

        db_session.add(PostingRecord.from_posting(sample_posting, now))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_missing_required_fields_fails(self, db_session):
        """Test that creating a record without required fields fails."""
        db_session.add(PostingRecord(fingerprint="0" * 32))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_defaults(self, db_session, sample_posting):
        sample_posting.status = PostingStatus.PENDING
        sample_posting.score = None
        sample_posting.description = None
        db_session.add(PostingRecord.from_posting(sample_posting, datetime.now()))
        db_session.commit()

        record = db_session.query(PostingRecord).one()
        assert record.status == "pending"
        assert record.score is None
        assert record.description == ""
