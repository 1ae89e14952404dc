"""
Durable, deduplicated, freshness-bounded posting storage.

Every record is keyed by its content fingerprint. Batch versus incremental
persistence is a caller choice of how often ``save`` is invoked; the weekly
refresh is the only path that deletes.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .database import PostingRecord, init_database
from .errors import StorageFailure
from .logger import get_logger
from .models import Posting, PostingStatus

logger = get_logger()

RETENTION_DAYS = 7


@dataclass
class RefreshResult:
    inserted: int = 0
    preserved: int = 0
    purged: int = 0


class PostingStore:
    """SQLite-backed store. Single writer; one run at a time."""

    def __init__(
        self,
        db_path: Path,
        retention_days: int = RETENTION_DAYS,
        now: Callable[[], datetime] = datetime.now,
    ):
        self.db_path = Path(db_path)
        self.retention_days = retention_days
        self.now = now
        try:
            self.engine = init_database(self.db_path)
        except (SQLAlchemyError, OSError) as e:
            raise StorageFailure(f"Cannot open store at {self.db_path}: {e}") from e
        self._Session = sessionmaker(bind=self.engine, expire_on_commit=False)

    @contextmanager
    def _session(self):
        session = self._Session()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Storage operation failed", db=str(self.db_path), error=str(e))
            raise StorageFailure(str(e)) from e
        finally:
            session.close()

    def close(self):
        self.engine.dispose()

    # Writes

    def save(self, posting: Posting) -> bool:
        """Persist ``posting`` unless its fingerprint is already stored.

        Returns True when a new record was written. The check-then-insert is
        not atomic against concurrent writers.
        """
        fp = posting.fingerprint
        with self._session() as session:
            if session.get(PostingRecord, fp) is not None:
                logger.debug("Posting already stored", title=posting.title, company=posting.company)
                return False
            ingested_at = self.now()
            session.add(PostingRecord.from_posting(posting, ingested_at))
        posting.ingested_at = ingested_at
        logger.debug("Saved posting", title=posting.title, company=posting.company, status=posting.status.value)
        return True

    def weekly_refresh(self, new_batch: Iterable[Posting]) -> int:
        """Apply the retention policy against a fresh batch. Returns count inserted."""
        return self.refresh(new_batch).inserted

    def refresh(self, new_batch: Iterable[Posting]) -> RefreshResult:
        """
        Insert unseen postings and purge stale ones in a single transaction.

        1. Partition the batch into preserved (already stored) and new.
        2. Delete records older than the retention window unless the batch
           re-confirmed them.
        3. Insert the new postings.
        """
        batch = list(new_batch)
        batch_fps = {p.fingerprint for p in batch}
        now = self.now()
        cutoff = now - timedelta(days=self.retention_days)
        result = RefreshResult()

        with self._session() as session:
            existing = self._existing(session, batch_fps)
            fresh: Dict[str, Posting] = {}
            for posting in batch:
                fp = posting.fingerprint
                if fp in existing:
                    result.preserved += 1
                elif fp not in fresh:
                    fresh[fp] = posting

            stale = session.execute(
                select(PostingRecord).where(PostingRecord.ingested_at < cutoff)
            ).scalars().all()
            for record in stale:
                if record.fingerprint in batch_fps:
                    continue
                session.delete(record)
                result.purged += 1

            for posting in fresh.values():
                session.add(PostingRecord.from_posting(posting, now))
                posting.ingested_at = now
            result.inserted = len(fresh)

        logger.info(
            "Weekly refresh complete",
            inserted=result.inserted,
            preserved=result.preserved,
            purged=result.purged,
        )
        return result

    def purge_older_than(self, days: int, keep: Iterable[str] = ()) -> int:
        """Delete records ingested more than ``days`` ago, except fingerprints in ``keep``."""
        keep = set(keep)
        cutoff = self.now() - timedelta(days=days)
        removed = 0
        with self._session() as session:
            stale = session.execute(
                select(PostingRecord).where(PostingRecord.ingested_at < cutoff)
            ).scalars().all()
            for record in stale:
                if record.fingerprint not in keep:
                    session.delete(record)
                    removed += 1
        return removed

    def mark_scored(self, fingerprint: str, score: int) -> bool:
        return self._transition(fingerprint, PostingStatus.SCORED, score)

    def mark_failed(self, fingerprint: str) -> bool:
        return self._transition(fingerprint, PostingStatus.FAILED, None)

    def _transition(self, fingerprint: str, status: PostingStatus, score: Optional[int]) -> bool:
        # scored and failed are terminal; only pending records move.
        with self._session() as session:
            record = session.get(PostingRecord, fingerprint)
            if record is None or record.status != PostingStatus.PENDING.value:
                return False
            record.status = status.value
            record.score = score
        return True

    # Reads

    @staticmethod
    def _existing(session, fingerprints: Set[str]) -> Set[str]:
        if not fingerprints:
            return set()
        rows = session.execute(
            select(PostingRecord.fingerprint).where(PostingRecord.fingerprint.in_(sorted(fingerprints)))
        ).scalars()
        return set(rows)

    def known_fingerprints(self, fingerprints: Iterable[str]) -> Set[str]:
        with self._session() as session:
            return self._existing(session, set(fingerprints))

    def get(self, fingerprint: str) -> Optional[Posting]:
        with self._session() as session:
            record = session.get(PostingRecord, fingerprint)
            return record.to_posting() if record else None

    def get_pending(self, limit: int = 50) -> List[Posting]:
        """Pending postings, newest first."""
        _check_limit(limit)
        with self._session() as session:
            records = session.execute(
                select(PostingRecord)
                .where(PostingRecord.status == PostingStatus.PENDING.value)
                .order_by(PostingRecord.ingested_at.desc())
                .limit(limit)
            ).scalars().all()
            return [r.to_posting() for r in records]

    def get_by_score_at_least(self, threshold: int, limit: int = 10) -> List[Posting]:
        """Scored postings at or above ``threshold``, best score first then newest."""
        _check_limit(limit)
        with self._session() as session:
            records = session.execute(
                select(PostingRecord)
                .where(
                    PostingRecord.status == PostingStatus.SCORED.value,
                    PostingRecord.score >= threshold,
                )
                .order_by(PostingRecord.score.desc(), PostingRecord.ingested_at.desc())
                .limit(limit)
            ).scalars().all()
            return [r.to_posting() for r in records]

    def count(self) -> int:
        with self._session() as session:
            return session.execute(select(func.count()).select_from(PostingRecord)).scalar_one()

    def stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in PostingStatus}
        with self._session() as session:
            rows = session.execute(
                select(PostingRecord.status, func.count()).group_by(PostingRecord.status)
            ).all()
        for status, n in rows:
            counts[status] = n
        return {"total": sum(counts.values()), **counts}


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise ValueError("limit must be a positive integer")
