"""
Cleanup module for removing stale postings outside of a pipeline run.

Stale postings are those ingested more than a given number of days ago
(default: 7). The weekly refresh applies the same rule during a run; this
entry point is for manual maintenance of the store.
"""

from pathlib import Path
from typing import Tuple

from .errors import StorageFailure
from .logger import get_logger
from .storage import PostingStore, RETENTION_DAYS

logger = get_logger()


def cleanup_stale_postings(db_path: Path, days: int = RETENTION_DAYS) -> Tuple[int, int]:
    """
    Remove postings older than the specified number of days.

    Args:
        db_path: Path to the SQLite store
        days: Number of days to keep postings (default: 7)

    Returns:
        Tuple of (total_before, total_after)
        Difference = postings_removed
    """
    if not Path(db_path).exists():
        logger.warning("Store not found, nothing to clean", db=str(db_path))
        return (0, 0)

    try:
        store = PostingStore(db_path)
        try:
            before = store.count()
            store.purge_older_than(days)
            after = store.count()
        finally:
            store.close()
    except StorageFailure as e:
        logger.error(f"Cleanup failed: {e}", error=str(e), days=days)
        return (0, 0)

    logger.info(
        f"Cleanup complete: {before - after} removed, {after} remaining",
        postings_before=before,
        postings_removed=before - after,
        postings_after=after,
        days_threshold=days,
    )
    return (before, after)
