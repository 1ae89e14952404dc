"""
Pipeline orchestration.

Sequences extraction, deduplication, scoring and storage for one run. The
pipeline is the only component that knows about all four, and it owns the
browsing session for the run's duration.

Run modes:
    full refresh      scrape, score new postings, apply the retention policy
    incremental       scrape and save each new posting (optionally unscored)
    pending analysis  score stored pending postings without scraping
"""

import asyncio
from contextlib import contextmanager
from typing import Callable, List, Optional, Sequence

from .browser import BrowserSession
from .dedupe import dedupe_batch, filter_unseen
from .errors import ExtractionUnavailable, ScoringFailure
from .extractor import Extractor
from .logger import get_logger
from .models import Criteria, Posting, PostingStatus, RunSummary, SearchParams
from .retry import RateLimiter
from .scoring import score
from .scrapers import Source
from .storage import PostingStore

logger = get_logger()


class Pipeline:
    """
    One pipeline per store. Holds no state between runs apart from the
    single-run guard.

    Args:
        store: Persistence layer
        criteria: Scoring criteria for every run
        sources: Listing sources in merge order
        session_factory: Zero-arg callable returning an async context
            manager that yields a browsing session
        max_jobs: Cap on detail fetches per run
        delay_seconds: Fixed gap between the end of one detail fetch and
            the start of the next
        rate_limiter: Overrides the limiter built from ``delay_seconds``
        scorer: ``(posting, criteria) -> int``
    """

    def __init__(
        self,
        store: PostingStore,
        criteria: Criteria,
        sources: Sequence[Source],
        session_factory: Callable = BrowserSession,
        max_jobs: int = 100,
        delay_seconds: float = 1.0,
        rate_limiter: Optional[RateLimiter] = None,
        scorer: Callable[[Posting, Criteria], int] = score,
    ):
        self.store = store
        self.criteria = criteria
        self.sources = list(sources)
        self.session_factory = session_factory
        self.max_jobs = max_jobs
        self.delay_seconds = delay_seconds
        self.rate_limiter = rate_limiter
        self.scorer = scorer
        self._running = False

    @contextmanager
    def _exclusive(self, mode: str):
        if self._running:
            logger.warning("Pipeline run already in progress, skipping", mode=mode)
            yield False
            return
        self._running = True
        logger.reset_metrics()
        logger.info(f"Starting {mode} run")
        try:
            yield True
        finally:
            self._running = False
            logger.log_metrics_summary()

    # Steps

    async def collect(self, extractor: Extractor, params: SearchParams, summary: RunSummary) -> List[Posting]:
        """List every source concurrently and merge in declaration order."""
        results = await asyncio.gather(
            *(extractor.list_postings(source, params) for source in self.sources),
            return_exceptions=True,
        )

        merged: List[Posting] = []
        for source, result in zip(self.sources, results):
            if isinstance(result, ExtractionUnavailable):
                summary.sources_failed.append(source.name)
                continue
            if isinstance(result, BaseException):
                raise result
            merged.extend(result)

        if self.sources and len(summary.sources_failed) == len(self.sources):
            raise ExtractionUnavailable("all", "No source could be reached")

        unique = dedupe_batch(merged)
        logger.info(f"Collected {len(unique)} unique postings", raw=len(merged))
        return unique

    async def enrich(self, extractor: Extractor, postings: List[Posting]) -> None:
        """
        Fetch descriptions one at a time. The limiter period runs from the
        end of one fetch to the start of the next.
        """
        limiter = self.rate_limiter or RateLimiter(max_calls=1, period=self.delay_seconds)
        to_fetch = postings[: self.max_jobs]
        if len(postings) > len(to_fetch):
            logger.info("Description cap reached", fetching=len(to_fetch), skipped=len(postings) - len(to_fetch))

        for i, posting in enumerate(to_fetch, start=1):
            await limiter.acquire()
            logger.debug(f"Fetching description {i}/{len(to_fetch)}", url=posting.url)
            try:
                posting.description = await extractor.fetch_description(posting.source, posting.url)
            except Exception as e:
                logger.warning("Description fetch failed", url=posting.url, error=str(e))
                logger.record_error(type(e).__name__)
                posting.description = ""
            finally:
                limiter.release()

        for posting in postings[len(to_fetch):]:
            posting.description = posting.description or ""

    def score_posting(self, posting: Posting) -> bool:
        """Score in place. Failures become ``status=failed`` with no score."""
        try:
            value = int(self.scorer(posting, self.criteria))
        except Exception as e:
            failure = ScoringFailure(f"{type(e).__name__}: {e}")
            posting.score = None
            posting.status = PostingStatus.FAILED
            logger.record_scoring(False)
            logger.record_error(type(failure).__name__)
            logger.error("Scoring failed", title=posting.title, company=posting.company, error=str(failure))
            return False

        posting.score = max(0, min(100, value))
        posting.status = PostingStatus.SCORED
        logger.record_scoring(True)
        logger.debug("Scored posting", title=posting.title, score=posting.score)
        return True

    def _tally(self, postings: List[Posting], summary: RunSummary) -> None:
        for posting in postings:
            if self.score_posting(posting):
                summary.analyzed += 1
            else:
                summary.failed += 1

    # Entry points

    async def run_full_refresh(self, params: SearchParams) -> Optional[RunSummary]:
        """Scrape, score unseen postings, then apply the weekly retention policy."""
        with self._exclusive("full refresh") as acquired:
            if not acquired:
                return None
            summary = RunSummary()

            async with self.session_factory() as session:
                extractor = Extractor(session)
                postings = await self.collect(extractor, params, summary)
                if not postings:
                    logger.warning("No postings found, store left untouched")
                    return summary

                known = self.store.known_fingerprints(p.fingerprint for p in postings)
                fresh = filter_unseen(postings, known)
                await self.enrich(extractor, fresh)
                self._tally(fresh, summary)

                result = self.store.refresh(postings)

            summary.saved = result.inserted
            summary.preserved = result.preserved
            summary.purged = result.purged
            logger.info("Full refresh complete", **summary.to_dict())
            return summary

    async def run_incremental(self, params: SearchParams, analyze: bool = True) -> Optional[RunSummary]:
        """
        Scrape and save each unseen posting as soon as it is ready.

        With ``analyze=False`` postings are stored as pending for a later
        pending-only analysis run.
        """
        with self._exclusive("incremental") as acquired:
            if not acquired:
                return None
            summary = RunSummary()

            async with self.session_factory() as session:
                extractor = Extractor(session)
                postings = await self.collect(extractor, params, summary)
                known = self.store.known_fingerprints(p.fingerprint for p in postings)
                fresh = filter_unseen(postings, known)
                summary.preserved = len(postings) - len(fresh)
                await self.enrich(extractor, fresh)

                for posting in fresh:
                    if analyze:
                        if self.score_posting(posting):
                            summary.analyzed += 1
                        else:
                            summary.failed += 1
                    if self.store.save(posting):
                        summary.saved += 1

            logger.info("Incremental run complete", **summary.to_dict())
            return summary

    async def run_pending_analysis(self, limit: int = 50) -> Optional[RunSummary]:
        """Score stored pending postings without re-scraping."""
        with self._exclusive("pending analysis") as acquired:
            if not acquired:
                return None
            summary = RunSummary()

            pending = self.store.get_pending(limit)
            if not pending:
                logger.info("No pending postings to analyze")
                return summary

            for posting in pending:
                if self.score_posting(posting):
                    summary.analyzed += 1
                    updated = self.store.mark_scored(posting.fingerprint, posting.score)
                else:
                    summary.failed += 1
                    updated = self.store.mark_failed(posting.fingerprint)
                if updated:
                    summary.saved += 1

            logger.info("Pending analysis complete", **summary.to_dict())
            return summary
