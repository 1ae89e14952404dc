"""
Structured extraction from listing and detail pages.

The extractor only knows how to turn one rendered page into data. It does
not own the browsing session, and it never raises for "page loaded but
nothing matched".
"""

from dataclasses import replace
from typing import List, Optional, Union

from .browser import NavigationError
from .errors import ContentNotFound, ExtractionUnavailable
from .logger import get_logger
from .models import Posting, SearchParams
from .schema import validate_posting
from .scrapers import GENERIC, Source, get_source, source_for_url
from .scrapers.common import extract_cards, extract_description

logger = get_logger()

SourceRef = Union[Source, str, None]


def _resolve(source: SourceRef) -> Optional[Source]:
    if source is None or isinstance(source, Source):
        return source
    return get_source(source)


class Extractor:
    """
    Drives a browsing session against listing and detail pages.

    ``session`` is anything with ``async fetch(url, wait_for) -> PageSnapshot``.
    """

    def __init__(self, session):
        self.session = session

    async def list_postings(self, source: SourceRef, params: SearchParams) -> List[Posting]:
        """
        Postings from one source's search results, in page order.

        Returns an empty list when the page loaded but held no usable
        cards. Raises ExtractionUnavailable if the page could not be loaded
        or the session failed while loading it.
        """
        source = _resolve(source)
        url = source.search_url(params)
        logger.record_listing_attempt(source.name)
        logger.info(f"Searching {source.name}", url=url)

        try:
            snapshot = await self.session.fetch(url, wait_for=source.listing_wait)
        except NavigationError as e:
            logger.record_listing_failure(source.name, type(e).__name__)
            logger.error(f"{source.name} listing unavailable", url=url, error=str(e))
            raise ExtractionUnavailable(source.name, str(e)) from e
        except Exception as e:
            logger.record_listing_failure(source.name, type(e).__name__)
            logger.error(f"{source.name} listing failed", url=url, error=str(e))
            raise ExtractionUnavailable(source.name, f"{type(e).__name__}: {e}") from e

        raw_cards = extract_cards(source, snapshot.soup(), snapshot.url or url)
        postings = []
        skipped = 0
        for card in raw_cards:
            errors = validate_posting(card)
            if errors:
                skipped += 1
                logger.debug("Skipping incomplete card", source=source.name, errors=errors)
                continue
            postings.append(Posting(
                title=card["title"],
                company=card["company"],
                url=card["url"],
                source=source.name,
            ))

        logger.record_listing_success(source.name)
        logger.info(
            f"Scraped {len(postings)} postings from {source.name}",
            cards=len(raw_cards),
            skipped=skipped,
            content_found=snapshot.content_found,
        )
        return postings

    def detail_source(self, source: SourceRef, url: str) -> Source:
        """Locators for a detail page: the host's own source wins."""
        by_host = source_for_url(url)
        if by_host is not GENERIC:
            return by_host
        source = _resolve(source)
        if source is None or source is GENERIC:
            return GENERIC
        return replace(
            GENERIC,
            name=source.name,
            description_locators=source.description_locators + GENERIC.description_locators,
        )

    async def fetch_description(self, source: SourceRef, url: str) -> str:
        """
        Best-effort plain text of a posting. Never raises; returns "" when
        the page fails to load or no locator yields enough text.
        """
        detail = self.detail_source(source, url)
        try:
            snapshot = await self.session.fetch(url, wait_for=detail.detail_wait)
        except NavigationError as e:
            logger.record_error(type(e).__name__)
            logger.record_description(False)
            logger.warning("Could not fetch description", url=url, error=str(e))
            return ""
        except Exception as e:
            logger.record_error(type(e).__name__)
            logger.record_description(False)
            logger.warning("Description fetch failed", url=url, error=str(e))
            return ""

        try:
            description = extract_description(detail, snapshot.soup())
        except ContentNotFound:
            logger.record_description(False)
            logger.warning("No description found", url=url, source=detail.name)
            return ""

        logger.record_description(True)
        logger.debug("Fetched description", url=url, length=len(description))
        return description
