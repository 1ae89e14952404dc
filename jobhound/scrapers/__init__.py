"""
Source registry.

Sources are listed in declaration order; the pipeline merges their
results in this order regardless of which finishes first.
"""

from typing import Dict, List, Optional, Sequence
from urllib.parse import urlparse

from . import google_jobs, linkedin, wttj
from .common import Source, select_text

# Detail pages on hosts we do not know still get a best-effort read.
GENERIC = Source(
    name="generic",
    detail_wait="main, article",
    description_locators=(
        select_text('[data-test-id="job-description"]'),
        select_text('[class*="job-description"]'),
        select_text("article"),
        select_text("main"),
        select_text('[role="main"]'),
    ),
)

SOURCES: Dict[str, Source] = {
    s.name: s for s in (linkedin.SOURCE, google_jobs.SOURCE, wttj.SOURCE)
}


def get_source(name: str) -> Source:
    try:
        return SOURCES[name.lower()]
    except KeyError:
        raise ValueError(f"Unknown source '{name}'. Use one of: {', '.join(SOURCES)}")


def get_sources(names: Sequence[str]) -> List[Source]:
    return [get_source(n) for n in names]


def source_for_url(url: str, default: Optional[Source] = None) -> Source:
    """Pick the source whose host serves ``url``."""
    host = urlparse(url).netloc
    for source in SOURCES.values():
        if source.matches_host(host):
            return source
    return default or GENERIC


__all__ = ["Source", "SOURCES", "GENERIC", "get_source", "get_sources", "source_for_url"]
