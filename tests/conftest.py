"""
Pytest configuration and shared fixtures.
"""

import asyncio
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pytest

from jobhound.browser import NavigationError, PageSnapshot
from jobhound.models import Criteria, Posting, SearchParams
from jobhound.scrapers import google_jobs, linkedin, wttj
from jobhound.storage import PostingStore

LINKEDIN_DETAIL_URL = "https://www.linkedin.com/jobs/view/frontend-developer-123"
LINKEDIN_BACKEND_URL = "https://www.linkedin.com/jobs/view/backend-engineer-456"
WTTJ_DETAIL_URL = "https://www.welcometothejungle.com/en/companies/trust-wallet/jobs/platform-engineer_remote"

FRONTEND_DESCRIPTION = (
    "We are hiring a Frontend Developer to build our dashboard with React and "
    "TypeScript. We are a remote-first team and expect 3+ years of experience."
)


class FakeSession:
    """
    Stands in for BrowserSession: serves canned HTML per URL.

    URLs listed in ``failing`` raise NavigationError. URLs in ``errors``
    raise the mapped exception as-is. Unknown URLs return an empty page.
    """

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        failing: Iterable[str] = (),
        errors: Optional[Dict[str, Exception]] = None,
    ):
        self.pages = dict(pages or {})
        self.failing = set(failing)
        self.errors = dict(errors or {})
        self.fetched: List[str] = []
        self.entered = 0
        self.exited = 0

    async def __aenter__(self):
        self.entered += 1
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.exited += 1

    async def fetch(self, url: str, wait_for: Optional[str] = None) -> PageSnapshot:
        self.fetched.append(url)
        # Yield to the loop like a real page load would
        await asyncio.sleep(0)
        if url in self.failing:
            raise NavigationError(f"net::ERR_NAME_NOT_RESOLVED at {url}")
        if url in self.errors:
            raise self.errors[url]
        html = self.pages.get(url, "<html><body></body></html>")
        return PageSnapshot(url=url, html=html, content_found=url in self.pages)


class Clock:
    """Injectable ``now`` for the store."""

    def __init__(self, current: datetime):
        self.current = current

    def __call__(self) -> datetime:
        return self.current


@pytest.fixture
def search_params() -> SearchParams:
    return SearchParams(keywords="frontend developer", location="Remote", experience_level="mid")


@pytest.fixture
def sample_linkedin_html() -> str:
    """LinkedIn guest search results with one incomplete card."""
    return f"""
    <html><body>
    <ul class="jobs-search__results-list">
      <li>
        <div class="base-card">
          <a class="base-card__full-link" href="{LINKEDIN_DETAIL_URL}?refId=abc&trackingId=xyz"></a>
          <h3 class="base-search-card__title">  Frontend   Developer </h3>
          <h4 class="base-search-card__subtitle"><a>Acme</a></h4>
        </div>
      </li>
      <li>
        <div class="base-card">
          <a class="base-card__full-link" href="{LINKEDIN_BACKEND_URL}/?trk=public_jobs"></a>
          <h3 class="base-search-card__title">Backend Engineer</h3>
          <h4 class="base-search-card__subtitle"><a>Globex</a></h4>
        </div>
      </li>
      <li>
        <div class="base-card">
          <a class="base-card__full-link" href="https://www.linkedin.com/jobs/view/mystery-789"></a>
          <h3 class="base-search-card__title">Mystery Role</h3>
        </div>
      </li>
    </ul>
    </body></html>
    """


@pytest.fixture
def sample_linkedin_drifted_html() -> str:
    """LinkedIn results after a markup change: only the last-resort locators match."""
    return """
    <html><body>
      <div class="job-search-card">
        <h3>Data Engineer</h3>
        <h4>Initech</h4>
        <a href="/jobs/view/data-engineer-321?position=1">View</a>
      </div>
    </body></html>
    """


@pytest.fixture
def sample_google_html() -> str:
    """Google Jobs panel results."""
    return """
    <html><body>
      <div role="listitem">
        <a href="https://www.google.com/search?q=qa&ibp=htl;jobs#htidocid=abc">
          <h3>QA Engineer</h3>
        </a>
        <div class="vNEEBe">Umbrella</div>
      </div>
    </body></html>
    """


@pytest.fixture
def sample_wttj_html() -> str:
    """Welcome to the Jungle results with relative links and a cross-source duplicate."""
    return """
    <html><body>
    <ol>
      <li data-testid="search-results-list-item-wrapper">
        <a href="/en/companies/trust-wallet/jobs/platform-engineer_remote">
          <h4>Platform Engineer</h4>
        </a>
        <span data-testid="job-card-company-name">Trust Wallet</span>
      </li>
      <li data-testid="search-results-list-item-wrapper">
        <a href="/en/companies/acme/jobs/frontend-developer_paris">
          <h4>frontend developer</h4>
        </a>
        <span data-testid="job-card-company-name">ACME</span>
      </li>
    </ol>
    </body></html>
    """


@pytest.fixture
def linkedin_detail_html() -> str:
    return f"""
    <html><body>
      <div class="show-more-less-html__markup">{FRONTEND_DESCRIPTION}</div>
    </body></html>
    """


@pytest.fixture
def wttj_detail_html() -> str:
    return """
    <html><body>
      <div data-testid="job-section-description">
        Trust Wallet is looking for a senior platform engineer with Kubernetes and AWS
        experience. Fully remote, equity and a learning budget included.
      </div>
    </body></html>
    """


@pytest.fixture
def site_pages(
    search_params,
    sample_linkedin_html,
    sample_google_html,
    sample_wttj_html,
    linkedin_detail_html,
    wttj_detail_html,
) -> Dict[str, str]:
    """Every canned page for a full run over all three sources."""
    return {
        linkedin.build_search_url(search_params): sample_linkedin_html,
        google_jobs.build_search_url(search_params): sample_google_html,
        wttj.build_search_url(search_params): sample_wttj_html,
        LINKEDIN_DETAIL_URL: linkedin_detail_html,
        WTTJ_DETAIL_URL: wttj_detail_html,
    }


@pytest.fixture
def trust_wallet_posting() -> Posting:
    """A fully described posting."""
    return Posting(
        title="Senior Platform Engineer",
        company="Trust Wallet",
        url=WTTJ_DETAIL_URL,
        source="wttj",
        description=(
            "Trust Wallet is looking for a senior platform engineer with Kubernetes "
            "and AWS experience. Fully remote, equity and a learning budget included."
        ),
    )


@pytest.fixture
def frontend_posting() -> Posting:
    return Posting(
        title="Frontend Developer",
        company="Acme",
        url=LINKEDIN_DETAIL_URL,
        source="linkedin",
        description=FRONTEND_DESCRIPTION,
    )


@pytest.fixture
def frontend_criteria() -> Criteria:
    return Criteria(
        core_skills=["React", "TypeScript"],
        experience_level="mid",
        remote_preference="remote",
    )


@pytest.fixture
def clock() -> Clock:
    return Clock(datetime(2024, 3, 15, 12, 0, 0))


@pytest.fixture
def store(tmp_path, clock):
    """Empty store in a temp directory, driven by ``clock``."""
    s = PostingStore(tmp_path / "data" / "jobs.db", now=clock)
    yield s
    s.close()
