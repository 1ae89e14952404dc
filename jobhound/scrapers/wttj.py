"""Welcome to the Jungle job board."""

from urllib.parse import urlencode

from ..models import SearchParams
from .common import Source, select_attr, select_cards, select_text


def build_search_url(params: SearchParams) -> str:
    query = {"query": params.keywords, "aroundQuery": params.location}
    return f"https://www.welcometothejungle.com/en/jobs?{urlencode(query)}"


SOURCE = Source(
    name="wttj",
    hosts=("welcometothejungle.com",),
    search_url=build_search_url,
    listing_wait='[data-testid="search-results-list-item-wrapper"], [data-testid="job-card"]',
    card_locators=(
        select_cards('li[data-testid="search-results-list-item-wrapper"]'),
        select_cards('[data-testid="job-card"]'),
        select_cards("ol li:has(a[href*='/jobs/'])"),
    ),
    title_locators=(
        select_text('[data-testid="job-card-title"]'),
        select_text("h4"),
        select_text("h3"),
    ),
    company_locators=(
        select_text('[data-testid="job-card-company-name"]'),
        select_text("span[class*='CompanyName']"),
        select_attr("img[alt]", "alt"),
    ),
    link_locators=(
        select_attr("a[href*='/jobs/']", "href"),
        select_attr("a", "href"),
    ),
    detail_wait='[data-testid="job-section-description"], main',
    description_locators=(
        select_text('[data-testid="job-section-description"]'),
        select_text("#the-position-section"),
        select_text('section[data-testid*="description"]'),
        select_text("main article"),
    ),
    canonical_links=True,
)
