from urllib.parse import quote_plus

from ..models import SearchParams
from .common import Source, select_attr, select_cards, select_text


def build_search_url(params: SearchParams) -> str:
    query = quote_plus(f"{params.keywords} jobs {params.location}".strip())
    return f"https://www.google.com/search?q={query}&ibp=htl;jobs"


SOURCE = Source(
    name="google",
    hosts=("google.com",),
    search_url=build_search_url,
    listing_wait='[data-ved][jsname] h3, .PwjeAc, [role="listitem"], .BjJfJf',
    card_locators=(
        select_cards('[role="listitem"]'),
        select_cards(".PwjeAc"),
        select_cards("[data-ved][jsname]"),
        select_cards("div:has(> .BjJfJf)"),
    ),
    title_locators=(
        select_text("h3"),
        select_text('[role="heading"]'),
        select_text(".BjJfJf"),
        select_text('[data-test-id="job-title"]'),
        select_text('div[style*="font-weight"]'),
    ),
    company_locators=(
        select_text(".vNEEBe"),
        select_text(".nJlQNd"),
        select_text('[data-test-id="employer-name"]'),
        select_text(".BjJfJf + div"),
        select_text('span[style*="color"]'),
    ),
    link_locators=(
        select_attr('a[href*="jobs"]', "href"),
        select_attr("a[data-ved]", "href"),
        select_attr("a", "href"),
    ),
    detail_wait='.HBvzbc, .YgLbBe, [data-test-id="job-description"], .g9WBQb',
    description_locators=(
        select_text(".HBvzbc"),
        select_text(".YgLbBe"),
        select_text('[data-test-id="job-description"]'),
        select_text(".g9WBQb"),
        select_text(".Qk80Jf"),
    ),
)
