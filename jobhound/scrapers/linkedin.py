from urllib.parse import urlencode

from ..models import SearchParams
from .common import Source, select_attr, select_cards, select_text

# LinkedIn f_E experience filter values
EXPERIENCE_FILTERS = {
    "junior": "2",
    "entry": "2",
    "mid": "3",
    "senior": "4",
}


def build_search_url(params: SearchParams) -> str:
    query = {"keywords": params.keywords, "location": params.location}
    level = (params.experience_level or "").lower()
    for key, value in EXPERIENCE_FILTERS.items():
        if level.startswith(key):
            query["f_E"] = value
            break
    return f"https://www.linkedin.com/jobs/search/?{urlencode(query)}"


SOURCE = Source(
    name="linkedin",
    hosts=("linkedin.com",),
    search_url=build_search_url,
    listing_wait=".jobs-search__results-list",
    card_locators=(
        select_cards(".jobs-search__results-list > li"),
        select_cards(".job-search-card"),
        select_cards("div.base-card"),
        select_cards("li[data-occludable-job-id]"),
    ),
    title_locators=(
        select_text(".base-search-card__title"),
        select_text(".job-card-list__title"),
        select_text("h3"),
    ),
    company_locators=(
        select_text(".base-search-card__subtitle"),
        select_text(".job-card-container__company-name"),
        select_text("h4"),
    ),
    link_locators=(
        select_attr('a[data-tracking-control-name="public_jobs_jserp-result_search-card"]', "href"),
        select_attr("a.base-card__full-link", "href"),
        select_attr('a[href*="/jobs/view/"]', "href"),
    ),
    detail_wait=".show-more-less-html__markup, .description__text",
    description_locators=(
        select_text(".show-more-less-html__markup"),
        select_text(".description__text"),
        select_text(".jobs-description__content"),
        select_text("section.description"),
    ),
    # Listing links carry tracking query strings
    canonical_links=True,
)
