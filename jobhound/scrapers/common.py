"""
Shared building blocks for source locator chains.

A locator is a pure function over a parsed document (or one card inside
it) returning a value or None. Each source declares ranked lists of them;
the first acceptable result wins, so one changed class name degrades a
source instead of breaking it.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from ..errors import ContentNotFound
from ..models import SearchParams
from ..normalize import absolute_url, canonical_url, clean_text

MIN_DESCRIPTION_LENGTH = 50

Locator = Callable[[Tag], Optional[str]]
CardLocator = Callable[[BeautifulSoup], List[Tag]]


def text_of(node: Optional[Tag]) -> str:
    if node is None:
        return ""
    return clean_text(node.get_text(" ", strip=True))


def select_text(selector: str) -> Locator:
    """First element matching ``selector`` with non-empty text."""

    def locate(node: Tag) -> Optional[str]:
        for el in node.select(selector):
            text = text_of(el)
            if text:
                return text
        return None

    locate.__name__ = f"text({selector})"
    return locate


def select_attr(selector: str, attr: str) -> Locator:
    """Attribute value of the first matching element that carries it."""

    def locate(node: Tag) -> Optional[str]:
        for el in node.select(selector):
            value = el.get(attr)
            if value and value.strip():
                return value.strip()
        return None

    locate.__name__ = f"attr({selector}@{attr})"
    return locate


def select_cards(selector: str) -> CardLocator:
    def locate(soup: BeautifulSoup) -> List[Tag]:
        return soup.select(selector)

    locate.__name__ = f"cards({selector})"
    return locate


def first_match(
    locators: Sequence[Locator],
    node: Tag,
    accept: Callable[[str], bool] = bool,
) -> Optional[str]:
    """Evaluate ``locators`` in rank order; return the first accepted value."""
    for locator in locators:
        value = locator(node)
        if value is not None and accept(value):
            return value
    return None


def long_enough(text: str) -> bool:
    return len(text.strip()) > MIN_DESCRIPTION_LENGTH


@dataclass(frozen=True)
class Source:
    """Declarative description of one listing site."""

    name: str
    hosts: Tuple[str, ...] = ()
    search_url: Optional[Callable[[SearchParams], str]] = None
    listing_wait: Optional[str] = None
    card_locators: Tuple[CardLocator, ...] = ()
    title_locators: Tuple[Locator, ...] = ()
    company_locators: Tuple[Locator, ...] = ()
    link_locators: Tuple[Locator, ...] = ()
    detail_wait: Optional[str] = None
    description_locators: Tuple[Locator, ...] = ()
    canonical_links: bool = False

    def matches_host(self, host: str) -> bool:
        host = host.lower()
        return any(host == h or host.endswith("." + h) for h in self.hosts)


def find_cards(source: Source, soup: BeautifulSoup) -> List[Tag]:
    """Cards from the first card locator that finds any."""
    for locator in source.card_locators:
        cards = locator(soup)
        if cards:
            return cards
    return []


def extract_cards(source: Source, soup: BeautifulSoup, base_url: str) -> List[Dict[str, str]]:
    """Raw posting dicts for every card on a listing page, in page order."""
    results = []
    for card in find_cards(source, soup):
        href = first_match(source.link_locators, card) or ""
        url = absolute_url(href, base_url)
        if url and source.canonical_links:
            url = canonical_url(url)
        results.append({
            "title": first_match(source.title_locators, card) or "",
            "company": first_match(source.company_locators, card) or "",
            "url": url,
            "source": source.name,
        })
    return results


def extract_description(source: Source, soup: BeautifulSoup) -> str:
    """
    Description text from the first locator yielding more than
    MIN_DESCRIPTION_LENGTH characters.

    Raises ContentNotFound when every locator is exhausted.
    """
    text = first_match(source.description_locators, soup, accept=long_enough)
    if text is None:
        raise ContentNotFound(f"No description region matched for {source.name}")
    return text
