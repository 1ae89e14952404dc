"""
Deduplication of extracted postings.

Within a run, postings are unique by case-insensitive (title, company).
Across runs, the store keys records by fingerprint.
"""

from typing import Iterable, List, Set, Tuple

from .models import Posting


def fingerprint(posting: Posting) -> str:
    """Stable content hash over lowercased title, company and url."""
    return posting.fingerprint


def batch_key(posting: Posting) -> Tuple[str, str]:
    return (posting.title.lower(), posting.company.lower())


def dedupe_batch(postings: Iterable[Posting]) -> List[Posting]:
    """Drop repeated (title, company) pairs, keeping the first occurrence."""
    seen: Set[Tuple[str, str]] = set()
    result = []
    for posting in postings:
        key = batch_key(posting)
        if key in seen:
            continue
        seen.add(key)
        result.append(posting)
    return result


def filter_unseen(postings: Iterable[Posting], known: Set[str]) -> List[Posting]:
    """Keep postings whose fingerprint is not in ``known``."""
    return [p for p in postings if fingerprint(p) not in known]

