from typing import Any, Dict, List, Tuple
from urllib.parse import urlparse

REQUIRED_STR_FIELDS = ["title", "company", "url"]
OPTIONAL_STR_FIELDS = [
    "source",
    "description",
]

TITLE_LENGTH = (3, 200)
COMPANY_LENGTH = (2, 200)


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    try:
        p = urlparse(v)
        return p.scheme in ("http", "https") and bool(p.netloc)
    except ValueError:
        return False


def _check_length(errors: List[str], data: Dict[str, Any], name: str, bounds: Tuple[int, int]) -> None:
    value = data.get(name)
    if not _is_non_empty_str(value):
        return
    low, high = bounds
    if not low <= len(value.strip()) <= high:
        errors.append(f"Field '{name}' length must be between {low} and {high}")


def validate_posting(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Applied to every card the extractor pulls off a listing page.
    """
    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    for f in OPTIONAL_STR_FIELDS:
        if f in data and data[f] is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    if _is_non_empty_str(data.get("url")) and not _valid_url(data["url"]):
        errors.append("Field 'url' must be a valid absolute URL (scheme + host)")

    _check_length(errors, data, "title", TITLE_LENGTH)
    _check_length(errors, data, "company", COMPANY_LENGTH)

    score = data.get("score")
    if score is not None and (not isinstance(score, int) or isinstance(score, bool) or not 0 <= score <= 100):
        errors.append("Field 'score' must be an integer between 0 and 100")

    return errors
