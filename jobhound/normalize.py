import hashlib
from urllib.parse import urljoin, urlparse


def clean_text(s: str) -> str:
    """Collapse whitespace runs but keep case (for display fields)."""
    return " ".join((s or "").split())


def canonical_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path.rstrip("/")
    # Drop query and fragment to avoid source-specific tracking
    return f"{parsed.scheme}://{parsed.netloc}{path}" if parsed.scheme and parsed.netloc else path


def absolute_url(href: str, base_url: str) -> str:
    if not href:
        return ""
    return urljoin(base_url, href.strip())


def compute_fingerprint(title: str, company: str, url: str) -> str:
    # Changing this invalidates every stored identity.
    content = f"{title or ''}-{company or ''}-{url or ''}".lower()
    return hashlib.md5(content.encode("utf-8")).hexdigest()
