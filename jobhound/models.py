"""
Core data types shared across the pipeline.

A Posting is created by the extractor, enriched with a description,
scored, and only then persisted by the store.
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from .normalize import compute_fingerprint


class PostingStatus(str, Enum):
    """Analysis lifecycle of a stored posting."""

    PENDING = "pending"
    SCORED = "scored"
    FAILED = "failed"


@dataclass
class Posting:
    """One job listing flowing through the pipeline."""

    title: str
    company: str
    url: str
    source: str
    description: Optional[str] = None
    score: Optional[int] = None
    status: PostingStatus = PostingStatus.PENDING
    ingested_at: Optional[datetime] = None

    @property
    def fingerprint(self) -> str:
        return compute_fingerprint(self.title, self.company, self.url)

    @property
    def text(self) -> str:
        """Lowercased title + description used for all scoring matches."""
        return f"{self.title or ''} {self.description or ''}".lower()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        data["fingerprint"] = self.fingerprint
        data["ingested_at"] = self.ingested_at.isoformat() if self.ingested_at else None
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Posting":
        ingested_at = data.get("ingested_at")
        if isinstance(ingested_at, str):
            ingested_at = datetime.fromisoformat(ingested_at)
        return cls(
            title=data.get("title", ""),
            company=data.get("company", ""),
            url=data.get("url", ""),
            source=data.get("source", "unknown"),
            description=data.get("description"),
            score=data.get("score"),
            status=PostingStatus(data.get("status", PostingStatus.PENDING.value)),
            ingested_at=ingested_at,
        )


def _as_tuple(values: Optional[Iterable[str]]) -> Tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        values = values.split(",")
    return tuple(v.strip() for v in values if v and v.strip())


@dataclass(frozen=True)
class Criteria:
    """User scoring preferences. Immutable for the duration of a run."""

    keywords: Tuple[str, ...] = ()
    locations: Tuple[str, ...] = ()
    experience_level: str = ""
    core_skills: Tuple[str, ...] = ()
    remote_preference: str = ""
    excluded_keywords: Tuple[str, ...] = ()

    def __post_init__(self):
        for name in ("keywords", "locations", "core_skills", "excluded_keywords"):
            object.__setattr__(self, name, _as_tuple(getattr(self, name)))
        object.__setattr__(self, "experience_level", (self.experience_level or "").strip())
        object.__setattr__(self, "remote_preference", (self.remote_preference or "").strip())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Criteria":
        """Build criteria from a JSON document (snake_case or camelCase keys)."""

        def pick(*keys, default=None):
            for k in keys:
                if k in data:
                    return data[k]
            return default

        return cls(
            keywords=pick("keywords"),
            locations=pick("locations"),
            experience_level=pick("experience_level", "experienceLevel", default=""),
            core_skills=pick("core_skills", "coreSkills", default=()),
            remote_preference=pick("remote_preference", "remotePreference", default=""),
            excluded_keywords=pick("excluded_keywords", "excludedKeywords", default=()),
        )


@dataclass(frozen=True)
class SearchParams:
    keywords: str
    location: str
    experience_level: Optional[str] = None


@dataclass
class RunSummary:
    """Counts reported by a single pipeline run."""

    analyzed: int = 0
    saved: int = 0
    failed: int = 0
    preserved: int = 0
    purged: int = 0
    sources_failed: list = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
