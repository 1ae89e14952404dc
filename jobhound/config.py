"""
Settings read from the environment.

Scoring criteria and search parameters are derived from these values;
the pipeline itself only ever sees the parsed ``Criteria`` and
``SearchParams``.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from .models import Criteria, SearchParams

DEFAULT_SOURCES = ("linkedin", "google", "wttj")


def parse_list(value: Optional[str]) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()] if value else []


def parse_int(value: Optional[str], fallback: int) -> int:
    if not value:
        return fallback
    try:
        return int(value)
    except ValueError:
        return fallback


def parse_bool(value: Optional[str], fallback: bool) -> bool:
    if value is None or value.strip() == "":
        return fallback
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class SmtpSettings:
    host: str = ""
    port: int = 587
    user: str = ""
    password: str = ""
    from_addr: str = ""
    to_addr: str = ""

    @property
    def configured(self) -> bool:
        return all([self.host, self.user, self.password, self.to_addr])


@dataclass(frozen=True)
class Settings:
    keywords: Tuple[str, ...] = ("software engineer",)
    locations: Tuple[str, ...] = ("Remote",)
    experience_level: str = "mid"
    core_skills: Tuple[str, ...] = ()
    remote_preference: str = "remote"
    excluded_keywords: Tuple[str, ...] = ()
    sources: Tuple[str, ...] = DEFAULT_SOURCES
    max_jobs: int = 100
    delay_ms: int = 1000
    timeout_ms: int = 30000
    wait_timeout_ms: int = 10000
    headless: bool = True
    db_path: Path = Path("data/jobs.db")
    retention_days: int = 7
    score_threshold: int = 60
    analyze_limit: int = 50
    report_limit: int = 10
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    smtp: SmtpSettings = SmtpSettings()

    def criteria(self) -> Criteria:
        return Criteria(
            keywords=self.keywords,
            locations=self.locations,
            experience_level=self.experience_level,
            core_skills=self.core_skills,
            remote_preference=self.remote_preference,
            excluded_keywords=self.excluded_keywords,
        )

    def search_params(self) -> SearchParams:
        return SearchParams(
            keywords=" ".join(self.keywords),
            location=self.locations[0] if self.locations else "Remote",
            experience_level=self.experience_level or None,
        )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables (``os.environ`` by default)."""
    env = os.environ if environ is None else environ
    defaults = Settings()

    user = env.get("SMTP_USER", "")
    smtp = SmtpSettings(
        host=env.get("SMTP_HOST", ""),
        port=parse_int(env.get("SMTP_PORT"), 587),
        user=user,
        password=env.get("SMTP_PASSWORD", ""),
        from_addr=env.get("FROM_EMAIL", "") or user,
        to_addr=env.get("TO_EMAIL", ""),
    )

    return Settings(
        keywords=tuple(parse_list(env.get("JOB_KEYWORDS"))) or defaults.keywords,
        locations=tuple(parse_list(env.get("JOB_LOCATIONS"))) or defaults.locations,
        experience_level=env.get("EXPERIENCE_LEVEL", defaults.experience_level),
        core_skills=tuple(parse_list(env.get("CORE_SKILLS"))),
        remote_preference=env.get("REMOTE_PREFERENCE", defaults.remote_preference),
        excluded_keywords=tuple(parse_list(env.get("EXCLUDED_KEYWORDS"))),
        sources=tuple(parse_list(env.get("JOB_SOURCES"))) or defaults.sources,
        max_jobs=parse_int(env.get("MAX_JOBS"), defaults.max_jobs),
        delay_ms=parse_int(env.get("DELAY_MS"), defaults.delay_ms),
        timeout_ms=parse_int(env.get("TIMEOUT_MS"), defaults.timeout_ms),
        wait_timeout_ms=parse_int(env.get("WAIT_TIMEOUT_MS"), defaults.wait_timeout_ms),
        headless=parse_bool(env.get("HEADLESS"), defaults.headless),
        db_path=Path(env.get("JOBHOUND_DB") or defaults.db_path),
        retention_days=parse_int(env.get("RETENTION_DAYS"), defaults.retention_days),
        score_threshold=parse_int(env.get("SCORE_THRESHOLD"), defaults.score_threshold),
        analyze_limit=parse_int(env.get("ANALYZE_LIMIT"), defaults.analyze_limit),
        report_limit=parse_int(env.get("REPORT_LIMIT"), defaults.report_limit),
        log_level=env.get("LOG_LEVEL", defaults.log_level).upper(),
        log_dir=Path(env.get("LOG_DIR") or defaults.log_dir),
        smtp=smtp,
    )
