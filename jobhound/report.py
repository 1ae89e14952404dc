"""Ranked posting digest and the notification sink it is handed to."""

import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from typing import Callable, List, Sequence

from .config import SmtpSettings
from .logger import get_logger
from .models import Posting
from .retry import RetryError, exponential_backoff
from .storage import PostingStore

logger = get_logger()

# (ranked postings, address) -> delivered?
NotificationSink = Callable[[Sequence[Posting], str], bool]


def format_text_report(postings: Sequence[Posting], date: datetime = None) -> str:
    date = date or datetime.now()
    lines = [
        "Job Hound - Best Matches",
        "=" * 24,
        "",
        f"Total matches: {len(postings)}",
        f"Report date: {date.strftime('%Y-%m-%d')}",
        "",
    ]
    if not postings:
        lines.append("No postings matched your criteria.")
        return "\n".join(lines)

    for i, posting in enumerate(postings, start=1):
        score = "-" if posting.score is None else posting.score
        lines.append(f"{i}. {posting.title} at {posting.company} (score {score})")
        lines.append(f"   {posting.url}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def send_best_postings(
    store: PostingStore,
    sink: NotificationSink,
    address: str,
    threshold: int = 60,
    limit: int = 10,
) -> bool:
    """Hand the best stored postings to ``sink``. Returns the sink's verdict."""
    postings = store.get_by_score_at_least(threshold, limit)
    logger.info(f"Found {len(postings)} postings for report", threshold=threshold)
    delivered = sink(postings, address)
    if not delivered:
        logger.error("Report delivery failed", address=address)
    return delivered


@exponential_backoff(max_retries=2, base_delay=3.0, exceptions=(smtplib.SMTPException, OSError))
def _smtp_send(settings: SmtpSettings, to_addr: str, msg: MIMEText) -> None:
    with smtplib.SMTP(settings.host, settings.port) as server:
        server.starttls()
        server.login(settings.user, settings.password)
        server.sendmail(settings.from_addr, [to_addr], msg.as_string())


class SmtpSink:
    """Deliver the plain-text report over SMTP with STARTTLS."""

    def __init__(self, settings: SmtpSettings):
        self.settings = settings

    def __call__(self, postings: Sequence[Posting], address: str) -> bool:
        if not self.settings.configured:
            logger.warning("SMTP not configured, report not sent")
            return False

        msg = MIMEText(format_text_report(postings), "plain", "utf-8")
        msg["Subject"] = f"Job matches - {datetime.now().strftime('%Y-%m-%d')}"
        msg["From"] = self.settings.from_addr
        msg["To"] = address
        try:
            _smtp_send(self.settings, address, msg)
        except RetryError as e:
            logger.error("Email failed", error=str(e))
            return False
        logger.info("Report email sent", to=address, postings=len(postings))
        return True


class CollectingSink:
    """Keeps every delivered report in memory (dry runs and tests)."""

    def __init__(self):
        self.deliveries: List[tuple] = []

    def __call__(self, postings: Sequence[Posting], address: str) -> bool:
        self.deliveries.append((list(postings), address))
        return True
