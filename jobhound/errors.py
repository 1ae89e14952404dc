"""Error taxonomy for the ingestion pipeline.

Item-level faults are converted into data (empty description, failed
status). Only resource-level faults escalate out of a run.
"""


class JobHoundError(Exception):
    """Base class for pipeline errors."""


class ExtractionUnavailable(JobHoundError):
    """A source page could not be loaded at all."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class ContentNotFound(JobHoundError):
    """Expected element absent after exhausting every locator."""


class ScoringFailure(JobHoundError):
    """The scorer raised on a malformed posting."""


class StorageFailure(JobHoundError):
    """Persistence layer unreachable or rejected a write. Fatal to a run."""
