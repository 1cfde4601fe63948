"""
Jira to Memory - Run Schemas

Per-run bookkeeping owned by the ingestion driver
"""

from enum import Enum

from pydantic import BaseModel, Field


class RunStage(str, Enum):
    """Driver state machine"""
    CHECKING_HEALTH = "checking_health"
    FETCHING = "fetching"
    PROCESSING = "processing"
    DONE = "done"
    ABORTED = "aborted"


class RunOutcome(str, Enum):
    """Whether the run got past the health gate"""
    COMPLETED = "completed"
    ABORTED = "aborted"


class RunSummary(BaseModel):
    """Imported / skipped / failed counters for one run"""
    imported: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def processed(self) -> int:
        return self.imported + self.skipped + self.failed

    def describe(self) -> str:
        return f"Imported: {self.imported} | Skipped: {self.skipped} | Failed: {self.failed}"


class IngestResult(BaseModel):
    """
    Outcome of one ingestion run.

    `outcome` separates "nothing ran" (sink unhealthy) from "ran, possibly
    with per-record failures", which only show up in `summary`.
    """
    outcome: RunOutcome
    stage: RunStage
    summary: RunSummary = Field(default_factory=RunSummary)
    fetched: int = 0
    pages: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.outcome == RunOutcome.COMPLETED
