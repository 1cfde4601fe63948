"""Jira to Memory Shared Schemas"""

from .run import IngestResult, RunOutcome, RunStage, RunSummary
from .ticket import CanonicalDocument, IssueFields, JiraIssue, TicketPage

__all__ = [
    # Ticket schemas
    "JiraIssue",
    "IssueFields",
    "CanonicalDocument",
    "TicketPage",
    # Run schemas
    "RunSummary",
    "RunStage",
    "RunOutcome",
    "IngestResult",
]
