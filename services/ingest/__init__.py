"""
Jira to Memory Ingest Service
Pulls tickets from Jira and saves them to the memory worker

Components:
- client.py: Jira ticket sources (jira-cli, REST) with key-cursor pagination
- storage.py: Memory worker client and observation existence index
- pipeline.py: IngestionDriver orchestrating fetch, dedup and save
- cli.py: Command-line entry point
"""

from .client import JiraCLISource, JiraRestSource, SourceFetchError
from .pipeline import IngestionDriver
from .storage import MemoryWorkerClient, ObservationIndex, SinkError

__all__ = [
    "JiraCLISource",
    "JiraRestSource",
    "SourceFetchError",
    "MemoryWorkerClient",
    "ObservationIndex",
    "SinkError",
    "IngestionDriver",
]
