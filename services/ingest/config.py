"""
Ingest configuration
Defaults read from the environment, overridable on the command line
"""

import os
from pathlib import Path

MEM_WORKER_URL = os.getenv("MEM_WORKER_URL", "http://127.0.0.1:37777")
MEM_DB_PATH = Path(os.getenv("MEM_DB_PATH", str(Path.home() / ".claude-mem" / "claude-mem.db")))
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "30"))

JIRA_PROJECT = os.getenv("JIRA_PROJECT", "INFRA")
JIRA_LIMIT = int(os.getenv("JIRA_LIMIT", "500"))
JIRA_CLI_BIN = os.getenv("JIRA_CLI_BIN", "jira")
JIRA_BASE_URL = os.getenv("JIRA_BASE_URL", "")
JIRA_EMAIL = os.getenv("JIRA_EMAIL", "")
JIRA_API_TOKEN = os.getenv("JIRA_API_TOKEN", "")

# Largest page Jira will return per search call
MAX_PAGE_SIZE = 100
PROGRESS_EVERY = 25


def derive_namespace(project_key: str) -> str:
    """Memory project that holds all tickets of one Jira project"""
    return f"jira-{project_key.lower()}"
