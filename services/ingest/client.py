"""
Jira Ticket Sources
Page through a Jira project newest-first using a key cursor

Jira's numeric offset pagination skips or repeats issues when the project
changes between calls, so every page after the first is requested with a
`key < <last key>` filter instead of an offset.
"""

import json
import subprocess
from typing import Any, Optional

import httpx
import structlog

from shared.schemas.ticket import TicketPage

from .config import HTTP_TIMEOUT, JIRA_CLI_BIN, MAX_PAGE_SIZE

logger = structlog.get_logger()

# Fields the normalizer reads, requested explicitly from the REST API
ISSUE_FIELDS = [
    "summary",
    "status",
    "resolution",
    "issuetype",
    "priority",
    "assignee",
    "labels",
    "description",
    "updated",
]


class SourceFetchError(Exception):
    """A page could not be fetched; the run keeps what it already has"""


def _clamp_page_size(page_size: int) -> int:
    return max(1, min(page_size, MAX_PAGE_SIZE))


def _build_page(records: Any) -> TicketPage:
    """Wrap decoded records, taking the cursor from the last one"""
    if not isinstance(records, list):
        raise SourceFetchError(f"expected a JSON array of issues, got {type(records).__name__}")
    if not records:
        return TicketPage(records=[], next_cursor="", exhausted=True)

    last = records[-1]
    next_cursor = last.get("key") if isinstance(last, dict) else None
    if not isinstance(next_cursor, str) or not next_cursor:
        raise SourceFetchError("last issue on page has no key, cannot advance cursor")

    return TicketPage(records=records, next_cursor=next_cursor, exhausted=False)


class JiraCLISource:
    """
    Ticket source backed by jira-cli (`jira issue list --raw`).

    Relies on jira-cli's configured server and credentials.
    """

    def __init__(self, binary: str = JIRA_CLI_BIN, timeout: Optional[float] = 120.0):
        self.binary = binary
        self.timeout = timeout

    def build_command(self, project_key: str, cursor: str, page_size: int) -> list[str]:
        cmd = [
            self.binary, "issue", "list",
            "-p", project_key,
            "--raw",
            "--paginate", f"0:{_clamp_page_size(page_size)}",
        ]
        if cursor:
            cmd += ["-q", f"key < {cursor}"]
        return cmd

    def fetch_page(self, project_key: str, cursor: str, page_size: int) -> TicketPage:
        """
        Fetch the next page of issues.

        Args:
            project_key: Jira project key
            cursor: Key of the last issue already seen, "" for the newest
            page_size: Issues to request (clamped to MAX_PAGE_SIZE)

        Returns:
            TicketPage, `exhausted` when jira-cli returns no issues

        Raises:
            SourceFetchError: on a non-zero exit, non-UTF-8 or unparseable output
        """
        cmd = self.build_command(project_key, cursor, page_size)
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise SourceFetchError(f"jira-cli failed to run: {e}") from e
        except UnicodeDecodeError as e:
            raise SourceFetchError(f"jira-cli output is not valid UTF-8: {e}") from e

        if proc.returncode != 0:
            raise SourceFetchError(
                f"jira-cli exited with {proc.returncode}: {proc.stderr.strip()[:200]}"
            )

        output = proc.stdout.strip()
        if not output:
            return TicketPage(records=[], next_cursor="", exhausted=True)

        try:
            records = json.loads(output)
        except json.JSONDecodeError as e:
            raise SourceFetchError(f"jira-cli returned invalid JSON: {e}") from e

        return _build_page(records)


class JiraRestSource:
    """
    Ticket source backed by the Jira Cloud REST API (`/rest/api/3/search/jql`).

    Sorted by last update, newest first, with the key as tie-breaker.
    """

    ORDER_BY = "updated DESC, key DESC"

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            auth=(email, api_token),
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    def build_jql(self, project_key: str, cursor: str) -> str:
        clauses = [f'project = "{project_key}"']
        if cursor:
            clauses.append(f"key < {cursor}")
        return f"{' AND '.join(clauses)} ORDER BY {self.ORDER_BY}"

    def fetch_page(self, project_key: str, cursor: str, page_size: int) -> TicketPage:
        """Fetch the next page of issues, see JiraCLISource.fetch_page"""
        payload = {
            "jql": self.build_jql(project_key, cursor),
            "maxResults": _clamp_page_size(page_size),
            "fields": ISSUE_FIELDS,
        }
        try:
            response = self._client.post("/rest/api/3/search/jql", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise SourceFetchError(f"Jira search failed: {e}") from e
        except ValueError as e:
            raise SourceFetchError("Jira search returned invalid JSON") from e

        if not isinstance(data, dict):
            raise SourceFetchError("unexpected Jira search response")
        return _build_page(data.get("issues", []))

    def close(self):
        self._client.close()
