"""
Memory Worker Storage
Health probe and writes go through the worker's HTTP API; existence checks
read the worker's SQLite store directly for an exact title-prefix match
"""

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional, Union

import httpx
import structlog

from .config import HTTP_TIMEOUT, MEM_DB_PATH, MEM_WORKER_URL

logger = structlog.get_logger()

EXISTS_QUERY = (
    "SELECT COUNT(*) FROM observations "
    "WHERE project = ? AND title LIKE ? ESCAPE '\\' "
    "AND substr(title, 1, length(?)) = ?"
)


class SinkError(Exception):
    """Memory worker or its store could not complete a request"""


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MemoryWorkerClient:
    """HTTP client for the memory worker (health + save)"""

    def __init__(
        self,
        base_url: str = MEM_WORKER_URL,
        timeout: float = HTTP_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def check_health(self) -> bool:
        """Check the worker is reachable and reports healthy"""
        try:
            response = self._client.get("/api/health")
            return response.is_success
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Memory worker health check failed", url=self.base_url, error=str(e))
            return False

    def save(self, namespace: str, title: str, text: str) -> str:
        """
        Create one observation.

        Never merges with an existing observation: saving the same ticket
        twice stores it twice.

        Returns:
            Observation id as a non-empty string

        Raises:
            SinkError: on transport/HTTP failure or a response without an id
        """
        payload = {"text": text, "title": title, "project": namespace}
        try:
            response = self._client.post("/api/memory/save", json=payload)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise SinkError(f"save failed: {e}") from e
        except ValueError as e:
            raise SinkError("save returned invalid JSON") from e

        obs_id = data.get("id") if isinstance(data, dict) else None
        if obs_id is None or obs_id is False or str(obs_id) == "":
            raise SinkError("save response has no id")
        return str(obs_id)

    def close(self):
        self._client.close()


class ObservationIndex:
    """
    Read-only view over the worker's observation table.

    An observation is a duplicate of KEY only if it is in the same project
    and its title starts with the literal `[KEY]`. Tickets that merely
    mention KEY in their text never match.
    """

    def __init__(self, db_path: Union[str, Path] = MEM_DB_PATH, timeout: float = 5.0):
        self.db_path = Path(db_path).expanduser()
        self.timeout = timeout

    def _connect(self) -> sqlite3.Connection:
        # mode=ro so a missing file errors instead of creating an empty store
        uri = f"{self.db_path.resolve().as_uri()}?mode=ro"
        return sqlite3.connect(uri, uri=True, timeout=self.timeout)

    def count(self, namespace: str, key: str) -> int:
        prefix = f"[{key}]"
        pattern = f"{_escape_like(prefix)}%"
        try:
            with closing(self._connect()) as conn:
                row = conn.execute(EXISTS_QUERY, (namespace, pattern, prefix, prefix)).fetchone()
        except sqlite3.Error as e:
            raise SinkError(f"existence check failed for {key}: {e}") from e
        return int(row[0]) if row else 0

    def exists(self, namespace: str, key: str) -> bool:
        """True if an observation for KEY is already stored in NAMESPACE"""
        return self.count(namespace, key) > 0
