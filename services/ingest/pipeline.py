"""
Ingestion Driver
Health check -> cursor pagination -> normalize -> dedup gate -> save

Runs strictly sequentially. Each run starts from the newest ticket; the
cursor is never persisted, re-runs rely on the dedup gate to skip tickets
that were already imported.
"""

from typing import Any, Optional, Protocol

import structlog

from services.normalize.normalizer import TicketDecodeError, TicketNormalizer
from shared.schemas.run import IngestResult, RunOutcome, RunStage, RunSummary
from shared.schemas.ticket import TicketPage

from .client import SourceFetchError
from .config import MAX_PAGE_SIZE, PROGRESS_EVERY
from .storage import SinkError

logger = structlog.get_logger()


class TicketSource(Protocol):
    def fetch_page(self, project_key: str, cursor: str, page_size: int) -> TicketPage: ...


class MemorySink(Protocol):
    def check_health(self) -> bool: ...

    def save(self, namespace: str, title: str, text: str) -> str: ...


class ExistenceOracle(Protocol):
    def exists(self, namespace: str, key: str) -> bool: ...


class IngestionDriver:
    """Import one Jira project into one memory namespace."""

    def __init__(
        self,
        source: TicketSource,
        sink: MemorySink,
        oracle: ExistenceOracle,
        normalizer: Optional[TicketNormalizer] = None,
        page_size: int = MAX_PAGE_SIZE,
        progress_every: int = PROGRESS_EVERY,
    ):
        self.source = source
        self.sink = sink
        self.oracle = oracle
        self.normalizer = normalizer or TicketNormalizer()
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))
        self.progress_every = progress_every
        self.stage = RunStage.CHECKING_HEALTH

    def run(
        self,
        project_key: str,
        namespace: str,
        limit: int,
        force: bool = False,
    ) -> IngestResult:
        """
        Run one ingestion pass.

        Args:
            project_key: Jira project to read
            namespace: Memory project to write into
            limit: Maximum number of tickets to fetch
            force: Skip the dedup gate and write every ticket

        Returns:
            IngestResult; ABORTED only when the memory worker is unhealthy
        """
        self.stage = RunStage.CHECKING_HEALTH
        if not self.sink.check_health():
            self.stage = RunStage.ABORTED
            logger.error("Memory worker is not healthy, aborting")
            return IngestResult(
                outcome=RunOutcome.ABORTED,
                stage=self.stage,
                error="memory worker is not reachable",
            )
        logger.info("Memory worker is healthy")

        self.stage = RunStage.FETCHING
        tickets, pages = self.fetch_tickets(project_key, limit)

        self.stage = RunStage.PROCESSING
        summary = self.process_tickets(tickets, namespace, force=force)

        self.stage = RunStage.DONE
        logger.info(
            "Done",
            imported=summary.imported,
            skipped=summary.skipped,
            failed=summary.failed,
        )
        return IngestResult(
            outcome=RunOutcome.COMPLETED,
            stage=self.stage,
            summary=summary,
            fetched=len(tickets),
            pages=pages,
        )

    def fetch_tickets(self, project_key: str, limit: int) -> tuple[list[dict[str, Any]], int]:
        """
        Page through the source until LIMIT tickets, exhaustion, or a failed page.

        Returns:
            (tickets newest-first, number of non-empty pages)
        """
        logger.info("Fetching tickets", project=project_key, limit=limit)

        tickets: list[dict[str, Any]] = []
        cursor = ""
        pages = 0

        while len(tickets) < limit:
            fetch_count = min(limit - len(tickets), self.page_size)
            logger.debug("Fetching page", cursor=cursor or "start", limit=fetch_count)

            try:
                page = self.source.fetch_page(project_key, cursor, fetch_count)
            except SourceFetchError as e:
                logger.warning("Failed to fetch page", cursor=cursor or "start", error=str(e))
                break

            if page.exhausted or not page.records:
                logger.debug("No more tickets")
                break

            if page.next_cursor == cursor:
                logger.warning("Cursor did not advance, stopping", cursor=cursor)
                break

            tickets.extend(page.records[:fetch_count])
            pages += 1
            cursor = page.next_cursor

            logger.debug(
                "Fetched page",
                count=len(page.records),
                total=len(tickets),
                next_cursor=cursor,
            )

        logger.info("Fetched tickets", total=len(tickets), pages=pages)
        return tickets, pages

    def process_tickets(
        self,
        tickets: list[Any],
        namespace: str,
        force: bool = False,
    ) -> RunSummary:
        """Normalize, dedup and save each ticket in fetch order"""
        summary = RunSummary()
        total = len(tickets)
        logger.info("Processing tickets", count=total, namespace=namespace, force=force)

        for i, raw in enumerate(tickets, start=1):
            self._process_ticket(raw, namespace, force, summary)
            if i % self.progress_every == 0:
                logger.info("Progress", processed=i, total=total)

        return summary

    def _process_ticket(
        self,
        raw: Any,
        namespace: str,
        force: bool,
        summary: RunSummary,
    ):
        try:
            doc = self.normalizer.normalize(raw)
        except TicketDecodeError as e:
            logger.warning("FAILED", reason="undecodable ticket", error=str(e))
            summary.failed += 1
            return

        if not force:
            try:
                exists = self.oracle.exists(namespace, doc.key)
            except SinkError as e:
                # Unknown state: writing could duplicate, so count as failed
                logger.warning("FAILED", key=doc.key, reason="existence check", error=str(e))
                summary.failed += 1
                return
            if exists:
                logger.debug("SKIP", key=doc.key, reason="already exists")
                summary.skipped += 1
                return

        try:
            obs_id = self.sink.save(namespace, doc.title, doc.body)
        except SinkError as e:
            logger.warning("FAILED", key=doc.key, reason="save", error=str(e))
            summary.failed += 1
            return

        if not obs_id:
            logger.warning("FAILED", key=doc.key, reason="save returned no id")
            summary.failed += 1
            return

        logger.debug("SAVED", key=doc.key, observation=obs_id)
        summary.imported += 1
