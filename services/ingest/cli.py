#!/usr/bin/env python3
"""
Jira to Memory CLI
Ingest Jira tickets into the memory worker as searchable observations
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
import structlog

# Add repository root to path when run as a script
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from services.ingest.client import JiraCLISource, JiraRestSource
from services.ingest.config import (
    JIRA_API_TOKEN,
    JIRA_BASE_URL,
    JIRA_CLI_BIN,
    JIRA_EMAIL,
    JIRA_LIMIT,
    JIRA_PROJECT,
    MEM_DB_PATH,
    MEM_WORKER_URL,
    derive_namespace,
)
from services.ingest.pipeline import IngestionDriver
from services.ingest.storage import MemoryWorkerClient, ObservationIndex

log = structlog.get_logger()


def configure_logging(verbose: bool = False):
    """Render logs to stderr so stdout only carries the run summary"""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.DEBUG if verbose else logging.INFO
        ),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=False,
    )


def build_source(source: str):
    if source == "rest":
        if not (JIRA_BASE_URL and JIRA_EMAIL and JIRA_API_TOKEN):
            raise click.UsageError(
                "--source rest needs JIRA_BASE_URL, JIRA_EMAIL and JIRA_API_TOKEN"
            )
        return JiraRestSource(JIRA_BASE_URL, JIRA_EMAIL, JIRA_API_TOKEN)
    return JiraCLISource(binary=JIRA_CLI_BIN)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("project_arg", metavar="[PROJECT]", required=False)
@click.option("--project", "-p", default=JIRA_PROJECT, show_default=True, help="Jira project key")
@click.option("--mem-project", "-m", default=None, help="Memory project name (default: jira-<project>)")
@click.option("--limit", "-l", type=int, default=JIRA_LIMIT, show_default=True, help="Max tickets to fetch")
@click.option("--force", "-f", is_flag=True, help="Re-import all tickets (skip dedup)")
@click.option("--verbose", "-v", is_flag=True, help="Show detailed progress")
@click.option(
    "--source",
    type=click.Choice(["cli", "rest"]),
    default="cli",
    show_default=True,
    help="Read Jira through jira-cli or the REST API",
)
@click.option("--worker-url", default=MEM_WORKER_URL, show_default=True, help="Memory worker URL")
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=MEM_DB_PATH,
    help="Memory worker SQLite database",
)
def main(
    project_arg: Optional[str],
    project: str,
    mem_project: Optional[str],
    limit: int,
    force: bool,
    verbose: bool,
    source: str,
    worker_url: str,
    db_path: Path,
):
    """Ingest Jira tickets into memory for searchable institutional memory.

    \b
    Examples:
      jira-to-mem INFRA
      jira-to-mem DEVOPS -l 200 -v
    """
    configure_logging(verbose)

    project_key = project_arg or project
    namespace = mem_project or derive_namespace(project_key)

    ticket_source = build_source(source)
    sink = MemoryWorkerClient(base_url=worker_url)
    driver = IngestionDriver(
        source=ticket_source,
        sink=sink,
        oracle=ObservationIndex(db_path),
    )

    log.info("Starting ingest", project=project_key, namespace=namespace, limit=limit, force=force)
    try:
        result = driver.run(project_key, namespace, limit, force=force)
    finally:
        sink.close()
        if isinstance(ticket_source, JiraRestSource):
            ticket_source.close()

    if not result.ok:
        click.echo(f"ERROR: memory worker not running on {worker_url}", err=True)
        click.echo("Start the memory worker first, then re-run this command.", err=True)
        sys.exit(1)

    click.echo(result.summary.describe())


if __name__ == "__main__":
    main()
