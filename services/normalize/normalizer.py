"""
Ticket Normalizer
Converts raw Jira issue payloads to the canonical text document stored in memory
"""

from typing import Any, Iterator

import structlog
from pydantic import ValidationError

from shared.schemas.ticket import CanonicalDocument, JiraIssue

logger = structlog.get_logger()


class TicketDecodeError(ValueError):
    """Raw record cannot be identified (not a mapping, or no key)"""


def _iter_adf_text(node: Any) -> Iterator[str]:
    """Depth-first walk yielding every node's `text` value in document order"""
    if isinstance(node, dict):
        text = node.get("text")
        if isinstance(text, str):
            yield text
        elif isinstance(text, (int, float)) and not isinstance(text, bool):
            yield str(text)
        for child in node.values():
            yield from _iter_adf_text(child)
    elif isinstance(node, list):
        for child in node:
            yield from _iter_adf_text(child)


def extract_adf_text(description: Any) -> str:
    """
    Flatten an Atlassian Document Format tree to plain text.

    All text leaves are joined with single spaces; marks, headings, lists
    and other structure are discarded. A plain string description (REST v2,
    older jira-cli) is returned as-is.
    """
    if isinstance(description, str):
        return description
    return " ".join(_iter_adf_text(description))


class TicketNormalizer:
    """
    Normalizes raw Jira issues to CanonicalDocument.

    Missing or malformed optional fields fall back to fixed placeholders so
    the same raw issue always renders to the same title and body.
    """

    DEFAULT_SUMMARY = "No summary"
    DEFAULT_STATUS = "Unknown"
    DEFAULT_RESOLUTION = "Unresolved"
    DEFAULT_TYPE = "Unknown"
    DEFAULT_PRIORITY = "None"
    DEFAULT_ASSIGNEE = "Unassigned"
    DEFAULT_LABELS = "none"
    DEFAULT_DESCRIPTION = "No description"

    BODY_TEMPLATE = (
        "{title}\n"
        "Status: {status} | Resolution: {resolution} | Type: {type} | Priority: {priority}\n"
        "Assignee: {assignee} | Labels: {labels}\n"
        "\n"
        "Description:\n"
        "{description}"
    )

    def decode(self, raw: Any) -> JiraIssue:
        """Validate a raw record into a JiraIssue"""
        if not isinstance(raw, dict):
            raise TicketDecodeError(f"expected a JSON object, got {type(raw).__name__}")
        try:
            return JiraIssue.model_validate(raw)
        except ValidationError as e:
            raise TicketDecodeError(f"invalid issue: {e.errors()[0]['msg']}") from e

    def normalize(self, raw: Any) -> CanonicalDocument:
        """
        Normalize a raw issue payload to CanonicalDocument.

        Missing or malformed optional fields never fail, they render as
        placeholders. The only failure is a record that cannot be
        identified: not a mapping, or no key.

        Args:
            raw: Issue dict from jira-cli `--raw` or the REST search API

        Returns:
            CanonicalDocument with `[KEY] summary` title and the flat text body

        Raises:
            TicketDecodeError: if the record is not a mapping or has no usable key
        """
        issue = self.decode(raw)
        fields = issue.fields

        summary = fields.summary if fields.summary is not None else self.DEFAULT_SUMMARY
        title = f"[{issue.key}] {summary}"

        body = self.BODY_TEMPLATE.format(
            title=title,
            status=self._name(fields.status, self.DEFAULT_STATUS),
            resolution=self._name(fields.resolution, self.DEFAULT_RESOLUTION),
            type=fields.type_name if fields.type_name is not None else self.DEFAULT_TYPE,
            priority=self._name(fields.priority, self.DEFAULT_PRIORITY),
            assignee=self._assignee(fields),
            labels=", ".join(fields.labels or []) or self.DEFAULT_LABELS,
            description=self._description(fields.description),
        )

        return CanonicalDocument(key=issue.key, title=title, body=body)

    def _name(self, ref: Any, default: str) -> str:
        if ref is None or ref.name is None:
            return default
        return ref.name

    def _assignee(self, fields) -> str:
        if fields.assignee is None or fields.assignee.display_name is None:
            return self.DEFAULT_ASSIGNEE
        return fields.assignee.display_name

    def _description(self, description: Any) -> str:
        if description is None or description is False:
            return self.DEFAULT_DESCRIPTION
        return extract_adf_text(description)


# Default normalizer instance
default_normalizer = TicketNormalizer()


def normalize_ticket(raw: Any) -> CanonicalDocument:
    """Convenience function to normalize a ticket"""
    return default_normalizer.normalize(raw)
