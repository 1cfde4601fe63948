"""
Jira to Memory - Ticket Schemas

Typed decode of raw Jira issues and the canonical document written to the sink
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _as_text(value: Any) -> Optional[str]:
    """Coerce scalar JSON values to text, dropping anything structured"""
    if value is None or value is False:
        return None
    if value is True:
        return "true"
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return None


class NamedRef(BaseModel):
    """Jira reference object carrying a display `name` (status, priority, ...)"""
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None

    @field_validator("name", mode="before")
    @classmethod
    def _coerce_name(cls, value: Any) -> Optional[str]:
        return _as_text(value)


class UserRef(BaseModel):
    """Jira user object, only the display name is kept"""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    display_name: Optional[str] = Field(None, alias="displayName")

    @field_validator("display_name", mode="before")
    @classmethod
    def _coerce_display_name(cls, value: Any) -> Optional[str]:
        return _as_text(value)


class IssueFields(BaseModel):
    """
    The subset of `fields` read during normalization.

    Every attribute is optional. Values of the wrong shape are dropped to
    None so the normalizer substitutes its default instead of failing.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    summary: Optional[str] = None
    status: Optional[NamedRef] = None
    resolution: Optional[NamedRef] = None
    # jira-cli emits `issueType`, the REST API emits `issuetype`
    issue_type: Optional[NamedRef] = Field(None, alias="issueType")
    issuetype: Optional[NamedRef] = None
    priority: Optional[NamedRef] = None
    assignee: Optional[UserRef] = None
    labels: Optional[list[str]] = None
    description: Any = None

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> Optional[str]:
        return _as_text(value)

    @field_validator(
        "status", "resolution", "issue_type", "issuetype", "priority", "assignee",
        mode="before",
    )
    @classmethod
    def _drop_non_objects(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    @field_validator("labels", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> Optional[list[str]]:
        if not isinstance(value, list):
            return None
        return [text for text in (_as_text(v) for v in value) if text is not None]

    @property
    def type_name(self) -> Optional[str]:
        for ref in (self.issue_type, self.issuetype):
            if ref is not None and ref.name is not None:
                return ref.name
        return None


class JiraIssue(BaseModel):
    """Raw Jira issue as returned by jira-cli `--raw` or the REST search API"""
    model_config = ConfigDict(extra="ignore")

    key: str
    fields: IssueFields = Field(default_factory=IssueFields)

    @field_validator("key", mode="before")
    @classmethod
    def _require_key(cls, value: Any) -> str:
        text = _as_text(value)
        if not text:
            raise ValueError("issue has no key")
        return text

    @field_validator("fields", mode="before")
    @classmethod
    def _fields_mapping(cls, value: Any) -> dict:
        return value if isinstance(value, dict) else {}


class CanonicalDocument(BaseModel):
    """
    Flattened, searchable representation of one ticket.

    `title` doubles as the dedup anchor: existing observations are matched
    on the literal `[<key>]` prefix of their title.
    """
    model_config = ConfigDict(frozen=True)

    key: str
    title: str
    body: str

    @property
    def title_prefix(self) -> str:
        return f"[{self.key}]"


class TicketPage(BaseModel):
    """One page of raw tickets from a source adapter"""
    records: list[Any] = Field(default_factory=list)
    next_cursor: str = ""
    exhausted: bool = False
