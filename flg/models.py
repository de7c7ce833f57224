"""Shared pydantic models: the contract between the data source, the pipeline and the output sink."""

import copy
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, StrictStr


class RawIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int  # provider-native ID, also the tie-breaker when sorting
    number: int
    title: str
    body: str = ""
    url: str = ""
    labels: frozenset[str] = frozenset()
    created_at: datetime
    updated_at: datetime


class LinkRecord(BaseModel):
    """A friend link decoded from the JSON block of an issue.

    Unknown keys are kept in ``model_extra`` in their original order.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    name: StrictStr
    url: StrictStr
    description: StrictStr = ""
    avatar: StrictStr | None = None

    @property
    def extra_fields(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    def to_entry(self, keep_extra: bool = True) -> dict[str, Any]:
        """Return the output object: known fields first, then extras."""
        entry: dict[str, Any] = {
            "name": self.name,
            "url": self.url,
            "description": self.description,
        }
        if self.avatar is not None:
            entry["avatar"] = self.avatar
        if keep_extra:
            for key, value in self.extra_fields.items():
                entry.setdefault(key, copy.deepcopy(value))
        return entry


class LabelDecision(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_active: bool
    group_labels: frozenset[str] = frozenset()


class ClassifiedRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    issue_id: int
    issue_number: int
    record: LinkRecord
    is_active: bool
    group_labels: frozenset[str]
    order_key: datetime


class Diagnostic(BaseModel):
    """Why an issue was skipped."""

    model_config = ConfigDict(frozen=True)

    issue_id: int
    issue_number: int
    kind: str  # IssueBodyError subclass name
    message: str


class LinkGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    label: str | None  # None for the ungrouped bucket
    name: str
    description: str = ""
    entries: list[ClassifiedRecord] = []


class PipelineResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    records: list[ClassifiedRecord]
    diagnostics: list[Diagnostic] = []
    inactive_count: int = 0


class DelimitedRegion(BaseModel):
    """Text between the data markers of an issue body."""

    model_config = ConfigDict(frozen=True)

    start_offset: int
    end_offset: int
    content: str


class CodeBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    language_tag: str
    content: str  # text between the fence lines
    span: tuple[int, int]  # offsets of the fences within the region
    terminated: bool = True
