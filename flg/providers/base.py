"""Abstract base class for issue data sources."""

from abc import ABC, abstractmethod

from flg.models import RawIssue


class IssueSource(ABC):
    @abstractmethod
    def list_issues(self) -> list[RawIssue]: ...
