"""Error taxonomy.

IssueBodyError and its subclasses describe why a single issue was rejected.
They never abort a run: the pipeline turns them into diagnostics. The
remaining errors come from collaborators and are fatal to the run.
"""


class IssueBodyError(ValueError):
    """Raised when an issue body does not carry a valid link record."""

    @property
    def kind(self) -> str:
        return type(self).__name__


# Marker scanning


class MissingMarker(IssueBodyError):
    pass


class DuplicateMarker(IssueBodyError):
    pass


class MarkerOrderError(IssueBodyError):
    pass


# Code block extraction


class NoCodeBlock(IssueBodyError):
    pass


class MultipleCodeBlocks(IssueBodyError):
    pass


class InvalidLanguageTag(IssueBodyError):
    pass


class NonEmptyExtraContent(IssueBodyError):
    pass


# Record decoding


class InvalidJson(IssueBodyError):
    pass


class NotAnObject(IssueBodyError):
    pass


class MissingRequiredField(IssueBodyError):
    pass


class InvalidFieldType(IssueBodyError):
    pass


# Run-fatal


class ConfigError(RuntimeError):
    """Configuration file missing, unreadable or invalid."""


class SourceError(RuntimeError):
    """The issue data source could not be read."""


class OutputError(RuntimeError):
    """The output file could not be written."""
