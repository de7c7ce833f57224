"""Shared test fixtures."""

import json
from collections.abc import Callable, Generator
from typing import Any

import pytest
import structlog

from flg.models import RawIssue
from flg.settings import GenerationSettings, GroupSettings


def link_body(payload: dict[str, Any] | str | None = None) -> str:
    """Return an issue body carrying payload in a well-formed data region."""
    if payload is None:
        payload = {"name": "A", "url": "https://a.com"}
    text = payload if isinstance(payload, str) else json.dumps(payload)
    return (
        "Hi! Please add my blog.\n"
        "\n"
        "<!-- DATA_START -->\n"
        "```json\n"
        f"{text}\n"
        "```\n"
        "<!-- DATA_END -->\n"
        "\n"
        "Thanks!"
    )


@pytest.fixture(autouse=True)
def configure_structlog_for_caplog() -> Generator[None, None, None]:
    """Route structlog through stdlib logging so caplog sees it."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture
def generation() -> GenerationSettings:
    return GenerationSettings(
        label="active",
        groups=[
            GroupSettings(name="Friends", description="People I know", label="group:friends"),
            GroupSettings(name="Tech", description="Tech blogs", label="group:tech"),
        ],
    )


@pytest.fixture
def make_issue() -> Callable[..., RawIssue]:
    def _make(
        number: int = 1,
        *,
        issue_id: int | None = None,
        payload: dict[str, Any] | str | None = None,
        body: str | None = None,
        labels: tuple[str, ...] = ("active", "group:friends"),
        created_at: str = "2024-01-01T00:00:00Z",
        updated_at: str = "2024-06-01T00:00:00Z",
    ) -> RawIssue:
        return RawIssue(
            id=issue_id if issue_id is not None else 1000 + number,
            number=number,
            title=f"Friend link #{number}",
            body=body if body is not None else link_body(payload),
            url=f"https://github.com/someone/friend-links/issues/{number}",
            labels=frozenset(labels),
            created_at=created_at,
            updated_at=updated_at,
        )

    return _make
