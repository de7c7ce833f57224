"""Tests for GitHubIssueSource using pytest-httpx."""

from datetime import datetime, timezone

import httpx
import pytest
from pytest_httpx import HTTPXMock

from flg.errors import SourceError
from flg.models import RawIssue
from flg.providers.github import GitHubIssueSource
from flg.settings import FlgSettings

ISSUES_URL = "https://api.github.com/repos/someone/friend-links/issues"


def _settings(token: str | None = "ghp_test", **github) -> FlgSettings:
    return FlgSettings(
        github={"token": token, "owner": "someone", "repository": "friend-links", **github},
        generation={"label": "active"},
    )  # type: ignore[arg-type]


def _node(number: int, **kwargs) -> dict:
    node = {
        "id": 5000 + number,
        "number": number,
        "title": f"Friend link #{number}",
        "body": "<!-- DATA_START -->\n```json\n{}\n```\n<!-- DATA_END -->",
        "html_url": f"https://github.com/someone/friend-links/issues/{number}",
        "url": f"{ISSUES_URL}/{number}",
        "state": "open",
        "labels": [{"id": 1, "name": "active", "description": ""}],
        "closed_at": None,
        "created_at": "2024-01-01T00:00:00Z",
        "updated_at": "2024-02-01T08:00:00Z",
    }
    node.update(kwargs)
    return node


class TestListIssues:
    def test_returns_raw_issues(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json=[_node(1), _node(2, labels=[])])
        issues = GitHubIssueSource(_settings()).list_issues()

        assert [i.number for i in issues] == [1, 2]
        first = issues[0]
        assert isinstance(first, RawIssue)
        assert first.id == 5001
        assert first.url == "https://github.com/someone/friend-links/issues/1"
        assert first.labels == {"active"}
        assert first.created_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert first.updated_at == datetime(2024, 2, 1, 8, tzinfo=timezone.utc)
        assert issues[1].labels == frozenset()

    def test_request_headers_and_params(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json=[])
        GitHubIssueSource(_settings()).list_issues()

        request = httpx_mock.get_requests()[0]
        assert request.url.host == "api.github.com"
        assert request.url.path == "/repos/someone/friend-links/issues"
        assert request.url.params["state"] == "open"
        assert request.url.params["per_page"] == "100"
        assert "labels" not in request.url.params
        assert request.headers["Authorization"] == "Bearer ghp_test"
        assert request.headers["Accept"] == "application/vnd.github+json"
        assert request.headers["X-GitHub-Api-Version"] == "2022-11-28"

    def test_anonymous_without_token(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json=[])
        GitHubIssueSource(_settings(token=None)).list_issues()
        assert "Authorization" not in httpx_mock.get_requests()[0].headers

    def test_label_filter_and_state(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json=[])
        GitHubIssueSource(_settings(filter_by_label=True, state="all")).list_issues()
        params = httpx_mock.get_requests()[0].url.params
        assert params["labels"] == "active"
        assert params["state"] == "all"

    def test_null_body_becomes_empty(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json=[_node(1, body=None)])
        assert GitHubIssueSource(_settings()).list_issues()[0].body == ""

    def test_skips_pull_requests(self, httpx_mock: HTTPXMock) -> None:
        pr = _node(2, pull_request={"url": "https://api.github.com/repos/someone/friend-links/pulls/2"})
        httpx_mock.add_response(json=[_node(1), pr])
        assert [i.number for i in GitHubIssueSource(_settings()).list_issues()] == [1]

    def test_follows_pagination(self, httpx_mock: HTTPXMock) -> None:
        page_2 = "https://api.github.com/repositories/42/issues?state=open&per_page=100&page=2"
        httpx_mock.add_response(
            json=[_node(1)],
            headers={"Link": f'<{page_2}>; rel="next", <{page_2}>; rel="last"'},
        )
        httpx_mock.add_response(json=[_node(2)])

        issues = GitHubIssueSource(_settings()).list_issues()

        assert [i.number for i in issues] == [1, 2]
        requests = httpx_mock.get_requests()
        assert len(requests) == 2
        assert requests[1].url == httpx.URL(page_2)

    def test_401_raises_with_message(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(status_code=401, json={"message": "Bad credentials"})
        with pytest.raises(SourceError, match="401"):
            GitHubIssueSource(_settings()).list_issues()

    def test_server_error_raises(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(status_code=502)
        with pytest.raises(SourceError, match="Failed to fetch issues"):
            GitHubIssueSource(_settings()).list_issues()

    def test_transport_error_raises(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_exception(httpx.ConnectError("connection refused"))
        with pytest.raises(SourceError, match="connection refused"):
            GitHubIssueSource(_settings()).list_issues()

    def test_unexpected_payload_raises(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json={"message": "Not Found"})
        with pytest.raises(SourceError, match="expected a list"):
            GitHubIssueSource(_settings()).list_issues()

    def test_malformed_issue_raises(self, httpx_mock: HTTPXMock) -> None:
        node = _node(1)
        del node["created_at"]
        httpx_mock.add_response(json=[node])
        with pytest.raises(SourceError, match="Unexpected issue data"):
            GitHubIssueSource(_settings()).list_issues()

    def test_uses_injected_client(self, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(json=[_node(1)])
        with httpx.Client() as client:
            issues = GitHubIssueSource(_settings(), client=client).list_issues()
        assert len(issues) == 1
