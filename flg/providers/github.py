"""GitHub REST API v3 issue source."""

import httpx
import structlog

from flg.errors import SourceError
from flg.models import RawIssue
from flg.providers.base import IssueSource
from flg.settings import FlgSettings

USER_AGENT = "flg friend-links generator"
PER_PAGE = 100

logger = structlog.get_logger(__name__)


class GitHubIssueSource(IssueSource):
    def __init__(self, settings: FlgSettings, client: httpx.Client | None = None) -> None:
        github = settings.github
        self._api_url = github.api_url.rstrip("/")
        self._owner = github.owner
        self._repository = github.repository
        self._state = github.state
        self._label_filter = settings.generation.label if github.filter_by_label else None
        self._client = client
        self._headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if github.token:
            self._headers["Authorization"] = f"Bearer {github.token.get_secret_value()}"

    def _get(self, url: str, params: dict | None = None) -> httpx.Response:
        try:
            if self._client is not None:
                response = self._client.get(url, headers=self._headers, params=params, timeout=30)
            else:
                response = httpx.get(url, headers=self._headers, params=params, timeout=30)
        except httpx.HTTPError as exc:
            raise SourceError(f"Error sending request to {url}: {exc}") from exc

        if response.status_code == 401:
            raise SourceError("GitHub API returned 401. Check github.token or FLG_GITHUB__TOKEN.")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise SourceError(f"Failed to fetch issues: {exc}") from exc
        return response

    def _issue_from_node(self, node: dict) -> RawIssue:
        return RawIssue(
            id=node["id"],
            number=node["number"],
            title=node.get("title") or "",
            body=node.get("body") or "",  # null for issues created without a body
            url=node.get("html_url") or node.get("url", ""),
            labels=frozenset(label["name"] for label in node.get("labels", [])),
            created_at=node["created_at"],
            updated_at=node["updated_at"],
        )

    def list_issues(self) -> list[RawIssue]:
        """Fetch every issue of the repository, following Link pagination."""
        params: dict = {"state": self._state, "per_page": str(PER_PAGE)}
        if self._label_filter:
            params["labels"] = self._label_filter

        url: str | None = f"{self._api_url}/repos/{self._owner}/{self._repository}/issues"
        issues: list[RawIssue] = []
        page = 0
        while url:
            # next links already carry the query string
            response = self._get(url, params=params if page == 0 else None)
            nodes = response.json()
            if not isinstance(nodes, list):
                raise SourceError(f"Unexpected response from {url}: expected a list of issues")
            page += 1
            for node in nodes:
                # the issues endpoint also lists pull requests
                if "pull_request" in node:
                    continue
                try:
                    issues.append(self._issue_from_node(node))
                except (KeyError, TypeError, ValueError) as exc:
                    raise SourceError(f"Unexpected issue data in response from {url}: {exc}") from exc
            logger.debug("Fetched issue page", page=page, count=len(nodes))
            next_link = response.links.get("next")
            url = next_link["url"] if next_link else None

        logger.info("Fetched issues", owner=self._owner, repository=self._repository, count=len(issues))
        return issues
