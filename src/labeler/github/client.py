"""GitHub REST API client for the labeler's side effects.

This module provides the GitHubClient class which handles:
- Fetching the rules file at the triggering commit
- Listing, adding and removing issue labels
- Creating and updating comments, and rewriting issue bodies
- Rendering markdown to HTML for link extraction

Calls are made once; failed requests raise GitHubAPIError and the caller
decides whether that is fatal.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from labeler import __version__
from labeler.github.auth import mask_token

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"


class GitHubAPIError(Exception):
    """Raised for GitHub API errors."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        response_body: dict[str, Any] | None = None,
    ) -> None:
        """Initialize GitHub API error.

        Args:
            message: Error description.
            status_code: HTTP status code.
            response_body: Response JSON body if available.
        """
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body or {}


class GitHubClient:
    """Async GitHub API client bound to one repository.

    The client supports both context manager and standalone usage.

    Example:
        >>> async with GitHubClient(token, "octo/hello") as client:
        ...     labels = await client.list_labels(7)
    """

    def __init__(
        self,
        token: str,
        repository: str,
        *,
        base_url: str = DEFAULT_API_URL,
        user_agent: str = f"issue-labeler/{__version__}",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize GitHub client.

        Args:
            token: GitHub token.
            repository: Repository as "owner/name".
            base_url: GitHub API base URL.
            user_agent: User-Agent header value.
            transport: Optional httpx transport for testing.
        """
        if repository.count("/") != 1:
            raise ValueError(f"repository must look like 'owner/name', got {repository!r}")
        self._token = token
        self._repository = repository
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def repository(self) -> str:
        """Get the "owner/name" this client acts on."""
        return self._repository

    @property
    def headers(self) -> dict[str, str]:
        """Get default request headers."""
        return {
            "Authorization": f"token {self._token}",
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": self._user_agent,
        }

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self.headers,
            timeout=30.0,
            transport=self._transport,
        )

    async def __aenter__(self) -> GitHubClient:
        """Enter async context."""
        self._client = self._build_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Exit async context."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure we have an active client."""
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Check an API response.

        Args:
            response: HTTP response.

        Returns:
            The response, if successful.

        Raises:
            GitHubAPIError: For any non-2xx status.
        """
        if response.is_success:
            return response

        if response.status_code == 401:
            raise GitHubAPIError(
                "GitHub API authentication failed",
                status_code=401,
            )

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}
        if not isinstance(body, dict):
            body = {"message": str(body)}

        raise GitHubAPIError(
            f"GitHub API error: {response.status_code} - {body.get('message', 'Unknown error')}",
            status_code=response.status_code,
            response_body=body,
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        """Send one request.

        Raises:
            GitHubAPIError: On network failure or a non-2xx status.
        """
        client = await self._ensure_client()
        logger.debug("%s %s", method, path)
        try:
            response = await client.request(method, path, params=params, json=json)
        except httpx.RequestError as e:
            raise GitHubAPIError(f"Failed to connect to GitHub API: {e}") from e
        return self._handle_response(response)

    def _repo_path(self, suffix: str) -> str:
        return f"/repos/{self._repository}{suffix}"

    async def get_file_content(self, path: str, ref: str | None = None) -> dict[str, Any]:
        """Fetch a file's metadata and base64 content.

        Args:
            path: File path in the repository.
            ref: Commit SHA, branch or tag; default branch if None.

        Returns:
            Contents API response body.
        """
        params = {"ref": ref} if ref else None
        response = await self._request(
            "GET",
            self._repo_path(f"/contents/{quote(path.lstrip('/'))}"),
            params=params,
        )
        data = response.json()
        if not isinstance(data, dict):
            # Directories come back as a list of entries
            return {"entries": data}
        return data

    async def list_labels(self, issue_number: int) -> set[str]:
        """List the label names currently on an issue or pull request.

        Follows ``Link: rel="next"`` pagination.
        """
        names: set[str] = set()
        url: str | None = self._repo_path(f"/issues/{issue_number}/labels")
        params: dict[str, Any] | None = {"per_page": 100}
        while url:
            response = await self._request("GET", url, params=params)
            names.update(label["name"] for label in response.json())
            url = response.links.get("next", {}).get("url")
            params = None
        return names

    async def add_labels(self, issue_number: int, labels: list[str]) -> None:
        """Add labels to an issue or pull request."""
        await self._request(
            "POST",
            self._repo_path(f"/issues/{issue_number}/labels"),
            json={"labels": labels},
        )

    async def remove_label(self, issue_number: int, name: str) -> None:
        """Remove one label from an issue or pull request."""
        await self._request(
            "DELETE",
            self._repo_path(f"/issues/{issue_number}/labels/{quote(name, safe='')}"),
        )

    async def create_comment(self, issue_number: int, body: str) -> None:
        """Post a new comment on an issue or pull request."""
        await self._request(
            "POST",
            self._repo_path(f"/issues/{issue_number}/comments"),
            json={"body": body},
        )

    async def update_comment(self, comment_id: int, body: str) -> None:
        """Replace the body of an existing comment."""
        await self._request(
            "PATCH",
            self._repo_path(f"/issues/comments/{comment_id}"),
            json={"body": body},
        )

    async def update_issue_body(self, issue_number: int, body: str) -> None:
        """Replace the body of an issue or pull request."""
        await self._request(
            "PATCH",
            self._repo_path(f"/issues/{issue_number}"),
            json={"body": body},
        )

    async def render_markdown(self, text: str) -> str:
        """Render GitHub-flavored markdown in this repository's context.

        Args:
            text: Markdown text.

        Returns:
            Rendered HTML.
        """
        response = await self._request(
            "POST",
            "/markdown",
            json={"text": text, "mode": "gfm", "context": self._repository},
        )
        return response.text

    def __repr__(self) -> str:
        """Get string representation."""
        return (
            f"GitHubClient(repository={self._repository!r}, "
            f"base_url={self._base_url!r}, "
            f"token={mask_token(self._token)!r})"
        )
