"""Async GitHub API client for pull request operations."""

import logging
from typing import Any, Dict, Optional

import aiohttp
from rich.markup import escape

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"


class GitHubClientAsync:
    """Async GitHub API client for pull request operations."""

    def __init__(
        self, token: str, api_url: str = GITHUB_API_URL, dry_run: bool = False
    ):
        """Initialize async GitHub client.

        Args:
            token: GitHub API token
            api_url: REST API root, overridable for GitHub Enterprise and tests
            dry_run: If True, mutating calls are logged but not sent
        """
        self.token = token
        self.api_url = api_url.rstrip("/")
        self.dry_run = dry_run

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    async def request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        timeout: int = 30,
        error_context: str = "request",
    ) -> Dict[str, Any]:
        """Make a single GitHub REST API request.

        Args:
            method: HTTP method (GET, POST, ...)
            path: API path below api_url, e.g. "/repos/owner/name/pulls/1"
            json: JSON payload
            timeout: Request timeout in seconds
            error_context: What was attempted, for error messages (e.g., "create comment")

        Returns:
            Decoded JSON object, empty when the response has no body

        Raises:
            aiohttp.ClientResponseError: On HTTP error statuses
        """
        url = f"{self.api_url}{path}"
        client_timeout = aiohttp.ClientTimeout(total=timeout)
        async with aiohttp.ClientSession(
            headers=self.headers, timeout=client_timeout
        ) as session:
            async with session.request(method, url, json=json) as response:
                if response.status >= 400:
                    logger.error(
                        f"[red]Failed to {error_context}:[/red] HTTP {response.status}"
                    )
                    body = await response.text()
                    if body:
                        logger.error(f"[red]Response body:[/red] {escape(body)}")
                    response.raise_for_status()

                # Chunked responses carry no Content-Length, so look at the body
                if response.status == 204 or not await response.read():
                    return {}
                return await response.json()

    async def create_issue_comment(
        self, repo: str, issue_number: int, body: str
    ) -> Dict[str, Any]:
        """Post a comment on an issue or pull request.

        Args:
            repo: Repository name (e.g., "polywrap/rust-msgpack-serde")
            issue_number: Issue or pull request number
            body: Markdown comment body

        Returns:
            Created comment object, empty in dry run mode
        """
        logger.info(f"[blue]Commenting on[/blue] {repo}#{issue_number}")
        logger.debug(f"Comment body: {escape(body)}")

        if self.dry_run:
            logger.info("[yellow](DRY RUN - comment not posted)[/yellow]")
            return {}

        comment = await self.request(
            "POST",
            f"/repos/{repo}/issues/{issue_number}/comments",
            json={"body": body},
            error_context="create comment",
        )
        logger.info(f"[green]Comment created:[/green] {comment.get('html_url', '')}")
        return comment

    async def get_pull_request(self, repo: str, number: int) -> Dict[str, Any]:
        """Fetch a pull request object as returned by the REST API."""
        return await self.request(
            "GET",
            f"/repos/{repo}/pulls/{number}",
            error_context=f"get pull request {repo}#{number}",
        )
