# src/batch_ai_pr_reviewer/scm_client.py
import json
import asyncio
import logging
import requests # Using requests library for HTTP calls
from typing import List, Dict, Any, Optional, TYPE_CHECKING

from .models import PRDetails

if TYPE_CHECKING:
    from .plugin_config import PluginConfig
    from .models import ReviewComment
    from .event import PullRequestEvent

logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class SCMError(Exception):
    """Raised when an SCM API call fails or returns an unexpected status."""


class GitHubClient:
    """
    Minimal GitHub REST client covering what the review pipeline needs: PR details,
    PR and commit-range diffs, and creating a review with inline comments.

    Blocking HTTP calls run in a worker thread so each call is an await point.
    """

    def __init__(self, config: 'PluginConfig'):
        self.config = config
        self.api_base_url = config.scm_api_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self.config.scm_token}",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        logger.info(f"SCM Client initialized for base URL: {self.api_base_url}")

    def _request(self, method: str, endpoint: str, json_data: Optional[Dict] = None,
                 expected_status: int = 200, accept: Optional[str] = None) -> Any:
        """Helper method to make HTTP requests. Returns parsed JSON, or text for diff responses."""
        url = f"{self.api_base_url}{endpoint}"
        request_headers = self.headers.copy()
        if accept:
            request_headers["Accept"] = accept

        logger.debug(f"Making SCM API {method} request to {url}")
        try:
            response = requests.request(method, url, headers=request_headers, json=json_data,
                                        timeout=self.config.scm_timeout)
        except requests.exceptions.RequestException as e:
            raise SCMError(f"SCM API request to {url} encountered an exception: {e}") from e

        if response.status_code != expected_status:
            raise SCMError(f"SCM API request to {url} failed with status {response.status_code}: {response.text[:500]}")

        if accept == DIFF_MEDIA_TYPE:
            return response.text
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise SCMError(f"SCM API response from {url} is not valid JSON: {e}") from e

    async def _arequest(self, *args, **kwargs) -> Any:
        return await asyncio.to_thread(self._request, *args, **kwargs)

    async def get_pr_details(self, event: 'PullRequestEvent') -> Optional[PRDetails]:
        """
        Fetches the PR title and description. Returns None on failure; the review can
        still proceed without them.
        """
        endpoint = f"/repos/{event.owner}/{event.repo}/pulls/{event.pull_number}"
        logger.info(f"Fetching PR details from SCM: {endpoint}")
        try:
            response_data = await self._arequest("GET", endpoint)
        except SCMError as e:
            logger.error(f"Failed to fetch PR details for PR #{event.pull_number}: {e}")
            return None

        if not isinstance(response_data, dict):
            logger.error(f"Unexpected PR details response for PR #{event.pull_number}.")
            return None

        return PRDetails(
            title=response_data.get("title") or event.title or "",
            description=response_data.get("body") or "", # Body can be None
        )

    async def get_pr_diff(self, event: 'PullRequestEvent') -> str:
        """Fetches the unified diff of the whole pull request."""
        endpoint = f"/repos/{event.owner}/{event.repo}/pulls/{event.pull_number}"
        logger.info(f"Fetching full PR diff from SCM: {endpoint}")
        diff_text = await self._arequest("GET", endpoint, accept=DIFF_MEDIA_TYPE)
        logger.info(f"Fetched PR diff (length: {len(diff_text or '')}).")
        return diff_text or ""

    async def compare_commits_diff(self, event: 'PullRequestEvent') -> str:
        """Fetches the unified diff between the event's before and after commits."""
        endpoint = f"/repos/{event.owner}/{event.repo}/compare/{event.before_sha}...{event.after_sha}"
        logger.info(f"Fetching commit comparison diff from SCM: {endpoint}")
        diff_text = await self._arequest("GET", endpoint, accept=DIFF_MEDIA_TYPE)
        logger.info(f"Fetched commit comparison diff (length: {len(diff_text or '')}).")
        return diff_text or ""

    async def create_review(self, event: 'PullRequestEvent', comments: List['ReviewComment']) -> None:
        """
        Creates one review on the pull request containing all comments.

        Raises:
            SCMError: If the review could not be created.
        """
        endpoint = f"/repos/{event.owner}/{event.repo}/pulls/{event.pull_number}/reviews"
        payload: Dict[str, Any] = {
            "event": "COMMENT",
            "comments": [comment.to_payload() for comment in comments],
        }
        if event.head_sha:
            payload["commit_id"] = event.head_sha

        logger.info(f"Posting {len(comments)} review comments to PR #{event.pull_number}.")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(f"Review payload: {json.dumps(payload, indent=2)}")

        await self._arequest("POST", endpoint, json_data=payload, expected_status=200)
        logger.info("Successfully posted review comments.")
