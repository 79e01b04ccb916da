"""GitHub REST API client for repository and commit metadata."""

import time
import logging
import os
from typing import Dict, Any, Optional
import requests

from module_list.config import GITHUB_API_URL

logger = logging.getLogger(__name__)


class GitHubApiError(Exception):
    """Raised when the GitHub API answers with a non-success status."""

    def __init__(self, status_code: int, reason: str = "", url: str = ""):
        self.status_code = status_code
        self.reason = reason
        self.url = url
        super().__init__(f"GitHub API returned {status_code} {reason} for {url}".strip())


class GitHubRestClient:
    """Client for the two GitHub REST endpoints the refresh step needs."""

    # Unauthenticated requests are limited to 60 per hour; the refresh budget
    # is sized for that.
    MAX_RETRIES = 3
    RETRY_DELAY_SECONDS = 1

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = GITHUB_API_URL,
        timeout: int = 30,
    ):
        """
        Initialize GitHub REST client.

        Args:
            token: GitHub personal access token. If None, uses GITHUB_TOKEN env var.
            base_url: API root, without trailing slash
            timeout: Per-request timeout in seconds
        """
        if token is None:
            token = os.getenv("GITHUB_TOKEN")

        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = {
            "Accept": "application/vnd.github+json",
        }

        if self.token:
            self.headers["Authorization"] = f"Bearer {self.token}"

    def _get(self, path: str) -> Dict[str, Any]:
        """
        GET a JSON document, retrying transport failures.

        Non-success statuses are not retried; they mean GitHub is refusing
        us and the caller decides what to do.

        Raises:
            GitHubApiError: If the response status is not 200
            requests.RequestException: If the request fails after retries
        """
        url = f"{self.base_url}{path}"
        for attempt in range(self.MAX_RETRIES):
            try:
                response = requests.get(url, headers=self.headers, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.RETRY_DELAY_SECONDS * (2 ** attempt)
                    logger.warning(f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. Retrying in {delay}s...")
                    time.sleep(delay)
                    continue
                raise

            if response.status_code != 200:
                raise GitHubApiError(response.status_code, response.reason or "", url)
            return response.json()

    def get_repository(self, repository_id: str) -> Dict[str, Any]:
        """Fetch ``/repos/{owner}/{repo}``."""
        return self._get(f"/repos/{repository_id}")

    def get_latest_commit(self, repository_id: str, branch: str) -> Dict[str, Any]:
        """Fetch the head commit of ``branch``."""
        return self._get(f"/repos/{repository_id}/commits/{branch}")
