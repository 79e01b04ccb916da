"""Fetches the wiki page listing third-party modules."""

import logging
from typing import Optional

import requests

from module_list.config import MODULES_MARKDOWN_URL

logger = logging.getLogger(__name__)


class MarkdownFetchError(Exception):
    """Raised when the wiki markdown cannot be retrieved."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def fetch_markdown(url: str = MODULES_MARKDOWN_URL, timeout: int = 30) -> str:
    """
    Download the raw markdown of the module wiki page.

    Raises:
        MarkdownFetchError: On a non-200 status or a transport failure
    """
    logger.info(f"Fetching module list from {url}")
    try:
        response = requests.get(url, timeout=timeout)
    except requests.exceptions.RequestException as e:
        raise MarkdownFetchError(f"Fetching {url} failed: {e}") from e

    if response.status_code != 200:
        raise MarkdownFetchError(
            f"Fetching {url} failed. Status code: {response.status_code}",
            status_code=response.status_code,
        )
    return response.text
