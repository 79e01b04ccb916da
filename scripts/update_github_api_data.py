#!/usr/bin/env python3
"""Script to refresh GitHub stars, licenses and flags of the staged module list."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from module_list.config import Settings
from module_list.domain.budget import QueryBudget
from module_list.application.refresh_service import RefreshService
from module_list.infrastructure.github_client import GitHubRestClient
from module_list.infrastructure.json_store import (
    load_envelope,
    load_module_list,
    save_envelope,
    save_module_list,
)

settings = Settings.from_env()

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Refresh GitHub data within the query budget and write both outputs."""
    try:
        if not settings.github_token:
            logger.warning("GITHUB_TOKEN not found. Using unauthenticated requests (limited rate).")

        previous = load_envelope(settings.github_data_file)
        modules = load_module_list(settings.stage1_file)

        github_client = GitHubRestClient(
            token=settings.github_token,
            base_url=settings.github_api_url,
            timeout=settings.request_timeout,
        )
        service = RefreshService(github_client)
        envelope, sorted_modules = service.refresh(
            previous, modules, QueryBudget(max_queries=settings.max_queries)
        )

        save_envelope(settings.github_data_file, envelope)
        save_module_list(settings.stage2_file, sorted_modules)
    except Exception as e:
        logger.error(f"Error updating GitHub API data: {e}", exc_info=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
