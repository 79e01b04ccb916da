"""Application service for refreshing GitHub data of the module list."""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from module_list.application.sorting import sort_by_name_ignoring_prefix, sort_entries_by_id
from module_list.application.table_parser import PRIMARY_HOST
from module_list.domain.budget import QueryBudget
from module_list.domain.module import (
    GitHubData,
    ModuleRecord,
    RefreshEnvelope,
    RepositoryCacheEntry,
)
from module_list.domain.star_policy import StarPolicy
from module_list.infrastructure.github_client import GitHubApiError, GitHubRestClient

logger = logging.getLogger(__name__)

STALE_AFTER_DAYS = 28


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 in UTC with milliseconds and a ``Z`` suffix."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_cached_timestamp(value: Any) -> Optional[datetime]:
    """Like ``parse_timestamp``, but None for anything that is not ISO text."""
    if not isinstance(value, str):
        return None
    try:
        return parse_timestamp(value)
    except ValueError:
        return None


def is_primary_host(module: ModuleRecord) -> bool:
    return PRIMARY_HOST in module.url


def days_since(last_update: datetime, now: datetime) -> int:
    """Whole days between ``last_update`` and ``now``, rounded half up."""
    elapsed = (now - last_update).total_seconds() / 86400
    return math.floor(elapsed + 0.5)


def should_fetch(
    module: ModuleRecord,
    entry: Optional[RepositoryCacheEntry],
    budget: QueryBudget,
    now: datetime,
) -> bool:
    """
    Decide whether the module's GitHub data must be fetched again.

    Only GitHub-hosted modules are fetched, and only while the budget lasts.
    Modules never fetched before always qualify. Otherwise the cached data
    is refreshed when it is older than four weeks or older than the last
    commit we know of.
    """
    if not is_primary_host(module) or not budget.available:
        return False

    if entry is None:
        return True

    # An unreadable timestamp counts as never fetched.
    last_update = parse_cached_timestamp(entry.last_update)
    if last_update is None:
        return True

    is_update_long_ago = days_since(last_update, now) > STALE_AFTER_DAYS

    last_commit = parse_cached_timestamp(entry.github_data.last_commit)
    was_update_before_last_commit = last_commit is not None and last_update < last_commit

    return is_update_long_ago or was_update_before_last_commit


def apply_github_data(module: ModuleRecord, data: GitHubData):
    """
    Copy the published fields onto a module record.

    ``hasGithubIssues`` and ``isArchived`` are only ever set to their
    non-default value.
    """
    module.stars = data.stars
    if data.has_issues is False:
        module.has_github_issues = False
    if data.archived is True:
        module.is_archived = True
    if data.license:
        module.license = data.license


def order_by_last_update(previous: RefreshEnvelope, modules: List[ModuleRecord]) -> List[ModuleRecord]:
    """Never-fetched modules first, then the least recently fetched ones."""
    last_updates: Dict[str, Optional[datetime]] = {
        entry.id: parse_cached_timestamp(entry.last_update)
        for entry in previous.repositories
    }

    def key(module: ModuleRecord) -> Tuple[int, datetime]:
        last_update = last_updates.get(module.id)
        if last_update is None:
            return 0, datetime.min.replace(tzinfo=timezone.utc)
        return 1, last_update

    return sorted(modules, key=key)


class RefreshService:
    """Service for updating module records with GitHub repository data."""

    def __init__(
        self,
        github_client: GitHubRestClient,
        star_policy: Optional[StarPolicy] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize refresh service.

        Args:
            github_client: GitHub API client
            star_policy: Star counts for modules not hosted on GitHub
            clock: Returns the current time; replaced in tests
        """
        self.github_client = github_client
        self.star_policy = star_policy or StarPolicy()
        self.clock = clock

    def fetch_github_data(self, repository_id: str, budget: QueryBudget) -> GitHubData:
        """
        Fetch repository info, then the head commit of its default branch.

        A failed commit lookup (empty repositories answer 409) only loses
        the last commit date; the repository data is still returned.

        Raises:
            GitHubApiError: If the repository call gets a non-success status
            requests.RequestException: If the repository call fails in transport
        """
        budget.spend()
        repository = self.github_client.get_repository(repository_id)

        branch = repository.get("default_branch")
        budget.spend()
        try:
            commit = self.github_client.get_latest_commit(repository_id, branch)
        except (GitHubApiError, requests.exceptions.RequestException) as e:
            logger.warning(f"No commit data for {repository_id} on {branch}: {e}")
            commit = {}

        return GitHubData.from_api(repository, commit)

    def use_historical_data(
        self,
        module: ModuleRecord,
        entry: Optional[RepositoryCacheEntry],
        results: Dict[str, RepositoryCacheEntry],
    ):
        """Keep the cached entry unchanged and project it onto the module."""
        if entry is None:
            return
        apply_github_data(module, entry.github_data)
        results[entry.id] = entry

    def refresh(
        self,
        previous: RefreshEnvelope,
        modules: List[ModuleRecord],
        budget: Optional[QueryBudget] = None,
    ) -> Tuple[RefreshEnvelope, List[ModuleRecord]]:
        """
        Refresh GitHub data for all modules.

        Args:
            previous: Envelope written by the previous run, possibly empty
            modules: Staged module list; records are updated in place
            budget: API call budget for this run

        Returns:
            Tuple of (new envelope, module list sorted by name)
        """
        if budget is None:
            budget = QueryBudget()

        now = self.clock()
        total = len(modules)
        results: Dict[str, RepositoryCacheEntry] = {}

        logger.info(f"Refreshing GitHub data for {total} modules (budget: {budget.max_queries} queries)")

        for count, module in enumerate(order_by_last_update(previous, modules), start=1):
            entry = previous.find(module.id)

            if should_fetch(module, entry, budget, now):
                logger.info(f"{count} / {total}")
                try:
                    data = self.fetch_github_data(module.id, budget)
                except (GitHubApiError, requests.exceptions.RequestException) as e:
                    logger.error(f"Error fetching GitHub API data for {module.id}: {e}")
                    budget.exhaust()
                    self.use_historical_data(module, entry, results)
                else:
                    fresh = RepositoryCacheEntry(
                        id=module.id,
                        last_update=format_timestamp(self.clock()),
                        github_data=data,
                    )
                    apply_github_data(module, data)
                    results[fresh.id] = fresh
            else:
                self.use_historical_data(module, entry, results)

            if not is_primary_host(module):
                module.stars = self.star_policy.stars_for(module.name)

        envelope = RefreshEnvelope(
            last_update=format_timestamp(now),
            repositories=sort_entries_by_id(results.values()),
        )

        logger.info(
            f"GitHub data update completed. queryCount: {budget.used}, "
            f"maxQueryCount: {budget.max_queries}, results: {len(results)}, modules: {total}"
        )
        return envelope, sort_by_name_ignoring_prefix(modules)
