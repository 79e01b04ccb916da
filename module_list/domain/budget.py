"""Run-scoped budget for GitHub API calls."""

from dataclasses import dataclass

DEFAULT_MAX_QUERIES = 60


@dataclass
class QueryBudget:
    """
    Counts API calls made during a single refresh run.

    A fresh budget is created for every run. ``exhaust()`` drops the ceiling
    to zero so no further fetches happen once GitHub starts refusing requests.
    """

    max_queries: int = DEFAULT_MAX_QUERIES
    used: int = 0

    @property
    def available(self) -> bool:
        return self.used < self.max_queries

    def spend(self, count: int = 1):
        self.used += count

    def exhaust(self):
        self.max_queries = 0
