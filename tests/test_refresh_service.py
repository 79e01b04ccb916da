"""
Pytest tests for the GitHub data refresh step.

Run from the repository root:
    pytest tests/test_refresh_service.py -v
"""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from module_list.application.refresh_service import (
    RefreshService,
    days_since,
    format_timestamp,
    order_by_last_update,
    should_fetch,
)
from module_list.domain.budget import QueryBudget
from module_list.domain.module import (
    GitHubData,
    ModuleRecord,
    RefreshEnvelope,
    RepositoryCacheEntry,
)
from module_list.domain.star_policy import StarPolicy
from module_list.infrastructure.github_client import GitHubApiError

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_module(repository_id: str, host: str = "github.com") -> ModuleRecord:
    maintainer, name = repository_id.split("/")
    return ModuleRecord(
        name=name,
        url=f"https://{host}/{repository_id}",
        id=repository_id,
        maintainer=maintainer,
        maintainer_url="",
        description=f"{name} description",
    )


def make_entry(repository_id: str, last_update: datetime, last_commit=None, **overrides) -> RepositoryCacheEntry:
    data = {
        "issues": 1,
        "stars": 10,
        "license": "MIT",
        "archived": False,
        "disabled": False,
        "defaultBranch": "main",
        "has_issues": True,
        "lastCommit": format_timestamp(last_commit) if last_commit else None,
    }
    data.update(overrides)
    return RepositoryCacheEntry(
        id=repository_id,
        last_update=format_timestamp(last_update),
        github_data=GitHubData.from_dict(data),
    )


def repository_payload(stars=42, has_issues=True, archived=False, license_id="MIT", branch="master"):
    return {
        "open_issues": 3,
        "stargazers_count": stars,
        "license": {"spdx_id": license_id} if license_id else None,
        "archived": archived,
        "disabled": False,
        "default_branch": branch,
        "has_issues": has_issues,
    }


def commit_payload(date="2024-05-20T08:00:00Z"):
    return {"sha": "abc123", "commit": {"author": {"date": date}}}


@pytest.fixture
def client():
    fake = MagicMock()
    fake.get_repository.return_value = repository_payload()
    fake.get_latest_commit.return_value = commit_payload()
    return fake


@pytest.fixture
def service(client):
    return RefreshService(client, clock=lambda: NOW)


# ============================================================================
# should_fetch
# ============================================================================

def test_should_fetch_cold_start():
    assert should_fetch(make_module("a/MMM-A"), None, QueryBudget(), NOW)


def test_should_fetch_false_when_budget_spent():
    budget = QueryBudget(max_queries=4, used=4)
    stale = make_entry("a/MMM-A", NOW - timedelta(days=100))

    assert not should_fetch(make_module("a/MMM-A"), None, budget, NOW)
    assert not should_fetch(make_module("a/MMM-A"), stale, budget, NOW)


def test_should_fetch_after_28_days_without_new_commit():
    entry = make_entry("a/MMM-A", NOW - timedelta(days=30), last_commit=NOW - timedelta(days=60))
    assert should_fetch(make_module("a/MMM-A"), entry, QueryBudget(), NOW)


def test_should_not_fetch_recent_entry_without_new_commit():
    entry = make_entry("a/MMM-A", NOW - timedelta(days=10), last_commit=NOW - timedelta(days=60))
    assert not should_fetch(make_module("a/MMM-A"), entry, QueryBudget(), NOW)


def test_should_not_fetch_at_exactly_28_days():
    entry = make_entry("a/MMM-A", NOW - timedelta(days=28))
    assert not should_fetch(make_module("a/MMM-A"), entry, QueryBudget(), NOW)


def test_should_fetch_when_commit_is_newer_than_last_update():
    entry = make_entry("a/MMM-A", NOW - timedelta(days=5), last_commit=NOW - timedelta(days=2))
    assert should_fetch(make_module("a/MMM-A"), entry, QueryBudget(), NOW)


def test_should_never_fetch_other_hosts():
    assert not should_fetch(make_module("b/mmm-ratp", host="gitlab.com"), None, QueryBudget(), NOW)


def test_days_since_rounds_half_up():
    assert days_since(NOW - timedelta(days=28, hours=12), NOW) == 29
    assert days_since(NOW - timedelta(days=28, hours=11), NOW) == 28


def test_budget_exhaust_disables_fetching():
    budget = QueryBudget()
    budget.exhaust()
    assert budget.max_queries == 0
    assert not budget.available


# ============================================================================
# ordering
# ============================================================================

def test_order_by_last_update_puts_unknown_first():
    previous = RefreshEnvelope(repositories=[
        make_entry("a/MMM-New", NOW - timedelta(days=1)),
        make_entry("a/MMM-Old", NOW - timedelta(days=20)),
    ])
    modules = [make_module("a/MMM-New"), make_module("a/MMM-Old"), make_module("a/MMM-Never")]

    ordered = [module.name for module in order_by_last_update(previous, modules)]
    assert ordered == ["MMM-Never", "MMM-Old", "MMM-New"]


# ============================================================================
# refresh
# ============================================================================

def test_refresh_cold_start_fetches_and_projects(service, client):
    client.get_repository.return_value = repository_payload(
        stars=7, has_issues=False, archived=True, license_id="GPL-3.0", branch="develop"
    )
    module = make_module("a/MMM-A")
    budget = QueryBudget()

    envelope, modules = service.refresh(RefreshEnvelope(), [module], budget)

    client.get_latest_commit.assert_called_once_with("a/MMM-A", "develop")
    assert budget.used == 2
    assert module.stars == 7
    assert module.has_github_issues is False
    assert module.is_archived is True
    assert module.license == "GPL-3.0"

    entry = envelope.repositories[0]
    assert entry.id == "a/MMM-A"
    assert entry.last_update == "2024-06-01T12:00:00.000Z"
    assert entry.github_data.default_branch == "develop"
    assert entry.github_data.last_commit == "2024-05-20T08:00:00Z"
    assert envelope.last_update == "2024-06-01T12:00:00.000Z"


def test_refresh_omits_default_flags(service):
    module = make_module("a/MMM-A")
    service.refresh(RefreshEnvelope(), [module])

    data = module.to_dict()
    assert "hasGithubIssues" not in data
    assert "isArchived" not in data
    assert data["stars"] == 42


def test_refresh_reuses_fresh_cache(service, client):
    entry = make_entry("a/MMM-A", NOW - timedelta(days=3), last_commit=NOW - timedelta(days=9), stars=99)
    module = make_module("a/MMM-A")

    envelope, _ = service.refresh(RefreshEnvelope(repositories=[entry]), [module])

    client.get_repository.assert_not_called()
    assert envelope.repositories == [entry]
    assert module.stars == 99
    assert module.license == "MIT"


def test_refresh_stops_after_budget(service, client):
    modules = [make_module(f"a/MMM-{index}") for index in range(5)]
    budget = QueryBudget(max_queries=4)

    envelope, _ = service.refresh(RefreshEnvelope(), modules, budget)

    assert client.get_repository.call_count == 2
    assert budget.used == 4
    assert len(envelope.repositories) == 2


def test_failed_fetch_exhausts_budget_and_falls_back(service, client):
    stale = [
        make_entry(f"a/MMM-{index}", NOW - timedelta(days=40 + index), stars=index)
        for index in range(3)
    ]
    modules = [make_module(entry.id) for entry in stale]
    client.get_repository.side_effect = GitHubApiError(403, "rate limit exceeded")
    budget = QueryBudget()

    envelope, _ = service.refresh(RefreshEnvelope(repositories=stale), modules, budget)

    assert client.get_repository.call_count == 1
    assert budget.max_queries == 0
    assert [entry.id for entry in envelope.repositories] == ["a/MMM-0", "a/MMM-1", "a/MMM-2"]
    assert envelope.repositories == stale
    assert {module.name: module.stars for module in modules} == {"MMM-0": 0, "MMM-1": 1, "MMM-2": 2}


def test_failed_commit_fetch_keeps_repository_data(service, client):
    client.get_repository.return_value = repository_payload(stars=5)
    client.get_latest_commit.side_effect = [
        GitHubApiError(409, "Conflict"),
        commit_payload(),
    ]
    empty_repo = make_module("a/MMM-0")
    healthy = make_module("a/MMM-1")
    budget = QueryBudget()

    envelope, _ = service.refresh(RefreshEnvelope(), [empty_repo, healthy], budget)

    assert client.get_repository.call_count == 2
    assert budget.max_queries == 60
    assert budget.used == 4
    assert empty_repo.stars == 5
    assert healthy.stars == 5

    entries = {entry.id: entry for entry in envelope.repositories}
    assert entries["a/MMM-0"].github_data.last_commit is None
    assert entries["a/MMM-0"].github_data.stars == 5
    assert entries["a/MMM-1"].github_data.last_commit == "2024-05-20T08:00:00Z"


def test_commit_transport_error_keeps_repository_data(service, client):
    client.get_latest_commit.side_effect = requests.exceptions.ConnectionError("reset")
    module = make_module("a/MMM-A")
    budget = QueryBudget()

    envelope, _ = service.refresh(RefreshEnvelope(), [module], budget)

    assert budget.max_queries == 60
    assert module.stars == 42
    assert envelope.repositories[0].github_data.last_commit is None


def test_unreadable_cache_timestamps_count_as_never_fetched(service, client):
    broken = [
        RepositoryCacheEntry.from_dict({"id": "a/MMM-Null", "gitHubDataLastUpdate": None, "gitHubData": {"stars": 1}}),
        RepositoryCacheEntry.from_dict({"id": "a/MMM-Text", "gitHubDataLastUpdate": "yesterday", "gitHubData": {}}),
        make_entry("a/MMM-Commit", NOW - timedelta(days=2), lastCommit="not a date"),
    ]
    modules = [make_module(entry.id) for entry in broken]
    budget = QueryBudget(max_queries=4)

    envelope, _ = service.refresh(RefreshEnvelope(repositories=broken), modules, budget)

    assert client.get_repository.call_count == 2
    fetched = {call.args[0] for call in client.get_repository.call_args_list}
    assert fetched == {"a/MMM-Null", "a/MMM-Text"}
    assert [entry.id for entry in envelope.repositories] == ["a/MMM-Commit", "a/MMM-Null", "a/MMM-Text"]
    assert modules[2].stars == 10


def test_order_by_last_update_tolerates_bad_timestamps():
    previous = RefreshEnvelope(repositories=[
        make_entry("a/MMM-Ok", NOW - timedelta(days=1)),
        RepositoryCacheEntry.from_dict({"id": "a/MMM-Bad", "gitHubDataLastUpdate": None, "gitHubData": {}}),
    ])
    modules = [make_module("a/MMM-Ok"), make_module("a/MMM-Bad")]

    assert [module.name for module in order_by_last_update(previous, modules)] == ["MMM-Bad", "MMM-Ok"]


def test_non_github_modules_get_policy_stars(client):
    service = RefreshService(client, star_policy=StarPolicy(scores={"mmm-ratp": 2}), clock=lambda: NOW)
    ratp = make_module("b/mmm-ratp", host="gitlab.com")
    other = make_module("c/MMM-Other", host="gitlab.com")

    envelope, _ = service.refresh(RefreshEnvelope(), [ratp, other])

    client.get_repository.assert_not_called()
    assert ratp.stars == 6
    assert other.stars == 3
    assert envelope.repositories == []


def test_refresh_output_ordering(service):
    modules = [make_module("z/MMM-Zeta"), make_module("y/Alpha"), make_module("x/MMM-Beta")]

    envelope, ordered = service.refresh(RefreshEnvelope(), modules)

    assert [module.name for module in ordered] == ["Alpha", "MMM-Beta", "MMM-Zeta"]
    assert [entry.id for entry in envelope.repositories] == ["x/MMM-Beta", "y/Alpha", "z/MMM-Zeta"]


def test_second_run_reuses_cache_byte_identical(client):
    first_service = RefreshService(client, clock=lambda: NOW)
    first, _ = first_service.refresh(RefreshEnvelope(), [make_module("a/MMM-A"), make_module("b/MMM-B")])

    reloaded = RefreshEnvelope.from_dict(json.loads(json.dumps(first.to_dict())))
    later = NOW + timedelta(minutes=5)
    second_service = RefreshService(client, clock=lambda: later)
    second, _ = second_service.refresh(reloaded, [make_module("a/MMM-A"), make_module("b/MMM-B")])

    assert client.get_repository.call_count == 2
    assert json.dumps(first.to_dict()["repositories"], indent=2) == json.dumps(
        second.to_dict()["repositories"], indent=2
    )
