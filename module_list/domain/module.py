"""Domain entities for third-party modules and their cached GitHub data."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class IssueSeverity(Enum):
    """Severity tag shown in front of a rendered issue."""

    WARNING = "W"
    ERROR = "E"


@dataclass(frozen=True)
class Issue:
    """A non-fatal problem found while building a module record."""

    severity: IssueSeverity
    message: str
    # URL issues are published without the severity tag.
    prefixed: bool = True

    @classmethod
    def warning(cls, message: str) -> "Issue":
        return cls(IssueSeverity.WARNING, message)

    @classmethod
    def error(cls, message: str, prefixed: bool = True) -> "Issue":
        return cls(IssueSeverity.ERROR, message, prefixed)

    def __str__(self) -> str:
        if not self.prefixed:
            return self.message
        return f"- {self.severity.value} - {self.message}"


@dataclass
class ModuleRecord:
    """One entry of the module list, rebuilt from the wiki on every run."""

    name: str
    url: str
    id: str
    maintainer: str
    maintainer_url: str
    description: str
    issues: List[str] = field(default_factory=list)
    tags: Optional[List[str]] = None
    license: Optional[str] = None
    stars: Optional[int] = None
    has_github_issues: Optional[bool] = None
    is_archived: Optional[bool] = None

    def add_issue(self, issue: Issue):
        self.issues.append(str(issue))

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the published camelCase keys, skipping unset fields."""
        data: Dict[str, Any] = {
            "name": self.name,
            "url": self.url,
            "id": self.id,
            "maintainer": self.maintainer,
            "maintainerURL": self.maintainer_url,
            "description": self.description,
        }
        if self.tags is not None:
            data["tags"] = self.tags
        if self.license is not None:
            data["license"] = self.license
        data["issues"] = list(self.issues)
        if self.stars is not None:
            data["stars"] = self.stars
        if self.has_github_issues is not None:
            data["hasGithubIssues"] = self.has_github_issues
        if self.is_archived is not None:
            data["isArchived"] = self.is_archived
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModuleRecord":
        return cls(
            name=data["name"],
            url=data["url"],
            id=data["id"],
            maintainer=data.get("maintainer", ""),
            maintainer_url=data.get("maintainerURL", ""),
            description=data.get("description", ""),
            issues=list(data.get("issues", [])),
            tags=data.get("tags"),
            license=data.get("license"),
            stars=data.get("stars"),
            has_github_issues=data.get("hasGithubIssues"),
            is_archived=data.get("isArchived"),
        )


@dataclass
class ParseResult:
    """
    Outcome of building a single record.

    A result always carries a usable record. ``issues`` holds the warnings
    and errors found on the way; a result without any is clean.
    """

    record: ModuleRecord
    issues: List[Issue] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.issues

    def add(self, issue: Issue):
        self.issues.append(issue)
        self.record.add_issue(issue)


@dataclass(frozen=True)
class GitHubData:
    """Repository metadata as last reported by the GitHub API."""

    issues: Optional[int]
    stars: Optional[int]
    license: Optional[str]
    archived: Optional[bool]
    disabled: Optional[bool]
    default_branch: Optional[str]
    has_issues: Optional[bool]
    last_commit: Optional[str]

    @classmethod
    def from_api(cls, repository: Dict[str, Any], commit: Dict[str, Any]) -> "GitHubData":
        """Build from the ``/repos/{id}`` and ``/repos/{id}/commits/{branch}`` payloads."""
        license_info = repository.get("license")
        commit_info = commit.get("commit") if commit else None
        last_commit = None
        if commit_info:
            last_commit = (commit_info.get("author") or {}).get("date")
        return cls(
            issues=repository.get("open_issues"),
            stars=repository.get("stargazers_count"),
            license=license_info.get("spdx_id") if license_info else None,
            archived=repository.get("archived"),
            disabled=repository.get("disabled"),
            default_branch=repository.get("default_branch"),
            has_issues=repository.get("has_issues"),
            last_commit=last_commit,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "issues": self.issues,
            "stars": self.stars,
            "license": self.license,
            "archived": self.archived,
            "disabled": self.disabled,
            "defaultBranch": self.default_branch,
            "has_issues": self.has_issues,
            "lastCommit": self.last_commit,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GitHubData":
        return cls(
            issues=data.get("issues"),
            stars=data.get("stars"),
            license=data.get("license"),
            archived=data.get("archived"),
            disabled=data.get("disabled"),
            default_branch=data.get("defaultBranch"),
            has_issues=data.get("has_issues"),
            last_commit=data.get("lastCommit"),
        )


@dataclass(frozen=True)
class RepositoryCacheEntry:
    """Last successful GitHub fetch for one module id."""

    id: str
    last_update: str
    github_data: GitHubData

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "gitHubDataLastUpdate": self.last_update,
            "gitHubData": self.github_data.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryCacheEntry":
        return cls(
            id=data["id"],
            last_update=data["gitHubDataLastUpdate"],
            github_data=GitHubData.from_dict(data.get("gitHubData") or {}),
        )


@dataclass
class RefreshEnvelope:
    """Persisted state of one refresh run."""

    last_update: Optional[str] = None
    repositories: List[RepositoryCacheEntry] = field(default_factory=list)

    def find(self, repository_id: str) -> Optional[RepositoryCacheEntry]:
        for entry in self.repositories:
            if entry.id == repository_id:
                return entry
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lastUpdate": self.last_update,
            "repositories": [entry.to_dict() for entry in self.repositories],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefreshEnvelope":
        return cls(
            last_update=data.get("lastUpdate"),
            repositories=[
                RepositoryCacheEntry.from_dict(entry)
                for entry in data.get("repositories") or []
            ],
        )
