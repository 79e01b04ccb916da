"""Ordering helpers for module lists and cache entries."""

from typing import Iterable, List, Sequence, Tuple

from module_list.domain.module import ModuleRecord, RepositoryCacheEntry

NAME_PREFIXES = ("MMM-", "EXT-")


def strip_name_prefix(name: str, prefixes: Sequence[str] = NAME_PREFIXES) -> str:
    lowered = name.lower()
    for prefix in prefixes:
        if lowered.startswith(prefix.lower()):
            return name[len(prefix):]
    return name


def name_sort_key(name: str, prefixes: Sequence[str] = NAME_PREFIXES) -> Tuple[str, str]:
    return strip_name_prefix(name, prefixes).casefold(), name


def sort_by_name_ignoring_prefix(
    modules: Iterable[ModuleRecord],
    prefixes: Sequence[str] = NAME_PREFIXES,
) -> List[ModuleRecord]:
    """Sort by display name, case-insensitive, with ``MMM-``/``EXT-`` ignored."""
    return sorted(modules, key=lambda module: name_sort_key(module.name, prefixes))


def sort_entries_by_id(entries: Iterable[RepositoryCacheEntry]) -> List[RepositoryCacheEntry]:
    return sorted(entries, key=lambda entry: entry.id)
