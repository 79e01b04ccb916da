"""Parser for the third-party module table on the MagicMirror wiki."""

import logging
import re
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from module_list.domain.module import Issue, ModuleRecord, ParseResult

logger = logging.getLogger(__name__)

KNOWN_HOSTS = ("github.com", "gitlab.com")
PRIMARY_HOST = "github.com"

LINK_PATTERN = re.compile(r"\[(.*?)\]\((.*?)\)")

# A table row has a leading and a trailing pipe around three columns.
ROW_SEGMENTS = 5


def is_candidate_line(line: str) -> bool:
    """True when the line links to one of the known hosting sites."""
    return any(f"](https://{host}/" in line for host in KNOWN_HOSTS)


def split_link(cell: str) -> Tuple[str, Optional[str]]:
    """
    Split a ``[text](url)`` cell.

    Returns the link text and target, or the raw cell and None when the
    cell holds no link.
    """
    match = LINK_PATTERN.search(cell)
    if match is None:
        return cell, None
    return match.group(1).strip(), match.group(2).strip()


def is_known_host_url(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme == "https" and parsed.netloc in KNOWN_HOSTS


def repository_id(url: str) -> str:
    """Turn ``https://github.com/owner/repo`` into ``owner/repo``."""
    parsed = urlparse(url)
    if parsed.scheme and parsed.netloc:
        return parsed.path.strip("/")
    return url.strip("/")


class TableRowParser:
    """
    Turns wiki table rows into module records.

    With ``names_from_url`` the module name and maintainer come from the
    repository url path (``/<maintainer>/<name>``), which is how the staged
    list is built. Otherwise they come from the link texts in the table.
    Malformed rows are dropped; questionable ones are kept with issues.
    """

    def __init__(self, names_from_url: bool = True):
        self.names_from_url = names_from_url

    def parse_line(self, line: str) -> Optional[ParseResult]:
        """Parse one line; returns None for anything that is not a module row."""
        if not is_candidate_line(line):
            return None

        parts = [part.strip() for part in line.split("|")]
        if len(parts) != ROW_SEGMENTS:
            logger.debug(f"Skipping row with {len(parts)} segments: {line!r}")
            return None

        link_text, url = split_link(parts[1])
        if url is None:
            url = parts[1]

        issues: List[Issue] = []
        if not is_known_host_url(url):
            issues.append(Issue.error(f"URL: Neither a valid GitHub nor a valid GitLab URL: {url}.", prefixed=False))

        maintainer_text, maintainer_url = split_link(parts[2])

        name = link_text
        maintainer = maintainer_text
        if self.names_from_url:
            path_parts = url.split("/")
            if len(path_parts) >= 5 and path_parts[3] and path_parts[4]:
                maintainer = path_parts[3]
                name = path_parts[4]

        record = ModuleRecord(
            name=name,
            url=url,
            id=repository_id(url),
            maintainer=maintainer,
            maintainer_url=maintainer_url or "",
            description=parts[3],
        )
        result = ParseResult(record)
        for issue in issues:
            result.add(issue)
        return result

    def parse(self, markdown: str) -> List[ParseResult]:
        """Parse every module row of the markdown document, in document order."""
        results = []
        for line in markdown.split("\n"):
            result = self.parse_line(line)
            if result is not None:
                results.append(result)

        flagged = sum(1 for result in results if not result.clean)
        logger.info(f"Parsed {len(results)} modules ({flagged} with issues)")
        return results

    def parse_modules(self, markdown: str) -> List[ModuleRecord]:
        return [result.record for result in self.parse(markdown)]
