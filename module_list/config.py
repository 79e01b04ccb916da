"""Runtime settings for the module list scripts."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from module_list.domain.budget import DEFAULT_MAX_QUERIES

MODULES_MARKDOWN_URL = (
    "https://raw.githubusercontent.com/wiki/MichMich/MagicMirror/3rd-Party-Modules.md"
)
GITHUB_API_URL = "https://api.github.com"

logger = logging.getLogger(__name__)


def env_int(name: str, default: int) -> int:
    """Integer environment variable; unset or non-numeric values give ``default``."""
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning(f"Ignoring {name}={value!r}: not an integer, using {default}")
        return default


@dataclass
class Settings:
    """Paths, endpoints and limits used by the scripts."""

    markdown_url: str = MODULES_MARKDOWN_URL
    github_api_url: str = GITHUB_API_URL
    github_token: Optional[str] = None
    max_queries: int = DEFAULT_MAX_QUERIES
    request_timeout: int = 30
    data_dir: Path = Path("docs/data")
    modules_dir: Path = Path("modules")
    log_level: str = "INFO"

    @property
    def stage1_file(self) -> Path:
        return self.data_dir / "modules.stage.1.json"

    @property
    def stage2_file(self) -> Path:
        return self.data_dir / "modules.stage.2.json"

    @property
    def github_data_file(self) -> Path:
        return self.data_dir / "gitHubData.json"

    @property
    def modules_file(self) -> Path:
        return Path("modules.json")

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        Every variable is optional; unset ones keep the defaults above.
        """
        log_level = os.getenv("MODULE_LIST_LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            logger.warning(f"Ignoring MODULE_LIST_LOG_LEVEL={log_level!r}: unknown level, using INFO")
            log_level = "INFO"

        return cls(
            markdown_url=os.getenv("MODULE_LIST_MARKDOWN_URL", MODULES_MARKDOWN_URL),
            github_api_url=os.getenv("GITHUB_API_URL", GITHUB_API_URL),
            github_token=os.getenv("GITHUB_TOKEN") or None,
            max_queries=env_int("MODULE_LIST_MAX_QUERIES", DEFAULT_MAX_QUERIES),
            request_timeout=env_int("MODULE_LIST_REQUEST_TIMEOUT", 30),
            data_dir=Path(os.getenv("MODULE_LIST_DATA_DIR", "docs/data")),
            modules_dir=Path(os.getenv("MODULE_LIST_MODULES_DIR", "modules")),
            log_level=log_level,
        )
