#!/usr/bin/env python3
"""Script to build the staged module list from the MagicMirror wiki."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from module_list.config import Settings
from module_list.application.table_parser import TableRowParser
from module_list.application.sorting import sort_by_name_ignoring_prefix
from module_list.infrastructure.markdown_source import fetch_markdown, MarkdownFetchError
from module_list.infrastructure.json_store import save_staged_module_list

settings = Settings.from_env()

logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Fetch the wiki table, parse it and write the staged module list."""
    try:
        markdown = fetch_markdown(settings.markdown_url, timeout=settings.request_timeout)
    except MarkdownFetchError as e:
        logger.error(f"Could not fetch module list: {e}")
        return 0

    try:
        parser = TableRowParser(names_from_url=True)
        modules = sort_by_name_ignoring_prefix(parser.parse_modules(markdown))
        save_staged_module_list(settings.stage1_file, modules)
        logger.info(f"Staged module list written with {len(modules)} modules")
    except Exception as e:
        logger.error(f"Creating module list failed: {e}", exc_info=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
