"""Reads ``package.json`` files of locally checked out modules."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

logger = logging.getLogger(__name__)

DIRECTORY_SEPARATOR = "-----"


class DescriptorFormatError(ValueError):
    """Raised when a descriptor is readable but not a JSON object."""


class PackageReader:
    """Locates and decodes module descriptors under a modules directory."""

    def __init__(self, modules_dir: Union[str, Path] = "modules", separator: str = DIRECTORY_SEPARATOR):
        self.modules_dir = Path(modules_dir)
        self.separator = separator

    def descriptor_path(self, name: str, maintainer: str) -> Path:
        return self.modules_dir / f"{name}{self.separator}{maintainer}" / "package.json"

    def read(self, name: str, maintainer: str) -> Dict[str, Any]:
        """
        Return the decoded descriptor of one module.

        Raises:
            FileNotFoundError: If the module has no descriptor
            DescriptorFormatError: If the file is not a JSON object
            OSError: If the file cannot be read
        """
        path = self.descriptor_path(name, maintainer)
        logger.debug(f"Reading {path}")

        with open(path, "r", encoding="utf-8") as f:
            text = f.read()

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise DescriptorFormatError(f"{path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise DescriptorFormatError(f"{path} does not contain a JSON object")
        return data
