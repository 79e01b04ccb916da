"""JSON file storage for module lists and the GitHub data cache."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, List, Union

from module_list.domain.module import ModuleRecord, RefreshEnvelope

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_json(path: PathLike) -> Any:
    """Read and decode a UTF-8 JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(path: PathLike, data: Any):
    """
    Write ``data`` as indented UTF-8 JSON.

    The document goes to a temporary file next to ``path`` first and is then
    moved over it, so readers see either the old or the new file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except Exception:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise

    logger.info(f"Wrote {path}")


def load_envelope(path: PathLike) -> RefreshEnvelope:
    """
    Load the previous run's GitHub data.

    A missing or unreadable file yields an empty envelope; every module is
    then treated as never fetched.
    """
    try:
        data = read_json(path)
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        return RefreshEnvelope.from_dict(data)
    except FileNotFoundError:
        logger.warning(f"No previous GitHub data at {path}, starting with an empty cache")
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        logger.error(f"Error reading previous data from {path}: {e}")
    return RefreshEnvelope()


def save_envelope(path: PathLike, envelope: RefreshEnvelope):
    write_json(path, envelope.to_dict())


def load_module_list(path: PathLike) -> List[ModuleRecord]:
    """Load a module list written as ``{"modules": [...]}`` or as a bare list."""
    data = read_json(path)
    if isinstance(data, dict):
        data = data.get("modules", [])
    return [ModuleRecord.from_dict(item) for item in data]


def save_module_list(path: PathLike, modules: List[ModuleRecord]):
    """Write a published module list as a bare JSON array."""
    write_json(path, [module.to_dict() for module in modules])


def save_staged_module_list(path: PathLike, modules: List[ModuleRecord]):
    """Write the staged list as ``{"modules": [...]}``, the shape the refresh step reads."""
    write_json(path, {"modules": [module.to_dict() for module in modules]})
