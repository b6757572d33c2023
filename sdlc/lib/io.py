"""
File I/O helpers.

All entity writes go through atomic_write: the content lands in a temp
file in the target directory and is renamed over the destination, so a
crash mid-write leaves either the old or the new document.
"""

import os
import tempfile
from pathlib import Path

import yaml


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def atomic_write(path: Path, content: str) -> None:
    """Write content to path via temp file + rename."""
    ensure_dir(path.parent)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_if_missing(path: Path, content: str) -> bool:
    """Write content only if path does not exist. Returns True if written."""
    if path.exists():
        return False
    atomic_write(path, content)
    return True


def read_yaml(path: Path) -> dict:
    """Load a YAML mapping. Empty files load as {}."""
    data = yaml.safe_load(path.read_text())
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise yaml.YAMLError(f"{path}: expected a mapping at top level")
    return data


def write_yaml(path: Path, data: dict) -> None:
    atomic_write(path, yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
