"""Shared utilities for s4."""

import contextlib
import os
import tomllib
from collections.abc import Mapping
from pathlib import Path

import tomlkit

from s4.errors import FilesystemConflictError, ParseError


def atomic_write_text(filepath: Path, text: str, encoding: str = "utf-8") -> None:
    """Write text to a file atomically to prevent corruption on crash."""
    tmp_path = filepath.with_suffix(filepath.suffix + ".tmp")
    try:
        tmp_path.write_text(text, encoding=encoding)
        os.replace(tmp_path, filepath)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp_path.unlink()
        raise


def toml_load(path: Path) -> dict:
    """Read a marker or config document."""
    if not path.is_file():
        raise FilesystemConflictError(f"Missing file: {path}", context={"path": path})
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as e:
        raise ParseError(f"Invalid TOML in {path}: {e}", context={"path": path}) from e


def toml_save(data: Mapping[str, object], path: Path) -> None:
    """Write *data* as TOML, keys in the given order."""
    doc = tomlkit.document()
    for key, value in data.items():
        doc.add(key, value)
    atomic_write_text(path, tomlkit.dumps(doc))


def relative_path(start: Path, target: Path) -> Path:
    """Path to *target* from the directory *start*, both resolved first."""
    return Path(os.path.relpath(target.resolve(), start.resolve()))


def ensure_empty_dir(path: Path, kind: str) -> None:
    """Create *path*, or accept it if it is an existing empty directory."""
    if path.is_dir():
        if any(path.iterdir()):
            raise FilesystemConflictError(
                f"{kind} directory {path} is not empty", context={"path": path}
            )
    elif path.exists():
        raise FilesystemConflictError(
            f"{kind} directory path {path} already exists", context={"path": path}
        )
    else:
        path.mkdir(parents=True)
