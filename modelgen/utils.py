# File: modelgen/utils.py
"""
modelgen - Utility Functions & Helpers
========================================
String-casing, file I/O and timing helpers used throughout the generation
pipeline.

Casing contract:
- ``camelcase`` turns a table name into a class name
  (``user_profile`` → ``UserProfile``).
- ``uncamelcase`` turns a class name back into a table name
  (``UserProfile`` → ``user_profile``).
- For every name matched by ``VALID_TABLE_NAME_RE`` the two are exact
  inverses.  Names outside that pattern may not survive the round trip and
  are reported by the warm-cache pass instead of being generated.

All casing helpers are wrapped in ``functools.lru_cache`` since the same
names are converted on every class resolution.
"""

from __future__ import annotations

import functools
import hashlib
import json
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("modelgen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns
# ---------------------------------------------------------------------------

VALID_TABLE_NAME_RE: re.Pattern[str] = re.compile(r"^[a-z][a-z0-9]*(?:_[a-z][a-z0-9]*)*$")
_UPPER_AFTER_START_RE: re.Pattern[str] = re.compile(r"(?<=.)([A-Z])")


# ---------------------------------------------------------------------------
# Cached casing functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def camelcase(name: str) -> str:
    """
    Convert a table name to a class name.

    Examples:
        >>> camelcase("user_profile")
        'UserProfile'
        >>> camelcase("order2_items")
        'Order2Items'
    """
    return "".join(part[:1].upper() + part[1:] for part in name.split("_"))


@functools.lru_cache(maxsize=None)
def uncamelcase(name: str) -> str:
    """
    Convert a class name to a table name.

    Every upper-case letter after the first character starts a new
    underscore-separated segment.

    Examples:
        >>> uncamelcase("UserProfile")
        'user_profile'
        >>> uncamelcase("Order2Items")
        'order2_items'
    """
    return _UPPER_AFTER_START_RE.sub(r"_\1", name).lower()


def is_valid_table_name(name: str) -> bool:
    """True if *name* is a table name with an exact class-name round trip."""
    return VALID_TABLE_NAME_RE.match(name) is not None


def split_class(qualified_name: str) -> Tuple[str, str]:
    """
    Split a dotted class name into ``(namespace, class name)``.

    Examples:
        >>> split_class("app.models.User")
        ('app.models', 'User')
        >>> split_class("User")
        ('', 'User')
    """
    namespace, _, class_name = qualified_name.rpartition(".")
    return namespace, class_name


def join_class(namespace: str, class_name: str) -> str:
    """Inverse of ``split_class``."""
    return f"{namespace}.{class_name}" if namespace else class_name


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str) -> int:
    """
    Atomically write *content* to *path*.

    The content goes to a temporary file in the same directory which is
    then renamed over the target, so readers never see a partial file and
    concurrent writers converge on one complete version.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(encoded)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.debug("Wrote %d bytes to %s", len(encoded), path)
    return len(encoded)


def read_file(path: Path) -> str:
    """Read a file and return its content as a string."""
    return path.read_text(encoding="utf-8")


def load_document(path: Path) -> Dict[str, Any]:
    """
    Load a JSON or YAML file holding a mapping.

    ``.json`` files are parsed as JSON, everything else as YAML.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the file can't be parsed or isn't a mapping.
    """
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    text: str = read_file(path)
    try:
        if path.suffix.lower() == ".json":
            data: Any = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ValueError(f"Invalid document {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(
            f"Expected a mapping at top level of {path}, got {type(data).__name__}."
        )
    return data


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling pipeline steps.

    Usage:
        with Timer("warm cache") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "VALID_TABLE_NAME_RE",
    "camelcase",
    "uncamelcase",
    "is_valid_table_name",
    "split_class",
    "join_class",
    "ensure_directory",
    "write_file",
    "read_file",
    "load_document",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("modelgen.utils loaded — %d public symbols.", len(__all__))
