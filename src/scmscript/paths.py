# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""Containment checks for configured paths inside a checkout directory."""

import os
from pathlib import Path
from typing import Union

from scmscript.errors import PathEscapeError, UnreadableFileError


def normalize_separators(path: Union[str, Path]) -> str:
    """Return path as a string using '/' as the only separator."""
    return str(path).replace("\\", "/")


def _canonical(path: Path) -> str:
    return normalize_separators(os.path.normpath(path.resolve()))


def ensure_contained(base: Path, candidate: Union[str, Path], kind: str = "script") -> Path:
    """Resolve candidate against base and prove it stays under base.

    Both sides are canonicalized first: '..' segments and symlinks are
    resolved, separators normalized. The candidate must lie strictly inside
    base; base itself does not count.

    Args:
        base: Checkout root.
        candidate: Relative path configured by the user.
        kind: Label used in the error message ("script" or "import").

    Returns:
        The resolved candidate path.

    Raises:
        PathEscapeError: If the candidate resolves outside base.
    """
    base = Path(base)
    child = base / candidate
    canonical_base = _canonical(base)
    canonical_child = _canonical(child)

    prefix = canonical_base if canonical_base.endswith("/") else canonical_base + "/"
    if not canonical_child.startswith(prefix):
        raise PathEscapeError(f"{kind} file {child} is not inside {base}")
    return Path(canonical_child)


def decode_script(data: bytes, path: Union[str, Path], kind: str = "script") -> str:
    """Decode raw file bytes as UTF-8, leaving line endings untouched.

    Both resolution paths read bytes and decode here, so a checked-out file
    and a blob from the virtual view give the same text.

    Raises:
        UnreadableFileError: If data is not valid UTF-8.
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UnreadableFileError(f"{kind} file {path} is not valid UTF-8: {e.reason} at byte {e.start}") from e
