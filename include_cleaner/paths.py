"""
FileId canonicalization.

Usage credit is attributed by joining symbol declarations to include
records on their file path, so every subsystem (directive resolution,
declaration lookup, macro definition lookup) must spell the same file the
same way.  All of them go through ``canonical_file_id``.
"""

import os
import posixpath
from typing import Iterable, Optional


def norm_path(p: str) -> str:
    """Normalise a path to forward slashes for cross-platform consistency."""
    return p.replace("\\", "/")


def canonical_file_id(path: str, workspace_root: Optional[str] = None) -> str:
    """Return the canonical FileId for ``path``.

    Relative paths are taken against ``workspace_root`` (the current
    directory when there is none) and ``.`` and ``..`` segments are
    collapsed lexically.  Paths inside the root are then made relative to
    it; anything else keeps its absolute spelling.  The function is
    idempotent.
    """
    if not path:
        return ""
    root = posixpath.normpath(norm_path(os.path.abspath(workspace_root or os.getcwd())))
    p = norm_path(path)
    if not (p.startswith("/") or os.path.isabs(path)):
        p = posixpath.join(root, p)

    normed = posixpath.normpath(p)
    # posixpath keeps a leading "//"; collapse it
    if normed.startswith("//"):
        normed = "/" + normed.lstrip("/")

    if normed == root:
        return "."
    if normed.startswith(root.rstrip("/") + "/"):
        return posixpath.relpath(normed, root)
    return normed


def strip_suffix(name: str, suffixes: Iterable[str]) -> Optional[str]:
    """Strip the first matching suffix, or return None if none matches."""
    for suffix in suffixes:
        if suffix and name.endswith(suffix):
            return name[: len(name) - len(suffix)]
    return None


def has_suffix(name: str, suffixes: Iterable[str]) -> bool:
    return any(name.endswith(s) for s in suffixes if s)


def under_prefix(name: str, prefixes: Iterable[str]) -> bool:
    return any(name.startswith(p) for p in prefixes if p)
