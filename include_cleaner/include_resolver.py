"""
Include resolution — maps an #include spelling to a file on disk.

  • #include "x.h" — relative to the including file, then include dirs,
                     then the workspace root
  • #include <x.h> — include dirs, workspace root, then system include dirs

Returned paths are absolute; callers turn them into FileIds.
"""

import os
import logging
from typing import List, Optional

from include_cleaner.config import AnalyzerConfig

logger = logging.getLogger(__name__)

# Directories never worth searching for headers
_SKIP_DIRS = {
    ".git", "build", "cmake-build-debug", "cmake-build-release",
    "__pycache__", "node_modules", ".vscode", ".idea", "venv",
}


class IncludeResolver:

    def __init__(self, config: AnalyzerConfig):
        self.workspace_root = config.resolved_root()
        self.include_dirs = [self._absolute(d) for d in config.include_dirs]
        self.system_include_dirs = list(config.system_include_dirs)

    def _absolute(self, directory: str) -> str:
        if os.path.isabs(directory):
            return directory
        return os.path.join(self.workspace_root, directory)

    def resolve(self, include_name: str, is_angled: bool, current_file: str) -> Optional[str]:
        """Absolute path of the included file, or None if not found."""
        if os.path.isabs(include_name):
            return include_name if os.path.isfile(include_name) else None

        if is_angled:
            search = self.include_dirs + [self.workspace_root] + self.system_include_dirs
        else:
            current_dir = os.path.dirname(os.path.abspath(current_file))
            search = [current_dir] + self.include_dirs + [self.workspace_root]

        for directory in search:
            candidate = os.path.join(directory, include_name)
            if os.path.isfile(candidate):
                return os.path.abspath(candidate)

        logger.debug("Include not found: %s (angled=%s) from %s", include_name, is_angled, current_file)
        return None


def discover_include_dirs(workspace_root: str) -> List[str]:
    """Directories (relative to the root) that contain at least one header."""
    found = []
    for root, dirs, filenames in os.walk(workspace_root):
        dirs[:] = sorted(d for d in dirs if d not in _SKIP_DIRS)
        if any(os.path.splitext(f)[1].lower() in (".h", ".hh", ".hpp") for f in filenames):
            rel = os.path.relpath(root, workspace_root).replace("\\", "/")
            found.append(rel)
    return found


def discover_source_files(workspace_root: str, suffixes: List[str]) -> List[str]:
    """Main files of every translation unit under the root, relative and sorted."""
    found = []
    for root, dirs, filenames in os.walk(workspace_root):
        dirs[:] = sorted(d for d in dirs if d not in _SKIP_DIRS)
        for name in sorted(filenames):
            if any(name.endswith(s) for s in suffixes):
                rel = os.path.relpath(os.path.join(root, name), workspace_root)
                found.append(rel.replace("\\", "/"))
    return found
