"""
Analyzer configuration.

All naming conventions the analyzer relies on (header suffixes, the
self-header and private/public pairing suffixes, annotation markers,
ignored system prefixes) live here so that a project can override them
from a JSON file:

    {
      "include_dirs": ["include", "src"],
      "defines": {"PLATFORM_X": "1"},
      "warnings_as_errors": true
    }
"""

import json
import logging
import os
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".include-cleaner.json"


class AnalyzerConfig(BaseModel):
    workspace_root: Optional[str] = None
    include_dirs: List[str] = Field(default_factory=list)
    system_include_dirs: List[str] = Field(
        default_factory=lambda: ["/usr/include", "/usr/local/include"]
    )
    defines: Dict[str, str] = Field(default_factory=dict)

    # Severity switch applied uniformly to every diagnostic kind
    warnings_as_errors: bool = False

    # Includes under these prefixes are never tracked
    system_prefixes: List[str] = Field(
        default_factory=lambda: ["/usr/", "/Applications/Xcode.app/"]
    )
    header_suffixes: List[str] = Field(default_factory=lambda: [".h"])
    source_suffixes: List[str] = Field(default_factory=lambda: [".c"])

    # <stem> + suffix is treated as used by <stem>.c
    self_header_suffixes: List[str] = Field(default_factory=lambda: [".h", "_api.h"])
    private_suffix: str = "_private.h"
    public_suffix: str = "_api.h"

    allowed_marker: str = " /* include:allowed */"
    optional_marker: str = " /* include:optional */"

    use_preprocessor: bool = True

    def resolved_root(self) -> str:
        return os.path.abspath(self.workspace_root or os.getcwd())


def parse_defines(text: str) -> Dict[str, str]:
    """Parse ``"A=1,B,C=x"`` into ``{"A": "1", "B": "1", "C": "x"}``."""
    defines: Dict[str, str] = {}
    for define in text.split(","):
        define = define.strip()
        if not define:
            continue
        if "=" in define:
            name, value = define.split("=", 1)
            defines[name.strip()] = value.strip()
        else:
            defines[define] = "1"
    return defines


def load_config(path: Optional[str] = None, **overrides) -> AnalyzerConfig:
    """Load an AnalyzerConfig from JSON, applying keyword overrides on top.

    A missing or unreadable file falls back to defaults; invalid field
    values raise pydantic's ``ValidationError``.
    """
    data: Dict = {}
    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            logger.error("Config file not found: %s", path)
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON in %s: %s", path, e)
        except UnicodeDecodeError:
            logger.error("Cannot read %s — file may be binary", path)
        if not isinstance(data, dict):
            logger.error("Config %s must contain a JSON object, ignoring it", path)
            data = {}

    data.update({k: v for k, v in overrides.items() if v is not None})
    config = AnalyzerConfig(**data)
    logger.debug("Loaded config: %s", config)
    return config
