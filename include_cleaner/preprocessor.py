import os
import io
import re
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple
from pcpp import Preprocessor, OutputDirective, Action

from include_cleaner.paths import norm_path

logger = logging.getLogger(__name__)

_LINE_DIRECTIVE_RE = re.compile(r'^#line\s+(\d+)\s+"([^"]+)"')


class _QuietPreprocessor(Preprocessor):
    """A pcpp Preprocessor that silences 'Include file not found' stderr noise
    and remembers which #include directives were actually executed.

    By default pcpp prints every missing-include error to stderr via
    ``on_error()``.  This subclass redirects those messages to Python's
    ``logging`` at DEBUG level and passes unfound includes through so
    preprocessing can continue.
    """

    def __init__(self):
        super().__init__()
        # Keep absolute sources in #line output and tokens
        self.rewrite_paths = []
        # (source, line) of every #include seen in an active region
        self.executed_includes: Set[Tuple[str, int]] = set()

    def on_include_not_found(self, is_malformed, is_system_include, curdir, includepath):
        logger.debug("pcpp: include not found: %s (system=%s)", includepath, is_system_include)
        raise OutputDirective(Action.IgnoreAndPassThrough)

    def on_error(self, file, line, msg):
        logger.debug("pcpp: %s:%s: %s", file, line, msg)

    def include(self, tokens, *args, **kwargs):
        # Only reached for #include lines in enabled regions
        if tokens:
            source = getattr(tokens[0], "source", None) or ""
            self.executed_includes.add((_abs_source(source), tokens[0].lineno))
        yield from super().include(tokens, *args, **kwargs)


@dataclass
class PreprocessResult:
    """What the preprocessor tells us about one main file."""
    # (start_line, end_line) ranges of the file that survive preprocessing
    active_regions: List[Tuple[int, int]] = field(default_factory=list)
    # Lines of the file holding #include directives that were executed
    include_lines: Set[int] = field(default_factory=set)

    def is_range_active(self, start: int, end: int) -> bool:
        return any(s <= end and start <= e for s, e in self.active_regions)


class PreprocessorEngine:
    """
    A C preprocessor wrapper using 'pcpp'.

    Runs the main file of a translation unit through pcpp and reads back
    the #line directives it emits to learn which lines of the main file
    are in active conditional regions.  Include directives are recorded as
    they are executed, since their own lines never reach the output.
    """

    def __init__(self, workspace_root: str, defines: Optional[Dict[str, str]] = None):
        self.workspace_root = workspace_root
        self._cache: Dict[str, Optional[PreprocessResult]] = {}
        # Pre-defined macros (e.g. from compiler or user config)
        self.defines: Dict[str, str] = dict(defines or {})

    def add_define(self, name: str, value: str = "1"):
        """Add a global macro definition (e.g. -DDEBUG=1)."""
        self.defines[name] = value
        self._cache.clear()

    def preprocess(self, file_path: str, include_dirs: Optional[List[str]] = None) -> Optional[PreprocessResult]:
        """
        Preprocess ``file_path`` and describe its active regions.

        Returns None when the file cannot be preprocessed; callers then
        treat the whole file as active.
        """
        full_path = os.path.abspath(os.path.join(self.workspace_root, file_path))
        if full_path in self._cache:
            return self._cache[full_path]

        if not os.path.isfile(full_path):
            logger.error("Preprocessor: file not found %s", full_path)
            return None

        pp = _QuietPreprocessor()
        pp.add_path(os.path.dirname(full_path))
        for d in include_dirs or []:
            pp.add_path(d if os.path.isabs(d) else os.path.join(self.workspace_root, d))
        for k, v in self.defines.items():
            pp.define(f"{k} {v}")

        output_buffer = io.StringIO()
        try:
            with open(full_path, "r", encoding="utf-8", errors="replace") as f:
                pp.parse(f.read(), source=full_path)
            pp.write(output_buffer)
        except Exception as e:
            logger.error("Preprocessing failed for %s: %s", file_path, e)
            self._cache[full_path] = None
            return None

        target = _abs_source(full_path)
        lines = _main_file_lines(output_buffer.getvalue(), target)
        result = PreprocessResult(
            active_regions=_coalesce(lines),
            include_lines={ln for src, ln in pp.executed_includes if src == target},
        )
        logger.debug(
            "Preprocessed %s: %d active regions, %d executed includes",
            file_path, len(result.active_regions), len(result.include_lines),
        )
        self._cache[full_path] = result
        return result


def _main_file_lines(expanded_text: str, target: str) -> Set[int]:
    """Original line numbers of ``target`` present in pcpp output."""
    active: Set[int] = set()
    current_line = 1
    current_file = target
    for line in expanded_text.splitlines():
        m = _LINE_DIRECTIVE_RE.match(line)
        if m:
            # #line N "file" -> the *next* line is N
            current_line = int(m.group(1))
            current_file = _abs_source(m.group(2))
            continue
        if line.strip() and current_file == target:
            active.add(current_line)
        current_line += 1
    return active


def _coalesce(lines: Set[int]) -> List[Tuple[int, int]]:
    ranges = []
    for line in sorted(lines):
        if ranges and line == ranges[-1][1] + 1:
            ranges[-1] = (ranges[-1][0], line)
        else:
            ranges.append((line, line))
    return ranges


def _abs_source(source: str) -> str:
    """Absolute, normalized spelling of a path reported by pcpp.

    pcpp may report paths relative to the current directory.
    """
    if not source:
        return ""
    return norm_path(os.path.normpath(os.path.join(os.getcwd(), source)))
