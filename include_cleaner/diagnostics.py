"""
Diagnostic Emitter — turns include verdicts into diagnostics.

Two kinds are produced, both located at the offending #include:

  • unused-include                — the include is dead
  • redundant-allowed-annotation  — marked ``include:allowed`` but used

Severity is a single global switch: warnings, or errors when the project
treats warnings as errors.
"""

import logging
from enum import Enum
from typing import Callable, Iterable, List, Optional

from pydantic import BaseModel

from include_cleaner.events import SourceLocation
from include_cleaner.liveness import IncludeVerdict, Verdict

logger = logging.getLogger(__name__)

DIAGNOSTIC_PREFIX = "include cleaner"


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


class DiagnosticKind(str, Enum):
    UNUSED_INCLUDE = "unused-include"
    REDUNDANT_ALLOWED = "redundant-allowed-annotation"


_TEMPLATES = {
    DiagnosticKind.UNUSED_INCLUDE: "unused #include of '{file_id}'",
    DiagnosticKind.REDUNDANT_ALLOWED: "#include marked as allowed, but is used directly: '{file_id}'",
}


class Diagnostic(BaseModel):
    severity: Severity
    location: SourceLocation
    kind: DiagnosticKind
    file_id: str

    @property
    def message(self) -> str:
        return _TEMPLATES[self.kind].format(file_id=self.file_id)


DiagnosticSink = Callable[[Diagnostic], None]


def format_diagnostic(diag: Diagnostic) -> str:
    """Render in the usual compiler style: ``file:line:col: warning: ...``."""
    return f"{diag.location}: {diag.severity.value}: {DIAGNOSTIC_PREFIX}: {diag.message}"


class DiagnosticEmitter:

    def __init__(self, warnings_as_errors: bool = False, sink: Optional[DiagnosticSink] = None):
        self.severity = Severity.ERROR if warnings_as_errors else Severity.WARNING
        self.sink = sink

    def build(self, verdicts: Iterable[IncludeVerdict]) -> List[Diagnostic]:
        """Diagnostics for ``verdicts`` in their order; nothing is emitted."""
        diagnostics = []
        for v in verdicts:
            if v.verdict == Verdict.DEAD:
                kind = DiagnosticKind.UNUSED_INCLUDE
            elif v.verdict == Verdict.REDUNDANT_ALLOWED:
                kind = DiagnosticKind.REDUNDANT_ALLOWED
            else:
                continue
            diagnostics.append(Diagnostic(
                severity=self.severity,
                location=v.record.location,
                kind=kind,
                file_id=v.file_id,
            ))
        return diagnostics

    def emit(self, verdicts: Iterable[IncludeVerdict]) -> List[Diagnostic]:
        """Build diagnostics, log them and hand each one to the sink."""
        diagnostics = self.build(verdicts)
        level = logging.ERROR if self.severity == Severity.ERROR else logging.WARNING
        for diag in diagnostics:
            logger.log(level, "%s", format_diagnostic(diag))
            if self.sink is not None:
                self.sink(diag)
        return diagnostics
