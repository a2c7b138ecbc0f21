"""
AnalysisState — everything the analyzer knows about one translation unit.

Owns the declaration index, the usage sets and the include records, and
runs the liveness pass exactly once.  The host may signal end-of-unit
more than once; only the first signal computes and emits diagnostics,
later ones return the same list without emitting again.
"""

import logging
from enum import Enum
from typing import Dict, Iterable, List, Optional

from include_cleaner.config import AnalyzerConfig
from include_cleaner.declaration_index import DeclarationIndex
from include_cleaner.diagnostics import Diagnostic, DiagnosticEmitter, DiagnosticSink
from include_cleaner.events import (
    DeclarationKind, DeclarationRecord, EndOfTranslationUnit, Event,
    IncludeAnnotations, IncludeDirective, IncludeRecord, MacroUse,
    SourceLocation, UsageEvent, UsageKind,
)
from include_cleaner.liveness import IncludeLivenessEngine, IncludeVerdict
from include_cleaner.paths import canonical_file_id, has_suffix, under_prefix
from include_cleaner.usage_accumulator import UsageAccumulator

logger = logging.getLogger(__name__)


class AnalysisPhase(Enum):
    PENDING = "pending"
    FINALIZED = "finalized"


class AnalysisState:

    def __init__(self, main_file: str, config: Optional[AnalyzerConfig] = None,
                 sink: Optional[DiagnosticSink] = None):
        self.config = config or AnalyzerConfig()
        self.main_file_id = self.canonical(main_file)
        self.index = DeclarationIndex()
        self.usages = UsageAccumulator()
        self.records: Dict[str, IncludeRecord] = {}
        self.phase = AnalysisPhase.PENDING
        self._macro_uses: List[str] = []
        self._verdicts: List[IncludeVerdict] = []
        self._diagnostics: List[Diagnostic] = []
        self._emitter = DiagnosticEmitter(self.config.warnings_as_errors, sink)

    def canonical(self, path: str) -> str:
        return canonical_file_id(path, self.config.workspace_root)

    @property
    def finalized(self) -> bool:
        return self.phase == AnalysisPhase.FINALIZED

    def _accepting(self, what: str) -> bool:
        if self.finalized:
            logger.warning("Ignoring %s for %s: unit already finalized", what, self.main_file_id)
            return False
        return True

    # ────────────────────────────────────────────────────────────────
    #  Event handlers
    # ────────────────────────────────────────────────────────────────

    def on_declaration(self, kind: DeclarationKind, name: str, file_id: str,
                       is_external_storage: bool = False):
        if not self._accepting("declaration"):
            return
        self.index.record_declaration(kind, name, self.canonical(file_id), is_external_storage)

    def on_usage(self, kind: UsageKind, name: str):
        if not self._accepting("usage"):
            return
        self.usages.note(kind, name)

    def is_ignored_include(self, file_id: str) -> bool:
        """System headers and non-headers are never tracked."""
        if under_prefix(file_id, self.config.system_prefixes):
            return True
        return not has_suffix(file_id, self.config.header_suffixes)

    def on_include_directive(self, file_id: str, location: SourceLocation,
                             is_angled: bool = False, resolved: bool = True,
                             annotations: IncludeAnnotations = IncludeAnnotations()):
        if not self._accepting("include directive"):
            return
        if not resolved:
            logger.debug("Unresolved include at %s", location)
            return
        name = self.canonical(file_id)
        if name in self.records:
            logger.debug("Duplicate include of %s at %s ignored", name, location)
            return
        if self.is_ignored_include(name):
            logger.debug("Ignored include: %s", name)
            return
        self.records[name] = IncludeRecord(
            file_id=name,
            location=location,
            marked_allowed=annotations.allowed,
            marked_optional=annotations.optional,
        )
        logger.debug("Tracking include: %s (angled=%s, %s)", name, is_angled, annotations)

    def on_macro_use(self, definition_file_id: str, use_location: SourceLocation):
        if not self._accepting("macro use"):
            return
        name = self.canonical(definition_file_id)
        logger.debug("Macro from %s used at %s", name, use_location)
        self._macro_uses.append(name)

    def on_end_of_translation_unit(self) -> List[Diagnostic]:
        return self.finalize()

    def feed(self, events: Iterable[Event]) -> "AnalysisState":
        """Dispatch a stream of events to the handlers above."""
        for event in events:
            if isinstance(event, DeclarationRecord):
                self.on_declaration(event.kind, event.name, event.file_id, event.is_external_storage)
            elif isinstance(event, UsageEvent):
                self.on_usage(event.kind, event.name)
            elif isinstance(event, IncludeDirective):
                self.on_include_directive(event.file_id, event.location, event.is_angled,
                                          event.resolved, event.annotations)
            elif isinstance(event, MacroUse):
                self.on_macro_use(event.definition_file_id, event.location)
            elif isinstance(event, EndOfTranslationUnit):
                self.on_end_of_translation_unit()
            else:
                raise TypeError(f"Unknown event: {event!r}")
        return self

    # ────────────────────────────────────────────────────────────────
    #  Finalization
    # ────────────────────────────────────────────────────────────────

    def finalize(self) -> List[Diagnostic]:
        """Run the liveness pass on the first call; later calls are no-ops."""
        if self.finalized:
            return list(self._diagnostics)
        self.phase = AnalysisPhase.FINALIZED

        engine = IncludeLivenessEngine(self.config)
        self._verdicts = engine.run(self.main_file_id, self.records, self.index,
                                    self.usages, self._macro_uses)
        self._diagnostics = self._emitter.emit(self._verdicts)
        logger.info(
            "%s: %d includes tracked, %d diagnostics",
            self.main_file_id, len(self.records), len(self._diagnostics),
        )
        return list(self._diagnostics)

    @property
    def verdicts(self) -> List[IncludeVerdict]:
        return list(self._verdicts)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)
