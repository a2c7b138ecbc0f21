"""Include liveness analysis for C translation units."""

from include_cleaner.analysis_state import AnalysisState
from include_cleaner.config import AnalyzerConfig, load_config
from include_cleaner.diagnostics import Diagnostic, DiagnosticKind, Severity, format_diagnostic
from include_cleaner.front_end import AnalysisError, AnalysisResult, CFrontEnd, analyze_file

__all__ = [
    "AnalysisState", "AnalyzerConfig", "load_config",
    "Diagnostic", "DiagnosticKind", "Severity", "format_diagnostic",
    "AnalysisError", "AnalysisResult", "CFrontEnd", "analyze_file",
]
