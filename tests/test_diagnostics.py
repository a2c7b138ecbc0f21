import os
import sys
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from include_cleaner.diagnostics import (
    DiagnosticEmitter, DiagnosticKind, Severity, format_diagnostic,
)
from include_cleaner.events import IncludeRecord, SourceLocation
from include_cleaner.liveness import IncludeVerdict, Verdict


def _verdict(file_id, verdict, line):
    rec = IncludeRecord(file_id, SourceLocation("main.c", line, 1))
    return IncludeVerdict(file_id, verdict, rec)


class TestDiagnosticEmitter(unittest.TestCase):

    def setUp(self):
        self.verdicts = [
            _verdict("util.h", Verdict.LIVE, 2),
            _verdict("unused.h", Verdict.DEAD, 3),
            _verdict("legacy.h", Verdict.ALLOWED, 5),
            _verdict("config.h", Verdict.REDUNDANT_ALLOWED, 6),
        ]

    def test_only_dead_and_redundant_reported(self):
        diags = DiagnosticEmitter().build(self.verdicts)
        self.assertEqual([d.file_id for d in diags], ["unused.h", "config.h"])
        self.assertEqual(
            [d.kind for d in diags],
            [DiagnosticKind.UNUSED_INCLUDE, DiagnosticKind.REDUNDANT_ALLOWED],
        )

    def test_messages(self):
        diags = DiagnosticEmitter().build(self.verdicts)
        self.assertEqual(diags[0].message, "unused #include of 'unused.h'")
        self.assertEqual(diags[1].message, "#include marked as allowed, but is used directly: 'config.h'")

    def test_located_at_directive(self):
        diags = DiagnosticEmitter().build(self.verdicts)
        self.assertEqual(diags[0].location, SourceLocation("main.c", 3, 1))

    def test_severity_switch(self):
        warn = DiagnosticEmitter(warnings_as_errors=False).build(self.verdicts)
        err = DiagnosticEmitter(warnings_as_errors=True).build(self.verdicts)
        self.assertTrue(all(d.severity == Severity.WARNING for d in warn))
        self.assertTrue(all(d.severity == Severity.ERROR for d in err))

    def test_format(self):
        diag = DiagnosticEmitter().build(self.verdicts)[0]
        self.assertEqual(
            format_diagnostic(diag),
            "main.c:3:1: warning: include cleaner: unused #include of 'unused.h'",
        )

    def test_emit_calls_sink_in_order(self):
        seen = []
        emitter = DiagnosticEmitter(sink=seen.append)
        with self.assertLogs("include_cleaner.diagnostics", level="WARNING") as logs:
            diags = emitter.emit(self.verdicts)
        self.assertEqual(seen, diags)
        self.assertEqual(len(logs.records), 2)
        self.assertIn("unused #include of 'unused.h'", logs.output[0])

    def test_emit_logs_errors_at_error_level(self):
        emitter = DiagnosticEmitter(warnings_as_errors=True)
        with self.assertLogs("include_cleaner.diagnostics", level="ERROR") as logs:
            emitter.emit(self.verdicts)
        self.assertTrue(all(r.levelname == "ERROR" for r in logs.records))

    def test_nothing_to_report(self):
        emitter = DiagnosticEmitter()
        self.assertEqual(emitter.emit([_verdict("util.h", Verdict.LIVE, 1)]), [])


if __name__ == '__main__':
    unittest.main()
