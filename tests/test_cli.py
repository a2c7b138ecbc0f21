import io
import json
import logging
import os
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

MOCK_PROJECT = os.path.join(PROJECT_ROOT, "tests", "mock_project")

from include_cleaner.cli import build_parser, main


class TestCli(unittest.TestCase):

    def tearDown(self):
        diag_logger = logging.getLogger("include_cleaner.diagnostics")
        diag_logger.handlers = []
        diag_logger.propagate = True
        logging.getLogger().setLevel(logging.WARNING)

    def _run(self, *args):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            status = main(["--root", MOCK_PROJECT, *args])
        return status, out.getvalue(), err.getvalue()

    def test_warnings_exit_zero(self):
        status, out, _ = self._run("main.c")
        self.assertEqual(status, 0)
        self.assertIn("main.c:3:1: warning: include cleaner: unused #include of 'unused.h'", out)
        self.assertIn("used directly: 'config.h'", out)

    def test_werror_exit_one(self):
        status, out, _ = self._run("--Werror", "main.c")
        self.assertEqual(status, 1)
        self.assertIn("main.c:3:1: error: include cleaner:", out)

    def test_clean_unit_with_werror(self):
        status, out, _ = self._run("--Werror", "motor/engine.c")
        self.assertEqual(status, 0)
        self.assertEqual(out, "")

    def test_missing_file(self):
        status, out, err = self._run("does_not_exist.c")
        self.assertEqual(status, 1)
        self.assertIn("does_not_exist.c", err)

    def test_include_dir(self):
        status, out, _ = self._run("--Werror", "-I", "include", "vendor_user.c")
        self.assertEqual(status, 0)
        self.assertEqual(out, "")

    def test_no_preprocess(self):
        _, out, _ = self._run("--no-preprocess", "conditional.c")
        self.assertIn("'ghost.h'", out)
        self.assertNotIn("'inactive.h'", out)

    def test_several_files(self):
        _, out, _ = self._run("main.c", "selfhdr/widget.c")
        self.assertEqual(len(out.strip().splitlines()), 3)

    def test_config_file(self):
        with tempfile.NamedTemporaryFile(suffix=".json", mode="w", delete=False) as f:
            json.dump({"warnings_as_errors": True}, f)
        self.addCleanup(os.unlink, f.name)
        status, _, _ = self._run("--config", f.name, "main.c")
        self.assertEqual(status, 1)

    def test_parser(self):
        args = build_parser().parse_args(["-D", "A=1", "-D", "B", "-I", "inc", "-vv", "x.c"])
        self.assertEqual(args.defines, ["A=1", "B"])
        self.assertEqual(args.include_dirs, ["inc"])
        self.assertEqual(args.verbose, 2)
        self.assertEqual(args.files, ["x.c"])


if __name__ == '__main__':
    unittest.main()
