"""
MCP Server Tests — the tool functions called directly, as an MCP client would.
"""

import importlib
import os
import sys
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

MOCK_PROJECT = os.path.join(PROJECT_ROOT, "tests", "mock_project")

import fastmcp_server as srv


class TestUnconfigured(unittest.TestCase):

    def setUp(self):
        importlib.reload(srv)  # ensure clean state

    def test_tools_require_workspace(self):
        for result in (srv.check_includes("main.c"), srv.explain_includes("main.c"), srv.check_workspace()):
            self.assertTrue(result.startswith("Error: Workspace not configured"), result)

    def test_bad_workspace_root(self):
        self.assertTrue(srv.configure_workspace("/nonexistent/ws").startswith("Error:"))

    def test_bad_config_path(self):
        result = srv.configure_workspace(MOCK_PROJECT, config_path="/nonexistent/cfg.json")
        self.assertTrue(result.startswith("Error: Config file not found"))


class TestConfigured(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        importlib.reload(srv)
        cls.message = srv.configure_workspace(MOCK_PROJECT)

    def test_configure_message(self):
        self.assertIn("Workspace configured", self.message)
        self.assertIn("Findings reported as: warning", self.message)

    def test_include_dirs_discovered(self):
        self.assertIn("include", srv.config.include_dirs)

    def test_check_includes(self):
        out = srv.check_includes("main.c")
        self.assertIn("`unused.h`", out)
        self.assertIn("`config.h`", out)
        self.assertIn("main.c:3:1: warning: include cleaner: unused #include of 'unused.h'", out)
        self.assertNotIn("`util.h`", out)

    def test_check_clean_file(self):
        self.assertIn("No include problems", srv.check_includes("motor/engine.c"))

    def test_check_missing_file(self):
        self.assertTrue(srv.check_includes("nope.c").startswith("Error: File not found"))

    def test_explain_includes(self):
        out = srv.explain_includes("motor/engine.c")
        self.assertIn("`motor/motor_api.h`", out)
        self.assertIn("private:motor/motor_private.h", out)
        self.assertIn("reference:motor_private_step", out)

    def test_explain_annotations(self):
        out = srv.explain_includes("main.c")
        self.assertIn("**live (optional)**", out)
        self.assertIn("**allowed (allowed)**", out)
        self.assertIn("**redundant_allowed (allowed)**", out)

    def test_check_workspace(self):
        out = srv.check_workspace()
        self.assertIn("| Source files | 7 |", out)
        self.assertIn("| Findings | 4 |", out)
        self.assertIn("| Analysis failures | 0 |", out)
        self.assertIn("`selfhdr/widget.c`", out)

    def test_werror_reconfigure(self):
        try:
            msg = srv.configure_workspace(MOCK_PROJECT, warnings_as_errors=True, extra_defines="X=1")
            self.assertIn("Findings reported as: error", msg)
            self.assertEqual(srv.config.defines.get("X"), "1")
            self.assertIn("| error |", srv.check_includes("main.c"))
        finally:
            srv.configure_workspace(MOCK_PROJECT)


if __name__ == '__main__':
    unittest.main()
