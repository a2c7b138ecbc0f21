import json
import os
import sys
import tempfile
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from pydantic import ValidationError

from include_cleaner.config import AnalyzerConfig, load_config, parse_defines


class TestDefaults(unittest.TestCase):

    def test_naming_conventions(self):
        config = AnalyzerConfig()
        self.assertEqual(config.header_suffixes, [".h"])
        self.assertEqual(config.source_suffixes, [".c"])
        self.assertEqual(config.self_header_suffixes, [".h", "_api.h"])
        self.assertEqual(config.private_suffix, "_private.h")
        self.assertEqual(config.public_suffix, "_api.h")
        self.assertEqual(config.system_prefixes, ["/usr/", "/Applications/Xcode.app/"])
        self.assertEqual(config.allowed_marker, " /* include:allowed */")
        self.assertEqual(config.optional_marker, " /* include:optional */")
        self.assertFalse(config.warnings_as_errors)

    def test_resolved_root_defaults_to_cwd(self):
        self.assertEqual(AnalyzerConfig().resolved_root(), os.path.abspath(os.getcwd()))


class TestParseDefines(unittest.TestCase):

    def test_parse(self):
        self.assertEqual(parse_defines("A=1, B ,C=x=y"), {"A": "1", "B": "1", "C": "x=y"})

    def test_empty(self):
        self.assertEqual(parse_defines(""), {})
        self.assertEqual(parse_defines(" , "), {})


class TestLoadConfig(unittest.TestCase):

    def _write(self, text):
        with tempfile.NamedTemporaryFile(suffix=".json", mode="w", delete=False) as f:
            f.write(text)
        self.addCleanup(os.unlink, f.name)
        return f.name

    def test_values_from_file(self):
        path = self._write(json.dumps({
            "include_dirs": ["include"],
            "defines": {"PLATFORM_X": "1"},
            "warnings_as_errors": True,
        }))
        config = load_config(path)
        self.assertEqual(config.include_dirs, ["include"])
        self.assertEqual(config.defines, {"PLATFORM_X": "1"})
        self.assertTrue(config.warnings_as_errors)

    def test_overrides_win(self):
        path = self._write(json.dumps({"warnings_as_errors": True, "include_dirs": ["a"]}))
        config = load_config(path, warnings_as_errors=False, include_dirs=None)
        self.assertFalse(config.warnings_as_errors)
        self.assertEqual(config.include_dirs, ["a"])

    def test_missing_file_falls_back(self):
        with self.assertLogs("include_cleaner.config", level="ERROR"):
            config = load_config("/nonexistent/.include-cleaner.json")
        self.assertEqual(config, AnalyzerConfig())

    def test_invalid_json_falls_back(self):
        path = self._write("not valid json {{{")
        with self.assertLogs("include_cleaner.config", level="ERROR"):
            config = load_config(path)
        self.assertEqual(config.include_dirs, [])

    def test_non_object_falls_back(self):
        path = self._write("[1, 2, 3]")
        with self.assertLogs("include_cleaner.config", level="ERROR"):
            config = load_config(path)
        self.assertEqual(config, AnalyzerConfig())

    def test_bad_field_type_raises(self):
        path = self._write(json.dumps({"include_dirs": 5}))
        with self.assertRaises(ValidationError):
            load_config(path)


if __name__ == '__main__':
    unittest.main()
