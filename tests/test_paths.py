import os
import sys
import unittest

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from include_cleaner.paths import canonical_file_id, has_suffix, strip_suffix, under_prefix


class TestCanonicalFileId(unittest.TestCase):

    def test_dot_segments_collapsed(self):
        self.assertEqual(canonical_file_id("./inc/../util.h"), "util.h")
        self.assertEqual(canonical_file_id("a//b/./c.h"), "a/b/c.h")

    def test_backslashes(self):
        self.assertEqual(canonical_file_id("inc\\util.h"), "inc/util.h")

    def test_relative_to_root(self):
        self.assertEqual(canonical_file_id("/work/proj/src/util.h", "/work/proj"), "src/util.h")

    def test_relative_spelling_anchored_at_root(self):
        self.assertEqual(canonical_file_id("util.h", "/work/proj"), "util.h")
        self.assertEqual(canonical_file_id("../proj/util.h", "/work/proj"), "util.h")
        self.assertEqual(canonical_file_id("../other/x.h", "/work/proj"), "/work/other/x.h")

    def test_relative_spelling_anchored_at_cwd(self):
        self.assertEqual(canonical_file_id(os.path.abspath("util.h")), "util.h")
        self.assertEqual(canonical_file_id(os.getcwd()), ".")

    def test_outside_root_stays_absolute(self):
        self.assertEqual(canonical_file_id("/usr/include/stdio.h", "/work/proj"), "/usr/include/stdio.h")
        # sibling directory sharing a name prefix
        self.assertEqual(canonical_file_id("/work/project2/a.h", "/work/proj"), "/work/project2/a.h")

    def test_idempotent(self):
        for p in ("./inc/../util.h", "/work/proj/src/../util.h", "//usr//include/x.h"):
            once = canonical_file_id(p, "/work/proj")
            self.assertEqual(canonical_file_id(once, "/work/proj"), once)

    def test_empty(self):
        self.assertEqual(canonical_file_id(""), "")


class TestSuffixHelpers(unittest.TestCase):

    def test_strip_suffix(self):
        self.assertEqual(strip_suffix("src/x.c", [".c"]), "src/x")
        self.assertIsNone(strip_suffix("src/x.cpp", [".c"]))
        self.assertEqual(strip_suffix("motor_private.h", ["_private.h"]), "motor")

    def test_has_suffix(self):
        self.assertTrue(has_suffix("util.h", [".h"]))
        self.assertFalse(has_suffix("table.inc", [".h"]))
        self.assertFalse(has_suffix("util.h", [""]))

    def test_under_prefix(self):
        self.assertTrue(under_prefix("/usr/include/stdio.h", ["/usr/"]))
        self.assertFalse(under_prefix("usr/local.h", ["/usr/"]))


if __name__ == '__main__':
    unittest.main()
