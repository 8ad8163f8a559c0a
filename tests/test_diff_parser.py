import unittest
from batch_ai_pr_reviewer.diff_parser import parse_diff_text, DiffParseError
from batch_ai_pr_reviewer.models import LineOp, DELETED_FILE_PATH


MODIFIED_FILE_DIFF = """\
diff --git a/src/service.py b/src/service.py
index 1234567..89abcde 100644
--- a/src/service.py
+++ b/src/service.py
@@ -1,4 +1,4 @@
 import os
-DEBUG = True
+DEBUG = False
 TIMEOUT = 30
 def run():
@@ -10,3 +10,4 @@ def run():
     value = compute()
     log(value)
+    return value
 # end
"""

DELETED_FILE_DIFF = """\
diff --git a/old.py b/old.py
deleted file mode 100644
index 1234567..0000000
--- a/old.py
+++ /dev/null
@@ -1,2 +0,0 @@
-x = 1
-y = 2
"""

NO_NEWLINE_DIFF = """\
diff --git a/notes.txt b/notes.txt
index 1234567..89abcde 100644
--- a/notes.txt
+++ b/notes.txt
@@ -1 +1 @@
-old text
\\ No newline at end of file
+new text
\\ No newline at end of file
"""

BINARY_AND_RENAME_DIFF = """\
diff --git a/img/logo.png b/img/logo.png
index 1234567..89abcde 100644
Binary files a/img/logo.png and b/img/logo.png differ
diff --git a/old_name.py b/new_name.py
similarity index 100%
rename from old_name.py
rename to new_name.py
"""

BROKEN_FILE_DIFF = """\
diff --git a/bad.py b/bad.py
index 1234567..89abcde 100644
--- a/bad.py
+++ b/bad.py
@@ -1,2 +1,2 @@
-old
garbage line without a diff prefix
"""


class TestDiffParser(unittest.TestCase):
    def test_parse_simple_diff(self):
        result = parse_diff_text(MODIFIED_FILE_DIFF)

        # Should have 1 file with 2 hunks
        self.assertEqual(len(result), 1)
        service = result[0]
        self.assertEqual(service.path, "src/service.py")
        self.assertEqual(service.old_path, "src/service.py")
        self.assertEqual(len(service.hunks), 2)

        hunk1 = service.hunks[0]
        self.assertEqual(hunk1.header, "@@ -1,4 +1,4 @@")
        self.assertEqual(hunk1.old_start, 1)
        self.assertEqual(hunk1.new_start, 1)
        ops = [line.op for line in hunk1.lines]
        self.assertEqual(ops, [LineOp.CONTEXT, LineOp.REMOVE, LineOp.ADD, LineOp.CONTEXT, LineOp.CONTEXT])

        removed = hunk1.lines[1]
        self.assertEqual((removed.old_line_number, removed.new_line_number), (2, None))
        self.assertEqual(removed.text, "DEBUG = True")
        added = hunk1.lines[2]
        self.assertEqual((added.old_line_number, added.new_line_number), (None, 2))
        self.assertEqual(added.text, "DEBUG = False")
        context = hunk1.lines[3]
        self.assertEqual((context.old_line_number, context.new_line_number), (3, 3))

    def test_second_hunk_counters_follow_header(self):
        hunk2 = parse_diff_text(MODIFIED_FILE_DIFF)[0].hunks[1]

        self.assertEqual(hunk2.header, "@@ -10,3 +10,4 @@ def run():")
        added = [line for line in hunk2.lines if line.op == LineOp.ADD]
        self.assertEqual(len(added), 1)
        self.assertEqual(added[0].new_line_number, 12)
        self.assertEqual(added[0].text.strip(), "return value")
        # Trailing context line is shifted by the addition
        self.assertEqual((hunk2.lines[-1].old_line_number, hunk2.lines[-1].new_line_number), (12, 13))
        self.assertEqual(hunk2.new_line_numbers, {10, 11, 12, 13})
        self.assertEqual(hunk2.old_line_numbers, {10, 11, 12})

    def test_every_changed_line_has_exactly_one_number(self):
        for diff_file in parse_diff_text(MODIFIED_FILE_DIFF):
            for hunk in diff_file.hunks:
                for line in hunk.lines:
                    if line.op == LineOp.ADD:
                        self.assertIsNone(line.old_line_number)
                        self.assertIsNotNone(line.new_line_number)
                    elif line.op == LineOp.REMOVE:
                        self.assertIsNone(line.new_line_number)
                        self.assertIsNotNone(line.old_line_number)

    def test_deleted_file_uses_sentinel_path(self):
        result = parse_diff_text(DELETED_FILE_DIFF)

        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].path, DELETED_FILE_PATH)
        self.assertTrue(result[0].is_deleted)
        self.assertEqual(result[0].old_path, "old.py")

    def test_no_newline_marker_is_skipped(self):
        result = parse_diff_text(NO_NEWLINE_DIFF)

        lines = result[0].hunks[0].lines
        self.assertEqual([line.op for line in lines], [LineOp.REMOVE, LineOp.ADD])
        self.assertEqual(lines[1].text, "new text")

    def test_binary_and_rename_only_entries_do_not_crash(self):
        result = parse_diff_text(BINARY_AND_RENAME_DIFF)

        paths = {diff_file.path: diff_file for diff_file in result}
        self.assertIn("img/logo.png", paths)
        self.assertTrue(paths["img/logo.png"].is_binary)
        self.assertEqual(paths["img/logo.png"].hunks, [])
        self.assertIn("new_name.py", paths)
        self.assertEqual(paths["new_name.py"].hunks, [])

    def test_empty_diff(self):
        self.assertEqual(parse_diff_text(""), [])
        self.assertEqual(parse_diff_text("   \n"), [])

    def test_malformed_diff_raises_by_default(self):
        with self.assertRaises(DiffParseError):
            parse_diff_text(MODIFIED_FILE_DIFF + BROKEN_FILE_DIFF)

    def test_lenient_mode_skips_only_the_broken_file(self):
        result = parse_diff_text(MODIFIED_FILE_DIFF + BROKEN_FILE_DIFF + DELETED_FILE_DIFF, lenient=True)

        self.assertEqual([diff_file.path for diff_file in result], ["src/service.py", DELETED_FILE_PATH])


if __name__ == '__main__':
    unittest.main()
