"""Unit tests for unified diff parsing and application."""

import difflib

import pytest

from toolhost.diff import (
    ContextMismatchError,
    EmptyDiffError,
    HunkDecision,
    InvalidHunkHeaderError,
    InvalidPathError,
    LineKind,
    MissingFileError,
    MissingFileHeaderError,
    NothingToApplyError,
    apply_diff,
    parse_unified_diff,
)
from toolhost.diff.parser import clean_path, parse_hunk_header, parse_hunk_ranges

SIMPLE_DIFF = """\
--- a/hello.txt
+++ b/hello.txt
@@ -1,3 +1,3 @@
 one
-two
+TWO
 three
"""


class TestParser:
    """Tests for parse_unified_diff."""

    def test_parse_simple(self):
        """Files, hunks and line kinds are parsed."""
        view = parse_unified_diff(SIMPLE_DIFF)

        assert len(view.files) == 1
        diff_file = view.files[0]
        assert diff_file.old_path == "hello.txt"
        assert diff_file.new_path == "hello.txt"
        hunk = diff_file.hunks[0]
        assert (hunk.old_start, hunk.new_start) == (1, 1)
        assert [line.kind for line in hunk.lines] == [
            LineKind.CONTEXT,
            LineKind.REMOVE,
            LineKind.ADD,
            LineKind.CONTEXT,
        ]
        assert hunk.decision is HunkDecision.PENDING

    def test_ignores_preamble(self):
        """git metadata lines outside hunks are ignored."""
        text = "diff --git a/hello.txt b/hello.txt\nindex 123..456 100644\n" + SIMPLE_DIFF
        assert len(parse_unified_diff(text).files[0].hunks[0].lines) == 4

    def test_multiple_files_and_hunks(self):
        """Each +++ starts a new file and each @@ a new hunk."""
        text = SIMPLE_DIFF + "--- a/b.txt\n+++ b/b.txt\n@@ -1 +1 @@\n-x\n+y\n@@ -10,2 +10,2 @@\n a\n-b\n+c\n"
        view = parse_unified_diff(text)
        assert [f.new_path for f in view.files] == ["hello.txt", "b.txt"]
        assert [h.old_start for h in view.files[1].hunks] == [1, 10]

    def test_empty_diff(self):
        """Text without file sections is an EmptyDiff."""
        with pytest.raises(EmptyDiffError):
            parse_unified_diff("just some text\n")

    def test_plus_header_without_minus(self):
        """+++ without a preceding --- is a missing file header."""
        with pytest.raises(MissingFileHeaderError):
            parse_unified_diff("+++ b/x.txt\n@@ -1 +1 @@\n")

    def test_hunk_before_file(self):
        """@@ before any file is a missing file header."""
        with pytest.raises(MissingFileHeaderError):
            parse_unified_diff("@@ -1 +1 @@\n-a\n+b\n")

    def test_invalid_hunk_header(self):
        """A malformed @@ line is rejected."""
        with pytest.raises(InvalidHunkHeaderError):
            parse_unified_diff("--- a/x\n+++ b/x\n@@ -a,b +c,d @@\n")

    def test_parse_hunk_header(self):
        """Counts are optional in hunk ranges."""
        assert parse_hunk_header("@@ -12,7 +14,8 @@ def foo():") == (12, 14)
        assert parse_hunk_header("@@ -1 +1 @@") == (1, 1)

    def test_parse_hunk_ranges(self):
        """Counts default to one and may be zero."""
        assert parse_hunk_ranges("@@ -12,7 +14,8 @@ def foo():") == (12, 7, 14, 8)
        assert parse_hunk_ranges("@@ -1 +1 @@") == (1, 1, 1, 1)
        assert parse_hunk_ranges("@@ -0,0 +1,2 @@") == (0, 0, 1, 2)

    def test_header_lookalikes_inside_hunk(self):
        """Removed '-- ' and added '++ ' lines stay in the hunk while counts remain."""
        text = "--- a/q.sql\n+++ b/q.sql\n@@ -1,2 +1,2 @@\n--- old comment\n+++ new comment\n select 1;\n"
        view = parse_unified_diff(text)

        assert len(view.files) == 1
        lines = view.files[0].hunks[0].lines
        assert [(line.kind, line.content) for line in lines] == [
            (LineKind.REMOVE, "-- old comment"),
            (LineKind.ADD, "++ new comment"),
            (LineKind.CONTEXT, "select 1;"),
        ]

    def test_next_file_after_counted_hunk(self):
        """Once the counts are used up, --- and +++ start the next file."""
        text = "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-a\n+b\n--- a/y\n+++ b/y\n@@ -1 +1 @@\n-c\n+d\n"
        view = parse_unified_diff(text)
        assert [f.new_path for f in view.files] == ["x", "y"]
        assert [len(f.hunks[0].lines) for f in view.files] == [2, 2]

    def test_miscounted_hunk_still_finds_next_file(self):
        """A ---/+++/@@ triple starts a new file even if the hunk claimed more lines."""
        text = "--- a/x\n+++ b/x\n@@ -1,5 +1,5 @@\n-a\n+b\n--- a/y\n+++ b/y\n@@ -1 +1 @@\n-c\n+d\n"
        view = parse_unified_diff(text)
        assert [f.new_path for f in view.files] == ["x", "y"]

    def test_blank_line_counts_as_context(self):
        """An empty line inside a counted hunk is an empty context line."""
        text = "--- a/x\n+++ b/x\n@@ -1,3 +1,3 @@\n a\n\n-b\n+c\n"
        lines = parse_unified_diff(text).files[0].hunks[0].lines
        assert lines[1].kind is LineKind.CONTEXT
        assert lines[1].content == ""

    def test_no_newline_markers(self):
        """The marker flags the side of the line before it."""
        text = (
            "--- a/x\n+++ b/x\n@@ -1 +1 @@\n-old\n\\ No newline at end of file\n"
            "+new\n\\ No newline at end of file\n"
        )
        hunk = parse_unified_diff(text).files[0].hunks[0]
        assert hunk.old_no_newline
        assert hunk.new_no_newline
        assert len(hunk.lines) == 2

    def test_clean_path(self):
        """git prefixes are stripped."""
        assert clean_path("a/src/main.py") == "src/main.py"
        assert clean_path("b/src/main.py") == "src/main.py"
        assert clean_path("/dev/null") == "/dev/null"


class TestApply:
    """Tests for apply_diff."""

    def test_apply_accepted(self, tmp_path):
        """Accepted hunks are applied and a backup is written."""
        target = tmp_path / "hello.txt"
        target.write_text("one\ntwo\nthree\n")

        written = apply_diff(parse_unified_diff(SIMPLE_DIFF).accept_all(), tmp_path)

        assert written == [target]
        assert target.read_text() == "one\nTWO\nthree\n"
        assert (tmp_path / "hello.txt.bak").read_text() == "one\ntwo\nthree\n"

    def test_preserves_missing_trailing_newline(self, tmp_path):
        """Files without a final newline stay that way."""
        target = tmp_path / "hello.txt"
        target.write_text("one\ntwo\nthree")
        apply_diff(parse_unified_diff(SIMPLE_DIFF).accept_all(), tmp_path)
        assert target.read_text() == "one\nTWO\nthree"

    def test_keeps_untouched_lines(self, tmp_path):
        """Lines before and after the hunk are copied through."""
        target = tmp_path / "big.txt"
        target.write_text("".join(f"line{i}\n" for i in range(1, 11)))
        diff = "--- a/big.txt\n+++ b/big.txt\n@@ -5,1 +5,1 @@\n-line5\n+LINE5\n"

        apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)

        lines = target.read_text().splitlines()
        assert lines[3:6] == ["line4", "LINE5", "line6"]
        assert len(lines) == 10

    def test_creates_new_file(self, tmp_path):
        """A diff from /dev/null creates the file and its directories."""
        diff = "--- /dev/null\n+++ b/pkg/new.txt\n@@ -0,0 +1,2 @@\n+first\n+second\n"
        apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)
        assert (tmp_path / "pkg" / "new.txt").read_text() == "first\nsecond\n"

    def test_deleted_side_uses_old_path(self, tmp_path):
        """A diff to /dev/null targets the old path and empties it."""
        target = tmp_path / "gone.txt"
        target.write_text("a\nb\n")
        diff = "--- a/gone.txt\n+++ /dev/null\n@@ -1,2 +0,0 @@\n-a\n-b\n"
        apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)
        assert target.read_text() == ""

    def test_context_mismatch_leaves_file(self, tmp_path):
        """Mismatched context raises and leaves the file untouched."""
        target = tmp_path / "hello.txt"
        target.write_text("one\nDIFFERENT\nthree\n")

        with pytest.raises(ContextMismatchError):
            apply_diff(parse_unified_diff(SIMPLE_DIFF).accept_all(), tmp_path)
        assert target.read_text() == "one\nDIFFERENT\nthree\n"
        assert not (tmp_path / "hello.txt.bak").exists()

    def test_hunk_beyond_file(self, tmp_path):
        """A hunk starting past the end of the file is a mismatch."""
        (tmp_path / "short.txt").write_text("a\n")
        diff = "--- a/short.txt\n+++ b/short.txt\n@@ -5,1 +5,1 @@\n-x\n+y\n"
        with pytest.raises(ContextMismatchError):
            apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)

    def test_pure_insertion_goes_after_old_start(self, tmp_path):
        """With an old count of zero the hunk inserts after line old_start."""
        target = tmp_path / "f.txt"
        target.write_text("a\nb\nc\n")
        diff = "--- a/f.txt\n+++ b/f.txt\n@@ -2,0 +3 @@\n+inserted\n"
        apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)
        assert target.read_text() == "a\nb\ninserted\nc\n"

    def test_only_accepted_hunks(self, tmp_path):
        """Rejected hunks are skipped."""
        target = tmp_path / "f.txt"
        target.write_text("a\nb\nc\nd\n")
        diff = "--- a/f.txt\n+++ b/f.txt\n@@ -1,1 +1,1 @@\n-a\n+A\n@@ -4,1 +4,1 @@\n-d\n+D\n"
        view = parse_unified_diff(diff)
        first, second = view.files[0].hunks
        first.set_decision(HunkDecision.REJECTED)
        second.set_decision(HunkDecision.ACCEPTED)

        apply_diff(view, tmp_path)
        assert target.read_text() == "a\nb\nc\nD\n"

    def test_nothing_to_apply(self, tmp_path):
        """A view with no accepted hunks is an error."""
        with pytest.raises(NothingToApplyError):
            apply_diff(parse_unified_diff(SIMPLE_DIFF), tmp_path)

    @pytest.mark.parametrize("path", ["/etc/passwd", "../escape.txt", "sub/../../escape.txt"])
    def test_invalid_paths(self, tmp_path, path):
        """Absolute and parent-relative targets are rejected."""
        diff = f"--- {path}\n+++ {path}\n@@ -1 +1 @@\n-a\n+b\n"
        with pytest.raises(InvalidPathError):
            apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)

    def test_both_dev_null(self, tmp_path):
        """A diff between two /dev/null paths has no target."""
        diff = "--- /dev/null\n+++ /dev/null\n@@ -0,0 +1 @@\n+x\n"
        with pytest.raises(MissingFileError):
            apply_diff(parse_unified_diff(diff).accept_all(), tmp_path)


def _unified_diff(before: str, after: str) -> str:
    """difflib output with the no-newline markers difflib leaves out."""
    out = []
    for line in difflib.unified_diff(
        before.splitlines(keepends=True), after.splitlines(keepends=True), "a/f.txt", "b/f.txt"
    ):
        out.append(line)
        if not line.endswith("\n"):
            out.append("\n\\ No newline at end of file\n")
    return "".join(out)


LONG = "".join(f"line {i}\n" for i in range(1, 21))


class TestRoundTrip:
    """Applying diff(A, B) to A yields B byte for byte."""

    @pytest.mark.parametrize(
        "before, after",
        [
            ("one\ntwo\nthree\n", "one\nTWO\nthree\n"),
            ("a\n-- note\nb\n", "a\nb\n"),
            ("a\nb\n", "a\n++ added\nb\n"),
            ("-- old\n", "++ new\n"),
            ("--- a/f.txt\n+++ b/f.txt\n", "x\n"),
            ("", "first\nsecond\n"),
            ("", "no newline"),
            ("x\ny\n", ""),
            ("a\nb\nc", "a\nB\nc"),
            ("a\nb", "a\nb\n"),
            ("a\nb\n", "a\nb"),
            ("a\n\nb\n", "a\n\nc\n"),
            (LONG, LONG.replace("line 3\n", "LINE 3\n").replace("line 18\n", "")),
            (LONG, LONG + "line 21\n"),
        ],
    )
    def test_round_trip(self, tmp_path, before, after):
        target = tmp_path / "f.txt"
        target.write_text(before)

        apply_diff(parse_unified_diff(_unified_diff(before, after)).accept_all(), tmp_path)

        assert target.read_text() == after
