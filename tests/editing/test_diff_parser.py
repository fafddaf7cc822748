"""Tests for the LatexDiffParser."""

import pytest

from latex_assist.editing.diff_parser import (
    LatexDiffParser, Hunk, ParseStatus, format_hunk,
)


def fence(*lines, tag="latex-diff"):
    return "\n".join([f"```{tag}", *lines, "```"])


SINGLE_HUNK_RESPONSE = (
    "Here is the fix for the typo in your introduction:\n\n"
    + fence("@@ -2,1 +2,1 @@", "-B", "+B2")
    + "\n\nThis keeps the rest of the section untouched.\n"
)


class TestParse:
    def test_single_hunk(self):
        result = LatexDiffParser().parse(SINGLE_HUNK_RESPONSE)

        assert result.status is ParseStatus.OK
        assert result.errors == []
        assert result.warnings == []
        assert result.hunks == [
            Hunk(
                start_line=2, original_line_count=1,
                new_start_line=2, new_line_count=1,
                removed_lines=["B"], added_lines=["B2"],
            )
        ]

    def test_prose_and_other_fences_ignored(self):
        response = "\n".join([
            "Some explanation with a stray -minus and +plus line",
            "-not a removal",
            fence("\\section{Intro}", tag="latex"),
            fence("@@ -1,1 +1,1 @@", "-old", "+new"),
            "+also not an addition",
        ])
        result = LatexDiffParser().parse(response)

        assert len(result.hunks) == 1
        assert result.hunks[0].removed_lines == ["old"]
        assert result.hunks[0].added_lines == ["new"]

    def test_multiple_blocks_keep_order(self):
        response = "\n\n".join([
            fence("@@ -10,1 +10,1 @@", "-ten", "+TEN"),
            "and also",
            fence("@@ -3,1 +3,1 @@", "-three", "+THREE"),
        ])
        result = LatexDiffParser().parse(response)

        assert [h.start_line for h in result.hunks] == [10, 3]

    def test_multiple_hunks_in_one_block(self):
        response = fence(
            "@@ -1,1 +1,1 @@", "-A", "+A2",
            "",
            "@@ -3,1 +3,2 @@", "-C", "+C2", "+C3",
        )
        result = LatexDiffParser().parse(response)

        assert result.status is ParseStatus.OK
        assert len(result.hunks) == 2
        assert result.hunks[1].added_lines == ["C2", "C3"]
        # The blank separator line does not count as context
        assert result.warnings == []

    def test_content_is_kept_verbatim(self):
        response = fence(
            "@@ -4,1 +4,1 @@",
            "-  \\textbf{Result}:  $x^2$  ",
            "+  \\textbf{Result}: $x^{2}$",
            "+",
        )
        hunk = LatexDiffParser().parse(response).hunks[0]

        assert hunk.removed_lines == ["  \\textbf{Result}:  $x^2$  "]
        assert hunk.added_lines == ["  \\textbf{Result}: $x^{2}$", ""]

    def test_no_fence_is_empty_not_error(self):
        result = LatexDiffParser().parse("I would rewrite the abstract entirely.")

        assert result.status is ParseStatus.EMPTY
        assert result.hunks == []
        assert result.errors == []

    def test_custom_fence_tag(self):
        response = fence("@@ -1,1 +1,1 @@", "-a", "+b", tag="tex-patch")

        assert LatexDiffParser().parse(response).hunks == []
        assert len(LatexDiffParser("tex-patch").parse(response).hunks) == 1

    def test_unterminated_fence_reads_to_end(self):
        response = "```latex-diff\n@@ -1,1 +1,1 @@\n-a\n+b\n"
        result = LatexDiffParser().parse(response)

        assert len(result.hunks) == 1

    def test_no_newline_marker_ignored(self):
        response = fence(
            "@@ -1,1 +1,1 @@", "-a", "\\ No newline at end of file", "+b",
        )
        hunk = LatexDiffParser().parse(response).hunks[0]

        assert hunk.removed_lines == ["a"]
        assert hunk.added_lines == ["b"]

    def test_crlf_response(self):
        response = "```latex-diff\r\n@@ -2,1 +2,1 @@\r\n-B\r\n+B2\r\n```\r\n"
        hunk = LatexDiffParser().parse(response).hunks[0]

        assert hunk.removed_lines == ["B"]
        assert hunk.added_lines == ["B2"]

    def test_form_feed_stays_in_line(self):
        result = LatexDiffParser().parse(fence("@@ -1,1 +1,1 @@", "-x\x0cy", "+z"))

        assert result.hunks == [Hunk(1, 1, 1, 1, ["x\x0cy"], ["z"])]

    def test_header_counts_optional(self):
        result = LatexDiffParser().parse(fence("@@ -3 +3 @@", "-c", "+d"))

        assert result.warnings == []
        assert result.hunks[0].start_line == 3
        assert result.hunks[0].original_line_count == 1


class TestContextLines:
    def test_leading_context_moves_start(self):
        response = fence("@@ -1,3 +1,3 @@", " A", "-B", "+B2", " C")
        result = LatexDiffParser().parse(response)
        hunk = result.hunks[0]

        assert hunk.start_line == 2
        assert hunk.new_start_line == 2
        assert hunk.removed_lines == ["B"]
        assert hunk.added_lines == ["B2"]
        assert result.warnings == []

    def test_interior_context_kept_on_both_sides(self):
        response = fence("@@ -1,3 +1,3 @@", "-A", "+A2", " B", "-C", "+C2")
        hunk = LatexDiffParser().parse(response).hunks[0]

        assert hunk.start_line == 1
        assert hunk.removed_lines == ["A", "B", "C"]
        assert hunk.added_lines == ["A2", "B", "C2"]

    def test_unprefixed_line_treated_as_context(self):
        response = fence("@@ -5,2 +5,2 @@", "\\begin{itemize}", "-\\item a", "+\\item b")
        hunk = LatexDiffParser().parse(response).hunks[0]

        assert hunk.start_line == 6
        assert hunk.removed_lines == ["\\item a"]


class TestMalformed:
    def test_one_valid_one_malformed(self):
        response = "\n".join([
            fence("@@ -x,1 +2,1 @@", "-B", "+B2"),
            fence("@@ -3,1 +3,1 @@", "-C", "+C2"),
        ])
        result = LatexDiffParser().parse(response)

        assert result.status is ParseStatus.PARTIAL
        assert len(result.hunks) == 1
        assert result.hunks[0].start_line == 3
        assert len(result.errors) == 1
        assert result.errors[0].block_index == 0
        assert "malformed hunk header" in result.errors[0].message

    def test_malformed_header_skips_only_its_body(self):
        response = fence(
            "@@ -1,1 +1 1 @@", "-A", "+A2",
            "@@ -2,1 +2,1 @@", "-B", "+B2",
        )
        result = LatexDiffParser().parse(response)

        assert [h.start_line for h in result.hunks] == [2]
        assert len(result.errors) == 1

    def test_negative_numbers_rejected(self):
        result = LatexDiffParser().parse(fence("@@ --1,1 +1,1 @@", "-A", "+B"))

        assert result.status is ParseStatus.EMPTY
        assert len(result.errors) == 1

    def test_block_without_header(self):
        result = LatexDiffParser().parse(fence("-A", "+B"))

        assert result.status is ParseStatus.EMPTY
        assert len(result.errors) == 1
        assert "before any hunk header" in result.errors[0].message

    def test_hunk_without_changes(self):
        result = LatexDiffParser().parse(fence("@@ -1,1 +1,1 @@", " A"))

        assert result.hunks == []
        assert "no removed or added lines" in result.errors[0].message

    def test_empty_block(self):
        result = LatexDiffParser().parse(fence(""))

        assert result.status is ParseStatus.EMPTY
        assert result.errors[0].message == "empty diff block"


class TestDeclaredCounts:
    def test_actual_counts_win(self):
        result = LatexDiffParser().parse(fence("@@ -2,3 +2,1 @@", "-B", "+B2"))
        hunk = result.hunks[0]

        assert hunk.original_line_count == 1
        assert hunk.removed_lines == ["B"]
        assert len(result.warnings) == 1
        assert "declared 3 original lines, found 1" in result.warnings[0]
        assert result.status is ParseStatus.OK


class TestHunk:
    def test_invariant_enforced(self):
        with pytest.raises(ValueError):
            Hunk(1, 2, 1, 0, removed_lines=["A"], added_lines=[])

    def test_kind_properties(self):
        insertion = Hunk(3, 0, 3, 1, [], ["x"])
        deletion = Hunk(3, 1, 3, 0, ["x"], [])

        assert insertion.is_insertion and not insertion.is_deletion
        assert deletion.is_deletion and deletion.line_delta == -1


class TestFormatHunk:
    def test_formatted_hunk_parses_back(self):
        hunk = Hunk(7, 2, 7, 1, ["\\item one", "\\item two"], ["\\item one and two"])
        text = format_hunk(hunk)

        assert text.startswith("```latex-diff\n@@ -7,2 +7,1 @@\n")
        assert LatexDiffParser().parse(text).hunks == [hunk]

    def test_without_fence(self):
        hunk = Hunk(1, 1, 1, 1, ["a"], ["b"])

        assert format_hunk(hunk, fence_tag=None) == "@@ -1,1 +1,1 @@\n-a\n+b"
