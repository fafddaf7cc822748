"""
Diff parser — extracts ``latex-diff`` fenced blocks from an assistant
response and turns them into hunks the applier can work with.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_FENCE_TAG = "latex-diff"

_FENCE = "```"
# Unprefixed context lines often start with a LaTeX command, so only the
# exact marker is skipped.
_NO_NEWLINE_MARKER = "\\ No newline at end of file"
_HEADER_PATTERN = re.compile(
    r"^@@\s*-(\d+)(?:,(\d+))?\s*\+(\d+)(?:,(\d+))?\s*@@"
)


def _response_lines(response: str) -> list[str]:
    # Same line model as the document buffer: break on "\n" only, so form
    # feeds and other control characters stay inside the line. A CR from
    # a CRLF break is dropped.
    return [line[:-1] if line.endswith("\r") else line
            for line in response.split("\n")]


@dataclass
class Hunk:
    """One contiguous change: removed lines → added lines at a position."""
    start_line: int            # 1-indexed, original side
    original_line_count: int
    new_start_line: int
    new_line_count: int
    removed_lines: list[str] = field(default_factory=list)
    added_lines: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if len(self.removed_lines) != self.original_line_count:
            raise ValueError(
                f"original_line_count={self.original_line_count} but "
                f"{len(self.removed_lines)} removed lines"
            )
        if len(self.added_lines) != self.new_line_count:
            raise ValueError(
                f"new_line_count={self.new_line_count} but "
                f"{len(self.added_lines)} added lines"
            )

    @property
    def is_insertion(self) -> bool:
        return self.original_line_count == 0

    @property
    def is_deletion(self) -> bool:
        return self.new_line_count == 0

    @property
    def line_delta(self) -> int:
        return self.new_line_count - self.original_line_count


@dataclass
class ParseError:
    """A malformed hunk that was skipped. Reported, never raised."""
    message: str
    block_index: int
    line: str = ""

    def __str__(self) -> str:
        if self.line:
            return f"block {self.block_index}: {self.message}: {self.line!r}"
        return f"block {self.block_index}: {self.message}"


class ParseStatus(enum.Enum):
    OK = "ok"
    PARTIAL = "partial"
    EMPTY = "empty"


@dataclass
class ParseResult:
    """Outcome of parsing one assistant response.

    ``status`` tells callers apart "no suggestions found" (EMPTY) from
    "some hunks were malformed" (PARTIAL).
    """
    hunks: list[Hunk] = field(default_factory=list)
    errors: list[ParseError] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def status(self) -> ParseStatus:
        if not self.hunks:
            return ParseStatus.EMPTY
        if self.errors:
            return ParseStatus.PARTIAL
        return ParseStatus.OK


class _HunkBuilder:
    """Accumulates the body lines of one hunk after its header."""

    def __init__(self, header: re.Match) -> None:
        self.header = header.group(0)
        self.old_start = int(header.group(1))
        self.old_count = int(header.group(2)) if header.group(2) is not None else None
        self.new_start = int(header.group(3))
        self.new_count = int(header.group(4)) if header.group(4) is not None else None

        self.leading_context = 0
        self.removed: list[str] = []
        self.added: list[str] = []
        self._interior: list[str] = []
        self._seen_change = False
        self.old_seen = 0
        self.new_seen = 0

    def feed(self, line: str) -> None:
        if line.startswith(_NO_NEWLINE_MARKER):
            return
        if line.startswith("-"):
            self._flush_interior()
            self.removed.append(line[1:])
            self._seen_change = True
            self.old_seen += 1
        elif line.startswith("+"):
            self._flush_interior()
            self.added.append(line[1:])
            self._seen_change = True
            self.new_seen += 1
        else:
            context = line[1:] if line.startswith(" ") else line
            self.old_seen += 1
            self.new_seen += 1
            if self._seen_change:
                self._interior.append(context)
            else:
                self.leading_context += 1

    def _flush_interior(self) -> None:
        # Context between two changes is kept on both sides.
        if self._interior:
            self.removed.extend(self._interior)
            self.added.extend(self._interior)
            self._interior = []

    def count_warnings(self) -> list[str]:
        # Blank separator lines between hunks are not counted.
        blank_tail = 0
        for context in reversed(self._interior):
            if context.strip():
                break
            blank_tail += 1
        old_seen = self.old_seen - blank_tail
        new_seen = self.new_seen - blank_tail

        warnings = []
        if self.old_count is not None and self.old_count != old_seen:
            warnings.append(
                f"{self.header}: declared {self.old_count} original lines, "
                f"found {old_seen}"
            )
        if self.new_count is not None and self.new_count != new_seen:
            warnings.append(
                f"{self.header}: declared {self.new_count} new lines, "
                f"found {new_seen}"
            )
        return warnings

    def build(self) -> Hunk | None:
        if not self._seen_change:
            return None
        return Hunk(
            start_line=self.old_start + self.leading_context,
            original_line_count=len(self.removed),
            new_start_line=self.new_start + self.leading_context,
            new_line_count=len(self.added),
            removed_lines=list(self.removed),
            added_lines=list(self.added),
        )


class LatexDiffParser:
    """Parse ``latex-diff`` suggestions out of assistant responses."""

    def __init__(self, fence_tag: str = DEFAULT_FENCE_TAG) -> None:
        self.fence_tag = fence_tag

    def parse(self, response: str) -> ParseResult:
        """Parse every fenced diff block in *response*.

        Parameters
        ----------
        response:
            The full, buffered assistant response text.

        Returns
        -------
        ParseResult
            Hunks in the order they appear, plus one ``ParseError`` per
            skipped hunk. Declared header counts are only checked; the
            captured lines are what the hunk is built from.
        """
        result = ParseResult()
        blocks = self.extract_blocks(response)

        if not blocks:
            logger.info("[Suggest] No %s blocks in response", self.fence_tag)
            return result

        for index, block in enumerate(blocks):
            self._parse_block(index, block, result)

        for warning in result.warnings:
            logger.warning("[Suggest] Hunk count mismatch, trusting content: %s", warning)
        logger.info(
            "[Suggest] Parsed %d hunk(s) from %d block(s), %d error(s)",
            len(result.hunks), len(blocks), len(result.errors),
        )
        return result

    def extract_blocks(self, response: str) -> list[list[str]]:
        """Return the body lines of each fenced block, prose discarded."""
        blocks: list[list[str]] = []
        current: list[str] | None = None
        opener = _FENCE + self.fence_tag

        for line in _response_lines(response):
            stripped = line.strip()
            if current is None:
                if stripped.startswith(opener) and not stripped[len(opener):].strip():
                    current = []
                continue
            if stripped.startswith(_FENCE):
                blocks.append(current)
                current = None
                continue
            current.append(line)

        if current is not None:
            logger.debug("[Suggest] Unterminated %s fence, reading to end", self.fence_tag)
            blocks.append(current)
        return blocks

    # ------------------------------------------------------------------
    # Internal parsing
    # ------------------------------------------------------------------

    def _parse_block(self, index: int, lines: list[str], result: ParseResult) -> None:
        while lines and not lines[-1].strip():
            lines = lines[:-1]
        if not lines:
            result.errors.append(ParseError("empty diff block", index))
            return

        builder: _HunkBuilder | None = None
        skipping = False

        for line in lines:
            if line.startswith("@@"):
                self._finish(index, builder, result)
                match = _HEADER_PATTERN.match(line)
                if match is None:
                    result.errors.append(
                        ParseError("malformed hunk header", index, line)
                    )
                    logger.warning("[Suggest] Skipping malformed header: %r", line)
                    builder = None
                    skipping = True
                else:
                    builder = _HunkBuilder(match)
                    skipping = False
                continue

            if builder is not None:
                builder.feed(line)
            elif not skipping and line.strip():
                result.errors.append(
                    ParseError("diff content before any hunk header", index, line)
                )
                skipping = True

        self._finish(index, builder, result)

    @staticmethod
    def _finish(index: int, builder: _HunkBuilder | None, result: ParseResult) -> None:
        if builder is None:
            return
        hunk = builder.build()
        if hunk is None:
            result.errors.append(
                ParseError("hunk has no removed or added lines", index, builder.header)
            )
            return
        result.warnings.extend(builder.count_warnings())
        result.hunks.append(hunk)


def format_hunk(hunk: Hunk, fence_tag: str | None = DEFAULT_FENCE_TAG) -> str:
    """Render *hunk* back into the patch dialect.

    With ``fence_tag=None`` only the header and body are returned.
    """
    lines = [
        f"@@ -{hunk.start_line},{hunk.original_line_count} "
        f"+{hunk.new_start_line},{hunk.new_line_count} @@"
    ]
    lines.extend(f"-{line}" for line in hunk.removed_lines)
    lines.extend(f"+{line}" for line in hunk.added_lines)
    if fence_tag is None:
        return "\n".join(lines)
    return "\n".join([_FENCE + fence_tag, *lines, _FENCE])
