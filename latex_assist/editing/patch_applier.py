"""
Patch applier — applies parsed hunks to an in-memory document buffer.

Nothing here touches storage: every function takes a list of lines and
returns a new one, leaving the input untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .diff_parser import Hunk

logger = logging.getLogger(__name__)


class PatchApplyError(Exception):
    """Raised when a hunk cannot be applied cleanly."""

    def __init__(self, message: str, hunk: Hunk) -> None:
        super().__init__(message)
        self.hunk = hunk


class RangeError(PatchApplyError):
    """The hunk's line range lies outside the document."""


class ConflictError(PatchApplyError):
    """The document no longer contains the lines the hunk removes."""


def line_ending(text: str) -> str:
    """``"\\r\\n"`` when every line break in *text* is CRLF, else ``"\\n"``."""
    breaks = text.count("\n")
    if breaks and text.count("\r\n") == breaks:
        return "\r\n"
    return "\n"


def split_lines(text: str, eol: str = "\n") -> list[str]:
    """Split document text so that ``join_lines`` with the same *eol*
    restores it exactly.

    Only *eol* breaks a line; form feeds and other characters that
    ``str.splitlines`` treats as boundaries stay part of the line.
    """
    return text.split(eol)


def join_lines(lines: list[str], eol: str = "\n") -> str:
    return eol.join(lines)


def apply_hunk(
    lines: list[str],
    hunk: Hunk,
    start_line: Optional[int] = None,
) -> list[str]:
    """Return a copy of *lines* with *hunk* applied.

    Parameters
    ----------
    lines:
        Current document lines.
    hunk:
        The hunk to apply.
    start_line:
        1-indexed position to apply at, when it differs from
        ``hunk.start_line`` (e.g. after earlier hunks shifted the text).

    Raises
    ------
    RangeError
        ``start < 1`` or the removed range runs past the last line.
    ConflictError
        The lines at that position differ from ``hunk.removed_lines``.
    """
    start = hunk.start_line if start_line is None else start_line
    end = start + hunk.original_line_count - 1

    if start < 1 or end > len(lines):
        raise RangeError(
            f"lines {start}-{end} out of range for document with "
            f"{len(lines)} lines",
            hunk,
        )

    current = lines[start - 1:end]
    if current != hunk.removed_lines:
        raise ConflictError(
            f"document changed at lines {start}-{end}; expected "
            f"{hunk.removed_lines!r}, found {current!r}",
            hunk,
        )

    return lines[:start - 1] + list(hunk.added_lines) + lines[end:]


def rebased_start(start_line: int, applied_at: int, applied: Hunk) -> int:
    """Where a hunk that started at *start_line* sits after *applied* went in.

    Only hunks entirely below the applied range move; anything touching
    it keeps its position and will be caught by the content check.
    """
    if start_line > applied_at + applied.original_line_count - 1:
        return start_line + applied.line_delta
    return start_line


@dataclass
class ApplyResult:
    """Result of applying a batch of hunks."""
    lines: list[str] = field(default_factory=list)
    applied: list[Hunk] = field(default_factory=list)
    failures: list[PatchApplyError] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def text(self) -> str:
        return join_lines(self.lines)


class PatchApplier:
    """Apply several hunks from one response to the same document."""

    def apply(self, lines: list[str], hunks: list[Hunk]) -> ApplyResult:
        """Apply *hunks* in ascending ``start_line`` order.

        Hunk positions refer to the original document. Each successful
        hunk shifts the following ones by its line delta; a hunk that
        overlaps a range already rewritten in this batch is rejected
        with ``ConflictError``. Failed hunks do not stop the batch.
        """
        result = ApplyResult(lines=list(lines))
        offset = 0
        rewritten_to = 0  # last original line consumed by an applied hunk

        # Insertions sort ahead of replacements at the same line.
        ordered = sorted(hunks, key=lambda h: (h.start_line, h.original_line_count))
        for hunk in ordered:
            if result.applied and hunk.start_line <= rewritten_to:
                error = ConflictError(
                    f"hunk at line {hunk.start_line} overlaps an earlier "
                    f"hunk ending at line {rewritten_to}",
                    hunk,
                )
                result.failures.append(error)
                logger.warning("[Suggest] %s", error)
                continue

            try:
                result.lines = apply_hunk(
                    result.lines, hunk, start_line=hunk.start_line + offset,
                )
            except PatchApplyError as exc:
                result.failures.append(exc)
                logger.warning(
                    "[Suggest] Hunk at line %d failed: %s", hunk.start_line, exc,
                )
                continue

            result.applied.append(hunk)
            offset += hunk.line_delta
            rewritten_to = max(
                rewritten_to, hunk.start_line + hunk.original_line_count - 1,
            )

        return result
