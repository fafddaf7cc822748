"""
Editing session — one open document, its buffer and its AI suggestions.

The session owns all mutable per-document state. Collaborators (storage,
compiler, usage limits, the language model) are passed in, so several
sessions can live side by side.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Optional

from .collaborators import CompilationResult, SaveResult
from .editing.diff_parser import DEFAULT_FENCE_TAG, LatexDiffParser, ParseResult
from .editing.patch_applier import (
    PatchApplyError, apply_hunk, join_lines, line_ending, rebased_start,
    split_lines,
)
from .editing.suggestions import EditSuggestion, SuggestionStore, Transition
from .prompts import build_conflict_messages, build_suggestion_messages

logger = logging.getLogger(__name__)


class AcceptOutcome(enum.Enum):
    APPLIED = "applied"
    IDEMPOTENT_NOOP = "idempotent_noop"
    FAILED = "failed"
    LIMIT_REACHED = "limit_reached"


@dataclass
class AcceptResult:
    outcome: AcceptOutcome
    suggestion: EditSuggestion
    error: Optional[PatchApplyError] = None
    save: Optional[SaveResult] = None


@dataclass
class IngestResult:
    parse: ParseResult
    suggestions: list[EditSuggestion] = field(default_factory=list)


class EditingSession:
    """Buffer + suggestions for a single document.

    Parameters
    ----------
    document_id:
        Id the persistence collaborator stores the document under.
    content:
        Current document text.
    store:
        Persistence collaborator with ``save(document_id, content)``.
    compiler:
        Compilation collaborator with ``compile(content)``.
    usage:
        Optional :class:`~latex_assist.usage.UsageTracker` enforcing
        edit limits on accepted suggestions.

    A document whose line breaks are all CRLF is split on CRLF and
    written back with it.
    """

    def __init__(
        self,
        document_id: str,
        content: str,
        *,
        store=None,
        compiler=None,
        usage=None,
        parser: Optional[LatexDiffParser] = None,
        fence_tag: str = DEFAULT_FENCE_TAG,
    ) -> None:
        self.document_id = document_id
        self.eol = line_ending(content)
        self._lines = split_lines(content, self.eol)
        self.suggestions = SuggestionStore()
        self.store = store
        self.compiler = compiler
        self.usage = usage
        self.parser = parser or LatexDiffParser(fence_tag)
        self.dirty = False

    # ------------------------------------------------------------------
    # Buffer
    # ------------------------------------------------------------------

    @property
    def lines(self) -> list[str]:
        return list(self._lines)

    @property
    def content(self) -> str:
        return join_lines(self._lines, self.eol)

    def replace_content(self, content: str) -> None:
        """Direct user edits. Pending suggestions are not moved."""
        self.eol = line_ending(content)
        self._lines = split_lines(content, self.eol)
        self.dirty = True

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def ingest_response(self, response: str) -> IngestResult:
        """Parse an assistant response and queue its hunks as pending."""
        parsed = self.parser.parse(response)
        for error in parsed.errors:
            logger.warning("[Suggest] %s: skipped hunk, %s", self.document_id, error)
        created = self.suggestions.add(parsed.hunks)
        return IngestResult(parse=parsed, suggestions=created)

    def accept(self, suggestion_id: str) -> AcceptResult:
        """Apply one suggestion to the buffer and persist the result."""
        suggestion = self.suggestions.get(suggestion_id)
        result = self._accept(suggestion)
        if result.outcome is AcceptOutcome.APPLIED:
            result.save = self.save()
        return result

    def accept_all(self) -> list[AcceptResult]:
        """Accept every pending suggestion, top to bottom, saving once."""
        # Each accepted hunk re-anchors the ones below it, so walking in
        # ascending order applies every hunk at its shifted position.
        pending = sorted(self.suggestions.pending(), key=lambda s: s.start_line)
        results = [self._accept(s) for s in pending]

        applied = [r for r in results if r.outcome is AcceptOutcome.APPLIED]
        if applied:
            saved = self.save()
            for result in applied:
                result.save = saved
        return results

    def reject(self, suggestion_id: str) -> Transition:
        return self.suggestions.reject(suggestion_id)

    def _accept(self, suggestion: EditSuggestion) -> AcceptResult:
        if suggestion.status.is_terminal:
            return AcceptResult(AcceptOutcome.IDEMPOTENT_NOOP, suggestion)

        if self.usage is not None and not self.usage.can_edit():
            logger.info("[Suggest] Edit limit reached, %s stays pending", suggestion.id)
            return AcceptResult(AcceptOutcome.LIMIT_REACHED, suggestion)

        try:
            new_lines = apply_hunk(self._lines, suggestion.hunk)
        except PatchApplyError as exc:
            self.suggestions.reject(suggestion.id, error=str(exc))
            logger.warning(
                "[Suggest] %s: suggestion %s rejected: %s",
                self.document_id, suggestion.id, exc,
            )
            return AcceptResult(AcceptOutcome.FAILED, suggestion, error=exc)

        self._lines = new_lines
        self.dirty = True
        self.suggestions.accept(suggestion.id)

        for other in self.suggestions.pending():
            other.moved_to(rebased_start(other.start_line, suggestion.start_line,
                                         suggestion.hunk))
        if self.usage is not None:
            self.usage.record_edit()

        logger.info(
            "[Suggest] %s: applied suggestion %s at line %d (%+d lines)",
            self.document_id, suggestion.id, suggestion.start_line,
            suggestion.hunk.line_delta,
        )
        return AcceptResult(AcceptOutcome.APPLIED, suggestion)

    # ------------------------------------------------------------------
    # AI collaborator
    # ------------------------------------------------------------------

    def request_suggestions(self, client, instruction: str) -> IngestResult:
        """Ask *client* for edits to the current text and queue them.

        ``LLMError`` from the client propagates to the caller.
        """
        messages = build_suggestion_messages(self.content, instruction,
                                             self.parser.fence_tag)
        return self.ingest_response(client.generate_response(messages))

    def resolve_conflict(self, client, suggestion_id: str) -> IngestResult:
        """Re-ask the model for a suggestion that no longer applies."""
        suggestion = self.suggestions.get(suggestion_id)
        start = suggestion.start_line - 1
        current = self._lines[start:start + max(suggestion.original_line_count, 1)] \
            if 0 <= start < len(self._lines) else []
        messages = build_conflict_messages(
            self.content, suggestion, join_lines(current, self.eol),
            self.parser.fence_tag,
        )
        return self.ingest_response(client.generate_response(messages))

    # ------------------------------------------------------------------
    # Storage / compilation collaborators
    # ------------------------------------------------------------------

    def save(self) -> Optional[SaveResult]:
        if self.store is None:
            return None
        result = self.store.save(self.document_id, self.content)
        if result.success:
            self.dirty = False
        else:
            logger.warning("[Suggest] %s: save failed: %s", self.document_id, result.error)
        return result

    def compile(self) -> CompilationResult:
        if self.compiler is None:
            return CompilationResult(success=False, error="No compiler configured")
        return self.compiler.compile(self.content)

    def close(self) -> None:
        """End of session: drop every suggestion, keep nothing in memory."""
        self.suggestions.clear()
