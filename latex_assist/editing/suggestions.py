"""
Suggestion store — lifecycle of the edit suggestions shown in one
editing session.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .diff_parser import Hunk

logger = logging.getLogger(__name__)


class SuggestionStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not SuggestionStatus.PENDING


class Transition(enum.Enum):
    CHANGED = "changed"
    IDEMPOTENT_NOOP = "idempotent_noop"


class SuggestionNotFound(KeyError):
    """No suggestion with that id in this session."""


@dataclass
class EditSuggestion:
    id: str
    original: str
    suggested: str
    start_line: int
    original_line_count: int
    hunk: Hunk
    status: SuggestionStatus = SuggestionStatus.PENDING
    error: Optional[str] = None

    @classmethod
    def from_hunk(cls, hunk: Hunk) -> "EditSuggestion":
        return cls(
            id=uuid.uuid4().hex,
            original="\n".join(hunk.removed_lines),
            suggested="\n".join(hunk.added_lines),
            start_line=hunk.start_line,
            original_line_count=hunk.original_line_count,
            hunk=hunk,
        )

    @property
    def end_line(self) -> int:
        return max(self.start_line, self.start_line + self.original_line_count - 1)

    def moved_to(self, start_line: int) -> None:
        """Re-anchor the suggestion after earlier edits shifted the text."""
        if start_line == self.start_line:
            return
        offset = start_line - self.start_line
        self.hunk = replace(
            self.hunk,
            start_line=start_line,
            new_start_line=self.hunk.new_start_line + offset,
        )
        self.start_line = start_line

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "original": self.original,
            "suggested": self.suggested,
            "startLine": self.start_line,
            "originalLineCount": self.original_line_count,
            "status": self.status.value,
        }


@dataclass
class SuggestionStore:
    """Ordered, in-memory suggestions for a single session."""
    _items: dict[str, EditSuggestion] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items.values())

    def add(self, hunks: Iterable[Hunk]) -> list[EditSuggestion]:
        created = [EditSuggestion.from_hunk(h) for h in hunks]
        for suggestion in created:
            self._items[suggestion.id] = suggestion
        return created

    def get(self, suggestion_id: str) -> EditSuggestion:
        try:
            return self._items[suggestion_id]
        except KeyError:
            raise SuggestionNotFound(suggestion_id) from None

    def pending(self) -> list[EditSuggestion]:
        return [s for s in self._items.values() if s.status is SuggestionStatus.PENDING]

    def next_pending(self) -> Optional[EditSuggestion]:
        for suggestion in self._items.values():
            if suggestion.status is SuggestionStatus.PENDING:
                return suggestion
        return None

    def accept(self, suggestion_id: str) -> Transition:
        return self._transition(suggestion_id, SuggestionStatus.ACCEPTED)

    def reject(self, suggestion_id: str, error: Optional[str] = None) -> Transition:
        transition = self._transition(suggestion_id, SuggestionStatus.REJECTED)
        if transition is Transition.CHANGED and error:
            self._items[suggestion_id].error = error
        return transition

    def clear(self) -> None:
        self._items.clear()

    def _transition(self, suggestion_id: str, status: SuggestionStatus) -> Transition:
        suggestion = self.get(suggestion_id)
        if suggestion.status.is_terminal:
            logger.debug(
                "[Suggest] %s already %s, ignoring %s",
                suggestion_id, suggestion.status.value, status.value,
            )
            return Transition.IDEMPOTENT_NOOP
        suggestion.status = status
        return Transition.CHANGED
