"""AI edit suggestions — parse latex-diff hunks, track them, apply them."""

from .diff_parser import (
    LatexDiffParser, Hunk, ParseResult, ParseStatus, ParseError, format_hunk,
)
from .patch_applier import (
    PatchApplier, ApplyResult, PatchApplyError, RangeError, ConflictError,
    apply_hunk, split_lines, join_lines,
)
from .suggestions import (
    SuggestionStore, EditSuggestion, SuggestionStatus, Transition,
    SuggestionNotFound,
)

__all__ = [
    "LatexDiffParser", "Hunk", "ParseResult", "ParseStatus", "ParseError",
    "format_hunk",
    "PatchApplier", "ApplyResult", "PatchApplyError", "RangeError",
    "ConflictError", "apply_hunk", "split_lines", "join_lines",
    "SuggestionStore", "EditSuggestion", "SuggestionStatus", "Transition",
    "SuggestionNotFound",
]
