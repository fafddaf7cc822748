"""
Prompt templates for the LaTeX assistant.
"""

from __future__ import annotations

from .editing.diff_parser import DEFAULT_FENCE_TAG
from .editing.patch_applier import line_ending, split_lines
from .editing.suggestions import EditSuggestion

SYSTEM_PROMPT = (
    "You are a LaTeX expert assistant. Help users write and format their "
    "LaTeX documents. When you propose a change, emit it as a {tag} code "
    "block:\n\n"
    "```{tag}\n"
    "@@ -<start>,<count> +<start>,<count> @@\n"
    "-<removed line>\n"
    "+<added line>\n"
    "```\n\n"
    "Line numbers refer to the numbered document you are given. Do not copy "
    "the number prefixes into the diff body. Keep changes minimal and put a "
    "short explanation after the code block."
)

CONFLICT_SYSTEM_PROMPT = (
    "You are a LaTeX expert assistant. Provide updated {tag} code blocks that "
    "apply the intended change. Ensure diffs use accurate line numbers, omit "
    "line number prefixes within the diff body, and keep changes minimal."
)


def number_lines(content: str) -> str:
    """Render the document as ``<n>: <line>`` so the model can cite lines."""
    return "\n".join(
        f"{index}: {line}"
        for index, line in enumerate(split_lines(content, line_ending(content)), start=1)
    )


def build_suggestion_messages(content: str, instruction: str,
                              fence_tag: str = DEFAULT_FENCE_TAG) -> list[dict]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT.format(tag=fence_tag)},
        {
            "role": "user",
            "content": (
                f"Current numbered document:\n---\n{number_lines(content)}\n---\n\n"
                f"Request: {instruction}"
            ),
        },
    ]


def build_conflict_messages(content: str, suggestion: EditSuggestion,
                            current_text: str,
                            fence_tag: str = DEFAULT_FENCE_TAG) -> list[dict]:
    """Ask the model to redo *suggestion* against the document as it is now."""
    previous_original = suggestion.original if suggestion.original.strip() \
        else "(no original content)"
    previous_suggested = suggestion.suggested if suggestion.suggested.strip() \
        else "(no suggested content)"

    user = (
        "The document changed after an earlier suggestion. Update the "
        "suggestion so it applies cleanly now.\n\n"
        "Previous suggestion metadata:\n"
        f"- Start line: {suggestion.start_line}\n"
        f"- Original line count: {suggestion.original_line_count}\n"
        f"- Original snippet:\n---\n{previous_original}\n---\n"
        f"- Intended replacement snippet:\n---\n{previous_suggested}\n---\n\n"
        f"Current snippet at the targeted region:\n---\n{current_text or '(empty)'}\n---\n\n"
        f"Current numbered file content:\n---\n{number_lines(content)}\n---\n\n"
        f"Return updated {fence_tag} code block(s) that integrate the intended "
        "replacement. Include a brief explanation after the code block."
    )
    return [
        {"role": "system", "content": CONFLICT_SYSTEM_PROMPT.format(tag=fence_tag)},
        {"role": "user", "content": user},
    ]
