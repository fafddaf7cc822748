import logging
import os
from datetime import datetime

from .editing.diff_parser import format_hunk
from .editing.suggestions import EditSuggestion


class TokenTracker:
    """Global tracker for token usage and cost across all LLM calls."""

    def __init__(self, pricing: dict | None = None):
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        self.total_cost = 0.0
        self.call_count = 0
        self.pricing = pricing or {}

    def record(self, prompt_tokens: int, completion_tokens: int, model_name: str | None = None):
        self.total_prompt_tokens += prompt_tokens
        self.total_completion_tokens += completion_tokens
        self.call_count += 1

        if model_name:
            self._calculate_cost(model_name, prompt_tokens, completion_tokens)

    def _calculate_cost(self, model_name: str, prompt: int, completion: int):
        price_entry = None
        for pattern, prices in self.pricing.items():
            if pattern in model_name.lower():
                price_entry = prices
                break

        if price_entry:
            # Pricing is per 1M tokens
            cost = (prompt * price_entry["input"] / 1_000_000) + \
                   (completion * price_entry["output"] / 1_000_000)
            self.total_cost += cost

    @property
    def total_tokens(self):
        return self.total_prompt_tokens + self.total_completion_tokens


# Global singleton (pricing may be injected by the CLI)
token_tracker = TokenTracker()


def setup_logger(log_dir: str = ".latex_assist/logs") -> logging.Logger:
    """Creates a file logger. All verbose output goes here.

    Calling it again moves the log to *log_dir*; the logger object stays
    the same, so the module-level ``log`` keeps working.
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"latex_assist_{timestamp}.log")

    logger = logging.getLogger("latex_assist")
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()

    # File handler: captures everything, including module loggers
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    return logger


# Global logger instance
log = setup_logger()


def format_colored_diff(diff_text: str) -> str:
    """Add ANSI colors to a latex-diff hunk.

    Green for additions (+), red for deletions (-), cyan for @@ headers.
    """
    colored: list[str] = []
    for line in diff_text.splitlines():
        if line.startswith("@@"):
            colored.append(f"\033[36m{line}\033[0m")  # cyan
        elif line.startswith("+"):
            colored.append(f"\033[32m{line}\033[0m")  # green
        elif line.startswith("-"):
            colored.append(f"\033[31m{line}\033[0m")  # red
        else:
            colored.append(line)
    return "\n".join(colored)


def describe_suggestion(suggestion: EditSuggestion) -> str:
    """One-line summary, e.g. ``Replace lines 4-6`` or ``Insert at line 3``."""
    if suggestion.original_line_count == 0:
        return f"Insert at line {suggestion.start_line}"
    if suggestion.hunk.is_deletion:
        return f"Delete lines {suggestion.start_line}-{suggestion.end_line}"
    return f"Replace lines {suggestion.start_line}-{suggestion.end_line}"


def render_suggestion(suggestion: EditSuggestion, color: bool = True) -> str:
    body = format_hunk(suggestion.hunk, fence_tag=None)
    if color:
        body = format_colored_diff(body)
    return f"{describe_suggestion(suggestion)} [{suggestion.status.value}]\n{body}"
