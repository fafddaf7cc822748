"""
Suggestion review — walk through pending suggestions and accept or reject
each one, either in a Textual TUI or with a plain console prompt.
"""

from __future__ import annotations

from .cli_display import describe_suggestion, log, render_suggestion
from .editing.diff_parser import format_hunk
from .session import AcceptOutcome, AcceptResult, EditingSession


def _format_rich_hunk(diff_text: str) -> str:
    """Convert a latex-diff hunk to Rich markup for Textual display."""
    markup_lines: list[str] = []
    for line in diff_text.splitlines():
        # Escape Rich markup characters (LaTeX is full of brackets)
        escaped = line.replace("[", "\\[")
        if line.startswith("@@"):
            markup_lines.append(f"[cyan]{escaped}[/cyan]")
        elif line.startswith("+"):
            markup_lines.append(f"[green]{escaped}[/green]")
        elif line.startswith("-"):
            markup_lines.append(f"[red]{escaped}[/red]")
        else:
            markup_lines.append(escaped)
    return "\n".join(markup_lines)


def describe_result(result: AcceptResult) -> str:
    if result.outcome is AcceptOutcome.APPLIED:
        return f"Applied: {describe_suggestion(result.suggestion)}"
    if result.outcome is AcceptOutcome.FAILED:
        return f"Could not apply ({type(result.error).__name__}): {result.error}"
    if result.outcome is AcceptOutcome.LIMIT_REACHED:
        return ("You have reached your free edit limit. "
                "Upgrade to Pro for more edits.")
    return "Suggestion already handled."


def review_suggestions(session: EditingSession, console: bool = False) -> int:
    """Review every pending suggestion. Returns how many were applied."""
    if not session.suggestions.pending():
        return 0
    if console:
        return _console_review(session)
    return _textual_review(session)


def _textual_review(session: EditingSession) -> int:
    """Launch a Textual app that steps through pending suggestions."""
    from textual.app import App, ComposeResult
    from textual.binding import Binding
    from textual.containers import Horizontal, VerticalScroll
    from textual.widgets import Button, Footer, Static

    class SuggestionReviewApp(App):
        """One pending suggestion at a time, accept or reject."""

        CSS = """
        Screen {
            background: $surface;
        }
        #title-bar {
            dock: top;
            height: 3;
            background: #1a1a2e;
            color: #e94560;
            text-align: center;
            padding: 1;
            text-style: bold;
        }
        #diff-scroll {
            height: 1fr;
            margin: 1 2;
            border: round #444;
            padding: 1;
        }
        #action-buttons {
            dock: bottom;
            height: 3;
            align: center middle;
            padding: 0 2;
        }
        #action-buttons Button {
            margin: 0 2;
            min-width: 20;
        }
        #status {
            dock: bottom;
            height: 1;
            text-align: center;
            color: #888;
        }
        """

        BINDINGS = [
            Binding("a", "accept", "Accept"),
            Binding("r", "reject", "Reject"),
            Binding("q", "quit_review", "Quit"),
            Binding("escape", "quit_review", "Quit"),
        ]

        def __init__(self, session: EditingSession) -> None:
            super().__init__()
            self._session = session
            self.applied = 0

        def compose(self) -> ComposeResult:
            yield Static("", id="title-bar")
            with VerticalScroll(id="diff-scroll"):
                yield Static("", id="hunk")
            yield Static("Press [bold]A[/bold] to accept, [bold]R[/bold] to reject",
                         id="status")
            with Horizontal(id="action-buttons"):
                yield Button("✔ Accept", id="accept-btn", variant="success")
                yield Button("✕ Reject", id="reject-btn", variant="error")
            yield Footer()

        def on_mount(self) -> None:
            self._show_next()

        def _show_next(self) -> None:
            current = self._session.suggestions.next_pending()
            if current is None:
                self.exit()
                return
            remaining = len(self._session.suggestions.pending())
            self.query_one("#title-bar", Static).update(
                f" ━━  {describe_suggestion(current)} — {remaining} pending  ━━ "
            )
            self.query_one("#hunk", Static).update(
                _format_rich_hunk(format_hunk(current.hunk, fence_tag=None))
            )

        def on_button_pressed(self, event: Button.Pressed) -> None:
            if event.button.id == "accept-btn":
                self.action_accept()
            elif event.button.id == "reject-btn":
                self.action_reject()

        def action_accept(self) -> None:
            current = self._session.suggestions.next_pending()
            if current is None:
                return
            result = self._session.accept(current.id)
            if result.outcome is AcceptOutcome.APPLIED:
                self.applied += 1
            elif result.outcome is AcceptOutcome.LIMIT_REACHED:
                self.query_one("#status", Static).update(describe_result(result))
                self.exit()
                return
            self.query_one("#status", Static).update(
                describe_result(result).replace("[", "\\[")
            )
            self._show_next()

        def action_reject(self) -> None:
            current = self._session.suggestions.next_pending()
            if current is not None:
                self._session.reject(current.id)
            self._show_next()

        def action_quit_review(self) -> None:
            self.exit()

    app = SuggestionReviewApp(session)
    app.run()
    return app.applied


def _console_review(session: EditingSession) -> int:
    """Console-based review, one suggestion per prompt."""
    applied = 0
    while True:
        current = session.suggestions.next_pending()
        if current is None:
            return applied

        print(f"\n{'─' * 60}")
        print(render_suggestion(current))
        print("\n  [A]ccept  |  [R]eject  |  [Q]uit")

        try:
            choice = input("  Your choice: ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            return applied

        if choice in ("a", "accept"):
            result = session.accept(current.id)
            print(f"  {describe_result(result)}")
            log.info(f"[Review] {describe_result(result)}")
            if result.outcome is AcceptOutcome.APPLIED:
                applied += 1
            elif result.outcome is AcceptOutcome.LIMIT_REACHED:
                return applied
        elif choice in ("r", "reject"):
            session.reject(current.id)
        elif choice in ("q", "quit"):
            return applied
        else:
            print("  Invalid choice. Use A, R or Q.")
