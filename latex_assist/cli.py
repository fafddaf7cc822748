"""
CLI entry point — argument parsing and main execution flow.
"""

import argparse
import base64

from .cli_display import log, render_suggestion, setup_logger, token_tracker
from .collaborators import CompilerClient, FileStore
from .config import Config
from .editing.patch_applier import PatchApplier
from .editing.suggestions import SuggestionStatus
from .llm.base import LLMError
from .llm.deepseek_client import DeepSeekClient
from .review import describe_result, review_suggestions
from .session import EditingSession
from .usage import UsageTracker


def _open_session(path: str, cfg: Config, with_usage: bool = True) -> EditingSession:
    store = FileStore()
    fetched = store.fetch(path)
    if not fetched.success:
        raise SystemExit(f"\n  [ERROR] Cannot read {path}: {fetched.error}\n")
    return EditingSession(
        path, fetched.content,
        store=store,
        usage=UsageTracker.from_config(cfg) if with_usage else None,
        fence_tag=cfg.FENCE_TAG,
    )


def _report_parse(ingest) -> None:
    parsed = ingest.parse
    if not parsed.hunks:
        print("\n  No suggestions found in the response.\n")
    for error in parsed.errors:
        print(f"  [skipped] {error}")
    for warning in parsed.warnings:
        log.warning(f"[Suggest] {warning}")


def _finish_review(session: EditingSession, args) -> None:
    if args.yes:
        for result in session.accept_all():
            print(f"  {describe_result(result)}")
    else:
        applied = review_suggestions(session, console=args.console)
        print(f"\n  {applied} suggestion(s) applied to {session.document_id}\n")


def _make_client(cfg: Config, model: str, no_stream: bool = False) -> DeepSeekClient:
    return DeepSeekClient(
        base_url=cfg.DEEPSEEK_BASE_URL,
        model=model,
        api_key=cfg.DEEPSEEK_API_KEY,
        temperature=cfg.TEMPERATURE,
        max_tokens=cfg.MAX_TOKENS,
        max_retries=cfg.LLM_MAX_RETRIES,
        retry_delay=cfg.LLM_RETRY_DELAY,
        stream=cfg.STREAM_RESPONSES and not no_stream,
    )


def _resolve_conflicts(session: EditingSession, cfg: Config, args) -> None:
    """Re-ask the conflict model once for every suggestion that failed to apply."""
    failed = [s for s in session.suggestions
              if s.status is SuggestionStatus.REJECTED and s.error]
    if not failed:
        return
    client = _make_client(cfg, cfg.CONFLICT_MODEL, args.no_stream)
    print(f"\n  Re-asking {cfg.CONFLICT_MODEL} for {len(failed)} conflicting suggestion(s)")
    for suggestion in failed:
        try:
            ingest = session.resolve_conflict(client, suggestion.id)
        except LLMError as e:
            print(f"  [ERROR] {e}")
            continue
        _report_parse(ingest)
    _finish_review(session, args)


def cmd_suggest(args, cfg: Config) -> int:
    if not cfg.DEEPSEEK_API_KEY:
        print("\n  [ERROR] The assistant requires an API key.\n"
              "  Set DEEPSEEK_API_KEY env var or add it to .latex_assist.yaml.\n")
        return 1

    client = _make_client(cfg, args.model or cfg.DEFAULT_MODEL, args.no_stream)
    session = _open_session(args.file, cfg)

    try:
        ingest = session.request_suggestions(client, args.instruction)
    except LLMError as e:
        print(f"\n  [ERROR] {e}\n")
        return 1

    _report_parse(ingest)
    _finish_review(session, args)
    if args.resolve_conflicts:
        _resolve_conflicts(session, cfg, args)
    log.info(f"[LLM] {token_tracker.call_count} call(s), {token_tracker.total_tokens} tokens")
    return 0


def cmd_apply(args, cfg: Config) -> int:
    with open(args.response, "r", encoding="utf-8") as f:
        response = f.read()

    if args.dry_run:
        session = _open_session(args.file, cfg, with_usage=False)
        ingest = session.ingest_response(response)
        _report_parse(ingest)
        result = PatchApplier().apply(session.lines, ingest.parse.hunks)
        for suggestion in ingest.suggestions:
            print(render_suggestion(suggestion))
        for failure in result.failures:
            print(f"  [{type(failure).__name__}] {failure}")
        print(f"\n  {len(result.applied)} of {len(ingest.parse.hunks)} hunk(s) would apply\n")
        return 0 if result.success else 1

    session = _open_session(args.file, cfg)
    _report_parse(session.ingest_response(response))
    _finish_review(session, args)
    return 0


def cmd_compile(args, cfg: Config) -> int:
    session = _open_session(args.file, cfg, with_usage=False)
    session.compiler = CompilerClient(cfg.APP_BASE_URL, timeout=cfg.REQUEST_TIMEOUT)
    result = session.compile()
    if not result.success:
        print(f"\n  [ERROR] {result.error}\n")
        return 1
    with open(args.output, "wb") as f:
        f.write(base64.b64decode(result.pdf_data))
    print(f"\n  PDF written to {args.output}\n")
    return 0


def cmd_usage(args, cfg: Config) -> int:
    status = UsageTracker.from_config(cfg).status()
    plan = "Pro" if status.is_pro else "Free"
    print(f"\n  Plan: {plan}")
    if status.is_pro:
        print(f"  Edits this period: {status.monthly_edit_count} "
              f"({status.remaining_monthly_edits} left, resets {status.monthly_reset_date})")
    else:
        print(f"  Edits used: {status.edit_count} ({status.remaining_edits} left)")
    print()
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="latex-assist — AI edit suggestions for LaTeX")
    parser.add_argument("--config", default=None,
                        help="Path to .latex_assist.yaml config file")
    sub = parser.add_subparsers(dest="command", required=True)

    suggest = sub.add_parser("suggest", help="Ask the assistant for edits")
    suggest.add_argument("file", help="LaTeX file to edit")
    suggest.add_argument("instruction", help="What to change")
    suggest.add_argument("--model", default=None,
                         help="The model name to use (default: from config)")
    suggest.add_argument("--no-stream", action="store_true",
                         help="Disable streaming responses")
    suggest.add_argument("--resolve-conflicts", action="store_true",
                         help="Re-ask the conflict model for suggestions that no longer apply")

    apply = sub.add_parser("apply", help="Apply latex-diff blocks from a saved response")
    apply.add_argument("file", help="LaTeX file to edit")
    apply.add_argument("response", help="File holding the assistant response")
    apply.add_argument("--dry-run", action="store_true",
                       help="Only report which hunks would apply")

    for p in (suggest, apply):
        p.add_argument("--yes", action="store_true",
                       help="Accept every suggestion without review")
        p.add_argument("--console", action="store_true",
                       help="Review in the console instead of the TUI")

    comp = sub.add_parser("compile", help="Compile a file to PDF via the editor API")
    comp.add_argument("file")
    comp.add_argument("-o", "--output", default="output.pdf")

    sub.add_parser("usage", help="Show AI edit usage")

    args = parser.parse_args(argv)
    cfg = Config.load(args.config)
    setup_logger(cfg.LOG_DIR)

    commands = {
        "suggest": cmd_suggest,
        "apply": cmd_apply,
        "compile": cmd_compile,
        "usage": cmd_usage,
    }
    return commands[args.command](args, cfg)


if __name__ == "__main__":
    raise SystemExit(main())
