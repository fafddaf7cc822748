"""
latex_assist — AI edit suggestions for a LaTeX editor.

Public API for library usage::

    from latex_assist import EditingSession

    session = EditingSession("main.tex", source)
    ingest = session.ingest_response(assistant_reply)
    for suggestion in ingest.suggestions:
        session.accept(suggestion.id)
"""

from .session import AcceptOutcome, AcceptResult, EditingSession, IngestResult

__all__ = ["EditingSession", "AcceptOutcome", "AcceptResult", "IngestResult"]
