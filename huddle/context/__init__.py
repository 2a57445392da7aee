"""Project context file maintenance."""

from __future__ import annotations

from .builder import (
    MARKER,
    ContextBuilder,
    ContextSources,
    format_tickets,
    read_context,
    spec_summary_prompt,
    static_section,
)

__all__ = [
    "MARKER",
    "ContextBuilder",
    "ContextSources",
    "format_tickets",
    "read_context",
    "spec_summary_prompt",
    "static_section",
]
