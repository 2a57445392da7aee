"""Prompt builders and the two-stage summarisation pipeline."""

from __future__ import annotations

from .pipeline import (
    DEFAULT_STAGE_TIMEOUT_S,
    CachedActivity,
    PipelineResult,
    PipelineState,
    SummaryPipeline,
)
from .prompts import (
    ACTIVITY_PROMPTS,
    TICKET_PROMPTS,
    ActivityPrompts,
    PromptContext,
    PromptSet,
    TicketPrompts,
    question_prompt,
    today_label,
)

__all__ = [
    "ACTIVITY_PROMPTS",
    "DEFAULT_STAGE_TIMEOUT_S",
    "TICKET_PROMPTS",
    "ActivityPrompts",
    "CachedActivity",
    "PipelineResult",
    "PipelineState",
    "PromptContext",
    "PromptSet",
    "SummaryPipeline",
    "TicketPrompts",
    "question_prompt",
    "today_label",
]
