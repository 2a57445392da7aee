"""Interactive assistant answering chat mentions from cached activity."""

from __future__ import annotations

from .cache import ActivityCache, CacheEntry
from .service import (
    EMPTY_QUESTION_REPLY,
    FAILURE_REPLY,
    AssistantService,
    Mention,
    ThreadReplier,
    extract_question,
)

__all__ = [
    "EMPTY_QUESTION_REPLY",
    "FAILURE_REPLY",
    "ActivityCache",
    "AssistantService",
    "CacheEntry",
    "Mention",
    "ThreadReplier",
    "extract_question",
]
