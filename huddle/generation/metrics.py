"""Invocation metrics reported by HTTP text generators."""

from __future__ import annotations

import dataclasses as dc


@dc.dataclass(frozen=True, slots=True)
class GenerationMetrics:
    """Token and latency metrics from a single generation call.

    Attributes
    ----------
    prompt_tokens
        Number of prompt tokens consumed, when reported.
    completion_tokens
        Number of completion tokens generated, when reported.
    total_tokens
        Total token count for the call, when reported.
    latency_ms
        Wall-clock latency in milliseconds.

    """

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    latency_ms: float | None = None


__all__ = ["GenerationMetrics"]
