"""Text generators behind the two summarization stages.

Public API
----------
TextGenerator
    Protocol every backend satisfies: ``label`` and ``async generate``.
CommandTextGenerator
    Pipes the prompt to an external command (``claude -p -`` by default).
ChatCompletionTextGenerator
    Posts the prompt to an OpenAI-compatible chat-completions endpoint.
StaticTextGenerator
    Deterministic stand-in for tests and local runs.
create_formatter, create_structurer
    Factories used by the CLI.

"""

from __future__ import annotations

from .chat import ChatCompletionTextGenerator
from .command import CommandTextGenerator, split_command
from .config import ChatCompletionConfig
from .errors import (
    EmptyGenerationError,
    GenerationAPIError,
    GenerationCommandError,
    GenerationConfigError,
    GenerationError,
    GenerationResponseShapeError,
    GenerationTimeoutError,
)
from .factory import create_formatter, create_structurer
from .metrics import GenerationMetrics
from .mock import StaticTextGenerator
from .protocol import TextGenerator

__all__ = [
    "ChatCompletionConfig",
    "ChatCompletionTextGenerator",
    "CommandTextGenerator",
    "EmptyGenerationError",
    "GenerationAPIError",
    "GenerationCommandError",
    "GenerationConfigError",
    "GenerationError",
    "GenerationMetrics",
    "GenerationResponseShapeError",
    "GenerationTimeoutError",
    "StaticTextGenerator",
    "TextGenerator",
    "create_formatter",
    "create_structurer",
    "split_command",
]
