"""Unit tests for the command-backed text generator."""

from __future__ import annotations

import asyncio
import shutil
import sys
import typing as typ

import pytest

from huddle.generation import (
    CommandTextGenerator,
    EmptyGenerationError,
    GenerationCommandError,
    GenerationTimeoutError,
)
from huddle.generation.command import split_command

if typ.TYPE_CHECKING:
    from pathlib import Path

_PYTHON = sys.executable


def _script(code: str) -> list[str]:
    return [_PYTHON, "-c", code]


def test_prompt_is_piped_to_stdin() -> None:
    """The command receives the prompt on stdin and stdout is returned."""
    generator = CommandTextGenerator(
        _script("import sys; sys.stdout.write(sys.stdin.read().upper() + '\\n')")
    )

    assert asyncio.run(generator.generate("hello")) == "HELLO"


def test_non_zero_exit_raises_with_stderr() -> None:
    """A failing command raises GenerationCommandError with its stderr."""
    generator = CommandTextGenerator(
        _script("import sys; sys.stderr.write('quota exceeded'); sys.exit(3)")
    )

    with pytest.raises(GenerationCommandError, match="quota exceeded") as excinfo:
        asyncio.run(generator.generate("x"))
    assert excinfo.value.returncode == 3


def test_blank_output_raises_empty_generation() -> None:
    """Whitespace-only stdout counts as a failure."""
    generator = CommandTextGenerator(_script("print('   ')"))

    with pytest.raises(EmptyGenerationError):
        asyncio.run(generator.generate("x"))


def test_slow_command_is_killed() -> None:
    """Commands exceeding the timeout raise GenerationTimeoutError."""
    generator = CommandTextGenerator(
        _script("import time; time.sleep(5)"), timeout_s=0.2
    )

    with pytest.raises(GenerationTimeoutError, match="timed out after 0.2s"):
        asyncio.run(generator.generate("x"))


def test_missing_executable_raises() -> None:
    """A command that does not exist raises GenerationCommandError."""
    missing = "huddle-test-command-that-does-not-exist"
    assert shutil.which(missing) is None
    generator = CommandTextGenerator([missing])

    with pytest.raises(GenerationCommandError, match="not found"):
        asyncio.run(generator.generate("x"))


def test_non_executable_command_raises(tmp_path: Path) -> None:
    """A command the OS refuses to run raises GenerationCommandError."""
    script = tmp_path / "format.sh"
    script.write_text("#!/bin/sh\ncat\n", encoding="utf-8")
    script.chmod(0o644)
    generator = CommandTextGenerator([str(script)])

    with pytest.raises(GenerationCommandError, match="could not be started"):
        asyncio.run(generator.generate("x"))


def test_split_command_is_shell_style() -> None:
    """Command strings split like a shell would, without running one."""
    assert split_command("claude -p -") == ("claude", "-p", "-")
    assert split_command("llm --system 'be brief'") == ("llm", "--system", "be brief")


def test_empty_command_is_rejected() -> None:
    """A blank command line is a configuration mistake."""
    with pytest.raises(GenerationCommandError, match="non-empty"):
        CommandTextGenerator("   ")


def test_label_is_shell_quoted() -> None:
    """The label reproduces the command line."""
    assert CommandTextGenerator(["llm", "-m", "a b"]).label == "llm -m 'a b'"
