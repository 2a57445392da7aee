"""Generate text by piping the prompt to an external command."""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import contextlib
import shlex

from huddle.logging import get_logger, log_debug

from .errors import (
    EmptyGenerationError,
    GenerationCommandError,
    GenerationTimeoutError,
)

logger = get_logger(__name__)

DEFAULT_COMMAND = "claude -p -"
DEFAULT_TIMEOUT_S = 120.0


def split_command(command: str | cabc.Sequence[str]) -> tuple[str, ...]:
    """Return ``command`` as an argv tuple, splitting strings shell-style."""
    argv = tuple(shlex.split(command)) if isinstance(command, str) else tuple(command)
    if not argv:
        raise GenerationCommandError.empty_command()
    return argv


class CommandTextGenerator:
    """Run a command with the prompt on stdin and return its stdout.

    The command runs without a shell. A non-zero exit status, a timeout or
    whitespace-only output raises a
    :class:`~huddle.generation.errors.GenerationError`.

    Parameters
    ----------
    command
        Command line such as ``"claude -p -"`` or an argv sequence.
    timeout_s
        Seconds the command may run before it is killed.

    Examples
    --------
    >>> generator = CommandTextGenerator("cat")
    >>> asyncio.run(generator.generate("echo me"))
    'echo me'

    """

    def __init__(
        self,
        command: str | cabc.Sequence[str] = DEFAULT_COMMAND,
        *,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        """Validate and store the command line."""
        self._argv = split_command(command)
        self._timeout_s = timeout_s

    @property
    def argv(self) -> tuple[str, ...]:
        """Return the argv the generator executes."""
        return self._argv

    @property
    def label(self) -> str:
        """Return the command line for log messages."""
        return shlex.join(self._argv)

    async def generate(self, prompt: str) -> str:
        """Pipe ``prompt`` into the command and return trimmed stdout."""
        try:
            process = await asyncio.create_subprocess_exec(
                *self._argv,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise GenerationCommandError.not_found(self._argv) from exc
        except OSError as exc:
            raise GenerationCommandError.start_failed(self._argv, exc) from exc

        try:
            async with asyncio.timeout(self._timeout_s):
                stdout, stderr = await process.communicate(prompt.encode("utf-8"))
        except TimeoutError as exc:
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise GenerationTimeoutError.after(self.label, self._timeout_s) from exc

        returncode = process.returncode if process.returncode is not None else -1
        if returncode != 0:
            raise GenerationCommandError.exit_status(
                self._argv, returncode, stderr.decode("utf-8", errors="replace")
            )

        text = stdout.decode("utf-8", errors="replace").strip()
        if not text:
            raise EmptyGenerationError.from_backend(self.label)
        log_debug(logger, "Command %s produced %d characters", self.label, len(text))
        return text


__all__ = [
    "DEFAULT_COMMAND",
    "DEFAULT_TIMEOUT_S",
    "CommandTextGenerator",
    "split_command",
]
