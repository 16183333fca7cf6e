"""Library for running the helm and kubectl binaries from asyncio."""

import asyncio
from dataclasses import dataclass
import logging
import os
import shlex
import subprocess

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

# Chart installs wait on image pulls so allow well over the helm default.
_TIMEOUT = 300.0


# No public API
__all__: list[str] = []


@dataclass
class Command:
    """A command line to execute without a shell."""

    cmd: list[str]
    """Program followed by its arguments."""

    exc: type[CommandException] = CommandException
    """Exception to raise when the command fails."""

    env: dict[str, str] | None = None
    """Extra environment variables for the subprocess."""

    def __str__(self) -> str:
        """Render the command line with shell quoting, for logs."""
        return shlex.join(self.cmd)

    def _error(self, returncode: int | None, out: bytes, err: bytes) -> CommandException:
        lines = [f"Command '{self}' failed with return code {returncode}"]
        lines.extend(
            stream.decode("utf-8", errors="replace").rstrip()
            for stream in (out, err)
            if stream
        )
        message = "\n".join(lines)
        _LOGGER.debug(message)
        return self.exc(message)

    async def run(self, stdin: bytes | None = None) -> bytes:
        """Run the command to completion, returning stdout."""
        _LOGGER.debug("Running command: %s", self)
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.cmd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env={**os.environ, **(self.env or {})},
            )
        except FileNotFoundError as err:
            raise self.exc(f"Command '{self.cmd[0]}' not found on PATH") from err
        try:
            out, err = await proc.communicate(stdin)
        except asyncio.CancelledError:
            _LOGGER.debug("Killing cancelled command: %s", self)
            proc.kill()
            await proc.wait()
            raise
        if proc.returncode:
            raise self._error(proc.returncode, out, err)
        return out


async def run(cmd: Command, stdin: bytes | None = None) -> str:
    """Run the command and return stdout as text."""
    try:
        out = await asyncio.wait_for(cmd.run(stdin), _TIMEOUT)
    except asyncio.TimeoutError as err:
        raise cmd.exc(f"Command '{cmd}' timed out after {_TIMEOUT:.0f}s") from err
    return out.decode("utf-8")
