"""External command execution for system command nodes."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

from pydantic import BaseModel

from .constants import DEFAULT_COMMAND_TIMEOUT

logger = logging.getLogger(__name__)


class CommandResult(BaseModel):
    exit_success: bool
    output: str = ""


class CommandRunner(Protocol):
    async def run(self, command: str) -> CommandResult:
        """Run ``command`` and report whether it succeeded and what it printed."""


class SubprocessCommandRunner:
    """Run commands through the shell with a per-command timeout."""

    def __init__(
        self, timeout: float = DEFAULT_COMMAND_TIMEOUT, cwd: Optional[str] = None
    ) -> None:
        self.timeout = timeout
        self.cwd = cwd

    async def run(self, command: str) -> CommandResult:
        logger.info(f"Running command: {command}")
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=self.cwd,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning(f"Command timed out after {self.timeout}s: {command}")
            return CommandResult(
                exit_success=False, output=f"Command timed out after {self.timeout}s"
            )
        output = stdout.decode(errors="replace")
        return CommandResult(exit_success=proc.returncode == 0, output=output)
