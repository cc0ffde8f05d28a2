"""
Runs the external audio executables (ffmpeg, rhubarb) as async subprocesses.
"""

import asyncio
import logging
from typing import List

logger = logging.getLogger(__name__)


class ExternalToolError(Exception):
    """An external executable is missing or exited with a non-zero status."""

    def __init__(self, tool: str, message: str, returncode: int = None):
        super().__init__(f"{tool}: {message}")
        self.tool = tool
        self.returncode = returncode


async def run_tool(command: List[str], timeout: float) -> str:
    """
    Run ``command`` and wait at most ``timeout`` seconds for it.

    Returns:
        Combined stdout/stderr text

    Raises:
        asyncio.TimeoutError: The process did not finish in time (it is killed)
        ExternalToolError: Executable not found or non-zero exit code
    """
    tool = command[0]
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE
        )
    except (FileNotFoundError, PermissionError) as e:
        raise ExternalToolError(tool, f"cannot execute ({e})") from e

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        logger.warning(f"⏱️ {tool} timed out after {timeout}s and was killed")
        raise

    output = stdout.decode(errors="replace") + stderr.decode(errors="replace")
    if process.returncode != 0:
        # Keep the tail; ffmpeg prints its whole banner to stderr
        raise ExternalToolError(tool, f"exit code {process.returncode}: {output[-500:].strip()}", process.returncode)

    return output
