"""
Process runner.

Executes a single external tool invocation, streaming its output to the log and
mapping abnormal exits to ProcessError. Output is captured for diagnostics only;
parsing it is up to the tool adapters.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import Sequence
from pathlib import Path

from pydantic import BaseModel, Field

from ..core.exceptions import NonZeroExitError, ProcessError, SpawnFailureError
from ..core.logging import get_logger

logger = get_logger(__name__)

# bytes per read; longer lines are joined across reads
READ_CHUNK_SIZE = 64 * 1024


class ProcessOutput(BaseModel):
    """Captured result of a finished process."""

    command: list[str]
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = Field(default=0.0)


class ProcessRunner:
    """Runs external tools as child processes, one at a time per caller."""

    async def invoke(
        self,
        tool: str | Path,
        args: Sequence[str | Path] = (),
        working_dir: Path | None = None,
    ) -> ProcessOutput:
        """Run a tool and wait for it to finish.

        Args:
            tool: Executable name or path.
            args: Command-line arguments.
            working_dir: Directory to run in, defaults to the current one.

        Returns:
            The captured process output.

        Raises:
            SpawnFailureError: If the process could not be started.
            NonZeroExitError: If the process exited with a non-zero status.
            ProcessError: If its output could not be read.
        """
        cmd = [str(tool), *(str(a) for a in args)]
        cmd_str = " ".join(cmd)
        logger.info("Running command", command=cmd_str, cwd=str(working_dir) if working_dir else None)
        start_time = time.perf_counter()

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=working_dir,
            )
        except OSError as e:
            logger.error("Command could not be started", command=cmd_str, error=str(e))
            raise SpawnFailureError(message=str(e), command=cmd, cause=e) from e

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []

        try:
            await asyncio.gather(
                _read_lines(process.stdout, stdout_lines, "stdout"),  # type: ignore[arg-type]
                _read_lines(process.stderr, stderr_lines, "stderr"),  # type: ignore[arg-type]
            )
            returncode = await process.wait()
        except (OSError, ValueError) as e:
            logger.error("Lost output of command", command=cmd_str, error=str(e))
            raise ProcessError(
                message=f"Reading output of {cmd[0]} failed",
                command=cmd,
                stderr="\n".join(stderr_lines),
                cause=e,
            ) from e
        finally:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        output = ProcessOutput(
            command=cmd,
            returncode=returncode,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

        if returncode != 0:
            logger.warning(
                "Command failed",
                command=cmd_str,
                returncode=returncode,
                stderr=output.stderr[-500:],
            )
            raise NonZeroExitError(
                message=f"{cmd[0]} failed",
                command=cmd,
                stderr=output.stderr,
                returncode=returncode,
            )

        logger.info("Command completed", command=cmd_str, duration_ms=round(output.duration_ms, 1))
        return output


async def _read_lines(stream: asyncio.StreamReader, lines: list[str], stream_name: str) -> None:
    pending = b""
    while True:
        chunk = await stream.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        *complete, pending = (pending + chunk).split(b"\n")
        for line in complete:
            _keep_line(line, lines, stream_name)
    if pending:
        _keep_line(pending, lines, stream_name)


def _keep_line(line: bytes, lines: list[str], stream_name: str) -> None:
    decoded = line.decode("utf-8", errors="replace").rstrip()
    lines.append(decoded)
    logger.debug(f"[{stream_name}] {decoded[:1000]}")
