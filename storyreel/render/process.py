"""Run the external renderer as a child process.

The renderer's diagnostic stream is read incrementally: every line is kept
verbatim for error reports, and progress markers are turned into percentages
for the caller.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Protocol, Sequence

from ..exceptions import RendererLaunchError, RendererProcessError
from ..progress import ProgressCallback, ProgressReport

logger = logging.getLogger(__name__)

_LINE_BREAK = re.compile(r"[\r\n]")
_CHUNK_SIZE = 4096


class ProgressParser(Protocol):
    """Extracts the current output position from one diagnostic line."""

    def parse(self, line: str) -> float | None:
        """Return the position in seconds, or None if the line has no marker."""
        ...


class FfmpegProgressParser:
    """Parses ``time=HH:MM:SS.ff`` markers from ffmpeg's stderr."""

    TIME_PATTERN = re.compile(r"time=(\d{2,}):(\d{2}):(\d{2})\.(\d{2})")

    def parse(self, line: str) -> float | None:
        match = self.TIME_PATTERN.search(line)
        if not match:
            return None
        hours, minutes, seconds, hundredths = (int(group) for group in match.groups())
        return hours * 3600 + minutes * 60 + seconds + hundredths / 100


@dataclass
class ProcessResult:
    """Outcome of a successful process run."""

    exit_code: int
    stdout: str
    diagnostics: str


class ProcessRunner:
    """Executes external tools and classifies their failures.

    Exit code zero is success. A non-zero exit raises
    ``RendererProcessError`` carrying the full diagnostic text; a process
    that cannot be started raises ``RendererLaunchError``. If the awaiting task
    is cancelled or fails while reading, the child is killed.
    """

    def __init__(self, parser: ProgressParser | None = None):
        self.parser = parser or FfmpegProgressParser()

    async def run(
        self,
        argv: Sequence[str],
        expected_duration: float = 0.0,
        progress: ProgressCallback | None = None,
        capture_stdout: bool = False,
    ) -> ProcessResult:
        """Run a command to completion.

        Args:
            argv: Executable followed by its arguments.
            expected_duration: Output duration in seconds used to compute
                percentages. Zero disables progress reporting.
            progress: Callback receiving progress reports.
            capture_stdout: Keep standard output (e.g. for ffprobe).

        Returns:
            ProcessResult with exit code, stdout and diagnostics.
        """
        argv = [str(arg) for arg in argv]
        logger.info("Starting %s", argv[0])
        logger.debug("Command line: %s", " ".join(argv))

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE if capture_stdout else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise RendererLaunchError(
                f"Failed to start {argv[0]}. Ensure it is installed and on PATH: {e}"
            ) from e

        lines: list[str] = []
        stdout_task = asyncio.ensure_future(process.stdout.read()) if capture_stdout else None
        try:
            await self._read_diagnostics(process.stderr, lines, expected_duration, progress)
            stdout = (await stdout_task).decode("utf-8", errors="replace") if stdout_task else ""
            exit_code = await process.wait()
        except BaseException:
            if stdout_task:
                stdout_task.cancel()
            await self._kill(process)
            raise

        diagnostics = "\n".join(lines)
        if exit_code != 0:
            raise RendererProcessError(
                f"{argv[0]} exited with a failure",
                exit_code=exit_code,
                diagnostics=diagnostics,
            )

        logger.info("%s completed successfully", argv[0])
        return ProcessResult(exit_code=exit_code, stdout=stdout, diagnostics=diagnostics)

    async def _read_diagnostics(
        self,
        stream: asyncio.StreamReader,
        lines: list[str],
        expected_duration: float,
        progress: ProgressCallback | None,
    ) -> None:
        """Read stderr in chunks, splitting on carriage returns and newlines."""
        pending = ""
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            pending += chunk.decode("utf-8", errors="replace")
            *complete, pending = _LINE_BREAK.split(pending)
            for line in complete:
                self._handle_line(line, lines, expected_duration, progress)

        if pending:
            self._handle_line(pending, lines, expected_duration, progress)

    def _handle_line(
        self,
        line: str,
        lines: list[str],
        expected_duration: float,
        progress: ProgressCallback | None,
    ) -> None:
        if not line:
            return
        lines.append(line)
        logger.debug("renderer: %s", line)

        if progress is None or expected_duration <= 0:
            return

        position = self.parser.parse(line)
        if position is None:
            return
        percentage = min(100.0, position / expected_duration * 100)
        progress(ProgressReport(percentage=percentage, message=f"Rendering video... {int(percentage)}%"))

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            logger.warning("Stopping renderer process %s", process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()
