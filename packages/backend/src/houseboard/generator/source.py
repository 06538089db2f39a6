"""Line sources — where generator output comes from.

Learn: A LineSource produces a fresh LineStream each time it is opened
(restartable on demand). ProcessLineSource spawns a subprocess with
asyncio.create_subprocess_exec, the same pattern the git helpers use,
and exposes its stdout/stderr as async iterators of decoded lines.
"""

import asyncio
import os
from abc import ABC, abstractmethod
from typing import AsyncIterator, Callable, Optional, Sequence

import structlog

from houseboard.errors import ProcessSpawnError

logger = structlog.get_logger()

# StreamReader line limit; longer lines are skipped, not fatal.
MAX_LINE_BYTES = 64 * 1024


class LineStream(ABC):
    """One running producer of newline-delimited records."""

    oversized_lines: int = 0

    @property
    @abstractmethod
    def pid(self) -> Optional[int]:
        """OS process id, if the stream is backed by a process."""

    @property
    @abstractmethod
    def returncode(self) -> Optional[int]:
        """Exit status once the producer has finished, else None."""

    @abstractmethod
    def lines(self) -> AsyncIterator[str]:
        """Stdout records, without the trailing newline. Ends at EOF."""

    @abstractmethod
    def stderr_lines(self) -> AsyncIterator[str]:
        """Diagnostic records. Ends at EOF."""

    @abstractmethod
    async def wait(self) -> Optional[int]:
        """Wait for the producer to exit and return its exit status."""

    @abstractmethod
    async def terminate(self, timeout: float) -> Optional[int]:
        """Ask the producer to stop; force it after `timeout` seconds."""


class LineSource(ABC):
    """Factory for LineStreams."""

    @abstractmethod
    async def open(self) -> LineStream:
        """Start a new producer. Raises ProcessSpawnError on failure."""


# ─── Subprocess-backed implementation ───────────────────────


async def _skip_rest_of_line(reader: asyncio.StreamReader) -> None:
    """Discard input up to and including the next newline, or to EOF."""
    while True:
        try:
            await reader.readuntil(b"\n")
            return
        except asyncio.LimitOverrunError as e:
            # readuntil leaves the scanned bytes buffered; drop them and look again.
            await reader.read(e.consumed)
        except asyncio.IncompleteReadError:
            return


async def _read_lines(
    reader: asyncio.StreamReader,
    pid: Optional[int],
    name: str,
    on_oversized: Optional[Callable[[], None]] = None,
) -> AsyncIterator[str]:
    while True:
        try:
            raw = await reader.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            # EOF. The last line may have no trailing newline.
            if e.partial:
                yield e.partial.decode("utf-8", errors="replace").rstrip("\r\n")
            return
        except asyncio.LimitOverrunError:
            logger.warning("generator.line_too_long", pid=pid, stream=name, limit=MAX_LINE_BYTES)
            if on_oversized is not None:
                on_oversized()
            await _skip_rest_of_line(reader)
            continue
        yield raw.decode("utf-8", errors="replace").rstrip("\r\n")


class ProcessLineStream(LineStream):
    def __init__(self, proc: asyncio.subprocess.Process):
        self._proc = proc
        self.oversized_lines = 0

    def _count_oversized(self) -> None:
        self.oversized_lines += 1

    @property
    def pid(self) -> Optional[int]:
        return self._proc.pid

    @property
    def returncode(self) -> Optional[int]:
        return self._proc.returncode

    def lines(self) -> AsyncIterator[str]:
        return _read_lines(self._proc.stdout, self.pid, "stdout", self._count_oversized)

    def stderr_lines(self) -> AsyncIterator[str]:
        # Stderr is only logged, so an over-long diagnostic is not a rejected line.
        return _read_lines(self._proc.stderr, self.pid, "stderr")

    async def wait(self) -> Optional[int]:
        return await self._proc.wait()

    async def terminate(self, timeout: float) -> Optional[int]:
        if self._proc.returncode is not None:
            return self._proc.returncode
        try:
            self._proc.terminate()
        except ProcessLookupError:
            return await self._proc.wait()
        try:
            return await asyncio.wait_for(self._proc.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("generator.kill", pid=self.pid, timeout=timeout)
            self._proc.kill()
            return await self._proc.wait()  # ensure process is reaped


class ProcessLineSource(LineSource):
    """Runs `command` as a subprocess and streams its stdout."""

    def __init__(
        self,
        command: Sequence[str],
        cwd: Optional[str] = None,
        env_overrides: Optional[dict[str, str]] = None,
    ):
        if not command:
            raise ValueError("command must not be empty")
        self.command = list(command)
        self.cwd = cwd
        self.env_overrides = env_overrides or {}

    async def open(self) -> ProcessLineStream:
        env = {**os.environ, **self.env_overrides}
        try:
            proc = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=self.cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
                limit=MAX_LINE_BYTES,
            )
        except (OSError, ValueError) as e:
            raise ProcessSpawnError(f"Could not start {self.command[0]!r}: {e}") from e
        return ProcessLineStream(proc)

    def __repr__(self) -> str:
        return f"ProcessLineSource(command={self.command!r}, cwd={self.cwd!r})"
