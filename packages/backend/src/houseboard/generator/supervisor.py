"""Generator supervisor — owns the single external event generator.

Learn: The supervisor is a two-state machine:

    stopped --start()--> running --stop() / process exits--> stopped

start() and stop() are serialized by an asyncio.Lock, so two concurrent
start() calls cannot both see "stopped" and spawn two processes. stop() is
synchronous: it returns only after the process is gone and the handle is
cleared, so an immediate start() never races a dying process.

Output handling runs on a background task. Each stdout line is parsed and
ingested on its own; a bad line or a rejected event is logged and counted,
and the loop moves on to the next line.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import structlog

from houseboard.errors import GeneratorParseError, HouseboardError
from houseboard.generator.parser import parse_line
from houseboard.generator.source import LineSource, LineStream
from houseboard.services.ingestion import IngestionPipeline

logger = structlog.get_logger()


class SupervisorState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


@dataclass
class GeneratorStatus:
    state: SupervisorState = SupervisorState.STOPPED
    pid: Optional[int] = None
    started_at: Optional[datetime] = None
    lines_read: int = 0
    events_ingested: int = 0
    lines_rejected: int = 0
    last_exit_code: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "pid": self.pid,
            "startedAt": self.started_at.isoformat() if self.started_at else None,
            "linesRead": self.lines_read,
            "eventsIngested": self.events_ingested,
            "linesRejected": self.lines_rejected,
            "lastExitCode": self.last_exit_code,
        }


@dataclass
class _Run:
    """Book-keeping for one live process."""

    stream: LineStream
    started_at: datetime
    reader: Optional[asyncio.Task] = None
    stderr_reader: Optional[asyncio.Task] = None
    stopping: bool = False
    counters: dict[str, int] = field(
        default_factory=lambda: {"lines_read": 0, "events_ingested": 0, "lines_rejected": 0}
    )


class GeneratorSupervisor:
    """Starts, stops and reads from at most one generator process."""

    def __init__(
        self,
        source: LineSource,
        pipeline: IngestionPipeline,
        stop_timeout: float = 5.0,
    ):
        self.source = source
        self.pipeline = pipeline
        self.stop_timeout = stop_timeout
        self._lock = asyncio.Lock()
        self._run: Optional[_Run] = None
        self._last: GeneratorStatus = GeneratorStatus()

    # ─── State ───────────────────────────────────────────

    @property
    def state(self) -> SupervisorState:
        return SupervisorState.RUNNING if self._run is not None else SupervisorState.STOPPED

    @property
    def running(self) -> bool:
        return self._run is not None

    def status(self) -> GeneratorStatus:
        run = self._run
        if run is None:
            return self._last
        return GeneratorStatus(
            state=SupervisorState.RUNNING,
            pid=run.stream.pid,
            started_at=run.started_at,
            last_exit_code=self._last.last_exit_code,
            **run.counters,
        )

    # ─── Transitions ─────────────────────────────────────

    async def start(self) -> bool:
        """Spawn the generator. Returns False if it was already running.

        Raises ProcessSpawnError if the process cannot be started; the
        supervisor stays stopped.
        """
        async with self._lock:
            if self._run is not None:
                logger.info("generator.already_running", pid=self._run.stream.pid)
                return False

            try:
                stream = await self.source.open()
            except HouseboardError as e:
                logger.error("generator.spawn_failed", error=str(e))
                raise

            run = _Run(stream=stream, started_at=datetime.now(timezone.utc))
            self._run = run
            run.reader = asyncio.create_task(self._pump(run), name="generator-stdout")
            run.stderr_reader = asyncio.create_task(self._drain_stderr(run), name="generator-stderr")
            logger.info("generator.started", pid=stream.pid)
            return True

    async def stop(self) -> bool:
        """Terminate the generator and wait for it. Returns False if stopped."""
        async with self._lock:
            run = self._run
            if run is None:
                return False

            run.stopping = True
            exit_code = await run.stream.terminate(self.stop_timeout)
            tasks = [t for t in (run.reader, run.stderr_reader) if t is not None]
            if tasks:
                await asyncio.wait(tasks)
            self._finish(run, exit_code)
            logger.info("generator.stopped", pid=run.stream.pid, exit_code=exit_code,
                        **run.counters)
            return True

    async def join(self) -> None:
        """Wait until the current process's output has been fully consumed."""
        run = self._run
        if run is not None and run.reader is not None:
            await asyncio.wait([run.reader])

    def _finish(self, run: _Run, exit_code: Optional[int]) -> None:
        """Clear the handle if `run` still owns it."""
        if self._run is not run:
            return
        self._run = None
        self._last = GeneratorStatus(
            state=SupervisorState.STOPPED,
            pid=None,
            started_at=None,
            last_exit_code=exit_code,
            **run.counters,
        )

    # ─── Background readers ──────────────────────────────

    async def _pump(self, run: _Run) -> None:
        stream = run.stream
        try:
            async for line in stream.lines():
                await self._handle_line(run, line)
            exit_code = await stream.wait()
        except Exception:
            # Only the stream itself can fail here; per-line errors stay in _handle_line.
            logger.exception("generator.reader_failed", pid=stream.pid)
            exit_code = await stream.terminate(self.stop_timeout)

        run.counters["lines_rejected"] += stream.oversized_lines
        stream.oversized_lines = 0

        if not run.stopping:
            # Exited on its own; free the slot so start() works again.
            logger.warning("generator.exited", pid=stream.pid, exit_code=exit_code,
                           **run.counters)
            self._finish(run, exit_code)

    async def _handle_line(self, run: _Run, line: str) -> None:
        if not line.strip():
            return
        run.counters["lines_read"] += 1

        try:
            candidate = parse_line(line)
        except GeneratorParseError as e:
            run.counters["lines_rejected"] += 1
            logger.warning("generator.line_rejected", reason=e.reason, line=line[:200])
            return

        try:
            await self.pipeline.ingest(candidate, source="generator")
        except HouseboardError as e:
            run.counters["lines_rejected"] += 1
            logger.warning("generator.ingest_failed", error=str(e),
                           event_id=candidate.get("id"))
            return
        except Exception:
            # One candidate must not take the reader (and the process) down.
            run.counters["lines_rejected"] += 1
            logger.exception("generator.ingest_failed", event_id=candidate.get("id"))
            return

        run.counters["events_ingested"] += 1

    async def _drain_stderr(self, run: _Run) -> None:
        async for line in run.stream.stderr_lines():
            if line.strip():
                logger.warning("generator.stderr", pid=run.stream.pid, line=line[:500])
