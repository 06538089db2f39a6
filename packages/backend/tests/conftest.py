"""Test fixtures — a throwaway SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own engine on a fresh SQLite file under tmp_path,
   with the schema created up front. Nothing leaks between tests.
2. The app is built with create_app(engine=..., generator_source=...), so
   routes, the ingestion pipeline and the supervisor all share that engine.
3. The HTTP client talks to the app in-process through httpx's
   ASGITransport — no server, no ports.

Generator tests use ScriptedLineSource (below) when they care about line
handling, and a real `python -c` subprocess when they care about process
lifecycle.
"""

import asyncio
import itertools
import os
import sys
import textwrap

# Must be set before houseboard.config is imported.
os.environ.setdefault("HOUSEBOARD_GENERATOR_AUTOSTART", "false")
os.environ.setdefault("HOUSEBOARD_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from houseboard.db.engine import build_engine, build_session_factory, create_schema
from houseboard.errors import ProcessSpawnError
from houseboard.generator.source import LineSource, LineStream, ProcessLineSource
from houseboard.realtime.notifier import Notifier
from houseboard.services.ingestion import IngestionPipeline


# ═══════════════════════════════════════════════════════════
# Scripted generator source
# ═══════════════════════════════════════════════════════════

_pids = itertools.count(40000)


class ScriptedStream(LineStream):
    """In-memory stand-in for a generator process.

    Emits `lines`, then either exits (returncode 0) or, with hold_open,
    stays "running" until terminate() is called.
    """

    def __init__(self, lines, stderr=(), hold_open=False):
        self._lines = list(lines)
        self._stderr = list(stderr)
        self._hold_open = hold_open
        self._done = asyncio.Event()
        self._returncode = None
        self._pid = next(_pids)
        self.oversized_lines = 0
        self.terminated = False

    @property
    def pid(self):
        return self._pid

    @property
    def returncode(self):
        return self._returncode

    async def lines(self):
        for line in self._lines:
            yield line
            await asyncio.sleep(0)
        if self._hold_open:
            await self._done.wait()

    async def stderr_lines(self):
        for line in self._stderr:
            yield line

    async def wait(self):
        if self._hold_open:
            await self._done.wait()
        if self._returncode is None:
            self._returncode = 0
        return self._returncode

    async def terminate(self, timeout):
        self.terminated = True
        if self._returncode is None:
            self._returncode = -15
        self._done.set()
        return self._returncode


class ScriptedLineSource(LineSource):
    """Hands out a new ScriptedStream per open() and records them."""

    def __init__(self, lines=(), stderr=(), hold_open=False):
        self.lines = list(lines)
        self.stderr = list(stderr)
        self.hold_open = hold_open
        self.streams: list[ScriptedStream] = []

    @property
    def opens(self) -> int:
        return len(self.streams)

    async def open(self):
        await asyncio.sleep(0)  # yield like a real spawn would
        stream = ScriptedStream(self.lines, self.stderr, self.hold_open)
        self.streams.append(stream)
        return stream


class FailingLineSource(LineSource):
    async def open(self):
        raise ProcessSpawnError("Could not start 'nope': No such file or directory")


def python_source(script: str) -> ProcessLineSource:
    """A real generator: the current interpreter running `script`."""
    return ProcessLineSource([sys.executable, "-u", "-c", textwrap.dedent(script)])


# Prints a malformed line and one valid event, then idles until terminated.
LONG_RUNNING_SCRIPT = """
    import json, time
    print("not-json", flush=True)
    print(json.dumps({"id": "gen-1", "category": "Raven", "points": 7}), flush=True)
    time.sleep(60)
"""


async def wait_for(predicate, timeout: float = 10.0, interval: float = 0.02):
    """Poll `predicate` until true; fail the test after `timeout` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met within timeout")
        await asyncio.sleep(interval)


# ═══════════════════════════════════════════════════════════
# Database + core components
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def engine(tmp_path):
    """Fresh SQLite database with the schema created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'houseboard.db'}")
    await create_schema(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier():
    return Notifier(queue_size=10)


@pytest.fixture
def pipeline(session_factory, notifier):
    return IngestionPipeline(session_factory, notifier)


# ═══════════════════════════════════════════════════════════
# HTTP
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def generator_source():
    """Generator used by the app fixture. Override in a module if needed."""
    return python_source(LONG_RUNNING_SCRIPT)


@pytest_asyncio.fixture()
async def app(engine, generator_source):
    from houseboard.main import create_app

    app = create_app(engine=engine, generator_source=generator_source)
    try:
        yield app
    finally:
        await app.state.supervisor.stop()
        app.state.notifier.close()


@pytest_asyncio.fixture()
async def client(app):
    """HTTP client bound to the app over ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ═══════════════════════════════════════════════════════════
# Helper fixtures
# ═══════════════════════════════════════════════════════════


@pytest.fixture
def scripted_source():
    """Factory: scripted_source(lines, stderr=(), hold_open=False)."""
    return ScriptedLineSource


@pytest.fixture
def failing_source():
    return FailingLineSource()


@pytest.fixture
def make_python_source():
    """Factory: make_python_source(script) -> real subprocess source."""
    return python_source


@pytest.fixture
def eventually():
    """await eventually(lambda: ...) — poll until the condition holds."""
    return wait_for
