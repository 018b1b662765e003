import os
import time
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import pytest

from catalog import SchemaCatalog, load_schema
from models import FieldDescriptor

FIXTURES = Path(__file__).parent / "fixtures"


class _ProgressReporter:
    """Pytest plugin that prints per-test start and end markers with timing."""

    def __init__(self):
        self._terminal = None
        self._starts: dict[str, float] = {}

    @pytest.hookimpl(tryfirst=True)
    def pytest_sessionstart(self, session: pytest.Session) -> None:
        if self._terminal is None:
            self._terminal = session.config.pluginmanager.get_plugin("terminalreporter")

    @pytest.hookimpl
    def pytest_runtest_logstart(self, nodeid: str, location) -> None:
        if self._terminal is None:
            return
        timestamp = datetime.now().strftime("%H:%M:%S")
        self._starts[nodeid] = time.monotonic()
        self._terminal.write_line(f"[{timestamp}] RUN    {nodeid}")

    @pytest.hookimpl
    def pytest_runtest_logreport(self, report: pytest.TestReport):
        if self._terminal is None or report.when != "call":
            return
        timestamp = datetime.now().strftime("%H:%M:%S")
        duration: float | None = None
        if report.nodeid in self._starts:
            duration = time.monotonic() - self._starts.pop(report.nodeid)
        duration_text = f" ({duration:.2f}s)" if duration is not None else ""
        outcome = report.outcome.upper()
        self._terminal.write_line(f"[{timestamp}] {outcome:6} {report.nodeid}{duration_text}")


def _progress_enabled(config: pytest.Config) -> bool:
    if config.getoption("progress", default=False):
        return True
    env_value = os.environ.get("PYTEST_PROGRESS", "")
    return env_value.lower() in {"1", "true", "yes", "on"}


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("shardkey")
    group.addoption(
        "--progress",
        action="store_true",
        help="Print test start/finish timestamps and durations to aid debugging long runs.",
    )


def pytest_configure(config: pytest.Config) -> None:
    if _progress_enabled(config):
        reporter = _ProgressReporter()
        config.pluginmanager.register(reporter, "shardkey-progress-reporter")


def _fake_embed(texts: Sequence[str]) -> list[list[float]]:
    return [[float((len(t) + i) % 5) for i in range(8)] for t in texts]


@pytest.fixture
def fake_embed():
    """Deterministic embeddings so tests never load Chroma's default model."""
    return _fake_embed


@pytest.fixture
def schema_path() -> Path:
    return FIXTURES / "schema.yaml"


@pytest.fixture
def options_path() -> Path:
    return FIXTURES / "processor.yaml"


@pytest.fixture
def catalog(schema_path: Path) -> SchemaCatalog:
    return load_schema(schema_path)


@pytest.fixture
def simple_catalog() -> SchemaCatalog:
    return SchemaCatalog(
        [
            FieldDescriptor(name="id"),
            FieldDescriptor(name="entityType"),
            FieldDescriptor(name="region"),
            FieldDescriptor(name="compositeId"),
        ]
    )
