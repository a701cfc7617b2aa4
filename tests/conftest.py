from __future__ import annotations

import logging
from collections.abc import Generator, Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from sqllibrarian.archive import InMemoryArchiver
from sqllibrarian.core.parameters import ParameterStyle
from sqllibrarian.utils.logging import ROOT_LOGGER_NAME

here = Path(__file__).parent
root_path = here.parent


class FakeHandle:
    """Prepared handle of :class:`FakeConnection`."""

    def __init__(self, sql: str) -> None:
        self.sql = sql
        self.labels: list[str] = []
        self.rows: list[dict[str, Any]] = []


class FakeConnection:
    """Scripted connection collaborator.

    Results are registered per driver-facing SQL text. Statements without a
    registered result behave like mutations affecting ``rowcounts[sql]`` rows
    (default 1).
    """

    parameter_style = ParameterStyle.QMARK

    def __init__(self) -> None:
        self.results: dict[str, tuple[list[str], list[dict[str, Any]]]] = {}
        self.rowcounts: dict[str, int] = {}
        self.failures: dict[str, Exception] = {}
        self.prepared: list[str] = []
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def add_result(self, sql: str, labels: Sequence[str], rows: Sequence[Sequence[Any]]) -> None:
        self.results[sql] = (list(labels), [dict(zip(labels, row)) for row in rows])

    def prepare(self, sql: str, parameter_count: int = 0) -> FakeHandle:
        self.prepared.append(sql)
        return FakeHandle(sql)

    def execute(self, handle: FakeHandle, parameters: Sequence[Any]) -> int:
        self.executed.append((handle.sql, tuple(parameters)))
        if handle.sql in self.failures:
            raise self.failures[handle.sql]
        if handle.sql in self.results:
            labels, rows = self.results[handle.sql]
            handle.labels = list(labels)
            handle.rows = list(rows)
            return -1
        return self.rowcounts.get(handle.sql, 1)

    def describe(self, handle: FakeHandle) -> list[str]:
        return list(handle.labels)

    def fetch_next_row(self, handle: FakeHandle) -> Mapping[str, Any] | None:
        if not handle.rows:
            return None
        return handle.rows.pop(0)

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def disconnect(self) -> None:
        self.closed = True


class CountingArchiver(InMemoryArchiver):
    """In-memory archiver that counts how often template text is read."""

    def __init__(self, templates: Mapping[str, str] | None = None) -> None:
        self.find_calls: list[str] = []
        super().__init__(templates)

    def find(self, tag: str) -> str:
        self.find_calls.append(tag)
        return super().find(tag)


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def counting_archiver() -> CountingArchiver:
    return CountingArchiver()


@pytest.fixture(autouse=True)
def reset_library_logger() -> Generator[None, None, None]:
    """Undo handler, level and propagation changes made by logging helpers."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SQLLIBRARIAN_DATABASE", raising=False)
    monkeypatch.delenv("SQLLIBRARIAN_TRACE", raising=False)
