"""Connection adapter for PEP 249 (DB-API 2.0) drivers."""

import contextlib
import importlib
import sqlite3
import weakref
from collections.abc import Mapping, Sequence
from typing import Any, Final, Optional, Union

from sqllibrarian.core.parameters import ParameterStyle
from sqllibrarian.exceptions import ImproperConfigurationError
from sqllibrarian.utils.logging import get_logger

__all__ = ("DBAPIConnection", "PreparedStatement", "parameter_style_for")

logger = get_logger("adapters.dbapi")

PARAMSTYLE_MAP: Final["dict[str, ParameterStyle]"] = {
    "qmark": ParameterStyle.QMARK,
    "numeric": ParameterStyle.POSITIONAL_COLON,
    "format": ParameterStyle.POSITIONAL_PYFORMAT,
    "pyformat": ParameterStyle.POSITIONAL_PYFORMAT,
}


def parameter_style_for(connection: Any) -> ParameterStyle:
    """Derive the positional marker style from the driver module of ``connection``.

    Raises:
        ImproperConfigurationError: If the driver has no positional paramstyle.
    """
    module_name = type(connection).__module__.split(".")[0]
    try:
        paramstyle = getattr(importlib.import_module(module_name), "paramstyle", None)
    except ImportError:
        paramstyle = None
    style = PARAMSTYLE_MAP.get(paramstyle or "")
    if style is None:
        msg = (
            f"Cannot derive a positional parameter style for {module_name!r} (paramstyle={paramstyle!r}); "
            f"pass parameter_style explicitly"
        )
        raise ImproperConfigurationError(msg)
    return style


class PreparedStatement:
    """A statement text bound to its own cursor."""

    __slots__ = ("__weakref__", "cursor", "sql")

    def __init__(self, sql: str, cursor: Any) -> None:
        self.sql = sql
        self.cursor = cursor

    def __repr__(self) -> str:
        return f"PreparedStatement(sql={self.sql!r})"

    def close(self) -> None:
        with contextlib.suppress(Exception):
            self.cursor.close()


class DBAPIConnection:
    """Wraps a DB-API connection in the interface compiled statements use.

    The wrapped connection must not be in driver-level autocommit mode;
    transactions begin implicitly and end with :meth:`commit` or
    :meth:`rollback`. Driver exceptions propagate unchanged.

    Args:
        connection: An open PEP 249 connection.
        parameter_style: Marker style override. Derived from the driver's
            ``paramstyle`` when omitted.
        validate: Check each statement with ``EXPLAIN`` when it is prepared.
            Only sqlite3 connections are checked.
    """

    def __init__(
        self,
        connection: Any,
        parameter_style: "Optional[Union[ParameterStyle, str]]" = None,
        *,
        validate: bool = True,
    ) -> None:
        self.connection = connection
        self.parameter_style = (
            ParameterStyle(parameter_style) if parameter_style is not None else parameter_style_for(connection)
        )
        self.validate = validate and isinstance(connection, sqlite3.Connection)
        self._handles: "weakref.WeakSet[PreparedStatement]" = weakref.WeakSet()

    @classmethod
    def sqlite(cls, database: str = ":memory:", *, validate: bool = True, **kwargs: Any) -> "DBAPIConnection":
        """Open a sqlite3 database.

        Args:
            database: Path of the database file, or ``:memory:``.
            validate: Check statements with ``EXPLAIN`` when they are prepared.
            **kwargs: Passed to :func:`sqlite3.connect`.
        """
        logger.debug("Connecting to sqlite database %s", database)
        return cls(sqlite3.connect(database, **kwargs), ParameterStyle.QMARK, validate=validate)

    def __repr__(self) -> str:
        return f"DBAPIConnection({self.connection!r}, parameter_style={self.parameter_style.value!r})"

    def prepare(self, sql: str, parameter_count: int = 0) -> PreparedStatement:
        """Open a cursor for ``sql``.

        When validation is on, sqlite compiles the statement under ``EXPLAIN``
        with NULL placeholders, so syntax errors and unknown tables or
        columns surface here rather than on the first run.
        """
        if self.validate:
            with contextlib.closing(self.connection.cursor()) as cursor:
                cursor.execute(f"EXPLAIN {sql}", [None] * parameter_count)
        handle = PreparedStatement(sql, self.connection.cursor())
        self._handles.add(handle)
        return handle

    def execute(self, handle: PreparedStatement, parameters: "Sequence[Any]") -> int:
        handle.cursor.execute(handle.sql, tuple(parameters))
        rowcount = handle.cursor.rowcount
        return rowcount if rowcount is not None and rowcount > 0 else 0

    def describe(self, handle: PreparedStatement) -> "list[str]":
        return [column[0] for column in handle.cursor.description or ()]

    def fetch_next_row(self, handle: PreparedStatement) -> "Optional[Mapping[str, Any]]":
        row = handle.cursor.fetchone()
        if row is None:
            return None
        return dict(zip(self.describe(handle), row))

    def commit(self) -> None:
        self.connection.commit()

    def rollback(self) -> None:
        self.connection.rollback()

    def disconnect(self) -> None:
        for handle in list(self._handles):
            handle.close()
        self._handles.clear()
        self.connection.close()
