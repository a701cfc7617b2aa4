"""Execution of tagged SQL templates against one shared connection."""

from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Optional

from sqllibrarian.adapters.dbapi import DBAPIConnection
from sqllibrarian.archive.files import OnePerFileArchiver
from sqllibrarian.config import LibrarianConfig
from sqllibrarian.core.compiler import ChainCompiler, IncludeReference, StatementChain
from sqllibrarian.exceptions import ImproperConfigurationError, IncludeCycleError, wrap_driver_errors
from sqllibrarian.protocols import ConnectionProtocol
from sqllibrarian.utils.logging import enable_trace, get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from sqllibrarian.protocols import ArchiverProtocol

__all__ = ("ExecutionSession", "Librarian")

logger = get_logger("librarian")


class ExecutionSession:
    """State of one top-level :meth:`Librarian.execute` call.

    Includes share the session of the call that reached them, so the affected
    row count covers the whole recursive walk.
    """

    __slots__ = ("affected_rows", "stack", "tag")

    def __init__(self, tag: str) -> None:
        self.tag = tag
        self.affected_rows = 0
        self.stack: list[str] = [tag]

    def __repr__(self) -> str:
        return f"ExecutionSession(tag={self.tag!r}, affected_rows={self.affected_rows!r}, stack={self.stack!r})"


class Librarian:
    """Runs named SQL templates from a repository.

    Every :meth:`execute` call is a transaction: all statements of the tag,
    includes included, run on the same connection and data mapping. The first
    failure rolls the transaction back and propagates. When the call finishes
    and rows were changed, the transaction is committed unless autocommit is
    off, in which case the caller ends it with :meth:`commit` or
    :meth:`rollback`.

    Example:
        ```python
        with Librarian(lib=["queries"], database="app.db") as librarian:
            data = {"id": 473}
            librarian.execute("lookup_employee", data)
            print(data["name"])
        ```

    Args:
        config: Settings. Defaults to :class:`LibrarianConfig` with its defaults.
        **overrides: Individual settings applied on top of ``config``.
    """

    def __init__(self, config: "Optional[LibrarianConfig]" = None, **overrides: Any) -> None:
        config = config or LibrarianConfig()
        if overrides:
            config = config.with_overrides(**overrides)
        self.config = config
        if config.trace:
            enable_trace()

        self._autocommit = config.autocommit
        self._connection: Optional[ConnectionProtocol] = self._connect(config)
        self.archiver: ArchiverProtocol = config.archiver or OnePerFileArchiver(config.lib, config.extension)
        self._compiler: Optional[ChainCompiler] = ChainCompiler(
            self.archiver,
            self._connection,
            all_arrays=config.all_arrays,
            parameter_style=config.parameter_style,  # type: ignore[arg-type]
            warn_bare_columns=config.warn_bare_columns,
            dialect=config.dialect,
        )

    @staticmethod
    def _connect(config: LibrarianConfig) -> ConnectionProtocol:
        connection = config.connection
        if connection is None:
            with wrap_driver_errors():
                return DBAPIConnection.sqlite(config.database, validate=config.validate_sql)
        if isinstance(connection, ConnectionProtocol):
            return connection
        return DBAPIConnection(connection, config.parameter_style, validate=config.validate_sql)

    def __repr__(self) -> str:
        state = "connected" if self._connection is not None else "disconnected"
        return f"Librarian(archiver={self.archiver!r}, autocommit={self._autocommit!r}, {state})"

    def __enter__(self) -> "Librarian":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.disconnect()

    def _ensure_connected(self) -> None:
        if self._connection is None or self._compiler is None:
            msg = "Librarian is disconnected"
            raise ImproperConfigurationError(msg)

    @property
    def connection(self) -> ConnectionProtocol:
        """The shared connection.

        Raises:
            ImproperConfigurationError: After :meth:`disconnect`.
        """
        self._ensure_connected()
        return self._connection  # type: ignore[return-value]

    @property
    def compiler(self) -> ChainCompiler:
        self._ensure_connected()
        return self._compiler  # type: ignore[return-value]

    @property
    def autocommit_enabled(self) -> bool:
        return self._autocommit

    # -- repository --
    def toc(self) -> "list[str]":
        """List every tag the archiver can provide."""
        self._ensure_connected()
        return sorted(self.archiver.toc())

    def has_tag(self, tag: str) -> bool:
        self._ensure_connected()
        return tag in set(self.archiver.toc())

    def prepare(self, *tags: str) -> None:
        """Compile ``tags`` ahead of execution.

        Tags with a valid cached chain are left alone.

        Raises:
            CompileError: For the first tag that fails to compile.
            DriverError: If the driver rejects a statement.
        """
        compiler = self.compiler
        for tag in tags:
            if self.archiver.lookup(tag) is None:
                compiler.compile(tag)

    # -- execution --
    def execute(self, tag: str, context: "Optional[MutableMapping[str, Any]]" = None) -> int:
        """Run every statement of ``tag`` against ``context``.

        Args:
            tag: Template to run.
            context: Mapping that supplies bind and substitution values and
                receives SELECT results. Mutated in place. ``None`` means an
                empty mapping.

        Returns:
            Total rows affected by non-SELECT statements, includes included.

        Raises:
            CompileError: If the tag or an include cannot be compiled.
            BindResolutionError: If an input value is missing or has the wrong shape.
            ContextStructureError: If SELECT output does not fit the context.
            CardinalityError: If a SELECT returns a row count its mode forbids.
            DriverError: If the driver rejects a statement or the commit.
        """
        data: MutableMapping[str, Any] = {} if context is None else context
        chain = self.compiler.get(tag)
        logger.debug("EXECUTE %s", tag, extra={"extra_fields": {"tag": tag}})

        session = ExecutionSession(tag)
        try:
            self._run_chain(chain, data, session)
        except Exception:
            logger.debug("ROLLBACK %s", tag, extra={"extra_fields": {"tag": tag}})
            self.rollback()
            raise

        if session.affected_rows and self._autocommit:
            self.commit()
        return session.affected_rows

    def _run_chain(self, chain: StatementChain, data: "MutableMapping[str, Any]", session: ExecutionSession) -> None:
        for entry in chain:
            if isinstance(entry, IncludeReference):
                self._run_include(entry.tag, data, session)
            else:
                session.affected_rows += entry.execute(data)

    def _run_include(self, tag: str, data: "MutableMapping[str, Any]", session: ExecutionSession) -> None:
        if tag in session.stack:
            raise IncludeCycleError((*session.stack, tag))
        if len(session.stack) >= self.config.max_include_depth:
            msg = f"Include depth exceeds {self.config.max_include_depth}: {' -> '.join((*session.stack, tag))}"
            raise IncludeCycleError((*session.stack, tag), msg)
        chain = self.compiler.get(tag)
        logger.debug(
            "EXECUTE %s (included from %s)", tag, session.stack[-1], extra={"extra_fields": {"tag": tag}}
        )
        session.stack.append(tag)
        try:
            self._run_chain(chain, data, session)
        finally:
            session.stack.pop()

    # -- transactions --
    def commit(self) -> None:
        """Commit the current transaction."""
        logger.debug("COMMIT")
        with wrap_driver_errors():
            self.connection.commit()

    def rollback(self) -> None:
        """Roll back the current transaction."""
        logger.debug("ROLLBACK")
        with wrap_driver_errors():
            self.connection.rollback()

    def set_autocommit(self, enabled: bool) -> None:
        """Turn committing at the end of each :meth:`execute` call on or off."""
        self._autocommit = bool(enabled)

    def autocommit(self) -> None:
        self.set_autocommit(True)

    def delaycommit(self) -> None:
        self.set_autocommit(False)

    def disconnect(self) -> None:
        """Close the connection and discard every cached chain.

        Safe to call more than once.
        """
        connection, self._connection = self._connection, None
        self._compiler = None
        self.archiver.clear()
        if connection is not None:
            logger.debug("DISCONNECT")
            with wrap_driver_errors():
                connection.disconnect()

