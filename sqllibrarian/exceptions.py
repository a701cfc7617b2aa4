from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "BindResolutionError",
    "CardinalityError",
    "CompileError",
    "ContextStructureError",
    "DriverError",
    "ImproperConfigurationError",
    "IncludeCycleError",
    "IncludeError",
    "LibrarianError",
    "MultipleResultsFoundError",
    "NoResultFoundError",
    "SelectModeError",
    "TagNotFoundError",
    "wrap_driver_errors",
)


class LibrarianError(Exception):
    """Base exception class from which all sqllibrarian exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``LibrarianError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(LibrarianError):
    """Improper Configuration error.

    Raised for unknown configuration keys, unusable driver parameter styles
    and use of a librarian after ``disconnect()``.
    """


# -- Compile Errors --
class CompileError(LibrarianError):
    """Base class for errors raised while compiling a tag into a chain."""

    tag: Optional[str]

    def __init__(self, message: str, tag: Optional[str] = None) -> None:
        self.tag = tag
        super().__init__(detail=message)


class TagNotFoundError(CompileError):
    """The archiver has no template for a tag."""

    def __init__(self, tag: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Unable to find tag {tag!r}", tag=tag)


class SelectModeError(CompileError):
    """A SELECT statement carries an unrecognized mode suffix."""

    sql: str

    def __init__(self, mode: str, sql: str, tag: Optional[str] = None) -> None:
        self.mode = mode
        self.sql = sql
        super().__init__(f"Unrecognized select mode {mode!r} in\n{sql}", tag=tag)


class IncludeError(CompileError):
    """An ``include`` directive is malformed."""


class IncludeCycleError(IncludeError):
    """An include chain refers back to a tag that is already being processed."""

    def __init__(self, chain: "tuple[str, ...]", message: Optional[str] = None) -> None:
        self.chain = chain
        super().__init__(message or f"Include cycle detected: {' -> '.join(chain)}", tag=chain[-1] if chain else None)


# -- Data context errors --
class ContextStructureError(LibrarianError):
    """A data context value does not have the shape an operation needs."""

    key: Optional[str]

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        self.key = key
        super().__init__(detail=message)


class BindResolutionError(ContextStructureError):
    """A bind or direct substitution value is missing or has the wrong shape."""


# -- Execution errors --
class DriverError(LibrarianError):
    """The database driver rejected a prepare, execute, fetch or transaction call."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        detail_message = message
        if sql:
            detail_message = f"{message} in SQL\n{sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class CardinalityError(LibrarianError):
    """A SELECT returned a number of rows its mode does not allow."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        detail_message = message
        if sql:
            detail_message = f"{message} for\n{sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class NoResultFoundError(CardinalityError):
    """Exactly one row was required but none were found."""

    def __init__(self, sql: Optional[str] = None) -> None:
        super().__init__("Expected exactly one row but received none", sql)


class MultipleResultsFoundError(CardinalityError):
    """At most one row was required but more than one was found."""

    def __init__(self, sql: Optional[str] = None) -> None:
        super().__init__("Expected at most one row; received more than one", sql)


@contextmanager
def wrap_driver_errors(sql: Optional[str] = None) -> Generator[None, None, None]:
    """Convert driver exceptions raised inside the block into :class:`DriverError`.

    Library exceptions are re-raised untouched.

    Args:
        sql: Statement text attached to the resulting error.

    Raises:
        DriverError: When the block raises anything but a :class:`LibrarianError`.
    """
    try:
        yield
    except LibrarianError:
        raise
    except Exception as exc:
        raise DriverError(str(exc) or type(exc).__name__, sql=sql) from exc
