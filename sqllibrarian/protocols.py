"""Interfaces of the collaborators a librarian works with."""

from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from sqllibrarian.core.compiler import StatementChain
    from sqllibrarian.core.parameters import ParameterStyle

__all__ = ("ArchiverProtocol", "ConnectionProtocol", "PreparedHandle")


@runtime_checkable
class PreparedHandle(Protocol):
    """A statement prepared against a connection."""

    sql: str


@runtime_checkable
class ConnectionProtocol(Protocol):
    """Database connection used by compiled statements.

    Implementations raise their driver's own exceptions; callers wrap them.
    """

    parameter_style: "ParameterStyle"

    def prepare(self, sql: str, parameter_count: int = 0) -> PreparedHandle: ...  # pragma: no cover

    def execute(self, handle: PreparedHandle, parameters: "Sequence[Any]") -> int: ...  # pragma: no cover

    def describe(self, handle: PreparedHandle) -> "list[str]": ...  # pragma: no cover

    def fetch_next_row(self, handle: PreparedHandle) -> "Optional[Mapping[str, Any]]": ...  # pragma: no cover

    def commit(self) -> None: ...  # pragma: no cover

    def rollback(self) -> None: ...  # pragma: no cover

    def disconnect(self) -> None: ...  # pragma: no cover


@runtime_checkable
class ArchiverProtocol(Protocol):
    """Repository that locates template text by tag and caches compiled chains."""

    def find(self, tag: str) -> str: ...  # pragma: no cover

    def lookup(self, tag: str) -> "Optional[StatementChain]": ...  # pragma: no cover

    def cache(self, tag: str, chain: "StatementChain") -> None: ...  # pragma: no cover

    def is_valid(self, tag: str) -> bool: ...  # pragma: no cover

    def toc(self) -> "Iterable[str]": ...  # pragma: no cover

    def clear(self) -> None: ...  # pragma: no cover
