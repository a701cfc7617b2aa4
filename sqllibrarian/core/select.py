"""SELECT mode classification and row fetching.

The leading ``select`` keyword may carry a suffix naming how many rows the
statement is expected to return:

    SELECT*  zero or more rows (also plain SELECT)
    SELECT?  zero or one row
    SELECT1  exactly one row

The suffix is stripped before the statement reaches the driver.
"""

import re
from collections.abc import Callable, Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any, Final, Optional

from sqllibrarian.exceptions import MultipleResultsFoundError, NoResultFoundError, SelectModeError

if TYPE_CHECKING:
    from sqllibrarian.core.context import DataContext
    from sqllibrarian.protocols import ConnectionProtocol, PreparedHandle

__all__ = ("FETCHERS", "SELECT_MODES", "StatementKind", "classify_statement")


class StatementKind(str, Enum):
    """What a compiled statement does with its result."""

    MUTATION = "mutation"
    SELECT_EXACTLY_ONE = "select_exactly_one"
    SELECT_ZERO_OR_ONE = "select_zero_or_one"
    SELECT_ZERO_OR_MORE = "select_zero_or_more"

    @property
    def is_select(self) -> bool:
        return self is not StatementKind.MUTATION


SELECT_MODES: Final["dict[str, StatementKind]"] = {
    "": StatementKind.SELECT_ZERO_OR_MORE,
    "*": StatementKind.SELECT_ZERO_OR_MORE,
    "?": StatementKind.SELECT_ZERO_OR_ONE,
    "1": StatementKind.SELECT_EXACTLY_ONE,
}

_SELECT_PREFIX: Final = re.compile(r"^select(?P<mode>\S*)", re.IGNORECASE)


def classify_statement(sql: str) -> "tuple[StatementKind, str]":
    """Classify ``sql`` and strip any select mode suffix.

    Args:
        sql: Statement text, starting at its first keyword.

    Returns:
        The statement kind and the text the driver should see.

    Raises:
        SelectModeError: If the select suffix is not one of ``*``, ``?`` or ``1``.
    """
    match = _SELECT_PREFIX.match(sql)
    if match is None:
        return StatementKind.MUTATION, sql
    mode = match.group("mode")
    kind = SELECT_MODES.get(mode)
    if kind is None:
        raise SelectModeError(mode, sql)
    return kind, sql[: match.start("mode")] + sql[match.end("mode") :]


def _fetch_zero_or_more(
    connection: "ConnectionProtocol", handle: "PreparedHandle", context: "DataContext", sql: str
) -> None:
    labels = connection.describe(handle)
    rows: list[Mapping[str, Any]] = []
    while (row := connection.fetch_next_row(handle)) is not None:
        rows.append(row)
    context.assign_rows(labels, rows)


def _fetch_single(
    connection: "ConnectionProtocol",
    handle: "PreparedHandle",
    context: "DataContext",
    sql: str,
    *,
    required: bool,
) -> None:
    row: Optional[Mapping[str, Any]] = connection.fetch_next_row(handle)
    if row is None:
        if required:
            raise NoResultFoundError(sql)
        return
    # rows already merged stay in the context when the check below fails
    context.merge_row(row)
    if connection.fetch_next_row(handle) is not None:
        raise MultipleResultsFoundError(sql)


def _fetch_zero_or_one(
    connection: "ConnectionProtocol", handle: "PreparedHandle", context: "DataContext", sql: str
) -> None:
    _fetch_single(connection, handle, context, sql, required=False)


def _fetch_exactly_one(
    connection: "ConnectionProtocol", handle: "PreparedHandle", context: "DataContext", sql: str
) -> None:
    _fetch_single(connection, handle, context, sql, required=True)


FETCHERS: Final[
    "dict[StatementKind, Callable[[ConnectionProtocol, PreparedHandle, DataContext, str], None]]"
] = {
    StatementKind.SELECT_ZERO_OR_MORE: _fetch_zero_or_more,
    StatementKind.SELECT_ZERO_OR_ONE: _fetch_zero_or_one,
    StatementKind.SELECT_EXACTLY_ONE: _fetch_exactly_one,
}
