"""Static checks on compiled SELECT statements."""

from typing import Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from sqllibrarian.utils.logging import get_logger

__all__ = ("bare_projection_labels",)

logger = get_logger("analysis")


def bare_projection_labels(sql: str, dialect: Optional[str] = None) -> "list[str]":
    """Return the projected labels of ``sql`` that carry no ``group.`` prefix.

    A multi-row SELECT writes each such label as a sequence of scalars at the
    top level of the data context, which collides with any scalar already
    stored under that key.

    Args:
        sql: Driver-facing SELECT text.
        dialect: Optional sqlglot dialect name.

    Returns:
        Bare labels in projection order. Empty when the statement cannot be
        parsed or projects ``*``.
    """
    try:
        expression = sqlglot.parse_one(sql, read=dialect)
    except SqlglotError as exc:
        logger.debug("Skipping label analysis, statement did not parse: %s", exc)
        return []

    if not isinstance(expression, exp.Select) or expression.is_star:
        return []

    labels = []
    for projection in expression.expressions:
        label = projection.alias_or_name or projection.sql(dialect=dialect)
        if "." not in label:
            labels.append(label)
    return labels
