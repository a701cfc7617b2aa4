"""Unit tests for static SELECT label analysis."""

import pytest
import sqlglot
from sqlglot.errors import ParseError

from sqllibrarian.core.analysis import bare_projection_labels


@pytest.mark.parametrize(
    ("sql", "labels"),
    [
        ("SELECT bugid, product FROM bug", ["bugid", "product"]),
        ("SELECT count(*) AS total FROM bug", ["total"]),
        ('SELECT bugid AS "bug.bugid", product FROM bug', ["product"]),
        ('SELECT bugid AS "bug.bugid", product AS "bug.product" FROM bug', []),
        ("SELECT * FROM bug", []),
        ("SELECT bug.* FROM bug", []),
        ("INSERT INTO bug (bugid) VALUES (5)", []),
        ("SELECT a FROM t UNION SELECT b FROM u", []),
    ],
)
def test_bare_projection_labels(sql: str, labels: "list[str]") -> None:
    assert bare_projection_labels(sql) == labels


def test_table_qualified_column_is_still_bare() -> None:
    # drivers label "bug.product" as "product"
    assert bare_projection_labels("SELECT bug.product FROM bug") == ["product"]


def test_dialect_is_passed_to_the_parser() -> None:
    assert bare_projection_labels("SELECT `bugid` FROM bug", dialect="mysql") == ["bugid"]


def test_unparsable_statement_is_skipped(monkeypatch: pytest.MonkeyPatch) -> None:
    def _fail(*args: object, **kwargs: object) -> None:
        raise ParseError("Invalid expression")

    monkeypatch.setattr(sqlglot, "parse_one", _fail)

    assert bare_projection_labels("SELECT bugid FROM bug") == []
