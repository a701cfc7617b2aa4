"""Unit tests for statement splitting and chain compilation."""

import logging

import pytest

from sqllibrarian.core.compiler import ChainCompiler, IncludeReference, parse_include, split_statements
from sqllibrarian.core.select import StatementKind
from sqllibrarian.core.statement import CompiledStatement
from sqllibrarian.exceptions import IncludeCycleError, IncludeError, SelectModeError, TagNotFoundError
from tests.conftest import CountingArchiver, FakeConnection


@pytest.fixture
def compiler(counting_archiver: CountingArchiver, fake_connection: FakeConnection) -> ChainCompiler:
    return ChainCompiler(counting_archiver, fake_connection)


def test_split_statements_on_blank_lines() -> None:
    body = """
-- create a bug
INSERT INTO bug (bugid) VALUES (5);


SELECT1 bugid
FROM bug
WHERE bugid = 5
   \t
UPDATE bug SET product = 'Perl'
"""

    assert split_statements(body) == [
        "INSERT INTO bug (bugid) VALUES (5)",
        "SELECT1 bugid\nFROM bug\nWHERE bugid = 5",
        "UPDATE bug SET product = 'Perl'",
    ]


def test_split_statements_drops_comment_only_blocks() -> None:
    assert split_statements("-- nothing here\n\n-- or here\n") == []


def test_split_statements_strips_leading_block_comments() -> None:
    body = "/* list */ SELECT1 x FROM t\n\n/* multi\nline */\n-- and\nDELETE FROM t\n\n/* only a comment */"

    assert split_statements(body) == ["SELECT1 x FROM t", "DELETE FROM t"]


def test_block_comment_does_not_hide_select_mode(
    compiler: ChainCompiler, counting_archiver: CountingArchiver, fake_connection: FakeConnection
) -> None:
    counting_archiver.add("t_count", "/* how many bugs */\nSELECT1 count(*) AS total FROM bug")

    chain = compiler.compile("t_count")

    assert chain.statements[0].kind is StatementKind.SELECT_EXACTLY_ONE
    assert fake_connection.prepared == ["SELECT count(*) AS total FROM bug"]


@pytest.mark.parametrize(
    ("block", "expected"),
    [
        ("include t_select_all", "t_select_all"),
        ("INCLUDE   other", "other"),
        ("INSERT INTO included VALUES (1)", None),
        ("included_tag", None),
    ],
)
def test_parse_include(block: str, expected: "str | None") -> None:
    assert parse_include(block) == expected


@pytest.mark.parametrize("block", ["include", "include a b", "include a\nSELECT 1"])
def test_parse_include_rejects_malformed_directives(block: str) -> None:
    with pytest.raises(IncludeError, match="Malformed include"):
        parse_include(block)


def test_compile_builds_chain_and_caches_includes(
    compiler: ChainCompiler, counting_archiver: CountingArchiver, fake_connection: FakeConnection
) -> None:
    counting_archiver.add("outer", "INSERT INTO bug (bugid) VALUES (5)\n\ninclude inner")
    counting_archiver.add("inner", "UPDATE bug SET product = :product")

    chain = compiler.compile("outer")

    assert len(chain) == 2
    assert chain.includes == ["inner"]
    assert isinstance(chain.entries[0], CompiledStatement)
    assert chain.entries[1] == IncludeReference("inner")
    assert counting_archiver.lookup("outer") is chain
    assert counting_archiver.lookup("inner") is not None
    assert fake_connection.prepared == ["INSERT INTO bug (bugid) VALUES (5)", "UPDATE bug SET product = ?"]


def test_get_returns_cached_chain_until_template_changes(
    compiler: ChainCompiler, counting_archiver: CountingArchiver
) -> None:
    counting_archiver.add("t", "DELETE FROM bug")

    first = compiler.get("t")
    assert compiler.get("t") is first
    assert counting_archiver.find_calls == ["t"]

    counting_archiver.add("t", "DELETE FROM bug WHERE bugid = 5")
    second = compiler.get("t")

    assert second is not first
    assert counting_archiver.find_calls == ["t", "t"]


def test_shared_include_is_compiled_once(compiler: ChainCompiler, counting_archiver: CountingArchiver) -> None:
    counting_archiver.add("a", "include shared\n\ninclude b")
    counting_archiver.add("b", "include shared")
    counting_archiver.add("shared", "DELETE FROM bug")

    compiler.compile("a")

    assert counting_archiver.find_calls.count("shared") == 1


@pytest.mark.parametrize(
    ("templates", "cycle"),
    [
        ({"a": "include a"}, ("a", "a")),
        ({"a": "include b", "b": "DELETE FROM bug\n\ninclude a"}, ("a", "b", "a")),
    ],
)
def test_include_cycles_are_rejected(
    compiler: ChainCompiler, counting_archiver: CountingArchiver, templates: dict, cycle: tuple
) -> None:
    for tag, sql in templates.items():
        counting_archiver.add(tag, sql)

    with pytest.raises(IncludeCycleError) as exc_info:
        compiler.compile("a")

    assert exc_info.value.chain == cycle
    for tag in templates:
        assert counting_archiver.lookup(tag) is None


def test_missing_tag(compiler: ChainCompiler) -> None:
    with pytest.raises(TagNotFoundError) as exc_info:
        compiler.get("t_does_not_exist")

    assert exc_info.value.tag == "t_does_not_exist"


def test_missing_include_is_reported_against_the_include(
    compiler: ChainCompiler, counting_archiver: CountingArchiver
) -> None:
    counting_archiver.add("a", "include nowhere")

    with pytest.raises(TagNotFoundError) as exc_info:
        compiler.compile("a")

    assert exc_info.value.tag == "nowhere"
    assert counting_archiver.lookup("a") is None


def test_compile_error_carries_the_tag(compiler: ChainCompiler, counting_archiver: CountingArchiver) -> None:
    counting_archiver.add("t_bad", "DELETE FROM bug\n\nSELECTX * FROM bug")

    with pytest.raises(SelectModeError) as exc_info:
        compiler.compile("t_bad")

    assert exc_info.value.tag == "t_bad"
    assert counting_archiver.lookup("t_bad") is None


def test_bare_multi_row_columns_warn(
    compiler: ChainCompiler, counting_archiver: CountingArchiver, caplog: pytest.LogCaptureFixture
) -> None:
    counting_archiver.add("t_select_all", "SELECT bugid, product FROM bug")
    caplog.set_level(logging.WARNING, logger="sqllibrarian")

    compiler.compile("t_select_all")

    assert "bugid, product" in caplog.text
    assert "t_select_all" in caplog.text


@pytest.mark.parametrize(
    "sql",
    [
        'SELECT bugid AS "bug.bugid", product AS "bug.product" FROM bug',
        "SELECT * FROM bug",
        "SELECT1 bugid FROM bug WHERE bugid = 5",
        "SELECT product FROM $table",
    ],
)
def test_grouped_or_single_row_selects_do_not_warn(
    compiler: ChainCompiler, counting_archiver: CountingArchiver, caplog: pytest.LogCaptureFixture, sql: str
) -> None:
    counting_archiver.add("t", sql)
    caplog.set_level(logging.WARNING, logger="sqllibrarian")

    compiler.compile("t")

    assert caplog.records == []


def test_warning_can_be_disabled(
    counting_archiver: CountingArchiver, fake_connection: FakeConnection, caplog: pytest.LogCaptureFixture
) -> None:
    counting_archiver.add("t", "SELECT bugid FROM bug")
    caplog.set_level(logging.WARNING, logger="sqllibrarian")

    ChainCompiler(counting_archiver, fake_connection, warn_bare_columns=False).compile("t")

    assert caplog.records == []
