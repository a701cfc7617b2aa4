"""Unit tests for LibrarianConfig."""

from pathlib import Path

import pytest

from sqllibrarian.archive import InMemoryArchiver
from sqllibrarian.config import LibrarianConfig
from sqllibrarian.core.parameters import ParameterStyle
from sqllibrarian.exceptions import ImproperConfigurationError


def test_defaults() -> None:
    config = LibrarianConfig()

    assert config.archiver is None
    assert config.lib == ("sql",)
    assert config.extension == "sql"
    assert config.autocommit is True
    assert config.all_arrays is False
    assert config.database == ":memory:"
    assert config.parameter_style is None
    assert config.max_include_depth == 32
    assert config.warn_bare_columns is True
    assert config.trace is False


def test_environment_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SQLLIBRARIAN_DATABASE", "/tmp/bugs.db")
    monkeypatch.setenv("SQLLIBRARIAN_TRACE", "1")

    config = LibrarianConfig()

    assert config.database == "/tmp/bugs.db"
    assert config.trace is True


@pytest.mark.parametrize("value", ["0", "false", "off", ""])
def test_trace_environment_flag_off(monkeypatch: pytest.MonkeyPatch, value: str) -> None:
    monkeypatch.setenv("SQLLIBRARIAN_TRACE", value)

    assert LibrarianConfig().trace is False


def test_single_lib_is_wrapped() -> None:
    assert LibrarianConfig(lib="queries").lib == ("queries",)
    assert LibrarianConfig(lib=Path("queries")).lib == (Path("queries"),)


def test_parameter_style_is_normalized() -> None:
    assert LibrarianConfig(parameter_style="numeric").parameter_style is ParameterStyle.NUMERIC


def test_unknown_parameter_style() -> None:
    with pytest.raises(ImproperConfigurationError, match="Unknown parameter style"):
        LibrarianConfig(parameter_style="named")


def test_include_depth_must_be_positive() -> None:
    with pytest.raises(ImproperConfigurationError):
        LibrarianConfig(max_include_depth=0)


def test_from_mapping_accepts_upper_case_names() -> None:
    archiver = InMemoryArchiver()
    config = LibrarianConfig.from_mapping(
        {
            "ARCHIVER": archiver,
            "LIB": ["tests"],
            "ALLARRAYS": True,
            "AUTOCOMMIT": False,
            "TRACE": False,
            "VALIDATE_SQL": False,
        }
    )

    assert config.archiver is archiver
    assert config.lib == ["tests"]
    assert config.all_arrays is True
    assert config.autocommit is False
    assert config.validate_sql is False


def test_from_mapping_accepts_field_names() -> None:
    assert LibrarianConfig.from_mapping({"extension": "msql"}).extension == "msql"


def test_from_mapping_rejects_unknown_keys() -> None:
    with pytest.raises(ImproperConfigurationError, match="Undefined Librarian parameter NOPE"):
        LibrarianConfig.from_mapping({"NOPE": 1})


def test_with_overrides() -> None:
    config = LibrarianConfig()
    updated = config.with_overrides(autocommit=False, extension="msql")

    assert updated.autocommit is False
    assert updated.extension == "msql"
    assert config.autocommit is True

    with pytest.raises(ImproperConfigurationError, match="Undefined Librarian parameter bogus"):
        config.with_overrides(bogus=1)
