"""Librarian configuration."""

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from sqllibrarian.core.parameters import ParameterStyle
from sqllibrarian.exceptions import ImproperConfigurationError

if TYPE_CHECKING:
    from sqllibrarian.protocols import ArchiverProtocol

__all__ = ("DATABASE_ENV_VAR", "TRACE_ENV_VAR", "LibrarianConfig")

DATABASE_ENV_VAR: Final = "SQLLIBRARIAN_DATABASE"
TRACE_ENV_VAR: Final = "SQLLIBRARIAN_TRACE"

# upper-case parameter names accepted by ``from_mapping``
LEGACY_KEYS: Final = {
    "ARCHIVER": "archiver",
    "LIB": "lib",
    "EXTENSION": "extension",
    "AUTOCOMMIT": "autocommit",
    "ALLARRAYS": "all_arrays",
    "DBH": "connection",
    "DATABASE": "database",
    "PARAMETER_STYLE": "parameter_style",
    "MAX_INCLUDE_DEPTH": "max_include_depth",
    "WARN_BARE_COLUMNS": "warn_bare_columns",
    "DIALECT": "dialect",
    "VALIDATE_SQL": "validate_sql",
    "TRACE": "trace",
}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() not in {"", "0", "false", "no", "off"}


def _default_database() -> str:
    return os.environ.get(DATABASE_ENV_VAR, ":memory:")


@dataclass
class LibrarianConfig:
    """Settings for a :class:`~sqllibrarian.librarian.Librarian`."""

    archiver: "Optional[ArchiverProtocol]" = None
    """Template repository. Defaults to a one-per-file archiver over ``lib``."""

    lib: "Sequence[Union[str, Path]]" = ("sql",)
    """Search path handed to the default archiver."""

    extension: str = "sql"
    """Template extension handed to the default archiver."""

    autocommit: bool = True
    """Commit after every top-level call that changed rows."""

    all_arrays: bool = False
    """Read and write values at element 0 of sequences in the data context."""

    connection: Any = None
    """Connection object: a ``ConnectionProtocol`` implementation or a raw DB-API connection."""

    database: str = field(default_factory=_default_database)
    """sqlite3 database opened when no connection is given."""

    parameter_style: "Optional[Union[ParameterStyle, str]]" = None
    """Positional marker style override."""

    max_include_depth: int = 32
    """Deepest include nesting allowed while executing."""

    warn_bare_columns: bool = True
    """Log a warning when a multi-row select projects labels without a group prefix."""

    dialect: "Optional[str]" = None
    """sqlglot dialect used for static statement analysis."""

    validate_sql: bool = True
    """Compile each statement with ``EXPLAIN`` when it is prepared. sqlite3 connections only."""

    trace: bool = field(default_factory=lambda: _env_flag(TRACE_ENV_VAR))
    """Emit trace records on stderr."""

    def __post_init__(self) -> None:
        if isinstance(self.lib, (str, Path)):
            self.lib = (self.lib,)
        if self.parameter_style is not None:
            try:
                self.parameter_style = ParameterStyle(self.parameter_style)
            except ValueError as exc:
                msg = f"Unknown parameter style {self.parameter_style!r}"
                raise ImproperConfigurationError(msg) from exc
        if self.max_include_depth < 1:
            msg = "max_include_depth must be at least 1"
            raise ImproperConfigurationError(msg)

    @classmethod
    def from_mapping(cls, settings: "Mapping[str, Any]") -> "LibrarianConfig":
        """Build a config from field names or upper-case parameter names.

        Raises:
            ImproperConfigurationError: On any key that is not a known setting.
        """
        known = {f.name for f in fields(cls)}
        kwargs: dict[str, Any] = {}
        for key, value in settings.items():
            name = LEGACY_KEYS.get(key, key)
            if name not in known:
                msg = f"Undefined Librarian parameter {key}"
                raise ImproperConfigurationError(msg)
            kwargs[name] = value
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> "LibrarianConfig":
        """Return a copy with ``overrides`` applied."""
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            msg = f"Undefined Librarian parameter {', '.join(unknown)}"
            raise ImproperConfigurationError(msg)
        return replace(self, **overrides)
