"""Statement compiler and execution building blocks."""

from sqllibrarian.core.compiler import (
    ChainCompiler,
    ChainEntry,
    IncludeReference,
    StatementChain,
    parse_include,
    split_statements,
)
from sqllibrarian.core.context import DataContext, ValueKind, kind_of
from sqllibrarian.core.parameters import ParameterStyle, ParsedSQL, parse_placeholders
from sqllibrarian.core.select import SELECT_MODES, StatementKind, classify_statement
from sqllibrarian.core.statement import CompiledStatement

__all__ = (
    "SELECT_MODES",
    "ChainCompiler",
    "ChainEntry",
    "CompiledStatement",
    "DataContext",
    "IncludeReference",
    "ParameterStyle",
    "ParsedSQL",
    "StatementChain",
    "StatementKind",
    "ValueKind",
    "classify_statement",
    "kind_of",
    "parse_include",
    "parse_placeholders",
    "split_statements",
)
