"""Manage SQL in a repository outside application code."""

from sqllibrarian import adapters, archive, core, exceptions
from sqllibrarian.adapters import DBAPIConnection
from sqllibrarian.archive import InMemoryArchiver, ManyPerFileArchiver, OnePerFileArchiver
from sqllibrarian.config import LibrarianConfig
from sqllibrarian.core import ParameterStyle, StatementChain, StatementKind
from sqllibrarian.exceptions import (
    BindResolutionError,
    CardinalityError,
    CompileError,
    ContextStructureError,
    DriverError,
    LibrarianError,
    MultipleResultsFoundError,
    NoResultFoundError,
    TagNotFoundError,
)
from sqllibrarian.librarian import ExecutionSession, Librarian

__version__ = "0.1.0"

__all__ = (
    "BindResolutionError",
    "CardinalityError",
    "CompileError",
    "ContextStructureError",
    "DBAPIConnection",
    "DriverError",
    "ExecutionSession",
    "InMemoryArchiver",
    "Librarian",
    "LibrarianConfig",
    "LibrarianError",
    "ManyPerFileArchiver",
    "MultipleResultsFoundError",
    "NoResultFoundError",
    "OnePerFileArchiver",
    "ParameterStyle",
    "StatementChain",
    "StatementKind",
    "TagNotFoundError",
    "__version__",
    "adapters",
    "archive",
    "core",
    "exceptions",
)
