"""Archiver base class with fingerprint-checked chain caching."""

from abc import ABC, abstractmethod
from collections.abc import Hashable
from typing import TYPE_CHECKING, Any, Optional

from sqllibrarian.utils.logging import get_logger

if TYPE_CHECKING:
    from sqllibrarian.core.compiler import StatementChain

__all__ = ("BaseArchiver", "CacheEntry")

logger = get_logger("archive")


class CacheEntry:
    """Where a tag's text came from, its fingerprint at load time and its compiled chain."""

    __slots__ = ("chain", "fingerprint", "source")

    def __init__(self, source: Any, fingerprint: "Optional[Hashable]", chain: "Optional[StatementChain]" = None) -> None:
        self.source = source
        self.fingerprint = fingerprint
        self.chain = chain

    def __repr__(self) -> str:
        return f"CacheEntry(source={self.source!r}, fingerprint={self.fingerprint!r}, cached={self.chain is not None})"


class BaseArchiver(ABC):
    """Locates template text by tag and caches compiled chains.

    A cached chain is handed back by :meth:`lookup` only while the
    fingerprint of its source is unchanged. Subclasses decide what a source
    is and how it is fingerprinted.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    @abstractmethod
    def _resolve(self, tag: str) -> Any:
        """Return the source holding ``tag``.

        Raises:
            TagNotFoundError: If no source holds the tag.
        """

    @abstractmethod
    def _read(self, tag: str, source: Any) -> str:
        """Return the template text of ``tag`` from ``source``."""

    @abstractmethod
    def _fingerprint(self, source: Any) -> "Optional[Hashable]":
        """Return a value that changes whenever ``source`` changes, or None if it is gone."""

    @abstractmethod
    def toc(self) -> "list[str]":
        """List every available tag without compiling any of them."""

    def find(self, tag: str) -> str:
        """Return the raw template body for ``tag`` and remember where it came from.

        Raises:
            TagNotFoundError: If the tag does not exist.
        """
        logger.debug("FIND %s", tag)
        source = self._resolve(tag)
        fingerprint = self._fingerprint(source)
        text = self._read(tag, source)
        self._entries[tag] = CacheEntry(source, fingerprint)
        logger.debug("FOUND %s in %s", tag, source)
        return text

    def is_valid(self, tag: str) -> bool:
        """Whether a chain is cached for ``tag`` and its source is unchanged."""
        entry = self._entries.get(tag)
        if entry is None or entry.chain is None:
            return False
        current = self._fingerprint(entry.source)
        return current is not None and current == entry.fingerprint

    def lookup(self, tag: str) -> "Optional[StatementChain]":
        """Return the cached chain for ``tag`` if it is still valid."""
        logger.debug("LOOKUP %s", tag)
        if not self.is_valid(tag):
            return None
        return self._entries[tag].chain

    def cache(self, tag: str, chain: "StatementChain") -> None:
        """Store ``chain`` for later :meth:`lookup` calls."""
        logger.debug("CACHE %s", tag)
        entry = self._entries.get(tag)
        if entry is None:
            source = self._resolve(tag)
            entry = self._entries[tag] = CacheEntry(source, self._fingerprint(source))
        entry.chain = chain

    def invalidate(self, tag: str) -> None:
        """Drop whatever is cached for ``tag``."""
        self._entries.pop(tag, None)

    def clear(self) -> None:
        """Drop every cached chain."""
        self._entries.clear()

    def __contains__(self, tag: object) -> bool:
        return isinstance(tag, str) and tag in self.toc()
