"""Archiver holding templates in memory."""

from collections.abc import Mapping
from typing import Optional

from sqllibrarian.archive.base import BaseArchiver
from sqllibrarian.exceptions import TagNotFoundError

__all__ = ("InMemoryArchiver",)


class InMemoryArchiver(BaseArchiver):
    """Templates registered directly by tag.

    Replacing a template bumps its revision, which makes any chain cached for
    the old text stale.

    Example:
        ```python
        archiver = InMemoryArchiver()
        archiver.add("lookup_employee", "SELECT1 name FROM employee WHERE id = :id")
        ```
    """

    def __init__(self, templates: "Optional[Mapping[str, str]]" = None) -> None:
        super().__init__()
        self._templates: dict[str, tuple[int, str]] = {}
        self._revision = 0
        for tag, sql in (templates or {}).items():
            self.add(tag, sql)

    def add(self, tag: str, sql: str) -> None:
        """Register or replace the template for ``tag``."""
        self._revision += 1
        self._templates[tag] = (self._revision, sql)

    def remove(self, tag: str) -> None:
        """Forget the template for ``tag``."""
        self._templates.pop(tag, None)
        self.invalidate(tag)

    def _resolve(self, tag: str) -> str:
        if tag not in self._templates:
            raise TagNotFoundError(tag)
        return tag

    def _read(self, tag: str, source: str) -> str:
        return self._templates[source][1]

    def _fingerprint(self, source: str) -> "Optional[int]":
        entry = self._templates.get(source)
        return None if entry is None else entry[0]

    def toc(self) -> "list[str]":
        return sorted(self._templates)
