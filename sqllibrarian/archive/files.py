"""File system archivers.

``OnePerFileArchiver`` maps each tag to ``<tag>.<extension>`` along a
search path. ``ManyPerFileArchiver`` reads blocks of the form::

    queryname:
    [one or more SQL statements]
    ;;

from every file with the extension. In both cases the first match wins and
the file's modification time decides whether a cached chain is stale.
"""

import os
import re
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Final, Optional, Union

from sqllibrarian.archive.base import BaseArchiver
from sqllibrarian.exceptions import CompileError, TagNotFoundError
from sqllibrarian.utils.logging import get_logger

__all__ = ("FileArchiver", "ManyPerFileArchiver", "OnePerFileArchiver")

logger = get_logger("archive.files")

PathLike = Union[str, Path]
TAG_HEADER_PATTERN: Final = re.compile(r"^(\w+):", re.MULTILINE)


class FileArchiver(BaseArchiver):
    """Shared search-path handling for file based archivers.

    Args:
        lib: Directory or directories to search, in order.
        extension: Template file extension, with or without the leading dot.
        encoding: Text encoding of the template files.
    """

    def __init__(
        self,
        lib: "Union[PathLike, Sequence[PathLike]]" = ("sql",),
        extension: str = "sql",
        *,
        encoding: str = "utf-8",
    ) -> None:
        super().__init__()
        if isinstance(lib, (str, Path)):
            lib = [lib]
        self.lib = [Path(directory) for directory in lib]
        self.extension = extension.lstrip(".")
        self.encoding = encoding

    def __repr__(self) -> str:
        return f"{type(self).__name__}(lib={[str(d) for d in self.lib]!r}, extension={self.extension!r})"

    def _iter_files(self) -> "Iterator[Path]":
        """Yield readable, non-hidden template files, directory by directory in sorted order."""
        for directory in self.lib:
            if not directory.is_dir():
                logger.debug("Skipping missing library directory %s", directory)
                continue
            for path in sorted(directory.iterdir()):
                if (
                    path.name.startswith(".")
                    or path.suffix != f".{self.extension}"
                    or not path.is_file()
                    or not os.access(path, os.R_OK)
                ):
                    continue
                yield path

    def _read_file(self, path: Path) -> str:
        try:
            return path.read_text(encoding=self.encoding)
        except OSError as exc:
            msg = f"Unable to read {path}: {exc}"
            raise CompileError(msg) from exc

    def _fingerprint(self, source: Path) -> "Optional[int]":
        try:
            return source.stat().st_mtime_ns
        except OSError:
            return None


class OnePerFileArchiver(FileArchiver):
    """One template per file, named ``<tag>.<extension>``."""

    def _resolve(self, tag: str) -> Path:
        if not tag or os.sep in tag or (os.altsep and os.altsep in tag):
            raise TagNotFoundError(tag)
        for directory in self.lib:
            path = directory / f"{tag}.{self.extension}"
            if path.is_file() and os.access(path, os.R_OK):
                return path
        raise TagNotFoundError(tag, f"Unable to read .{self.extension} file for tag {tag!r}")

    def _read(self, tag: str, source: Path) -> str:
        return self._read_file(source)

    def toc(self) -> "list[str]":
        return sorted({path.stem for path in self._iter_files()})


class ManyPerFileArchiver(FileArchiver):
    """Many ``tag: ... ;;`` blocks per file."""

    @staticmethod
    def _block_pattern(tag: str) -> "re.Pattern[str]":
        return re.compile(rf"^{re.escape(tag)}:\s*(?P<body>.*?)\s*^;;", re.MULTILINE | re.DOTALL)

    @staticmethod
    def _header_pattern(tag: str) -> "re.Pattern[str]":
        return re.compile(rf"^{re.escape(tag)}:", re.MULTILINE)

    def _extract(self, tag: str, path: Path, content: str) -> "Optional[str]":
        if not self._header_pattern(tag).search(content):
            return None
        match = self._block_pattern(tag).search(content)
        if match is None:
            msg = f"Tag {tag!r} in {path} is missing its ';;' terminator"
            raise CompileError(msg, tag=tag)
        return match.group("body")

    def _resolve(self, tag: str) -> Path:
        for path in self._iter_files():
            if self._extract(tag, path, self._read_file(path)) is not None:
                return path
        raise TagNotFoundError(tag)

    def _read(self, tag: str, source: Path) -> str:
        body = self._extract(tag, source, self._read_file(source))
        if body is None:
            raise TagNotFoundError(tag)
        return body

    def toc(self) -> "list[str]":
        tags: set[str] = set()
        for path in self._iter_files():
            tags.update(TAG_HEADER_PATTERN.findall(self._read_file(path)))
        return sorted(tags)
