"""Template repositories."""

from sqllibrarian.archive.base import BaseArchiver, CacheEntry
from sqllibrarian.archive.files import FileArchiver, ManyPerFileArchiver, OnePerFileArchiver
from sqllibrarian.archive.memory import InMemoryArchiver

__all__ = (
    "BaseArchiver",
    "CacheEntry",
    "FileArchiver",
    "InMemoryArchiver",
    "ManyPerFileArchiver",
    "OnePerFileArchiver",
)
