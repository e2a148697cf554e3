"""
Per-keyword result entries and the assembler that orders them.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, Protocol, TypeVar

from infrastructure.database.models import KeywordProfile, Result, Serp

logger = logging.getLogger(__name__)


@dataclass
class RelatedKeywordEntry:
    keyword: str
    related: Optional[KeywordProfile] = None
    keywords: list[tuple[KeywordProfile, str]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SerpEntry:
    keyword: str
    serp: Optional[Serp] = None
    results: list[Result] = field(default_factory=list)
    error: Optional[str] = None


class _Entry(Protocol):
    keyword: str
    error: Optional[str]


EntryT = TypeVar("EntryT", bound=_Entry)


class ResultAssembler(Generic[EntryT]):
    """
    Collects hit and miss entries for one request and emits them in order.

    Hits come first in the order they were checked, then miss entries in
    dispatch order. Each dispatched keyword receives at most one entry:
    the first entry recorded for it wins, so a later batch-wide error never
    replaces a more specific per-keyword result.
    """

    def __init__(self):
        self._hits: list[EntryT] = []
        self._dispatched: list[str] = []
        self._misses: dict[str, EntryT] = {}

    def add_hit(self, entry: EntryT) -> None:
        self._hits.append(entry)

    def dispatch(self, keywords: list[str]) -> None:
        """Record the keywords sent upstream, in order."""
        known = {keyword.lower() for keyword in self._dispatched}
        for keyword in keywords:
            if keyword.lower() not in known:
                known.add(keyword.lower())
                self._dispatched.append(keyword)

    def has_entry(self, keyword: str) -> bool:
        return keyword.lower() in self._misses

    def add_miss(self, entry: EntryT) -> bool:
        """Record the entry for a dispatched keyword. Returns False if one already exists."""
        key = entry.keyword.lower()
        if key in self._misses:
            logger.warning("Ignoring duplicate result entry for keyword '%s'", entry.keyword)
            return False
        self._misses[key] = entry
        return True

    def fill_missing(self, factory: Callable[[str], EntryT]) -> int:
        """Give every dispatched keyword without an entry the one built by factory."""
        filled = 0
        for keyword in self._dispatched:
            if keyword.lower() not in self._misses:
                self._misses[keyword.lower()] = factory(keyword)
                filled += 1
        return filled

    def successful_misses(self) -> int:
        return sum(1 for entry in self._misses.values() if entry.error is None)

    def build(self) -> list[EntryT]:
        ordered = list(self._hits)
        for keyword in self._dispatched:
            entry = self._misses.get(keyword.lower())
            if entry is not None:
                ordered.append(entry)
        logger.info("Returning %d total results for the request.", len(ordered))
        return ordered
