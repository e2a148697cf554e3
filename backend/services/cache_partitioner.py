"""
Cache partitioning for the keyword endpoints.

Splits a batch of keywords into cache hits (served from the database)
and misses (to be fetched from DataForSEO in one batched call).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Generic, Optional, TypeVar

from core.interfaces.repositories import FreshnessStore
from infrastructure.database.models import KeywordProfile, Result, Serp

logger = logging.getLogger(__name__)

HitT = TypeVar("HitT")


@dataclass
class RelatedHit:
    """Fresh seed profile together with its related keyword profiles."""

    keyword: str
    profile: KeywordProfile
    related: list[tuple[KeywordProfile, str]]


@dataclass
class SerpHit:
    """Fresh SERP with its stored organic results."""

    keyword: str
    serp: Serp
    results: list[Result]


@dataclass
class Partition(Generic[HitT]):
    hits: list[HitT] = field(default_factory=list)
    misses: list[str] = field(default_factory=list)


def dedupe_keywords(keywords: list[str]) -> list[str]:
    """Trim keywords and drop case-insensitive duplicates, keeping the first spelling."""
    seen: set[str] = set()
    unique: list[str] = []
    for keyword in keywords:
        trimmed = keyword.strip()
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(trimmed)
    return unique


def freshness_cutoff(ttl_hours: int, now: Optional[datetime] = None) -> datetime:
    """Oldest timestamp still considered fresh."""
    now = now or datetime.now(timezone.utc)
    return now - timedelta(hours=ttl_hours)


class CachePartitioner:
    """Classifies keywords as HIT or MISS against the freshness store.

    Keywords are checked one at a time. A store error while checking a
    keyword turns it into a MISS.
    """

    def __init__(self, store: FreshnessStore, ttl_hours: int = 24):
        self.store = store
        self.ttl_hours = ttl_hours

    async def partition_related(
        self,
        keywords: list[str],
        location_code: int,
        language_code: str,
        now: Optional[datetime] = None,
    ) -> Partition[RelatedHit]:
        cutoff = freshness_cutoff(self.ttl_hours, now)
        partition: Partition[RelatedHit] = Partition()

        logger.info(
            "Starting cache check for keywords: %s [%s/%s]",
            ", ".join(keywords),
            location_code,
            language_code,
        )
        for keyword in keywords:
            try:
                hit = await self._check_related(keyword, location_code, language_code, cutoff)
            except Exception as e:
                logger.error(
                    "Cache check failed for keyword %s: %s. Will attempt live fetch.",
                    keyword,
                    e,
                    extra={"keyword": keyword},
                )
                hit = None

            if hit is None:
                partition.misses.append(keyword)
            else:
                partition.hits.append(hit)

        logger.info(
            "Cache check complete. Hits: %d. Misses (to fetch live): %d",
            len(partition.hits),
            len(partition.misses),
        )
        return partition

    async def _check_related(
        self,
        keyword: str,
        location_code: int,
        language_code: str,
        cutoff: datetime,
    ) -> Optional[RelatedHit]:
        keyword_row = await self.store.find_keyword_by_text(keyword)
        if keyword_row is None:
            logger.info("[Cache MISS] Seed keyword not found in database: %s", keyword)
            return None

        profile = await self.store.find_recent_keyword_profile(
            keyword_row.id, location_code, language_code, cutoff
        )
        if profile is None:
            logger.info("[Cache MISS] No recent profile found for keyword: %s", keyword)
            return None

        if not profile.related_keyword_ids:
            logger.info(
                "[Cache MISS] Found profile for %s but no related IDs. Will fetch live.", keyword
            )
            return None

        logger.info("[Cache HIT] Found profile for: %s [%s/%s]", keyword, location_code, language_code)
        related = await self.store.find_keyword_profiles_by_ids(
            list(profile.related_keyword_ids), location_code, language_code
        )
        return RelatedHit(keyword=keyword, profile=profile, related=related)

    async def partition_serp(
        self,
        keywords: list[str],
        now: Optional[datetime] = None,
    ) -> Partition[SerpHit]:
        cutoff = freshness_cutoff(self.ttl_hours, now)
        partition: Partition[SerpHit] = Partition()

        logger.info("Starting cache check for keywords: %s", ", ".join(keywords))
        for keyword in keywords:
            try:
                hit = await self._check_serp(keyword, cutoff)
            except Exception as e:
                logger.error(
                    "Cache check failed for keyword %s: %s. Will attempt live fetch.",
                    keyword,
                    e,
                    extra={"keyword": keyword},
                )
                hit = None

            if hit is None:
                partition.misses.append(keyword)
            else:
                partition.hits.append(hit)

        logger.info(
            "Cache check complete. Hits: %d. Misses (to fetch live): %d",
            len(partition.hits),
            len(partition.misses),
        )
        return partition

    async def _check_serp(self, keyword: str, cutoff: datetime) -> Optional[SerpHit]:
        keyword_row = await self.store.find_keyword_by_text(keyword)
        if keyword_row is None:
            logger.info("[Cache MISS] Keyword not found in database: %s", keyword)
            return None

        serp = await self.store.find_recent_serp(keyword_row.id, cutoff)
        if serp is None:
            logger.info("[Cache MISS] No recent SERP found for keyword: %s", keyword)
            return None

        results = await self.store.find_results_by_serp_id(serp.id)
        if not results:
            logger.warning(
                "[Cache MISS] Found cached SERP (ID: %s) for keyword %s but results were empty. Will fetch live.",
                serp.id,
                keyword,
            )
            return None

        logger.info(
            "[Cache HIT] Returning cached SERP data for keyword: %s (fetched at %s)",
            keyword,
            serp.created_at,
        )
        return SerpHit(keyword=keyword, serp=serp, results=results)
