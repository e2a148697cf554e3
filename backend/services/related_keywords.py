"""
Related keywords service.

Serves keyword ideas from fresh cached profiles and fetches the rest from
DataForSEO in a single batched call, writing the results back as keyword
profiles.
"""

import logging
from datetime import datetime, timezone

from adapters.seo.dataforseo_adapter import DataForSEOAdapter
from adapters.seo.dataforseo_models import KeywordIdeaItem, KeywordIdeasResult
from core.interfaces.repositories import FreshnessStore
from infrastructure.database.models import JobStatus, KeywordProfile
from services.cache_partitioner import CachePartitioner, dedupe_keywords
from services.result_assembler import RelatedKeywordEntry, ResultAssembler
from services.upstream_audit import task_columns

logger = logging.getLogger(__name__)


class RelatedKeywordsService:
    """Cache-or-fetch engine for related keywords."""

    def __init__(
        self,
        store: FreshnessStore,
        adapter: DataForSEOAdapter,
        ttl_hours: int = 24,
    ):
        self.store = store
        self.adapter = adapter
        self.partitioner = CachePartitioner(store, ttl_hours=ttl_hours)

    async def get_related(
        self,
        keywords: list[str],
        location_code: int,
        language_code: str,
    ) -> list[RelatedKeywordEntry]:
        """Return one entry per unique requested keyword: cache hits first, then live results."""
        unique_keywords = dedupe_keywords(keywords)
        partition = await self.partitioner.partition_related(
            unique_keywords, location_code, language_code
        )

        assembler: ResultAssembler[RelatedKeywordEntry] = ResultAssembler()
        for hit in partition.hits:
            assembler.add_hit(
                RelatedKeywordEntry(keyword=hit.keyword, related=hit.profile, keywords=hit.related)
            )

        misses = partition.misses
        if misses:
            assembler.dispatch(misses)
            try:
                await self._fetch_live(misses, location_code, language_code, assembler)
            except Exception as e:
                error_message = str(e) or "Unknown error during live fetch or processing batch"
                logger.error(
                    "Error processing related keywords batch for [%s]: %s",
                    ", ".join(misses),
                    error_message,
                )
                assembler.fill_missing(
                    lambda kw: RelatedKeywordEntry(keyword=kw, error=error_message)
                )

        return assembler.build()

    async def _fetch_live(
        self,
        misses: list[str],
        location_code: int,
        language_code: str,
        assembler: ResultAssembler[RelatedKeywordEntry],
    ) -> None:
        response = await self.adapter.keyword_ideas(misses, location_code, language_code)

        task = response.tasks[0] if response.tasks else None
        if task is None or not task.succeeded:
            error_message = (
                f"API call succeeded but task failed or returned no result for keywords "
                f"[{', '.join(misses)}]. Status: {task.status_code if task else None} - "
                f"{task.status_message if task else None}"
            )
            logger.warning(error_message)
            assembler.fill_missing(lambda kw: RelatedKeywordEntry(keyword=kw, error=error_message))
            return

        job = await self.store.insert_job(
            request_timestamp=datetime.now(timezone.utc),
            status=JobStatus.COMPLETED.value,
            version=response.version,
            status_code=task.status_code,
            status_message=task.status_message,
            time=task.time,
            cost=task.cost,
            tasks_count=response.tasks_count,
            tasks_error=response.tasks_error,
        )

        # The whole batch is logged against the first miss
        primary_seed = await self.store.insert_keyword(misses[0])
        task_row = await self.store.insert_task(
            task.id,
            job.id,
            ", ".join(misses),
            seed_keyword_id=primary_seed.id,
            **task_columns(task, "se_type"),
        )

        result = task.first_result
        await self._record_batch_metadata(task_row.id, primary_seed.id, misses, result)

        collected_ids, related = await self._store_items(result.items, location_code, language_code)
        await self._update_seeds(misses, collected_ids, related, location_code, language_code, assembler)

    async def _record_batch_metadata(
        self,
        task_id: str,
        seed_keyword_id: str,
        misses: list[str],
        result: KeywordIdeasResult,
    ) -> None:
        try:
            await self.store.insert_related_result(
                task_id=task_id,
                seed_keyword_id=seed_keyword_id,
                se_type=result.se_type,
                seed_keywords=list(misses),
                location_code=result.location_code,
                language_code=result.language_code,
                total_count=result.total_count,
                items_count=result.items_count,
                offset=result.offset,
            )
        except Exception as e:
            logger.warning("Failed to insert related result metadata for Task ID %s: %s", task_id, e)

    async def _store_items(
        self,
        items: list[KeywordIdeaItem],
        location_code: int,
        language_code: str,
    ) -> tuple[list[str], list[tuple[KeywordProfile, str]]]:
        """Upsert a profile per related keyword item.

        Returns the ordered, de-duplicated related keyword ids and the
        stored profiles with their keyword text.
        """
        collected_ids: list[str] = []
        related: list[tuple[KeywordProfile, str]] = []

        if not items:
            logger.warning("No items found in keyword ideas result to process")
            return collected_ids, related

        logger.info("Processing %d related keyword items from API...", len(items))
        for item in items:
            if not item.keyword or not item.location_code or not item.language_code:
                logger.warning(
                    "Skipping item due to missing keyword, location_code, or language_code: %s",
                    item.keyword,
                )
                continue

            try:
                keyword_row = await self.store.insert_keyword(item.keyword)
                profile = await self.store.upsert_keyword_profile(
                    keyword_row.id,
                    location_code,
                    language_code,
                    **item.profile_fields(),
                )
            except Exception as e:
                logger.error(
                    "Failed to store related keyword '%s': %s",
                    item.keyword,
                    e,
                    extra={"keyword": item.keyword},
                )
                continue

            if keyword_row.id in collected_ids:
                continue
            collected_ids.append(keyword_row.id)
            related.append((profile, keyword_row.text))

        return collected_ids, related

    async def _update_seeds(
        self,
        misses: list[str],
        collected_ids: list[str],
        related: list[tuple[KeywordProfile, str]],
        location_code: int,
        language_code: str,
        assembler: ResultAssembler[RelatedKeywordEntry],
    ) -> None:
        for keyword in misses:
            try:
                seed = await self.store.insert_keyword(keyword)
                seed_profile = await self.store.upsert_keyword_profile(
                    seed.id,
                    location_code,
                    language_code,
                    related_keyword_ids=list(collected_ids),
                )
            except Exception as e:
                logger.error(
                    "Error updating seed profile for keyword %s: %s",
                    keyword,
                    e,
                    extra={"keyword": keyword},
                )
                assembler.add_miss(
                    RelatedKeywordEntry(
                        keyword=keyword,
                        keywords=list(related),
                        error=f"Failed to update seed profile: {e}",
                    )
                )
                continue

            logger.info(
                "Updated seed profile %s for %s with %d related keyword IDs.",
                seed_profile.id,
                keyword,
                len(collected_ids),
            )
            assembler.add_miss(
                RelatedKeywordEntry(keyword=keyword, related=seed_profile, keywords=list(related))
            )
