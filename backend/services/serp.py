"""
SERP service.

Serves Google organic SERPs from the cache when fresh and fetches the
rest from DataForSEO in one batched call. Each returned provider task is
persisted by its own pipeline; pipelines run concurrently and a failure
in one never affects the others.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from adapters.seo.dataforseo_adapter import DataForSEOAdapter, DataForSEOAPIError
from adapters.seo.dataforseo_models import SerpTask, parse_timestamp
from core.interfaces.repositories import FreshnessStore
from infrastructure.database.models import JobStatus
from services.cache_partitioner import CachePartitioner, dedupe_keywords
from services.result_assembler import ResultAssembler, SerpEntry
from services.upstream_audit import task_columns

logger = logging.getLogger(__name__)


class SerpService:
    """Cache-or-fetch engine for organic SERPs."""

    def __init__(
        self,
        store: FreshnessStore,
        adapter: DataForSEOAdapter,
        ttl_hours: int = 24,
        concurrency: int = 10,
    ):
        self.store = store
        self.adapter = adapter
        self.concurrency = max(1, concurrency)
        self.partitioner = CachePartitioner(store, ttl_hours=ttl_hours)

    async def get_serps(
        self,
        keywords: list[str],
        location_code: int,
        language_code: str,
    ) -> list[SerpEntry]:
        """Return one entry per unique requested keyword: cache hits first, then live results."""
        unique_keywords = dedupe_keywords(keywords)
        partition = await self.partitioner.partition_serp(unique_keywords)

        assembler: ResultAssembler[SerpEntry] = ResultAssembler()
        for hit in partition.hits:
            assembler.add_hit(SerpEntry(keyword=hit.keyword, serp=hit.serp, results=hit.results))

        misses = partition.misses
        if misses:
            assembler.dispatch(misses)
            try:
                await self._fetch_live(misses, location_code, language_code, assembler)
            except Exception as e:
                error_message = (
                    str(e) or "Unknown error calling DataForSEO API or processing results batch"
                )
                logger.error(
                    "Error processing live SERP request batch for keywords [%s]: %s",
                    ", ".join(misses),
                    error_message,
                )
                assembler.fill_missing(lambda kw: SerpEntry(keyword=kw, error=error_message))

            missing = assembler.fill_missing(
                lambda kw: SerpEntry(
                    keyword=kw,
                    error=f"No task returned by DataForSEO for keyword '{kw}'",
                )
            )
            if missing:
                logger.warning("%d keywords had no matching DataForSEO task", missing)

        return assembler.build()

    async def _fetch_live(
        self,
        misses: list[str],
        location_code: int,
        language_code: str,
        assembler: ResultAssembler[SerpEntry],
    ) -> None:
        response = await self.adapter.serp_organic(misses, location_code, language_code)
        if not response.tasks:
            raise DataForSEOAPIError("Invalid or empty tasks array in DataForSEO response")

        job = await self.store.insert_job(
            request_timestamp=datetime.now(timezone.utc),
            status=JobStatus.PROCESSING.value,
            version=response.version,
            status_code=response.status_code,
            status_message=response.status_message,
            time=response.time,
            cost=response.cost,
            tasks_count=response.tasks_count,
            tasks_error=response.tasks_error,
        )

        by_lower = {keyword.lower(): keyword for keyword in misses}
        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes: list[Optional[SerpEntry]] = [None] * len(response.tasks)

        async def run(index: int, task: SerpTask) -> None:
            async with semaphore:
                outcomes[index] = await self._process_task(task, job.id, by_lower)

        async with asyncio.TaskGroup() as group:
            for index, task in enumerate(response.tasks):
                group.create_task(run(index, task))

        for entry in outcomes:
            if entry is not None:
                assembler.add_miss(entry)

        succeeded = assembler.successful_misses()
        if succeeded == len(misses):
            status = JobStatus.COMPLETED
        elif succeeded:
            status = JobStatus.PARTIAL_ERROR
        else:
            status = JobStatus.FAILED
        try:
            await self.store.update_job_status(job.id, status.value)
        except Exception as e:
            logger.error("Failed to update status of job %s: %s", job.id, e, extra={"job_id": job.id})

        logger.info(
            "Finished processing %d tasks from DataForSEO for Job ID: %s (%s)",
            len(response.tasks),
            job.id,
            status.value,
        )

    @staticmethod
    def _resolve_keyword(task: SerpTask, by_lower: dict[str, str]) -> Optional[str]:
        """Map a task back to the requested spelling of its keyword."""
        for candidate in (task.data.get("tag"), task.data.get("keyword")):
            if isinstance(candidate, str) and candidate.strip().lower() in by_lower:
                return by_lower[candidate.strip().lower()]
        return None

    async def _process_task(
        self,
        task: SerpTask,
        job_id: str,
        by_lower: dict[str, str],
    ) -> Optional[SerpEntry]:
        keyword = self._resolve_keyword(task, by_lower)
        if keyword is None:
            logger.error(
                "Could not determine keyword for task %s", task.id, extra={"task_id": task.id}
            )
            return None

        if not task.succeeded:
            error_message = (
                f"DataForSEO task failed or returned no result for keyword '{keyword}'. "
                f"Status: {task.status_code} - {task.status_message}"
            )
            logger.error(error_message, extra={"keyword": keyword, "task_id": task.id})
            await self._record_failed_task(task, job_id, keyword, error_message)
            return SerpEntry(keyword=keyword, error=error_message)

        try:
            return await self._store_task(task, job_id, keyword)
        except Exception as e:
            error_message = f"Error processing task for keyword '{keyword}': {e}"
            logger.error(error_message, extra={"keyword": keyword, "task_id": task.id})
            return SerpEntry(keyword=keyword, error=error_message)

    async def _record_failed_task(
        self,
        task: SerpTask,
        job_id: str,
        keyword: str,
        error_message: str,
    ) -> None:
        """Best-effort audit row for a task the provider reported as failed."""
        try:
            await self.store.insert_task(
                task.id,
                job_id,
                keyword,
                error_details={
                    "status_code": task.status_code,
                    "status_message": task.status_message,
                    "error": error_message,
                },
                **task_columns(task, "se"),
            )
        except Exception as e:
            logger.warning("Failed to record failed task %s: %s", task.id, e, extra={"task_id": task.id})

    async def _store_task(self, task: SerpTask, job_id: str, keyword: str) -> SerpEntry:
        serp_data = task.first_result

        keyword_row = await self.store.insert_keyword(keyword)
        task_row = await self.store.insert_task(task.id, job_id, keyword, **task_columns(task, "se"))

        serp = await self.store.insert_serp(
            task_row.id,
            keyword_row.id,
            type=serp_data.type or "",
            se_domain=serp_data.se_domain or "",
            location_code=serp_data.location_code or 0,
            language_code=serp_data.language_code or "",
            check_url=serp_data.check_url or "",
            fetch_timestamp_from_api=parse_timestamp(serp_data.fetched_at),
            refinement_chips=serp_data.refinement_chips,
            item_types=serp_data.item_types or [],
            se_results_count=serp_data.se_results_count,
            items_count=serp_data.items_count,
        )

        rows = [
            {
                "position": item.rank_absolute,
                "url": item.url,
                "type": item.type,
                "title": item.title,
                "snippet": item.description,
            }
            for item in serp_data.organic_items()
        ]
        inserted = await self.store.insert_results(serp.id, rows)
        logger.info("Inserted %d result items for SERP ID: %s", inserted, serp.id)

        stored_serp = await self.store.find_serp_by_id(serp.id) or serp
        results = await self.store.find_results_by_serp_id(serp.id)

        logger.info(
            "Successfully stored DataForSEO results in DB for keyword: %s. JobID: %s, TaskID: %s, SerpID: %s",
            keyword,
            job_id,
            task_row.id,
            serp.id,
        )
        return SerpEntry(keyword=keyword, serp=stored_serp, results=results)
