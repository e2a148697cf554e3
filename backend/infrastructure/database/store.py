"""SQLAlchemy implementation of the freshness store."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from core.interfaces.repositories import FreshnessStore

from .connection import Database
from .models import (
    Job,
    JobStatus,
    Keyword,
    KeywordProfile,
    RelatedResult,
    Result,
    Serp,
    Task,
)

logger = logging.getLogger(__name__)

_PROFILE_KEY = ("keyword_id", "location_code", "language_code")


def normalize_keyword(text: str) -> str:
    """Canonical keyword identity: trimmed and lowercased."""
    return text.strip().lower()


class SqlFreshnessStore(FreshnessStore):
    """Freshness store backed by PostgreSQL (production) or SQLite (tests, local dev)."""

    def __init__(self, database: Database):
        self.database = database

    def _insert(self, model):
        """Dialect-specific INSERT supporting ON CONFLICT."""
        if self.database.engine.dialect.name == "postgresql":
            return pg_insert(model)
        return sqlite_insert(model)

    # ------------------------------------------------------------------
    # Keywords
    # ------------------------------------------------------------------

    async def find_keyword_by_text(self, text: str) -> Optional[Keyword]:
        normalized = normalize_keyword(text)
        async with self.database.session() as session:
            result = await session.execute(select(Keyword).where(Keyword.text == normalized))
            return result.scalar_one_or_none()

    async def insert_keyword(self, text: str) -> Keyword:
        normalized = normalize_keyword(text)
        stmt = (
            self._insert(Keyword)
            .values(id=str(uuid4()), text=normalized, created_at=datetime.now(timezone.utc))
            .on_conflict_do_nothing(index_elements=["text"])
        )
        async with self.database.session() as session:
            outcome = await session.execute(stmt)
            if outcome.rowcount == 0:
                logger.debug("Keyword already exists: %s", normalized)
            result = await session.execute(select(Keyword).where(Keyword.text == normalized))
            return result.scalar_one()

    # ------------------------------------------------------------------
    # Keyword profiles
    # ------------------------------------------------------------------

    async def find_recent_keyword_profile(
        self,
        keyword_id: str,
        location_code: int,
        language_code: str,
        cutoff: datetime,
    ) -> Optional[KeywordProfile]:
        async with self.database.session() as session:
            result = await session.execute(
                select(KeywordProfile)
                .where(KeywordProfile.keyword_id == keyword_id)
                .where(KeywordProfile.location_code == location_code)
                .where(KeywordProfile.language_code == language_code)
                .where(KeywordProfile.updated_at >= cutoff)
                .order_by(KeywordProfile.updated_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_keyword_profiles_by_ids(
        self,
        keyword_ids: list[str],
        location_code: int,
        language_code: str,
    ) -> list[tuple[KeywordProfile, str]]:
        if not keyword_ids:
            return []
        async with self.database.session() as session:
            result = await session.execute(
                select(KeywordProfile, Keyword.text)
                .join(Keyword, Keyword.id == KeywordProfile.keyword_id)
                .where(KeywordProfile.keyword_id.in_(keyword_ids))
                .where(KeywordProfile.location_code == location_code)
                .where(KeywordProfile.language_code == language_code)
            )
            rows = [(profile, text) for profile, text in result.all()]

        order = {keyword_id: index for index, keyword_id in enumerate(keyword_ids)}
        rows.sort(key=lambda row: order.get(row[0].keyword_id, len(order)))
        return rows

    async def upsert_keyword_profile(
        self,
        keyword_id: str,
        location_code: int,
        language_code: str,
        **fields: Any,
    ) -> KeywordProfile:
        now = datetime.now(timezone.utc)
        # onupdate does not fire for ON CONFLICT DO UPDATE, so updated_at is set here
        values = {**fields, "updated_at": now}
        stmt = self._insert(KeywordProfile).values(
            id=str(uuid4()),
            keyword_id=keyword_id,
            location_code=location_code,
            language_code=language_code,
            created_at=now,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_PROFILE_KEY),
            set_={name: stmt.excluded[name] for name in values},
        )
        async with self.database.session() as session:
            await session.execute(stmt)
            result = await session.execute(
                select(KeywordProfile)
                .where(KeywordProfile.keyword_id == keyword_id)
                .where(KeywordProfile.location_code == location_code)
                .where(KeywordProfile.language_code == language_code)
                .execution_options(populate_existing=True)
            )
            profile = result.scalar_one()
        logger.debug("Upserted KeywordProfile %s for keyword %s", profile.id, keyword_id)
        return profile

    # ------------------------------------------------------------------
    # Upstream audit log
    # ------------------------------------------------------------------

    async def insert_job(self, **fields: Any) -> Job:
        job = Job(id=str(uuid4()), **fields)
        async with self.database.session() as session:
            session.add(job)
            await session.flush()
        logger.debug("Inserted job %s", job.id)
        return job

    async def update_job_status(self, job_id: str, status: str | JobStatus) -> None:
        status_value = status.value if isinstance(status, JobStatus) else status
        async with self.database.session() as session:
            await session.execute(update(Job).where(Job.id == job_id).values(status=status_value))

    async def insert_task(self, task_id: str, job_id: str, keyword: str, **fields: Any) -> Task:
        fields.setdefault("received_timestamp", datetime.now(timezone.utc))
        stmt = (
            self._insert(Task)
            .values(
                id=task_id,
                job_id=job_id,
                keyword=keyword,
                created_at=datetime.now(timezone.utc),
                **fields,
            )
            .on_conflict_do_nothing(index_elements=["id"])
        )
        async with self.database.session() as session:
            outcome = await session.execute(stmt)
            if outcome.rowcount == 0:
                logger.warning("Task with API task id '%s' already exists; keeping the existing row", task_id)
            result = await session.execute(select(Task).where(Task.id == task_id))
            return result.scalar_one()

    async def insert_related_result(self, **fields: Any) -> RelatedResult:
        related = RelatedResult(id=str(uuid4()), **fields)
        async with self.database.session() as session:
            session.add(related)
            await session.flush()
        logger.debug("Inserted related result metadata %s for task %s", related.id, related.task_id)
        return related

    # ------------------------------------------------------------------
    # SERPs
    # ------------------------------------------------------------------

    async def find_recent_serp(self, keyword_id: str, cutoff: datetime) -> Optional[Serp]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Serp)
                .where(Serp.keyword_id == keyword_id)
                .where(Serp.created_at >= cutoff)
                .order_by(Serp.created_at.desc())
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def find_serp_by_id(self, serp_id: str) -> Optional[Serp]:
        async with self.database.session() as session:
            result = await session.execute(select(Serp).where(Serp.id == serp_id))
            return result.scalar_one_or_none()

    async def insert_serp(self, task_id: str, keyword_id: str, **fields: Any) -> Serp:
        stmt = (
            self._insert(Serp)
            .values(
                id=str(uuid4()),
                task_id=task_id,
                keyword_id=keyword_id,
                created_at=datetime.now(timezone.utc),
                **fields,
            )
            .on_conflict_do_nothing(index_elements=["task_id"])
        )
        async with self.database.session() as session:
            outcome = await session.execute(stmt)
            if outcome.rowcount == 0:
                logger.warning("SERP for task '%s' already exists; keeping the existing row", task_id)
            result = await session.execute(select(Serp).where(Serp.task_id == task_id))
            return result.scalar_one()

    async def insert_results(self, serp_id: str, results: list[dict]) -> int:
        if not results:
            return 0
        now = datetime.now(timezone.utc)
        rows = [
            {
                "id": str(uuid4()),
                "serp_id": serp_id,
                "created_at": now,
                "title": None,
                "snippet": None,
                **row,
            }
            for row in results
        ]
        stmt = (
            self._insert(Result)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["serp_id", "position"])
        )
        async with self.database.session() as session:
            outcome = await session.execute(stmt)
        inserted = max(outcome.rowcount or 0, 0)
        if inserted < len(rows):
            logger.info(
                "Dropped %d duplicate result positions for SERP %s",
                len(rows) - inserted,
                serp_id,
            )
        return inserted

    async def find_results_by_serp_id(self, serp_id: str) -> list[Result]:
        async with self.database.session() as session:
            result = await session.execute(
                select(Result).where(Result.serp_id == serp_id).order_by(Result.position.asc())
            )
            return list(result.scalars().all())
