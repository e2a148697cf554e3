"""Repository interfaces for data access."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from infrastructure.database.models import (
    Job,
    JobStatus,
    Keyword,
    KeywordProfile,
    RelatedResult,
    Result,
    Serp,
    Task,
)


class FreshnessStore(ABC):
    """Persistence operations needed by the cache-or-fetch services.

    Every call is its own unit of work; there is no transaction spanning
    several calls.
    """

    # Keywords

    @abstractmethod
    async def find_keyword_by_text(self, text: str) -> Optional[Keyword]:
        """Find a keyword by its text (case-insensitive)."""
        ...

    @abstractmethod
    async def insert_keyword(self, text: str) -> Keyword:
        """Insert a keyword, or return the existing row for the same lowercased text."""
        ...

    # Keyword profiles

    @abstractmethod
    async def find_recent_keyword_profile(
        self,
        keyword_id: str,
        location_code: int,
        language_code: str,
        cutoff: datetime,
    ) -> Optional[KeywordProfile]:
        """Find the profile for the triple if it was updated at or after cutoff."""
        ...

    @abstractmethod
    async def find_keyword_profiles_by_ids(
        self,
        keyword_ids: list[str],
        location_code: int,
        language_code: str,
    ) -> list[tuple[KeywordProfile, str]]:
        """Profiles with their keyword text, in the order of keyword_ids."""
        ...

    @abstractmethod
    async def upsert_keyword_profile(
        self,
        keyword_id: str,
        location_code: int,
        language_code: str,
        **fields: Any,
    ) -> KeywordProfile:
        """Create or update the profile for the triple. Only given fields are written."""
        ...

    # Upstream audit log

    @abstractmethod
    async def insert_job(self, **fields: Any) -> Job:
        """Record one upstream HTTP call."""
        ...

    @abstractmethod
    async def update_job_status(self, job_id: str, status: str | JobStatus) -> None:
        """Set the terminal status of a job, given as a JobStatus or its value."""
        ...

    @abstractmethod
    async def insert_task(self, task_id: str, job_id: str, keyword: str, **fields: Any) -> Task:
        """Insert a task keyed by the provider task id; an existing row is returned untouched."""
        ...

    @abstractmethod
    async def insert_related_result(self, **fields: Any) -> RelatedResult:
        """Record related-keywords batch metadata."""
        ...

    # SERPs

    @abstractmethod
    async def find_recent_serp(self, keyword_id: str, cutoff: datetime) -> Optional[Serp]:
        """Most recent SERP for the keyword created at or after cutoff."""
        ...

    @abstractmethod
    async def find_serp_by_id(self, serp_id: str) -> Optional[Serp]:
        """Get a SERP by id."""
        ...

    @abstractmethod
    async def insert_serp(self, task_id: str, keyword_id: str, **fields: Any) -> Serp:
        """Insert the SERP of a task; an existing SERP for the task is returned untouched."""
        ...

    @abstractmethod
    async def insert_results(self, serp_id: str, results: list[dict]) -> int:
        """Bulk insert results, silently dropping duplicate positions. Returns rows inserted."""
        ...

    @abstractmethod
    async def find_results_by_serp_id(self, serp_id: str) -> list[Result]:
        """Results of a SERP ordered by position."""
        ...
