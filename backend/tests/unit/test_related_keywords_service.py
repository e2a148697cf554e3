"""
Tests for the related keywords service.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from sqlalchemy import func, select

from adapters.seo.dataforseo_adapter import DataForSEOConfigError, DataForSEOConnectionError
from infrastructure.database.models import Job, Keyword, KeywordProfile, RelatedResult, Task
from infrastructure.database.store import SqlFreshnessStore
from services.related_keywords import RelatedKeywordsService


async def _count(store: SqlFreshnessStore, model) -> int:
    async with store.database.session() as session:
        return await session.scalar(select(func.count()).select_from(model))


class TestLiveFetch:
    """Tests for cache misses fetched from DataForSEO."""

    async def test_duplicate_keywords_make_one_call(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        """Test case-insensitive duplicates collapse into one upstream keyword and one entry."""
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools"], ["seo software", "seo checker"]
        )
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools", "SEO Tools"], 2826, "en")

        mock_adapter.keyword_ideas.assert_awaited_once_with(["seo tools"], 2826, "en")
        assert len(entries) == 1
        entry = entries[0]
        assert entry.keyword == "seo tools"
        assert entry.error is None
        assert [text for _, text in entry.keywords] == ["seo software", "seo checker"]
        assert entry.related.related_keyword_ids == [profile.keyword_id for profile, _ in entry.keywords]

    async def test_batch_writes_audit_rows(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        """Test one job, one task and one batch metadata row per upstream call."""
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools", "backlinks"], ["seo software"], task_id="task-related-1"
        )
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools", "backlinks"], 2826, "en")

        assert [entry.keyword for entry in entries] == ["seo tools", "backlinks"]
        assert all(entry.error is None for entry in entries)
        assert await _count(store, Job) == 1
        assert await _count(store, RelatedResult) == 1

        async with store.database.session() as session:
            task = await session.get(Task, "task-related-1")
            job = (await session.execute(select(Job))).scalar_one()
        primary = await store.find_keyword_by_text("seo tools")
        assert task.keyword == "seo tools, backlinks"
        assert task.seed_keyword_id == primary.id
        assert task.search_engine == "google"
        assert task.location == "2826"
        assert job.status == "COMPLETED"

    async def test_second_request_is_served_from_cache(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        """Test an all-hit batch makes no upstream call."""
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools"], ["seo software"]
        )
        service = RelatedKeywordsService(store, mock_adapter)
        await service.get_related(["seo tools"], 2826, "en")
        mock_adapter.keyword_ideas.reset_mock()

        entries = await service.get_related(["SEO TOOLS"], 2826, "en")

        mock_adapter.keyword_ideas.assert_not_awaited()
        assert entries[0].keyword == "SEO TOOLS"
        assert [text for _, text in entries[0].keywords] == ["seo software"]

    async def test_hits_come_before_misses(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(["cached"], ["x"])
        service = RelatedKeywordsService(store, mock_adapter)
        await service.get_related(["cached"], 2826, "en")

        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(["fresh"], ["y"])
        entries = await service.get_related(["fresh", "cached"], 2826, "en")

        assert [entry.keyword for entry in entries] == ["cached", "fresh"]
        mock_adapter.keyword_ideas.assert_awaited_with(["fresh"], 2826, "en")

    async def test_profiles_keyed_by_request_location(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        """Test item profiles are stored under the requested location and language."""
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools"], ["seo software"]
        )
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools"], 2840, "es")

        profile, _ = entries[0].keywords[0]
        assert (profile.location_code, profile.language_code) == (2840, "es")

    async def test_items_missing_identity_are_skipped(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools"],
            [],
            items=[
                {"keyword": "seo software", "location_code": 2826, "language_code": "en"},
                {"keyword": None, "location_code": 2826, "language_code": "en"},
                {"keyword": "no language", "location_code": 2826},
            ],
        )
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools"], 2826, "en")

        assert [text for _, text in entries[0].keywords] == ["seo software"]
        assert await store.find_keyword_by_text("no language") is None

    async def test_seed_update_failure_keeps_related_keywords(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools"], ["seo software"]
        )
        service = RelatedKeywordsService(store, mock_adapter)
        original_upsert = store.upsert_keyword_profile

        async def failing_for_seed(keyword_id, location_code, language_code, **fields):
            if "related_keyword_ids" in fields:
                raise RuntimeError("disk full")
            return await original_upsert(keyword_id, location_code, language_code, **fields)

        with patch.object(store, "upsert_keyword_profile", side_effect=failing_for_seed):
            entries = await service.get_related(["seo tools"], 2826, "en")

        entry = entries[0]
        assert entry.error == "Failed to update seed profile: disk full"
        assert entry.related is None
        assert [text for _, text in entry.keywords] == ["seo software"]


class TestFailures:
    """Tests for batch-level failures."""

    async def test_missing_credential(self, store: SqlFreshnessStore, mock_adapter: AsyncMock):
        mock_adapter.keyword_ideas.side_effect = DataForSEOConfigError("Server configuration error.")
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools", "backlinks"], 2826, "en")

        assert [(entry.keyword, entry.error) for entry in entries] == [
            ("seo tools", "Server configuration error."),
            ("backlinks", "Server configuration error."),
        ]
        assert await _count(store, Job) == 0

    async def test_failed_task_reports_batch_status(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        mock_adapter.keyword_ideas.return_value = keyword_ideas_response(
            ["seo tools", "backlinks"],
            [],
            status_code=40501,
            status_message="Invalid Field: 'language_code'.",
        )
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools", "backlinks"], 2826, "en")

        expected = (
            "API call succeeded but task failed or returned no result for keywords "
            "[seo tools, backlinks]. Status: 40501 - Invalid Field: 'language_code'."
        )
        assert [entry.error for entry in entries] == [expected, expected]
        assert await _count(store, KeywordProfile) == 0

    async def test_connection_error_is_uniform(self, store: SqlFreshnessStore, mock_adapter: AsyncMock):
        mock_adapter.keyword_ideas.side_effect = DataForSEOConnectionError(
            "Failed to connect to DataForSEO: refused"
        )
        service = RelatedKeywordsService(store, mock_adapter)

        entries = await service.get_related(["seo tools"], 2826, "en")

        assert entries[0].error == "Failed to connect to DataForSEO: refused"
        assert entries[0].keywords == []


class TestConcurrentRequests:
    """Overlapping requests for the same keyword are not coalesced."""

    async def test_concurrent_misses_both_fetch_and_converge_on_one_profile(
        self, store: SqlFreshnessStore, mock_adapter: AsyncMock, keyword_ideas_response
    ):
        """Test two in-flight misses both call upstream; the natural-key upsert keeps one row per keyword."""
        responses = iter(
            [
                keyword_ideas_response(["seo tools"], ["seo software"], task_id="task-first"),
                keyword_ideas_response(["seo tools"], ["seo software"], task_id="task-second"),
            ]
        )
        both_in_flight = asyncio.Barrier(2)

        async def fetch(keywords, location_code, language_code):
            response = next(responses)
            await asyncio.wait_for(both_in_flight.wait(), timeout=5)
            return response

        mock_adapter.keyword_ideas.side_effect = fetch
        service = RelatedKeywordsService(store, mock_adapter)

        first, second = await asyncio.gather(
            service.get_related(["seo tools"], 2826, "en"),
            service.get_related(["seo tools"], 2826, "en"),
        )

        assert mock_adapter.keyword_ideas.await_count == 2
        assert first[0].error is None
        assert second[0].error is None
        assert await _count(store, Keyword) == 2
        assert await _count(store, KeywordProfile) == 2
        assert await _count(store, Job) == 2
