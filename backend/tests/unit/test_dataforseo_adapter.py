"""
Tests for the DataForSEO adapter.
"""

import json

import httpx
import pytest

from adapters.seo.dataforseo_adapter import (
    KEYWORD_IDEAS_ENDPOINT,
    SERP_ORGANIC_ENDPOINT,
    DataForSEOAdapter,
    DataForSEOAPIError,
    DataForSEOConfigError,
    DataForSEOConnectionError,
    create_dataforseo_adapter,
)
from adapters.seo.dataforseo_models import KeywordIdeaItem, SerpResult, parse_timestamp
from infrastructure.config.settings import Settings


def make_adapter(handler, credential: str | None = "bG9naW46cGFzc3dvcmQ=") -> DataForSEOAdapter:
    return DataForSEOAdapter(
        credential=credential,
        base_url="https://api.dataforseo.test",
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


class TestDataForSEOAdapterInit:
    """Tests for adapter construction."""

    def test_from_settings_with_bearer(self):
        """Test the pre-encoded credential is used as is."""
        settings = Settings(dataforseo_bearer="abc123", related_keywords_limit=25, serp_depth=50)
        adapter = DataForSEOAdapter.from_settings(settings)

        assert adapter.credential == "abc123"
        assert adapter.related_limit == 25
        assert adapter.serp_depth == 50
        assert adapter.is_configured is True

    def test_from_settings_with_login_password(self):
        """Test login and password are base64 encoded into the credential."""
        settings = Settings(dataforseo_login="login", dataforseo_password="password")
        adapter = DataForSEOAdapter.from_settings(settings)

        assert adapter.credential == "bG9naW46cGFzc3dvcmQ="

    def test_factory_without_credential(self):
        """Test an unconfigured adapter can still be created."""
        adapter = create_dataforseo_adapter(Settings())

        assert adapter.is_configured is False

    def test_base_url_trailing_slash_stripped(self):
        adapter = DataForSEOAdapter(credential="x", base_url="https://api.dataforseo.com/")
        assert adapter.base_url == "https://api.dataforseo.com"


class TestKeywordIdeas:
    """Tests for the keyword ideas call."""

    async def test_request_shape(self, keyword_ideas_payload):
        """Test one POST carrying the whole batch with Basic auth."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=keyword_ideas_payload(["seo tools"], ["seo software"]))

        async with make_adapter(handler) as adapter:
            response = await adapter.keyword_ideas(["seo tools", "backlinks"], 2826, "en")

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert request.url.path == KEYWORD_IDEAS_ENDPOINT
        assert request.headers["Authorization"] == "Basic bG9naW46cGFzc3dvcmQ="
        assert json.loads(request.content) == [
            {
                "keywords": ["seo tools", "backlinks"],
                "location_code": 2826,
                "language_code": "en",
                "limit": 10,
            }
        ]

        task = response.tasks[0]
        assert task.succeeded is True
        assert task.first_result.items[0].keyword == "seo software"

    async def test_missing_credential_makes_no_request(self):
        """Test a configuration error is raised before any network call."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        adapter = make_adapter(handler, credential=None)

        with pytest.raises(DataForSEOConfigError) as exc_info:
            await adapter.keyword_ideas(["seo tools"], 2826, "en")

        assert str(exc_info.value) == "Server configuration error."
        assert calls == []

    async def test_http_error_status(self):
        """Test a non-2xx answer becomes an API error naming the status."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream exploded")

        async with make_adapter(handler) as adapter:
            with pytest.raises(DataForSEOAPIError) as exc_info:
                await adapter.keyword_ideas(["seo tools"], 2826, "en")

        assert "500" in str(exc_info.value)

    async def test_connection_failure(self):
        """Test transport errors become connection errors."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_adapter(handler) as adapter:
            with pytest.raises(DataForSEOConnectionError):
                await adapter.keyword_ideas(["seo tools"], 2826, "en")

    async def test_timeout(self):
        """Test a timeout becomes a connection error."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        async with make_adapter(handler) as adapter:
            with pytest.raises(DataForSEOConnectionError) as exc_info:
                await adapter.keyword_ideas(["seo tools"], 2826, "en")

        assert "5.0 seconds" in str(exc_info.value)

    async def test_invalid_json(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=b"<html>not json</html>")

        async with make_adapter(handler) as adapter:
            with pytest.raises(DataForSEOAPIError):
                await adapter.keyword_ideas(["seo tools"], 2826, "en")

    async def test_malformed_envelope(self):
        """Test a task without id or status code is rejected."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"tasks": [{"result": []}]})

        async with make_adapter(handler) as adapter:
            with pytest.raises(DataForSEOAPIError):
                await adapter.keyword_ideas(["seo tools"], 2826, "en")

    async def test_null_tasks_are_empty(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"version": "0.1", "tasks": None})

        async with make_adapter(handler) as adapter:
            response = await adapter.keyword_ideas(["seo tools"], 2826, "en")

        assert response.tasks == []


class TestSerpOrganic:
    """Tests for the live SERP call."""

    async def test_one_sub_request_per_keyword(self, serp_payload, make_serp_task):
        """Test each keyword is sent as its own tagged sub-request."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(
                200,
                json=serp_payload(
                    [
                        make_serp_task("seo tools", "task-1"),
                        make_serp_task("backlinks", "task-2"),
                    ]
                ),
            )

        async with make_adapter(handler) as adapter:
            response = await adapter.serp_organic(["seo tools", "backlinks"], 2840, "es")

        assert len(captured) == 1
        assert captured[0].url.path == SERP_ORGANIC_ENDPOINT
        body = json.loads(captured[0].content)
        assert body == [
            {
                "keyword": "seo tools",
                "language_code": "es",
                "location_code": 2840,
                "device": "desktop",
                "os": "windows",
                "depth": 100,
                "tag": "seo tools",
            },
            {
                "keyword": "backlinks",
                "language_code": "es",
                "location_code": 2840,
                "device": "desktop",
                "os": "windows",
                "depth": 100,
                "tag": "backlinks",
            },
        ]
        assert [task.id for task in response.tasks] == ["task-1", "task-2"]

    async def test_failed_task_is_not_succeeded(self, serp_payload, make_serp_task):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json=serp_payload(
                    [make_serp_task("seo tools", "task-1", status_code=40501, status_message="Invalid Field")]
                ),
            )

        async with make_adapter(handler) as adapter:
            response = await adapter.serp_organic(["seo tools"], 2826, "en")

        task = response.tasks[0]
        assert task.succeeded is False
        assert task.first_result is None


class TestEnvelopeModels:
    """Tests for envelope helpers."""

    def test_parse_timestamp_provider_format(self):
        parsed = parse_timestamp("2026-10-19 09:00:00 +00:00")

        assert parsed is not None
        assert (parsed.year, parsed.month, parsed.day, parsed.hour) == (2026, 10, 19, 9)
        assert parsed.utcoffset().total_seconds() == 0

    def test_parse_timestamp_unreadable(self):
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None

    def test_profile_fields_flatten_metric_blocks(self):
        item = KeywordIdeaItem.model_validate(
            {
                "keyword": "seo software",
                "keyword_info": {"search_volume": 1300, "cpc": 1.5, "categories": None},
                "keyword_properties": {"keyword_difficulty": 42},
                "search_intent_info": {"main_intent": "commercial"},
            }
        )

        fields = item.profile_fields()

        assert fields["ki_search_volume"] == 1300
        assert fields["ki_cpc"] == 1.5
        assert fields["ki_categories"] == []
        assert fields["kp_keyword_difficulty"] == 42
        assert fields["avg_backlinks"] is None
        assert fields["si_main_intent"] == "commercial"

    def test_organic_items_filter(self):
        result = SerpResult.model_validate(
            {
                "datetime": "2026-10-19 09:00:00 +00:00",
                "items": [
                    {"type": "organic", "rank_absolute": 1, "url": "https://a.example"},
                    {"type": "featured_snippet", "rank_absolute": 2, "url": "https://b.example"},
                    {"type": "organic", "rank_absolute": 3, "url": None},
                ],
            }
        )

        organic = result.organic_items()

        assert [item.url for item in organic] == ["https://a.example"]
        assert result.fetched_at == "2026-10-19 09:00:00 +00:00"
