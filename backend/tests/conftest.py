"""
Pytest configuration and shared fixtures for backend tests.
"""

import sys
from pathlib import Path

# Add backend directory to path for imports
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from typing import Any, AsyncGenerator, Optional
from unittest.mock import AsyncMock

from httpx import AsyncClient, ASGITransport

# Import after path is set
from adapters.seo.dataforseo_adapter import DataForSEOAdapter
from adapters.seo.dataforseo_models import KeywordIdeasResponse, SerpResponse
from infrastructure.config import get_settings
from infrastructure.database import Database
from infrastructure.database.store import SqlFreshnessStore

settings = get_settings()

TEST_API_KEY = "test-api-key-0123456789"


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """File-backed SQLite database so concurrent sessions get their own connections."""
    db = Database(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        connect_args={"timeout": 30},
    )
    await db.init_models()

    yield db

    await db.drop_models()
    await db.close()


@pytest.fixture
def store(database: Database) -> SqlFreshnessStore:
    """Freshness store over the test database."""
    return SqlFreshnessStore(database)


@pytest.fixture
def mock_adapter() -> AsyncMock:
    """DataForSEO adapter whose network calls are AsyncMocks."""
    adapter = AsyncMock(spec=DataForSEOAdapter)
    adapter.is_configured = True
    return adapter


# ============================================================================
# DataForSEO envelope builders
# ============================================================================


def _keyword_item(keyword: str, location_code: int = 2826, language_code: str = "en", **info: Any) -> dict:
    keyword_info = {
        "last_updated_time": "2026-10-01 08:00:00 +00:00",
        "competition": 0.42,
        "competition_level": "MEDIUM",
        "cpc": 1.25,
        "search_volume": 1300,
        "low_top_of_page_bid": 0.5,
        "high_top_of_page_bid": 2.5,
        "categories": [10021, 12001],
        "monthly_searches": [{"year": 2026, "month": 9, "search_volume": 1300}],
    }
    keyword_info.update(info)
    return {
        "keyword": keyword,
        "location_code": location_code,
        "language_code": language_code,
        "keyword_info": keyword_info,
        "keyword_properties": {
            "synonym_clustering_algorithm": "text_processing",
            "keyword_difficulty": 37,
            "detected_language": "en",
            "is_another_language": False,
        },
        "avg_backlinks_info": {
            "backlinks": 120.5,
            "dofollow": 80.0,
            "referring_pages": 60.0,
            "referring_domains": 20.0,
            "referring_main_domains": 18.0,
            "rank": 210.0,
            "main_domain_rank": 400.0,
            "last_updated_time": "2026-09-30 12:00:00 +00:00",
        },
        "search_intent_info": {"main_intent": "commercial"},
    }


@pytest.fixture
def keyword_ideas_payload():
    """Build a raw keyword ideas response body."""

    def _build(
        seeds: list[str],
        related: list[str],
        task_id: str = "10191200-1111-0387-0000-aaaaaaaaaaaa",
        status_code: int = 20000,
        status_message: str = "Ok.",
        items: Optional[list[dict]] = None,
    ) -> dict:
        result = None
        if status_code == 20000:
            result = [
                {
                    "se_type": "google",
                    "seed_keywords": seeds,
                    "location_code": 2826,
                    "language_code": "en",
                    "total_count": 5000,
                    "items_count": len(related),
                    "offset": 0,
                    "items": items if items is not None else [_keyword_item(kw) for kw in related],
                }
            ]
        return {
            "version": "0.1.20261001",
            "status_code": 20000,
            "status_message": "Ok.",
            "time": "1.2345 sec.",
            "cost": 0.01,
            "tasks_count": 1,
            "tasks_error": 0 if status_code == 20000 else 1,
            "tasks": [
                {
                    "id": task_id,
                    "status_code": status_code,
                    "status_message": status_message,
                    "time": "1.1 sec.",
                    "cost": 0.01,
                    "result_count": 1 if result else 0,
                    "path": ["v3", "dataforseo_labs", "google", "keyword_ideas", "live"],
                    "data": {
                        "api": "dataforseo_labs",
                        "function": "keyword_ideas",
                        "se_type": "google",
                        "keywords": seeds,
                        "location_code": 2826,
                        "language_code": "en",
                        "limit": 10,
                    },
                    "result": result,
                }
            ],
        }

    return _build


@pytest.fixture
def keyword_ideas_response(keyword_ideas_payload):
    """Build a validated KeywordIdeasResponse."""

    def _build(*args, **kwargs) -> KeywordIdeasResponse:
        return KeywordIdeasResponse.model_validate(keyword_ideas_payload(*args, **kwargs))

    return _build


def serp_task(
    keyword: str,
    task_id: str,
    status_code: int = 20000,
    status_message: str = "Ok.",
    positions: tuple[int, ...] = (1, 2, 3),
    tag: Optional[str] = None,
) -> dict:
    """Raw SERP task for one keyword with organic items at the given positions."""
    result = None
    if status_code == 20000:
        items = [
            {
                "type": "organic",
                "rank_absolute": position,
                "url": f"https://example.com/{keyword.replace(' ', '-')}/{position}",
                "title": f"{keyword} result {position}",
                "description": f"Snippet {position}",
            }
            for position in positions
        ]
        items.append({"type": "people_also_ask", "rank_absolute": 99, "url": None})
        result = [
            {
                "keyword": keyword,
                "type": "organic",
                "se_domain": "google.co.uk",
                "location_code": 2826,
                "language_code": "en",
                "check_url": f"https://www.google.co.uk/search?q={keyword.replace(' ', '+')}",
                "datetime": "2026-10-19 09:00:00 +00:00",
                "item_types": ["organic", "people_also_ask"],
                "se_results_count": 98765432109876,
                "items_count": len(items),
                "items": items,
            }
        ]
    return {
        "id": task_id,
        "status_code": status_code,
        "status_message": status_message,
        "time": "2.5 sec.",
        "cost": 0.002,
        "result_count": 1 if result else 0,
        "path": ["v3", "serp", "google", "organic", "live", "regular"],
        "data": {
            "api": "serp",
            "function": "live",
            "se": "google",
            "se_type": "organic",
            "keyword": keyword,
            "tag": tag if tag is not None else keyword,
            "location_code": 2826,
            "language_code": "en",
            "device": "desktop",
            "os": "windows",
            "depth": 100,
        },
        "result": result,
    }


@pytest.fixture
def serp_payload():
    """Build a raw SERP response body from task dicts (see serp_task)."""

    def _build(tasks: list[dict]) -> dict:
        return {
            "version": "0.1.20261001",
            "status_code": 20000,
            "status_message": "Ok.",
            "time": "3.0 sec.",
            "cost": 0.006,
            "tasks_count": len(tasks),
            "tasks_error": sum(1 for task in tasks if task["status_code"] != 20000),
            "tasks": tasks,
        }

    return _build


@pytest.fixture
def serp_response(serp_payload):
    """Build a validated SerpResponse from task dicts."""

    def _build(tasks: list[dict]) -> SerpResponse:
        return SerpResponse.model_validate(serp_payload(tasks))

    return _build


@pytest.fixture
def make_serp_task():
    return serp_task


# ============================================================================
# HTTP client
# ============================================================================


@pytest.fixture
async def async_client(
    database: Database,
    mock_adapter: AsyncMock,
    monkeypatch,
) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing."""
    # Import app here so the path setup above is in effect
    from main import app

    monkeypatch.setattr(settings, "api_key", TEST_API_KEY)
    app.state.database = database
    app.state.dataforseo = mock_adapter

    # Reset rate limiter state between tests to prevent cross-test 429s
    if hasattr(app.state, "limiter"):
        app.state.limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-API-Key": TEST_API_KEY},
    ) as client:
        yield client
