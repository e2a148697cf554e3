"""
Response envelopes returned by the DataForSEO v3 API.

Only the fields this service reads are declared; everything else the
provider sends is ignored. Every field the provider may omit is Optional.
"""

import logging
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

TASK_OK_STATUS = 20000

# DataForSEO timestamps look like "2024-05-01 10:15:00 +00:00"
_TIMESTAMP_FORMATS = ("%Y-%m-%d %H:%M:%S %z", "%Y-%m-%d %H:%M:%S%z")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a provider timestamp, returning None when it is missing or unreadable."""
    if not value:
        return None
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Unparseable DataForSEO timestamp: %s", value)
        return None


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Keyword ideas (related keywords)
# ---------------------------------------------------------------------------


class KeywordInfo(_Envelope):
    last_updated_time: Optional[str] = None
    competition: Optional[float] = None
    competition_level: Optional[str] = None
    cpc: Optional[float] = None
    search_volume: Optional[int] = None
    low_top_of_page_bid: Optional[float] = None
    high_top_of_page_bid: Optional[float] = None
    categories: Optional[list[int]] = None
    monthly_searches: Optional[list[dict[str, Any]]] = None


class KeywordProperties(_Envelope):
    synonym_clustering_algorithm: Optional[str] = None
    keyword_difficulty: Optional[int] = None
    detected_language: Optional[str] = None
    is_another_language: Optional[bool] = None


class AvgBacklinksInfo(_Envelope):
    backlinks: Optional[float] = None
    dofollow: Optional[float] = None
    referring_pages: Optional[float] = None
    referring_domains: Optional[float] = None
    referring_main_domains: Optional[float] = None
    rank: Optional[float] = None
    main_domain_rank: Optional[float] = None
    last_updated_time: Optional[str] = None


class SearchIntentInfo(_Envelope):
    main_intent: Optional[str] = None


class KeywordIdeaItem(_Envelope):
    """One candidate related keyword."""

    keyword: Optional[str] = None
    location_code: Optional[int] = None
    language_code: Optional[str] = None
    keyword_info: Optional[KeywordInfo] = None
    keyword_properties: Optional[KeywordProperties] = None
    avg_backlinks_info: Optional[AvgBacklinksInfo] = None
    search_intent_info: Optional[SearchIntentInfo] = None

    def profile_fields(self) -> dict[str, Any]:
        """Flatten the nested metric blocks into KeywordProfile columns."""
        info = self.keyword_info or KeywordInfo()
        props = self.keyword_properties or KeywordProperties()
        backlinks = self.avg_backlinks_info or AvgBacklinksInfo()
        intent = self.search_intent_info or SearchIntentInfo()
        return {
            "ki_last_check": parse_timestamp(info.last_updated_time),
            "ki_competition": info.competition,
            "ki_competition_level": info.competition_level,
            "ki_cpc": info.cpc,
            "ki_search_volume": info.search_volume,
            "ki_low_top_of_page_bid": info.low_top_of_page_bid,
            "ki_high_top_of_page_bid": info.high_top_of_page_bid,
            "ki_categories": info.categories or [],
            "ki_monthly_searches": info.monthly_searches,
            "kp_synonym_clustering_algorithm": props.synonym_clustering_algorithm,
            "kp_keyword_difficulty": props.keyword_difficulty,
            "kp_detected_language": props.detected_language,
            "kp_is_another_language": props.is_another_language,
            "avg_backlinks": backlinks.backlinks,
            "avg_dofollow": backlinks.dofollow,
            "avg_referring_pages": backlinks.referring_pages,
            "avg_referring_domains": backlinks.referring_domains,
            "avg_referring_main_domains": backlinks.referring_main_domains,
            "avg_rank": backlinks.rank,
            "avg_main_domain_rank": backlinks.main_domain_rank,
            "avg_last_updated_time": parse_timestamp(backlinks.last_updated_time),
            "si_main_intent": intent.main_intent,
        }


class KeywordIdeasResult(_Envelope):
    se_type: Optional[str] = None
    seed_keywords: Optional[list[str]] = None
    location_code: Optional[int] = None
    language_code: Optional[str] = None
    total_count: Optional[int] = None
    items_count: Optional[int] = None
    offset: Optional[int] = None
    items: list[KeywordIdeaItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def null_items_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


# ---------------------------------------------------------------------------
# SERP (Google organic, live regular)
# ---------------------------------------------------------------------------


class SerpItem(_Envelope):
    type: Optional[str] = None
    rank_absolute: Optional[int] = None
    url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_organic(self) -> bool:
        return self.type == "organic" and self.url is not None and self.rank_absolute is not None


class SerpResult(_Envelope):
    keyword: Optional[str] = None
    type: Optional[str] = None
    se_domain: Optional[str] = None
    location_code: Optional[int] = None
    language_code: Optional[str] = None
    check_url: Optional[str] = None
    fetched_at: Optional[str] = Field(default=None, alias="datetime")
    refinement_chips: Optional[dict[str, Any]] = None
    item_types: Optional[list[str]] = None
    se_results_count: Optional[int] = None
    items_count: Optional[int] = None
    items: list[SerpItem] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def null_items_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def organic_items(self) -> list[SerpItem]:
        return [item for item in self.items if item.is_organic]


# ---------------------------------------------------------------------------
# Shared task / envelope shapes
# ---------------------------------------------------------------------------

ResultT = TypeVar("ResultT")


class DataForSEOTask(_Envelope, Generic[ResultT]):
    """One provider-side task. `data` echoes the request that produced it."""

    id: str
    status_code: int
    status_message: Optional[str] = None
    time: Optional[str] = None
    cost: Optional[float] = None
    result_count: Optional[int] = None
    path: Optional[list[str]] = None
    data: dict[str, Any] = Field(default_factory=dict)
    result: Optional[list[ResultT]] = None

    @field_validator("data", mode="before")
    @classmethod
    def null_data_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def succeeded(self) -> bool:
        return self.status_code == TASK_OK_STATUS and bool(self.result)

    @property
    def first_result(self) -> Optional[ResultT]:
        return self.result[0] if self.result else None


class DataForSEOResponse(_Envelope, Generic[ResultT]):
    """Top-level envelope of one DataForSEO call."""

    version: Optional[str] = None
    status_code: Optional[int] = None
    status_message: Optional[str] = None
    time: Optional[str] = None
    cost: Optional[float] = None
    tasks_count: Optional[int] = None
    tasks_error: Optional[int] = None
    tasks: list[DataForSEOTask[ResultT]] = Field(default_factory=list)

    @field_validator("tasks", mode="before")
    @classmethod
    def null_tasks_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


KeywordIdeasTask = DataForSEOTask[KeywordIdeasResult]
SerpTask = DataForSEOTask[SerpResult]
KeywordIdeasResponse = DataForSEOResponse[KeywordIdeasResult]
SerpResponse = DataForSEOResponse[SerpResult]
