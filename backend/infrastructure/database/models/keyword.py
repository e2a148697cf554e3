"""Keyword and keyword profile models (the cache)."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin, TimestampMixin

KEYWORD_MAX_LENGTH = 500
LANGUAGE_CODE_MAX_LENGTH = 10


class Keyword(Base, CreatedAtMixin):
    """A search phrase, identified by its lowercased text."""

    __tablename__ = "keywords"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    # Always stored lowercased
    text: Mapped[str] = mapped_column(String(KEYWORD_MAX_LENGTH), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Keyword(id={self.id}, text={self.text[:30]})>"


class KeywordProfile(Base, TimestampMixin):
    """Keyword metrics for one location/language, plus its related keyword ids.

    updated_at is the freshness timestamp used by the cache check.
    """

    __tablename__ = "keyword_profiles"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    keyword_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    location_code: Mapped[int] = mapped_column(Integer, nullable=False)
    language_code: Mapped[str] = mapped_column(String(LANGUAGE_CODE_MAX_LENGTH), nullable=False)

    # keyword_info
    ki_last_check: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    ki_competition: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ki_competition_level: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    ki_cpc: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ki_search_volume: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    ki_low_top_of_page_bid: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ki_high_top_of_page_bid: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ki_categories: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    ki_monthly_searches: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # keyword_properties
    kp_synonym_clustering_algorithm: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    kp_keyword_difficulty: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    kp_detected_language: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    kp_is_another_language: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)

    # avg_backlinks_info
    avg_backlinks: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_dofollow: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_referring_pages: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_referring_domains: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_referring_main_domains: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_rank: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_main_domain_rank: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    avg_last_updated_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # search_intent_info
    si_main_intent: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Ordered Keyword ids, fully replaced on every live fetch for this seed
    related_keyword_ids: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    __table_args__ = (
        UniqueConstraint(
            "keyword_id",
            "location_code",
            "language_code",
            name="uq_keyword_profile_keyword_location_language",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<KeywordProfile(keyword_id={self.keyword_id}, "
            f"location={self.location_code}, language={self.language_code})>"
        )
