"""Audit log of upstream DataForSEO interactions.

Jobs, tasks, SERPs, results and related-keyword metadata are append-only;
the only mutation is the SERP job's terminal status.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, CreatedAtMixin


class JobStatus(str, Enum):
    """Lifecycle of one upstream HTTP call."""

    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    PARTIAL_ERROR = "PARTIAL_ERROR"
    FAILED = "FAILED"


class Job(Base, CreatedAtMixin):
    """One row per upstream HTTP call."""

    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    request_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=JobStatus.PROCESSING.value)
    status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    status_message: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    tasks_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    tasks_error: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Job(id={self.id}, status={self.status})>"


class Task(Base, CreatedAtMixin):
    """One provider-side task. The primary key is the provider's task id."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    job_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seed_keyword_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("keywords.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    keyword: Mapped[str] = mapped_column(Text, nullable=False)
    status_from_api: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    received_timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    result_status_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    result_status_message: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    result_time: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    result_cost: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    result_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    path: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    search_engine: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    language_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    device: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    depth: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    error_details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    result_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<Task(id={self.id}, keyword={self.keyword[:30]})>"


class Serp(Base, CreatedAtMixin):
    """One successful SERP fetch for one keyword. One per task."""

    __tablename__ = "serps"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    task_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    keyword_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    se_domain: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    location_code: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    language_code: Mapped[str] = mapped_column(String(10), nullable=False, default="")
    check_url: Mapped[str] = mapped_column(Text, nullable=False, default="")
    fetch_timestamp_from_api: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    refinement_chips: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    item_types: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    se_results_count: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    items_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Serp(id={self.id}, task_id={self.task_id})>"


class Result(Base, CreatedAtMixin):
    """One organic result inside a SERP, ranked by position."""

    __tablename__ = "results"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    serp_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("serps.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    snippet: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("serp_id", "position", name="uq_result_serp_position"),
    )

    def __repr__(self) -> str:
        return f"<Result(serp_id={self.serp_id}, position={self.position})>"


class RelatedResult(Base, CreatedAtMixin):
    """Metadata of one related-keywords batch."""

    __tablename__ = "related_results"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    task_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    seed_keyword_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("keywords.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    se_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    seed_keywords: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    location_code: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    language_code: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    total_count: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    items_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    offset: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<RelatedResult(id={self.id}, task_id={self.task_id})>"
