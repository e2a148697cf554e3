"""Create keyword cache and DataForSEO audit tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    # Cache
    op.create_table(
        "keywords",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("text", sa.String(length=500), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("text"),
    )
    op.create_index("ix_keywords_created_at", "keywords", ["created_at"])

    op.create_table(
        "keyword_profiles",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("keyword_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("location_code", sa.Integer(), nullable=False),
        sa.Column("language_code", sa.String(length=10), nullable=False),
        sa.Column("ki_last_check", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ki_competition", sa.Float(), nullable=True),
        sa.Column("ki_competition_level", sa.String(length=50), nullable=True),
        sa.Column("ki_cpc", sa.Float(), nullable=True),
        sa.Column("ki_search_volume", sa.BigInteger(), nullable=True),
        sa.Column("ki_low_top_of_page_bid", sa.Float(), nullable=True),
        sa.Column("ki_high_top_of_page_bid", sa.Float(), nullable=True),
        sa.Column("ki_categories", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("ki_monthly_searches", sa.JSON(), nullable=True),
        sa.Column("kp_synonym_clustering_algorithm", sa.String(length=50), nullable=True),
        sa.Column("kp_keyword_difficulty", sa.Integer(), nullable=True),
        sa.Column("kp_detected_language", sa.String(length=10), nullable=True),
        sa.Column("kp_is_another_language", sa.Boolean(), nullable=True),
        sa.Column("avg_backlinks", sa.Float(), nullable=True),
        sa.Column("avg_dofollow", sa.Float(), nullable=True),
        sa.Column("avg_referring_pages", sa.Float(), nullable=True),
        sa.Column("avg_referring_domains", sa.Float(), nullable=True),
        sa.Column("avg_referring_main_domains", sa.Float(), nullable=True),
        sa.Column("avg_rank", sa.Float(), nullable=True),
        sa.Column("avg_main_domain_rank", sa.Float(), nullable=True),
        sa.Column("avg_last_updated_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("si_main_intent", sa.String(length=50), nullable=True),
        sa.Column("related_keyword_ids", sa.JSON(), nullable=False, server_default="[]"),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "keyword_id",
            "location_code",
            "language_code",
            name="uq_keyword_profile_keyword_location_language",
        ),
    )
    op.create_index("ix_keyword_profiles_keyword_id", "keyword_profiles", ["keyword_id"])
    op.create_index("ix_keyword_profiles_created_at", "keyword_profiles", ["created_at"])
    op.create_index("ix_keyword_profiles_updated_at", "keyword_profiles", ["updated_at"])

    # Audit log
    op.create_table(
        "jobs",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("request_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PROCESSING"),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("status_message", sa.String(length=500), nullable=True),
        sa.Column("version", sa.String(length=50), nullable=True),
        sa.Column("time", sa.String(length=50), nullable=True),
        sa.Column("cost", sa.Float(), nullable=True),
        sa.Column("tasks_count", sa.Integer(), nullable=True),
        sa.Column("tasks_error", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_jobs_created_at", "jobs", ["created_at"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("seed_keyword_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("keyword", sa.Text(), nullable=False),
        sa.Column("status_from_api", sa.String(length=500), nullable=True),
        sa.Column("received_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("result_status_code", sa.Integer(), nullable=True),
        sa.Column("result_status_message", sa.String(length=500), nullable=True),
        sa.Column("result_time", sa.String(length=50), nullable=True),
        sa.Column("result_cost", sa.Float(), nullable=True),
        sa.Column("result_count", sa.Integer(), nullable=True),
        sa.Column("location", sa.String(length=50), nullable=True),
        sa.Column("path", sa.JSON(), nullable=True),
        sa.Column("search_engine", sa.String(length=50), nullable=True),
        sa.Column("language_code", sa.String(length=10), nullable=True),
        sa.Column("device", sa.String(length=20), nullable=True),
        sa.Column("os", sa.String(length=20), nullable=True),
        sa.Column("depth", sa.Integer(), nullable=True),
        sa.Column("error_details", sa.JSON(), nullable=True),
        sa.Column("result_data", sa.JSON(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["job_id"], ["jobs.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["seed_keyword_id"], ["keywords.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_tasks_job_id", "tasks", ["job_id"])
    op.create_index("ix_tasks_seed_keyword_id", "tasks", ["seed_keyword_id"])
    op.create_index("ix_tasks_created_at", "tasks", ["created_at"])

    op.create_table(
        "serps",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("task_id", sa.String(length=64), nullable=False),
        sa.Column("keyword_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("se_domain", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("location_code", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("language_code", sa.String(length=10), nullable=False, server_default=""),
        sa.Column("check_url", sa.Text(), nullable=False, server_default=""),
        sa.Column("fetch_timestamp_from_api", sa.DateTime(timezone=True), nullable=True),
        sa.Column("refinement_chips", sa.JSON(), nullable=True),
        sa.Column("item_types", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("se_results_count", sa.BigInteger(), nullable=True),
        sa.Column("items_count", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("task_id"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_serps_keyword_id", "serps", ["keyword_id"])
    op.create_index("ix_serps_created_at", "serps", ["created_at"])

    op.create_table(
        "results",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("serp_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("snippet", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["serp_id"], ["serps.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("serp_id", "position", name="uq_result_serp_position"),
    )
    op.create_index("ix_results_serp_id", "results", ["serp_id"])
    op.create_index("ix_results_created_at", "results", ["created_at"])

    op.create_table(
        "related_results",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("task_id", sa.String(length=64), nullable=False),
        sa.Column("seed_keyword_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("se_type", sa.String(length=50), nullable=True),
        sa.Column("seed_keywords", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("location_code", sa.Integer(), nullable=True),
        sa.Column("language_code", sa.String(length=10), nullable=True),
        sa.Column("total_count", sa.BigInteger(), nullable=True),
        sa.Column("items_count", sa.Integer(), nullable=True),
        sa.Column("offset", sa.Integer(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["task_id"], ["tasks.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["seed_keyword_id"], ["keywords.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_related_results_task_id", "related_results", ["task_id"])
    op.create_index("ix_related_results_seed_keyword_id", "related_results", ["seed_keyword_id"])
    op.create_index("ix_related_results_created_at", "related_results", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_related_results_created_at", table_name="related_results")
    op.drop_index("ix_related_results_seed_keyword_id", table_name="related_results")
    op.drop_index("ix_related_results_task_id", table_name="related_results")
    op.drop_table("related_results")

    op.drop_index("ix_results_created_at", table_name="results")
    op.drop_index("ix_results_serp_id", table_name="results")
    op.drop_table("results")

    op.drop_index("ix_serps_created_at", table_name="serps")
    op.drop_index("ix_serps_keyword_id", table_name="serps")
    op.drop_table("serps")

    op.drop_index("ix_tasks_created_at", table_name="tasks")
    op.drop_index("ix_tasks_seed_keyword_id", table_name="tasks")
    op.drop_index("ix_tasks_job_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_jobs_created_at", table_name="jobs")
    op.drop_table("jobs")

    op.drop_index("ix_keyword_profiles_updated_at", table_name="keyword_profiles")
    op.drop_index("ix_keyword_profiles_created_at", table_name="keyword_profiles")
    op.drop_index("ix_keyword_profiles_keyword_id", table_name="keyword_profiles")
    op.drop_table("keyword_profiles")

    op.drop_index("ix_keywords_created_at", table_name="keywords")
    op.drop_table("keywords")
