"""Read-only content repository adapter.

Responsibilities:
- Define the repository protocol consumed by generation and verification.
- Map `sparks` and `reading_plan_days` rows to immutable `ContentItem` records.

The relational schema is owned by the web application; this module only reads it.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Mapping, Protocol

from sqlalchemy import (
    Column,
    Date,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    select,
)
from sqlalchemy.engine import Engine

from ..models.datatypes import PLAN_KIND, SPARK_KIND, ContentItem


class ContentRepository(Protocol):
    """Protocol for read-only access to scheduled content items."""

    def get_items_by_date_range(self, start: date, end: date) -> list[ContentItem]:
        """Return items scheduled within the inclusive civic date range."""

    def get_all_items(self) -> list[ContentItem]:
        """Return every narratable item in stable order."""


metadata = MetaData()

sparks_table = Table(
    "sparks",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("title", String, nullable=False),
    Column("scripture_ref", String),
    Column("full_passage", Text),
    Column("full_teaching", Text),
    Column("reflection_question", Text),
    Column("today_action", Text),
    Column("prayer_line", Text),
    Column("cta_primary", String),
    Column("week_theme", String),
    Column("daily_date", Date),
)

reading_plan_days_table = Table(
    "reading_plan_days",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("plan_id", Integer, nullable=False),
    Column("day_number", Integer, nullable=False),
    Column("title", String, nullable=False),
    Column("scripture_ref", String),
    Column("scripture_text", Text),
    Column("devotional_content", Text),
    Column("prayer_prompt", Text),
    Column("scheduled_date", Date),
)


def _spark_from_row(row: Mapping[str, Any]) -> ContentItem:
    """Build a spark content item from a `sparks` row mapping."""

    return ContentItem(
        kind=SPARK_KIND,
        item_id=int(row["id"]),
        title=row["title"],
        teaching=row["full_teaching"],
        scripture_ref=row["scripture_ref"],
        scripture_text=row["full_passage"],
        reflection_question=row["reflection_question"],
        today_action=row["today_action"],
        prayer_line=row["prayer_line"],
        cta_primary=row["cta_primary"],
        week_theme=row["week_theme"],
        scheduled_date=row["daily_date"],
    )


def _plan_day_from_row(row: Mapping[str, Any]) -> ContentItem:
    """Build a reading-plan day content item from a `reading_plan_days` row mapping."""

    return ContentItem(
        kind=PLAN_KIND,
        item_id=int(row["plan_id"]),
        day_number=int(row["day_number"]),
        title=row["title"],
        teaching=row["devotional_content"],
        scripture_ref=row["scripture_ref"],
        scripture_text=row["scripture_text"],
        prayer_line=row["prayer_prompt"],
        scheduled_date=row["scheduled_date"],
    )


class SqlContentRepository:
    """SQLAlchemy Core reader over the application's content tables."""

    def __init__(self, engine: Engine) -> None:
        """Initialize the repository with a bound engine."""

        self.engine = engine

    @classmethod
    def from_url(cls, database_url: str) -> SqlContentRepository:
        """Create a repository for a database URL."""

        return cls(create_engine(database_url, future=True, pool_pre_ping=True))

    def get_items_by_date_range(self, start: date, end: date) -> list[ContentItem]:
        """Return sparks then plan days scheduled within `[start, end]`."""

        if end < start:
            return []
        spark_stmt = (
            select(sparks_table)
            .where(sparks_table.c.daily_date >= start, sparks_table.c.daily_date <= end)
            .order_by(sparks_table.c.daily_date, sparks_table.c.id)
        )
        plan_stmt = (
            select(reading_plan_days_table)
            .where(
                reading_plan_days_table.c.scheduled_date >= start,
                reading_plan_days_table.c.scheduled_date <= end,
            )
            .order_by(
                reading_plan_days_table.c.scheduled_date,
                reading_plan_days_table.c.plan_id,
                reading_plan_days_table.c.day_number,
            )
        )
        return self._fetch(spark_stmt, plan_stmt)

    def get_all_items(self) -> list[ContentItem]:
        """Return all sparks by id, then all plan days by plan and day number."""

        spark_stmt = select(sparks_table).order_by(sparks_table.c.id)
        plan_stmt = select(reading_plan_days_table).order_by(
            reading_plan_days_table.c.plan_id,
            reading_plan_days_table.c.day_number,
        )
        return self._fetch(spark_stmt, plan_stmt)

    def _fetch(self, spark_stmt: Any, plan_stmt: Any) -> list[ContentItem]:
        """Execute both statements in one connection and map rows."""

        with self.engine.connect() as connection:
            spark_rows = connection.execute(spark_stmt).mappings().all()
            plan_rows = connection.execute(plan_stmt).mappings().all()
        items = [_spark_from_row(row) for row in spark_rows]
        items.extend(_plan_day_from_row(row) for row in plan_rows)
        return items
