"""ORM Models for the Ops Board KPI store — SQLAlchemy 2.0"""
from datetime import datetime, date
from typing import Optional
from sqlalchemy import (
    JSON, Text, String, Integer, Numeric, DateTime, Date,
    UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from opsboard.db import Base

# JSONB on Postgres, plain JSON elsewhere (SQLite in dev/tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# ── MONTHLY AGGREGATES ────────────────────────────────────────────────────────
class MonthlyAggregate(Base):
    """
    One full snapshot per (team, KPI category, month). Saves replace every
    mutable column; rows are never merged server-side.
    """
    __tablename__ = "monthly_aggregates"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # No FK to teams: the team id is opaque to the engine
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    kpi_category: Mapped[str] = mapped_column(String(32), nullable=False)
    month_key: Mapped[date] = mapped_column(Date, nullable=False)
    kpi_value: Mapped[Optional[int]] = mapped_column(Integer)
    monthly_target: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False), nullable=False, default=0)
    employees: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    incidents: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    formulas: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    stats: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    notes: Mapped[Optional[str]] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        UniqueConstraint("team_id", "kpi_category", "month_key", name="uq_monthly_aggregate_key"),
        Index("ix_monthly_aggregates_team_category", "team_id", "kpi_category"),
    )
