"""
aggregate_repository.py — Monthly Aggregate Repository.

Contract:
  read_by_month(team, category, month) → MonthlySnapshot | None
  upsert(snapshot)                     → full replace on (team, category, month), insert otherwise

There is no locking or versioning. Two writers that read the same month,
modify it in memory and upsert will race, and the second full-snapshot
write discards the first (lost update). The dashboard serialises edits
through a single form per month; this layer gives no guarantee of its own.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from opsboard.models.orm_models import MonthlyAggregate
from opsboard.models.records import KPICategory, MonthlySnapshot
from opsboard.services.errors import KPIValidationError, PersistenceError
from opsboard.services.periods import DateLike, month_key

logger = logging.getLogger("opsboard-db.aggregates")

_MUTABLE_FIELDS = (
    "kpi_value", "monthly_target", "employees", "incidents",
    "formulas", "stats", "notes", "updated_at",
)


def as_category(value) -> KPICategory:
    try:
        return KPICategory(value)
    except ValueError:
        raise KPIValidationError(f"Unknown KPI category {value!r}") from None


class AggregateRepository(ABC):
    """Persistence contract every aggregator reads from and writes through."""

    @abstractmethod
    async def read_by_month(self, team_id: str, category, month: DateLike) -> Optional[MonthlySnapshot]:
        ...

    @abstractmethod
    async def upsert(self, snapshot: MonthlySnapshot) -> MonthlySnapshot:
        ...

    @abstractmethod
    async def list_by_category(self, team_id: str, category) -> List[MonthlySnapshot]:
        """All snapshots of one category, newest month first."""

    async def latest(self, team_id: str, category) -> Optional[MonthlySnapshot]:
        snapshots = await self.list_by_category(team_id, category)
        return snapshots[0] if snapshots else None


# ---------------------------------------------------------------------------
# In-memory store (tests, local tooling)
# ---------------------------------------------------------------------------

class InMemoryAggregateRepository(AggregateRepository):
    """Dict-backed store. Snapshots are deep-copied in and out, never shared."""

    def __init__(self) -> None:
        self._rows: Dict[Tuple[str, str, object], MonthlySnapshot] = {}

    async def read_by_month(self, team_id, category, month):
        key = (team_id, as_category(category).value, month_key(month))
        row = self._rows.get(key)
        return row.model_copy(deep=True) if row is not None else None

    async def upsert(self, snapshot):
        stored = snapshot.model_copy(
            deep=True, update={"updated_at": datetime.now(timezone.utc)}
        )
        key = (stored.team_id, stored.kpi_category.value, stored.month_key)
        self._rows[key] = stored
        return stored.model_copy(deep=True)

    async def list_by_category(self, team_id, category):
        cat = as_category(category).value
        rows = [
            snap for (team, c, _), snap in self._rows.items()
            if team == team_id and c == cat
        ]
        rows.sort(key=lambda s: s.month_key, reverse=True)
        return [r.model_copy(deep=True) for r in rows]


# ---------------------------------------------------------------------------
# SQLAlchemy store
# ---------------------------------------------------------------------------

class SqlAggregateRepository(AggregateRepository):
    """``monthly_aggregates`` table through an async session factory."""

    def __init__(self, session_factory: async_sessionmaker) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _to_snapshot(row: MonthlyAggregate) -> MonthlySnapshot:
        return MonthlySnapshot(
            team_id=row.team_id,
            kpi_category=row.kpi_category,
            month_key=row.month_key,
            kpi_value=row.kpi_value,
            monthly_target=float(row.monthly_target or 0),
            employees=list(row.employees or []),
            incidents=list(row.incidents or []),
            formulas=list(row.formulas or []),
            stats=dict(row.stats or {}),
            notes=row.notes or "",
            updated_at=row.updated_at,
        )

    async def read_by_month(self, team_id, category, month):
        cat = as_category(category).value
        key = month_key(month)
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(MonthlyAggregate).where(
                        MonthlyAggregate.team_id == team_id,
                        MonthlyAggregate.kpi_category == cat,
                        MonthlyAggregate.month_key == key,
                    )
                )
                row = result.scalar_one_or_none()
                return self._to_snapshot(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error(
                "Aggregate read failed: %s", exc,
                extra={"team_id": team_id, "kpi_category": cat, "month_key": key.isoformat()},
            )
            raise PersistenceError(
                f"Could not read {cat} aggregate for {key.isoformat()}",
                team_id=team_id, kpi_category=cat, month_key=key.isoformat(),
            ) from exc

    async def upsert(self, snapshot):
        cat = snapshot.kpi_category.value
        data = snapshot.model_dump(mode="json")
        values = {field: data[field] for field in _MUTABLE_FIELDS}
        values["updated_at"] = datetime.now(timezone.utc)

        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(MonthlyAggregate).where(
                        MonthlyAggregate.team_id == snapshot.team_id,
                        MonthlyAggregate.kpi_category == cat,
                        MonthlyAggregate.month_key == snapshot.month_key,
                    )
                )
                row = result.scalar_one_or_none()
                if row is not None:
                    for field, value in values.items():
                        setattr(row, field, value)
                else:
                    row = MonthlyAggregate(
                        team_id=snapshot.team_id,
                        kpi_category=cat,
                        month_key=snapshot.month_key,
                        **values,
                    )
                    session.add(row)
                await session.commit()
                await session.refresh(row)
                stored = self._to_snapshot(row)
        except SQLAlchemyError as exc:
            logger.error(
                "Aggregate upsert failed: %s", exc,
                extra={"team_id": snapshot.team_id, "kpi_category": cat,
                       "month_key": snapshot.month_key.isoformat()},
            )
            raise PersistenceError(
                f"Could not save {cat} aggregate for {snapshot.month_key.isoformat()}",
                team_id=snapshot.team_id, kpi_category=cat,
                month_key=snapshot.month_key.isoformat(),
            ) from exc

        logger.info(
            "Aggregate saved",
            extra={"team_id": snapshot.team_id, "kpi_category": cat,
                   "month_key": snapshot.month_key.isoformat()},
        )
        return stored

    async def list_by_category(self, team_id, category):
        cat = as_category(category).value
        try:
            async with self._session_factory() as session:
                result = await session.execute(
                    select(MonthlyAggregate)
                    .where(MonthlyAggregate.team_id == team_id, MonthlyAggregate.kpi_category == cat)
                    .order_by(MonthlyAggregate.month_key.desc())
                )
                return [self._to_snapshot(row) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            logger.error("Aggregate listing failed: %s", exc, extra={"team_id": team_id, "kpi_category": cat})
            raise PersistenceError(
                f"Could not list {cat} aggregates", team_id=team_id, kpi_category=cat,
            ) from exc
