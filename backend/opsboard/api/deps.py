"""FastAPI dependency injection — repository and service wiring."""
from fastapi import Depends

from opsboard.db import get_session_factory
from opsboard.services.aggregate_repository import AggregateRepository, SqlAggregateRepository
from opsboard.services.kpi_service import KPIService


def get_repository() -> AggregateRepository:
    """SQL-backed repository over the process-wide session factory. Tests override this."""
    return SqlAggregateRepository(get_session_factory())


def get_kpi_service(repository: AggregateRepository = Depends(get_repository)) -> KPIService:
    return KPIService(repository)
